"""Logging configuration for dormant account auditing."""

import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Optional

from ..config.models import LoggingConfig

ROOT_LOGGER_NAME = "ad-dormant-accounts"


def setup_logging(config: LoggingConfig) -> logging.Logger:
    """
    Setup logging configuration.

    Args:
        config: Logging configuration

    Returns:
        Logger instance
    """
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(getattr(logging, config.level))

    logger.handlers.clear()

    formatter = logging.Formatter(config.format)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(getattr(logging, config.level))
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if config.file:
        try:
            log_file = Path(config.file)
            log_file.parent.mkdir(parents=True, exist_ok=True)

            # 10MB per file, keep 5
            file_handler = logging.handlers.RotatingFileHandler(
                log_file,
                maxBytes=10 * 1024 * 1024,
                backupCount=5,
                encoding='utf-8'
            )
            file_handler.setLevel(getattr(logging, config.level))
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)

            logger.info(f"Logging to file: {config.file}")

        except OSError as e:
            logger.warning(f"Could not setup file logging: {e}")

    logging.getLogger("ldap3").setLevel(logging.WARNING)

    logger.debug(f"Logging initialized at level: {config.level}")
    return logger


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance.

    Args:
        name: Logger name

    Returns:
        Logger instance
    """
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


def log_ldap_operation(operation: str, dn: str, success: bool, details: Optional[str] = None) -> None:
    """
    Log LDAP operation for audit purposes.

    Args:
        operation: Operation type (search, disable, move, remove_member, etc.)
        dn: Distinguished name or account involved
        success: Whether operation was successful
        details: Additional details
    """
    logger = get_logger("audit")

    status = "SUCCESS" if success else "FAILED"
    message = f"LDAP {operation.upper()} {status}: {dn}"

    if details:
        message += f" - {details}"

    if success:
        logger.info(message)
    else:
        logger.warning(message)
