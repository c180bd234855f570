"""Core functionality for dormant account auditing."""

from .directory import DirectoryService, AccountNotFoundError
from .ldap_manager import LDAPManager
from .logging import setup_logging

__all__ = ["DirectoryService", "AccountNotFoundError", "LDAPManager", "setup_logging"]
