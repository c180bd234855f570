"""Base class for dormant account tools."""

import json
from typing import List, Dict, Any, Optional
from abc import ABC, abstractmethod

from mcp.types import TextContent as Content
from ldap3.core.exceptions import LDAPException
from pydantic import BaseModel

from ..core.directory import DirectoryService
from ..core.logging import get_logger, log_ldap_operation


class BaseTool(ABC):
    """Base class for all dormant account tools."""

    def __init__(self, directory: DirectoryService):
        """
        Initialize base tool.

        Args:
            directory: Directory service used for lookups and mutations
        """
        self.directory = directory
        self.logger = get_logger(self.__class__.__name__)

    def format_response(self, data: Any, operation: str = "operation") -> List[Content]:
        """
        Format a result for MCP.

        Args:
            data: Result model, dict or list to format
            operation: Operation name for logging

        Returns:
            List of MCP content objects
        """
        try:
            if isinstance(data, BaseModel):
                data = data.model_dump(mode="json")

            if isinstance(data, (dict, list)):
                formatted_data = json.dumps(data, indent=2, ensure_ascii=False)
            else:
                formatted_data = str(data)

            return [Content(type="text", text=formatted_data)]

        except (TypeError, ValueError) as e:
            self.logger.error(f"Error formatting response for {operation}: {e}")
            error_response = {
                "error": f"Failed to format response: {str(e)}",
                "operation": operation
            }
            return [Content(type="text", text=json.dumps(error_response, indent=2))]

    def handle_error(self, e: Exception, operation: str, dn: str = "") -> List[Content]:
        """
        Log an LDAP or unexpected error and format it for MCP.

        Args:
            e: Exception that occurred
            operation: Operation that failed
            dn: Distinguished name (if applicable)

        Returns:
            List of MCP content objects with error information
        """
        error_msg = str(e)

        if isinstance(e, LDAPException):
            self.logger.error(f"LDAP error during {operation}: {error_msg}")
        else:
            self.logger.error(f"Unexpected error during {operation}: {error_msg}")

        if dn:
            log_ldap_operation(operation, dn, False, error_msg)

        error_response = {
            "success": False,
            "error": error_msg,
            "operation": operation,
            "type": type(e).__name__
        }

        if dn:
            error_response["dn"] = dn

        return [Content(type="text", text=json.dumps(error_response, indent=2))]

    def _scope_exists(self, ou_dn: Optional[str], label: str) -> bool:
        """
        Check an optional OU argument, logging a warning when it does not resolve.

        Args:
            ou_dn: OU distinguished name, or None for "no scope"
            label: Name of the argument for the log message

        Returns:
            True when no OU was given or the OU exists
        """
        if ou_dn is None:
            return True

        if self.directory.ou_exists(ou_dn):
            return True

        self.logger.warning(f"{label} not found: {ou_dn}")
        return False

    @abstractmethod
    def get_schema_info(self) -> Dict[str, Any]:
        """
        Get schema information for this tool's operations.

        Returns:
            Dictionary with schema information
        """
        pass
