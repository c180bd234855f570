"""
MCP server for dormant Active Directory account auditing.

This module wires configuration, logging and the LDAP connection to an MCP
server exposing:
- Inactive user queries (by last logon, or never logged in)
- CSV export of inactive user reports
- Disable-and-move remediation of inactive users
- Connection diagnostics
"""

import json
import os
import sys
import signal
from typing import Optional, Annotated

from ldap3.core.exceptions import LDAPException
from mcp.server.fastmcp import FastMCP
from mcp.types import TextContent as Content
from pydantic import Field, ValidationError

from .config.loader import CONFIG_ENV_VAR, load_config, validate_config
from .core.directory import DirectoryService
from .core.logging import setup_logging
from .core.ldap_manager import LDAPManager
from .core.models import InactivityCriteria, OperationStatus
from .tools.export import ReportExportTool
from .tools.inactivity import InactivityQueryTool
from .tools.remediation import RemediationTool, confirm_with


class DormantAccountsMCPServer:
    """Main server class for dormant account auditing."""

    def __init__(self, config_path: Optional[str] = None):
        """
        Initialize the server.

        Args:
            config_path: Path to configuration file
        """
        self.config = load_config(config_path)
        validate_config(self.config)

        self.logger = setup_logging(self.config.logging)

        self.ldap_manager = LDAPManager(
            self.config.active_directory,
            self.config.security,
            self.config.performance
        )

        self._test_initial_connection()

        self.directory = DirectoryService(self.ldap_manager, self.config.remediation.logon_attribute)
        self.query_tools = InactivityQueryTool(self.directory)
        self.export_tools = ReportExportTool(self.directory, self.config.remediation.export_encoding)
        self.remediation_tools = RemediationTool(self.directory, self.config.remediation.affirmative_responses)

        self.mcp = FastMCP("DormantAccountsMCP")
        self._setup_tools()

    def _test_initial_connection(self) -> None:
        """Test initial LDAP connection."""
        self.logger.info("Testing initial LDAP connection...")
        connection_info = self.ldap_manager.test_connection()

        if connection_info.get('connected'):
            self.logger.info(f"Successfully connected to {connection_info.get('server')}:{connection_info.get('port')}")
            if not connection_info.get('search_test'):
                self.logger.warning("LDAP search test failed")
        else:
            self.logger.error(f"Initial connection failed: {connection_info.get('error')}")

    def _build_criteria(self, days: int, search_ou: Optional[str], never_logged_in: bool):
        """Return criteria, or an MCP error payload when the input is invalid."""
        try:
            return InactivityCriteria(
                days_inactive=days,
                search_scope=search_ou,
                never_logged_in_only=never_logged_in
            ), None
        except ValidationError as e:
            self.logger.warning(f"Invalid inactivity criteria: {e}")
            return None, [Content(type="text", text=json.dumps({
                "status": OperationStatus.INVALID_CRITERIA.value,
                "message": f"Days inactive must be between 1 and 3650 (got {days})"
            }, indent=2))]

    def _setup_tools(self) -> None:
        """Register MCP tools with the server."""

        @self.mcp.tool(description="Find enabled users who have not logged in for a number of days")
        def find_inactive_users(
            days: Annotated[int, Field(description="Days without a logon (1-3650)", default=90)] = 90,
            search_ou: Annotated[Optional[str], Field(description="OU DN to limit the search to", default=None)] = None,
            never_logged_in: Annotated[bool, Field(description="Only users that never logged in", default=False)] = False
        ):
            criteria, error = self._build_criteria(days, search_ou, never_logged_in)
            if error:
                return error
            try:
                result = self.query_tools.find_inactive_users(criteria)
                return self.query_tools.format_response(result, "find_inactive_users")
            except LDAPException as e:
                return self.query_tools.handle_error(e, "find_inactive_users", search_ou or "")

        @self.mcp.tool(description="Export inactive users to a CSV file")
        def export_inactive_users(
            output_path: Annotated[str, Field(description="Destination CSV file path")],
            days: Annotated[int, Field(description="Days without a logon (1-3650)", default=90)] = 90,
            search_ou: Annotated[Optional[str], Field(description="OU DN to limit the search to", default=None)] = None,
            never_logged_in: Annotated[bool, Field(description="Only users that never logged in", default=False)] = False
        ):
            criteria, error = self._build_criteria(days, search_ou, never_logged_in)
            if error:
                return error
            try:
                result = self.export_tools.export_inactive_users(criteria, output_path)
                return self.export_tools.format_response(result, "export_inactive_users")
            except LDAPException as e:
                return self.export_tools.handle_error(e, "export_inactive_users", search_ou or "")

        @self.mcp.tool(description="Disable inactive users and move them to a target OU")
        def remediate_inactive_users(
            confirm: Annotated[bool, Field(description="Must be true to apply changes")],
            target_ou: Annotated[Optional[str], Field(description="OU DN to move disabled users to", default=None)] = None,
            days: Annotated[int, Field(description="Days without a logon (1-3650)", default=90)] = 90,
            search_ou: Annotated[Optional[str], Field(description="OU DN to limit the search to", default=None)] = None,
            never_logged_in: Annotated[bool, Field(description="Only users that never logged in", default=False)] = False,
            remove_groups: Annotated[bool, Field(description="Also remove users from all groups", default=False)] = False
        ):
            criteria, error = self._build_criteria(days, search_ou, never_logged_in)
            if error:
                return error
            target_ou = target_ou or self.config.remediation.default_target_ou
            gate = confirm_with(confirm, self.remediation_tools.affirmative_responses[0])
            try:
                result = self.remediation_tools.remediate_inactive_users(
                    criteria, target_ou, gate, remove_groups=remove_groups
                )
                return self.remediation_tools.format_response(result, "remediate_inactive_users")
            except LDAPException as e:
                return self.remediation_tools.handle_error(e, "remediate_inactive_users", target_ou or "")

        @self.mcp.tool(description="Test LDAP connection and get server information")
        def test_connection():
            connection_info = self.ldap_manager.test_connection()
            return [Content(type="text", text=json.dumps(connection_info, indent=2))]

        @self.mcp.tool(description="Health check for the dormant accounts MCP server")
        def health():
            health_info = {
                "status": "ok",
                "server": "DormantAccountsMCP",
                "ldap_connection": "unknown"
            }

            connection_info = self.ldap_manager.test_connection()
            health_info["ldap_connection"] = "connected" if connection_info.get('connected') else "disconnected"
            health_info["ldap_server"] = connection_info.get('server', 'unknown')
            if not connection_info.get('connected'):
                health_info["status"] = "degraded"
                health_info["ldap_error"] = connection_info.get('error')

            return [Content(type="text", text=json.dumps(health_info, indent=2))]

        @self.mcp.tool(description="Get schema information for all available tools")
        def get_schema_info():
            schema_info = {
                "server": "DormantAccountsMCP",
                "tools": {
                    "query_tools": self.query_tools.get_schema_info(),
                    "export_tools": self.export_tools.get_schema_info(),
                    "remediation_tools": self.remediation_tools.get_schema_info()
                }
            }
            return [Content(type="text", text=json.dumps(schema_info, indent=2))]

    def start(self) -> None:
        """
        Start the MCP server on stdio.

        Runs until terminated by a signal or fatal error.
        """
        import anyio

        def signal_handler(signum, frame):
            self.logger.info("Received signal to shutdown...")
            self.ldap_manager.disconnect()
            sys.exit(0)

        signal.signal(signal.SIGINT, signal_handler)
        signal.signal(signal.SIGTERM, signal_handler)

        try:
            self.logger.info("Starting dormant accounts MCP server...")
            self.logger.info(f"Connected to: {self.config.active_directory.server}")
            self.logger.info(f"Base DN: {self.config.active_directory.base_dn}")

            anyio.run(self.mcp.run_stdio_async)

        except Exception as e:
            self.logger.error(f"Server error: {e}")
            self.ldap_manager.disconnect()
            sys.exit(1)


def main():
    """Main entry point for the server."""
    config_path = os.getenv(CONFIG_ENV_VAR)
    if not config_path:
        print(f"{CONFIG_ENV_VAR} environment variable must be set")
        sys.exit(1)

    try:
        server = DormantAccountsMCPServer(config_path)
        server.start()
    except KeyboardInterrupt:
        print("\nShutting down gracefully...")
        sys.exit(0)
    except Exception as e:
        print(f"Error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
