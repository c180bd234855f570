"""Integration tests for the dormant accounts MCP server."""

import pytest
import json
import tempfile
import os
from unittest.mock import patch

from ad_dormant_accounts.core.models import OperationStatus
from ad_dormant_accounts.server import DormantAccountsMCPServer


@pytest.fixture
def test_config():
    """Test configuration data."""
    return {
        "active_directory": {
            "server": "ldap://test.local:389",
            "domain": "test.local",
            "base_dn": "DC=test,DC=local",
            "bind_dn": "CN=admin,DC=test,DC=local",
            "password": "password123"
        },
        "remediation": {
            "default_target_ou": "OU=Disabled Users,DC=test,DC=local",
            "affirmative_responses": ["proceed"],
            "logon_attribute": "lastLogon",
            "export_encoding": "utf-8-sig"
        }
    }


@pytest.fixture
def config_file(test_config):
    """Temporary config file for testing."""
    with tempfile.NamedTemporaryFile(mode='w', suffix='.json', delete=False) as f:
        json.dump(test_config, f)
        config_path = f.name

    yield config_path

    os.unlink(config_path)


@pytest.fixture
def server(config_file):
    """Server instance with the initial connection test mocked."""
    with patch('ad_dormant_accounts.core.ldap_manager.LDAPManager.test_connection') as mock_test_connection:
        mock_test_connection.return_value = {'connected': True, 'server': 'test.local', 'search_test': True}
        yield DormantAccountsMCPServer(config_file)


class TestServerIntegration:
    """Integration tests for the main server."""

    def test_server_initialization(self, server):
        """Test server initialization with config file."""
        assert server.config is not None
        assert server.ldap_manager is not None
        assert server.query_tools is not None
        assert server.export_tools is not None
        assert server.remediation_tools is not None
        assert server.mcp is not None

    def test_remediation_settings_are_applied(self, server):
        """Test that remediation settings flow into the tools."""
        assert server.directory.logon_attribute == "lastLogon"
        assert server.remediation_tools.affirmative_responses == ("proceed",)
        assert server.export_tools.encoding == "utf-8-sig"

    def test_tools_share_one_directory(self, server):
        """Test that every tool uses the same directory service."""
        assert server.query_tools.directory is server.directory
        assert server.export_tools.query.directory is server.directory
        assert server.remediation_tools.query.directory is server.directory

    def test_build_criteria(self, server):
        """Test criteria construction for tool calls."""
        criteria, error = server._build_criteria(30, "  ", True)

        assert error is None
        assert criteria.days_inactive == 30
        assert criteria.search_scope is None
        assert criteria.never_logged_in_only is True

    def test_build_criteria_rejects_bad_days(self, server):
        """Test that invalid day counts produce an error payload."""
        criteria, error = server._build_criteria(0, None, False)

        assert criteria is None
        payload = json.loads(error[0].text)
        assert payload["status"] == OperationStatus.INVALID_CRITERIA.value

    def test_format_response(self, server):
        """Test that result models are serialized for MCP."""
        from ad_dormant_accounts.core.models import QueryResult

        content = server.query_tools.format_response(
            QueryResult(status=OperationStatus.NO_MATCHES, message="nothing"), "find_inactive_users"
        )

        payload = json.loads(content[0].text)
        assert payload == {"status": "no_matches", "message": "nothing", "users": []}

    def test_handle_error(self, server):
        """Test LDAP error payloads."""
        from ldap3.core.exceptions import LDAPException

        content = server.query_tools.handle_error(LDAPException("boom"), "find_inactive_users")

        payload = json.loads(content[0].text)
        assert payload["success"] is False
        assert payload["type"] == "LDAPException"

    def test_registered_tools(self, server):
        """Test the MCP tool surface."""
        import anyio

        tools = anyio.run(server.mcp.list_tools)

        assert {tool.name for tool in tools} == {
            "find_inactive_users",
            "export_inactive_users",
            "remediate_inactive_users",
            "test_connection",
            "health",
            "get_schema_info",
        }
