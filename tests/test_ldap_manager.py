"""Tests for LDAP manager."""

import pytest
from unittest.mock import Mock, patch

from ldap3.core.exceptions import LDAPException

from ad_dormant_accounts.core.ldap_manager import LDAPManager
from ad_dormant_accounts.config.models import ActiveDirectoryConfig, SecurityConfig, PerformanceConfig


@pytest.fixture
def ad_config():
    """Test Active Directory configuration."""
    return ActiveDirectoryConfig(
        server="ldap://test.local:389",
        domain="test.local",
        base_dn="DC=test,DC=local",
        bind_dn="CN=admin,DC=test,DC=local",
        password="password123"
    )


@pytest.fixture
def security_config():
    """Test security configuration."""
    return SecurityConfig()


@pytest.fixture
def performance_config():
    """Test performance configuration."""
    return PerformanceConfig()


@pytest.fixture
def ldap_manager(ad_config, security_config, performance_config):
    """Test LDAP manager instance."""
    with patch('ad_dormant_accounts.core.ldap_manager.Server'), \
         patch('ad_dormant_accounts.core.ldap_manager.Connection'):
        manager = LDAPManager(ad_config, security_config, performance_config)
        return manager


@pytest.fixture
def bound_connection(ldap_manager):
    """Mock bound connection installed on the manager."""
    connection = Mock()
    connection.bind.return_value = True
    connection.bound = True
    connection.result = {'result': 0, 'controls': {}}
    ldap_manager._connection = connection
    return connection


class TestLDAPManager:
    """Test LDAP manager functionality."""

    def test_initialization(self, ad_config, security_config, performance_config):
        """Test LDAP manager initialization."""
        with patch('ad_dormant_accounts.core.ldap_manager.Server') as mock_server:
            manager = LDAPManager(ad_config, security_config, performance_config)
            assert manager.ad_config == ad_config
            assert manager.security_config == security_config
            assert manager.performance_config == performance_config
            mock_server.assert_called()

    def test_server_pool_includes_additional_servers(self, security_config, performance_config):
        """Test that pool servers are configured after the primary."""
        config = ActiveDirectoryConfig(
            server="ldap://dc1.test.local:389",
            server_pool=["ldap://dc2.test.local:389"],
            domain="test.local",
            base_dn="DC=test,DC=local",
            bind_dn="CN=admin,DC=test,DC=local",
            password="password123"
        )
        with patch('ad_dormant_accounts.core.ldap_manager.Server') as mock_server:
            manager = LDAPManager(config, security_config, performance_config)

        assert mock_server.call_count == 2
        assert len(manager._server_pool) == 2

    @patch('ad_dormant_accounts.core.ldap_manager.Connection')
    def test_connect_success(self, mock_connection, ldap_manager):
        """Test successful LDAP connection."""
        mock_server_instance = Mock()
        mock_connection_instance = Mock()
        mock_connection_instance.bind.return_value = True
        mock_connection_instance.bound = True
        mock_connection.return_value = mock_connection_instance

        ldap_manager._server_pool = [mock_server_instance]

        connection = ldap_manager.connect()

        assert connection == mock_connection_instance
        assert ldap_manager._connection == mock_connection_instance
        mock_connection_instance.bind.assert_called_once()

    @patch('ad_dormant_accounts.core.ldap_manager.Connection')
    def test_connect_reuses_bound_connection(self, mock_connection, ldap_manager):
        """Test that a bound connection is returned without rebinding."""
        existing = Mock()
        existing.bound = True
        ldap_manager._connection = existing

        assert ldap_manager.connect() is existing
        mock_connection.assert_not_called()

    @patch('time.sleep')
    @patch('ad_dormant_accounts.core.ldap_manager.Connection')
    def test_connect_failure(self, mock_connection, mock_sleep, ldap_manager):
        """Test LDAP connection failure."""
        mock_connection_instance = Mock()
        mock_connection_instance.bind.return_value = False
        mock_connection.return_value = mock_connection_instance

        ldap_manager._server_pool = [Mock()]

        with pytest.raises(LDAPException):
            ldap_manager.connect()

    def test_disconnect(self, ldap_manager):
        """Test LDAP disconnection."""
        mock_connection = Mock()
        ldap_manager._connection = mock_connection

        ldap_manager.disconnect()

        mock_connection.unbind.assert_called_once()
        assert ldap_manager._connection is None

    def test_search(self, ldap_manager, bound_connection):
        """Test LDAP search operation."""
        bound_connection.search.return_value = True

        mock_entry = Mock()
        mock_entry.entry_dn = "CN=testuser,OU=Users,DC=test,DC=local"
        mock_entry.entry_attributes = ['sAMAccountName', 'displayName']
        mock_entry.sAMAccountName = Mock()
        mock_entry.sAMAccountName.value = "testuser"
        mock_entry.displayName = Mock()
        mock_entry.displayName.value = "Test User"

        bound_connection.entries = [mock_entry]

        results = ldap_manager.search(
            search_base="OU=Users,DC=test,DC=local",
            search_filter="(objectClass=user)"
        )

        assert len(results) == 1
        assert results[0]['dn'] == "CN=testuser,OU=Users,DC=test,DC=local"
        assert results[0]['attributes']['sAMAccountName'] == "testuser"
        assert results[0]['attributes']['displayName'] == "Test User"

        bound_connection.search.assert_called()

    def test_search_with_no_entries(self, ldap_manager, bound_connection):
        """Test that an empty result set is not treated as a failure."""
        bound_connection.search.return_value = False
        bound_connection.entries = []

        results = ldap_manager.search(
            search_base="DC=test,DC=local",
            search_filter="(sAMAccountName=nobody)"
        )

        assert results == []

    def test_search_failure(self, ldap_manager, bound_connection):
        """Test that a non-zero result code raises."""
        bound_connection.search.return_value = False
        bound_connection.entries = []
        bound_connection.result = {'result': 1, 'description': 'operationsError'}

        with pytest.raises(LDAPException, match="Search failed"):
            ldap_manager.search(search_base="DC=test,DC=local", search_filter="(objectClass=user)")

    def test_search_follows_paged_cookie(self, ldap_manager, bound_connection):
        """Test that paged searches continue until the cookie is empty."""
        first, second = Mock(), Mock()
        for entry, name in ((first, "a"), (second, "b")):
            entry.entry_dn = f"CN={name},DC=test,DC=local"
            entry.entry_attributes = []

        pages = iter([
            ([first], {'result': 0, 'controls': {'1.2.840.113556.1.4.319': {'value': {'cookie': b'next'}}}}),
            ([second], {'result': 0, 'controls': {}}),
        ])

        def search(**kwargs):
            entries, result = next(pages)
            bound_connection.entries = entries
            bound_connection.result = result
            return True

        bound_connection.search.side_effect = search

        results = ldap_manager.search(search_base="DC=test,DC=local", search_filter="(objectClass=user)")

        assert [r['dn'] for r in results] == ["CN=a,DC=test,DC=local", "CN=b,DC=test,DC=local"]
        assert bound_connection.search.call_args_list[1].kwargs['paged_cookie'] == b'next'

    def test_modify(self, ldap_manager, bound_connection):
        """Test LDAP modify operation."""
        bound_connection.modify.return_value = True

        dn = "CN=testuser,OU=Users,DC=test,DC=local"
        changes = {
            'userAccountControl': [('MODIFY_REPLACE', [514])]
        }

        result = ldap_manager.modify(dn, changes)

        assert result == True
        bound_connection.modify.assert_called_once_with(dn, changes)

    def test_modify_failure(self, ldap_manager, bound_connection):
        """Test LDAP modify failure."""
        bound_connection.modify.return_value = False

        with pytest.raises(LDAPException, match="Modify operation failed"):
            ldap_manager.modify("CN=testuser,DC=test,DC=local", {})

    def test_move(self, ldap_manager, bound_connection):
        """Test LDAP move keeps the RDN and returns the new DN."""
        bound_connection.modify_dn.return_value = True

        new_dn = ldap_manager.move(
            "CN=Test User,OU=Users,DC=test,DC=local",
            "OU=Disabled,DC=test,DC=local"
        )

        assert new_dn == "CN=Test User,OU=Disabled,DC=test,DC=local"
        bound_connection.modify_dn.assert_called_once_with(
            "CN=Test User,OU=Users,DC=test,DC=local",
            "CN=Test User",
            new_superior="OU=Disabled,DC=test,DC=local"
        )

    def test_move_failure(self, ldap_manager, bound_connection):
        """Test LDAP move failure."""
        bound_connection.modify_dn.return_value = False

        with pytest.raises(LDAPException, match="Move operation failed"):
            ldap_manager.move("CN=Test User,OU=Users,DC=test,DC=local", "OU=Disabled,DC=test,DC=local")

    def test_test_connection_success(self, ldap_manager):
        """Test connection test with success."""
        mock_connection = Mock()
        mock_connection.server.host = "test.local"
        mock_connection.server.port = 389
        mock_connection.server.ssl = False
        mock_connection.bound = True
        mock_connection.user = "CN=admin,DC=test,DC=local"
        mock_connection.search.return_value = True

        with patch.object(ldap_manager, 'connect', return_value=mock_connection):
            result = ldap_manager.test_connection()

        assert result['connected'] == True
        assert result['server'] == "test.local"
        assert result['port'] == 389
        assert result['search_test'] == True

    def test_test_connection_failure(self, ldap_manager):
        """Test connection test with failure."""
        with patch.object(ldap_manager, 'connect', side_effect=LDAPException("Connection failed")):
            result = ldap_manager.test_connection()

        assert result['connected'] == False
        assert "Connection failed" in result['error']

    def test_context_manager(self, ldap_manager):
        """Test LDAP manager as context manager."""
        with patch.object(ldap_manager, 'disconnect') as mock_disconnect:
            with ldap_manager:
                pass

            mock_disconnect.assert_called_once()


class TestLDAPManagerRetry:
    """Test LDAP manager retry functionality."""

    @patch('time.sleep')
    @patch('ad_dormant_accounts.core.ldap_manager.Connection')
    @patch('ad_dormant_accounts.core.ldap_manager.Server')
    def test_connection_retry(self, mock_server, mock_connection, mock_sleep,
                              ad_config, security_config, performance_config):
        """Test connection retry logic."""
        mock_server_instance = Mock()
        mock_server.return_value = mock_server_instance

        # First two attempts fail, third succeeds
        mock_connection_instance = Mock()
        mock_connection_instance.bind.side_effect = [False, False, True]
        mock_connection_instance.bound = True
        mock_connection.return_value = mock_connection_instance

        performance_config.max_retries = 3
        performance_config.retry_delay = 0.1

        manager = LDAPManager(ad_config, security_config, performance_config)
        manager._server_pool = [mock_server_instance]

        connection = manager.connect()

        assert connection == mock_connection_instance
        assert mock_connection_instance.bind.call_count == 3
        assert mock_sleep.call_count == 2
