"""Shared fixtures for dormant account tests."""

import pytest
from unittest.mock import Mock
from datetime import datetime, timedelta, timezone

from ad_dormant_accounts.core.models import DirectoryUserRecord

NOW = datetime(2025, 6, 1, 9, 0, tzinfo=timezone.utc)
BASE_DN = "DC=test,DC=local"
TARGET_OU = "OU=Disabled Users,DC=test,DC=local"


def make_record(account_id, last_logon_days_ago=None, created_days_ago=400, enabled=True, groups=None):
    """Build a directory record relative to NOW."""
    return DirectoryUserRecord(
        distinguished_name=f"CN={account_id},OU=Users,{BASE_DN}",
        sam_account_name=account_id,
        display_name=account_id.title(),
        enabled=enabled,
        created=NOW - timedelta(days=created_days_ago) if created_days_ago is not None else None,
        last_logon=NOW - timedelta(days=last_logon_days_ago) if last_logon_days_ago is not None else None,
        group_memberships=set(groups or [])
    )


@pytest.fixture
def mock_directory():
    """Mock directory service where every OU exists and no users are returned."""
    directory = Mock()
    directory.base_dn = BASE_DN
    directory.user_attributes = ['sAMAccountName', 'displayName', 'lastLogonTimestamp']
    directory.ou_exists.return_value = True
    directory.find_enabled_users.return_value = []
    return directory
