"""Inactive account detection."""

from datetime import datetime
from typing import Any, Callable, Dict, List

from .base import BaseTool
from ..core.logging import log_ldap_operation
from ..core.models import (
    DirectoryUserRecord,
    InactiveUserSummary,
    InactivityCriteria,
    InactivityMode,
    OperationStatus,
    QueryResult,
)
from ..core.timestamps import format_timestamp

UNKNOWN_CREATED = "Unknown"
NEVER_LOGGED_IN = "Never Logged In"


def _never_logged_in(record: DirectoryUserRecord, cutoff: datetime) -> bool:
    # Accounts newer than the cutoff are new, not inactive
    return record.last_logon is None and record.created is not None and record.created < cutoff


def _last_logon_before(record: DirectoryUserRecord, cutoff: datetime) -> bool:
    return record.last_logon is not None and record.last_logon < cutoff


PREDICATES: Dict[InactivityMode, Callable[[DirectoryUserRecord, datetime], bool]] = {
    InactivityMode.NEVER_LOGGED_IN: _never_logged_in,
    InactivityMode.LAST_LOGON_BEFORE: _last_logon_before,
}


def is_inactive(record: DirectoryUserRecord, criteria: InactivityCriteria) -> bool:
    """Return True if an enabled account matches the criteria's inactivity rule."""
    if not record.enabled:
        return False
    return PREDICATES[criteria.mode](record, criteria.cutoff)


def summarize(record: DirectoryUserRecord) -> InactiveUserSummary:
    """Build the display row for an account."""
    return InactiveUserSummary(
        display_name=record.display_name,
        account_id=record.sam_account_name,
        created_display=format_timestamp(record.created, UNKNOWN_CREATED),
        last_logon_display=format_timestamp(record.last_logon, NEVER_LOGGED_IN),
    )


class InactivityQueryTool(BaseTool):
    """Find enabled accounts that have been inactive for too long."""

    def find_inactive_users(self, criteria: InactivityCriteria) -> QueryResult:
        """
        Find inactive users, validating the search scope first.

        Args:
            criteria: Inactivity criteria

        Returns:
            QueryResult with status SUCCESS, NO_MATCHES or SCOPE_NOT_FOUND
        """
        if not self._scope_exists(criteria.search_scope, "Search OU"):
            return QueryResult(
                status=OperationStatus.SCOPE_NOT_FOUND,
                message=f"Search OU not found: {criteria.search_scope}"
            )

        users = self.collect(criteria)
        if not users:
            return QueryResult(status=OperationStatus.NO_MATCHES, message=no_matches_message(criteria))

        return QueryResult(
            status=OperationStatus.SUCCESS,
            message=f"Found {len(users)} inactive users",
            users=users
        )

    def collect(self, criteria: InactivityCriteria) -> List[InactiveUserSummary]:
        """
        Evaluate enabled accounts against the criteria.

        The search scope is assumed to have been validated by the caller.

        Returns:
            Matching accounts in directory enumeration order
        """
        search_base = criteria.search_scope or self.directory.base_dn
        self.logger.info(
            f"Searching {search_base} for accounts inactive since {criteria.cutoff.isoformat()} "
            f"({criteria.mode.value})"
        )

        records = self.directory.find_enabled_users(criteria.search_scope)
        users = [summarize(record) for record in records if is_inactive(record, criteria)]

        if not users:
            self.logger.info(no_matches_message(criteria))

        log_ldap_operation("find_inactive_users", search_base, True,
                           f"{len(users)} of {len(records)} enabled users matched")
        return users

    def get_schema_info(self) -> Dict[str, Any]:
        """Get schema information for inactivity queries."""
        return {
            "operations": ["find_inactive_users"],
            "modes": [mode.value for mode in InactivityMode],
            "user_attributes": self.directory.user_attributes,
            "required_permissions": ["Read User Objects"]
        }


def no_matches_message(criteria: InactivityCriteria) -> str:
    if criteria.mode is InactivityMode.NEVER_LOGGED_IN:
        return f"No enabled users older than {criteria.days_inactive} days have never logged in"
    return f"No enabled users have been inactive for {criteria.days_inactive} days or more"
