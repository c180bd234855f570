"""Data models for inactivity queries and remediation results."""

from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import List, Literal, Optional, Set, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

MIN_DAYS_INACTIVE = 1
MAX_DAYS_INACTIVE = 3650


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class InactivityMode(str, Enum):
    """Which inactivity rule a query applies."""

    NEVER_LOGGED_IN = "never_logged_in"
    LAST_LOGON_BEFORE = "last_logon_before"


class OperationStatus(str, Enum):
    """Outcome vocabulary shared by query, export and remediation."""

    SUCCESS = "success"
    NO_MATCHES = "no_matches"
    INVALID_CRITERIA = "invalid_criteria"
    SCOPE_NOT_FOUND = "scope_not_found"
    TARGET_NOT_FOUND = "target_not_found"
    DESTINATION_INVALID = "destination_invalid"
    CONFIRMATION_DECLINED = "confirmation_declined"
    PARTIAL_FAILURE = "partial_failure"
    EXPORT_FAILED = "export_failed"


class InactivityCriteria(BaseModel):
    """
    Immutable description of which accounts count as inactive.

    ``cutoff`` is ``evaluated_at`` minus ``days_inactive`` days. Accounts are
    compared against it with a strict "before".
    """

    model_config = ConfigDict(frozen=True)

    days_inactive: int = Field(..., ge=MIN_DAYS_INACTIVE, le=MAX_DAYS_INACTIVE,
                               description="Days without a logon before an account is inactive")
    search_scope: Optional[str] = Field(default=None, description="OU DN to limit the search to")
    never_logged_in_only: bool = Field(default=False, description="Only report accounts that never logged in")
    evaluated_at: datetime = Field(default_factory=_utcnow, description="Reference instant for the cutoff")

    @field_validator('search_scope')
    @classmethod
    def normalize_search_scope(cls, v):
        """Treat blank scopes as no scope."""
        if v is None:
            return None
        v = v.strip()
        return v or None

    @field_validator('evaluated_at')
    @classmethod
    def ensure_aware(cls, v):
        """Naive reference times are taken as UTC."""
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    @property
    def mode(self) -> InactivityMode:
        if self.never_logged_in_only:
            return InactivityMode.NEVER_LOGGED_IN
        return InactivityMode.LAST_LOGON_BEFORE

    @property
    def cutoff(self) -> datetime:
        return self.evaluated_at - timedelta(days=self.days_inactive)


class DirectoryUserRecord(BaseModel):
    """A user account as read from the directory."""

    distinguished_name: str
    sam_account_name: str
    display_name: str = ""
    enabled: bool = True
    created: Optional[datetime] = None
    last_logon: Optional[datetime] = None
    group_memberships: Set[str] = Field(default_factory=set)


class InactiveUserSummary(BaseModel):
    """Display-ready row describing one inactive account."""

    display_name: str
    account_id: str
    created_display: str
    last_logon_display: str


class RemediationOutcome(BaseModel):
    """What happened to one account during remediation."""

    account_id: str
    disabled: bool = False
    moved: bool = False
    groups_removed: Union[int, Literal["skipped"]] = "skipped"
    error_detail: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.error_detail is None

    @property
    def message(self) -> str:
        if self.error_detail is not None:
            return f"Error processing {self.account_id}: {self.error_detail}"
        if self.groups_removed == "skipped":
            return f"Disabled and moved {self.account_id}"
        if self.groups_removed == 0:
            return f"Disabled and moved {self.account_id}; account had no groups"
        return f"Disabled and moved {self.account_id}; removed from all groups ({self.groups_removed})"


class QueryResult(BaseModel):
    """Result of an inactivity query."""

    status: OperationStatus
    message: str
    users: List[InactiveUserSummary] = Field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.users)


class RemediationResult(BaseModel):
    """Result of a remediation run."""

    status: OperationStatus
    message: str
    outcomes: List[RemediationOutcome] = Field(default_factory=list)


class ExportResult(BaseModel):
    """Result of a CSV export."""

    status: OperationStatus
    message: str
    path: Optional[str] = None
    count: int = 0
