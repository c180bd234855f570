"""
ad-dormant-accounts - find, report on and remediate inactive Active Directory users.

The package queries Active Directory over LDAP for enabled accounts that have
not logged in within a given number of days (or never logged in at all),
exports them to CSV, and can disable them and move them to a holding OU
after explicit confirmation.
"""

__version__ = "0.1.0"

from .core.models import InactivityCriteria, InactivityMode, OperationStatus
from .tools import InactivityQueryTool, RemediationTool, ReportExportTool

__all__ = [
    "InactivityCriteria",
    "InactivityMode",
    "OperationStatus",
    "InactivityQueryTool",
    "RemediationTool",
    "ReportExportTool",
]
