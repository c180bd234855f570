"""Tools for dormant account operations."""

from .base import BaseTool
from .inactivity import InactivityQueryTool
from .remediation import RemediationTool
from .export import ReportExportTool

__all__ = [
    "BaseTool",
    "InactivityQueryTool",
    "RemediationTool",
    "ReportExportTool",
]
