"""CSV export of inactive account reports."""

import csv
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, List, Sequence

from .base import BaseTool
from .inactivity import InactivityQueryTool, no_matches_message
from ..core.directory import DirectoryService
from ..core.models import ExportResult, InactiveUserSummary, InactivityCriteria, OperationStatus

CSV_FIELDNAMES = ["DisplayName", "SamAccountName", "Created", "LastLogon"]


def summary_rows(users: Sequence[InactiveUserSummary]) -> List[Dict[str, str]]:
    """Map summaries onto CSV rows keyed by ``CSV_FIELDNAMES``."""
    return [
        {
            "DisplayName": user.display_name,
            "SamAccountName": user.account_id,
            "Created": user.created_display,
            "LastLogon": user.last_logon_display,
        }
        for user in users
    ]


class ReportExportTool(BaseTool):
    """Write inactive account reports to CSV files."""

    def __init__(self, directory: DirectoryService, encoding: str = "utf-8"):
        """
        Initialize export tool.

        Args:
            directory: Directory service used for lookups
            encoding: Character encoding of written files
        """
        super().__init__(directory)
        self.encoding = encoding
        self.query = InactivityQueryTool(directory)

    def export_inactive_users(self, criteria: InactivityCriteria, output_path: str) -> ExportResult:
        """
        Export inactive users to a CSV file.

        No file is written when nothing matches. Write errors are reported
        in the result rather than raised.

        Args:
            criteria: Inactivity criteria
            output_path: Destination file path

        Returns:
            ExportResult describing what was written
        """
        destination = Path(output_path).expanduser()
        if not destination.parent.is_dir():
            self.logger.warning(f"Export directory does not exist: {destination.parent}")
            return ExportResult(
                status=OperationStatus.DESTINATION_INVALID,
                message=f"Export directory does not exist: {destination.parent}",
                path=str(destination)
            )

        if not self._scope_exists(criteria.search_scope, "Search OU"):
            return ExportResult(
                status=OperationStatus.SCOPE_NOT_FOUND,
                message=f"Search OU not found: {criteria.search_scope}"
            )

        users = self.query.collect(criteria)
        if not users:
            return ExportResult(status=OperationStatus.NO_MATCHES, message=no_matches_message(criteria))

        # Destination only changes once the whole file is written
        temp_path = None
        try:
            fd, temp_path = tempfile.mkstemp(dir=destination.parent, prefix=f".{destination.name}.", suffix=".tmp")
            os.close(fd)
            with open(temp_path, 'w', newline='', encoding=self.encoding) as file:
                writer = csv.DictWriter(file, fieldnames=CSV_FIELDNAMES)
                writer.writeheader()
                writer.writerows(summary_rows(users))
            os.replace(temp_path, destination)
        except (OSError, csv.Error, UnicodeError) as e:
            if temp_path:
                Path(temp_path).unlink(missing_ok=True)
            self.logger.error(f"Error writing CSV to {destination}: {e}")
            return ExportResult(
                status=OperationStatus.EXPORT_FAILED,
                message=f"Failed to export to {destination}: {e}",
                path=str(destination)
            )

        self.logger.info(f"Successfully wrote {len(users)} records to {destination}")
        return ExportResult(
            status=OperationStatus.SUCCESS,
            message=f"Exported {len(users)} inactive users to {destination}",
            path=str(destination),
            count=len(users)
        )

    def get_schema_info(self) -> Dict[str, Any]:
        """Get schema information for exports."""
        return {
            "operations": ["export_inactive_users"],
            "columns": CSV_FIELDNAMES,
            "encoding": self.encoding,
            "required_permissions": ["Read User Objects", "Write access to the export directory"]
        }
