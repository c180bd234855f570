"""Disable and relocate inactive accounts."""

from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Union

from .base import BaseTool
from .inactivity import InactivityQueryTool, no_matches_message
from ..core.directory import DirectoryService
from ..core.models import (
    InactiveUserSummary,
    InactivityCriteria,
    OperationStatus,
    RemediationOutcome,
    RemediationResult,
)

# Receives the candidates, returns the operator's answer
ConfirmCallback = Callable[[Sequence[InactiveUserSummary]], Optional[str]]

DEFAULT_AFFIRMATIVE_RESPONSES = ("y", "yes")


def is_affirmative(response: Optional[str], allowed: Iterable[str] = DEFAULT_AFFIRMATIVE_RESPONSES) -> bool:
    """Case-insensitive match of a response against the allowed tokens."""
    if response is None:
        return False
    return response.strip().lower() in {token.lower() for token in allowed}


class RemediationTool(BaseTool):
    """Disable inactive accounts and move them to a holding OU."""

    def __init__(self, directory: DirectoryService,
                 affirmative_responses: Iterable[str] = DEFAULT_AFFIRMATIVE_RESPONSES):
        """
        Initialize remediation tool.

        Args:
            directory: Directory service used for lookups and mutations
            affirmative_responses: Answers that confirm a batch
        """
        super().__init__(directory)
        self.affirmative_responses = tuple(affirmative_responses)
        self.query = InactivityQueryTool(directory)

    def remediate_inactive_users(self, criteria: InactivityCriteria, target_ou: Optional[str],
                                 confirm: ConfirmCallback,
                                 remove_groups: bool = False) -> RemediationResult:
        """
        Disable and move every account matching the criteria.

        Nothing is changed unless ``confirm`` returns an affirmative answer.
        A failure on one account is recorded and the batch continues.

        Args:
            criteria: Inactivity criteria
            target_ou: OU that disabled accounts are moved to
            confirm: Confirmation gate shown the candidate accounts
            remove_groups: Also strip every group membership

        Returns:
            RemediationResult with one outcome per processed account
        """
        if not target_ou or not self._scope_exists(target_ou, "Target OU"):
            return RemediationResult(
                status=OperationStatus.TARGET_NOT_FOUND,
                message=f"Target OU not found: {target_ou}"
            )

        if not self._scope_exists(criteria.search_scope, "Search OU"):
            return RemediationResult(
                status=OperationStatus.SCOPE_NOT_FOUND,
                message=f"Search OU not found: {criteria.search_scope}"
            )

        candidates = self.query.collect(criteria)
        if not candidates:
            return RemediationResult(status=OperationStatus.NO_MATCHES, message=no_matches_message(criteria))

        response = confirm(candidates)
        if not is_affirmative(response, self.affirmative_responses):
            self.logger.info(f"Remediation of {len(candidates)} accounts declined; no changes made")
            return RemediationResult(
                status=OperationStatus.CONFIRMATION_DECLINED,
                message="Operation cancelled; no accounts were changed"
            )

        self.logger.info(f"Remediating {len(candidates)} accounts into {target_ou}")
        outcomes = [self._remediate_account(user.account_id, target_ou, remove_groups)
                    for user in candidates]

        failures = [outcome for outcome in outcomes if not outcome.succeeded]
        if failures:
            return RemediationResult(
                status=OperationStatus.PARTIAL_FAILURE,
                message=f"Processed {len(outcomes)} accounts with {len(failures)} errors",
                outcomes=outcomes
            )

        return RemediationResult(
            status=OperationStatus.SUCCESS,
            message=f"Disabled and moved {len(outcomes)} accounts to {target_ou}",
            outcomes=outcomes
        )

    def _remediate_account(self, account_id: str, target_ou: str, remove_groups: bool) -> RemediationOutcome:
        outcome = RemediationOutcome(account_id=account_id)

        try:
            self.directory.disable_user(account_id)
            outcome.disabled = True

            self.directory.move_user(account_id, target_ou)
            outcome.moved = True
        except Exception as e:
            outcome.error_detail = str(e) or type(e).__name__
            self.logger.error(f"Error processing {account_id}: {outcome.error_detail}")
            return outcome

        if remove_groups:
            outcome.groups_removed = self._strip_groups(account_id)

        self.logger.info(outcome.message)
        return outcome

    def _strip_groups(self, account_id: str) -> Union[int, str]:
        """Remove an account from all of its groups; returns how many it belonged to."""
        try:
            member_dn, groups = self.directory.get_group_memberships(account_id)
        except Exception as e:
            self.logger.warning(f"Could not read group memberships for {account_id}: {e}")
            return "skipped"

        for group_dn in groups:
            try:
                self.directory.remove_from_group(group_dn, member_dn)
            except Exception as e:
                self.logger.warning(f"Failed to remove {account_id} from {group_dn}: {e}")

        return len(groups)

    def get_schema_info(self) -> Dict[str, Any]:
        """Get schema information for remediation."""
        return {
            "operations": ["remediate_inactive_users"],
            "affirmative_responses": list(self.affirmative_responses),
            "steps": ["disable", "move", "remove_groups (optional)"],
            "required_permissions": [
                "Enable/Disable User Account", "Move User Objects", "Modify Group Membership"
            ]
        }


def confirm_with(answer: bool, token: str = "yes") -> ConfirmCallback:
    """Build a non-interactive confirmation gate that always gives the same answer."""
    def _confirm(candidates: Sequence[InactiveUserSummary]) -> str:
        return token if answer else ""
    return _confirm


def candidate_lines(candidates: Sequence[InactiveUserSummary]) -> List[str]:
    """Format candidates as aligned text rows for an operator prompt."""
    header = ("DisplayName", "SamAccountName", "Created", "LastLogon")
    rows = [header] + [
        (user.display_name, user.account_id, user.created_display, user.last_logon_display)
        for user in candidates
    ]
    widths = [max(len(row[i]) for row in rows) for i in range(len(header))]
    return ["  ".join(value.ljust(width) for value, width in zip(row, widths)).rstrip() for row in rows]
