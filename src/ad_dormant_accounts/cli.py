"""Command line interface for finding, exporting and remediating dormant accounts."""

import argparse
import json
import sys
from typing import List, Optional, Sequence

from ldap3.core.exceptions import LDAPException
from pydantic import ValidationError

from .config.loader import load_config, validate_config
from .core.directory import DirectoryService
from .core.ldap_manager import LDAPManager
from .core.logging import setup_logging
from .core.models import (
    MAX_DAYS_INACTIVE,
    MIN_DAYS_INACTIVE,
    InactiveUserSummary,
    InactivityCriteria,
    OperationStatus,
)
from .tools.export import ReportExportTool
from .tools.inactivity import InactivityQueryTool
from .tools.remediation import RemediationTool, candidate_lines, confirm_with

# Outcomes that are not failures
OK_STATUSES = {
    OperationStatus.SUCCESS,
    OperationStatus.NO_MATCHES,
    OperationStatus.CONFIRMATION_DECLINED,
}


def prompt_for_confirmation(candidates: Sequence[InactiveUserSummary]) -> str:
    """Show the candidates and read the operator's answer from stdin."""
    print(f"\nThe following {len(candidates)} accounts will be disabled and moved:\n")
    for line in candidate_lines(candidates):
        print(line)
    try:
        return input("\nProceed? (y/n): ")
    except EOFError:
        return ""


class DormantAccountsCommand:
    """Command runner for the dormant accounts CLI."""

    help = "Find, export and remediate inactive Active Directory accounts"

    def add_arguments(self, parser: argparse.ArgumentParser) -> None:
        """Add command line arguments."""
        parser.add_argument(
            '--config',
            type=str,
            help='Configuration file path (default: $AD_DORMANT_CONFIG)'
        )

        criteria = argparse.ArgumentParser(add_help=False)
        criteria.add_argument(
            '--days',
            type=int,
            default=90,
            help=f'Days without a logon ({MIN_DAYS_INACTIVE}-{MAX_DAYS_INACTIVE}, default: 90)'
        )
        criteria.add_argument(
            '--search-ou',
            type=str,
            default=None,
            help='OU DN to limit the search to (default: whole domain)'
        )
        criteria.add_argument(
            '--never-logged-in',
            action='store_true',
            help='Only match accounts that have never logged in'
        )

        subparsers = parser.add_subparsers(dest='command', required=True)

        subparsers.add_parser('query', parents=[criteria], help='List inactive users')

        export_parser = subparsers.add_parser('export', parents=[criteria], help='Export inactive users to CSV')
        export_parser.add_argument('--output', '-o', type=str, required=True, help='Destination CSV file')

        remediate_parser = subparsers.add_parser(
            'remediate', parents=[criteria], help='Disable inactive users and move them to an OU'
        )
        remediate_parser.add_argument(
            '--target-ou',
            type=str,
            default=None,
            help='OU DN to move disabled users to (default: remediation.default_target_ou)'
        )
        remediate_parser.add_argument(
            '--remove-groups',
            action='store_true',
            help='Also remove each user from all of its groups'
        )
        remediate_parser.add_argument(
            '--yes', '-y',
            action='store_true',
            help='Confirm without prompting'
        )

    def handle(self, **options) -> int:
        """Run the selected sub-command and return the process exit code."""
        try:
            criteria = InactivityCriteria(
                days_inactive=options['days'],
                search_scope=options.get('search_ou'),
                never_logged_in_only=options.get('never_logged_in', False)
            )
        except ValidationError:
            print(f"Days inactive must be between {MIN_DAYS_INACTIVE} and {MAX_DAYS_INACTIVE} "
                  f"(got {options['days']})")
            return 1

        try:
            config = load_config(options.get('config'))
        except (FileNotFoundError, ValueError, json.JSONDecodeError) as e:
            print(f"Configuration error: {e}")
            return 1

        validate_config(config)
        logger = setup_logging(config.logging)

        try:
            with LDAPManager(config.active_directory, config.security, config.performance) as ldap_manager:
                directory = DirectoryService(ldap_manager, config.remediation.logon_attribute)
                command = options['command']

                if command == 'query':
                    result = InactivityQueryTool(directory).find_inactive_users(criteria)
                    if result.users:
                        for line in candidate_lines(result.users):
                            print(line)

                elif command == 'export':
                    exporter = ReportExportTool(directory, config.remediation.export_encoding)
                    result = exporter.export_inactive_users(criteria, options['output'])

                else:
                    remediation = RemediationTool(directory, config.remediation.affirmative_responses)
                    if options.get('yes'):
                        confirm = confirm_with(True, remediation.affirmative_responses[0])
                    else:
                        confirm = prompt_for_confirmation
                    result = remediation.remediate_inactive_users(
                        criteria,
                        options.get('target_ou') or config.remediation.default_target_ou,
                        confirm,
                        remove_groups=options.get('remove_groups', False)
                    )
                    for outcome in result.outcomes:
                        print(outcome.message)

        except LDAPException as e:
            logger.error(f"Directory error: {e}")
            print(f"Directory error: {e}")
            return 1

        print(result.message)
        return 0 if result.status in OK_STATUSES else 1


def main(argv: Optional[List[str]] = None) -> int:
    """Parse arguments and run the CLI."""
    command = DormantAccountsCommand()
    parser = argparse.ArgumentParser(prog='ad-dormant-accounts', description=command.help)
    command.add_arguments(parser)

    args = parser.parse_args(argv)

    try:
        return command.handle(**vars(args))
    except KeyboardInterrupt:
        print("\nInterrupted")
        return 130


def run() -> None:
    """Console script entry point."""
    sys.exit(main())


if __name__ == "__main__":
    run()
