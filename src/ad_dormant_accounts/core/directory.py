"""Directory operations needed to find and remediate dormant accounts."""

from typing import Any, Dict, List, Optional, Tuple

import ldap3
from ldap3 import MODIFY_DELETE, MODIFY_REPLACE
from ldap3.core.exceptions import (
    LDAPException,
    LDAPInvalidDnError,
    LDAPInvalidDNSyntaxResult,
    LDAPNoSuchObjectResult,
)
from ldap3.utils.dn import parse_dn

from .ldap_manager import LDAPManager
from .logging import get_logger, log_ldap_operation
from .models import DirectoryUserRecord
from .timestamps import parse_generalized_time, parse_logon_value

ACCOUNTDISABLE = 0x0002

# Matching rule OID for a bitwise AND on userAccountControl
ENABLED_USERS_FILTER = (
    "(&(objectCategory=person)(objectClass=user)"
    "(!(userAccountControl:1.2.840.113556.1.4.803:=2)))"
)


class AccountNotFoundError(LDAPException):
    """Raised when an account cannot be resolved by sAMAccountName."""


def escape_ldap_filter(value: str) -> str:
    """
    Escape special characters in LDAP filter values.

    Args:
        value: Value to escape

    Returns:
        Escaped value
    """
    # Backslash first so later escapes are not doubled
    escape_chars = [
        ('\\', r'\5c'),
        ('*', r'\2a'),
        ('(', r'\28'),
        (')', r'\29'),
        ('\x00', r'\00'),
    ]

    for char, escaped in escape_chars:
        value = value.replace(char, escaped)

    return value


def is_valid_dn(dn: Optional[str]) -> bool:
    """
    Validate Distinguished Name format.

    Args:
        dn: Distinguished name to validate

    Returns:
        True if valid, False otherwise
    """
    if not dn or not isinstance(dn, str):
        return False

    try:
        parse_dn(dn, strip=True)
    except LDAPInvalidDnError:
        return False

    return True


def _first(value: Any, default: Any = None) -> Any:
    if isinstance(value, (list, tuple)):
        return value[0] if value else default
    if value is None:
        return default
    return value


def _as_list(value: Any) -> List[Any]:
    if value is None or value == "":
        return []
    if isinstance(value, (list, tuple, set)):
        return list(value)
    return [value]


class DirectoryService:
    """
    Read and mutate user accounts through an ``LDAPManager``.

    Holds no state besides the manager and the name of the logon attribute.
    """

    def __init__(self, ldap_manager: LDAPManager, logon_attribute: str = "lastLogonTimestamp"):
        self.ldap = ldap_manager
        self.logon_attribute = logon_attribute
        self.logger = get_logger(self.__class__.__name__)

    @property
    def base_dn(self) -> str:
        return self.ldap.ad_config.base_dn

    @property
    def user_attributes(self) -> List[str]:
        return [
            'sAMAccountName', 'displayName', 'userAccountControl',
            'whenCreated', 'memberOf', self.logon_attribute
        ]

    def ou_exists(self, ou_dn: Optional[str]) -> bool:
        """
        Check that an organizational unit exists.

        Args:
            ou_dn: Distinguished name of the OU

        Returns:
            True if the DN resolves to an organizationalUnit object
        """
        if not is_valid_dn(ou_dn):
            log_ldap_operation("ou_exists", str(ou_dn), False, "Invalid DN format")
            return False

        try:
            results = self.ldap.search(
                search_base=ou_dn,
                search_filter="(objectClass=organizationalUnit)",
                attributes=['ou'],
                search_scope=ldap3.BASE
            )
        except (LDAPNoSuchObjectResult, LDAPInvalidDNSyntaxResult, LDAPInvalidDnError):
            log_ldap_operation("ou_exists", ou_dn, False, "OU not found")
            return False

        exists = bool(results)
        if not exists:
            log_ldap_operation("ou_exists", ou_dn, False, "Object is not an OU")
        return exists

    def find_enabled_users(self, search_base: Optional[str] = None) -> List[DirectoryUserRecord]:
        """
        List enabled user accounts.

        Args:
            search_base: OU to search in; the whole base DN when omitted

        Returns:
            Records in directory enumeration order
        """
        search_base = search_base or self.base_dn
        self.logger.info(f"Listing enabled users from {search_base}")

        results = self.ldap.search(
            search_base=search_base,
            search_filter=ENABLED_USERS_FILTER,
            attributes=self.user_attributes
        )

        users = [self._to_record(entry) for entry in results]
        log_ldap_operation("find_enabled_users", search_base, True, f"Found {len(users)} users")
        return users

    def find_user(self, account_id: str) -> DirectoryUserRecord:
        """
        Resolve an account by sAMAccountName.

        Raises:
            AccountNotFoundError: If no account matches
        """
        search_filter = f"(&(objectClass=user)(sAMAccountName={escape_ldap_filter(account_id)}))"
        results = self.ldap.search(
            search_base=self.base_dn,
            search_filter=search_filter,
            attributes=self.user_attributes
        )

        if not results:
            log_ldap_operation("find_user", account_id, False, "User not found")
            raise AccountNotFoundError(f"User '{account_id}' not found")

        return self._to_record(results[0])

    def disable_user(self, account_id: str) -> str:
        """
        Set the ACCOUNTDISABLE flag on an account, keeping its other flags.

        Returns:
            The account's distinguished name
        """
        user_dn, uac = self._resolve_account_control(account_id)

        self.logger.info(f"Disabling user: {account_id} ({user_dn})")
        self.ldap.modify(user_dn, {
            'userAccountControl': [(MODIFY_REPLACE, [uac | ACCOUNTDISABLE])]
        })

        log_ldap_operation("disable_user", user_dn, True, f"Disabled user: {account_id}")
        return user_dn

    def move_user(self, account_id: str, target_ou: str) -> str:
        """
        Re-resolve an account and move it under ``target_ou``.

        Returns:
            The account's distinguished name after the move
        """
        user = self.find_user(account_id)

        self.logger.info(f"Moving user {account_id} to {target_ou}")
        new_dn = self.ldap.move(user.distinguished_name, target_ou)

        log_ldap_operation("move_user", user.distinguished_name, True, f"Moved to {new_dn}")
        return new_dn

    def get_group_memberships(self, account_id: str) -> Tuple[str, List[str]]:
        """
        Read the current group memberships of an account.

        Returns:
            Tuple of the account DN and the DNs of its groups
        """
        user = self.find_user(account_id)
        return user.distinguished_name, sorted(user.group_memberships)

    def remove_from_group(self, group_dn: str, member_dn: str) -> None:
        """Remove ``member_dn`` from the ``member`` attribute of a group."""
        self.logger.debug(f"Removing member {member_dn} from group {group_dn}")
        self.ldap.modify(group_dn, {
            'member': [(MODIFY_DELETE, [member_dn])]
        })
        log_ldap_operation("remove_member", group_dn, True, f"Removed member {member_dn}")

    def _resolve_account_control(self, account_id: str) -> Tuple[str, int]:
        user_results = self.ldap.search(
            search_base=self.base_dn,
            search_filter=f"(&(objectClass=user)(sAMAccountName={escape_ldap_filter(account_id)}))",
            attributes=['userAccountControl']
        )

        if not user_results:
            log_ldap_operation("disable_user", account_id, False, "User not found")
            raise AccountNotFoundError(f"User '{account_id}' not found")

        entry = user_results[0]
        uac = int(_first(entry['attributes'].get('userAccountControl'), 0) or 0)
        return entry['dn'], uac

    def _to_record(self, entry: Dict[str, Any]) -> DirectoryUserRecord:
        attributes = entry['attributes']
        uac = int(_first(attributes.get('userAccountControl'), 0) or 0)

        return DirectoryUserRecord(
            distinguished_name=entry['dn'],
            sam_account_name=str(_first(attributes.get('sAMAccountName'), '')),
            display_name=str(_first(attributes.get('displayName'), '') or ''),
            enabled=not bool(uac & ACCOUNTDISABLE),
            created=parse_generalized_time(attributes.get('whenCreated')),
            last_logon=parse_logon_value(attributes.get(self.logon_attribute)),
            group_memberships=set(_as_list(attributes.get('memberOf')))
        )
