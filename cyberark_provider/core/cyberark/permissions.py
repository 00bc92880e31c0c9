"""Safe member permission bundles.

A permission level ("full", "read", "approver", "manager") maps to a fixed
set of Permission bits. The bundle is wrapped in a Member block ready to be
posted to /Safes/{name}/Members.
"""
from __future__ import annotations
from typing import Callable, Dict, Optional

from .exceptions import InvalidPermissionLevelError
from .models import Member, Permission

PERMISSION_LEVELS = ("full", "read", "approver", "manager")

_READ_BITS = {
    "use_accounts": True,
    "retrieve_accounts": True,
    "list_accounts": True,
}

_MANAGER_BITS = {
    **_READ_BITS,
    "manage_safe_members": True,
    "view_safe_members": True,
    "view_audit_log": True,
    "add_accounts": True,
    "update_account_content": True,
    "update_account_properties": True,
    "rename_accounts": True,
    "delete_accounts": True,
    "unlock_accounts": True,
    "initiate_cpm_account_management_operations": True,
    "specify_next_account_content": True,
    "access_without_confirmation": True,
}

_FULL_BITS = {
    **_MANAGER_BITS,
    "manage_safe": True,
    "backup_safe": True,
    "create_folders": True,
    "delete_folders": True,
    "move_accounts_and_folders": True,
    "requests_authorization_level1": True,
}


def _member(member_type: Optional[str], member: Optional[str], bits: Dict[str, bool]) -> Member:
    if member is None or member_type is None:
        raise ValueError("either member or member type is missing")
    return Member(member_name=member, member_type=member_type, permissions=Permission(**bits))


def full_admin(member_type: Optional[str], member: Optional[str]) -> Member:
    """Every permission except second-level request authorization."""
    return _member(member_type, member, _FULL_BITS)


def read_only(member_type: Optional[str], member: Optional[str]) -> Member:
    """Use, retrieve and list accounts."""
    return _member(member_type, member, _READ_BITS)


def approver(member_type: Optional[str], member: Optional[str]) -> Member:
    """Read-only plus viewing and managing safe members."""
    return _member(member_type, member, {
        **_READ_BITS,
        "view_safe_members": True,
        "manage_safe_members": True,
    })


def manager(member_type: Optional[str], member: Optional[str]) -> Member:
    """Account lifecycle and member management, without safe administration."""
    return _member(member_type, member, _MANAGER_BITS)


def conjur_sync() -> Member:
    """Fixed block for the Conjur synchronizer component user."""
    return _member("User", "ConjurSync", {
        **_READ_BITS,
        "access_without_confirmation": True,
    })


def secrets_hub() -> Member:
    """Fixed block for the Secrets Hub component user."""
    return _member("User", "SecretsHub", {
        "view_safe_members": True,
        "retrieve_accounts": True,
        "list_accounts": True,
        "access_without_confirmation": True,
    })


_BUNDLES: Dict[str, Callable[[Optional[str], Optional[str]], Member]] = {
    "full": full_admin,
    "read": read_only,
    "approver": approver,
    "manager": manager,
}


def member_for_level(level: Optional[str], member_type: Optional[str], member: Optional[str]) -> Member:
    """Return the Member block for a named permission level.

    Args:
        level: One of PERMISSION_LEVELS
        member_type: "User", "Group" or "Role"
        member: Member name

    Returns:
        Member block with the bundled permissions

    Raises:
        InvalidPermissionLevelError: If the level is unknown
        ValueError: If the member or member type is missing
    """
    bundle = _BUNDLES.get(level or "")
    if bundle is None:
        raise InvalidPermissionLevelError(
            f"invalid permission level {level!r}; expected one of {', '.join(PERMISSION_LEVELS)}"
        )
    return bundle(member_type, member)
