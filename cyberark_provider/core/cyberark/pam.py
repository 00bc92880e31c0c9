"""Privilege Cloud / PVWA account, safe and safe member operations."""
from __future__ import annotations
import logging
from typing import Any, Dict, List, Optional

from .client import CyberArkClient, Token
from .exceptions import CyberArkAPIError, ResourceAlreadyExistsError
from .models import Credential, CredentialResponse, CredentialSearchResponse, Member, SafeData
from .permissions import member_for_level

logger = logging.getLogger(__name__)

ACCOUNTS_PATH = "/PasswordVault/API/Accounts"
ACCOUNTS_SEARCH_PATH = "/PasswordVault/api/accounts"
SAFES_PATH = "/PasswordVault/API/Safes"


def build_filter_query(search: str = "", filters: Optional[List[str]] = None) -> Dict[str, str]:
    """Build the query parameters for an account search.

    Filters are combined with " AND " into a single ``filter`` parameter.
    """
    query: Dict[str, str] = {}
    if filters:
        query["filter"] = " AND ".join(filters)
    if search:
        query["search"] = search
    return query


def _replace(path: str, value: Any) -> Dict[str, Any]:
    return {"op": "replace", "path": path, "value": value}


def generate_account_patch(
    existing: Optional[CredentialResponse],
    desired: Optional[Credential],
) -> List[Dict[str, Any]]:
    """Compute the JSON Patch operations that turn ``existing`` into ``desired``.

    Only the attributes PAM allows to change in place are compared: name,
    address, user name, platform, platform properties and the secret
    management flags. Unset desired values are left alone.

    Raises:
        ValueError: If either account is None
    """
    if existing is None or desired is None:
        raise ValueError("existing and desired accounts must not be None")

    patch: List[Dict[str, Any]] = []
    for attr, path in (
        ("name", "/name"),
        ("address", "/address"),
        ("user_name", "/userName"),
        ("platform_id", "/platformId"),
    ):
        want = getattr(desired, attr)
        have = getattr(existing, attr)
        if want is not None and have is not None and want != have:
            patch.append(_replace(path, want))

    props = desired.platform_account_properties
    if props is not None:
        if existing.platform_account_properties is None:
            patch.append({"op": "add", "path": "/platformAccountProperties", "value": props.to_dict()})
        elif existing.platform_account_properties != props:
            patch.append(_replace("/platformAccountProperties", props.to_dict()))

    wanted_mgmt = desired.secret_management
    if wanted_mgmt is not None:
        current_mgmt = existing.secret_management
        if wanted_mgmt.automatic_management_enabled is not None:
            current = current_mgmt.automatic_management_enabled if current_mgmt else None
            if current is None or current != wanted_mgmt.automatic_management_enabled:
                patch.append(_replace(
                    "/secretManagement/automaticManagementEnabled",
                    wanted_mgmt.automatic_management_enabled,
                ))
        if wanted_mgmt.manual_management_reason is not None:
            current = current_mgmt.manual_management_reason if current_mgmt else None
            if current is None or current != wanted_mgmt.manual_management_reason:
                patch.append(_replace(
                    "/secretManagement/manualManagementReason",
                    wanted_mgmt.manual_management_reason,
                ))

    return patch


class PAMService:
    """Accounts, safes and safe members on Privilege Cloud or a self-hosted PVWA.

    Usage:
        pam = PAMService(CyberArkClient(url, auth_token=token))
        account = pam.get_account("12_34")
    """

    def __init__(self, client: CyberArkClient):
        """Initialize PAM service.

        Args:
            client: Client bound to the Privilege Cloud or PVWA base URL
        """
        self.client = client

    # ─────────────────────────────────────────────────────────────────────
    # Accounts
    # ─────────────────────────────────────────────────────────────────────
    def add_account(self, credential: Credential) -> CredentialResponse:
        """Onboard a new account.

        Returns:
            Created account

        Raises:
            ResourceAlreadyExistsError: When PAM reports the account exists (409)
            CyberArkAPIError: On any other status than 201
        """
        resp = self.client.do_request("POST", ACCOUNTS_PATH, body=credential.to_dict())
        if resp.status_code == 409:
            raise ResourceAlreadyExistsError(
                f"account [{credential.name}] already exists in safe [{credential.safe_name}]"
            )
        if resp.status_code != 201:
            raise CyberArkAPIError.from_response(resp, "add account", 201)

        account = CredentialResponse.from_dict(resp.json())
        logger.info(
            "Successfully added new account [%s]: Name [%s] - ID [%s]",
            account.safe_name, account.name, account.id,
        )
        return account

    def get_account(self, account_id: str) -> CredentialResponse:
        resp = self.client.do_request("GET", f"{ACCOUNTS_PATH}/{account_id}")
        if resp.status_code != 200:
            raise CyberArkAPIError.from_response(resp, "get account", 200)
        return CredentialResponse.from_dict(resp.json())

    def filter_accounts(self, search: str = "", filters: Optional[List[str]] = None) -> CredentialSearchResponse:
        """Search accounts, e.g. ``filter_accounts(filters=["safeName eq Vault"])``."""
        resp = self.client.do_request(
            "GET",
            ACCOUNTS_SEARCH_PATH,
            params=build_filter_query(search, filters),
        )
        if resp.status_code != 200:
            raise CyberArkAPIError.from_response(resp, "filter accounts", 200)
        return CredentialSearchResponse.from_dict(resp.json())

    def update_account(self, account_id: str, credential: Credential) -> CredentialResponse:
        """Apply the differences between the stored account and ``credential``.

        The current account is fetched first; when nothing differs no PATCH
        is sent and the current account is returned.

        Raises:
            CyberArkAPIError: If the account cannot be read or the PATCH fails
        """
        existing = self.get_account(account_id)
        patch = generate_account_patch(existing, credential)
        if not patch:
            logger.info("No changes detected, skipping account update")
            return existing

        resp = self.client.do_request("PATCH", f"{ACCOUNTS_PATH}/{account_id}", body=patch)
        if resp.status_code != 200:
            raise CyberArkAPIError.from_response(resp, "update account", 200)

        account = CredentialResponse.from_dict(resp.json())
        logger.info(
            "Successfully updated account [%s]: Name [%s] - ID [%s]",
            account.safe_name, account.name, account.id,
        )
        return account

    def delete_account(self, account_id: str) -> None:
        resp = self.client.do_request("DELETE", f"{ACCOUNTS_PATH}/{account_id}")
        if resp.status_code != 204:
            raise CyberArkAPIError.from_response(resp, "delete account", 204)
        logger.info("Successfully deleted account with ID [%s]", account_id)

    # ─────────────────────────────────────────────────────────────────────
    # Safes
    # ─────────────────────────────────────────────────────────────────────
    def add_safe(self, safe: SafeData) -> Optional[SafeData]:
        """Create a safe.

        Returns:
            Created safe, or None when it already exists (409)
        """
        resp = self.client.do_request("POST", SAFES_PATH, body=safe.to_dict())
        if resp.status_code == 409:
            logger.info("Safe [%s] already exists.", safe.safe_name)
            return None
        if resp.status_code != 201:
            raise CyberArkAPIError.from_response(resp, "add safe", 201)

        created = SafeData.from_dict(resp.json())
        logger.info(
            "Successfully added new safe [%s] - ID [%s]",
            created.safe_name, created.safe_url_id,
        )
        return created

    def get_safe(self, safe_id: str) -> SafeData:
        resp = self.client.do_request("GET", f"{SAFES_PATH}/{safe_id}")
        if resp.status_code != 200:
            raise CyberArkAPIError.from_response(resp, "get safe", 200)
        return SafeData.from_dict(resp.json())

    def update_safe(self, safe_id: str, safe: SafeData) -> SafeData:
        resp = self.client.do_request("PUT", f"{SAFES_PATH}/{safe_id}", body=safe.to_dict())
        if resp.status_code != 200:
            raise CyberArkAPIError.from_response(resp, "update safe", 200)

        updated = SafeData.from_dict(resp.json())
        logger.info(
            "Successfully updated safe [%s] - ID [%s]",
            updated.safe_name, updated.safe_url_id,
        )
        return updated

    def delete_safe(self, safe_id: str) -> None:
        resp = self.client.do_request("DELETE", f"{SAFES_PATH}/{safe_id}")
        if resp.status_code != 204:
            raise CyberArkAPIError.from_response(resp, "delete safe", 204)
        logger.info("Successfully deleted safe with ID [%s]", safe_id)

    # ─────────────────────────────────────────────────────────────────────
    # Safe members
    # ─────────────────────────────────────────────────────────────────────
    def add_safe_member(self, safe: SafeData) -> Optional[Member]:
        """Add ``safe.member_name`` with the bundle named by ``safe.level``.

        Returns:
            Created member, or None when it is already a member (409)

        Raises:
            InvalidPermissionLevelError: If ``safe.level`` is unknown
            ValueError: If the member name or type is missing
            CyberArkAPIError: On any other status than 201
        """
        block = member_for_level(safe.level, safe.member_type, safe.member_name)
        logger.debug("Permission block for %s: %s", safe.member_name, block.to_dict())

        resp = self.client.do_request(
            "POST",
            f"{SAFES_PATH}/{safe.safe_name}/Members",
            body=block.to_dict(),
        )
        if resp.status_code == 409:
            logger.info("Safe [%s] already has member [%s].", safe.safe_name, safe.member_name)
            return None
        if resp.status_code != 201:
            raise CyberArkAPIError.from_response(resp, "add safe member", 201)

        logger.info("Successfully added member [%s] to safe [%s]", safe.member_name, safe.safe_name)
        return Member.from_dict(resp.json())

    def get_safe_member(self, safe: SafeData) -> Member:
        resp = self.client.do_request("GET", f"{SAFES_PATH}/{safe.safe_name}/Members/{safe.member_name}")
        if resp.status_code != 200:
            raise CyberArkAPIError.from_response(resp, "get safe member", 200)
        return Member.from_dict(resp.json())

    def update_safe_member(self, safe: SafeData) -> Member:
        """Replace the member's permissions with the bundle for ``safe.level``."""
        block = member_for_level(safe.level, safe.member_type, safe.member_name)
        logger.debug("Updated permission block for %s: %s", safe.member_name, block.to_dict())

        resp = self.client.do_request(
            "PUT",
            f"{SAFES_PATH}/{safe.safe_name}/Members/{safe.member_name}",
            body=block.to_dict(),
        )
        if resp.status_code != 200:
            raise CyberArkAPIError.from_response(resp, "update safe member", 200)

        logger.info(
            "Successfully updated member [%s] permissions in safe [%s]",
            safe.member_name, safe.safe_name,
        )
        return Member.from_dict(resp.json())

    def delete_safe_member(self, safe_name: str, member_name: str) -> None:
        """Remove a member; a member that is already gone (404) is not an error."""
        logger.debug("Attempting to delete member [%s] from safe [%s]", member_name, safe_name)
        resp = self.client.do_request("DELETE", f"{SAFES_PATH}/{safe_name}/Members/{member_name}")
        if resp.status_code == 404:
            logger.warning("Member [%s] not found in safe [%s]", member_name, safe_name)
            return
        if resp.status_code != 204:
            raise CyberArkAPIError.from_response(resp, "delete safe member", 204)
        logger.info("Successfully removed member [%s] from safe [%s]", member_name, safe_name)


def new_pam_api(
    base_url: str,
    auth_token: Optional[Token],
    with_bearer_token: bool = True,
    log_response: bool = True,
) -> PAMService:
    """Build a PAMService for a base URL and token."""
    client = CyberArkClient(
        base_url,
        log_response=log_response,
        auth_token=auth_token,
        with_bearer_token=with_bearer_token,
    )
    return PAMService(client)
