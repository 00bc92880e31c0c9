"""Secrets Hub secret store, scan and sync policy operations."""
from __future__ import annotations
import logging
from typing import Iterable, Optional

from .client import CyberArkClient, Token
from .exceptions import CyberArkAPIError, CyberArkError
from .models import (
    PolicyExternalOutput,
    PolicyInput,
    SecretFilterOutput,
    SecretStoreInput,
    SecretStoreOutput,
    SecretStoresOutput,
    STORE_DATA_MODELS,
    SyncResponse,
)

logger = logging.getLogger(__name__)

SECRET_STORES_PATH = "/api/secret-stores"
POLICIES_PATH = "/api/policies"
SCAN_PATH = "/api/scan-definitions/secret-stores/default/scan"

STORE_STATE_ACTIONS = ("enable", "disable")


class SecretsHubService:
    """Secrets Hub REST operations.

    Every unexpected status raises CyberArkAPIError with the response body
    appended to the message.
    """

    def __init__(self, client: CyberArkClient):
        """Initialize Secrets Hub service.

        Args:
            client: Client bound to https://<domain>.secretshub.cyberark.cloud
        """
        self.client = client

    def _expect(self, resp, *codes: int) -> None:
        if resp.status_code not in codes:
            raise CyberArkAPIError.from_status(resp)

    # ─────────────────────────────────────────────────────────────────────
    # Secret stores
    # ─────────────────────────────────────────────────────────────────────
    def add_secret_store(self, store: SecretStoreInput) -> SecretStoreOutput:
        """Register a new secret store (AWS_ASM, AZURE_AKV or GCP_GSM).

        Raises:
            CyberArkAPIError: On any status other than 201
            CyberArkError: If the created store has no ID
        """
        resp = self.client.do_request("POST", SECRET_STORES_PATH, body=store.to_dict())
        self._expect(resp, 201)

        created = SecretStoreOutput.from_dict(resp.json())
        if not created.id:
            raise CyberArkError("failed to create secret store: missing ID in response")
        logger.info("Successfully created %s secret store [%s] - ID [%s]", created.type, created.name, created.id)
        return created

    def get_secret_store(self, store_id: str) -> SecretStoreOutput:
        resp = self.client.do_request("GET", f"{SECRET_STORES_PATH}/{store_id}")
        self._expect(resp, 200)
        return SecretStoreOutput.from_dict(resp.json())

    def list_secret_stores(self, store_type: str) -> SecretStoresOutput:
        """List the secret stores of one type.

        Raises:
            ValueError: If the store type is unknown
        """
        if store_type not in STORE_DATA_MODELS:
            raise ValueError(f"unknown secret store type {store_type!r}")
        resp = self.client.do_request(
            "GET",
            SECRET_STORES_PATH,
            params={"filter": f"type EQ {store_type}"},
        )
        self._expect(resp, 200)
        return SecretStoresOutput.from_dict(resp.json())

    def update_secret_store(self, store_id: str, store: SecretStoreInput) -> SecretStoreOutput:
        resp = self.client.do_request("PATCH", f"{SECRET_STORES_PATH}/{store_id}", body=store.to_dict())
        self._expect(resp, 200)
        updated = SecretStoreOutput.from_dict(resp.json())
        logger.info("Successfully updated secret store [%s] - ID [%s]", updated.name, store_id)
        return updated

    def delete_secret_store(self, store_id: str) -> None:
        resp = self.client.do_request("DELETE", f"{SECRET_STORES_PATH}/{store_id}")
        self._expect(resp, 204)
        logger.info("Successfully deleted secret store with ID [%s]", store_id)

    def set_secret_store_state(self, store_id: str, action: str) -> None:
        """Enable or disable a secret store.

        Raises:
            ValueError: If action is not "enable" or "disable"
        """
        if action not in STORE_STATE_ACTIONS:
            raise ValueError(f"invalid secret store state action {action!r}; expected enable or disable")
        resp = self.client.do_request(
            "PUT",
            f"{SECRET_STORES_PATH}/{store_id}/state",
            body={"action": action},
        )
        self._expect(resp, 204)
        logger.info("Secret store [%s] state set to [%s]", store_id, action)

    def trigger_scan(self, store_ids: Iterable[str]) -> None:
        """Ask Secrets Hub to rescan the given stores now."""
        ids = list(store_ids)
        if not ids:
            raise ValueError("at least one secret store ID is required to trigger a scan")
        resp = self.client.do_request(
            "POST",
            SCAN_PATH,
            body={"scope": {"secretStoresIds": ids}},
        )
        self._expect(resp, 200, 201, 202)
        logger.info("Triggered scan for secret stores %s", ", ".join(ids))

    def get_secret_filter(self, store_id: str, filter_id: str) -> SecretFilterOutput:
        resp = self.client.do_request("GET", f"{SECRET_STORES_PATH}/{store_id}/filters/{filter_id}")
        self._expect(resp, 200)
        return SecretFilterOutput.from_dict(resp.json())

    # ─────────────────────────────────────────────────────────────────────
    # Sync policies
    # ─────────────────────────────────────────────────────────────────────
    def add_sync_policy(self, policy: PolicyInput) -> PolicyExternalOutput:
        resp = self.client.do_request("POST", POLICIES_PATH, body=policy.to_dict())
        self._expect(resp, 201)
        created = PolicyExternalOutput.from_dict(resp.json())
        logger.info("Successfully created sync policy [%s] - ID [%s]", created.name, created.id)
        return created

    def get_sync_policy(self, policy_id: str) -> PolicyExternalOutput:
        resp = self.client.do_request(
            "GET",
            f"{POLICIES_PATH}/{policy_id}",
            params={"projection": "REGULAR"},
        )
        self._expect(resp, 200)
        return PolicyExternalOutput.from_dict(resp.json())

    def get_sync_policies(self) -> SyncResponse:
        resp = self.client.do_request("GET", POLICIES_PATH, params={"projection": "REGULAR"})
        self._expect(resp, 200)
        return SyncResponse.from_dict(resp.json())

    def update_sync_policy(self, policy_id: str, policy: PolicyInput) -> PolicyExternalOutput:
        """Replace a policy; Secrets Hub has no in-place update so this deletes and recreates.

        Raises:
            CyberArkError: If either the delete or the create fails
        """
        try:
            self.delete_sync_policy(policy_id)
        except CyberArkError as exc:
            raise CyberArkError(f"failed to delete existing policy during update: {exc}") from exc
        try:
            return self.add_sync_policy(policy)
        except CyberArkError as exc:
            raise CyberArkError(f"failed to create new policy during update: {exc}") from exc

    def delete_sync_policy(self, policy_id: str) -> None:
        """Disable, then delete a policy.

        An active policy cannot be deleted. A failed disable is logged and the
        delete is attempted anyway.
        """
        try:
            disable = self.client.do_request(
                "PUT",
                f"{POLICIES_PATH}/{policy_id}/state",
                body={"action": "disable"},
            )
        except CyberArkError as exc:
            logger.warning("Failed to disable policy before deletion: %s", exc)
        else:
            if disable.status_code != 200:
                logger.warning(
                    "Failed to disable policy, expected status code 200, got %s",
                    disable.status_code,
                )
            else:
                logger.info("Policy with ID %s disabled successfully before deletion", policy_id)

        resp = self.client.do_request("DELETE", f"{POLICIES_PATH}/{policy_id}")
        self._expect(resp, 200)
        logger.info("Successfully deleted sync policy with ID [%s]", policy_id)


def new_secrets_hub_api(base_url: str, auth_token: Optional[Token], log_response: bool = True) -> SecretsHubService:
    """Build a SecretsHubService; Secrets Hub always expects a Bearer token."""
    client = CyberArkClient(base_url, log_response=log_response, auth_token=auth_token)
    return SecretsHubService(client)
