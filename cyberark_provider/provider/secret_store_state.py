"""Secret store state and on-demand scan resources.

Neither resource maps onto an object Secrets Hub can read back, so Read
keeps the prior state and Delete only forgets it.
"""
from __future__ import annotations
import logging
from typing import Optional

from ..core.cyberark import STORE_STATE_ACTIONS, CyberArkError
from .diagnostics import Diagnostics
from .resource import Resource, State, now_rfc3339
from .schema import LIST, Attribute, Schema

logger = logging.getLogger(__name__)


class SecretStoreStateResource(Resource):
    """Enables or disables an existing secret store."""

    type_name = "secret_store_state"

    def schema(self) -> Schema:
        return Schema(
            description="Enable or disable a secret store in Secrets Hub.",
            attributes={
                "store_id": Attribute(required=True, description="ID of an existing secret store."),
                "action": Attribute(required=True, description="`enable` or `disable`."),
                "last_updated": Attribute(computed=True),
            },
        )

    def validate_config(self, config: State, diags: Diagnostics) -> None:
        action = config.get("action")
        if action is not None and action not in STORE_STATE_ACTIONS:
            diags.add_error("Invalid Action", f"Action must be either 'enable' or 'disable', got: {action}")

    def _set_state(self, plan: State, diags: Diagnostics, summary: str) -> Optional[State]:
        if not self._require_api(diags):
            return None
        try:
            self.api.secrets_hub.set_secret_store_state(plan.get("store_id"), plan.get("action"))
        except (CyberArkError, ValueError) as exc:
            diags.add_error(summary, f"{summary}: {exc}")
            return None
        state = dict(plan)
        state["last_updated"] = now_rfc3339()
        return state

    def create(self, plan: State, diags: Diagnostics) -> Optional[State]:
        return self._set_state(plan, diags, "Error setting secret store state")

    def update(self, plan: State, state: State, diags: Diagnostics) -> Optional[State]:
        return self._set_state(plan, diags, "Error updating secret store state")

    def read(self, state: State, diags: Diagnostics) -> Optional[State]:
        logger.error("Read method is not available for secret store state resource")
        return state

    def delete(self, state: State, diags: Diagnostics) -> None:
        logger.error("Delete method is not available for secret store state resource")
        diags.add_warning(
            "Secret store state not changed",
            f"{state.get('store_id')} keeps its current state; the resource is only removed from state.",
        )

    def import_state(self, import_id: str, diags: Diagnostics) -> Optional[State]:
        logger.error("Import method is not available for secret store state resource")
        diags.add_error("Import not supported", "cyberark_secret_store_state cannot be imported.")
        return None


class SecretStoreScanResource(Resource):
    """Triggers a Secrets Hub scan of the listed stores on create and update."""

    type_name = "secret_store_scan"

    def schema(self) -> Schema:
        return Schema(
            description="Trigger an on-demand scan of secret stores.",
            attributes={
                "store_ids": Attribute(type=LIST, required=True, description="Secret store IDs to scan."),
                "last_scanned": Attribute(computed=True),
            },
        )

    def validate_config(self, config: State, diags: Diagnostics) -> None:
        if config.get("store_ids") is not None and not config["store_ids"]:
            diags.add_error("Invalid Configuration", "store_ids must list at least one secret store ID.")

    def _scan(self, plan: State, diags: Diagnostics) -> Optional[State]:
        if not self._require_api(diags):
            return None
        try:
            self.api.secrets_hub.trigger_scan(plan.get("store_ids") or [])
        except (CyberArkError, ValueError) as exc:
            diags.add_error("Error triggering scan", str(exc))
            return None
        state = dict(plan)
        state["last_scanned"] = now_rfc3339()
        return state

    def create(self, plan: State, diags: Diagnostics) -> Optional[State]:
        return self._scan(plan, diags)

    def update(self, plan: State, state: State, diags: Diagnostics) -> Optional[State]:
        return self._scan(plan, diags)

    def read(self, state: State, diags: Diagnostics) -> Optional[State]:
        return state

    def delete(self, state: State, diags: Diagnostics) -> None:
        logger.info("Scan resource removed from state; nothing to delete in Secrets Hub")

    def import_state(self, import_id: str, diags: Diagnostics) -> Optional[State]:
        diags.add_error("Import not supported", "cyberark_secret_store_scan cannot be imported.")
        return None
