"""Secrets Hub sync policy resource."""
from __future__ import annotations
import logging
from typing import Optional

from ..core.cyberark import CyberArkError
from ..core.cyberark.models import Filter, PolicyInput, SafeDataFilter, Source, Target, TransformationValue
from .diagnostics import Diagnostics
from .resource import Resource, State, now_rfc3339
from .schema import Attribute, Schema

logger = logging.getLogger(__name__)

TRANSFORMATIONS = ("default", "password_only_plain_text")
DEFAULT_TRANSFORMATION = "password_only_plain_text"
PAM_SAFE = "PAM_SAFE"


class SyncPolicyResource(Resource):
    """Synchronizes the secrets of one PAM safe into a secret store."""

    type_name = "sync_policy"

    def schema(self) -> Schema:
        return Schema(
            description="Sync policy from a Privilege Cloud safe to a secret store.",
            attributes={
                "id": Attribute(computed=True, description="Policy ID generated by Secrets Hub."),
                "last_updated": Attribute(computed=True),
                "name": Attribute(required=True, description="Policy name."),
                "description": Attribute(optional=True, description="Policy description."),
                "source_id": Attribute(required=True, description="Secret store to sync secrets from."),
                "target_id": Attribute(required=True, description="Secret store to sync secrets to."),
                "safe_type": Attribute(computed=True, default=PAM_SAFE),
                "safe_name": Attribute(required=True, description="Safe whose secrets are synced."),
                "transformation": Attribute(
                    optional=True,
                    computed=True,
                    default=DEFAULT_TRANSFORMATION,
                    description="`default` or `password_only_plain_text`.",
                ),
            },
        )

    def validate_config(self, config: State, diags: Diagnostics) -> None:
        value = config.get("transformation")
        if value is not None and value not in TRANSFORMATIONS:
            diags.add_error(
                "Invalid Transformation Value",
                f"Transformation value must be either 'default' or 'password_only_plain_text', got: {value}",
            )

    @staticmethod
    def _policy_input(plan: State) -> PolicyInput:
        return PolicyInput(
            name=plan.get("name"),
            description=plan.get("description"),
            source=Source(id=plan.get("source_id") or ""),
            target=Target(id=plan.get("target_id") or ""),
            filter=Filter(
                type=plan.get("safe_type") or PAM_SAFE,
                data=SafeDataFilter(safe_name=plan.get("safe_name")),
            ),
            transformation=TransformationValue(predefined=plan.get("transformation") or DEFAULT_TRANSFORMATION),
        )

    def create(self, plan: State, diags: Diagnostics) -> Optional[State]:
        if not self._require_api(diags):
            return None
        hub = self.api.secrets_hub

        try:
            policies = hub.get_sync_policies()
        except CyberArkError as exc:
            diags.add_error("Failed to read policies", f"Failed to read policies: {exc}")
            return None

        policy = next((p for p in policies.policies if p.name == plan.get("name")), None)
        if policy is None:
            logger.info("Sync Policy not found, creating new")
            try:
                policy = hub.add_sync_policy(self._policy_input(plan))
            except CyberArkError as exc:
                diags.add_error("Failed to create policy", f"Failed to create policy: {exc}")
                return None

        state = dict(plan)
        state["id"] = policy.id
        state["last_updated"] = policy.updated_at or now_rfc3339()
        return state

    def read(self, state: State, diags: Diagnostics) -> Optional[State]:
        if not self._require_api(diags):
            return None
        hub = self.api.secrets_hub

        try:
            policy = hub.get_sync_policy(state.get("id"))
        except CyberArkError as exc:
            diags.add_error("Failed to read policy", f"Failed to read policy: {exc}")
            return None

        source_id = policy.source.id if policy.source else None
        filter_id = policy.filter.id if policy.filter else None
        if not source_id or not filter_id:
            diags.add_error("Failed to read store", "Policy has no source or filter to look up.")
            return None
        try:
            secret_filter = hub.get_secret_filter(source_id, filter_id)
        except CyberArkError as exc:
            diags.add_error("Failed to read store", f"Failed to read store: {exc}")
            return None

        transformation = policy.transformation.predefined if policy.transformation else None
        return {
            "id": policy.id,
            "name": policy.name,
            "description": policy.description,
            "source_id": source_id,
            "target_id": policy.target.id if policy.target else None,
            "safe_type": secret_filter.type,
            "safe_name": secret_filter.data.safe_name if secret_filter.data else None,
            "transformation": transformation or state.get("transformation"),
            "last_updated": policy.updated_at,
        }

    def update(self, plan: State, state: State, diags: Diagnostics) -> Optional[State]:
        if not self._require_api(diags):
            return None
        try:
            policy = self.api.secrets_hub.update_sync_policy(state.get("id"), self._policy_input(plan))
        except CyberArkError as exc:
            diags.add_error("Failed to update sync policy", f"Failed to update sync policy: {exc}")
            return None

        new_state = dict(plan)
        new_state["id"] = policy.id
        new_state["last_updated"] = policy.updated_at or now_rfc3339()
        logger.info("Sync Policy updated successfully")
        return new_state

    def delete(self, state: State, diags: Diagnostics) -> None:
        if not self._require_api(diags):
            return
        try:
            self.api.secrets_hub.delete_sync_policy(state.get("id"))
        except CyberArkError as exc:
            diags.add_error("Failed to delete sync policy", f"Failed to delete sync policy: {exc}")
            return
        logger.info("Sync Policy deleted successfully")
