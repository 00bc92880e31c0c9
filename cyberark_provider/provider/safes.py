"""Safe resources with a seeded member (Privilege Cloud and PVWA)."""
from __future__ import annotations
import logging
from typing import Optional

from ..core.cyberark import PERMISSION_LEVELS, CyberArkError
from ..core.cyberark.models import SafeData
from .diagnostics import Diagnostics
from .resource import Resource, State, rfc3339_from_micros
from .schema import BOOL, INT, Attribute, Schema

logger = logging.getLogger(__name__)

# Cannot be read back from the API, always carried over from plan or state
_MEMBER_ATTRIBUTES = ("member", "member_type", "permission_level")


def _permission_error(level: Optional[str]) -> str:
    return f"Permission level ({level}) does not match acceptable values"


class SafeResource(Resource):
    """Privilege Cloud safe; the configured member is added on create."""

    type_name = "safe"

    def schema(self) -> Schema:
        return Schema(
            description="Privilege Cloud safe with an owning member.",
            attributes={
                "id": Attribute(computed=True, description="Safe URL ID generated by CyberArk."),
                "id_number": Attribute(type=INT, computed=True, description="Safe number generated by CyberArk."),
                "last_updated": Attribute(computed=True),
                "safe_name": Attribute(required=True, description="Unique name of the safe."),
                "member": Attribute(required=True, description="Owning safe member."),
                "member_type": Attribute(required=True, description="Member type: user or group."),
                "permission_level": Attribute(
                    required=True,
                    description=f"Membership permission level: {', '.join(PERMISSION_LEVELS)}.",
                ),
                "safe_desc": Attribute(optional=True, description="Description of the safe."),
                "safe_loc": Attribute(optional=True, computed=True, description="Location of the safe in the Vault."),
                "cpm_name": Attribute(optional=True, computed=True, description="CPM user managing the safe."),
                "retention": Attribute(type=INT, optional=True, computed=True,
                                       description="Days password versions are kept."),
                "retention_versions": Attribute(type=INT, optional=True, computed=True,
                                                description="Password versions kept."),
                "purge": Attribute(type=BOOL, optional=True, computed=True,
                                   description="Purge files after the retention period."),
            },
        )

    def validate_config(self, config: State, diags: Diagnostics) -> None:
        level = config.get("permission_level")
        if level is not None and level not in PERMISSION_LEVELS:
            diags.add_error("Permission Level Error", _permission_error(level))
            return
        if config.get("retention") is not None and config.get("retention_versions") is not None:
            diags.add_error("Invalid Configuration", "Only one of 'retention' or 'retention_versions' may be set.")

    @staticmethod
    def _safe_data(plan: State) -> SafeData:
        return SafeData(
            safe_name=plan.get("safe_name"),
            number_of_days_retention=plan.get("retention"),
            number_of_versions_retention=plan.get("retention_versions"),
            auto_purge_enabled=plan.get("purge"),
            managing_cpm=plan.get("cpm_name"),
            description=plan.get("safe_desc"),
            location=plan.get("safe_loc"),
            member_name=plan.get("member"),
            member_type=plan.get("member_type"),
            level=plan.get("permission_level"),
        )

    @staticmethod
    def _state_from_safe(safe: SafeData, members_from: State) -> State:
        state = {
            "id": safe.safe_url_id,
            "id_number": safe.safe_number,
            "safe_name": safe.safe_name,
            "safe_desc": safe.description,
            "safe_loc": safe.location,
            "cpm_name": safe.managing_cpm,
            "retention": safe.number_of_days_retention,
            "retention_versions": safe.number_of_versions_retention,
            "purge": safe.auto_purge_enabled,
            "last_updated": rfc3339_from_micros(safe.last_modification_time),
        }
        for name in _MEMBER_ATTRIBUTES:
            state[name] = members_from.get(name)
        return state

    def create(self, plan: State, diags: Diagnostics) -> Optional[State]:
        pam = self._pam_service(diags)
        if pam is None:
            return None
        new_safe = self._safe_data(plan)

        try:
            safe = pam.get_safe(plan.get("safe_name"))
        except CyberArkError:
            logger.info("Safe not found, creating new")
            try:
                safe = pam.add_safe(new_safe) or pam.get_safe(plan.get("safe_name"))
            except CyberArkError as exc:
                diags.add_error("Error creating safe", str(exc))
                return None

        try:
            pam.add_safe_member(new_safe)
        except (CyberArkError, ValueError) as exc:
            diags.add_error("Error creating safe member", str(exc))
            return None

        return self._state_from_safe(safe, plan)

    def read(self, state: State, diags: Diagnostics) -> Optional[State]:
        pam = self._pam_service(diags)
        if pam is None:
            return None
        try:
            safe = pam.get_safe(state.get("id"))
        except CyberArkError as exc:
            diags.add_error("Error reading safe", str(exc))
            return None
        return self._state_from_safe(safe, state)

    def update(self, plan: State, state: State, diags: Diagnostics) -> Optional[State]:
        pam = self._pam_service(diags)
        if pam is None:
            return None
        updated = self._safe_data(plan)
        updated.safe_url_id = state.get("id")
        updated.safe_number = state.get("id_number")

        try:
            safe = pam.update_safe(state.get("id"), updated)
        except CyberArkError as exc:
            diags.add_error("Error updating safe", str(exc))
            return None

        if all(plan.get(name) is not None for name in _MEMBER_ATTRIBUTES):
            if plan.get("permission_level") not in PERMISSION_LEVELS:
                diags.add_error("Permission Level Error", _permission_error(plan.get("permission_level")))
                return None
            try:
                pam.update_safe_member(updated)
            except (CyberArkError, ValueError) as exc:
                diags.add_error("Error updating safe member", str(exc))
                return None
        else:
            diags.add_warning("Warning updating safe member", "Safe member not found in state, skipping update")

        return self._state_from_safe(safe, plan)

    def delete(self, state: State, diags: Diagnostics) -> None:
        pam = self._pam_service(diags)
        if pam is None:
            return

        if all(state.get(name) is not None for name in _MEMBER_ATTRIBUTES):
            try:
                pam.delete_safe_member(state.get("safe_name"), state.get("member"))
            except CyberArkError as exc:
                # the safe delete below still runs
                diags.add_warning("Error deleting safe member", str(exc))
        else:
            diags.add_warning("Warning deleting safe member", "Safe member not found in state, skipping deletion")

        try:
            pam.delete_safe(state.get("safe_name"))
        except CyberArkError as exc:
            diags.add_error("Error deleting safe", str(exc))
            return
        logger.info("Safe %s deleted successfully", state.get("safe_name"))


class PVWASafeResource(SafeResource):
    type_name = "pvwa_safe"
    use_pvwa = True
