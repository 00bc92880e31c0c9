"""Base classes for resources and data sources.

A resource receives plain attribute dictionaries (plan, prior state) and
returns the new state dictionary. Problems are appended to a Diagnostics
object rather than raised, mirroring how the lifecycle engine reports them.
"""
from __future__ import annotations
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from ..core.cyberark import CyberArkAPI, PAMService
from .diagnostics import Diagnostics
from .schema import Schema

logger = logging.getLogger(__name__)

State = Dict[str, Any]

PROVIDER_TYPE_NAME = "cyberark"


def now_rfc3339() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def rfc3339_from_micros(micros: Optional[int]) -> str:
    """Format a Vault timestamp (microseconds since epoch); falls back to now."""
    if micros is None:
        return now_rfc3339()
    return datetime.fromtimestamp(micros / 1_000_000, tz=timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


class _Configurable:
    type_name = ""

    def __init__(self):
        self.api: Optional[CyberArkAPI] = None

    @property
    def full_type_name(self) -> str:
        return f"{PROVIDER_TYPE_NAME}_{self.type_name}"

    def schema(self) -> Schema:
        raise NotImplementedError

    def configure(self, api: Optional[CyberArkAPI]) -> None:
        self.api = api

    def validate_config(self, config: State, diags: Diagnostics) -> None:
        """Attribute checks beyond the schema; nothing by default."""

    def _require_api(self, diags: Diagnostics) -> bool:
        if self.api is None:
            diags.add_error(
                "Unconfigured Provider",
                f"{self.full_type_name} was used before the provider was configured.",
            )
            return False
        return True


class Resource(_Configurable):
    """Managed object with a create/read/update/delete lifecycle."""

    # PAM resources talk to the self-hosted PVWA instead of Privilege Cloud
    use_pvwa = False

    def _pam_service(self, diags: Diagnostics) -> Optional[PAMService]:
        if not self._require_api(diags):
            return None
        if not self.use_pvwa:
            return self.api.pam
        if self.api.pvwa is None:
            diags.add_error(
                "PVWA not configured",
                f"{self.full_type_name} requires pvwa_url, pvwa_username and pvwa_password on the provider.",
            )
            return None
        return self.api.pvwa

    def create(self, plan: State, diags: Diagnostics) -> Optional[State]:
        raise NotImplementedError

    def read(self, state: State, diags: Diagnostics) -> Optional[State]:
        raise NotImplementedError

    def update(self, plan: State, state: State, diags: Diagnostics) -> Optional[State]:
        raise NotImplementedError

    def delete(self, state: State, diags: Diagnostics) -> None:
        raise NotImplementedError

    def import_state(self, import_id: str, diags: Diagnostics) -> Optional[State]:
        """Seed state with the imported ID; the next read fills in the rest."""
        state = {name: None for name in self.schema().attributes}
        state["id"] = import_id
        return state


class DataSource(_Configurable):
    """Read-only lookup."""

    def read(self, config: State, diags: Diagnostics) -> Optional[State]:
        raise NotImplementedError
