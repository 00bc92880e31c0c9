"""Data sources."""
from __future__ import annotations
from typing import Optional

from .diagnostics import Diagnostics
from .resource import DataSource, State
from .schema import Attribute, Schema


class AuthTokenDataSource(DataSource):
    """Exposes the Identity platform token the provider authenticated with."""

    type_name = "auth_token"

    def schema(self) -> Schema:
        return Schema(
            description="Shared Services Auth Token",
            attributes={
                "token": Attribute(computed=True, sensitive=True, description="Shared Services Authorization Token"),
            },
        )

    def read(self, config: State, diags: Diagnostics) -> Optional[State]:
        if not self._require_api(diags):
            return None
        if not self.api.auth_token:
            diags.add_error("Missing authentication token", "The provider holds no Identity token.")
            return None
        return {"token": self.api.token_text}
