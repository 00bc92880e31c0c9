"""Bundle of the configured API services handed to resources."""
from __future__ import annotations
from dataclasses import dataclass
from typing import Optional

from .client import zero_bytes
from .pam import PAMService
from .secretshub import SecretsHubService


@dataclass
class CyberArkAPI:
    """Services built by the provider at configure time.

    Attributes:
        pam: Privilege Cloud service (Bearer token)
        secrets_hub: Secrets Hub service
        pvwa: Self-hosted PVWA service, only when pvwa_url is configured
        auth_token: Identity platform token, exposed by the auth token data source
    """
    pam: PAMService
    secrets_hub: SecretsHubService
    pvwa: Optional[PAMService] = None
    auth_token: Optional[bytearray] = None

    @property
    def token_text(self) -> str:
        if not self.auth_token:
            return ""
        return self.auth_token.decode("utf-8")

    def close(self) -> None:
        """Zero every token held by the bundle and its clients."""
        self.pam.client.clear_token()
        self.secrets_hub.client.clear_token()
        if self.pvwa is not None:
            self.pvwa.client.clear_token()
        zero_bytes(self.auth_token)
        self.auth_token = None
