"""Token acquisition against CyberArk Identity and self-hosted PVWA."""
from __future__ import annotations
import logging
from typing import Union
from urllib.parse import urlencode

from .client import CyberArkClient, zero_bytes
from .exceptions import AuthenticationError
from .models import IdentityToken

logger = logging.getLogger(__name__)

IDENTITY_TOKEN_PATH = "/oauth2/platformtoken"
PVWA_LOGON_PATH = "/PasswordVault/API/auth/{method}/Logon"

# Provider attribute value -> PVWA URL segment
PVWA_LOGIN_METHODS = {
    "cyberark": "CyberArk",
    "ldap": "LDAP",
    "windows": "Windows",
    "radius": "RADIUS",
}

Secret = Union[str, bytes, bytearray]


def _secret_text(secret: Secret) -> str:
    if isinstance(secret, str):
        return secret
    return bytes(secret).decode("utf-8")


def _wipe(secret: Secret) -> None:
    if isinstance(secret, bytearray):
        zero_bytes(secret)


class IdentityAuthAPI:
    """Client credentials exchange against the tenant Identity endpoint."""

    def __init__(self, base_url: str, log_response: bool = False):
        """Initialize the auth client.

        Args:
            base_url: Identity tenant URL, e.g. "https://acme.id.cyberark.cloud"
            log_response: Log raw responses at DEBUG (token bodies included)
        """
        self.client = CyberArkClient(base_url, log_response=log_response)

    def get_token(self, client_id: str, client_secret: Secret) -> bytearray:
        """Fetch a platform token with the client credentials grant.

        A bytearray secret is zeroed once the request has been sent,
        whether or not the call succeeds.

        Args:
            client_id: Service user client ID
            client_secret: Service user secret

        Returns:
            Access token as a bytearray

        Raises:
            AuthenticationError: On a non-200 status or an unusable body
            CyberArkConnectionError: If Identity could not be reached
        """
        try:
            body = urlencode({
                "client_id": client_id,
                "grant_type": "client_credentials",
                "client_secret": _secret_text(client_secret),
            })
            resp = self.client.do_request(
                "POST",
                IDENTITY_TOKEN_PATH,
                body=body,
                headers={"Content-Type": "application/x-www-form-urlencoded"},
            )
        finally:
            _wipe(client_secret)

        if resp.status_code != 200:
            raise AuthenticationError(
                f"failed to get identity token, expected status code 200, got {resp.status_code}",
                resp.status_code,
            )
        try:
            identity = IdentityToken.from_dict(resp.json())
        except ValueError as exc:
            raise AuthenticationError("failed to decode identity token response") from exc

        if not identity.access_token or not isinstance(identity.access_token, str):
            raise AuthenticationError("identity token response did not contain an access_token")
        logger.debug("Obtained %s identity token for client %s, expires in %s s",
                     identity.token_type or "Bearer", client_id, identity.expires_in)
        return bytearray(identity.access_token.encode("utf-8"))


class PVWAAuthAPI:
    """Username/password logon against a self-hosted PVWA."""

    def __init__(self, base_url: str, login_method: str = "cyberark", log_response: bool = False):
        """Initialize the auth client.

        Args:
            base_url: PVWA URL, e.g. "https://pvwa.example.com"
            login_method: One of cyberark, ldap, windows, radius
            log_response: Log raw responses at DEBUG

        Raises:
            ValueError: On an unknown login method
        """
        method = (login_method or "cyberark").lower()
        if method not in PVWA_LOGIN_METHODS:
            raise ValueError(
                f"invalid PVWA login method {login_method!r}; expected one of {', '.join(PVWA_LOGIN_METHODS)}"
            )
        self.login_method = method
        self.client = CyberArkClient(base_url, log_response=log_response)

    def get_token(self, username: str, password: Secret) -> bytearray:
        """Log on and return the PVWA session token.

        Args:
            username: Vault username
            password: Vault password; zeroed after the request when a bytearray

        Returns:
            Session token as a bytearray

        Raises:
            AuthenticationError: On a non-200 status or an unusable body
            CyberArkConnectionError: If PVWA could not be reached
        """
        path = PVWA_LOGON_PATH.format(method=PVWA_LOGIN_METHODS[self.login_method])
        try:
            resp = self.client.do_request(
                "POST",
                path,
                body={
                    "username": username,
                    "password": _secret_text(password),
                    "concurrentSession": True,
                },
            )
        finally:
            _wipe(password)

        if resp.status_code != 200:
            raise AuthenticationError(
                f"failed to log on to PVWA, expected status code 200, got {resp.status_code}",
                resp.status_code,
            )
        try:
            token = resp.json()
        except ValueError as exc:
            raise AuthenticationError("failed to decode PVWA logon response") from exc

        if not isinstance(token, str) or not token:
            raise AuthenticationError("PVWA logon response did not contain a session token")
        logger.debug("Obtained PVWA token for user %s", username)
        return bytearray(token.encode("utf-8"))


def get_identity_token(base_url: str, client_id: str, client_secret: Secret) -> bytearray:
    """Standalone helper around IdentityAuthAPI.get_token."""
    return IdentityAuthAPI(base_url).get_token(client_id, client_secret)


__all__ = [
    "IdentityAuthAPI",
    "PVWAAuthAPI",
    "PVWA_LOGIN_METHODS",
    "get_identity_token",
]
