"""Low-level HTTP client shared by the CyberArk API services.

Handles URL joining, authorization headers, JSON encoding and optional
response logging. Status checking is left to the calling service.
"""
from __future__ import annotations
import json
import logging
from typing import Any, Dict, Optional, Union
from urllib.parse import urlsplit

import requests

from .exceptions import CyberArkConnectionError, InvalidURLError

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 30

ALLOWED_METHODS = frozenset({"GET", "POST", "PUT", "PATCH", "DELETE"})

Token = Union[str, bytes, bytearray]


def join_url(base_url: str, path: str) -> str:
    """Join an API base URL and an endpoint path.

    Args:
        base_url: Base URL such as "https://acme.privilegecloud.cyberark.cloud"
        path: Endpoint path starting with "/"

    Returns:
        Absolute URL

    Raises:
        InvalidURLError: If the base URL has no scheme or host
    """
    if not base_url:
        raise InvalidURLError("base URL is empty")
    parts = urlsplit(base_url)
    if not parts.scheme or not parts.netloc:
        raise InvalidURLError(f"base URL {base_url!r} must include a scheme and a host")
    if path and not path.startswith("/"):
        path = "/" + path
    return base_url.rstrip("/") + path


def _as_buffer(token: Optional[Token]) -> Optional[bytearray]:
    if token is None:
        return None
    if isinstance(token, str):
        return bytearray(token.encode("utf-8"))
    return bytearray(token)


class CyberArkClient:
    """HTTP client for a single CyberArk API base URL.

    The token is kept in a mutable buffer so it can be wiped with
    clear_token() once the caller is done.

    Usage:
        client = CyberArkClient("https://acme.secretshub.cyberark.cloud", auth_token=token)
        resp = client.do_request("GET", "/api/secret-stores")
    """

    def __init__(
        self,
        base_url: str,
        log_response: bool = False,
        auth_token: Optional[Token] = None,
        with_bearer_token: bool = True,
        timeout: float = REQUEST_TIMEOUT,
    ):
        """Initialize the client.

        Args:
            base_url: API base URL
            log_response: Log status and body of every response at DEBUG
            auth_token: Token sent in the Authorization header
            with_bearer_token: Prefix the token with "Bearer " (PVWA expects the raw token)
            timeout: Request timeout in seconds

        Raises:
            InvalidURLError: If the base URL is malformed
        """
        join_url(base_url, "/")
        self.base_url = base_url.rstrip("/")
        self.log_response = log_response
        self.with_bearer_token = with_bearer_token
        self.timeout = timeout
        self._token = _as_buffer(auth_token)

    @property
    def has_token(self) -> bool:
        return bool(self._token)

    def _authorization(self) -> Optional[str]:
        if not self._token:
            return None
        token = self._token.decode("utf-8")
        if self.with_bearer_token:
            return f"Bearer {token}"
        return token

    def do_request(
        self,
        method: str,
        path: str,
        body: Any = None,
        headers: Optional[Dict[str, str]] = None,
        params: Optional[Dict[str, str]] = None,
    ) -> requests.Response:
        """Send a request and return the buffered response.

        Args:
            method: HTTP method (GET, POST, PUT, PATCH, DELETE)
            path: Endpoint path appended to the base URL
            body: dict/list encoded as JSON, or str/bytes sent verbatim
            headers: Extra headers; they override the defaults
            params: Query parameters

        Returns:
            Response object, whatever its status code

        Raises:
            ValueError: On an unsupported HTTP method
            InvalidURLError: If the URL cannot be built
            CyberArkConnectionError: If the request could not be completed
        """
        method = method.upper()
        if method not in ALLOWED_METHODS:
            raise ValueError(f"unsupported HTTP method {method!r}")
        url = join_url(self.base_url, path)

        request_headers = {"Content-Type": "application/json"}
        authorization = self._authorization()
        if authorization:
            request_headers["Authorization"] = authorization
        if headers:
            request_headers.update(headers)

        if body is None or isinstance(body, (str, bytes, bytearray)):
            data = body
        else:
            data = json.dumps(body)

        try:
            resp = requests.request(
                method,
                url,
                data=data,
                headers=request_headers,
                params=params or None,
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise CyberArkConnectionError(f"{method} {url} failed: {exc}") from exc

        if self.log_response:
            logger.debug(
                "Response: url=%s method=%s status=%s body=%s",
                url,
                method,
                resp.status_code,
                resp.text,
            )
        return resp

    def clear_token(self) -> None:
        """Overwrite the stored token with zero bytes and drop it."""
        if self._token is not None:
            zero_bytes(self._token)
        self._token = None


def zero_bytes(buf: Optional[bytearray]) -> None:
    """Overwrite a mutable buffer with zero bytes in place."""
    if buf is None:
        return
    for i in range(len(buf)):
        buf[i] = 0
