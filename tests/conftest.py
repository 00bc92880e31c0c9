"""Pytest shared fixtures for the CyberArk provider tests."""
import json
import pathlib
import sys
from typing import Any, Dict, List, Optional
from unittest.mock import MagicMock

# Add project root to Python path
ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import pytest
import requests

from cyberark_provider.core.cyberark import CyberArkAPI, PAMService, SecretsHubService

_CYBERARK_ENV = (
    "CYBERARK_TENANT",
    "CYBERARK_CLIENT_ID",
    "CYBERARK_CLIENT_SECRET",
    "CYBERARK_DOMAIN",
    "CYBERARK_PVWA_USERNAME",
    "CYBERARK_PVWA_PASSWORD",
    "CYBERARK_PVWA_URL",
    "CYBERARK_PVWA_LOGIN_METHOD",
    "CYBERARK_LOG_RESPONSES",
    "CYBERARK_REQUEST_TIMEOUT",
    "CYBERARK_LOG_LEVEL",
    "CYBERARK_CONFIG",
    "CYBERARK_STATE",
)


# ─────────────────────────────────────────────────────────────────────────────
# Network Guard Rails
# ─────────────────────────────────────────────────────────────────────────────
@pytest.fixture(autouse=True)
def _no_network(monkeypatch, request):
    """
    Prevent unit tests from reaching a real tenant.

    Integration tests are explicitly marked with @pytest.mark.integration and
    are allowed to perform real HTTP calls (with the CYBERARK_* environment
    left in place) by skipping this fixture.
    """
    if request.node.get_closest_marker("integration"):
        return

    for name in _CYBERARK_ENV:
        monkeypatch.delenv(name, raising=False)

    def _blocked(method, url, *args, **kwargs):
        raise RuntimeError(f"Unexpected HTTP {method} in unit test: {url}")

    monkeypatch.setattr(requests, "request", _blocked)


def make_response(status_code: int = 200, payload: Any = None, url: str = "https://test", text: Optional[str] = None):
    """Build a real requests.Response with a buffered body."""
    resp = requests.Response()
    resp.status_code = status_code
    resp.url = url
    resp.encoding = "utf-8"
    if text is not None:
        resp._content = text.encode("utf-8")
    elif payload is not None:
        resp._content = json.dumps(payload).encode("utf-8")
        resp.headers["Content-Type"] = "application/json"
    else:
        resp._content = b""
    return resp


class FakeHTTP:
    """Stand-in for requests.request that records calls and replays responses."""

    def __init__(self):
        self.calls: List[Dict[str, Any]] = []
        self._queue: List[Any] = []

    def add(self, status_code: int = 200, payload: Any = None, text: Optional[str] = None) -> "FakeHTTP":
        self._queue.append((status_code, payload, text))
        return self

    def raise_next(self, exc: Exception) -> "FakeHTTP":
        self._queue.append(exc)
        return self

    def __call__(self, method, url, data=None, headers=None, params=None, timeout=None):
        self.calls.append({
            "method": method,
            "url": url,
            "data": data,
            "headers": dict(headers or {}),
            "params": params,
            "timeout": timeout,
        })
        if not self._queue:
            raise AssertionError(f"no response queued for {method} {url}")
        item = self._queue.pop(0)
        if isinstance(item, Exception):
            raise item
        status_code, payload, text = item
        return make_response(status_code, payload, url, text)

    @property
    def last(self) -> Dict[str, Any]:
        return self.calls[-1]

    def json_body(self, index: int = -1) -> Any:
        return json.loads(self.calls[index]["data"])


@pytest.fixture()
def http(monkeypatch):
    """Recording fake for requests.request; queue responses with http.add()."""
    fake = FakeHTTP()
    monkeypatch.setattr(requests, "request", fake)
    return fake


@pytest.fixture()
def api():
    """API bundle whose services are MagicMocks specced on the real classes."""
    return CyberArkAPI(
        pam=MagicMock(spec=PAMService),
        secrets_hub=MagicMock(spec=SecretsHubService),
        pvwa=MagicMock(spec=PAMService),
        auth_token=bytearray(b"identity-token"),
    )


@pytest.fixture()
def response():
    """Factory for buffered requests.Response objects."""
    return make_response
