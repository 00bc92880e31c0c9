"""CyberArk-specific exceptions for error handling."""
from __future__ import annotations
import json
from typing import Iterable, Union

import requests


class CyberArkError(Exception):
    """Base exception for all CyberArk operations."""
    pass


class CyberArkAPIError(CyberArkError):
    """Unexpected HTTP status from a CyberArk REST API.

    Attributes:
        status_code: HTTP status code
        message: Error message, including the response body when present
        endpoint: API endpoint that failed
    """

    def __init__(self, status_code: int, message: str, endpoint: str):
        self.status_code = status_code
        self.message = message
        self.endpoint = endpoint
        super().__init__(message)

    @classmethod
    def from_response(
        cls,
        resp: requests.Response,
        action: str,
        expected: Union[int, Iterable[int]],
    ) -> "CyberArkAPIError":
        """Build an error from a response whose status was not expected.

        The response body is appended to the message: a JSON string as-is,
        any other JSON document pretty-printed, non-JSON bodies dropped.

        Args:
            resp: Response returned by the API
            action: Short description of the failed call ("add account")
            expected: Status code (or codes) the caller was waiting for

        Returns:
            A ready-to-raise CyberArkAPIError
        """
        if isinstance(expected, int):
            expected_text = str(expected)
        else:
            expected_text = " or ".join(str(code) for code in expected)
        message = f"failed to {action}, expected status code {expected_text}, got {resp.status_code}"

        text, _ = _describe_body(resp)
        if text:
            message = f"{message}\n\n{text}"
        return cls(resp.status_code, message, resp.url or "")

    @classmethod
    def from_status(cls, resp: requests.Response) -> "CyberArkAPIError":
        """Build the Secrets Hub style error: "HTTP status code N" plus body.

        A JSON string body follows a blank line; structured JSON follows on
        the next line, indented by two spaces.
        """
        message = f"HTTP status code {resp.status_code}"
        text, is_json_string = _describe_body(resp)
        if text:
            separator = "\n\n" if is_json_string else "\n"
            message = f"{message}{separator}{text}"
        return cls(resp.status_code, message, resp.url or "")


def _describe_body(resp: requests.Response) -> tuple[str, bool]:
    try:
        payload = resp.json()
    except ValueError:
        return "", False
    if payload is None:
        return "", False
    if isinstance(payload, str):
        return payload, True
    return json.dumps(payload, indent=2), False


class CyberArkConnectionError(CyberArkError):
    """The HTTP request could not be sent or no response was received."""
    pass


class InvalidURLError(CyberArkError):
    """Base URL is missing a scheme or host."""
    pass


class AuthenticationError(CyberArkError):
    """Token exchange with Identity or PVWA failed.

    Attributes:
        status_code: HTTP status code, or None when the body was unusable
    """

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)


class ResourceAlreadyExistsError(CyberArkError):
    """Creation failed because an object with the same identity exists."""
    pass


class InvalidPermissionLevelError(CyberArkError):
    """Safe member permission level is not one of the known bundles."""
    pass
