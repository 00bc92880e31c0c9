"""Settings loader with environment variable and Docker secrets integration."""
from __future__ import annotations
import logging
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

IDENTITY_URL_TEMPLATE = "https://{tenant}.id.cyberark.cloud"
PRIVILEGE_CLOUD_URL_TEMPLATE = "https://{domain}.privilegecloud.cyberark.cloud"
SECRETS_HUB_URL_TEMPLATE = "https://{domain}.secretshub.cyberark.cloud"

# Provider attribute -> (environment variable, /run/secrets file or None)
_SOURCES = {
    "tenant": ("CYBERARK_TENANT", None),
    "client_id": ("CYBERARK_CLIENT_ID", None),
    "client_secret": ("CYBERARK_CLIENT_SECRET", "cyberark_client_secret"),
    "domain": ("CYBERARK_DOMAIN", None),
    "pvwa_username": ("CYBERARK_PVWA_USERNAME", None),
    "pvwa_password": ("CYBERARK_PVWA_PASSWORD", "cyberark_pvwa_password"),
    "pvwa_url": ("CYBERARK_PVWA_URL", None),
    "pvwa_login_method": ("CYBERARK_PVWA_LOGIN_METHOD", None),
}


def _load_secret_from_file(secret_name: str, env_var: str | None = None) -> str | None:
    """
    Read a provider secret from a mounted secrets file, else the environment.

    An empty or unreadable /run/secrets/<secret_name> falls through to
    ``env_var``.

    Returns:
        The stripped secret, or None when neither source has it
    """
    secret_file = Path("/run/secrets") / secret_name

    if secret_file.exists() and secret_file.is_file():
        try:
            secret_value = secret_file.read_text().strip()
        except OSError as exc:
            logger.warning("Failed to read /run/secrets/%s: %s", secret_name, exc)
        else:
            if secret_value:
                logger.debug("Loaded %s from /run/secrets", secret_name)
                return secret_value

    if env_var:
        secret_value = os.getenv(env_var)
        if secret_value:
            logger.debug("Loaded %s from environment (fallback)", env_var)
            return secret_value

    return None


def _env_bool(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None or value == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_float(name: str, default: float) -> float:
    value = os.environ.get(name)
    if not value:
        return default
    try:
        return float(value)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number of seconds, got {value!r}") from exc


@dataclass
class ProviderSettings:
    """Provider configuration container."""
    # Identity / Privilege Cloud / Secrets Hub
    tenant: Optional[str] = None
    client_id: Optional[str] = None
    client_secret: Optional[str] = None
    domain: Optional[str] = None

    # Self-hosted PVWA
    pvwa_username: Optional[str] = None
    pvwa_password: Optional[str] = None
    pvwa_url: Optional[str] = None
    pvwa_login_method: Optional[str] = None

    # Runtime
    log_responses: bool = True
    request_timeout: float = 30.0
    log_level: str = "INFO"

    @property
    def identity_url(self) -> str:
        return IDENTITY_URL_TEMPLATE.format(tenant=self.tenant)

    @property
    def privilege_cloud_url(self) -> str:
        return PRIVILEGE_CLOUD_URL_TEMPLATE.format(domain=self.domain)

    @property
    def secrets_hub_url(self) -> str:
        return SECRETS_HUB_URL_TEMPLATE.format(domain=self.domain)

    def provider_config(self) -> Dict[str, Any]:
        """Return the provider attributes, leaving out the unset ones."""
        return {
            name: getattr(self, name)
            for name in _SOURCES
            if getattr(self, name) is not None
        }


def load_settings(overrides: Optional[Dict[str, Any]] = None) -> ProviderSettings:
    """Load provider settings from explicit values, /run/secrets and the environment.

    Explicit overrides (the ``provider:`` block of the configuration file)
    win over /run/secrets, which wins over environment variables.

    Args:
        overrides: Provider attributes set explicitly

    Returns:
        ProviderSettings

    Raises:
        ValueError: On an unknown provider attribute or a malformed runtime knob
    """
    overrides = dict(overrides or {})
    known = {f.name for f in fields(ProviderSettings)}
    unknown = sorted(set(overrides) - known)
    if unknown:
        raise ValueError(f"unknown provider attribute(s): {', '.join(unknown)}")

    values: Dict[str, Any] = {}
    for name, (env_var, secret_name) in _SOURCES.items():
        if overrides.get(name) is not None:
            values[name] = overrides[name]
        elif secret_name:
            values[name] = _load_secret_from_file(secret_name, env_var)
        else:
            values[name] = os.environ.get(env_var) or None

    values["log_responses"] = overrides.get("log_responses", _env_bool("CYBERARK_LOG_RESPONSES", True))
    values["request_timeout"] = overrides.get(
        "request_timeout", _env_float("CYBERARK_REQUEST_TIMEOUT", 30.0)
    )
    values["log_level"] = overrides.get("log_level") or os.environ.get("CYBERARK_LOG_LEVEL", "INFO")
    return ProviderSettings(**values)
