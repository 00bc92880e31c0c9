"""The cyberark provider: configuration, authentication and resource registry."""
from __future__ import annotations
import logging
from typing import Any, Dict, List, Optional, Type

from ..config import ProviderSettings, load_settings
from ..core.cyberark import (
    PVWA_LOGIN_METHODS,
    CyberArkAPI,
    CyberArkError,
    IdentityAuthAPI,
    PVWAAuthAPI,
    new_pam_api,
    new_secrets_hub_api,
    zero_bytes,
)
from .accounts import (
    AWSAccountResource,
    AzureAccountResource,
    DBAccountResource,
    PVWAAWSAccountResource,
    PVWAAzureAccountResource,
    PVWADBAccountResource,
)
from .data_sources import AuthTokenDataSource
from .diagnostics import Diagnostics
from .resource import PROVIDER_TYPE_NAME, DataSource, Resource
from .safes import PVWASafeResource, SafeResource
from .schema import Attribute, Schema
from .secret_store_state import SecretStoreScanResource, SecretStoreStateResource
from .secret_stores import AWSSecretStoreResource, AzureSecretStoreResource, GCPSecretStoreResource
from .sync_policy import SyncPolicyResource

logger = logging.getLogger(__name__)

PVWA_ATTRIBUTES = ("pvwa_username", "pvwa_password", "pvwa_url")

RESOURCE_TYPES: List[Type[Resource]] = [
    AWSAccountResource,
    PVWAAWSAccountResource,
    AWSSecretStoreResource,
    AzureAccountResource,
    PVWAAzureAccountResource,
    AzureSecretStoreResource,
    GCPSecretStoreResource,
    DBAccountResource,
    PVWADBAccountResource,
    SafeResource,
    PVWASafeResource,
    SecretStoreStateResource,
    SecretStoreScanResource,
    SyncPolicyResource,
]

DATA_SOURCE_TYPES: List[Type[DataSource]] = [
    AuthTokenDataSource,
]


class CyberArkProvider:
    """Builds the API bundle shared by every resource and data source.

    Usage:
        provider = CyberArkProvider()
        diags = Diagnostics()
        provider.validate_config(config, diags)
        provider.configure(config, diags)
        resource = provider.resource("cyberark_safe")
    """

    type_name = PROVIDER_TYPE_NAME

    def __init__(self, version: str = "dev"):
        self.version = version
        self.api: Optional[CyberArkAPI] = None
        self._resources: Dict[str, Resource] = {}
        self._data_sources: Dict[str, DataSource] = {}
        for resource_type in RESOURCE_TYPES:
            resource = resource_type()
            self._resources[resource.full_type_name] = resource
        for data_source_type in DATA_SOURCE_TYPES:
            data_source = data_source_type()
            self._data_sources[data_source.full_type_name] = data_source

    def schema(self) -> Schema:
        return Schema(
            description="Manage CyberArk Privilege Cloud, PVWA and Secrets Hub objects.",
            attributes={
                "tenant": Attribute(required=True, description="CyberArk Identity tenant, e.g. `abc1234`."),
                "client_id": Attribute(required=True, description="Service user client ID."),
                "client_secret": Attribute(required=True, sensitive=True, description="Service user secret."),
                "domain": Attribute(required=True, description="Privilege Cloud and Secrets Hub subdomain."),
                "pvwa_username": Attribute(optional=True, description="Self-hosted PVWA username."),
                "pvwa_password": Attribute(optional=True, sensitive=True, description="Self-hosted PVWA password."),
                "pvwa_url": Attribute(optional=True, description="Self-hosted PVWA URL."),
                "pvwa_login_method": Attribute(
                    optional=True,
                    description=f"PVWA logon method: {', '.join(PVWA_LOGIN_METHODS)}. Defaults to cyberark.",
                ),
            },
        )

    def validate_config(self, config: Dict[str, Any], diags: Diagnostics) -> None:
        method = config.get("pvwa_login_method")
        if method and (not isinstance(method, str) or method.lower() not in PVWA_LOGIN_METHODS):
            diags.add_error(
                "Invalid PVWA Login Method",
                f"Invalid PVWA Login Method: {method}. Valid methods are: {list(PVWA_LOGIN_METHODS)}",
            )

        if any(config.get(name) for name in PVWA_ATTRIBUTES):
            for name in PVWA_ATTRIBUTES:
                if not config.get(name):
                    diags.add_error("Missing PVWA Attribute", f"Missing PVWA attribute: {name}")

    def configure(
        self,
        config: Dict[str, Any],
        diags: Diagnostics,
        settings: Optional[ProviderSettings] = None,
    ) -> Optional[CyberArkAPI]:
        """Authenticate and hand the API bundle to every resource.

        Args:
            config: Provider attributes
            diags: Collects authentication failures
            settings: Already merged settings; when omitted they are loaded
                from config, /run/secrets and the environment

        Returns:
            The configured bundle, or None when authentication failed
        """
        if settings is None:
            settings = load_settings(config)

        try:
            identity = IdentityAuthAPI(settings.identity_url, log_response=settings.log_responses)
            identity.client.timeout = settings.request_timeout
            token = identity.get_token(
                settings.client_id,
                bytearray((settings.client_secret or "").encode("utf-8")),
            )
        except CyberArkError as exc:
            diags.add_error("Failed to get authentication token", str(exc))
            return None

        pam = new_pam_api(settings.privilege_cloud_url, token, log_response=settings.log_responses)
        secrets_hub = new_secrets_hub_api(settings.secrets_hub_url, token, log_response=settings.log_responses)
        api = CyberArkAPI(pam=pam, secrets_hub=secrets_hub, auth_token=token)

        if settings.pvwa_url:
            try:
                pvwa_auth = PVWAAuthAPI(
                    settings.pvwa_url,
                    login_method=settings.pvwa_login_method or "cyberark",
                    log_response=settings.log_responses,
                )
                pvwa_auth.client.timeout = settings.request_timeout
                pvwa_token = pvwa_auth.get_token(
                    settings.pvwa_username,
                    bytearray((settings.pvwa_password or "").encode("utf-8")),
                )
            except (CyberArkError, ValueError) as exc:
                diags.add_error("Failed to get PVWA authentication token", str(exc))
                api.close()
                return None
            api.pvwa = new_pam_api(
                settings.pvwa_url,
                pvwa_token,
                with_bearer_token=False,
                log_response=settings.log_responses,
            )
            # the client keeps its own copy
            zero_bytes(pvwa_token)

        for service in (api.pam, api.secrets_hub, api.pvwa):
            if service is not None:
                service.client.timeout = settings.request_timeout

        self.api = api
        for item in list(self._resources.values()) + list(self._data_sources.values()):
            item.configure(api)
        logger.info("Provider configured for tenant %s", settings.tenant)
        return api

    def resource(self, full_type_name: str) -> Optional[Resource]:
        return self._resources.get(full_type_name)

    def data_source(self, full_type_name: str) -> Optional[DataSource]:
        return self._data_sources.get(full_type_name)

    def resources(self) -> Dict[str, Resource]:
        return dict(self._resources)

    def data_sources(self) -> Dict[str, DataSource]:
        return dict(self._data_sources)

    def schemas(self) -> Dict[str, Any]:
        """Every schema the provider exposes, keyed like `terraform providers schema`."""
        return {
            "provider": self.schema().to_dict(),
            "resource_schemas": {name: r.schema().to_dict() for name, r in self._resources.items()},
            "data_source_schemas": {name: d.schema().to_dict() for name, d in self._data_sources.items()},
        }

    def close(self) -> None:
        if self.api is not None:
            self.api.close()
            self.api = None
        for item in list(self._resources.values()) + list(self._data_sources.values()):
            item.configure(None)
