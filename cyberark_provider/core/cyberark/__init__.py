"""CyberArk REST API client library.

This package provides a typed, testable interface to the Identity, Privilege
Cloud / PVWA and Secrets Hub REST APIs.

Architecture:
- client.py: HTTP client with authorization headers and response logging
- auth.py: Identity client-credentials and PVWA logon token exchange
- models.py: Dataclasses for request and response bodies
- pam.py: Account, safe and safe member operations
- permissions.py: Named safe member permission bundles
- secretshub.py: Secret store, scan and sync policy operations
- validators.py: Attribute length and pattern checks
- api.py: Bundle of configured services
- exceptions.py: Typed exceptions for error handling

Usage:
    from cyberark_provider.core.cyberark import IdentityAuthAPI, new_pam_api

    token = IdentityAuthAPI("https://acme.id.cyberark.cloud").get_token(client_id, secret)
    pam = new_pam_api("https://acme.privilegecloud.cyberark.cloud", token)
    accounts = pam.filter_accounts(filters=["safeName eq Vault"])
"""
from .api import CyberArkAPI
from .auth import IdentityAuthAPI, PVWAAuthAPI, PVWA_LOGIN_METHODS, get_identity_token
from .client import CyberArkClient, REQUEST_TIMEOUT, join_url, zero_bytes
from .exceptions import (
    AuthenticationError,
    CyberArkAPIError,
    CyberArkConnectionError,
    CyberArkError,
    InvalidPermissionLevelError,
    InvalidURLError,
    ResourceAlreadyExistsError,
)
from .models import AWS_ASM, AZURE_AKV, GCP_GSM
from .pam import PAMService, build_filter_query, generate_account_patch, new_pam_api
from .permissions import PERMISSION_LEVELS, member_for_level
from .secretshub import STORE_STATE_ACTIONS, SecretsHubService, new_secrets_hub_api
from .validators import validate_input_field

__all__ = [
    "CyberArkAPI",
    "IdentityAuthAPI",
    "PVWAAuthAPI",
    "PVWA_LOGIN_METHODS",
    "get_identity_token",
    "CyberArkClient",
    "REQUEST_TIMEOUT",
    "join_url",
    "zero_bytes",
    "AuthenticationError",
    "CyberArkAPIError",
    "CyberArkConnectionError",
    "CyberArkError",
    "InvalidPermissionLevelError",
    "InvalidURLError",
    "ResourceAlreadyExistsError",
    "AWS_ASM",
    "AZURE_AKV",
    "GCP_GSM",
    "PAMService",
    "build_filter_query",
    "generate_account_patch",
    "new_pam_api",
    "PERMISSION_LEVELS",
    "member_for_level",
    "STORE_STATE_ACTIONS",
    "SecretsHubService",
    "new_secrets_hub_api",
    "validate_input_field",
]
