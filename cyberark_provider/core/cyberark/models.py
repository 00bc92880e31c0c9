"""Typed request and response models for the PAM and Secrets Hub APIs.

Each model is a dataclass whose fields carry their JSON name in the field
metadata. ``to_dict`` emits every field unless it is marked ``omitempty``
and is None; ``from_dict`` ignores keys it does not know.
"""
from __future__ import annotations
from dataclasses import dataclass, field, fields
from typing import Any, Dict, List, Optional, Type, TypeVar

T = TypeVar("T", bound="JSONModel")

AWS_ASM = "AWS_ASM"
AZURE_AKV = "AZURE_AKV"
GCP_GSM = "GCP_GSM"


def json_field(
    name: Optional[str],
    omitempty: bool = False,
    model: Optional[type] = None,
    many: bool = False,
    default: Any = None,
) -> Any:
    """Declare a dataclass field mapped to a JSON key.

    Args:
        name: JSON key; None keeps the field out of the JSON document
        omitempty: Leave the key out when the value is None
        model: Nested JSONModel class for objects (or list items)
        many: The value is a list of ``model`` instances
        default: Default value
    """
    metadata = {"json": name, "omitempty": omitempty, "model": model, "many": many}
    return field(default=default, metadata=metadata)


def _dump(value: Any) -> Any:
    if isinstance(value, JSONModel):
        return value.to_dict()
    if isinstance(value, list):
        return [_dump(item) for item in value]
    return value


class JSONModel:
    """Mixin adding JSON (de)serialization to the dataclasses below."""

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {}
        for f in fields(self):
            key = f.metadata.get("json")
            if key is None:
                continue
            value = getattr(self, f.name)
            if value is None and f.metadata.get("omitempty"):
                continue
            result[key] = _dump(value)
        return result

    @classmethod
    def from_dict(cls: Type[T], payload: Optional[Dict[str, Any]]) -> T:
        if payload is None:
            payload = {}
        if not isinstance(payload, dict):
            raise ValueError(f"cannot decode {cls.__name__} from {type(payload).__name__}")
        kwargs = {}
        for f in fields(cls):
            key = f.metadata.get("json")
            if key is None or key not in payload:
                continue
            kwargs[f.name] = cls._load_value(f.metadata, payload[key])
        return cls(**kwargs)

    @staticmethod
    def _load_value(metadata: Any, raw: Any) -> Any:
        model = metadata.get("model")
        if raw is None or model is None:
            return raw
        if metadata.get("many"):
            return [None if item is None else model.from_dict(item) for item in raw]
        return model.from_dict(raw)


# ─────────────────────────────────────────────────────────────────────────────
# Identity
# ─────────────────────────────────────────────────────────────────────────────
@dataclass
class IdentityToken(JSONModel):
    access_token: Optional[str] = json_field("access_token")
    token_type: Optional[str] = json_field("token_type")
    expires_in: Optional[int] = json_field("expires_in")


# ─────────────────────────────────────────────────────────────────────────────
# Safe members
# ─────────────────────────────────────────────────────────────────────────────
@dataclass
class Permission(JSONModel):
    """Safe member permission bits."""
    manage_safe: bool = json_field("manageSafe", default=False)
    manage_safe_members: bool = json_field("manageSafeMembers", default=False)
    view_safe_members: bool = json_field("viewSafeMembers", default=False)
    view_audit_log: bool = json_field("viewAuditLog", default=False)
    use_accounts: bool = json_field("useAccounts", default=False)
    retrieve_accounts: bool = json_field("retrieveAccounts", default=False)
    list_accounts: bool = json_field("listAccounts", default=False)
    add_accounts: bool = json_field("addAccounts", default=False)
    update_account_content: bool = json_field("updateAccountContent", default=False)
    update_account_properties: bool = json_field("updateAccountProperties", default=False)
    rename_accounts: bool = json_field("renameAccounts", default=False)
    delete_accounts: bool = json_field("deleteAccounts", default=False)
    unlock_accounts: bool = json_field("unlockAccounts", default=False)
    initiate_cpm_account_management_operations: bool = json_field(
        "initiateCPMAccountManagementOperations", default=False
    )
    specify_next_account_content: bool = json_field("specifyNextAccountContent", default=False)
    backup_safe: bool = json_field("backupSafe", default=False)
    access_without_confirmation: bool = json_field("accessWithoutConfirmation", default=False)
    create_folders: bool = json_field("createFolders", default=False)
    delete_folders: bool = json_field("deleteFolders", default=False)
    move_accounts_and_folders: bool = json_field("moveAccountsAndFolders", default=False)
    requests_authorization_level1: bool = json_field("requestsAuthorizationLevel1", default=False)
    requests_authorization_level2: bool = json_field("requestsAuthorizationLevel2", default=False)


@dataclass
class Member(JSONModel):
    member_name: Optional[str] = json_field("memberName", omitempty=True)
    member_type: Optional[str] = json_field("memberType", omitempty=True)
    permissions: Optional[Permission] = json_field("permissions", omitempty=True, model=Permission)


# ─────────────────────────────────────────────────────────────────────────────
# Accounts
# ─────────────────────────────────────────────────────────────────────────────
@dataclass
class AccountProps(JSONModel):
    """Platform-specific account properties (generic, database, AWS, Azure)."""
    port: Optional[str] = json_field("port", omitempty=True)
    database: Optional[str] = json_field("database", omitempty=True)
    dsn: Optional[str] = json_field("dsn", omitempty=True)
    secret_name_in_secret_store: Optional[str] = json_field("secretnameinsecretstore", omitempty=True)
    aws_access_key_id: Optional[str] = json_field("AWSAccessKeyID", omitempty=True)
    aws_account_id: Optional[str] = json_field("AWSAccountID", omitempty=True)
    aws_account_alias: Optional[str] = json_field("AWSAccountAliasName", omitempty=True)
    region: Optional[str] = json_field("Region", omitempty=True)
    application_id: Optional[str] = json_field("ApplicationID", omitempty=True)
    application_object_id: Optional[str] = json_field("ApplicationObjectID", omitempty=True)
    key_id: Optional[str] = json_field("KeyID", omitempty=True)
    active_directory_id: Optional[str] = json_field("ActiveDirectoryID", omitempty=True)
    duration: Optional[str] = json_field("Duration", omitempty=True)
    populate_if_not_exist: Optional[str] = json_field("PopulateIfNotExist", omitempty=True)
    key_description: Optional[str] = json_field("KeyDescription", omitempty=True)


@dataclass
class SecretManagement(JSONModel):
    automatic_management_enabled: Optional[bool] = json_field("automaticManagementEnabled")
    manual_management_reason: Optional[str] = json_field("manualManagementReason")
    last_modified_time: Optional[int] = json_field("lastModifiedTime", omitempty=True)
    status: Optional[str] = json_field("status", omitempty=True)
    last_reconciled_time: Optional[int] = json_field("lastReconciledTime", omitempty=True)
    last_verified_time: Optional[int] = json_field("lastVerifiedTime", omitempty=True)


@dataclass
class Credential(JSONModel):
    """Account payload sent to POST /Accounts."""
    name: Optional[str] = json_field("name")
    address: Optional[str] = json_field("address")
    user_name: Optional[str] = json_field("userName")
    platform_id: Optional[str] = json_field("platformId")
    safe_name: Optional[str] = json_field("safeName")
    secret_type: Optional[str] = json_field("secretType")
    secret: Optional[str] = json_field("secret")
    secret_management: Optional[SecretManagement] = json_field("secretManagement", model=SecretManagement)
    platform_account_properties: Optional[AccountProps] = json_field(
        "platformAccountProperties", model=AccountProps
    )


@dataclass
class CredentialResponse(JSONModel):
    name: Optional[str] = json_field("name", omitempty=True)
    address: Optional[str] = json_field("address", omitempty=True)
    user_name: Optional[str] = json_field("userName", omitempty=True)
    platform_id: Optional[str] = json_field("platformId", omitempty=True)
    safe_name: Optional[str] = json_field("safeName", omitempty=True)
    secret_type: Optional[str] = json_field("secretType", omitempty=True)
    secret: Optional[str] = json_field("secret", omitempty=True)
    secret_management: Optional[SecretManagement] = json_field(
        "secretManagement", omitempty=True, model=SecretManagement
    )
    platform_account_properties: Optional[AccountProps] = json_field(
        "platformAccountProperties", omitempty=True, model=AccountProps
    )
    id: Optional[str] = json_field("id", omitempty=True)
    created_time: Optional[int] = json_field("createdTime", omitempty=True)


@dataclass
class CredentialSearchResponse(JSONModel):
    value: List[CredentialResponse] = json_field("value", model=CredentialResponse, many=True)
    count: Optional[int] = json_field("count")

    def __post_init__(self):
        if self.value is None:
            self.value = []


# ─────────────────────────────────────────────────────────────────────────────
# Safes
# ─────────────────────────────────────────────────────────────────────────────
@dataclass
class SafeData(JSONModel):
    """Safe payload; member fields seed the first safe member."""
    safe_name: Optional[str] = json_field("safeName")
    number_of_days_retention: Optional[int] = json_field("numberOfDaysRetention", omitempty=True)
    number_of_versions_retention: Optional[int] = json_field("numberOfVersionsRetention", omitempty=True)
    auto_purge_enabled: Optional[bool] = json_field("autoPurgeEnabled", omitempty=True)
    managing_cpm: Optional[str] = json_field("managingCPM", omitempty=True)
    description: Optional[str] = json_field("description", omitempty=True)
    location: Optional[str] = json_field("location", omitempty=True)
    safe_url_id: Optional[str] = json_field("safeUrlId", omitempty=True)
    safe_number: Optional[int] = json_field("safeNumber", omitempty=True)
    member_name: Optional[str] = json_field("memberName", omitempty=True)
    member_type: Optional[str] = json_field("memberType", omitempty=True)
    level: Optional[str] = json_field(None)
    last_modification_time: Optional[int] = json_field("lastModificationTime", omitempty=True)
    enable_olac: Optional[bool] = json_field("enableOLAC", omitempty=True)


# ─────────────────────────────────────────────────────────────────────────────
# Secret stores
# ─────────────────────────────────────────────────────────────────────────────
@dataclass
class AwsAsmData(JSONModel):
    account_alias: Optional[str] = json_field("accountAlias")
    account_id: Optional[str] = json_field("accountId")
    region_id: Optional[str] = json_field("regionId")
    role_name: Optional[str] = json_field("roleName")


@dataclass
class Connector(JSONModel):
    connection_type: Optional[str] = json_field("connectionType")
    connector_id: Optional[str] = json_field("connectorId")
    connector_pool_id: Optional[str] = json_field("connectorPoolId")


@dataclass
class AzureAkvData(JSONModel):
    app_client_directory_id: Optional[str] = json_field("appClientDirectoryId")
    azure_vault_url: Optional[str] = json_field("azureVaultUrl")
    app_client_id: Optional[str] = json_field("appClientId")
    app_client_secret: Optional[str] = json_field("appClientSecret")
    connection_config: Optional[Connector] = json_field("connectionConfig", model=Connector)
    subscription_id: Optional[str] = json_field("subscriptionId")
    subscription_name: Optional[str] = json_field("subscriptionName")
    resource_group_name: Optional[str] = json_field("resourceGroupName")


@dataclass
class GcpGsmData(JSONModel):
    gcp_project_name: Optional[str] = json_field("gcpProjectName")
    gcp_project_number: Optional[str] = json_field("gcpProjectNumber")
    gcp_workload_identity_pool_id: Optional[str] = json_field("gcpWorkloadIdentityPoolId")
    gcp_pool_provider_id: Optional[str] = json_field("gcpPoolProviderId")
    service_account_email: Optional[str] = json_field("serviceAccountEmail")


STORE_DATA_MODELS: Dict[str, Type[JSONModel]] = {
    AWS_ASM: AwsAsmData,
    AZURE_AKV: AzureAkvData,
    GCP_GSM: GcpGsmData,
}


def _load_store_data(store_type: Optional[str], raw: Any) -> Any:
    if raw is None:
        return None
    model = STORE_DATA_MODELS.get(store_type or "")
    if model is None:
        return raw
    return model.from_dict(raw)


@dataclass
class SecretStoreInput(JSONModel):
    name: Optional[str] = json_field("name")
    description: Optional[str] = json_field("description")
    type: Optional[str] = json_field("type")
    data: Any = json_field("data")

    @classmethod
    def from_dict(cls, payload):
        store = super().from_dict(payload)
        store.data = _load_store_data(store.type, store.data)
        return store


@dataclass
class SecretStoreOutput(JSONModel):
    id: Optional[str] = json_field("id")
    type: Optional[str] = json_field("type")
    behaviors: Optional[List[str]] = json_field("behaviors")
    created_at: Optional[str] = json_field("createdAt")
    created_by: Optional[str] = json_field("createdby")
    data: Any = json_field("data")
    name: Optional[str] = json_field("name")
    description: Optional[str] = json_field("description")
    updated_at: Optional[str] = json_field("updatedAt")
    updated_by: Optional[str] = json_field("updatedby")

    @classmethod
    def from_dict(cls, payload):
        store = super().from_dict(payload)
        store.data = _load_store_data(store.type, store.data)
        return store


@dataclass
class SecretStoresOutput(JSONModel):
    secret_stores: List[SecretStoreOutput] = json_field("secretStores", model=SecretStoreOutput, many=True)

    def __post_init__(self):
        if self.secret_stores is None:
            self.secret_stores = []


# ─────────────────────────────────────────────────────────────────────────────
# Sync policies
# ─────────────────────────────────────────────────────────────────────────────
@dataclass
class Source(JSONModel):
    id: str = json_field("id", default="")


@dataclass
class Target(JSONModel):
    id: str = json_field("id", default="")


@dataclass
class SafeDataFilter(JSONModel):
    safe_name: Optional[str] = json_field("safeName")


@dataclass
class Filter(JSONModel):
    type: Optional[str] = json_field("type")
    data: Optional[SafeDataFilter] = json_field("data", model=SafeDataFilter)


@dataclass
class TransformationValue(JSONModel):
    predefined: str = json_field("predefined", default="")


@dataclass
class PolicyInput(JSONModel):
    name: Optional[str] = json_field("name")
    description: Optional[str] = json_field("description")
    source: Optional[Source] = json_field("source", model=Source)
    target: Optional[Target] = json_field("target", model=Target)
    filter: Optional[Filter] = json_field("filter", model=Filter)
    transformation: Optional[TransformationValue] = json_field("transformation", model=TransformationValue)


@dataclass
class FilterResponse(JSONModel):
    id: Optional[str] = json_field("id")


@dataclass
class PolicyState(JSONModel):
    current: str = json_field("current", default="")


@dataclass
class PolicyExternalOutput(JSONModel):
    id: Optional[str] = json_field("id")
    name: Optional[str] = json_field("name")
    description: Optional[str] = json_field("description")
    created_at: Optional[str] = json_field("createdAt")
    updated_at: Optional[str] = json_field("updatedAt")
    created_by: Optional[str] = json_field("createdBy")
    updated_by: Optional[str] = json_field("updatedBy")
    source: Optional[Source] = json_field("source", model=Source)
    target: Optional[Target] = json_field("target", model=Target)
    filter: Optional[FilterResponse] = json_field("filter", model=FilterResponse)
    transformation: Optional[TransformationValue] = json_field("transformation", model=TransformationValue)
    state: Optional[PolicyState] = json_field("state", model=PolicyState)


@dataclass
class SyncResponse(JSONModel):
    count: int = json_field("count", default=0)
    policies: List[PolicyExternalOutput] = json_field("policies", model=PolicyExternalOutput, many=True)

    def __post_init__(self):
        if self.policies is None:
            self.policies = []


@dataclass
class SecretFilterOutput(JSONModel):
    id: Optional[str] = json_field("id")
    type: Optional[str] = json_field("type")
    data: Optional[SafeDataFilter] = json_field("data", model=SafeDataFilter)
    created_at: Optional[str] = json_field("createdAt")
    updated_at: Optional[str] = json_field("updatedAt")
    created_by: Optional[str] = json_field("createdBy")
    updated_by: Optional[str] = json_field("updatedBy")
