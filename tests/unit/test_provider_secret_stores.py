import pytest

from cyberark_provider.core.cyberark import AWS_ASM, AZURE_AKV, GCP_GSM, CyberArkAPIError
from cyberark_provider.core.cyberark.models import (
    AwsAsmData,
    AzureAkvData,
    Connector,
    GcpGsmData,
    SecretStoreOutput,
    SecretStoresOutput,
)
from cyberark_provider.provider import Diagnostics
from cyberark_provider.provider.secret_stores import (
    AWSSecretStoreResource,
    AzureSecretStoreResource,
    GCPSecretStoreResource,
)

AWS_PLAN = {
    "name": "aws-prod",
    "description": "Production account",
    "type": AWS_ASM,
    "aws_account_alias": "prod",
    "aws_account_id": "123456789012",
    "aws_account_region": "us-east-1",
    "aws_iam_role": "SecretsHubRole",
}

GCP_PLAN = {
    "name": "gcp-prod",
    "description": "Production project",
    "type": GCP_GSM,
    "gcp_project_name": "prod-project",
    "gcp_project_number": "123456789012",
    "gcp_workload_identity_pool_id": "secrets-hub-pool",
    "gcp_pool_provider_id": "secrets-hub-provider",
    "service_account_email": "secrets-hub-sa@prod-project.iam.gserviceaccount.com",
}

AZURE_PLAN = {
    "name": "akv-prod",
    "description": "Production vault",
    "type": AZURE_AKV,
    "azure_app_client_directory_id": "tenant-guid",
    "azure_vault_url": "https://prod.vault.azure.net",
    "azure_app_client_id": "app-guid",
    "azure_app_client_secret": "client-secret",
    "connection_type": "CONNECTOR",
    "connector_id": "connector-1",
    "subscription_id": "sub-guid",
    "subscription_name": "Production",
    "resource_group_name": "rg-secrets",
}


def _configured(resource_type, api):
    resource = resource_type()
    resource.configure(api)
    return resource


def test_schema_defaults_and_sensitive_secret():
    assert AWSSecretStoreResource().schema().attributes["type"].default == AWS_ASM
    azure = AzureSecretStoreResource().schema().attributes
    assert azure["azure_app_client_secret"].sensitive
    assert azure["connector_id"].required


def test_create_adds_store(api):
    resource = _configured(AWSSecretStoreResource, api)
    api.secrets_hub.list_secret_stores.return_value = SecretStoresOutput()
    api.secrets_hub.add_secret_store.return_value = SecretStoreOutput(
        id="store-1", updated_at="2024-05-01T10:00:00Z"
    )
    diags = Diagnostics()

    state = resource.create(dict(AWS_PLAN), diags)

    assert not diags.has_error()
    assert state["id"] == "store-1"
    assert state["last_updated"] == "2024-05-01T10:00:00Z"
    api.secrets_hub.list_secret_stores.assert_called_once_with(AWS_ASM)
    body = api.secrets_hub.add_secret_store.call_args[0][0]
    assert body.type == AWS_ASM
    assert body.data == AwsAsmData(
        account_alias="prod", account_id="123456789012", region_id="us-east-1", role_name="SecretsHubRole"
    )


def test_create_adopts_matching_store(api):
    resource = _configured(AWSSecretStoreResource, api)
    api.secrets_hub.list_secret_stores.return_value = SecretStoresOutput(secret_stores=[
        SecretStoreOutput(id="other", name="aws-prod", data=AwsAsmData(account_alias="staging")),
        SecretStoreOutput(id="existing", name="aws-prod", data=AwsAsmData(account_alias="prod"),
                          updated_at="2024-01-01T00:00:00Z"),
    ])

    state = resource.create(dict(AWS_PLAN), Diagnostics())

    assert state["id"] == "existing"
    assert state["last_updated"] == "2024-01-01T00:00:00Z"
    api.secrets_hub.add_secret_store.assert_not_called()


def test_create_list_failure(api):
    resource = _configured(AWSSecretStoreResource, api)
    api.secrets_hub.list_secret_stores.side_effect = CyberArkAPIError(500, "HTTP status code 500", "/")
    diags = Diagnostics()

    assert resource.create(dict(AWS_PLAN), diags) is None
    assert diags.errors[0].summary == "Error reading secret stores"


def test_read_maps_store(api):
    resource = _configured(AWSSecretStoreResource, api)
    api.secrets_hub.get_secret_store.return_value = SecretStoreOutput(
        id="store-1", name="aws-prod", description="d", type=AWS_ASM, updated_at="t",
        data=AwsAsmData(account_alias="prod", account_id="1", region_id="eu-west-1", role_name="r"),
    )

    state = resource.read({"id": "store-1"}, Diagnostics())

    assert state["aws_account_region"] == "eu-west-1"
    assert state["last_updated"] == "t"


def test_delete_failure(api):
    resource = _configured(AWSSecretStoreResource, api)
    api.secrets_hub.delete_secret_store.side_effect = CyberArkAPIError(404, "HTTP status code 404", "/")
    diags = Diagnostics()

    resource.delete({"id": "store-1"}, diags)

    assert diags.errors[0].summary == "Error deleting AWS secret store"


def test_azure_connector_and_masked_secret(api):
    resource = _configured(AzureSecretStoreResource, api)
    api.secrets_hub.list_secret_stores.return_value = SecretStoresOutput()
    api.secrets_hub.add_secret_store.return_value = SecretStoreOutput(id="akv-1")

    resource.create(dict(AZURE_PLAN), Diagnostics())

    data = api.secrets_hub.add_secret_store.call_args[0][0].data
    assert data.connection_config == Connector(connection_type="CONNECTOR", connector_id="connector-1")
    assert data.app_client_secret == "client-secret"

    api.secrets_hub.get_secret_store.return_value = SecretStoreOutput(
        id="akv-1", name="akv-prod", type=AZURE_AKV,
        data=AzureAkvData(app_client_id="app-guid", connection_config=Connector(connection_type="PUBLIC")),
    )
    state = resource.read(dict(AZURE_PLAN, id="akv-1"), Diagnostics())
    assert state["azure_app_client_secret"] == "client-secret"
    assert state["connection_type"] == "PUBLIC"


def test_gcp_validation_errors():
    diags = Diagnostics()
    GCPSecretStoreResource().validate_config(dict(GCP_PLAN, gcp_pool_provider_id="BAD"), diags)
    assert [d.summary for d in diags] == ["Validation Error"]


def test_gcp_project_number_cannot_change(api):
    resource = _configured(GCPSecretStoreResource, api)
    diags = Diagnostics()

    result = resource.update(dict(GCP_PLAN, gcp_project_number="999"), dict(GCP_PLAN, id="gcp-1"), diags)

    assert result is None
    assert diags.errors[0].summary == "Invalid Update"
    assert diags.errors[0].detail == "GCP Project Number cannot be changed."
    api.secrets_hub.update_secret_store.assert_not_called()


def test_gcp_update_omits_number_and_type(api):
    resource = _configured(GCPSecretStoreResource, api)
    api.secrets_hub.update_secret_store.return_value = SecretStoreOutput(id="gcp-1", updated_at="later")

    state = resource.update(dict(GCP_PLAN, description="renamed"), dict(GCP_PLAN, id="gcp-1"), Diagnostics())

    assert state["last_updated"] == "later"
    store_id, body = api.secrets_hub.update_secret_store.call_args[0]
    assert store_id == "gcp-1"
    assert body.type is None
    assert body.data.gcp_project_number is None
    assert body.to_dict()["description"] == "renamed"


@pytest.mark.parametrize("data, adopted", [
    (GcpGsmData(gcp_project_name="prod-project"), True),
    (GcpGsmData(gcp_project_name="other-project"), False),
])
def test_gcp_adoption_matches_project_name(api, data, adopted):
    resource = _configured(GCPSecretStoreResource, api)
    api.secrets_hub.list_secret_stores.return_value = SecretStoresOutput(
        secret_stores=[SecretStoreOutput(id="gcp-existing", name="gcp-prod", data=data)]
    )
    api.secrets_hub.add_secret_store.return_value = SecretStoreOutput(id="gcp-new")

    state = resource.create(dict(GCP_PLAN), Diagnostics())

    assert state["id"] == ("gcp-existing" if adopted else "gcp-new")
