import pytest
import requests

from cyberark_provider.core.cyberark import AWS_ASM, CyberArkAPIError, CyberArkError, new_secrets_hub_api
from cyberark_provider.core.cyberark.models import (
    AwsAsmData,
    Filter,
    PolicyInput,
    SafeDataFilter,
    SecretStoreInput,
    Source,
    Target,
    TransformationValue,
)

BASE = "https://acme.secretshub.cyberark.cloud"


@pytest.fixture()
def hub():
    return new_secrets_hub_api(BASE, bytearray(b"token"), log_response=False)


def _store_input():
    return SecretStoreInput(
        name="aws-prod",
        description="prod",
        type=AWS_ASM,
        data=AwsAsmData(account_alias="prod", account_id="123456789012", region_id="us-east-1", role_name="SH"),
    )


def _policy_input():
    return PolicyInput(
        name="sync-vault",
        description=None,
        source=Source(id="store-pam"),
        target=Target(id="store-aws"),
        filter=Filter(type="PAM_SAFE", data=SafeDataFilter(safe_name="Vault")),
        transformation=TransformationValue(predefined="password_only_plain_text"),
    )


# ─────────────────────────────────────────────────────────────────────────────
# Secret stores
# ─────────────────────────────────────────────────────────────────────────────
def test_add_secret_store(http, hub):
    http.add(201, {"id": "store-1", "type": AWS_ASM, "name": "aws-prod", "data": {"accountAlias": "prod"}})

    created = hub.add_secret_store(_store_input())

    assert created.id == "store-1"
    assert http.last["headers"]["Authorization"] == "Bearer token"
    assert http.json_body()["data"] == {
        "accountAlias": "prod",
        "accountId": "123456789012",
        "regionId": "us-east-1",
        "roleName": "SH",
    }


def test_add_secret_store_without_id(http, hub):
    http.add(201, {"name": "aws-prod"})
    with pytest.raises(CyberArkError, match="missing ID"):
        hub.add_secret_store(_store_input())


def test_add_secret_store_error_format(http, hub):
    http.add(400, {"message": "invalid role"})

    with pytest.raises(CyberArkAPIError) as excinfo:
        hub.add_secret_store(_store_input())

    assert str(excinfo.value) == 'HTTP status code 400\n{\n  "message": "invalid role"\n}'


def test_list_secret_stores_filters_by_type(http, hub):
    http.add(200, {"secretStores": [{"id": "store-1", "type": AWS_ASM, "data": {"accountAlias": "prod"}}]})

    stores = hub.list_secret_stores(AWS_ASM)

    assert stores.secret_stores[0].data.account_alias == "prod"
    assert http.last["params"] == {"filter": "type EQ AWS_ASM"}


def test_list_secret_stores_unknown_type(http, hub):
    with pytest.raises(ValueError):
        hub.list_secret_stores("HASHI_VAULT")
    assert http.calls == []


def test_update_and_delete_secret_store(http, hub):
    http.add(200, {"id": "store-1", "name": "aws-prod"})
    http.add(204)

    hub.update_secret_store("store-1", _store_input())
    hub.delete_secret_store("store-1")

    assert [(c["method"], c["url"]) for c in http.calls] == [
        ("PATCH", f"{BASE}/api/secret-stores/store-1"),
        ("DELETE", f"{BASE}/api/secret-stores/store-1"),
    ]


@pytest.mark.parametrize("action", ["enable", "disable"])
def test_set_secret_store_state(http, hub, action):
    http.add(204)

    hub.set_secret_store_state("store-1", action)

    assert http.last["method"] == "PUT"
    assert http.last["url"] == f"{BASE}/api/secret-stores/store-1/state"
    assert http.json_body() == {"action": action}


def test_set_secret_store_state_rejects_unknown_action(http, hub):
    with pytest.raises(ValueError):
        hub.set_secret_store_state("store-1", "pause")
    assert http.calls == []


@pytest.mark.parametrize("status", [200, 201, 202])
def test_trigger_scan(http, hub, status):
    http.add(status, {})

    hub.trigger_scan(["store-1", "store-2"])

    assert http.last["url"] == f"{BASE}/api/scan-definitions/secret-stores/default/scan"
    assert http.json_body() == {"scope": {"secretStoresIds": ["store-1", "store-2"]}}


def test_trigger_scan_requires_ids(hub):
    with pytest.raises(ValueError):
        hub.trigger_scan([])


def test_get_secret_filter(http, hub):
    http.add(200, {"id": "filter-1", "type": "PAM_SAFE", "data": {"safeName": "Vault"}})

    secret_filter = hub.get_secret_filter("store-pam", "filter-1")

    assert secret_filter.data.safe_name == "Vault"
    assert http.last["url"] == f"{BASE}/api/secret-stores/store-pam/filters/filter-1"


# ─────────────────────────────────────────────────────────────────────────────
# Sync policies
# ─────────────────────────────────────────────────────────────────────────────
def test_add_and_get_sync_policies(http, hub):
    http.add(201, {"id": "policy-1", "name": "sync-vault"})
    http.add(200, {"id": "policy-1", "filter": {"id": "filter-1"}})
    http.add(200, {"count": 1, "policies": [{"id": "policy-1"}]})

    assert hub.add_sync_policy(_policy_input()).id == "policy-1"
    body = http.json_body(0)
    assert body["filter"] == {"type": "PAM_SAFE", "data": {"safeName": "Vault"}}
    assert body["transformation"] == {"predefined": "password_only_plain_text"}

    assert hub.get_sync_policy("policy-1").filter.id == "filter-1"
    assert hub.get_sync_policies().count == 1
    assert http.calls[1]["params"] == {"projection": "REGULAR"}
    assert http.calls[2]["params"] == {"projection": "REGULAR"}


def test_delete_sync_policy_disables_first(http, hub):
    http.add(200, {})
    http.add(200, {})

    hub.delete_sync_policy("policy-1")

    assert [(c["method"], c["url"]) for c in http.calls] == [
        ("PUT", f"{BASE}/api/policies/policy-1/state"),
        ("DELETE", f"{BASE}/api/policies/policy-1"),
    ]
    assert http.json_body(0) == {"action": "disable"}


def test_delete_sync_policy_continues_when_disable_fails(http, hub, caplog):
    http.add(409, {"message": "already disabled"})
    http.add(200, {})

    with caplog.at_level("WARNING"):
        hub.delete_sync_policy("policy-1")

    assert "Failed to disable policy" in caplog.text
    assert http.last["method"] == "DELETE"


def test_delete_sync_policy_continues_when_disable_cannot_connect(http, hub):
    http.raise_next(requests.ConnectionError("reset"))
    http.add(200, {})

    hub.delete_sync_policy("policy-1")

    assert http.last["method"] == "DELETE"


def test_update_sync_policy_deletes_then_creates(http, hub):
    http.add(200, {})
    http.add(200, {})
    http.add(201, {"id": "policy-2", "name": "sync-vault"})

    updated = hub.update_sync_policy("policy-1", _policy_input())

    assert updated.id == "policy-2"
    assert [c["method"] for c in http.calls] == ["PUT", "DELETE", "POST"]


def test_update_sync_policy_wraps_delete_failure(http, hub):
    http.add(200, {})
    http.add(500, "boom")

    with pytest.raises(CyberArkError, match="failed to delete existing policy during update"):
        hub.update_sync_policy("policy-1", _policy_input())


def test_update_sync_policy_wraps_create_failure(http, hub):
    http.add(200, {})
    http.add(200, {})
    http.add(400, {"message": "bad filter"})

    with pytest.raises(CyberArkError, match="failed to create new policy during update"):
        hub.update_sync_policy("policy-1", _policy_input())
