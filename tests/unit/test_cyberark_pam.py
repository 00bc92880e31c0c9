import pytest

from cyberark_provider.core.cyberark import (
    CyberArkAPIError,
    InvalidPermissionLevelError,
    ResourceAlreadyExistsError,
    build_filter_query,
    generate_account_patch,
    new_pam_api,
)
from cyberark_provider.core.cyberark.models import (
    AccountProps,
    Credential,
    CredentialResponse,
    SafeData,
    SecretManagement,
)

BASE = "https://acme.privilegecloud.cyberark.cloud"


@pytest.fixture()
def pam():
    return new_pam_api(BASE, bytearray(b"token"), log_response=False)


# ─────────────────────────────────────────────────────────────────────────────
# Helpers
# ─────────────────────────────────────────────────────────────────────────────
@pytest.mark.parametrize("search, filters, expected", [
    ("", None, {}),
    ("", ["safeName eq Vault"], {"filter": "safeName eq Vault"}),
    ("admin", ["safeName eq Vault", "modificationTime gte 1"],
     {"filter": "safeName eq Vault AND modificationTime gte 1", "search": "admin"}),
])
def test_build_filter_query(search, filters, expected):
    assert build_filter_query(search, filters) == expected


def test_patch_replaces_changed_scalars_only():
    existing = CredentialResponse(name="old", address="10.0.0.1", user_name="admin", platform_id="AWS")
    desired = Credential(name="new", address="10.0.0.1", user_name=None, platform_id="AWS")

    assert generate_account_patch(existing, desired) == [{"op": "replace", "path": "/name", "value": "new"}]


def test_patch_adds_or_replaces_platform_properties():
    desired = Credential(platform_account_properties=AccountProps(port="5432"))

    added = generate_account_patch(CredentialResponse(), desired)
    replaced = generate_account_patch(
        CredentialResponse(platform_account_properties=AccountProps(port="1521")), desired
    )
    unchanged = generate_account_patch(
        CredentialResponse(platform_account_properties=AccountProps(port="5432")), desired
    )

    assert added == [{"op": "add", "path": "/platformAccountProperties", "value": {"port": "5432"}}]
    assert replaced == [{"op": "replace", "path": "/platformAccountProperties", "value": {"port": "5432"}}]
    assert unchanged == []


def test_patch_secret_management_flags():
    existing = CredentialResponse(secret_management=SecretManagement(automatic_management_enabled=True))
    desired = Credential(secret_management=SecretManagement(
        automatic_management_enabled=False,
        manual_management_reason="Managed by Secrets Hub",
    ))

    assert generate_account_patch(existing, desired) == [
        {"op": "replace", "path": "/secretManagement/automaticManagementEnabled", "value": False},
        {"op": "replace", "path": "/secretManagement/manualManagementReason", "value": "Managed by Secrets Hub"},
    ]


def test_patch_requires_both_accounts():
    with pytest.raises(ValueError):
        generate_account_patch(None, Credential())


# ─────────────────────────────────────────────────────────────────────────────
# Accounts
# ─────────────────────────────────────────────────────────────────────────────
def test_add_account(http, pam):
    http.add(201, {"id": "12_3", "name": "aws-key", "safeName": "Vault"})

    account = pam.add_account(Credential(name="aws-key", safe_name="Vault", secret="s"))

    assert account.id == "12_3"
    assert http.last["method"] == "POST"
    assert http.last["url"] == f"{BASE}/PasswordVault/API/Accounts"
    assert http.json_body()["secret"] == "s"


def test_add_account_conflict_raises_already_exists(http, pam):
    http.add(409, {"ErrorCode": "PASWS027E"})

    with pytest.raises(ResourceAlreadyExistsError, match=r"account \[aws-key\] already exists in safe \[Vault\]"):
        pam.add_account(Credential(name="aws-key", safe_name="Vault"))


def test_add_account_error_carries_body(http, pam):
    http.add(400, {"ErrorMessage": "Platform not found"})

    with pytest.raises(CyberArkAPIError) as excinfo:
        pam.add_account(Credential(name="aws-key"))

    assert excinfo.value.status_code == 400
    assert "failed to add account, expected status code 201, got 400" in str(excinfo.value)
    assert "Platform not found" in str(excinfo.value)


def test_filter_accounts_sends_filter_query(http, pam):
    http.add(200, {"value": [{"id": "1", "name": "a"}], "count": 1})

    found = pam.filter_accounts(filters=["safeName eq Vault"])

    assert found.count == 1
    assert http.last["url"] == f"{BASE}/PasswordVault/api/accounts"
    assert http.last["params"] == {"filter": "safeName eq Vault"}


def test_update_account_skips_patch_when_nothing_changed(http, pam):
    http.add(200, {"id": "12_3", "name": "aws-key"})

    account = pam.update_account("12_3", Credential(name="aws-key"))

    assert account.id == "12_3"
    assert len(http.calls) == 1


def test_update_account_sends_json_patch(http, pam):
    http.add(200, {"id": "12_3", "name": "aws-key", "address": "old"})
    http.add(200, {"id": "12_3", "name": "aws-key", "address": "new"})

    account = pam.update_account("12_3", Credential(address="new"))

    assert account.address == "new"
    assert http.last["method"] == "PATCH"
    assert http.json_body() == [{"op": "replace", "path": "/address", "value": "new"}]


def test_delete_account(http, pam):
    http.add(204)
    pam.delete_account("12_3")
    assert http.last["method"] == "DELETE"
    assert http.last["url"].endswith("/PasswordVault/API/Accounts/12_3")


def test_delete_account_failure(http, pam):
    http.add(404, "Account not found")
    with pytest.raises(CyberArkAPIError, match="failed to delete account, expected status code 204, got 404"):
        pam.delete_account("12_3")


# ─────────────────────────────────────────────────────────────────────────────
# Safes and members
# ─────────────────────────────────────────────────────────────────────────────
def test_add_safe_omits_member_fields_it_does_not_know(http, pam):
    http.add(201, {"safeName": "Vault", "safeUrlId": "Vault", "safeNumber": 7})

    safe = pam.add_safe(SafeData(safe_name="Vault", number_of_days_retention=7, level="full"))

    assert safe.safe_number == 7
    assert http.json_body() == {"safeName": "Vault", "numberOfDaysRetention": 7}


def test_add_safe_conflict_returns_none(http, pam):
    http.add(409, {})
    assert pam.add_safe(SafeData(safe_name="Vault")) is None


def test_get_update_delete_safe(http, pam):
    http.add(200, {"safeName": "Vault", "safeUrlId": "Vault"})
    http.add(200, {"safeName": "Vault", "description": "updated"})
    http.add(204)

    assert pam.get_safe("Vault").safe_url_id == "Vault"
    assert pam.update_safe("Vault", SafeData(safe_name="Vault", description="updated")).description == "updated"
    pam.delete_safe("Vault")

    assert [call["method"] for call in http.calls] == ["GET", "PUT", "DELETE"]


def test_add_safe_member_posts_permission_block(http, pam):
    http.add(201, {"memberName": "admins", "memberType": "Group"})

    member = pam.add_safe_member(SafeData(safe_name="Vault", member_name="admins", member_type="Group", level="read"))

    assert member.member_name == "admins"
    assert http.last["url"] == f"{BASE}/PasswordVault/API/Safes/Vault/Members"
    body = http.json_body()
    assert body["memberName"] == "admins"
    assert body["permissions"]["listAccounts"] is True
    assert body["permissions"]["manageSafe"] is False


def test_add_safe_member_invalid_level_sends_nothing(http, pam):
    with pytest.raises(InvalidPermissionLevelError):
        pam.add_safe_member(SafeData(safe_name="Vault", member_name="x", member_type="User", level="owner"))
    assert http.calls == []


def test_update_safe_member(http, pam):
    http.add(200, {"memberName": "admins"})

    pam.update_safe_member(SafeData(safe_name="Vault", member_name="admins", member_type="Group", level="manager"))

    assert http.last["method"] == "PUT"
    assert http.last["url"].endswith("/Safes/Vault/Members/admins")


def test_delete_safe_member_tolerates_missing_member(http, pam, caplog):
    http.add(404, {})

    with caplog.at_level("WARNING"):
        pam.delete_safe_member("Vault", "admins")

    assert "Member [admins] not found in safe [Vault]" in caplog.text


def test_pvwa_client_sends_raw_token(http):
    http.add(200, {"safeName": "Vault"})
    pvwa = new_pam_api("https://pvwa.example.com", bytearray(b"session"), with_bearer_token=False)

    pvwa.get_safe("Vault")

    assert http.last["headers"]["Authorization"] == "session"
