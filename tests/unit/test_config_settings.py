import pytest

from cyberark_provider.config import settings
from cyberark_provider.config.settings import ProviderSettings, _load_secret_from_file, load_settings


@pytest.fixture()
def run_secrets(monkeypatch, tmp_path):
    """Point /run/secrets at a temporary directory."""
    real_path = settings.Path

    def fake_path(target):
        if str(target) == "/run/secrets":
            return tmp_path
        return real_path(target)

    monkeypatch.setattr(settings, "Path", fake_path)
    return tmp_path


def test_urls_from_tenant_and_domain():
    cfg = ProviderSettings(tenant="abc1234", domain="acme")
    assert cfg.identity_url == "https://abc1234.id.cyberark.cloud"
    assert cfg.privilege_cloud_url == "https://acme.privilegecloud.cyberark.cloud"
    assert cfg.secrets_hub_url == "https://acme.secretshub.cyberark.cloud"


def test_provider_config_leaves_out_unset_and_runtime_values():
    cfg = ProviderSettings(tenant="abc1234", client_id="svc", log_level="DEBUG")
    assert cfg.provider_config() == {"tenant": "abc1234", "client_id": "svc"}


def test_load_settings_from_environment(monkeypatch, run_secrets):
    monkeypatch.setenv("CYBERARK_TENANT", "abc1234")
    monkeypatch.setenv("CYBERARK_CLIENT_ID", "svc")
    monkeypatch.setenv("CYBERARK_CLIENT_SECRET", "env-secret")
    monkeypatch.setenv("CYBERARK_DOMAIN", "acme")
    monkeypatch.setenv("CYBERARK_LOG_RESPONSES", "false")
    monkeypatch.setenv("CYBERARK_REQUEST_TIMEOUT", "12.5")

    cfg = load_settings()

    assert cfg.tenant == "abc1234"
    assert cfg.client_secret == "env-secret"
    assert cfg.pvwa_url is None
    assert cfg.log_responses is False
    assert cfg.request_timeout == 12.5


def test_overrides_win_over_environment(monkeypatch, run_secrets):
    monkeypatch.setenv("CYBERARK_TENANT", "from-env")
    monkeypatch.setenv("CYBERARK_CLIENT_SECRET", "env-secret")

    cfg = load_settings({"tenant": "from-config", "client_secret": "config-secret", "log_level": "DEBUG"})

    assert cfg.tenant == "from-config"
    assert cfg.client_secret == "config-secret"
    assert cfg.log_level == "DEBUG"


def test_run_secrets_win_over_environment(monkeypatch, run_secrets):
    (run_secrets / "cyberark_client_secret").write_text("file-secret\n")
    monkeypatch.setenv("CYBERARK_CLIENT_SECRET", "env-secret")

    assert load_settings().client_secret == "file-secret"


def test_empty_secret_file_falls_back_to_env(monkeypatch, run_secrets):
    (run_secrets / "cyberark_pvwa_password").write_text("   ")
    monkeypatch.setenv("CYBERARK_PVWA_PASSWORD", "env-password")

    assert _load_secret_from_file("cyberark_pvwa_password", "CYBERARK_PVWA_PASSWORD") == "env-password"


def test_unknown_override_is_rejected(run_secrets):
    with pytest.raises(ValueError, match="unknown provider attribute"):
        load_settings({"tennant": "typo"})


def test_malformed_timeout(monkeypatch, run_secrets):
    monkeypatch.setenv("CYBERARK_REQUEST_TIMEOUT", "soon")
    with pytest.raises(ValueError, match="CYBERARK_REQUEST_TIMEOUT"):
        load_settings()
