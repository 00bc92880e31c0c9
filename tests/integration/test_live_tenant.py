"""Read-only checks against a live tenant.

Set CYBERARK_TENANT, CYBERARK_DOMAIN, CYBERARK_CLIENT_ID and
CYBERARK_CLIENT_SECRET (or /run/secrets/cyberark_client_secret) to run them:

    pytest -m integration
"""
import pytest

from cyberark_provider.config import load_settings
from cyberark_provider.core.cyberark import AWS_ASM
from cyberark_provider.provider import CyberArkProvider, Diagnostics

pytestmark = pytest.mark.integration


@pytest.fixture(scope="module")
def live_settings():
    settings = load_settings()
    if not (settings.tenant and settings.domain and settings.client_id and settings.client_secret):
        pytest.skip("CyberArk tenant credentials not configured")
    return settings


@pytest.fixture()
def live_api(live_settings):
    provider = CyberArkProvider()
    diags = Diagnostics()
    api = provider.configure(live_settings.provider_config(), diags, live_settings)
    assert not diags.has_error(), [str(d) for d in diags]
    yield api
    provider.close()


def test_identity_token_is_issued(live_api):
    assert live_api.token_text


def test_list_aws_secret_stores(live_api):
    stores = live_api.secrets_hub.list_secret_stores(AWS_ASM)
    assert all(store.type == AWS_ASM for store in stores.secret_stores)


def test_list_sync_policies(live_api):
    response = live_api.secrets_hub.get_sync_policies()
    assert all(policy.id for policy in response.policies)
