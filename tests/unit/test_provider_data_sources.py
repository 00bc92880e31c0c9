from cyberark_provider.provider import Diagnostics
from cyberark_provider.provider.data_sources import AuthTokenDataSource


def test_auth_token_exposes_identity_token(api):
    data_source = AuthTokenDataSource()
    data_source.configure(api)

    assert data_source.read({}, Diagnostics()) == {"token": "identity-token"}
    assert data_source.full_type_name == "cyberark_auth_token"
    assert data_source.schema().attributes["token"].sensitive


def test_auth_token_without_token(api):
    api.auth_token = None
    data_source = AuthTokenDataSource()
    data_source.configure(api)
    diags = Diagnostics()

    assert data_source.read({}, diags) is None
    assert diags.has_error()
