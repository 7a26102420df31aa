"""
Unit Test: Signed Vault Client against a fake vault
"""

import httpx
import pytest

from core.exceptions import VaultError
from repositories.vault.client import SignedVaultClient
from tests.conftest import API_KEY, APP_ID, VAULT_ENDPOINT, VAULT_HOST


def test_create_feature_sends_signed_json_post(vault_client, fake_vault):
    result = vault_client.create_feature("g1", "user_1_abc", "QUJD", feature_info="mic")

    assert result == {"featureId": "user_1_abc"}
    request = fake_vault.calls("createFeature")[0]
    headers = request["headers"]
    assert headers["host"] == VAULT_HOST
    assert headers["content-type"] == "application/json; charset=utf-8"
    assert headers["date"].endswith("GMT")
    assert f'api_key="{API_KEY}"' in headers["authorization"]
    assert request["body"]["header"] == {"app_id": APP_ID, "status": 3}
    assert request["body"]["parameter"]["s782b4996"]["featureInfo"] == "mic"
    assert request["body"]["payload"]["resource"]["audio"] == "QUJD"


def test_search_feature_sends_top_k(vault_client, fake_vault):
    vault_client.create_feature("g1", "f1", "QUJD")

    result = vault_client.search_feature("g1", "QUJD", top_k=5)

    assert result["scoreList"][0]["featureId"] == "f1"
    assert fake_vault.calls("searchFea")[0]["body"]["parameter"]["s782b4996"]["topK"] == 5


def test_delete_feature_has_no_payload(vault_client, fake_vault):
    vault_client.create_feature("g1", "f1", "QUJD")

    vault_client.delete_feature("g1", "f1")

    body = fake_vault.calls("deleteFeature")[0]["body"]
    assert "payload" not in body
    assert "f1" not in fake_vault.features


def test_create_group(vault_client, fake_vault):
    result = vault_client.create_group("g1", "Group one")

    assert result["groupId"] == "g1"
    assert fake_vault.groups == {"g1": "Group one"}


def test_vault_error_code_is_raised_with_sid(vault_client, fake_vault):
    fake_vault.fail_next["searchFea"] = (10205, "engine busy")

    with pytest.raises(VaultError) as excinfo:
        vault_client.search_feature("g1", "QUJD")

    assert excinfo.value.code == 10205
    assert excinfo.value.is_system_error
    assert excinfo.value.sid.startswith("sid-")


def test_wrong_secret_is_rejected_as_authentication_error(fake_vault):
    client = SignedVaultClient(
        app_id=APP_ID,
        api_key=API_KEY,
        api_secret="wrong-secret",
        host=VAULT_HOST,
        endpoint=VAULT_ENDPOINT,
        transport=httpx.MockTransport(fake_vault.handler),
    )

    with pytest.raises(VaultError) as excinfo:
        client.create_group("g1", "Group one")

    assert excinfo.value.is_authentication_error
    client.close()


def test_non_200_status_carries_raw_body(vault_client, fake_vault):
    fake_vault.http_status = 503

    with pytest.raises(VaultError) as excinfo:
        vault_client.delete_feature("g1", "f1")

    assert excinfo.value.code is None
    assert excinfo.value.error_class == "transport"
    assert excinfo.value.api_message == "upstream unavailable"


def test_connection_failure_becomes_vault_error():
    def refuse(request):
        raise httpx.ConnectError("connection refused", request=request)

    client = SignedVaultClient("a", "k", "s", host=VAULT_HOST, transport=httpx.MockTransport(refuse))

    with pytest.raises(VaultError) as excinfo:
        client.search_feature("g1", "QUJD")

    assert excinfo.value.code is None
    assert isinstance(excinfo.value.__cause__, httpx.ConnectError)
    client.close()


def test_timeout_becomes_vault_error():
    def slow(request):
        raise httpx.ReadTimeout("read timed out", request=request)

    client = SignedVaultClient("a", "k", "s", host=VAULT_HOST, transport=httpx.MockTransport(slow))

    with pytest.raises(VaultError, match="timed out"):
        client.create_feature("g1", "f1", "QUJD")
    client.close()


def test_invalid_json_response_is_a_vault_error():
    client = SignedVaultClient(
        "a", "k", "s", host=VAULT_HOST,
        transport=httpx.MockTransport(lambda request: httpx.Response(200, text="<html>")),
    )

    with pytest.raises(VaultError):
        client.create_group("g1", "n")
    client.close()


def test_timeouts_and_url_are_configured():
    client = SignedVaultClient(
        "a", "k", "s",
        host="api.xf-yun.com",
        connect_timeout_ms=30000,
        read_timeout_ms=60000,
    )

    assert client.url == "https://api.xf-yun.com/v1/private/s782b4996"
    assert client._client.timeout.connect == 30.0
    assert client._client.timeout.read == 60.0
    client.close()
