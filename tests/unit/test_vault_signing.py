"""
Unit Test: Vault Request Signing and Wire Protocol
"""

import base64
import hashlib
import hmac
import json

import pytest

from core.exceptions import VaultError, VaultResponseError
from repositories.vault.protocol import (
    VaultFunction,
    build_envelope,
    check_header,
    decode_result,
    encode_result,
    parse_score_list,
    service_key,
)
from repositories.vault.signing import (
    RequestSigner,
    authorization_header,
    rfc1123_date,
    signature_origin,
)

FIXED_DATE = "Mon, 19 Oct 2026 08:00:00 GMT"


def test_rfc1123_date_format():
    assert rfc1123_date(0) == "Thu, 01 Jan 1970 00:00:00 GMT"


def test_signature_origin_layout():
    origin = signature_origin("api.xf-yun.com", FIXED_DATE, "post", "/v1/private/s782b4996")

    assert origin == (
        "host: api.xf-yun.com\n"
        f"date: {FIXED_DATE}\n"
        "POST /v1/private/s782b4996 HTTP/1.1"
    )


def test_signed_headers_are_deterministic_for_a_fixed_date():
    signer = RequestSigner("key123", "secret456", "api.xf-yun.com")

    first = signer.headers("POST", "/v1/private/s782b4996", date=FIXED_DATE)
    second = signer.headers("POST", "/v1/private/s782b4996", date=FIXED_DATE)

    origin = signature_origin("api.xf-yun.com", FIXED_DATE, "POST", "/v1/private/s782b4996")
    expected_sig = base64.b64encode(
        hmac.new(b"secret456", origin.encode("utf-8"), hashlib.sha256).digest()
    ).decode("ascii")

    assert first == second
    assert first["Host"] == "api.xf-yun.com"
    assert first["Date"] == FIXED_DATE
    assert first["Authorization"] == (
        'api_key="key123",algorithm="hmac-sha256",'
        f'headers="host date request-line",signature="{expected_sig}"'
    )


def test_signature_changes_with_date():
    signer = RequestSigner("key", "secret", "h")

    a = signer.headers("POST", "/p", date=FIXED_DATE)["Authorization"]
    b = signer.headers("POST", "/p", date="Tue, 20 Oct 2026 08:00:00 GMT")["Authorization"]

    assert a != b


def test_signer_repr_hides_secret():
    assert "secret456" not in repr(RequestSigner("key123", "secret456", "host"))


def test_authorization_header_format():
    assert authorization_header("k", "s") == (
        'api_key="k",algorithm="hmac-sha256",headers="host date request-line",signature="s"'
    )


def test_service_key_is_last_path_segment():
    assert service_key("/v1/private/s782b4996") == "s782b4996"
    assert service_key("/v1/private/s782b4996/") == "s782b4996"


def test_create_feature_envelope():
    body = build_envelope(
        "app1", "s782b4996", VaultFunction.CREATE_FEATURE,
        {"groupId": "g", "featureId": "f", "featureInfo": "lecture-hall-mic"},
        audio_base64="QUJD",
    )

    assert body == {
        "header": {"app_id": "app1", "status": 3},
        "parameter": {
            "s782b4996": {
                "func": "createFeature",
                "groupId": "g",
                "featureId": "f",
                "featureInfo": "lecture-hall-mic",
            }
        },
        "payload": {"resource": {"audio": "QUJD"}},
    }


def test_delete_and_group_envelopes_have_no_payload():
    delete = build_envelope("a", "s", VaultFunction.DELETE_FEATURE, {"groupId": "g", "featureId": "f"})
    group = build_envelope("a", "s", VaultFunction.CREATE_GROUP, {"groupId": "g", "groupName": "n"})

    assert "payload" not in delete
    assert "payload" not in group


def test_blank_optional_parameters_are_omitted():
    body = build_envelope(
        "a", "s", VaultFunction.CREATE_GROUP,
        {"groupId": "g", "groupName": "n", "groupInfo": "   "},
    )

    assert "groupInfo" not in body["parameter"]["s"]


def test_check_header_returns_sid_on_success():
    assert check_header({"header": {"code": 0, "sid": "abc"}}) == "abc"


@pytest.mark.parametrize(
    "code, error_class",
    [(10111, "authentication"), (10105, "parameter"), (10205, "system"), (23005, "other")],
)
def test_check_header_raises_with_code_message_and_sid(code, error_class):
    with pytest.raises(VaultError) as excinfo:
        check_header({"header": {"code": code, "message": "boom", "sid": "sid-1"}})

    err = excinfo.value
    assert err.code == code
    assert err.api_message == "boom"
    assert err.sid == "sid-1"
    assert err.error_class == error_class
    assert "sid-1" in err.detailed_message()


def test_authentication_code_also_falls_in_parameter_range():
    err = VaultError("x", code=10111)

    assert err.is_authentication_error
    assert err.is_parameter_error
    assert err.error_class == "authentication"


def test_decode_result_unwraps_base64_json():
    body = {"payload": {"searchFeaRes": {"text": encode_result({"scoreList": []})}}}

    assert decode_result(VaultFunction.SEARCH_FEATURE, body) == {"scoreList": []}


def test_decode_result_missing_node_raises():
    with pytest.raises(VaultResponseError):
        decode_result(VaultFunction.CREATE_FEATURE, {"header": {"code": 0}, "payload": {}})


def test_decode_result_invalid_text_raises():
    body = {"payload": {"deleteFeatureRes": {"text": "!!not base64!!"}}}

    with pytest.raises(VaultResponseError):
        decode_result(VaultFunction.DELETE_FEATURE, body)


def test_decode_result_rejects_non_object_json():
    text = base64.b64encode(json.dumps([1, 2]).encode()).decode()

    with pytest.raises(VaultResponseError):
        decode_result(VaultFunction.CREATE_GROUP, {"payload": {"createGroupRes": {"text": text}}})


def test_parse_score_list_skips_malformed_entries():
    candidates = parse_score_list(
        {
            "scoreList": [
                {"featureId": "a", "score": 0.9, "featureInfo": "x"},
                {"score": 0.8},
                {"featureId": "b", "score": "0.7"},
                {"featureId": "c", "score": "high"},
                {"featureId": "d"},
                {"featureId": "e", "score": None},
            ]
        }
    )

    assert [(c.feature_id, c.score) for c in candidates] == [("a", 0.9), ("b", 0.7)]
    assert candidates[0].feature_info == "x"


def test_parse_score_list_without_scores():
    assert parse_score_list({}) == []
