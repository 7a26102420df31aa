"""
Unit Test: Result types and client context
"""

from services.results import ClientContext, DeleteResult, IdentifiedCandidate, IdentifyResult


def test_forwarded_for_first_hop_wins():
    ctx = ClientContext.from_headers(
        {"X-Forwarded-For": "203.0.113.5, 10.0.0.1", "X-Real-IP": "10.0.0.2", "User-Agent": "curl/8"},
        remote_addr="127.0.0.1",
    )

    assert ctx.client_ip == "203.0.113.5"
    assert ctx.user_agent == "curl/8"


def test_real_ip_used_when_forwarded_for_is_unknown():
    ctx = ClientContext.from_headers({"x-forwarded-for": "unknown", "x-real-ip": "10.0.0.2"}, "127.0.0.1")

    assert ctx.client_ip == "10.0.0.2"


def test_remote_address_is_last_resort():
    ctx = ClientContext.from_headers({"X-Real-IP": "UNKNOWN"}, "127.0.0.1")

    assert ctx.client_ip == "127.0.0.1"
    assert ctx.user_agent is None


def test_missing_headers():
    assert ClientContext.from_headers(None).client_ip is None


def test_identify_result_match_helpers():
    candidate = IdentifiedCandidate(user_id=1, feature_id="f", confidence_score=0.9)
    matched = IdentifyResult(success=True, request_id="r", results=[candidate])
    empty = IdentifyResult(success=True, request_id="r")

    assert matched.matched and matched.best_match == candidate
    assert not empty.matched and empty.best_match is None


def test_delete_result_truthiness():
    assert not DeleteResult(success=False, user_id=1)
    assert DeleteResult(success=True, user_id=1, deleted_count=1)
