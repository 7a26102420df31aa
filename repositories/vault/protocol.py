"""Vault wire protocol - request envelopes and two-layer response decoding."""

from __future__ import annotations

import base64
import binascii
import json
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional

from core.exceptions import VaultError, VaultResponseError

logger = logging.getLogger(__name__)

# header.status for a complete (non-streamed) request
REQUEST_STATUS_COMPLETE = 3


class VaultFunction(str, Enum):
    CREATE_FEATURE = "createFeature"
    SEARCH_FEATURE = "searchFea"
    DELETE_FEATURE = "deleteFeature"
    CREATE_GROUP = "createGroup"

    @property
    def result_key(self) -> str:
        return f"{self.value}Res"


@dataclass(frozen=True)
class ScoredCandidate:
    feature_id: str
    score: float
    feature_info: Optional[str] = None


def service_key(endpoint: str) -> str:
    """Parameter block key: the endpoint's last path segment ('s782b4996')."""
    return endpoint.rstrip("/").rsplit("/", 1)[-1]


def build_envelope(
    app_id: str,
    service: str,
    func: VaultFunction,
    params: Dict[str, Any],
    audio_base64: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Build the request body for one vault call.

    Args:
        app_id: Vault application id
        service: Parameter block key
        func: Vault function
        params: Function parameters; None and blank string values are dropped
        audio_base64: Audio payload (omitted from the envelope when None)

    Returns:
        JSON-serializable request body
    """
    parameter: Dict[str, Any] = {"func": func.value}
    for key, value in params.items():
        if value is None:
            continue
        if isinstance(value, str) and not value.strip():
            continue
        parameter[key] = value

    body: Dict[str, Any] = {
        "header": {"app_id": app_id, "status": REQUEST_STATUS_COMPLETE},
        "parameter": {service: parameter},
    }
    if audio_base64 is not None:
        body["payload"] = {"resource": {"audio": audio_base64}}
    return body


def check_header(body: Dict[str, Any]) -> Optional[str]:
    """
    Raise on a nonzero outer header code.

    Returns:
        The vault session id (sid), if present

    Raises:
        VaultError: If header.code is nonzero
    """
    header = body.get("header") or {}
    sid = header.get("sid")
    code = header.get("code")
    if code is None:
        return sid

    try:
        code = int(code)
    except (TypeError, ValueError):
        raise VaultResponseError(f"Invalid vault response code: {code!r}", sid=sid)

    if code != 0:
        message = header.get("message")
        logger.error(f"Vault call failed | code={code} | message={message} | sid={sid}")
        raise VaultError(f"Vault call failed: {code} {message}", code=code, api_message=message, sid=sid)
    return sid


def decode_result(func: VaultFunction, body: Dict[str, Any]) -> Dict[str, Any]:
    """
    Extract and decode payload.<func>Res.text (base64 JSON).

    Raises:
        VaultResponseError: If the result node is missing or not decodable
    """
    sid = (body.get("header") or {}).get("sid")
    node = (body.get("payload") or {}).get(func.result_key) or {}
    text = node.get("text")
    if not text:
        raise VaultResponseError(f"Vault response has no {func.result_key}.text", sid=sid)

    try:
        decoded = base64.b64decode(text, validate=True).decode("utf-8")
        result = json.loads(decoded)
    except (binascii.Error, UnicodeDecodeError, ValueError) as e:
        raise VaultResponseError(f"Cannot decode {func.result_key}: {e}", sid=sid) from e

    if not isinstance(result, dict):
        raise VaultResponseError(f"Unexpected {func.result_key} document: {type(result).__name__}", sid=sid)
    return result


def parse_score_list(result: Dict[str, Any]) -> List[ScoredCandidate]:
    """Scored candidates from a searchFea result, in vault order."""
    candidates: List[ScoredCandidate] = []
    for item in result.get("scoreList") or []:
        if not isinstance(item, dict) or not item.get("featureId") or item.get("score") is None:
            continue
        try:
            score = float(item["score"])
        except (TypeError, ValueError):
            logger.warning(f"Skipping candidate with invalid score | item={item}")
            continue
        candidates.append(
            ScoredCandidate(
                feature_id=str(item["featureId"]),
                score=score,
                feature_info=item.get("featureInfo"),
            )
        )
    return candidates


def encode_result(result: Dict[str, Any]) -> str:
    """Inverse of decode_result's inner layer."""
    return base64.b64encode(json.dumps(result).encode("utf-8")).decode("ascii")
