"""Signed HTTP client for the biometric feature vault.

Wraps the vault's four functions (createFeature, searchFea, deleteFeature,
createGroup) behind IVaultClient. Every request is HMAC-signed; every response
is checked at the header level and then decoded from its base64 result node.
The client never retries.
"""

from __future__ import annotations

import json
import logging
import time
from typing import Any, Dict, Optional

import httpx

from app.config import Config
from core.exceptions import VaultError, VaultResponseError
from core.metrics import vault_call_duration, vault_errors
from repositories.interfaces.vault_client import IVaultClient
from repositories.vault.protocol import (
    VaultFunction,
    build_envelope,
    check_header,
    decode_result,
    service_key,
)
from repositories.vault.signing import RequestSigner

logger = logging.getLogger(__name__)

CONTENT_TYPE = "application/json; charset=utf-8"


class SignedVaultClient(IVaultClient):
    """
    Synchronous vault client.

    Attributes:
        app_id: Vault application id
        host: Vault host (signed as the Host header)
        endpoint: Request path
        url: Full request URL
    """

    def __init__(
        self,
        app_id: str,
        api_key: str,
        api_secret: str,
        host: str = "api.xf-yun.com",
        endpoint: str = "/v1/private/s782b4996",
        scheme: str = "https",
        connect_timeout_ms: int = 30000,
        read_timeout_ms: int = 60000,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        """Initialize vault client.

        Args:
            app_id: Vault application id
            api_key: Public key embedded in the Authorization header
            api_secret: HMAC secret
            host: Vault host
            endpoint: Request path
            scheme: URL scheme
            connect_timeout_ms: Connect timeout in milliseconds
            read_timeout_ms: Read timeout in milliseconds
            transport: Optional httpx transport (tests inject a MockTransport)
        """
        self.app_id = app_id
        self.host = host
        self.endpoint = endpoint
        self.url = f"{scheme}://{host}{endpoint}"
        self._service = service_key(endpoint)
        self._signer = RequestSigner(api_key, api_secret, host)

        timeout = httpx.Timeout(read_timeout_ms / 1000.0, connect=connect_timeout_ms / 1000.0)
        self._client = httpx.Client(timeout=timeout, transport=transport)

        logger.info(
            f"Vault client initialized | url={self.url} | app_id={app_id} | "
            f"connect_timeout_ms={connect_timeout_ms} | read_timeout_ms={read_timeout_ms}"
        )

    @classmethod
    def from_config(cls, transport: Optional[httpx.BaseTransport] = None) -> "SignedVaultClient":
        return cls(
            app_id=Config.VOICEPRINT_APP_ID,
            api_key=Config.VOICEPRINT_API_KEY,
            api_secret=Config.VOICEPRINT_API_SECRET,
            host=Config.VOICEPRINT_API_HOST,
            endpoint=Config.VOICEPRINT_API_ENDPOINT,
            scheme=Config.VOICEPRINT_API_SCHEME,
            connect_timeout_ms=Config.VOICEPRINT_CONNECT_TIMEOUT_MS,
            read_timeout_ms=Config.VOICEPRINT_READ_TIMEOUT_MS,
            transport=transport,
        )

    def close(self) -> None:
        """Close HTTP client and release resources."""
        self._client.close()
        logger.info("Vault client closed")

    def create_feature(
        self,
        group_id: str,
        feature_id: str,
        audio_base64: str,
        feature_info: Optional[str] = None,
    ) -> Dict[str, Any]:
        logger.info(f"Creating vault feature | group_id={group_id} | feature_id={feature_id}")
        return self._call(
            VaultFunction.CREATE_FEATURE,
            {"groupId": group_id, "featureId": feature_id, "featureInfo": feature_info},
            audio_base64=audio_base64,
        )

    def search_feature(self, group_id: str, audio_base64: str, top_k: int = 5) -> Dict[str, Any]:
        logger.info(f"Searching vault features | group_id={group_id} | top_k={top_k}")
        return self._call(
            VaultFunction.SEARCH_FEATURE,
            {"groupId": group_id, "topK": top_k},
            audio_base64=audio_base64,
        )

    def delete_feature(self, group_id: str, feature_id: str) -> Dict[str, Any]:
        logger.info(f"Deleting vault feature | group_id={group_id} | feature_id={feature_id}")
        return self._call(
            VaultFunction.DELETE_FEATURE,
            {"groupId": group_id, "featureId": feature_id},
        )

    def create_group(
        self,
        group_id: str,
        group_name: str,
        group_info: Optional[str] = None,
    ) -> Dict[str, Any]:
        logger.info(f"Creating vault group | group_id={group_id} | group_name={group_name}")
        return self._call(
            VaultFunction.CREATE_GROUP,
            {"groupId": group_id, "groupName": group_name, "groupInfo": group_info},
        )

    def _call(
        self,
        func: VaultFunction,
        params: Dict[str, Any],
        audio_base64: Optional[str] = None,
    ) -> Dict[str, Any]:
        body = build_envelope(self.app_id, self._service, func, params, audio_base64)
        start_time = time.time()
        try:
            result = self._send(func, body)
        except VaultError as e:
            vault_errors.labels(operation=func.value, error_class=e.error_class).inc()
            raise
        finally:
            elapsed = time.time() - start_time
            vault_call_duration.labels(operation=func.value).observe(elapsed)
            logger.info(f"Vault call finished | func={func.value} | elapsed_ms={elapsed * 1000:.1f}")
        return result

    def _send(self, func: VaultFunction, body: Dict[str, Any]) -> Dict[str, Any]:
        headers = self._signer.headers("POST", self.endpoint)
        headers["Content-Type"] = CONTENT_TYPE

        try:
            resp = self._client.post(
                self.url,
                content=json.dumps(body).encode("utf-8"),
                headers=headers,
            )
        except httpx.TimeoutException as e:
            logger.error(f"Vault request timed out | func={func.value} | error={e}")
            raise VaultError(f"Vault request timed out: {e}") from e
        except httpx.HTTPError as e:
            logger.error(f"Vault request failed | func={func.value} | error={e}")
            raise VaultError(f"Vault request failed: {e}") from e

        if resp.status_code != 200:
            logger.error(
                f"Vault HTTP error | func={func.value} | status={resp.status_code} | body={resp.text[:500]}"
            )
            raise VaultError(
                f"Vault HTTP request failed: {resp.status_code} {resp.text}",
                api_message=resp.text,
            )

        try:
            payload = resp.json()
        except ValueError as e:
            raise VaultResponseError(f"Vault returned invalid JSON: {e}") from e
        if not isinstance(payload, dict):
            raise VaultResponseError("Vault returned a non-object JSON document")

        sid = check_header(payload)
        result = decode_result(func, payload)
        logger.debug(f"Vault call succeeded | func={func.value} | sid={sid}")
        return result
