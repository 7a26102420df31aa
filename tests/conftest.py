"""
Pytest Configuration and Fixtures
"""

import io
import json
import re
import wave
from collections.abc import Callable, Generator
from typing import Any, Dict, List, Optional

import httpx
import numpy as np
import pytest

from repositories.database import DatabasePool
from repositories.sql import (
    SQLIdentificationLogRepository,
    SQLUserRepository,
    SQLVoiceprintRepository,
)
from repositories.vault.client import SignedVaultClient
from repositories.vault.protocol import encode_result, service_key
from repositories.vault.signing import sign, signature_origin
from services.audio.normalizer import AudioNormalizer
from services.voiceprint_service import VoiceprintService

APP_ID = "test-app"
API_KEY = "test-key"
API_SECRET = "test-secret"
VAULT_HOST = "vault.test"
VAULT_ENDPOINT = "/v1/private/s782b4996"
GROUP_ID = "test_group"

_AUTH_FIELD = re.compile(r'(\w+)="([^"]*)"')


def build_wav(
    sample_rate: int = 16000,
    channels: int = 1,
    sample_width: int = 2,
    seconds: float = 0.5,
    frequency: float = 440.0,
) -> bytes:
    """Sine tone as a PCM WAV file."""
    frames = int(sample_rate * seconds)
    t = np.arange(frames) / float(sample_rate)
    tone = 0.5 * np.sin(2 * np.pi * frequency * t)
    data = np.repeat(tone[:, None], channels, axis=1)

    if sample_width == 1:
        pcm = np.round(data * 127 + 128).astype(np.uint8).tobytes()
    elif sample_width == 2:
        pcm = np.round(data * 32767).astype("<i2").tobytes()
    elif sample_width == 4:
        pcm = np.round(data * 2147483647).astype("<i4").tobytes()
    else:
        raise ValueError(f"Unsupported sample width: {sample_width}")

    buffer = io.BytesIO()
    with wave.open(buffer, "wb") as wf:
        wf.setnchannels(channels)
        wf.setsampwidth(sample_width)
        wf.setframerate(sample_rate)
        wf.writeframes(pcm)
    return buffer.getvalue()


class FakeVault:
    """In-memory vault behind httpx.MockTransport.

    Verifies every request signature and implements createFeature, searchFea,
    deleteFeature and createGroup over a feature dict.
    """

    MATCH_SCORE = 0.95
    OTHER_SCORE = 0.30

    def __init__(self) -> None:
        self.features: Dict[str, Dict[str, Any]] = {}
        self.groups: Dict[str, str] = {}
        self.requests: List[Dict[str, Any]] = []
        # func -> (code, message) returned once for the next call of that func
        self.fail_next: Dict[str, tuple] = {}
        # searchFea returns this list verbatim when set
        self.score_list: Optional[List[Dict[str, Any]]] = None
        self.echo_feature_id: Optional[str] = None
        self.http_status: int = 200
        self._sid = 0

    def calls(self, func: str) -> List[Dict[str, Any]]:
        return [r for r in self.requests if r["func"] == func]

    def handler(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        params = body["parameter"][service_key(VAULT_ENDPOINT)]
        func = params["func"]
        self.requests.append({"func": func, "body": body, "headers": dict(request.headers)})

        if self.http_status != 200:
            return httpx.Response(self.http_status, text="upstream unavailable")

        if not self._signature_valid(request):
            return self._error(10111, "auth failed")

        if func in self.fail_next:
            code, message = self.fail_next.pop(func)
            return self._error(code, message)

        group_id = params["groupId"]
        if func == "createFeature":
            audio = body["payload"]["resource"]["audio"]
            self.features[params["featureId"]] = {
                "group": group_id,
                "audio": audio,
                "info": params.get("featureInfo"),
            }
            return self._ok(func, {"featureId": self.echo_feature_id or params["featureId"]})

        if func == "searchFea":
            if self.score_list is not None:
                return self._ok(func, {"scoreList": self.score_list})
            audio = body["payload"]["resource"]["audio"]
            scores = [
                {
                    "featureId": fid,
                    "score": self.MATCH_SCORE if feature["audio"] == audio else self.OTHER_SCORE,
                    "featureInfo": feature["info"],
                }
                for fid, feature in self.features.items()
                if feature["group"] == group_id
            ]
            return self._ok(func, {"scoreList": scores[: params.get("topK", 5)]})

        if func == "deleteFeature":
            if self.features.pop(params["featureId"], None) is None:
                return self._error(23005, "feature not found")
            return self._ok(func, {"msg": "success"})

        if func == "createGroup":
            self.groups[group_id] = params["groupName"]
            return self._ok(func, {"groupId": group_id, "groupName": params["groupName"]})

        return self._error(10100, f"unknown func {func}")

    def _signature_valid(self, request: httpx.Request) -> bool:
        fields = dict(_AUTH_FIELD.findall(request.headers.get("Authorization", "")))
        origin = signature_origin(
            request.headers["Host"], request.headers["Date"], request.method, request.url.path
        )
        return (
            fields.get("api_key") == API_KEY
            and fields.get("algorithm") == "hmac-sha256"
            and fields.get("headers") == "host date request-line"
            and fields.get("signature") == sign(API_SECRET, origin)
        )

    def _next_sid(self) -> str:
        self._sid += 1
        return f"sid-{self._sid:04d}"

    def _ok(self, func: str, result: Dict[str, Any]) -> httpx.Response:
        return httpx.Response(
            200,
            json={
                "header": {"code": 0, "message": "success", "sid": self._next_sid()},
                "payload": {f"{func}Res": {"text": encode_result(result)}},
            },
        )

    def _error(self, code: int, message: str) -> httpx.Response:
        return httpx.Response(
            200,
            json={"header": {"code": code, "message": message, "sid": self._next_sid()}},
        )


@pytest.fixture
def wav_factory() -> Callable[..., bytes]:
    """Returns the WAV builder."""
    return build_wav


@pytest.fixture
def fake_vault() -> FakeVault:
    return FakeVault()


@pytest.fixture
def vault_client(fake_vault: FakeVault) -> Generator[SignedVaultClient, None, None]:
    client = SignedVaultClient(
        app_id=APP_ID,
        api_key=API_KEY,
        api_secret=API_SECRET,
        host=VAULT_HOST,
        endpoint=VAULT_ENDPOINT,
        transport=httpx.MockTransport(fake_vault.handler),
    )
    yield client
    client.close()


@pytest.fixture
def db_pool(tmp_path) -> Generator[type[DatabasePool], None, None]:
    """Fresh SQLite database with the full schema."""
    DatabasePool.shutdown()
    DatabasePool.initialize(url=f"sqlite:///{tmp_path / 'voiceprint.db'}", create_schema=True)
    yield DatabasePool
    DatabasePool.shutdown()


@pytest.fixture
def user_repo(db_pool) -> SQLUserRepository:
    """User directory seeded with two active users and one disabled user."""
    repo = SQLUserRepository(db_pool)
    repo.add_user("alice", "Alice Zhang", user_id=42)
    repo.add_user("bob", "Bob Li", user_id=7)
    repo.add_user("carol", "Carol Wang", is_active=False, user_id=9)
    return repo


@pytest.fixture
def voiceprint_repo(db_pool) -> SQLVoiceprintRepository:
    return SQLVoiceprintRepository(db_pool)


@pytest.fixture
def log_repo(db_pool) -> SQLIdentificationLogRepository:
    return SQLIdentificationLogRepository(db_pool)


@pytest.fixture
def normalizer() -> AudioNormalizer:
    return AudioNormalizer(
        max_bytes=10 * 1024 * 1024,
        allowed_formats=["mp3", "wav", "m4a", "aac", "ogg"],
    )


@pytest.fixture
def service(user_repo, voiceprint_repo, log_repo, vault_client, normalizer) -> VoiceprintService:
    return VoiceprintService(
        user_directory=user_repo,
        voiceprint_repository=voiceprint_repo,
        log_repository=log_repo,
        vault_client=vault_client,
        normalizer=normalizer,
        group_id=GROUP_ID,
        group_name="Test group",
        top_k=5,
    )

