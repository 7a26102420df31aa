"""Result types returned by the voiceprint service.

Every orchestration call returns one of these instead of raising; failures
carry a `Failure` tag so callers can branch without catching exceptions.
"""

from __future__ import annotations

from enum import Enum
from typing import List, Mapping, Optional

from pydantic import BaseModel, Field


class Failure(str, Enum):
    USER_NOT_FOUND = "user_not_found"
    USER_INACTIVE = "user_inactive"
    ALREADY_ENROLLED = "already_enrolled"
    AUDIO_PROCESSING_FAILED = "audio_processing_failed"
    VAULT_ERROR = "vault_error"
    INTEGRITY_MISMATCH = "integrity_mismatch"
    PERSISTENCE_FAILED = "persistence_failed"
    INTERNAL_ERROR = "internal_error"


class ClientContext(BaseModel):
    """Caller network details recorded on identification audit rows."""

    client_ip: Optional[str] = None
    user_agent: Optional[str] = None

    @classmethod
    def from_headers(
        cls,
        headers: Optional[Mapping[str, str]],
        remote_addr: Optional[str] = None,
    ) -> "ClientContext":
        """Resolve client IP from X-Forwarded-For (first hop), X-Real-IP, then remote address."""
        lowered = {k.lower(): v for k, v in (headers or {}).items()}

        client_ip = None
        forwarded = lowered.get("x-forwarded-for")
        if forwarded and forwarded.strip().lower() != "unknown":
            client_ip = forwarded.split(",")[0].strip() or None
        if client_ip is None:
            real_ip = lowered.get("x-real-ip")
            if real_ip and real_ip.strip().lower() != "unknown":
                client_ip = real_ip.strip()
        if client_ip is None:
            client_ip = remote_addr

        return cls(client_ip=client_ip, user_agent=lowered.get("user-agent"))


class EnrollResult(BaseModel):
    success: bool
    failure: Optional[Failure] = None
    message: str = ""
    feature_id: Optional[str] = None
    user_id: Optional[int] = None
    username: Optional[str] = None
    audio_file_name: Optional[str] = None

    @classmethod
    def fail(cls, failure: Failure, message: str, user_id: Optional[int] = None) -> "EnrollResult":
        return cls(success=False, failure=failure, message=message, user_id=user_id)


class IdentifiedCandidate(BaseModel):
    user_id: int
    username: Optional[str] = None
    full_name: Optional[str] = None
    feature_id: str
    confidence_score: float
    feature_info: Optional[str] = None


class IdentifyResult(BaseModel):
    success: bool
    failure: Optional[Failure] = None
    message: str = ""
    request_id: str
    results: List[IdentifiedCandidate] = Field(default_factory=list)
    processing_time_ms: int = 0
    vault_code: Optional[int] = None
    vault_sid: Optional[str] = None

    @property
    def matched(self) -> bool:
        """True when at least one candidate resolved to a local user."""
        return self.success and bool(self.results)

    @property
    def best_match(self) -> Optional[IdentifiedCandidate]:
        return self.results[0] if self.results else None


class DeleteResult(BaseModel):
    success: bool
    failure: Optional[Failure] = None
    message: str = ""
    user_id: int
    deleted_count: int = 0
    failed_feature_ids: List[str] = Field(default_factory=list)

    def __bool__(self) -> bool:
        return self.success
