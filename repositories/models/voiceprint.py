"""Voiceprint data models - Pydantic schemas for store rows."""

from __future__ import annotations

import re
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, validator

FEATURE_ID_PATTERN = re.compile(r"^user_\d+_[0-9a-f]{32}$")


class User(BaseModel):
    """Directory entry; read-only to the voiceprint core."""

    id: int
    username: str
    full_name: Optional[str] = None
    is_active: bool = True

    class Config:
        extra = "ignore"


class VoiceprintTemplate(BaseModel):
    """Local record linking a user to a vault feature."""

    id: Optional[int] = None
    user_id: int
    group_id: str
    feature_id: str
    feature_info: Optional[str] = None
    audio_file_name: Optional[str] = None
    registered_at: Optional[datetime] = None
    last_matched_at: Optional[datetime] = None
    match_count: int = 0
    is_active: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @validator("match_count", pre=True, always=True)
    def default_match_count(cls, v):
        return v or 0

    class Config:
        extra = "ignore"


class IdentificationAttempt(BaseModel):
    """Append-only audit row for one identification outcome."""

    id: Optional[int] = None
    request_id: str
    matched_user_id: Optional[int] = None
    matched_feature_id: Optional[str] = None
    confidence_score: float = 0.0
    audio_file_name: Optional[str] = None
    vault_sid: Optional[str] = None
    response_code: Optional[int] = None
    response_message: Optional[str] = None
    processing_time_ms: Optional[int] = None
    client_ip: Optional[str] = None
    user_agent: Optional[str] = None
    identified_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    class Config:
        extra = "ignore"


class IdentificationStatistics(BaseModel):
    total_registered_users: int = 0
    today_identifications: int = 0
    total_identifications: int = 0
    daily_identifications: dict = Field(default_factory=dict)
