"""Relational schema for users, voiceprint templates and identification logs."""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Float,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    true,
)

metadata = MetaData()


def utcnow() -> datetime:
    """Naive UTC timestamp, the form every DateTime column stores."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


users = Table(
    "users",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("username", String(64), nullable=False, unique=True),
    Column("full_name", String(128)),
    Column("is_active", Boolean, nullable=False, default=True),
    Column("created_at", DateTime, nullable=False, default=utcnow),
)

voiceprints = Table(
    "voiceprints",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("user_id", Integer, nullable=False, index=True),
    Column("group_id", String(64), nullable=False),
    Column("feature_id", String(128), nullable=False, unique=True),
    Column("feature_info", String(256)),
    Column("audio_file_name", String(255)),
    Column("registered_at", DateTime, nullable=False, default=utcnow),
    Column("last_matched_at", DateTime),
    Column("match_count", Integer, nullable=False, default=0),
    Column("is_active", Boolean, nullable=False, default=True),
    Column("created_at", DateTime, nullable=False, default=utcnow),
    Column("updated_at", DateTime, nullable=False, default=utcnow, onupdate=utcnow),
)

# At most one active template per user
Index(
    "uq_voiceprints_active_user",
    voiceprints.c.user_id,
    unique=True,
    sqlite_where=voiceprints.c.is_active == true(),
    postgresql_where=voiceprints.c.is_active == true(),
)

identification_logs = Table(
    "identification_logs",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("request_id", String(64), nullable=False, index=True),
    Column("matched_user_id", Integer, index=True),
    Column("matched_feature_id", String(128)),
    Column("confidence_score", Float, nullable=False, default=0.0),
    Column("audio_file_name", String(255)),
    Column("vault_sid", String(128)),
    Column("response_code", Integer),
    Column("response_message", String(512)),
    Column("processing_time_ms", Integer),
    Column("client_ip", String(64)),
    Column("user_agent", String(512)),
    Column("identified_at", DateTime, nullable=False, default=utcnow, index=True),
    Column("created_at", DateTime, nullable=False, default=utcnow),
)
