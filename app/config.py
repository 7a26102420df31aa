"""Application configuration and environment variables."""

from __future__ import annotations

import os
from typing import List

from dotenv import load_dotenv

# Load environment variables
load_dotenv()


def _parse_int_env(name: str, default: int) -> int:
    """Parse int from env safely, tolerating values like 'NAME=123' or quoted strings.
    Returns default on any parsing issue.
    """
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    # Accept accidental 'KEY=VALUE' format
    if "=" in raw:
        raw = raw.split("=", 1)[1]
    raw = raw.strip().strip("'").strip('"')
    try:
        return int(raw)
    except ValueError:
        return default


def parse_size_to_bytes(size: str, default: int = 10 * 1024 * 1024) -> int:
    """Parse a human size string ('10MB', '512KB', '1GB', '2048') into bytes."""
    value = (size or "").strip().lower()
    multiplier = 1
    for suffix, factor in (("kb", 1024), ("mb", 1024 * 1024), ("gb", 1024 * 1024 * 1024)):
        if value.endswith(suffix):
            multiplier = factor
            value = value[: -len(suffix)]
            break
    try:
        return int(value.strip()) * multiplier
    except ValueError:
        return default


def parse_format_list(raw: str) -> List[str]:
    """Split a comma separated extension list into lowercase entries."""
    return [fmt.strip().lower().lstrip(".") for fmt in (raw or "").split(",") if fmt.strip()]


class Config:
    """Application configuration class."""

    # Vault (biometric feature-matching service) credentials
    VOICEPRINT_APP_ID: str = os.getenv("VOICEPRINT_APP_ID", "")
    VOICEPRINT_API_KEY: str = os.getenv("VOICEPRINT_API_KEY", "")
    VOICEPRINT_API_SECRET: str = os.getenv("VOICEPRINT_API_SECRET", "")
    # Feature group all templates are registered into
    VOICEPRINT_GROUP_ID: str = os.getenv("VOICEPRINT_GROUP_ID", "qlu_voiceprint_group")
    VOICEPRINT_GROUP_NAME: str = os.getenv("VOICEPRINT_GROUP_NAME", "QLU voiceprint group")

    # Vault endpoint
    VOICEPRINT_API_HOST: str = os.getenv("VOICEPRINT_API_HOST", "api.xf-yun.com")
    VOICEPRINT_API_ENDPOINT: str = os.getenv("VOICEPRINT_API_ENDPOINT", "/v1/private/s782b4996")
    VOICEPRINT_API_SCHEME: str = os.getenv("VOICEPRINT_API_SCHEME", "https")
    VOICEPRINT_CONNECT_TIMEOUT_MS: int = _parse_int_env("VOICEPRINT_CONNECT_TIMEOUT_MS", 30000)
    VOICEPRINT_READ_TIMEOUT_MS: int = _parse_int_env("VOICEPRINT_READ_TIMEOUT_MS", 60000)
    # Number of candidates requested from 1:N search
    VOICEPRINT_SEARCH_TOP_K: int = _parse_int_env("VOICEPRINT_SEARCH_TOP_K", 5)

    # Audio upload constraints
    AUDIO_MAX_FILE_SIZE: str = os.getenv("AUDIO_MAX_FILE_SIZE", "10MB")
    AUDIO_MAX_BYTES: int = parse_size_to_bytes(AUDIO_MAX_FILE_SIZE)
    AUDIO_ALLOWED_FORMATS: List[str] = parse_format_list(
        os.getenv("AUDIO_ALLOWED_FORMATS", "mp3,wav,m4a,aac,ogg")
    )
    # Canonical PCM the vault expects
    AUDIO_TARGET_SAMPLE_RATE: int = _parse_int_env("AUDIO_TARGET_SAMPLE_RATE", 16000)
    AUDIO_TARGET_CHANNELS: int = _parse_int_env("AUDIO_TARGET_CHANNELS", 1)
    AUDIO_TARGET_BIT_DEPTH: int = _parse_int_env("AUDIO_TARGET_BIT_DEPTH", 16)

    # Relational store
    PROJECT_ROOT: str = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
    DATA_DIR: str = os.path.join(PROJECT_ROOT, "data")
    DATABASE_URL: str = os.getenv(
        "DATABASE_URL", "sqlite:///" + os.path.join(DATA_DIR, "voiceprint.db")
    )
    DB_POOL_SIZE: int = _parse_int_env("DB_POOL_SIZE", 5)
    DB_MAX_OVERFLOW: int = _parse_int_env("DB_MAX_OVERFLOW", 10)
    DB_POOL_TIMEOUT: int = _parse_int_env("DB_POOL_TIMEOUT", 30)
    DB_POOL_RECYCLE: int = _parse_int_env("DB_POOL_RECYCLE", 1800)
    DB_CREATE_SCHEMA: bool = os.getenv("DB_CREATE_SCHEMA", "true").lower() == "true"

    # User directory: 'sql' (users table) or 'http' (auth service)
    USER_DIRECTORY_MODE: str = os.getenv("USER_DIRECTORY_MODE", "sql").lower()
    AUTH_SERVICE_BASE_URL: str = os.getenv("AUTH_SERVICE_BASE_URL", "")
    AUTH_SERVICE_VERIFY_SSL: bool = os.getenv("AUTH_SERVICE_VERIFY_SSL", "false").lower() == "true"
    AUTH_SERVICE_TIMEOUT: int = _parse_int_env("AUTH_SERVICE_TIMEOUT", 10)

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()
    LOG_DIR: str = os.getenv("LOG_DIR", os.path.join(PROJECT_ROOT, "logs"))

    # Application
    APP_TITLE: str = "Voiceprint Identity Service"
    APP_VERSION: str = "1.0.0"

    @classmethod
    def vault_url(cls) -> str:
        return f"{cls.VOICEPRINT_API_SCHEME}://{cls.VOICEPRINT_API_HOST}{cls.VOICEPRINT_API_ENDPOINT}"

    @classmethod
    def validate(cls) -> None:
        """Validate required configuration."""
        if not cls.VOICEPRINT_APP_ID or not cls.VOICEPRINT_API_KEY or not cls.VOICEPRINT_API_SECRET:
            raise ValueError(
                "Missing VOICEPRINT_APP_ID, VOICEPRINT_API_KEY or VOICEPRINT_API_SECRET in .env"
            )
        if not cls.VOICEPRINT_GROUP_ID:
            raise ValueError("VOICEPRINT_GROUP_ID must not be empty")
        if cls.USER_DIRECTORY_MODE not in ("sql", "http"):
            raise ValueError(f"Unsupported USER_DIRECTORY_MODE: {cls.USER_DIRECTORY_MODE}")
        if cls.USER_DIRECTORY_MODE == "http" and not cls.AUTH_SERVICE_BASE_URL:
            raise ValueError("AUTH_SERVICE_BASE_URL is required when USER_DIRECTORY_MODE=http")

    @classmethod
    def ensure_directories(cls) -> None:
        """Create the SQLite database directory when using a file database."""
        if cls.DATABASE_URL.startswith("sqlite:///") and ":memory:" not in cls.DATABASE_URL:
            os.makedirs(os.path.dirname(cls.DATABASE_URL[len("sqlite:///"):]) or ".", exist_ok=True)

    @classmethod
    def summary(cls) -> dict:
        """Non-secret configuration snapshot for startup logs."""
        return {
            "app_id": cls.VOICEPRINT_APP_ID,
            "api_key": "[PROTECTED]" if cls.VOICEPRINT_API_KEY else None,
            "api_secret": "[PROTECTED]" if cls.VOICEPRINT_API_SECRET else None,
            "group_id": cls.VOICEPRINT_GROUP_ID,
            "vault_url": cls.vault_url(),
            "max_audio_bytes": cls.AUDIO_MAX_BYTES,
            "allowed_formats": cls.AUDIO_ALLOWED_FORMATS,
            "user_directory": cls.USER_DIRECTORY_MODE,
        }
