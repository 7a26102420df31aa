"""Dependency wiring - singleton construction of repositories and services."""

from __future__ import annotations

import logging
from functools import lru_cache

from app.config import Config
from repositories.database import DatabasePool
from repositories.interfaces import (
    IIdentificationLogRepository,
    IUserDirectory,
    IVaultClient,
    IVoiceprintRepository,
)
from repositories.sql import (
    SQLIdentificationLogRepository,
    SQLUserRepository,
    SQLVoiceprintRepository,
)
from repositories.vault import SignedVaultClient
from repositories.voice import HttpUserRepository
from services.audio.normalizer import AudioNormalizer
from services.interfaces.i_voiceprint_service import IVoiceprintService
from services.voiceprint_service import VoiceprintService

logger = logging.getLogger(__name__)


@lru_cache()
def get_database_pool() -> type[DatabasePool]:
    """Initialize (once) and return the shared connection pool."""
    Config.ensure_directories()
    DatabasePool.initialize(url=Config.DATABASE_URL)
    return DatabasePool


@lru_cache()
def get_voiceprint_repository() -> IVoiceprintRepository:
    return SQLVoiceprintRepository(get_database_pool())


@lru_cache()
def get_identification_log_repository() -> IIdentificationLogRepository:
    return SQLIdentificationLogRepository(get_database_pool())


@lru_cache()
def get_user_directory() -> IUserDirectory:
    """Get user directory for the configured mode ('sql' or 'http')."""
    if Config.USER_DIRECTORY_MODE == "http":
        logger.info(f"Using HTTP user directory | base_url={Config.AUTH_SERVICE_BASE_URL}")
        return HttpUserRepository(
            base_url=Config.AUTH_SERVICE_BASE_URL,
            verify_ssl=Config.AUTH_SERVICE_VERIFY_SSL,
            timeout=Config.AUTH_SERVICE_TIMEOUT,
        )
    return SQLUserRepository(get_database_pool())


@lru_cache()
def get_vault_client() -> IVaultClient:
    """Get signed vault client; fails fast on missing credentials."""
    Config.validate()
    logger.info(f"Vault configuration | {Config.summary()}")
    return SignedVaultClient.from_config()


@lru_cache()
def get_audio_normalizer() -> AudioNormalizer:
    return AudioNormalizer(
        max_bytes=Config.AUDIO_MAX_BYTES,
        allowed_formats=Config.AUDIO_ALLOWED_FORMATS,
        target_sample_rate=Config.AUDIO_TARGET_SAMPLE_RATE,
        target_channels=Config.AUDIO_TARGET_CHANNELS,
        target_bit_depth=Config.AUDIO_TARGET_BIT_DEPTH,
    )


@lru_cache()
def get_voiceprint_service() -> IVoiceprintService:
    return VoiceprintService(
        user_directory=get_user_directory(),
        voiceprint_repository=get_voiceprint_repository(),
        log_repository=get_identification_log_repository(),
        vault_client=get_vault_client(),
        normalizer=get_audio_normalizer(),
        group_id=Config.VOICEPRINT_GROUP_ID,
        group_name=Config.VOICEPRINT_GROUP_NAME,
        top_k=Config.VOICEPRINT_SEARCH_TOP_K,
    )


def shutdown() -> None:
    """Release the vault client and the connection pool, and reset singletons."""
    if get_vault_client.cache_info().currsize:
        get_vault_client().close()
    DatabasePool.shutdown()
    for factory in (
        get_voiceprint_service,
        get_audio_normalizer,
        get_vault_client,
        get_user_directory,
        get_identification_log_repository,
        get_voiceprint_repository,
        get_database_pool,
    ):
        factory.cache_clear()
