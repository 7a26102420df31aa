"""Repository interfaces for dependency inversion."""

from repositories.interfaces.identification_log_repository import IIdentificationLogRepository
from repositories.interfaces.user_directory import IUserDirectory
from repositories.interfaces.vault_client import IVaultClient
from repositories.interfaces.voiceprint_repository import IVoiceprintRepository

__all__ = [
    "IIdentificationLogRepository",
    "IUserDirectory",
    "IVaultClient",
    "IVoiceprintRepository",
]
