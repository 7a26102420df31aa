"""SQL repositories."""

from repositories.sql.identification_log_repository import SQLIdentificationLogRepository
from repositories.sql.user_repository import SQLUserRepository
from repositories.sql.voiceprint_repository import SQLVoiceprintRepository

__all__ = [
    "SQLIdentificationLogRepository",
    "SQLUserRepository",
    "SQLVoiceprintRepository",
]
