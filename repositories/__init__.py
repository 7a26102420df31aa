"""Repositories - Data access layer."""

# Database pool
from repositories.database import DatabasePool, get_database_pool

# SQL repositories
from repositories.sql import (
    SQLIdentificationLogRepository,
    SQLUserRepository,
    SQLVoiceprintRepository,
)

# User directory over HTTP
from repositories.voice import HttpUserRepository

# Vault
from repositories.vault import SignedVaultClient

# Interfaces
from repositories.interfaces import (
    IIdentificationLogRepository,
    IUserDirectory,
    IVaultClient,
    IVoiceprintRepository,
)

# Models
from repositories.models import (
    IdentificationAttempt,
    IdentificationStatistics,
    User,
    VoiceprintTemplate,
)

__all__ = [
    # Database
    "DatabasePool",
    "get_database_pool",
    # SQL
    "SQLIdentificationLogRepository",
    "SQLUserRepository",
    "SQLVoiceprintRepository",
    # HTTP
    "HttpUserRepository",
    # Vault
    "SignedVaultClient",
    # Interfaces
    "IIdentificationLogRepository",
    "IUserDirectory",
    "IVaultClient",
    "IVoiceprintRepository",
    # Models
    "IdentificationAttempt",
    "IdentificationStatistics",
    "User",
    "VoiceprintTemplate",
]
