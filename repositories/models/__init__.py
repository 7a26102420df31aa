"""Data models for repositories."""

from repositories.models.voiceprint import (
    IdentificationAttempt,
    IdentificationStatistics,
    User,
    VoiceprintTemplate,
)

__all__ = [
    "IdentificationAttempt",
    "IdentificationStatistics",
    "User",
    "VoiceprintTemplate",
]
