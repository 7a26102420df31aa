"""Voiceprint Service Interface - Abstract base for voiceprint identity."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from repositories.models.voiceprint import (
    IdentificationAttempt,
    IdentificationStatistics,
    VoiceprintTemplate,
)
from services.results import ClientContext, DeleteResult, EnrollResult, IdentifyResult


class IVoiceprintService(ABC):
    """Interface for voiceprint enrollment and identification."""

    @abstractmethod
    def enroll_voiceprint(
        self,
        user_id: int,
        audio: bytes,
        filename: str,
        label: Optional[str] = None,
    ) -> EnrollResult:
        """
        Register a user's voice in the vault and record the template locally.

        Args:
            user_id: User identifier
            audio: Uploaded audio bytes
            filename: Original filename (extension is validated)
            label: Optional feature label stored with the vault feature

        Returns:
            EnrollResult with feature_id on success, failure tag otherwise
        """
        pass

    @abstractmethod
    def identify_voiceprint(
        self,
        audio: bytes,
        filename: str,
        client: Optional[ClientContext] = None,
    ) -> IdentifyResult:
        """
        1:N identification against the vault group.

        Returns:
            IdentifyResult with resolved candidates sorted by confidence
            (descending); empty results mean no match
        """
        pass

    @abstractmethod
    def delete_user_voiceprint(self, user_id: int) -> DeleteResult:
        """
        Remove all active templates of a user from the vault and soft-delete them.

        Returns:
            DeleteResult; success is False when nothing was enrolled or any
            template could not be removed
        """
        pass

    @abstractmethod
    def get_user_voiceprints(self, user_id: int) -> List[VoiceprintTemplate]:
        pass

    @abstractmethod
    def get_identification_logs(
        self,
        user_id: Optional[int] = None,
        limit: int = 50,
    ) -> List[IdentificationAttempt]:
        pass

    @abstractmethod
    def get_statistics(self) -> IdentificationStatistics:
        pass

    @abstractmethod
    def ensure_group(
        self,
        group_name: Optional[str] = None,
        group_info: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Create the configured vault group (deployment helper)."""
        pass
