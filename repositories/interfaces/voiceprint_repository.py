"""Voiceprint Template Repository Interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List, Optional

from repositories.models.voiceprint import VoiceprintTemplate


class IVoiceprintRepository(ABC):
    """Interface for voiceprint template persistence."""

    @abstractmethod
    def exists_active_for_user(self, user_id: int) -> bool:
        """Check if user has an active template."""
        pass

    @abstractmethod
    def find_active_by_user(self, user_id: int) -> List[VoiceprintTemplate]:
        """List active templates for user (normally zero or one)."""
        pass

    @abstractmethod
    def find_active_by_feature_id(self, feature_id: str) -> Optional[VoiceprintTemplate]:
        """Resolve an active template by its vault feature id."""
        pass

    @abstractmethod
    def insert(self, template: VoiceprintTemplate) -> VoiceprintTemplate:
        """Persist a new template.

        Raises:
            DuplicateActiveVoiceprintError: If the user already has an active template
            DatabaseError: On any other store failure
        """
        pass

    @abstractmethod
    def record_match(self, template_id: int) -> None:
        """Increment match count and stamp last match time."""
        pass

    @abstractmethod
    def deactivate(self, template_id: int) -> bool:
        """Soft-delete a template.

        Returns:
            True if a row was deactivated
        """
        pass

    @abstractmethod
    def count_enrolled_users(self) -> int:
        """Count distinct users with an active template."""
        pass
