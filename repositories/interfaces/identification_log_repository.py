"""Identification Audit Log Repository Interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Dict, List

from repositories.models.voiceprint import IdentificationAttempt


class IIdentificationLogRepository(ABC):
    """Append-only audit log of identification attempts."""

    @abstractmethod
    def append(self, attempt: IdentificationAttempt) -> IdentificationAttempt:
        """Insert one audit row."""
        pass

    @abstractmethod
    def find_recent(self, limit: int = 50) -> List[IdentificationAttempt]:
        pass

    @abstractmethod
    def find_by_user(self, user_id: int, limit: int = 50) -> List[IdentificationAttempt]:
        pass

    @abstractmethod
    def find_by_request_id(self, request_id: str) -> List[IdentificationAttempt]:
        pass

    @abstractmethod
    def count_all(self) -> int:
        pass

    @abstractmethod
    def count_between(self, start: datetime, end: datetime) -> int:
        """Count rows with start <= identified_at < end."""
        pass

    @abstractmethod
    def count_per_day(self, days: int = 7) -> Dict[str, int]:
        """Row counts keyed by ISO date for the last N days (today included)."""
        pass
