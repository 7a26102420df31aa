"""User Directory Interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from repositories.models.voiceprint import User


class IUserDirectory(ABC):
    """Read-only lookup of users by id."""

    @abstractmethod
    def get_user(self, user_id: int) -> Optional[User]:
        """Fetch user by id.

        Returns:
            User, or None if the user does not exist

        Raises:
            PersistenceError: If the directory cannot be reached
        """
        pass
