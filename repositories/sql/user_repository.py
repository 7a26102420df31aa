"""User Repository - reads users from the relational `users` table."""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import select

from repositories.database import DatabasePool
from repositories.interfaces.user_directory import IUserDirectory
from repositories.models.voiceprint import User
from repositories.sql.schema import users, utcnow

logger = logging.getLogger(__name__)


class SQLUserRepository(IUserDirectory):
    """User directory backed by the shared database."""

    def __init__(self, pool: type[DatabasePool] = DatabasePool) -> None:
        self._pool = pool

    def get_user(self, user_id: int) -> Optional[User]:
        rows = self._pool.execute_query(select(users).where(users.c.id == user_id))
        if not rows:
            logger.debug(f"User not found | id={user_id}")
            return None
        return User(**rows[0])

    def add_user(
        self,
        username: str,
        full_name: Optional[str] = None,
        is_active: bool = True,
        user_id: Optional[int] = None,
    ) -> User:
        """Insert a user row (seeding and administration)."""
        values = {
            "username": username,
            "full_name": full_name,
            "is_active": is_active,
            "created_at": utcnow(),
        }
        if user_id is not None:
            values["id"] = user_id
        new_id = self._pool.execute_insert(users.insert().values(**values))
        return User(id=new_id, username=username, full_name=full_name, is_active=is_active)
