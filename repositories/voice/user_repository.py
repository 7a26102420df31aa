"""User Repository - Calls the auth service to fetch user info by ID."""

from __future__ import annotations

import logging
from typing import Optional

import requests

from core.exceptions import PersistenceError
from repositories.interfaces.user_directory import IUserDirectory
from repositories.models.voiceprint import User

logger = logging.getLogger(__name__)


class HttpUserRepository(IUserDirectory):
    """User directory backed by the auth service's REST API."""

    def __init__(
        self,
        base_url: str,
        verify_ssl: bool = False,
        timeout: int = 10,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.verify_ssl = verify_ssl
        self.timeout = timeout
        self.session = session or requests.Session()

    def get_user(self, user_id: int) -> Optional[User]:
        """Fetch user by ID from the auth service."""
        url = f"{self.base_url}/auth/users/{user_id}"
        try:
            resp = self.session.get(url, timeout=self.timeout, verify=self.verify_ssl)
        except requests.RequestException as e:
            logger.error(f"User API request failed | id={user_id} | error={e}")
            raise PersistenceError(f"User directory unreachable: {e}") from e

        if resp.status_code == 404:
            return None
        if resp.status_code != 200:
            logger.warning(f"User API error | id={user_id} | status={resp.status_code}")
            raise PersistenceError(f"User directory returned HTTP {resp.status_code}")

        try:
            data = resp.json()
        except ValueError as e:
            raise PersistenceError(f"User directory returned invalid JSON: {e}") from e

        # Accept camelCase payloads from the auth service
        return User(
            id=int(data.get("id", user_id)),
            username=data.get("username") or data.get("userName") or str(user_id),
            full_name=data.get("full_name") or data.get("fullName"),
            is_active=_as_bool(data.get("is_active", data.get("isActive", True))),
        )


def _as_bool(value) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes")
    return bool(value)
