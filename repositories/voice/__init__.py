"""Remote user directory."""

from repositories.voice.user_repository import HttpUserRepository

__all__ = [
    "HttpUserRepository",
]
