"""
Unit Test: HTTP user directory
"""

import pytest
import requests

from core.exceptions import PersistenceError
from repositories.voice.user_repository import HttpUserRepository


class _Response:
    def __init__(self, status_code, payload=None):
        self.status_code = status_code
        self._payload = payload

    def json(self):
        if self._payload is None:
            raise ValueError("no json")
        return self._payload


class _Session:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.urls = []

    def get(self, url, timeout=None, verify=None):
        self.urls.append(url)
        if self.error:
            raise self.error
        return self.response


def test_user_is_parsed_from_camel_case_payload():
    session = _Session(_Response(200, {"id": 42, "userName": "alice", "fullName": "Alice Zhang", "isActive": "false"}))
    repo = HttpUserRepository("https://auth.local/", session=session)

    user = repo.get_user(42)

    assert session.urls == ["https://auth.local/auth/users/42"]
    assert user.username == "alice"
    assert user.full_name == "Alice Zhang"
    assert user.is_active is False


def test_missing_user_returns_none():
    repo = HttpUserRepository("https://auth.local", session=_Session(_Response(404)))

    assert repo.get_user(1) is None


def test_server_error_raises_persistence_error():
    repo = HttpUserRepository("https://auth.local", session=_Session(_Response(500)))

    with pytest.raises(PersistenceError):
        repo.get_user(1)


def test_connection_error_raises_persistence_error():
    session = _Session(error=requests.ConnectionError("down"))
    repo = HttpUserRepository("https://auth.local", session=session)

    with pytest.raises(PersistenceError):
        repo.get_user(1)
