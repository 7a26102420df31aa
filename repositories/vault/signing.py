"""HMAC-SHA256 request signing for the biometric vault API."""

from __future__ import annotations

import base64
import hashlib
import hmac
from email.utils import formatdate
from typing import Dict, Optional

SIGNED_HEADERS = "host date request-line"


def rfc1123_date(timestamp: Optional[float] = None) -> str:
    """Current (or given) time as an RFC-1123 GMT date, e.g. 'Mon, 19 Oct 2026 08:00:00 GMT'."""
    return formatdate(timeval=timestamp, usegmt=True)


def signature_origin(host: str, date: str, method: str, path: str) -> str:
    return f"host: {host}\ndate: {date}\n{method.upper()} {path} HTTP/1.1"


def sign(secret: str, origin: str) -> str:
    """Base64 HMAC-SHA256 of the signature origin."""
    digest = hmac.new(secret.encode("utf-8"), origin.encode("utf-8"), hashlib.sha256).digest()
    return base64.b64encode(digest).decode("ascii")


def authorization_header(api_key: str, signature: str) -> str:
    return (
        f'api_key="{api_key}",algorithm="hmac-sha256",'
        f'headers="{SIGNED_HEADERS}",signature="{signature}"'
    )


class RequestSigner:
    """Builds the Host/Date/Authorization headers for one vault request."""

    def __init__(self, api_key: str, api_secret: str, host: str) -> None:
        self.api_key = api_key
        self._api_secret = api_secret
        self.host = host

    def headers(self, method: str, path: str, date: Optional[str] = None) -> Dict[str, str]:
        date = date or rfc1123_date()
        origin = signature_origin(self.host, date, method, path)
        return {
            "Host": self.host,
            "Date": date,
            "Authorization": authorization_header(self.api_key, sign(self._api_secret, origin)),
        }

    def __repr__(self) -> str:
        return f"RequestSigner(api_key={self.api_key!r}, host={self.host!r})"
