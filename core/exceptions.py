"""Custom exceptions for the voiceprint service."""

from __future__ import annotations

from typing import Optional


class VoiceprintServiceError(Exception):
    """Base exception for the voiceprint service."""
    pass


class AudioValidationError(VoiceprintServiceError):
    """Raised when uploaded audio fails validation."""
    pass


class InvalidAudioInputError(AudioValidationError):
    """Raised when audio is empty or missing."""
    pass


class PayloadTooLargeError(AudioValidationError):
    """Raised when audio exceeds the configured size limit."""
    pass


class UnsupportedAudioFormatError(AudioValidationError):
    """Raised when the file extension is not whitelisted."""
    pass


class AudioProcessingError(VoiceprintServiceError):
    """Raised when audio cannot be transcoded."""
    pass


class VaultError(VoiceprintServiceError):
    """Raised when the biometric vault rejects or fails a request.

    Carries the vault's response code, message and session id (``sid``)
    so failures can be traced on the vault side.
    """

    AUTHENTICATION_ERROR_CODE = 10111

    def __init__(
        self,
        message: str,
        code: Optional[int] = None,
        api_message: Optional[str] = None,
        sid: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.api_message = api_message
        self.sid = sid

    @property
    def is_authentication_error(self) -> bool:
        return self.code == self.AUTHENTICATION_ERROR_CODE

    @property
    def is_parameter_error(self) -> bool:
        return self.code is not None and 10100 <= self.code < 10200

    @property
    def is_system_error(self) -> bool:
        return self.code is not None and 10200 <= self.code < 10300

    @property
    def error_class(self) -> str:
        """Coarse failure class used for metrics and caller-side handling."""
        if self.code is None:
            return "transport"
        if self.is_authentication_error:
            return "authentication"
        if self.is_parameter_error:
            return "parameter"
        if self.is_system_error:
            return "system"
        return "other"

    def detailed_message(self) -> str:
        parts = [f"VaultError: {self.message}"]
        if self.code is not None:
            parts.append(f"(code: {self.code})")
        if self.sid:
            parts.append(f"(sid: {self.sid})")
        return " ".join(parts)

    def __repr__(self) -> str:
        return f"VaultError(code={self.code!r}, message={self.message!r}, sid={self.sid!r})"


class VaultResponseError(VaultError):
    """Raised when a successful vault response cannot be decoded."""
    pass


class PersistenceError(VoiceprintServiceError):
    """Raised when the local store fails."""
    pass


class DatabaseError(PersistenceError):
    """Raised when database operations fail."""
    pass


class DuplicateActiveVoiceprintError(PersistenceError):
    """Raised when an insert would create a second active template for a user."""
    pass


class IntegrityMismatchError(VoiceprintServiceError):
    """Raised when vault and local state disagree (e.g. echoed feature id)."""
    pass
