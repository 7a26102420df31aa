"""Biometric Vault Client Interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional


class IVaultClient(ABC):
    """Narrow request/response contract of the external feature vault.

    All methods raise VaultError on transport failure or a nonzero vault code.
    """

    @abstractmethod
    def create_feature(
        self,
        group_id: str,
        feature_id: str,
        audio_base64: str,
        feature_info: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Register a feature; returns the decoded result (echoes featureId)."""
        pass

    @abstractmethod
    def search_feature(self, group_id: str, audio_base64: str, top_k: int = 5) -> Dict[str, Any]:
        """1:N search; returns the decoded result with a scoreList."""
        pass

    @abstractmethod
    def delete_feature(self, group_id: str, feature_id: str) -> Dict[str, Any]:
        pass

    @abstractmethod
    def create_group(
        self,
        group_id: str,
        group_name: str,
        group_info: Optional[str] = None,
    ) -> Dict[str, Any]:
        pass

    def close(self) -> None:
        """Release transport resources."""
        return None

