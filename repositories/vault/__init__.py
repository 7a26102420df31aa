"""Biometric vault client."""

from repositories.vault.client import SignedVaultClient
from repositories.vault.protocol import ScoredCandidate, VaultFunction, parse_score_list
from repositories.vault.signing import RequestSigner

__all__ = [
    "SignedVaultClient",
    "ScoredCandidate",
    "VaultFunction",
    "parse_score_list",
    "RequestSigner",
]
