"""Services module - Business logic layer.

- VoiceprintService: voiceprint enrollment, identification and deletion

Submodules:
- audio: Audio validation and normalization
- interfaces: Service interfaces
- results: Tagged result types returned by the service
"""

from services.results import (
    ClientContext,
    DeleteResult,
    EnrollResult,
    Failure,
    IdentifiedCandidate,
    IdentifyResult,
)
from services.voiceprint_service import VoiceprintService

__all__ = [
    "ClientContext",
    "DeleteResult",
    "EnrollResult",
    "Failure",
    "IdentifiedCandidate",
    "IdentifyResult",
    "VoiceprintService",
]
