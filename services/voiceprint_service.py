"""Voiceprint Service - enrollment, identification and deletion of voiceprints.

Coordinates the user directory, the local template store, the audit log and
the external vault. The vault and the store share no transaction: local state
is authoritative, and a failed local write after a successful vault write is
compensated with a best-effort vault delete.
"""

from __future__ import annotations

import logging
import time
import uuid
from datetime import timedelta
from typing import Any, Dict, List, Optional, Tuple

from app.config import Config
from core.exceptions import (
    AudioProcessingError,
    AudioValidationError,
    DuplicateActiveVoiceprintError,
    IntegrityMismatchError,
    PersistenceError,
    VaultError,
)
from core.metrics import (
    compensation_total,
    deletion_total,
    enrollment_total,
    identification_latency,
    identification_total,
)
from repositories.interfaces import (
    IIdentificationLogRepository,
    IUserDirectory,
    IVaultClient,
    IVoiceprintRepository,
)
from repositories.models.voiceprint import (
    IdentificationAttempt,
    IdentificationStatistics,
    User,
    VoiceprintTemplate,
)
from repositories.sql.schema import utcnow
from repositories.vault.protocol import ScoredCandidate, parse_score_list
from services.audio.normalizer import AudioNormalizer
from services.interfaces.i_voiceprint_service import IVoiceprintService
from services.results import (
    ClientContext,
    DeleteResult,
    EnrollResult,
    Failure,
    IdentifiedCandidate,
    IdentifyResult,
)

logger = logging.getLogger(__name__)

# Audit response code for failures that never got a vault answer
INTERNAL_ERROR_CODE = -1
STATISTICS_DAYS = 7
# identification_logs column widths
AUDIT_FILENAME_MAX = 255
AUDIT_MESSAGE_MAX = 512
AUDIT_CLIENT_IP_MAX = 64
AUDIT_USER_AGENT_MAX = 512


def generate_feature_id(user_id: int) -> str:
    return f"user_{user_id}_{uuid.uuid4().hex}"


def generate_request_id() -> str:
    return f"req_{int(time.time() * 1000)}_{uuid.uuid4().hex[:8]}"


def _elapsed_ms(start_time: float) -> int:
    return int((time.time() - start_time) * 1000)


def _clip(value: Optional[str], limit: int) -> Optional[str]:
    return value[:limit] if value else value


def _check_echoed_feature_id(feature_id: str, vault_result: Dict[str, Any]) -> None:
    returned_id = vault_result.get("featureId")
    if returned_id != feature_id:
        raise IntegrityMismatchError(f"expected={feature_id} | actual={returned_id}")


class VoiceprintService(IVoiceprintService):
    """Voiceprint identity orchestration."""

    def __init__(
        self,
        user_directory: IUserDirectory,
        voiceprint_repository: IVoiceprintRepository,
        log_repository: IIdentificationLogRepository,
        vault_client: IVaultClient,
        normalizer: AudioNormalizer,
        group_id: str = Config.VOICEPRINT_GROUP_ID,
        group_name: str = Config.VOICEPRINT_GROUP_NAME,
        top_k: int = Config.VOICEPRINT_SEARCH_TOP_K,
    ) -> None:
        self.users = user_directory
        self.voiceprints = voiceprint_repository
        self.logs = log_repository
        self.vault = vault_client
        self.normalizer = normalizer
        self.group_id = group_id
        self.group_name = group_name
        self.top_k = top_k

        logger.info(f"VoiceprintService initialized | group_id={group_id} | top_k={top_k}")

    # ------------------------------------------------------------------
    # Enroll
    # ------------------------------------------------------------------

    def enroll_voiceprint(
        self,
        user_id: int,
        audio: bytes,
        filename: str,
        label: Optional[str] = None,
    ) -> EnrollResult:
        logger.info(f"Enrolling voiceprint | user_id={user_id} | file={filename}")
        try:
            result = self._enroll(user_id, audio, filename, label)
        except Exception as e:
            logger.exception(f"Unexpected enrollment error | user_id={user_id} | error={e}")
            result = EnrollResult.fail(Failure.INTERNAL_ERROR, f"Internal error: {e}", user_id)

        enrollment_total.labels(status="success" if result.success else result.failure.value).inc()
        return result

    def _enroll(
        self,
        user_id: int,
        audio: bytes,
        filename: str,
        label: Optional[str],
    ) -> EnrollResult:
        try:
            user = self.users.get_user(user_id)
            if user is None:
                return EnrollResult.fail(Failure.USER_NOT_FOUND, f"User {user_id} not found", user_id)
            if not user.is_active:
                return EnrollResult.fail(Failure.USER_INACTIVE, f"User {user_id} is disabled", user_id)

            # Must be decided before any side effect
            if self.voiceprints.exists_active_for_user(user_id):
                logger.warning(f"User already enrolled | user_id={user_id}")
                return EnrollResult.fail(
                    Failure.ALREADY_ENROLLED,
                    "User already has a voiceprint; delete it before enrolling again",
                    user_id,
                )
        except PersistenceError as e:
            logger.error(f"Enrollment pre-check failed | user_id={user_id} | error={e}")
            return EnrollResult.fail(Failure.PERSISTENCE_FAILED, f"Store unavailable: {e}", user_id)

        try:
            audio_base64 = self.normalizer.process(audio, filename)
        except (AudioValidationError, AudioProcessingError) as e:
            logger.warning(f"Audio rejected | user_id={user_id} | file={filename} | error={e}")
            return EnrollResult.fail(Failure.AUDIO_PROCESSING_FAILED, f"Audio processing failed: {e}", user_id)

        feature_id = generate_feature_id(user_id)

        try:
            vault_result = self.vault.create_feature(self.group_id, feature_id, audio_base64, label)
        except VaultError as e:
            logger.error(f"Vault createFeature failed | user_id={user_id} | feature_id={feature_id} | {e.detailed_message()}")
            return EnrollResult.fail(Failure.VAULT_ERROR, f"Voiceprint registration failed: {e.message}", user_id)

        try:
            _check_echoed_feature_id(feature_id, vault_result)
        except IntegrityMismatchError as e:
            logger.error(f"Vault featureId mismatch | user_id={user_id} | {e}")
            return EnrollResult.fail(Failure.INTEGRITY_MISMATCH, "Voiceprint registration failed: feature id mismatch", user_id)

        template = VoiceprintTemplate(
            user_id=user_id,
            group_id=self.group_id,
            feature_id=feature_id,
            feature_info=label,
            audio_file_name=filename,
            registered_at=utcnow(),
        )
        try:
            saved = self.voiceprints.insert(template)
        except DuplicateActiveVoiceprintError as e:
            logger.warning(f"Concurrent enrollment detected | user_id={user_id} | error={e}")
            self._compensate_vault_feature(feature_id)
            return EnrollResult.fail(
                Failure.ALREADY_ENROLLED,
                "User already has a voiceprint; delete it before enrolling again",
                user_id,
            )
        except PersistenceError as e:
            logger.error(f"Saving voiceprint failed | user_id={user_id} | feature_id={feature_id} | error={e}")
            self._compensate_vault_feature(feature_id)
            return EnrollResult.fail(Failure.PERSISTENCE_FAILED, "Saving voiceprint failed", user_id)

        logger.info(f"Voiceprint enrolled | user_id={user_id} | feature_id={feature_id} | id={saved.id}")
        return EnrollResult(
            success=True,
            message="Voiceprint enrolled",
            feature_id=feature_id,
            user_id=user_id,
            username=user.username,
            audio_file_name=filename,
        )

    def _compensate_vault_feature(self, feature_id: str) -> None:
        """Best-effort removal of a vault feature whose local record was not written."""
        try:
            self.vault.delete_feature(self.group_id, feature_id)
            compensation_total.labels(status="success").inc()
            logger.info(f"Compensating vault delete succeeded | feature_id={feature_id}")
        except Exception as e:
            compensation_total.labels(status="failed").inc()
            logger.error(f"Compensating vault delete failed, feature orphaned | feature_id={feature_id} | error={e}")

    # ------------------------------------------------------------------
    # Identify
    # ------------------------------------------------------------------

    def identify_voiceprint(
        self,
        audio: bytes,
        filename: str,
        client: Optional[ClientContext] = None,
    ) -> IdentifyResult:
        request_id = generate_request_id()
        start_time = time.time()
        client = client or ClientContext()
        logger.info(f"Identifying voiceprint | request_id={request_id} | file={filename}")

        try:
            result = self._identify(request_id, start_time, audio, filename, client)
        except PersistenceError as e:
            logger.error(f"Identification store error | request_id={request_id} | error={e}")
            self._audit(
                request_id, filename, client, start_time,
                response_code=INTERNAL_ERROR_CODE, response_message=str(e),
            )
            result = IdentifyResult(
                success=False,
                failure=Failure.PERSISTENCE_FAILED,
                message=f"Store unavailable: {e}",
                request_id=request_id,
                processing_time_ms=_elapsed_ms(start_time),
            )
        except Exception as e:
            logger.exception(f"Unexpected identification error | request_id={request_id} | error={e}")
            self._audit(
                request_id, filename, client, start_time,
                response_code=INTERNAL_ERROR_CODE, response_message=str(e),
            )
            result = IdentifyResult(
                success=False,
                failure=Failure.INTERNAL_ERROR,
                message=f"Internal error: {e}",
                request_id=request_id,
                processing_time_ms=_elapsed_ms(start_time),
            )

        if result.success:
            identification_latency.observe(time.time() - start_time)
            identification_total.labels(status="matched" if result.results else "no_match").inc()
        else:
            identification_total.labels(status=result.failure.value).inc()
        return result

    def _identify(
        self,
        request_id: str,
        start_time: float,
        audio: bytes,
        filename: str,
        client: ClientContext,
    ) -> IdentifyResult:
        try:
            audio_base64 = self.normalizer.process(audio, filename)
        except (AudioValidationError, AudioProcessingError) as e:
            logger.warning(f"Audio rejected | request_id={request_id} | file={filename} | error={e}")
            return IdentifyResult(
                success=False,
                failure=Failure.AUDIO_PROCESSING_FAILED,
                message=f"Audio processing failed: {e}",
                request_id=request_id,
                processing_time_ms=_elapsed_ms(start_time),
            )

        try:
            vault_result = self.vault.search_feature(self.group_id, audio_base64, self.top_k)
        except VaultError as e:
            logger.error(f"Vault searchFea failed | request_id={request_id} | {e.detailed_message()}")
            self._audit(
                request_id, filename, client, start_time,
                vault_sid=e.sid,
                response_code=e.code,
                response_message=e.api_message or e.message,
            )
            return IdentifyResult(
                success=False,
                failure=Failure.VAULT_ERROR,
                message=f"Voiceprint identification failed: {e.message}",
                request_id=request_id,
                processing_time_ms=_elapsed_ms(start_time),
                vault_code=e.code,
                vault_sid=e.sid,
            )

        results: List[IdentifiedCandidate] = []
        for candidate in parse_score_list(vault_result):
            resolved = self._resolve_candidate(candidate)
            if resolved is None:
                logger.debug(f"Skipping unknown vault feature | request_id={request_id} | feature_id={candidate.feature_id}")
                continue

            template, user = resolved
            results.append(
                IdentifiedCandidate(
                    user_id=user.id,
                    username=user.username,
                    full_name=user.full_name,
                    feature_id=candidate.feature_id,
                    confidence_score=candidate.score,
                    feature_info=candidate.feature_info,
                )
            )
            self._audit(
                request_id, filename, client, start_time,
                matched_user_id=user.id,
                matched_feature_id=candidate.feature_id,
                confidence_score=candidate.score,
                response_code=0,
            )
            self._record_match(template, request_id)

        # sort() is stable: equal scores keep vault order
        results.sort(key=lambda r: r.confidence_score, reverse=True)

        processing_time_ms = _elapsed_ms(start_time)
        logger.info(
            f"Identification finished | request_id={request_id} | matches={len(results)} | "
            f"elapsed_ms={processing_time_ms}"
        )
        return IdentifyResult(
            success=True,
            message="Voiceprint matched" if results else "No matching voiceprint",
            request_id=request_id,
            results=results,
            processing_time_ms=processing_time_ms,
            vault_code=0,
        )

    def _resolve_candidate(
        self,
        candidate: ScoredCandidate,
    ) -> Optional[Tuple[VoiceprintTemplate, User]]:
        template = self.voiceprints.find_active_by_feature_id(candidate.feature_id)
        if template is None:
            return None
        user = self.users.get_user(template.user_id)
        if user is None:
            logger.warning(f"Template owner missing | feature_id={candidate.feature_id} | user_id={template.user_id}")
            return None
        return template, user

    def _record_match(self, template: VoiceprintTemplate, request_id: str) -> None:
        try:
            self.voiceprints.record_match(template.id)
        except PersistenceError as e:
            logger.error(f"Updating match stats failed | request_id={request_id} | template_id={template.id} | error={e}")

    def _audit(
        self,
        request_id: str,
        filename: str,
        client: ClientContext,
        start_time: float,
        matched_user_id: Optional[int] = None,
        matched_feature_id: Optional[str] = None,
        confidence_score: float = 0.0,
        vault_sid: Optional[str] = None,
        response_code: Optional[int] = None,
        response_message: Optional[str] = None,
    ) -> None:
        attempt = IdentificationAttempt(
            request_id=request_id,
            matched_user_id=matched_user_id,
            matched_feature_id=matched_feature_id,
            confidence_score=confidence_score,
            audio_file_name=_clip(filename, AUDIT_FILENAME_MAX),
            vault_sid=vault_sid,
            response_code=response_code,
            response_message=_clip(response_message, AUDIT_MESSAGE_MAX),
            processing_time_ms=_elapsed_ms(start_time),
            client_ip=_clip(client.client_ip, AUDIT_CLIENT_IP_MAX),
            user_agent=_clip(client.user_agent, AUDIT_USER_AGENT_MAX),
        )
        try:
            self.logs.append(attempt)
        except Exception as e:
            logger.error(f"Writing identification log failed | request_id={request_id} | error={e}")

    # ------------------------------------------------------------------
    # Delete
    # ------------------------------------------------------------------

    def delete_user_voiceprint(self, user_id: int) -> DeleteResult:
        logger.info(f"Deleting voiceprints | user_id={user_id}")
        try:
            result = self._delete(user_id)
        except Exception as e:
            logger.exception(f"Unexpected deletion error | user_id={user_id} | error={e}")
            result = DeleteResult(
                success=False,
                failure=Failure.INTERNAL_ERROR,
                message=f"Internal error: {e}",
                user_id=user_id,
            )

        if result.success:
            status = "success"
        elif result.failure is None:
            status = "not_found"
        else:
            status = "partial"
        deletion_total.labels(status=status).inc()
        return result

    def _delete(self, user_id: int) -> DeleteResult:
        try:
            templates = self.voiceprints.find_active_by_user(user_id)
        except PersistenceError as e:
            logger.error(f"Loading voiceprints failed | user_id={user_id} | error={e}")
            return DeleteResult(
                success=False,
                failure=Failure.PERSISTENCE_FAILED,
                message=f"Store unavailable: {e}",
                user_id=user_id,
            )

        if not templates:
            logger.warning(f"User has no active voiceprint | user_id={user_id}")
            return DeleteResult(success=False, message="No active voiceprint", user_id=user_id)

        deleted = 0
        failed: List[str] = []
        failure: Optional[Failure] = None
        for template in templates:
            try:
                self.vault.delete_feature(template.group_id, template.feature_id)
            except VaultError as e:
                logger.error(f"Vault deleteFeature failed | user_id={user_id} | feature_id={template.feature_id} | {e.detailed_message()}")
                failed.append(template.feature_id)
                failure = failure or Failure.VAULT_ERROR
                continue

            try:
                self.voiceprints.deactivate(template.id)
            except PersistenceError as e:
                logger.error(f"Soft delete failed | user_id={user_id} | feature_id={template.feature_id} | error={e}")
                failed.append(template.feature_id)
                failure = failure or Failure.PERSISTENCE_FAILED
                continue

            deleted += 1
            logger.info(f"Voiceprint deleted | user_id={user_id} | feature_id={template.feature_id}")

        if failed:
            return DeleteResult(
                success=False,
                failure=failure,
                message=f"{len(failed)} of {len(templates)} voiceprints could not be deleted",
                user_id=user_id,
                deleted_count=deleted,
                failed_feature_ids=failed,
            )
        return DeleteResult(
            success=True,
            message="Voiceprint deleted",
            user_id=user_id,
            deleted_count=deleted,
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_user_voiceprints(self, user_id: int) -> List[VoiceprintTemplate]:
        return self.voiceprints.find_active_by_user(user_id)

    def get_identification_logs(
        self,
        user_id: Optional[int] = None,
        limit: int = 50,
    ) -> List[IdentificationAttempt]:
        if user_id is not None:
            return self.logs.find_by_user(user_id, limit)
        return self.logs.find_recent(limit)

    def get_statistics(self) -> IdentificationStatistics:
        today_start = utcnow().replace(hour=0, minute=0, second=0, microsecond=0)
        return IdentificationStatistics(
            total_registered_users=self.voiceprints.count_enrolled_users(),
            today_identifications=self.logs.count_between(today_start, today_start + timedelta(days=1)),
            total_identifications=self.logs.count_all(),
            daily_identifications=self.logs.count_per_day(STATISTICS_DAYS),
        )

    def ensure_group(
        self,
        group_name: Optional[str] = None,
        group_info: Optional[str] = None,
    ) -> Dict[str, Any]:
        name = group_name or self.group_name
        logger.info(f"Creating vault group | group_id={self.group_id} | group_name={name}")
        return self.vault.create_group(self.group_id, name, group_info)
