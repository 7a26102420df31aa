"""Voiceprint Template Repository - SQL persistence of user/feature links."""

from __future__ import annotations

import logging
from typing import List, Optional

from sqlalchemy import func, select, update

from repositories.database import DatabasePool
from repositories.interfaces.voiceprint_repository import IVoiceprintRepository
from repositories.models.voiceprint import VoiceprintTemplate
from repositories.sql.schema import utcnow, voiceprints

logger = logging.getLogger(__name__)


class SQLVoiceprintRepository(IVoiceprintRepository):
    """Voiceprint templates stored in the `voiceprints` table."""

    def __init__(self, pool: type[DatabasePool] = DatabasePool) -> None:
        self._pool = pool

    def exists_active_for_user(self, user_id: int) -> bool:
        stmt = (
            select(func.count())
            .select_from(voiceprints)
            .where(voiceprints.c.user_id == user_id, voiceprints.c.is_active.is_(True))
        )
        return (self._pool.execute_scalar(stmt) or 0) > 0

    def find_active_by_user(self, user_id: int) -> List[VoiceprintTemplate]:
        stmt = (
            select(voiceprints)
            .where(voiceprints.c.user_id == user_id, voiceprints.c.is_active.is_(True))
            .order_by(voiceprints.c.registered_at.desc(), voiceprints.c.id.desc())
        )
        return [VoiceprintTemplate(**row) for row in self._pool.execute_query(stmt)]

    def find_active_by_feature_id(self, feature_id: str) -> Optional[VoiceprintTemplate]:
        stmt = select(voiceprints).where(
            voiceprints.c.feature_id == feature_id, voiceprints.c.is_active.is_(True)
        )
        rows = self._pool.execute_query(stmt)
        return VoiceprintTemplate(**rows[0]) if rows else None

    def insert(self, template: VoiceprintTemplate) -> VoiceprintTemplate:
        now = utcnow()
        values = template.dict(exclude={"id", "created_at", "updated_at"})
        values["registered_at"] = values.get("registered_at") or now
        values["created_at"] = now
        values["updated_at"] = now
        new_id = self._pool.execute_insert(voiceprints.insert().values(**values))
        logger.info(
            f"Voiceprint template saved | id={new_id} | user_id={template.user_id} | "
            f"feature_id={template.feature_id}"
        )
        return template.copy(update={"id": new_id, **values})

    def record_match(self, template_id: int) -> None:
        now = utcnow()
        stmt = (
            update(voiceprints)
            .where(voiceprints.c.id == template_id)
            .values(
                match_count=voiceprints.c.match_count + 1,
                last_matched_at=now,
                updated_at=now,
            )
        )
        self._pool.execute_update(stmt)

    def deactivate(self, template_id: int) -> bool:
        stmt = (
            update(voiceprints)
            .where(voiceprints.c.id == template_id, voiceprints.c.is_active.is_(True))
            .values(is_active=False, updated_at=utcnow())
        )
        affected = self._pool.execute_update(stmt)
        if affected:
            logger.info(f"Voiceprint template deactivated | id={template_id}")
        return affected > 0

    def count_enrolled_users(self) -> int:
        stmt = select(func.count(func.distinct(voiceprints.c.user_id))).where(
            voiceprints.c.is_active.is_(True)
        )
        return int(self._pool.execute_scalar(stmt) or 0)
