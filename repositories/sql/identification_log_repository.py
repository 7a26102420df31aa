"""Identification Log Repository - append-only audit trail of identify calls."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Dict, List

from sqlalchemy import func, select

from repositories.database import DatabasePool
from repositories.interfaces.identification_log_repository import IIdentificationLogRepository
from repositories.models.voiceprint import IdentificationAttempt
from repositories.sql.schema import identification_logs, utcnow

logger = logging.getLogger(__name__)


class SQLIdentificationLogRepository(IIdentificationLogRepository):
    """Audit rows stored in the `identification_logs` table."""

    def __init__(self, pool: type[DatabasePool] = DatabasePool) -> None:
        self._pool = pool

    def append(self, attempt: IdentificationAttempt) -> IdentificationAttempt:
        now = utcnow()
        values = attempt.dict(exclude={"id", "created_at"})
        values["identified_at"] = values.get("identified_at") or now
        values["created_at"] = now
        new_id = self._pool.execute_insert(identification_logs.insert().values(**values))
        logger.debug(
            f"Identification log saved | id={new_id} | request_id={attempt.request_id} | "
            f"matched_user_id={attempt.matched_user_id} | code={attempt.response_code}"
        )
        return attempt.copy(update={"id": new_id, **values})

    def find_recent(self, limit: int = 50) -> List[IdentificationAttempt]:
        stmt = (
            select(identification_logs)
            .order_by(identification_logs.c.identified_at.desc(), identification_logs.c.id.desc())
            .limit(limit)
        )
        return self._rows(stmt)

    def find_by_user(self, user_id: int, limit: int = 50) -> List[IdentificationAttempt]:
        stmt = (
            select(identification_logs)
            .where(identification_logs.c.matched_user_id == user_id)
            .order_by(identification_logs.c.identified_at.desc(), identification_logs.c.id.desc())
            .limit(limit)
        )
        return self._rows(stmt)

    def find_by_request_id(self, request_id: str) -> List[IdentificationAttempt]:
        stmt = (
            select(identification_logs)
            .where(identification_logs.c.request_id == request_id)
            .order_by(identification_logs.c.id)
        )
        return self._rows(stmt)

    def count_all(self) -> int:
        stmt = select(func.count()).select_from(identification_logs)
        return int(self._pool.execute_scalar(stmt) or 0)

    def count_between(self, start: datetime, end: datetime) -> int:
        stmt = (
            select(func.count())
            .select_from(identification_logs)
            .where(
                identification_logs.c.identified_at >= start,
                identification_logs.c.identified_at < end,
            )
        )
        return int(self._pool.execute_scalar(stmt) or 0)

    def count_per_day(self, days: int = 7) -> Dict[str, int]:
        today = utcnow().date()
        first_day = today - timedelta(days=max(1, days) - 1)
        counts: Dict[str, int] = {
            (first_day + timedelta(days=offset)).isoformat(): 0 for offset in range(max(1, days))
        }

        stmt = select(identification_logs.c.identified_at).where(
            identification_logs.c.identified_at >= datetime.combine(first_day, datetime.min.time())
        )
        # Bucket in Python so the grouping is identical across dialects
        for row in self._pool.execute_query(stmt):
            day = row["identified_at"].date().isoformat()
            if day in counts:
                counts[day] += 1
        return counts

    def _rows(self, stmt) -> List[IdentificationAttempt]:
        return [IdentificationAttempt(**row) for row in self._pool.execute_query(stmt)]
