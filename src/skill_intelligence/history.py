"""Persisted validation history.

Every graded challenge that is folded into a skill appends one row.
Nothing here updates or deletes rows; confidence is always recomputed
from the full (or recent) history.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy import select

from .core.models import ValidationRecord, utcnow
from .db import session_scope
from .sqlmodels import ValidationRecordRow

logger = logging.getLogger(__name__)


async def record_validation(skill_id: str, record: ValidationRecord) -> None:
    """Append a validation record for a skill."""
    async with session_scope() as session:
        session.add(ValidationRecordRow(
            skill_id=skill_id,
            method=record.method,
            score=record.score,
            feedback=record.feedback,
            recorded_at=_as_utc(record.date),
        ))
    logger.info("Recorded %s validation for skill %s (score %.1f)", record.method, skill_id, record.score)


async def get_validation_history(
    skill_id: str,
    days: Optional[int] = None,
) -> list[ValidationRecord]:
    """Validation records for a skill, oldest first.

    Args:
        skill_id: Skill to look up.
        days: Only return records from the last N days. None returns everything.
    """
    async with session_scope() as session:
        query = (
            select(ValidationRecordRow)
            .where(ValidationRecordRow.skill_id == skill_id)
            .order_by(ValidationRecordRow.recorded_at.asc(), ValidationRecordRow.id.asc())
        )
        if days is not None:
            query = query.where(ValidationRecordRow.recorded_at >= utcnow() - timedelta(days=days))

        result = await session.execute(query)
        rows = result.scalars().all()

    return [
        ValidationRecord(
            date=r.recorded_at if r.recorded_at.tzinfo else r.recorded_at.replace(tzinfo=timezone.utc),
            method=r.method,
            score=r.score,
            feedback=r.feedback,
        )
        for r in rows
    ]


def _as_utc(value: datetime) -> datetime:
    """SQLite keeps wall-clock time only, so store instants in UTC. Naive values are UTC already."""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc)
