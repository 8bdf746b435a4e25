"""Slot conflict checks. Run in the caller's session so a write checks and inserts in one transaction."""

from typing import Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.models import Section, Subject, TimetableEntry

from .schemas import ConflictResult


async def _find_conflict(
    db: AsyncSession,
    key_column,
    key_value: UUID,
    day_of_week: int,
    period_id: UUID,
    academic_year_id: UUID,
    exclude_entry_id: Optional[UUID],
) -> ConflictResult:
    stmt = (
        select(Section.name.label("section_name"), Subject.name.label("subject_name"))
        .select_from(TimetableEntry)
        .join(Section, Section.id == TimetableEntry.section_id)
        .join(Subject, Subject.id == TimetableEntry.subject_id)
        .where(
            key_column == key_value,
            TimetableEntry.day_of_week == day_of_week,
            TimetableEntry.period_id == period_id,
            TimetableEntry.academic_year_id == academic_year_id,
            TimetableEntry.is_active.is_(True),
        )
        .order_by(Section.name, Subject.name)
    )
    if exclude_entry_id is not None:
        stmt = stmt.where(TimetableEntry.id != exclude_entry_id)
    rows = (await db.execute(stmt)).all()
    if not rows:
        return ConflictResult(has_conflict=False)
    return ConflictResult(
        has_conflict=True,
        conflict_details=", ".join(f"Section: {r.section_name} - Subject: {r.subject_name}" for r in rows),
    )


async def check_teacher_conflict(
    db: AsyncSession,
    teacher_id: UUID,
    day_of_week: int,
    period_id: UUID,
    academic_year_id: UUID,
    exclude_entry_id: Optional[UUID] = None,
) -> ConflictResult:
    """Is the teacher already claimed by an active entry in this slot? Campus is deliberately ignored."""
    return await _find_conflict(
        db, TimetableEntry.teacher_id, teacher_id, day_of_week, period_id, academic_year_id, exclude_entry_id
    )


async def check_section_conflict(
    db: AsyncSession,
    section_id: UUID,
    day_of_week: int,
    period_id: UUID,
    academic_year_id: UUID,
    exclude_entry_id: Optional[UUID] = None,
) -> ConflictResult:
    return await _find_conflict(
        db, TimetableEntry.section_id, section_id, day_of_week, period_id, academic_year_id, exclude_entry_id
    )
