"""
Expand timetable entries into per-student attendance shells for a calendar date.

Relies only on entry identity: (id, section_id, period_id, day_of_week). Existing
(student, entry, date) records are left alone, so generation can be re-run safely.
"""

import logging
from datetime import date
from typing import Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.timetables import hierarchy
from app.api.v1.timetables.schedule import weekday_index
from app.core.exceptions import NotFoundError, ValidationError
from app.core.models import AttendanceRecord, Student, TimetableEntry
from app.core.models.attendance_record import STATUS_PRESENT
from app.db.transactions import commit_or_raise

from .schemas import ClassAttendanceResult, DailyAttendanceResult

logger = logging.getLogger(__name__)

DAY_NAMES = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")

CONCURRENT_GENERATION_MESSAGE = "Attendance for this date is already being generated"


async def _expand_entry(db: AsyncSession, entry: TimetableEntry, target_date: date) -> int:
    """Stage one record per active student of the entry's section who has none yet. Returns the count."""
    students = await db.execute(
        select(Student.id).where(
            Student.section_id == entry.section_id,
            Student.is_active.is_(True),
        )
    )
    existing = await db.execute(
        select(AttendanceRecord.student_id).where(
            AttendanceRecord.timetable_entry_id == entry.id,
            AttendanceRecord.attendance_date == target_date,
        )
    )
    already = set(existing.scalars().all())
    new_ids = [sid for sid in students.scalars().all() if sid not in already]
    db.add_all(
        AttendanceRecord(
            main_school_id=entry.main_school_id,
            campus_id=entry.campus_id,
            student_id=sid,
            timetable_entry_id=entry.id,
            attendance_date=target_date,
            status=STATUS_PRESENT,
            auto_generated=True,
        )
        for sid in new_ids
    )
    return len(new_ids)


async def generate_daily_attendance(
    db: AsyncSession,
    target_date: date,
    academic_year_id: Optional[UUID] = None,
    school_id: Optional[UUID] = None,
) -> DailyAttendanceResult:
    stmt = select(TimetableEntry).where(
        TimetableEntry.day_of_week == weekday_index(target_date),
        TimetableEntry.is_active.is_(True),
    )
    if academic_year_id is not None:
        stmt = stmt.where(TimetableEntry.academic_year_id == academic_year_id)
    if school_id is not None:
        stmt = stmt.where(TimetableEntry.campus_id.in_(await hierarchy.campus_ids_for(db, school_id)))
    entries = (await db.execute(stmt)).scalars().all()

    generated = 0
    for entry in entries:
        generated += await _expand_entry(db, entry, target_date)
    await commit_or_raise(
        db,
        conflict_message=CONCURRENT_GENERATION_MESSAGE,
        failure_message="Daily attendance generation failed",
    )
    logger.info(
        "Generated %s attendance records for %s classes on %s",
        generated, len(entries), target_date.isoformat(),
    )
    return DailyAttendanceResult(generated_count=generated, timetable_entries_processed=len(entries))


async def generate_class_attendance(
    db: AsyncSession,
    timetable_entry_id: UUID,
    target_date: date,
) -> ClassAttendanceResult:
    """On-demand generation for one class, e.g. when a teacher opens the register."""
    entry = await db.get(TimetableEntry, timetable_entry_id)
    if not entry:
        raise NotFoundError("Timetable entry not found")
    if not entry.is_active:
        raise ValidationError("Timetable entry is inactive")
    if weekday_index(target_date) != entry.day_of_week:
        raise ValidationError(
            f"{target_date.isoformat()} is not a {DAY_NAMES[entry.day_of_week]}; this class meets on {DAY_NAMES[entry.day_of_week]}s"
        )
    generated = await _expand_entry(db, entry, target_date)
    await commit_or_raise(
        db,
        conflict_message=CONCURRENT_GENERATION_MESSAGE,
        failure_message="Class attendance generation failed",
    )
    logger.info("Generated %s attendance records for entry %s on %s", generated, entry.id, target_date.isoformat())
    return ClassAttendanceResult(generated_count=generated)
