"""
Time-relative teacher views: current class, next class and the schedule for a date.

Every query takes the academic year and the instant explicitly. Only the HTTP boundary
looks up the school's current academic year and the school-local clock.
"""

import logging
from datetime import date, datetime
from typing import List, Optional, Tuple
from uuid import UUID
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import NotFoundError
from app.core.models import AcademicYear, Period, School, Teacher, TimetableEntry

from . import hierarchy
from .schemas import TimetableEntryResponse
from .service import entries_query, to_response

logger = logging.getLogger(__name__)


def weekday_index(day: date) -> int:
    """Monday=0 .. Sunday=6, the same domain as TimetableEntry.day_of_week."""
    sunday_first = day.isoweekday() % 7
    return (sunday_first + 6) % 7


def _teacher_day_query(teacher_id: UUID, academic_year_id: UUID, day_of_week: int):
    return entries_query().where(
        TimetableEntry.teacher_id == teacher_id,
        TimetableEntry.academic_year_id == academic_year_id,
        TimetableEntry.day_of_week == day_of_week,
    )


async def get_current_class(
    db: AsyncSession,
    teacher_id: UUID,
    academic_year_id: UUID,
    now: datetime,
) -> Optional[TimetableEntryResponse]:
    """The class whose period [start_time, end_time) contains the wall time of now.

    If period data overlaps (it should not for one teacher), the earliest-starting match wins.
    """
    wall_time = now.time()
    stmt = (
        _teacher_day_query(teacher_id, academic_year_id, weekday_index(now.date()))
        .where(Period.start_time <= wall_time, Period.end_time > wall_time)
        .order_by(Period.start_time, Period.period_number)
        .limit(1)
    )
    obj = (await db.execute(stmt)).scalars().first()
    return to_response(obj) if obj else None


async def get_next_class(
    db: AsyncSession,
    teacher_id: UUID,
    academic_year_id: UUID,
    now: datetime,
) -> Optional[TimetableEntryResponse]:
    """The earliest class starting strictly after now, same day only (no roll-over to tomorrow)."""
    wall_time = now.time()
    stmt = (
        _teacher_day_query(teacher_id, academic_year_id, weekday_index(now.date()))
        .where(Period.start_time > wall_time)
        .order_by(Period.start_time, Period.period_number)
        .limit(1)
    )
    obj = (await db.execute(stmt)).scalars().first()
    return to_response(obj) if obj else None


async def get_teacher_schedule_for_date(
    db: AsyncSession,
    teacher_id: UUID,
    academic_year_id: UUID,
    on_date: date,
) -> List[TimetableEntryResponse]:
    stmt = _teacher_day_query(teacher_id, academic_year_id, weekday_index(on_date)).order_by(
        Period.start_time, Period.period_number
    )
    result = await db.execute(stmt)
    return [to_response(t) for t in result.scalars().all()]


async def resolve_current_academic_year(db: AsyncSession, unit_id: UUID) -> Optional[UUID]:
    """The academic year flagged current for the unit's main school, if any."""
    main_school_id = await hierarchy.resolve_main_school(db, unit_id)
    result = await db.execute(
        select(AcademicYear.id)
        .where(
            AcademicYear.school_id == main_school_id,
            AcademicYear.is_current.is_(True),
        )
        .order_by(AcademicYear.start_date.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def _school_timezone(db: AsyncSession, school_id: UUID) -> ZoneInfo:
    """Campus timezone, else its main school's, else DEFAULT_TIMEZONE."""
    name = None
    school = await db.get(School, school_id)
    if school is not None:
        name = school.timezone
        if not name and school.parent_school_id:
            parent = await db.get(School, school.parent_school_id)
            name = parent.timezone if parent else None
    if name:
        try:
            return ZoneInfo(name)
        except (ZoneInfoNotFoundError, ValueError):
            logger.warning("Unusable timezone %r on school %s; using %s", name, school_id, settings.default_timezone)
    return ZoneInfo(settings.default_timezone)


async def resolve_teacher_clock(
    db: AsyncSession,
    teacher_id: UUID,
    academic_year_id: Optional[UUID] = None,
    at: Optional[datetime] = None,
) -> Tuple[Optional[UUID], datetime]:
    """Pin the (academic year, instant) pair a time-relative teacher query runs against.

    A naive `at` is read as school-local wall time; an aware one is converted to school time.
    """
    teacher = await db.get(Teacher, teacher_id)
    if not teacher:
        raise NotFoundError("Teacher not found")
    if academic_year_id is None:
        academic_year_id = await resolve_current_academic_year(db, teacher.school_id)
    if at is None or at.tzinfo is not None:
        tz = await _school_timezone(db, teacher.school_id)
        at = datetime.now(tz) if at is None else at.astimezone(tz)
    return academic_year_id, at
