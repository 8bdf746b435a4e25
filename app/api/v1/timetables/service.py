import logging
from typing import List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.exceptions import ConflictError, NotFoundError, ValidationError
from app.core.models import (
    AcademicYear,
    Period,
    Section,
    Subject,
    Teacher,
    TeacherSubjectAssignment,
    TimetableEntry,
)
from app.db.transactions import commit_or_raise

from . import conflicts, hierarchy
from .schemas import (
    AvailableSubjectResponse,
    TimetableEntryCreate,
    TimetableEntryResponse,
    TimetableEntryUpdate,
)

logger = logging.getLogger(__name__)

SLOT_FIELDS = ("teacher_id", "day_of_week", "period_id")
# Columns that cannot be cleared by sending an explicit null.
NON_NULLABLE_FIELDS = ("subject_id", "teacher_id", "period_id", "day_of_week", "is_active")

SLOT_TAKEN_MESSAGE = "Teacher conflict: this slot was claimed by another entry"


def to_response(t: TimetableEntry) -> TimetableEntryResponse:
    section = t.section
    period = t.period
    return TimetableEntryResponse(
        id=t.id,
        main_school_id=t.main_school_id,
        campus_id=t.campus_id,
        academic_year_id=t.academic_year_id,
        section_id=t.section_id,
        subject_id=t.subject_id,
        teacher_id=t.teacher_id,
        period_id=t.period_id,
        day_of_week=t.day_of_week,
        room_number=t.room_number,
        created_by=t.created_by,
        is_active=t.is_active,
        created_at=t.created_at,
        updated_at=t.updated_at,
        section_name=section.name if section else None,
        grade_name=section.grade_level.name if section and section.grade_level else None,
        subject_name=t.subject.name if t.subject else None,
        teacher_name=(t.teacher.display_name if t.teacher else "") or "Unassigned",
        period_number=period.period_number if period else None,
        period_name=period.period_name if period else None,
        start_time=period.start_time if period else None,
        end_time=period.end_time if period else None,
    )


def _display_options():
    return (
        selectinload(TimetableEntry.section).selectinload(Section.grade_level),
        selectinload(TimetableEntry.subject),
        selectinload(TimetableEntry.teacher),
        selectinload(TimetableEntry.period),
    )


def entries_query():
    """Active entries on active periods, with display relations eagerly loaded."""
    return (
        select(TimetableEntry)
        .join(Period, Period.id == TimetableEntry.period_id)
        .where(TimetableEntry.is_active.is_(True), Period.is_active.is_(True))
        .options(*_display_options())
        .execution_options(populate_existing=True)
    )


async def _load_entry_response(db: AsyncSession, entry_id: UUID) -> Optional[TimetableEntryResponse]:
    stmt = (
        select(TimetableEntry)
        .where(TimetableEntry.id == entry_id)
        .options(*_display_options())
        .execution_options(populate_existing=True)
    )
    obj = (await db.execute(stmt)).scalar_one_or_none()
    return to_response(obj) if obj else None


async def _ensure_same_school(db: AsyncSession, owner_id: UUID, main_school_id: UUID, label: str) -> None:
    """Owner may be the main school itself or any of its campuses."""
    if await hierarchy.resolve_main_school(db, owner_id) != main_school_id:
        raise ValidationError(f"{label} does not belong to this school")


async def _validate_teacher(db: AsyncSession, teacher_id: UUID, main_school_id: UUID) -> Teacher:
    teacher = await db.get(Teacher, teacher_id)
    if not teacher:
        raise NotFoundError("Teacher not found")
    await _ensure_same_school(db, teacher.school_id, main_school_id, "Teacher")
    if not teacher.is_active:
        raise ValidationError("Teacher is inactive")
    return teacher


async def _validate_subject(db: AsyncSession, subject_id: UUID, main_school_id: UUID) -> Subject:
    subject = await db.get(Subject, subject_id)
    if not subject:
        raise NotFoundError("Subject not found")
    await _ensure_same_school(db, subject.school_id, main_school_id, "Subject")
    return subject


async def _validate_period(db: AsyncSession, period_id: UUID, main_school_id: UUID) -> Period:
    period = await db.get(Period, period_id)
    if not period:
        raise NotFoundError("Period not found")
    await _ensure_same_school(db, period.school_id, main_school_id, "Period")
    if not period.is_active:
        raise ValidationError("Period is inactive")
    if period.is_break:
        raise ValidationError("Cannot schedule a class in a break period")
    return period


async def _ensure_slot_free(
    db: AsyncSession,
    *,
    teacher_id: UUID,
    section_id: UUID,
    day_of_week: int,
    period_id: UUID,
    academic_year_id: UUID,
    exclude_entry_id: Optional[UUID] = None,
) -> None:
    teacher_check = await conflicts.check_teacher_conflict(
        db, teacher_id, day_of_week, period_id, academic_year_id, exclude_entry_id
    )
    if teacher_check.has_conflict:
        logger.info(
            "Rejected timetable write: teacher %s already booked on day %s period %s (%s)",
            teacher_id, day_of_week, period_id, teacher_check.conflict_details,
        )
        raise ConflictError(f"Teacher conflict: {teacher_check.conflict_details}", teacher_check.conflict_details)
    section_check = await conflicts.check_section_conflict(
        db, section_id, day_of_week, period_id, academic_year_id, exclude_entry_id
    )
    if section_check.has_conflict:
        logger.info(
            "Rejected timetable write: section %s already has a class on day %s period %s",
            section_id, day_of_week, period_id,
        )
        raise ConflictError(f"Section conflict: {section_check.conflict_details}", section_check.conflict_details)


async def create_timetable_entry(
    db: AsyncSession,
    payload: TimetableEntryCreate,
    created_by: Optional[UUID] = None,
) -> TimetableEntryResponse:
    """Create an entry. db must be a write session: the slot check and the insert share its transaction."""
    campus_id = await hierarchy.resolve_campus_for_section(db, payload.section_id)
    main_school_id = await hierarchy.resolve_main_school(db, campus_id)
    if (payload.campus_id and payload.campus_id != campus_id) or (
        payload.school_id and payload.school_id not in (main_school_id, campus_id)
    ):
        logger.warning(
            "Ignoring school hints school_id=%s campus_id=%s for section %s (resolved main=%s campus=%s)",
            payload.school_id, payload.campus_id, payload.section_id, main_school_id, campus_id,
        )

    ay = await db.get(AcademicYear, payload.academic_year_id)
    if not ay:
        raise NotFoundError("Academic year not found")
    if ay.school_id != main_school_id:
        raise ValidationError("Academic year does not belong to this school")
    await _validate_subject(db, payload.subject_id, main_school_id)
    await _validate_teacher(db, payload.teacher_id, main_school_id)
    await _validate_period(db, payload.period_id, main_school_id)

    await _ensure_slot_free(
        db,
        teacher_id=payload.teacher_id,
        section_id=payload.section_id,
        day_of_week=payload.day_of_week,
        period_id=payload.period_id,
        academic_year_id=payload.academic_year_id,
    )

    obj = TimetableEntry(
        main_school_id=main_school_id,
        campus_id=campus_id,
        academic_year_id=payload.academic_year_id,
        section_id=payload.section_id,
        subject_id=payload.subject_id,
        teacher_id=payload.teacher_id,
        period_id=payload.period_id,
        day_of_week=payload.day_of_week,
        room_number=payload.room_number,
        created_by=created_by,
        is_active=True,
    )
    db.add(obj)
    await commit_or_raise(db, conflict_message=SLOT_TAKEN_MESSAGE, failure_message="Timetable entry creation failed")
    logger.info(
        "Created timetable entry %s (teacher=%s section=%s day=%s period=%s)",
        obj.id, obj.teacher_id, obj.section_id, obj.day_of_week, obj.period_id,
    )
    return await _load_entry_response(db, obj.id)


async def get_timetable_entry(db: AsyncSession, entry_id: UUID) -> TimetableEntryResponse:
    entry = await _load_entry_response(db, entry_id)
    if not entry:
        raise NotFoundError("Timetable entry not found")
    return entry


async def update_timetable_entry(
    db: AsyncSession,
    entry_id: UUID,
    payload: TimetableEntryUpdate,
) -> TimetableEntryResponse:
    """Partial update. A touched teacher/day/period re-runs the slot check excluding this entry."""
    obj = await db.get(TimetableEntry, entry_id)
    if not obj:
        raise NotFoundError("Timetable entry not found")

    changes = payload.model_dump(exclude_unset=True)
    for field in NON_NULLABLE_FIELDS:
        if field in changes and changes[field] is None:
            changes.pop(field)

    if "subject_id" in changes:
        await _validate_subject(db, changes["subject_id"], obj.main_school_id)
    if "teacher_id" in changes:
        await _validate_teacher(db, changes["teacher_id"], obj.main_school_id)
    if "period_id" in changes:
        await _validate_period(db, changes["period_id"], obj.main_school_id)

    touches_slot = any(field in changes for field in SLOT_FIELDS)
    reactivates = changes.get("is_active") is True and not obj.is_active
    stays_active = changes.get("is_active", obj.is_active)
    if stays_active and (touches_slot or reactivates):
        await _ensure_slot_free(
            db,
            teacher_id=changes.get("teacher_id", obj.teacher_id),
            section_id=obj.section_id,
            day_of_week=changes.get("day_of_week", obj.day_of_week),
            period_id=changes.get("period_id", obj.period_id),
            academic_year_id=obj.academic_year_id,
            exclude_entry_id=obj.id,
        )

    for field, value in changes.items():
        setattr(obj, field, value)
    await commit_or_raise(db, conflict_message=SLOT_TAKEN_MESSAGE, failure_message="Timetable entry update failed")
    logger.info("Updated timetable entry %s fields=%s", obj.id, sorted(changes))
    return await _load_entry_response(db, obj.id)


async def delete_timetable_entry(db: AsyncSession, entry_id: UUID) -> None:
    """Hard delete. The vacated slot is free for reuse immediately; the id is gone for good."""
    obj = await db.get(TimetableEntry, entry_id)
    if not obj:
        raise NotFoundError("Timetable entry not found")
    await db.delete(obj)
    await commit_or_raise(db, conflict_message="Timetable entry is still referenced", failure_message="Timetable entry deletion failed")
    logger.info("Deleted timetable entry %s", entry_id)


async def list_by_section(
    db: AsyncSession,
    section_id: UUID,
    academic_year_id: UUID,
) -> List[TimetableEntryResponse]:
    if not await db.get(Section, section_id):
        raise NotFoundError("Section not found")
    stmt = (
        entries_query()
        .where(
            TimetableEntry.section_id == section_id,
            TimetableEntry.academic_year_id == academic_year_id,
        )
        .order_by(TimetableEntry.day_of_week, Period.period_number)
    )
    result = await db.execute(stmt)
    return [to_response(t) for t in result.scalars().all()]


async def list_by_teacher(
    db: AsyncSession,
    teacher_id: UUID,
    academic_year_id: UUID,
) -> List[TimetableEntryResponse]:
    """Not filtered by school: a teacher may hold classes in several campuses of one main school."""
    if not await db.get(Teacher, teacher_id):
        raise NotFoundError("Teacher not found")
    stmt = (
        entries_query()
        .where(
            TimetableEntry.teacher_id == teacher_id,
            TimetableEntry.academic_year_id == academic_year_id,
        )
        .order_by(TimetableEntry.day_of_week, Period.period_number)
    )
    result = await db.execute(stmt)
    return [to_response(t) for t in result.scalars().all()]


async def list_by_day(
    db: AsyncSession,
    unit_id: UUID,
    academic_year_id: UUID,
    day_of_week: int,
) -> List[TimetableEntryResponse]:
    """All classes of one weekday for a main school (every campus) or for a single campus."""
    campus_ids = await hierarchy.campus_ids_for(db, unit_id)
    stmt = (
        entries_query()
        .join(Section, Section.id == TimetableEntry.section_id)
        .where(
            TimetableEntry.campus_id.in_(campus_ids),
            TimetableEntry.academic_year_id == academic_year_id,
            TimetableEntry.day_of_week == day_of_week,
        )
        .order_by(Period.period_number, Section.name)
    )
    result = await db.execute(stmt)
    return [to_response(t) for t in result.scalars().all()]


async def list_available_subjects(
    db: AsyncSession,
    section_id: UUID,
    academic_year_id: UUID,
) -> List[AvailableSubjectResponse]:
    """Subject/teacher pairs assigned to the section. Guidance for the picker; create does not enforce it."""
    stmt = (
        select(
            Subject.id.label("subject_id"),
            Subject.name.label("subject_name"),
            Subject.code.label("subject_code"),
            Teacher.id.label("teacher_id"),
            Teacher.first_name,
            Teacher.last_name,
        )
        .select_from(TeacherSubjectAssignment)
        .join(Subject, Subject.id == TeacherSubjectAssignment.subject_id)
        .join(Teacher, Teacher.id == TeacherSubjectAssignment.teacher_id)
        .where(
            TeacherSubjectAssignment.section_id == section_id,
            TeacherSubjectAssignment.academic_year_id == academic_year_id,
        )
        .distinct()
        .order_by(Subject.name, Teacher.first_name, Teacher.last_name)
    )
    rows = (await db.execute(stmt)).all()
    return [
        AvailableSubjectResponse(
            subject_id=r.subject_id,
            subject_name=r.subject_name,
            subject_code=r.subject_code,
            teacher_id=r.teacher_id,
            teacher_name=f"{r.first_name or ''} {r.last_name or ''}".strip(),
        )
        for r in rows
    ]
