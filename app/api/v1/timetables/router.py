from datetime import date, datetime
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import get_current_user
from app.auth.rbac import check_permission
from app.auth.schemas import CurrentUser
from app.core.schemas import ApiResponse
from app.db.session import get_db, get_write_db

from .schemas import (
    AvailableSubjectResponse,
    ConflictResult,
    TimetableEntryCreate,
    TimetableEntryResponse,
    TimetableEntryUpdate,
)
from . import conflicts, schedule, service

router = APIRouter(prefix="/api/v1/timetables", tags=["timetables"])

NO_CURRENT_YEAR_MESSAGE = "No current academic year found"


@router.get(
    "/section/{section_id}",
    response_model=ApiResponse[List[TimetableEntryResponse]],
    dependencies=[Depends(check_permission("timetable", "read"))],
)
async def get_timetable_by_section(
    section_id: UUID,
    academic_year_id: UUID,
    db: AsyncSession = Depends(get_db),
):
    return ApiResponse(data=await service.list_by_section(db, section_id, academic_year_id))


@router.get(
    "/section/{section_id}/available-subjects",
    response_model=ApiResponse[List[AvailableSubjectResponse]],
    dependencies=[Depends(check_permission("timetable", "read"))],
)
async def get_available_subjects(
    section_id: UUID,
    academic_year_id: UUID,
    db: AsyncSession = Depends(get_db),
):
    return ApiResponse(data=await service.list_available_subjects(db, section_id, academic_year_id))


@router.get(
    "/teacher/{teacher_id}",
    response_model=ApiResponse[List[TimetableEntryResponse]],
    dependencies=[Depends(check_permission("timetable", "read"))],
)
async def get_timetable_by_teacher(
    teacher_id: UUID,
    academic_year_id: UUID,
    db: AsyncSession = Depends(get_db),
):
    return ApiResponse(data=await service.list_by_teacher(db, teacher_id, academic_year_id))


@router.get(
    "/day/{day_of_week}",
    response_model=ApiResponse[List[TimetableEntryResponse]],
    dependencies=[Depends(check_permission("timetable", "read"))],
)
async def get_timetable_by_day(
    school_id: UUID,
    academic_year_id: UUID,
    day_of_week: int = Path(..., ge=0, le=6, description="0=Monday .. 6=Sunday"),
    db: AsyncSession = Depends(get_db),
):
    return ApiResponse(data=await service.list_by_day(db, school_id, academic_year_id, day_of_week))


@router.get(
    "/conflicts/check",
    response_model=ApiResponse[ConflictResult],
    dependencies=[Depends(check_permission("timetable", "read"))],
)
async def check_teacher_conflict(
    teacher_id: UUID,
    period_id: UUID,
    academic_year_id: UUID,
    day_of_week: int = Query(..., ge=0, le=6),
    exclude_entry_id: Optional[UUID] = Query(None),
    db: AsyncSession = Depends(get_db),
):
    """Dry run of the check performed on create/update."""
    result = await conflicts.check_teacher_conflict(
        db, teacher_id, day_of_week, period_id, academic_year_id, exclude_entry_id
    )
    return ApiResponse(data=result)


@router.get(
    "/current-class",
    response_model=ApiResponse[Optional[TimetableEntryResponse]],
    dependencies=[Depends(check_permission("timetable", "read"))],
)
async def get_current_class(
    teacher_id: UUID,
    at: Optional[datetime] = Query(None, description="Instant to evaluate; defaults to now at the teacher's school"),
    academic_year_id: Optional[UUID] = Query(None),
    db: AsyncSession = Depends(get_db),
):
    academic_year_id, now = await schedule.resolve_teacher_clock(db, teacher_id, academic_year_id, at)
    if academic_year_id is None:
        return ApiResponse(data=None, message=NO_CURRENT_YEAR_MESSAGE)
    entry = await schedule.get_current_class(db, teacher_id, academic_year_id, now)
    return ApiResponse(data=entry, message=None if entry else "No class scheduled at this time")


@router.get(
    "/next-class",
    response_model=ApiResponse[Optional[TimetableEntryResponse]],
    dependencies=[Depends(check_permission("timetable", "read"))],
)
async def get_next_class(
    teacher_id: UUID,
    at: Optional[datetime] = Query(None, description="Instant to evaluate; defaults to now at the teacher's school"),
    academic_year_id: Optional[UUID] = Query(None),
    db: AsyncSession = Depends(get_db),
):
    academic_year_id, now = await schedule.resolve_teacher_clock(db, teacher_id, academic_year_id, at)
    if academic_year_id is None:
        return ApiResponse(data=None, message=NO_CURRENT_YEAR_MESSAGE)
    entry = await schedule.get_next_class(db, teacher_id, academic_year_id, now)
    return ApiResponse(data=entry, message=None if entry else "No more classes today")


@router.get(
    "/teacher-schedule",
    response_model=ApiResponse[List[TimetableEntryResponse]],
    dependencies=[Depends(check_permission("timetable", "read"))],
)
async def get_teacher_schedule(
    teacher_id: UUID,
    on_date: Optional[date] = Query(None, alias="date"),
    academic_year_id: Optional[UUID] = Query(None),
    db: AsyncSession = Depends(get_db),
):
    academic_year_id, now = await schedule.resolve_teacher_clock(db, teacher_id, academic_year_id)
    if academic_year_id is None:
        return ApiResponse(data=[], message=NO_CURRENT_YEAR_MESSAGE)
    entries = await schedule.get_teacher_schedule_for_date(db, teacher_id, academic_year_id, on_date or now.date())
    return ApiResponse(data=entries)


@router.post(
    "",
    response_model=ApiResponse[TimetableEntryResponse],
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(check_permission("timetable", "create"))],
)
async def create_timetable_entry(
    payload: TimetableEntryCreate,
    db: AsyncSession = Depends(get_write_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    entry = await service.create_timetable_entry(db, payload, created_by=current_user.id)
    return ApiResponse(data=entry, message="Timetable entry created successfully")


@router.get(
    "/{entry_id}",
    response_model=ApiResponse[TimetableEntryResponse],
    dependencies=[Depends(check_permission("timetable", "read"))],
)
async def get_timetable_entry(
    entry_id: UUID,
    db: AsyncSession = Depends(get_db),
):
    return ApiResponse(data=await service.get_timetable_entry(db, entry_id))


@router.put(
    "/{entry_id}",
    response_model=ApiResponse[TimetableEntryResponse],
    dependencies=[Depends(check_permission("timetable", "update"))],
)
async def update_timetable_entry(
    entry_id: UUID,
    payload: TimetableEntryUpdate,
    db: AsyncSession = Depends(get_write_db),
):
    entry = await service.update_timetable_entry(db, entry_id, payload)
    return ApiResponse(data=entry, message="Timetable entry updated successfully")


@router.delete(
    "/{entry_id}",
    response_model=ApiResponse[None],
    dependencies=[Depends(check_permission("timetable", "delete"))],
)
async def delete_timetable_entry(
    entry_id: UUID,
    db: AsyncSession = Depends(get_write_db),
):
    """Hard delete: the id is not queryable afterwards."""
    await service.delete_timetable_entry(db, entry_id)
    return ApiResponse(message="Timetable entry deleted successfully")
