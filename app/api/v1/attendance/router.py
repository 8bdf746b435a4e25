from datetime import date

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.rbac import check_permission
from app.core.schemas import ApiResponse
from app.db.session import get_write_db

from .schemas import (
    ClassAttendanceResult,
    DailyAttendanceResult,
    GenerateClassAttendanceRequest,
    GenerateDailyAttendanceRequest,
)
from . import service

router = APIRouter(prefix="/api/v1/attendance", tags=["attendance"])


@router.post(
    "/generate-daily",
    response_model=ApiResponse[DailyAttendanceResult],
    dependencies=[Depends(check_permission("attendance", "create"))],
)
async def generate_daily_attendance(
    payload: GenerateDailyAttendanceRequest,
    db: AsyncSession = Depends(get_write_db),
):
    result = await service.generate_daily_attendance(
        db,
        payload.date or date.today(),
        academic_year_id=payload.academic_year_id,
        school_id=payload.school_id,
    )
    return ApiResponse(
        data=result,
        message=f"Generated {result.generated_count} attendance records for {result.timetable_entries_processed} classes",
    )


@router.post(
    "/generate-class",
    response_model=ApiResponse[ClassAttendanceResult],
    dependencies=[Depends(check_permission("attendance", "create"))],
)
async def generate_class_attendance(
    payload: GenerateClassAttendanceRequest,
    db: AsyncSession = Depends(get_write_db),
):
    result = await service.generate_class_attendance(db, payload.timetable_entry_id, payload.date)
    return ApiResponse(data=result)
