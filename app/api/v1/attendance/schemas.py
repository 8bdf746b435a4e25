import datetime as dt
from typing import Optional
from uuid import UUID

from pydantic import BaseModel


class GenerateDailyAttendanceRequest(BaseModel):
    date: Optional[dt.date] = None  # defaults to today
    academic_year_id: Optional[UUID] = None
    school_id: Optional[UUID] = None  # main school (all campuses) or a single campus


class GenerateClassAttendanceRequest(BaseModel):
    timetable_entry_id: UUID
    date: dt.date


class DailyAttendanceResult(BaseModel):
    generated_count: int
    timetable_entries_processed: int


class ClassAttendanceResult(BaseModel):
    generated_count: int
