from datetime import datetime, time
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_serializer, field_validator


def _blank_to_none(v: Optional[str]) -> Optional[str]:
    if isinstance(v, str):
        v = v.strip()
        return v or None
    return v


class TimetableEntryCreate(BaseModel):
    academic_year_id: UUID
    section_id: UUID
    subject_id: UUID
    teacher_id: UUID
    period_id: UUID
    day_of_week: int = Field(..., ge=0, le=6, description="0=Monday .. 6=Sunday")
    room_number: Optional[str] = Field(None, max_length=50)
    # Advisory only. The campus is taken from the section and the main school is resolved from it.
    school_id: Optional[UUID] = None
    campus_id: Optional[UUID] = None

    @field_validator("room_number", mode="before")
    @classmethod
    def strip_room_number(cls, v: Optional[str]) -> Optional[str]:
        return _blank_to_none(v)


class TimetableEntryUpdate(BaseModel):
    """Partial update. Section and academic year are fixed for the life of an entry."""

    subject_id: Optional[UUID] = None
    teacher_id: Optional[UUID] = None
    period_id: Optional[UUID] = None
    day_of_week: Optional[int] = Field(None, ge=0, le=6, description="0=Monday .. 6=Sunday")
    room_number: Optional[str] = Field(None, max_length=50)
    is_active: Optional[bool] = None

    @field_validator("room_number", mode="before")
    @classmethod
    def strip_room_number(cls, v: Optional[str]) -> Optional[str]:
        return _blank_to_none(v)


class TimetableEntryResponse(BaseModel):
    id: UUID
    main_school_id: UUID
    campus_id: UUID
    academic_year_id: UUID
    section_id: UUID
    subject_id: UUID
    teacher_id: UUID
    period_id: UUID
    day_of_week: int
    room_number: Optional[str] = None
    created_by: Optional[UUID] = None
    is_active: bool
    created_at: datetime
    updated_at: datetime

    # Display labels joined from sections / subjects / teachers / periods
    section_name: Optional[str] = None
    grade_name: Optional[str] = None
    subject_name: Optional[str] = None
    teacher_name: str = "Unassigned"
    period_number: Optional[int] = None
    period_name: Optional[str] = None
    start_time: Optional[time] = None
    end_time: Optional[time] = None

    class Config:
        from_attributes = True

    @field_serializer("start_time", "end_time")
    def serialize_time_24(self, t: Optional[time]) -> Optional[str]:
        """Output as 24-hour string HH:MM (e.g. 09:00, 09:45)."""
        return t.strftime("%H:%M") if t is not None else None


class ConflictResult(BaseModel):
    """Outcome of a slot check; not persisted."""

    has_conflict: bool
    conflict_details: str = "No conflicts"


class AvailableSubjectResponse(BaseModel):
    subject_id: UUID
    subject_name: str
    subject_code: Optional[str] = None
    teacher_id: UUID
    teacher_name: str
