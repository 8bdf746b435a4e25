"""Timetable entries (source of truth for who teaches what, where and when)."""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, ForeignKey, Index, Integer, String, text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from app.db.session import Base


class TimetableEntry(Base):
    """
    One scheduled occurrence: teacher teaches subject to section in period on day_of_week.

    main_school_id is always the resolved root of campus_id; it is never taken from client input.
    Rows are hard-deleted, so the partial unique indexes below only ever see live slots.
    """

    __tablename__ = "timetable_entries"
    __table_args__ = (
        CheckConstraint("day_of_week >= 0 AND day_of_week <= 6", name="ck_timetable_day_of_week"),
        # A teacher is in at most one place per slot, across every campus of the main school.
        Index(
            "uq_timetable_teacher_slot_active",
            "teacher_id", "day_of_week", "period_id", "academic_year_id",
            unique=True,
            postgresql_where=text("is_active"),
            sqlite_where=text("is_active = 1"),
        ),
        Index(
            "uq_timetable_section_slot_active",
            "section_id", "day_of_week", "period_id", "academic_year_id",
            unique=True,
            postgresql_where=text("is_active"),
            sqlite_where=text("is_active = 1"),
        ),
        Index("ix_timetable_main_school_day", "main_school_id", "day_of_week"),
        {"schema": "school"},
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    main_school_id = Column(UUID(as_uuid=True), ForeignKey("core.schools.id", ondelete="CASCADE"), nullable=False)
    campus_id = Column(UUID(as_uuid=True), ForeignKey("core.schools.id", ondelete="CASCADE"), nullable=False)
    academic_year_id = Column(
        UUID(as_uuid=True),
        ForeignKey("core.academic_years.id", ondelete="RESTRICT"),
        nullable=False,
    )
    section_id = Column(UUID(as_uuid=True), ForeignKey("core.sections.id", ondelete="CASCADE"), nullable=False)
    subject_id = Column(UUID(as_uuid=True), ForeignKey("core.subjects.id", ondelete="CASCADE"), nullable=False)
    teacher_id = Column(UUID(as_uuid=True), ForeignKey("core.teachers.id", ondelete="RESTRICT"), nullable=False)
    period_id = Column(UUID(as_uuid=True), ForeignKey("core.periods.id", ondelete="CASCADE"), nullable=False)
    day_of_week = Column(Integer, nullable=False)  # 0=Monday .. 6=Sunday
    room_number = Column(String(50), nullable=True)
    created_by = Column(UUID(as_uuid=True), nullable=True)  # auth.users lives outside this service
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    main_school = relationship("School", foreign_keys=[main_school_id])
    campus = relationship("School", foreign_keys=[campus_id])
    academic_year = relationship("AcademicYear")
    section = relationship("Section")
    subject = relationship("Subject")
    teacher = relationship("Teacher")
    period = relationship("Period")
