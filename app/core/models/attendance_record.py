"""Per-student, per-class attendance shells expanded from timetable entries for a calendar date."""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, CheckConstraint, Column, Date, DateTime, ForeignKey, String, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from app.db.session import Base


STATUS_PRESENT = "present"


class AttendanceRecord(Base):
    __tablename__ = "attendance_records"
    __table_args__ = (
        UniqueConstraint(
            "student_id", "timetable_entry_id", "attendance_date",
            name="uq_attendance_student_entry_date",
        ),
        CheckConstraint(
            "status IN ('present', 'absent', 'late', 'excused')",
            name="ck_attendance_status",
        ),
        {"schema": "school"},
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    main_school_id = Column(UUID(as_uuid=True), ForeignKey("core.schools.id", ondelete="CASCADE"), nullable=False)
    campus_id = Column(UUID(as_uuid=True), ForeignKey("core.schools.id", ondelete="CASCADE"), nullable=False)
    student_id = Column(UUID(as_uuid=True), ForeignKey("core.students.id", ondelete="CASCADE"), nullable=False)
    # Deleting a timetable entry drops its attendance shells with it.
    timetable_entry_id = Column(
        UUID(as_uuid=True),
        ForeignKey("school.timetable_entries.id", ondelete="CASCADE"),
        nullable=False,
    )
    attendance_date = Column(Date, nullable=False)
    status = Column(String(20), nullable=False, default=STATUS_PRESENT)
    auto_generated = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)

    student = relationship("Student")
    timetable_entry = relationship("TimetableEntry")
