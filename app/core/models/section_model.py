"""Sections (e.g. A, B) under a grade level. A section lives in exactly one campus, which is where its classes happen."""
import uuid
from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from app.db.session import Base


class Section(Base):
    __tablename__ = "sections"
    __table_args__ = {"schema": "core"}

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    school_id = Column(UUID(as_uuid=True), ForeignKey("core.schools.id"), nullable=False)
    grade_level_id = Column(UUID(as_uuid=True), ForeignKey("core.grade_levels.id"), nullable=True)
    name = Column(String(50), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)

    school = relationship("School", foreign_keys=[school_id])
    grade_level = relationship("GradeLevel")
