import uuid

from sqlalchemy import Column, ForeignKey, Integer, String
from sqlalchemy.dialects.postgresql import UUID

from app.db.session import Base


class GradeLevel(Base):
    __tablename__ = "grade_levels"
    __table_args__ = {"schema": "core"}

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    school_id = Column(UUID(as_uuid=True), ForeignKey("core.schools.id", ondelete="CASCADE"), nullable=False)
    name = Column(String(50), nullable=False)  # e.g. "Grade 5"
    sort_order = Column(Integer, nullable=True)
