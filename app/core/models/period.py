"""Bell-schedule periods. period_number is the sort order within a school day."""

import uuid

from sqlalchemy import Boolean, Column, ForeignKey, Integer, String, Time
from sqlalchemy.dialects.postgresql import UUID

from app.db.session import Base


class Period(Base):
    __tablename__ = "periods"
    __table_args__ = {"schema": "core"}

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    school_id = Column(UUID(as_uuid=True), ForeignKey("core.schools.id", ondelete="CASCADE"), nullable=False)
    period_number = Column(Integer, nullable=False)
    period_name = Column(String(50), nullable=True)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)  # exclusive
    is_break = Column(Boolean, nullable=False, default=False)
    is_active = Column(Boolean, nullable=False, default=True)
