"""Organizational units. A school with no parent is a main school; a school with a parent is a campus of it."""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from app.db.session import Base


class School(Base):
    """
    Self-referential hierarchy of depth exactly 2.

    - parent_school_id IS NULL: main school (scheduling / reporting root).
    - parent_school_id set: campus; classes physically happen here.
    Teachers are shared across the campuses of one main school.
    """

    __tablename__ = "schools"
    __table_args__ = {"schema": "core"}

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    parent_school_id = Column(
        UUID(as_uuid=True),
        ForeignKey("core.schools.id", ondelete="RESTRICT"),
        nullable=True,
        index=True,
    )
    name = Column(String(255), nullable=False)
    code = Column(String(20), nullable=True)
    timezone = Column(String(100), nullable=True)  # IANA name, e.g. Asia/Kolkata
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)

    parent = relationship("School", remote_side=[id], backref="campuses")
