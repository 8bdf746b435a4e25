"""
Resolve where a timetable row belongs in the school hierarchy.

Main school: a school with no parent. Campus: a school whose parent is a main school.
Timetable rows are grouped by the main school and keep the campus for "where".
Client-supplied school/campus ids are never trusted: a campus id passed off as a main
school id would split the teacher's slots into two scopes.
"""

from typing import List
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundError
from app.core.models import School, Section


async def resolve_main_school(db: AsyncSession, unit_id: UUID) -> UUID:
    """Return the parent id for a campus, or the unit's own id for a main school."""
    school = await db.get(School, unit_id)
    if not school:
        raise NotFoundError("School not found")
    return school.parent_school_id or school.id


async def resolve_campus_for_section(db: AsyncSession, section_id: UUID) -> UUID:
    """The campus of a class is the school its section lives in."""
    section = await db.get(Section, section_id)
    if not section:
        raise NotFoundError("Section not found")
    return section.school_id


async def campus_ids_for(db: AsyncSession, unit_id: UUID) -> List[UUID]:
    """A main school expands to itself plus its campuses; a campus is just itself."""
    school = await db.get(School, unit_id)
    if not school:
        raise NotFoundError("School not found")
    if school.parent_school_id is not None:
        return [school.id]
    result = await db.execute(select(School.id).where(School.parent_school_id == school.id))
    return [school.id, *result.scalars().all()]
