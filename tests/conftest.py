import os
from datetime import date, time
from types import SimpleNamespace
from typing import AsyncGenerator
from uuid import uuid4

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ.setdefault("ENVIRONMENT", "test")

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.api.v1.timetables import service as timetable_service
from app.api.v1.timetables.schemas import TimetableEntryCreate
from app.auth.security import create_access_token
from app.core.models import (
    AcademicYear,
    GradeLevel,
    Period,
    School,
    Section,
    Student,
    Subject,
    Teacher,
    TeacherSubjectAssignment,
)
from app.db.session import Base, get_db, get_write_db
from app.main import app


TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture()
async def engine():
    """Fresh in-memory SQLite per test. The core / school schemas collapse into the main database."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        future=True,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
        execution_options={"schema_translate_map": {"core": None, "school": None}},
    )

    @event.listens_for(engine.sync_engine, "connect")
    def _enable_foreign_keys(dbapi_connection, _record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture()
async def db_session(engine) -> AsyncGenerator[AsyncSession, None]:
    """Provide a database session for a test and override both FastAPI session dependencies."""
    async_session = async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with async_session() as session:

        async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
            yield session

        app.dependency_overrides[get_db] = override_get_db
        app.dependency_overrides[get_write_db] = override_get_db
        yield session

    app.dependency_overrides.clear()


@pytest.fixture()
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client bound to the FastAPI app."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture()
def headers_for():
    """Bearer headers for a caller with the given role and permission map."""

    def _headers(role: str = "ADMIN", permissions=None) -> dict:
        token = create_access_token(
            subject={"sub": str(uuid4()), "role": role, "permissions": permissions or {}},
        )
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture()
def auth_headers(headers_for) -> dict:
    return headers_for()


@pytest.fixture()
async def seed(db_session: AsyncSession) -> SimpleNamespace:
    """
    Main school S with campuses C and D.

    Section A lives in C, Section B in D. Teachers belong to one campus but can be
    scheduled in either. Periods: 09:00, 10:00, 11:00, a 12:00 break and 13:00, each 45 minutes.
    Only ids are returned so a rollback in a test never forces a lazy reload.
    """
    main = School(name="Springfield Public School", code="SPS", timezone="Asia/Kolkata")
    db_session.add(main)
    await db_session.flush()
    campus_c = School(name="North Campus", code="SPS-N", parent_school_id=main.id)
    campus_d = School(name="South Campus", code="SPS-S", parent_school_id=main.id)
    other_main = School(name="Riverside Academy", code="RVA")
    db_session.add_all([campus_c, campus_d, other_main])
    await db_session.flush()

    ay = AcademicYear(
        school_id=main.id,
        name="2025-2026",
        start_date=date(2025, 4, 1),
        end_date=date(2026, 3, 31),
        is_current=True,
    )
    other_ay = AcademicYear(
        school_id=other_main.id,
        name="2025-2026",
        start_date=date(2025, 4, 1),
        end_date=date(2026, 3, 31),
        is_current=True,
    )
    grade = GradeLevel(school_id=main.id, name="Grade 5", sort_order=5)
    db_session.add_all([ay, other_ay, grade])
    await db_session.flush()

    section_a = Section(school_id=campus_c.id, grade_level_id=grade.id, name="A")
    section_b = Section(school_id=campus_d.id, grade_level_id=grade.id, name="B")
    math = Subject(school_id=main.id, name="Mathematics", code="MATH")
    science = Subject(school_id=main.id, name="Science", code="SCI")
    teacher_1 = Teacher(school_id=campus_c.id, first_name="Asha", last_name="Rao")
    teacher_2 = Teacher(school_id=campus_d.id, first_name="Ben", last_name="Cole")
    retired = Teacher(school_id=campus_c.id, first_name="Old", last_name="Timer", is_active=False)
    db_session.add_all([section_a, section_b, math, science, teacher_1, teacher_2, retired])
    await db_session.flush()

    def _period(number, start, end, **kwargs):
        return Period(
            school_id=main.id,
            period_number=number,
            period_name=kwargs.pop("name", f"Period {number}"),
            start_time=start,
            end_time=end,
            **kwargs,
        )

    p1 = _period(1, time(9, 0), time(9, 45))
    p2 = _period(2, time(10, 0), time(10, 45))
    p3 = _period(3, time(11, 0), time(11, 45))
    lunch = _period(4, time(12, 0), time(12, 30), name="Lunch", is_break=True)
    p5 = _period(5, time(13, 0), time(13, 45))
    db_session.add_all([p1, p2, p3, lunch, p5])

    students_a = [
        Student(school_id=campus_c.id, section_id=section_a.id, first_name="Cara"),
        Student(school_id=campus_c.id, section_id=section_a.id, first_name="Dev"),
        Student(school_id=campus_c.id, section_id=section_a.id, first_name="Eli", is_active=False),
    ]
    students_b = [
        Student(school_id=campus_d.id, section_id=section_b.id, first_name="Fay"),
        Student(school_id=campus_d.id, section_id=section_b.id, first_name="Gus"),
        Student(school_id=campus_d.id, section_id=section_b.id, first_name="Hal"),
    ]
    db_session.add_all(students_a + students_b)

    db_session.add_all([
        TeacherSubjectAssignment(
            academic_year_id=ay.id, teacher_id=teacher_1.id, section_id=section_a.id, subject_id=math.id
        ),
        TeacherSubjectAssignment(
            academic_year_id=ay.id, teacher_id=teacher_2.id, section_id=section_a.id, subject_id=science.id
        ),
    ])
    await db_session.commit()

    return SimpleNamespace(
        main_school_id=main.id,
        campus_c_id=campus_c.id,
        campus_d_id=campus_d.id,
        other_main_id=other_main.id,
        academic_year_id=ay.id,
        other_academic_year_id=other_ay.id,
        section_a_id=section_a.id,
        section_b_id=section_b.id,
        math_id=math.id,
        science_id=science.id,
        teacher_1_id=teacher_1.id,
        teacher_2_id=teacher_2.id,
        retired_teacher_id=retired.id,
        p1_id=p1.id,
        p2_id=p2.id,
        p3_id=p3.id,
        lunch_id=lunch.id,
        p5_id=p5.id,
    )


@pytest.fixture()
def make_entry(db_session: AsyncSession, seed: SimpleNamespace):
    """Create an entry through the service. Defaults: teacher 1 teaches Mathematics to A, Monday P1."""

    async def _make(**overrides):
        fields = {
            "academic_year_id": seed.academic_year_id,
            "section_id": seed.section_a_id,
            "subject_id": seed.math_id,
            "teacher_id": seed.teacher_1_id,
            "period_id": seed.p1_id,
            "day_of_week": 0,
        }
        fields.update(overrides)
        return await timetable_service.create_timetable_entry(db_session, TimetableEntryCreate(**fields))

    return _make
