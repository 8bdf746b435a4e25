from uuid import UUID, uuid4

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.models import AcademicYear, School, TimetableEntry
from app.db.session import get_db
from app.main import app

BASE = "/api/v1/timetables"


def entry_payload(seed, **overrides) -> dict:
    payload = {
        "academic_year_id": str(seed.academic_year_id),
        "section_id": str(seed.section_a_id),
        "subject_id": str(seed.math_id),
        "teacher_id": str(seed.teacher_1_id),
        "period_id": str(seed.p2_id),
        "day_of_week": 0,
    }
    payload.update({k: str(v) if isinstance(v, UUID) else v for k, v in overrides.items()})
    return payload


@pytest.mark.asyncio
async def test_create_entry(client: AsyncClient, db_session: AsyncSession, seed, auth_headers) -> None:
    response = await client.post(
        BASE,
        json=entry_payload(seed, room_number="101", school_id=seed.other_main_id),
        headers=auth_headers,
    )
    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert body["message"] == "Timetable entry created successfully"

    data = body["data"]
    assert data["main_school_id"] == str(seed.main_school_id)
    assert data["campus_id"] == str(seed.campus_c_id)
    assert data["start_time"] == "10:00"
    assert data["end_time"] == "10:45"
    assert data["teacher_name"] == "Asha Rao"
    assert data["created_by"] is not None

    stored = await db_session.execute(select(TimetableEntry).where(TimetableEntry.id == UUID(data["id"])))
    assert stored.scalar_one().room_number == "101"


@pytest.mark.asyncio
async def test_teacher_double_booking_across_campuses(client: AsyncClient, seed, auth_headers) -> None:
    first = await client.post(BASE, json=entry_payload(seed), headers=auth_headers)
    assert first.status_code == 201
    first_id = first.json()["data"]["id"]

    clash = await client.post(BASE, json=entry_payload(seed, section_id=seed.section_b_id), headers=auth_headers)
    assert clash.status_code == 409
    body = clash.json()
    assert body["success"] is False
    assert body["error"].startswith("Teacher conflict")
    assert body["conflict_details"] == "Section: A - Subject: Mathematics"

    deleted = await client.delete(f"{BASE}/{first_id}", headers=auth_headers)
    assert deleted.status_code == 200
    assert deleted.json()["success"] is True

    retry = await client.post(BASE, json=entry_payload(seed, section_id=seed.section_b_id), headers=auth_headers)
    assert retry.status_code == 201
    assert retry.json()["data"]["section_name"] == "B"


@pytest.mark.asyncio
async def test_deleted_entry_is_gone(client: AsyncClient, seed, auth_headers) -> None:
    created = await client.post(BASE, json=entry_payload(seed), headers=auth_headers)
    entry_id = created.json()["data"]["id"]

    await client.delete(f"{BASE}/{entry_id}", headers=auth_headers)

    response = await client.get(f"{BASE}/{entry_id}", headers=auth_headers)
    assert response.status_code == 404
    assert response.json() == {"success": False, "error": "Timetable entry not found"}

    again = await client.delete(f"{BASE}/{entry_id}", headers=auth_headers)
    assert again.status_code == 404


@pytest.mark.asyncio
async def test_break_period_is_rejected(client: AsyncClient, seed, auth_headers) -> None:
    response = await client.post(BASE, json=entry_payload(seed, period_id=seed.lunch_id), headers=auth_headers)
    assert response.status_code == 400
    assert response.json()["error"] == "Cannot schedule a class in a break period"


@pytest.mark.asyncio
async def test_day_of_week_out_of_range_is_422(client: AsyncClient, seed, auth_headers) -> None:
    response = await client.post(BASE, json=entry_payload(seed, day_of_week=7), headers=auth_headers)
    assert response.status_code == 422
    assert response.json()["success"] is False

    by_day = await client.get(
        f"{BASE}/day/7",
        params={"school_id": str(seed.main_school_id), "academic_year_id": str(seed.academic_year_id)},
        headers=auth_headers,
    )
    assert by_day.status_code == 422


@pytest.mark.asyncio
async def test_update_entry(client: AsyncClient, seed, auth_headers) -> None:
    created = await client.post(BASE, json=entry_payload(seed), headers=auth_headers)
    entry_id = created.json()["data"]["id"]

    response = await client.put(
        f"{BASE}/{entry_id}",
        json={"period_id": str(seed.p3_id), "room_number": "Lab 2"},
        headers=auth_headers,
    )
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["id"] == entry_id
    assert data["period_number"] == 3
    assert data["room_number"] == "Lab 2"


@pytest.mark.asyncio
async def test_update_into_taken_slot_is_409(client: AsyncClient, seed, auth_headers) -> None:
    await client.post(BASE, json=entry_payload(seed), headers=auth_headers)
    other = await client.post(
        BASE, json=entry_payload(seed, section_id=seed.section_b_id, period_id=seed.p1_id), headers=auth_headers
    )
    other_id = other.json()["data"]["id"]

    response = await client.put(f"{BASE}/{other_id}", json={"period_id": str(seed.p2_id)}, headers=auth_headers)
    assert response.status_code == 409
    assert response.json()["conflict_details"] == "Section: A - Subject: Mathematics"


@pytest.mark.asyncio
async def test_listing_endpoints(client: AsyncClient, seed, auth_headers) -> None:
    await client.post(BASE, json=entry_payload(seed), headers=auth_headers)
    await client.post(
        BASE,
        json=entry_payload(seed, section_id=seed.section_b_id, teacher_id=seed.teacher_2_id, subject_id=seed.science_id),
        headers=auth_headers,
    )
    ay = {"academic_year_id": str(seed.academic_year_id)}

    by_section = await client.get(f"{BASE}/section/{seed.section_a_id}", params=ay, headers=auth_headers)
    assert [e["subject_name"] for e in by_section.json()["data"]] == ["Mathematics"]

    by_teacher = await client.get(f"{BASE}/teacher/{seed.teacher_2_id}", params=ay, headers=auth_headers)
    assert [e["section_name"] for e in by_teacher.json()["data"]] == ["B"]

    by_day = await client.get(
        f"{BASE}/day/0", params={**ay, "school_id": str(seed.main_school_id)}, headers=auth_headers
    )
    assert [e["section_name"] for e in by_day.json()["data"]] == ["A", "B"]

    subjects = await client.get(f"{BASE}/section/{seed.section_a_id}/available-subjects", params=ay, headers=auth_headers)
    assert [s["subject_name"] for s in subjects.json()["data"]] == ["Mathematics", "Science"]

    missing = await client.get(f"{BASE}/section/{uuid4()}", params=ay, headers=auth_headers)
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_conflict_check_endpoint(client: AsyncClient, seed, auth_headers) -> None:
    created = await client.post(BASE, json=entry_payload(seed), headers=auth_headers)
    entry_id = created.json()["data"]["id"]
    params = {
        "teacher_id": str(seed.teacher_1_id),
        "day_of_week": 0,
        "period_id": str(seed.p2_id),
        "academic_year_id": str(seed.academic_year_id),
    }

    busy = await client.get(f"{BASE}/conflicts/check", params=params, headers=auth_headers)
    assert busy.json()["data"] == {"has_conflict": True, "conflict_details": "Section: A - Subject: Mathematics"}

    excluded = await client.get(
        f"{BASE}/conflicts/check", params={**params, "exclude_entry_id": entry_id}, headers=auth_headers
    )
    assert excluded.json()["data"] == {"has_conflict": False, "conflict_details": "No conflicts"}


@pytest.mark.asyncio
async def test_current_and_next_class(client: AsyncClient, seed, auth_headers) -> None:
    await client.post(BASE, json=entry_payload(seed, period_id=seed.p1_id), headers=auth_headers)
    await client.post(BASE, json=entry_payload(seed, period_id=seed.p3_id), headers=auth_headers)
    teacher = {"teacher_id": str(seed.teacher_1_id)}

    current = await client.get(
        f"{BASE}/current-class", params={**teacher, "at": "2025-06-02T09:30:00"}, headers=auth_headers
    )
    assert current.status_code == 200
    assert current.json()["data"]["start_time"] == "09:00"

    idle = await client.get(
        f"{BASE}/current-class", params={**teacher, "at": "2025-06-02T09:50:00"}, headers=auth_headers
    )
    assert idle.json()["data"] is None
    assert idle.json()["message"] == "No class scheduled at this time"

    upcoming = await client.get(
        f"{BASE}/next-class", params={**teacher, "at": "2025-06-02T09:50:00"}, headers=auth_headers
    )
    assert upcoming.json()["data"]["period_number"] == 3

    done = await client.get(
        f"{BASE}/next-class", params={**teacher, "at": "2025-06-02T12:00:00"}, headers=auth_headers
    )
    assert done.json()["data"] is None
    assert done.json()["message"] == "No more classes today"

    schedule = await client.get(
        f"{BASE}/teacher-schedule", params={**teacher, "date": "2025-06-02"}, headers=auth_headers
    )
    assert [e["period_number"] for e in schedule.json()["data"]] == [1, 3]


@pytest.mark.asyncio
async def test_time_queries_without_current_academic_year(
    client: AsyncClient, db_session: AsyncSession, seed, auth_headers
) -> None:
    ay = await db_session.get(AcademicYear, seed.academic_year_id)
    ay.is_current = False
    await db_session.commit()

    response = await client.get(
        f"{BASE}/current-class",
        params={"teacher_id": str(seed.teacher_1_id), "at": "2025-06-02T09:30:00"},
        headers=auth_headers,
    )
    assert response.status_code == 200
    assert response.json()["data"] is None
    assert response.json()["message"] == "No current academic year found"


@pytest.mark.asyncio
async def test_unknown_teacher_for_current_class(client: AsyncClient, seed, auth_headers) -> None:
    response = await client.get(f"{BASE}/current-class", params={"teacher_id": str(uuid4())}, headers=auth_headers)
    assert response.status_code == 404
    assert response.json()["error"] == "Teacher not found"


@pytest.mark.asyncio
async def test_authentication_and_permissions(client: AsyncClient, seed, headers_for) -> None:
    ay = {"academic_year_id": str(seed.academic_year_id)}
    url = f"{BASE}/section/{seed.section_a_id}"

    anonymous = await client.get(url, params=ay)
    assert anonymous.status_code == 401
    assert anonymous.json()["success"] is False

    no_grant = await client.get(url, params=ay, headers=headers_for("TEACHER"))
    assert no_grant.status_code == 403
    assert no_grant.json()["error"] == "Insufficient permissions"

    reader = headers_for("TEACHER", {"timetable": {"read": True}})
    allowed = await client.get(url, params=ay, headers=reader)
    assert allowed.status_code == 200

    write = await client.post(BASE, json=entry_payload(seed), headers=reader)
    assert write.status_code == 403


@pytest.mark.asyncio
async def test_malformed_school_timezone_still_answers(
    client: AsyncClient, db_session: AsyncSession, seed, auth_headers
) -> None:
    main = await db_session.get(School, seed.main_school_id)
    main.timezone = "/etc/localtime"
    await db_session.commit()

    response = await client.get(
        f"{BASE}/current-class", params={"teacher_id": str(seed.teacher_1_id)}, headers=auth_headers
    )
    assert response.status_code == 200
    assert response.json()["success"] is True


@pytest.mark.asyncio
async def test_unexpected_errors_use_the_envelope(db_session: AsyncSession, seed, auth_headers) -> None:
    async def broken_db():
        raise RuntimeError("connection pool exhausted")
        yield

    app.dependency_overrides[get_db] = broken_db
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        response = await ac.get(
            f"{BASE}/section/{seed.section_a_id}",
            params={"academic_year_id": str(seed.academic_year_id)},
            headers=auth_headers,
        )

    assert response.status_code == 500
    assert response.json() == {"success": False, "error": "Internal server error"}
