import pytest
from httpx import AsyncClient

from gollisconnect.models.course import Course
from gollisconnect.models.user import User, UserRole


@pytest.fixture
def course_payload(faculty_user: User) -> dict:
    return {
        "name": "Data Structures",
        "code": "CS201",
        "description": "Lists, trees and graphs",
        "creditHours": 4,
        "department": "Computer Science",
        "instructor": faculty_user.id,
        "prerequisites": ["CS101"],
    }


@pytest.mark.asyncio
async def test_create_course(client: AsyncClient, admin_headers, course_payload, faculty_user: User):
    response = await client.post("/api/v1/courses", json=course_payload, headers=admin_headers)

    assert response.status_code == 201
    course = response.json()["course"]
    assert course["code"] == "CS201"
    assert course["creditHours"] == 4
    assert course["isActive"] is True
    assert course["prerequisites"] == ["CS101"]
    assert course["instructor"]["id"] == faculty_user.id
    assert course["instructor"]["lastName"] == faculty_user.last_name


@pytest.mark.asyncio
async def test_create_course_requires_admin(client: AsyncClient, faculty_headers, course_payload):
    response = await client.post("/api/v1/courses", json=course_payload, headers=faculty_headers)

    assert response.status_code == 403


@pytest.mark.asyncio
async def test_create_course_duplicate_code(client: AsyncClient, admin_headers, course_payload, course: Course):
    course_payload["code"] = course.code

    response = await client.post("/api/v1/courses", json=course_payload, headers=admin_headers)

    assert response.status_code == 409
    assert response.json()["error"]["code"] == "COURSE_CODE_EXISTS"


@pytest.mark.asyncio
@pytest.mark.parametrize("credit_hours", [0, 7])
async def test_create_course_credit_hours_bounds(client: AsyncClient, admin_headers, course_payload, credit_hours):
    course_payload["creditHours"] = credit_hours

    response = await client.post("/api/v1/courses", json=course_payload, headers=admin_headers)

    assert response.status_code == 422


@pytest.mark.asyncio
async def test_create_course_unknown_instructor(client: AsyncClient, admin_headers, course_payload, student: User):
    # A student is not an instructor
    course_payload["instructor"] = student.id

    response = await client.post("/api/v1/courses", json=course_payload, headers=admin_headers)

    assert response.status_code == 404
    assert response.json()["error"]["code"] == "INSTRUCTOR_NOT_FOUND"


@pytest.mark.asyncio
async def test_update_course(client: AsyncClient, admin_headers, course: Course):
    payload = {
        "name": "Programming Fundamentals",
        "code": course.code,
        "creditHours": 5,
        "department": "Computer Science",
    }

    response = await client.put(f"/api/v1/courses/{course.id}", json=payload, headers=admin_headers)

    assert response.status_code == 200
    updated = response.json()["course"]
    assert updated["name"] == "Programming Fundamentals"
    assert updated["creditHours"] == 5


@pytest.mark.asyncio
async def test_update_course_to_taken_code(client: AsyncClient, admin_headers, course: Course, make_course):
    other = await make_course(code="MATH101")
    payload = {
        "name": other.name,
        "code": course.code,
        "creditHours": 3,
        "department": "Mathematics",
    }

    response = await client.put(f"/api/v1/courses/{other.id}", json=payload, headers=admin_headers)

    assert response.status_code == 409


@pytest.mark.asyncio
async def test_update_missing_course(client: AsyncClient, admin_headers):
    payload = {"name": "X", "code": "X1", "creditHours": 3, "department": "Y"}

    response = await client.put("/api/v1/courses/does-not-exist", json=payload, headers=admin_headers)

    assert response.status_code == 404
    assert response.json()["detail"] == "Course not found"


@pytest.mark.asyncio
async def test_list_courses_sorted_and_filtered(client: AsyncClient, student_headers, make_course):
    await make_course(code="PHY110", department="Physics")
    await make_course(code="CS300", department="Computer Science")
    await make_course(code="CS150", department="Computer Science", is_active=False)

    response = await client.get("/api/v1/courses", headers=student_headers)
    assert [c["code"] for c in response.json()] == ["CS150", "CS300", "PHY110"]

    response = await client.get(
        "/api/v1/courses",
        params={"department": "Computer Science", "active": "true"},
        headers=student_headers
    )
    assert [c["code"] for c in response.json()] == ["CS300"]


@pytest.mark.asyncio
async def test_list_courses_requires_auth(client: AsyncClient):
    response = await client.get("/api/v1/courses")

    assert response.status_code == 401


@pytest.mark.asyncio
async def test_get_course(client: AsyncClient, student_headers, course: Course):
    response = await client.get(f"/api/v1/courses/{course.id}", headers=student_headers)

    assert response.status_code == 200
    assert response.json()["code"] == "CS101"
    assert response.json()["instructor"] is None


@pytest.mark.asyncio
async def test_instructor_courses_active_only(
    client: AsyncClient, student_headers, make_course, faculty_user: User
):
    await make_course(code="CS310", instructor_id=faculty_user.id)
    await make_course(code="CS210", instructor_id=faculty_user.id)
    await make_course(code="CS110", instructor_id=faculty_user.id, is_active=False)

    response = await client.get(f"/api/v1/courses/instructor/{faculty_user.id}", headers=student_headers)

    assert response.status_code == 200
    assert [c["code"] for c in response.json()] == ["CS210", "CS310"]


@pytest.mark.asyncio
async def test_instructor_courses_non_faculty(client: AsyncClient, student_headers, make_user):
    admin = await make_user(UserRole.ADMIN)

    response = await client.get(f"/api/v1/courses/instructor/{admin.id}", headers=student_headers)

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_delete_course_is_soft(client: AsyncClient, admin_headers, course: Course, refetch):
    response = await client.delete(f"/api/v1/courses/{course.id}", headers=admin_headers)

    assert response.status_code == 200
    stored = await refetch(Course, course.id)
    assert stored is not None
    assert stored.is_active is False

    # Code stays reserved
    response = await client.post(
        "/api/v1/courses",
        json={"name": "Again", "code": course.code, "creditHours": 3, "department": "Computer Science"},
        headers=admin_headers
    )
    assert response.status_code == 409
