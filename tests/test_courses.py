"""Tests for courses and services API."""

from decimal import Decimal
from uuid import uuid4

from httpx import AsyncClient

from app.models.course import Course, Service
from app.models.user import User
from tests.conftest import auth_header


class TestCourses:
    """Tests for course endpoints."""

    async def test_create_course_with_fee(
        self, client: AsyncClient, admin_token: str, teacher: User
    ):
        response = await client.post(
            "/api/v1/courses",
            headers=auth_header(admin_token),
            json={
                "name": "Physics",
                "grade": "11",
                "capacity": 30,
                "teacher_id": str(teacher.id),
                "fee": {"amount": "1800.00", "billing_cycle": "MONTHLY"},
            },
        )

        assert response.status_code == 201
        data = response.json()["data"]
        assert data["teacher_id"] == str(teacher.id)
        assert Decimal(data["fee_structure"]["amount"]) == Decimal("1800.00")
        assert data["fee_structure"]["billing_cycle"] == "MONTHLY"

    async def test_create_course_without_fee(self, client: AsyncClient, admin_token: str):
        response = await client.post(
            "/api/v1/courses",
            headers=auth_header(admin_token),
            json={"name": "Library hour"},
        )

        assert response.status_code == 201
        assert response.json()["data"]["fee_structure"] is None

    async def test_teacher_must_be_a_teacher(
        self, client: AsyncClient, admin_token: str, admin: User
    ):
        """Test assigning a non-teacher user is rejected."""
        response = await client.post(
            "/api/v1/courses",
            headers=auth_header(admin_token),
            json={"name": "Chemistry", "teacher_id": str(admin.id)},
        )

        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_ERROR"

    async def test_unknown_teacher(self, client: AsyncClient, admin_token: str):
        response = await client.post(
            "/api/v1/courses",
            headers=auth_header(admin_token),
            json={"name": "Chemistry", "teacher_id": str(uuid4())},
        )
        assert response.status_code == 400

    async def test_invalid_billing_cycle(self, client: AsyncClient, admin_token: str):
        response = await client.post(
            "/api/v1/courses",
            headers=auth_header(admin_token),
            json={"name": "Art", "fee": {"amount": "10", "billing_cycle": "WEEKLY"}},
        )
        assert response.status_code == 422

    async def test_list_filters_by_grade(
        self, client: AsyncClient, admin_token: str, course: Course
    ):
        response = await client.get(
            "/api/v1/courses",
            headers=auth_header(admin_token),
            params={"grade": "10"},
        )
        assert [c["name"] for c in response.json()["data"]["items"]] == ["Mathematics"]

        response = await client.get(
            "/api/v1/courses",
            headers=auth_header(admin_token),
            params={"grade": "3"},
        )
        assert response.json()["data"]["items"] == []

    async def test_update_replaces_fee(self, client: AsyncClient, admin_token: str, course: Course):
        response = await client.patch(
            f"/api/v1/courses/{course.id}",
            headers=auth_header(admin_token),
            json={"fee": {"amount": "4500.00", "billing_cycle": "QUARTERLY"}},
        )

        assert response.status_code == 200
        fee = response.json()["data"]["fee_structure"]
        assert Decimal(fee["amount"]) == Decimal("4500.00")
        assert fee["billing_cycle"] == "QUARTERLY"

    async def test_get_unknown_course(self, client: AsyncClient, admin_token: str):
        response = await client.get(
            f"/api/v1/courses/{uuid4()}",
            headers=auth_header(admin_token),
        )

        assert response.status_code == 404
        assert response.json()["error"] == "Course not found"

    async def test_delete_course(self, client: AsyncClient, admin_token: str, course: Course):
        for _ in range(2):
            response = await client.delete(
                f"/api/v1/courses/{course.id}",
                headers=auth_header(admin_token),
            )
            assert response.status_code == 204

        response = await client.get(
            f"/api/v1/courses/{course.id}",
            headers=auth_header(admin_token),
        )
        assert response.json()["data"]["is_active"] is False

    async def test_teacher_can_read_but_not_write(
        self, client: AsyncClient, teacher_token: str, course: Course
    ):
        response = await client.get("/api/v1/courses", headers=auth_header(teacher_token))
        assert response.status_code == 200

        response = await client.post(
            "/api/v1/courses",
            headers=auth_header(teacher_token),
            json={"name": "Music"},
        )
        assert response.status_code == 403


class TestServices:
    """Tests for service endpoints."""

    async def test_create_service(self, client: AsyncClient, admin_token: str):
        response = await client.post(
            "/api/v1/services",
            headers=auth_header(admin_token),
            json={
                "name": "Meals",
                "description": "Lunch on school days",
                "fee": {"amount": "6000", "billing_cycle": "HALF_YEARLY"},
            },
        )

        assert response.status_code == 201
        data = response.json()["data"]
        assert data["name"] == "Meals"
        assert data["fee_structure"]["billing_cycle"] == "HALF_YEARLY"

    async def test_list_services(self, client: AsyncClient, admin_token: str, transport: Service):
        response = await client.get("/api/v1/services", headers=auth_header(admin_token))

        assert response.status_code == 200
        items = response.json()["data"]["items"]
        assert [s["name"] for s in items] == ["Transport"]

    async def test_update_service(self, client: AsyncClient, admin_token: str, transport: Service):
        response = await client.patch(
            f"/api/v1/services/{transport.id}",
            headers=auth_header(admin_token),
            json={"name": "Bus", "is_active": None},
        )

        assert response.status_code == 200
        assert response.json()["data"]["name"] == "Bus"
        assert response.json()["data"]["is_active"] is True

    async def test_get_unknown_service(self, client: AsyncClient, admin_token: str):
        response = await client.get(
            f"/api/v1/services/{uuid4()}",
            headers=auth_header(admin_token),
        )
        assert response.status_code == 404

    async def test_delete_hides_service(
        self, client: AsyncClient, admin_token: str, transport: Service
    ):
        response = await client.delete(
            f"/api/v1/services/{transport.id}",
            headers=auth_header(admin_token),
        )
        assert response.status_code == 204

        response = await client.get("/api/v1/services", headers=auth_header(admin_token))
        assert response.json()["data"]["items"] == []
