"""Tests for report API."""

from decimal import Decimal

import pytest_asyncio
from httpx import AsyncClient

from app.models.family import Family
from app.models.fee import FeeAllocation
from app.modules import module_registry
from tests.conftest import auth_header


@pytest_asyncio.fixture
async def january_payment(
    client: AsyncClient,
    admin_token: str,
    family: Family,
    allocations: list[FeeAllocation],
) -> dict:
    """1000 paid in cash towards January."""
    response = await client.post(
        "/api/v1/payments",
        headers=auth_header(admin_token),
        json={
            "family_id": str(family.id),
            "amount": "1000.00",
            "payment_method": "CASH",
            "payment_date": "2026-01-20",
            "allocations": [{"fee_allocation_id": str(allocations[0].id), "amount": "1000.00"}],
        },
    )
    assert response.status_code == 201
    return response.json()


class TestFinancialSummary:
    """Tests for the financial summary report."""

    async def test_summary(self, client: AsyncClient, admin_token: str, january_payment: dict):
        response = await client.get(
            "/api/v1/reports/financial",
            headers=auth_header(admin_token),
            params={"date_from": "2026-01-01", "date_to": "2026-02-28"},
        )

        assert response.status_code == 200
        data = response.json()
        assert Decimal(data["total_billed"]) == Decimal("5000.00")
        assert Decimal(data["total_collected"]) == Decimal("1000.00")
        assert Decimal(data["total_outstanding"]) == Decimal("4000.00")
        assert Decimal(data["collection_rate"]) == Decimal("20.00")
        assert data["total_payments"] == 1
        assert Decimal(data["by_payment_method"]["CASH"]) == Decimal("1000.00")
        assert data["allocation_status_counts"] == {
            "pending": 1,
            "partial": 1,
            "paid": 0,
            "overdue": 0,
        }

        trend = {m["month"]: m for m in data["monthly_trend"]}
        assert list(trend) == ["2026-01", "2026-02"]
        assert Decimal(trend["2026-01"]["collected"]) == Decimal("1000.00")
        assert Decimal(trend["2026-02"]["collected"]) == Decimal("0")
        assert Decimal(trend["2026-02"]["billed"]) == Decimal("2500.00")

    async def test_period_without_data(
        self, client: AsyncClient, admin_token: str, january_payment: dict
    ):
        response = await client.get(
            "/api/v1/reports/financial",
            headers=auth_header(admin_token),
            params={"date_from": "2025-03-01", "date_to": "2025-04-30"},
        )

        data = response.json()
        assert Decimal(data["total_billed"]) == Decimal("0")
        assert Decimal(data["collection_rate"]) == Decimal("0")
        assert len(data["monthly_trend"]) == 2

    async def test_inverted_range(self, client: AsyncClient, admin_token: str):
        response = await client.get(
            "/api/v1/reports/financial",
            headers=auth_header(admin_token),
            params={"date_from": "2026-03-01", "date_to": "2026-01-01"},
        )

        assert response.status_code == 400
        assert response.json()["detail"] == "date_to must be after date_from"

    async def test_defaults_to_year_to_date(self, client: AsyncClient, admin_token: str):
        response = await client.get("/api/v1/reports/financial", headers=auth_header(admin_token))

        data = response.json()
        assert data["date_from"].endswith("-01-01")
        assert data["date_from"][:4] == data["date_to"][:4]


class TestStudentReport:
    async def test_student_report(
        self, client: AsyncClient, admin_token: str, subscribed_student
    ):
        response = await client.get("/api/v1/reports/students", headers=auth_header(admin_token))

        assert response.status_code == 200
        data = response.json()
        assert data["total_students"] == 1
        assert data["active_students"] == 1
        assert data["by_grade"] == {"10": 1}
        assert data["total_families"] == 1
        assert data["active_subscriptions"] == 2


class TestFamilyReports:
    """Tests for per-family balances."""

    async def test_family_report(
        self, client: AsyncClient, admin_token: str, january_payment: dict
    ):
        response = await client.get("/api/v1/reports/families", headers=auth_header(admin_token))

        assert response.status_code == 200
        data = response.json()
        [patel] = data["families"]
        assert patel["family_name"] == "Patel"
        assert patel["student_count"] == 1
        assert Decimal(patel["total_billed"]) == Decimal("5000.00")
        assert Decimal(patel["total_paid"]) == Decimal("1000.00")
        assert Decimal(patel["outstanding"]) == Decimal("4000.00")
        assert patel["last_payment_date"] == "2026-01-20"
        assert Decimal(data["total_outstanding"]) == Decimal("4000.00")

    async def test_outstanding_report(
        self, client: AsyncClient, admin_token: str, january_payment: dict
    ):
        response = await client.get(
            "/api/v1/reports/outstanding",
            headers=auth_header(admin_token),
            params={"limit": 5},
        )

        assert response.status_code == 200
        families = response.json()["top_families"]
        assert [f["family_name"] for f in families] == ["Patel"]

    async def test_settled_family_not_outstanding(
        self, client: AsyncClient, admin_token: str, family: Family
    ):
        response = await client.get(
            "/api/v1/reports/outstanding",
            headers=auth_header(admin_token),
        )
        assert response.json()["top_families"] == []


class TestReportAccess:
    async def test_teacher_forbidden(self, client: AsyncClient, teacher_token: str):
        response = await client.get("/api/v1/reports/students", headers=auth_header(teacher_token))
        assert response.status_code == 403

    async def test_disabled_module_hides_reports(self, client: AsyncClient, admin_token: str):
        """Test reports answer 404 while the reporting module is disabled."""
        assert module_registry.disable("reporting") is True

        response = await client.get("/api/v1/reports/students", headers=auth_header(admin_token))

        assert response.status_code == 404
