"""Tests for payments API."""

from datetime import date
from decimal import Decimal
from uuid import uuid4

from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.family import Family
from app.models.fee import AllocationStatus, FeeAllocation
from app.models.student import Student
from tests.conftest import auth_header


async def pay(client: AsyncClient, token: str, **payload):
    return await client.post(
        "/api/v1/payments",
        headers=auth_header(token),
        json=payload,
    )


class TestCreatePayment:
    """Tests for recording payments."""

    async def test_explicit_allocation(
        self,
        client: AsyncClient,
        db: AsyncSession,
        admin_token: str,
        family: Family,
        allocations: list[FeeAllocation],
    ):
        january = allocations[0]
        response = await pay(
            client,
            admin_token,
            family_id=str(family.id),
            amount="1000.00",
            payment_method="UPI",
            reference="UPI-123",
            allocations=[{"fee_allocation_id": str(january.id), "amount": "1000.00"}],
        )

        assert response.status_code == 201
        data = response.json()
        assert data["payment_method"] == "UPI"
        assert data["payment_date"] == str(date.today())
        assert Decimal(data["allocated_amount"]) == Decimal("1000.00")
        assert data["received_by"]["name"] == "Admin"

        await db.refresh(january)
        assert january.status == AllocationStatus.PARTIAL

    async def test_full_payment_marks_paid(
        self,
        client: AsyncClient,
        db: AsyncSession,
        admin_token: str,
        family: Family,
        allocations: list[FeeAllocation],
    ):
        january = allocations[0]
        response = await pay(
            client,
            admin_token,
            family_id=str(family.id),
            amount="2500.00",
            payment_date="2026-01-10",
            allocations=[{"fee_allocation_id": str(january.id), "amount": "2500.00"}],
        )

        assert response.status_code == 201
        await db.refresh(january)
        assert january.status == AllocationStatus.PAID
        assert january.paid_date == date(2026, 1, 10)

    async def test_allocation_exceeds_balance(
        self,
        client: AsyncClient,
        admin_token: str,
        family: Family,
        allocations: list[FeeAllocation],
    ):
        response = await pay(
            client,
            admin_token,
            family_id=str(family.id),
            amount="3000.00",
            allocations=[{"fee_allocation_id": str(allocations[0].id), "amount": "3000.00"}],
        )

        assert response.status_code == 400
        assert response.json()["error"] == "Allocated amount exceeds the remaining balance"

    async def test_allocations_exceed_payment(
        self,
        client: AsyncClient,
        admin_token: str,
        family: Family,
        allocations: list[FeeAllocation],
    ):
        response = await pay(
            client,
            admin_token,
            family_id=str(family.id),
            amount="1000.00",
            allocations=[
                {"fee_allocation_id": str(allocations[0].id), "amount": "800.00"},
                {"fee_allocation_id": str(allocations[1].id), "amount": "800.00"},
            ],
        )

        assert response.status_code == 400
        assert response.json()["error"] == "Allocated amounts exceed the payment amount"

    async def test_unknown_allocation(
        self, client: AsyncClient, admin_token: str, family: Family, allocations
    ):
        response = await pay(
            client,
            admin_token,
            family_id=str(family.id),
            amount="100.00",
            allocations=[{"fee_allocation_id": str(uuid4()), "amount": "100.00"}],
        )

        assert response.status_code == 404
        assert response.json()["code"] == "RECORD_NOT_FOUND"

    async def test_unknown_family(self, client: AsyncClient, admin_token: str):
        response = await pay(client, admin_token, family_id=str(uuid4()), amount="100.00")

        assert response.status_code == 404
        assert response.json()["code"] == "FAMILY_NOT_FOUND"

    async def test_failed_payment_leaves_nothing(
        self,
        client: AsyncClient,
        admin_token: str,
        family: Family,
        allocations: list[FeeAllocation],
    ):
        await pay(
            client,
            admin_token,
            family_id=str(family.id),
            amount="3000.00",
            allocations=[{"fee_allocation_id": str(allocations[0].id), "amount": "3000.00"}],
        )

        response = await client.get("/api/v1/payments", headers=auth_header(admin_token))
        assert response.json()["total"] == 0

    async def test_auto_allocate_oldest_first(
        self,
        client: AsyncClient,
        db: AsyncSession,
        admin_token: str,
        family: Family,
        allocations: list[FeeAllocation],
    ):
        """Test auto allocation pays January fully before February."""
        january, february = allocations
        response = await pay(
            client,
            admin_token,
            family_id=str(family.id),
            amount="3000.00",
            auto_allocate=True,
        )

        assert response.status_code == 201
        by_allocation = {
            a["fee_allocation_id"]: Decimal(a["amount"]) for a in response.json()["allocations"]
        }
        assert by_allocation == {
            str(january.id): Decimal("2500.00"),
            str(february.id): Decimal("500.00"),
        }

        await db.refresh(january)
        await db.refresh(february)
        assert january.status == AllocationStatus.PAID
        assert february.status == AllocationStatus.PARTIAL

    async def test_auto_allocate_keeps_surplus_unallocated(
        self,
        client: AsyncClient,
        admin_token: str,
        family: Family,
        allocations: list[FeeAllocation],
    ):
        response = await pay(
            client,
            admin_token,
            family_id=str(family.id),
            amount="6000.00",
            auto_allocate=True,
        )

        assert response.status_code == 201
        assert Decimal(response.json()["allocated_amount"]) == Decimal("5000.00")
        assert Decimal(response.json()["amount"]) == Decimal("6000.00")

    async def test_zero_amount_rejected(self, client: AsyncClient, admin_token: str, family):
        response = await pay(client, admin_token, family_id=str(family.id), amount="0")
        assert response.status_code == 422

    async def test_teacher_cannot_record(self, client: AsyncClient, teacher_token: str, family):
        response = await pay(client, teacher_token, family_id=str(family.id), amount="10")
        assert response.status_code == 403


class TestListPayments:
    """Tests for listing and summarising payments."""

    async def test_filters(
        self,
        client: AsyncClient,
        admin_token: str,
        family: Family,
        student: Student,
        allocations: list[FeeAllocation],
    ):
        await pay(
            client,
            admin_token,
            family_id=str(family.id),
            amount="500.00",
            payment_method="CASH",
            payment_date="2026-01-05",
            allocations=[{"fee_allocation_id": str(allocations[0].id), "amount": "500.00"}],
        )
        await pay(
            client,
            admin_token,
            family_id=str(family.id),
            amount="200.00",
            payment_method="CARD",
            payment_date="2026-02-05",
        )

        response = await client.get("/api/v1/payments", headers=auth_header(admin_token))
        data = response.json()
        assert data["total"] == 2
        # Newest first
        assert data["items"][0]["payment_date"] == "2026-02-05"

        response = await client.get(
            "/api/v1/payments",
            headers=auth_header(admin_token),
            params={"payment_method": "CARD"},
        )
        assert response.json()["total"] == 1

        response = await client.get(
            "/api/v1/payments",
            headers=auth_header(admin_token),
            params={"student_id": str(student.id)},
        )
        assert [p["payment_method"] for p in response.json()["items"]] == ["CASH"]

        response = await client.get(
            "/api/v1/payments",
            headers=auth_header(admin_token),
            params={"date_from": "2026-02-01", "date_to": "2026-02-28"},
        )
        assert response.json()["total"] == 1

    async def test_summary(self, client: AsyncClient, admin_token: str, family: Family):
        for amount, method in (("100.00", "CASH"), ("250.00", "CASH"), ("50.00", "UPI")):
            await pay(
                client,
                admin_token,
                family_id=str(family.id),
                amount=amount,
                payment_method=method,
            )

        response = await client.get("/api/v1/payments/summary", headers=auth_header(admin_token))

        assert response.status_code == 200
        data = response.json()
        assert data["total_payments"] == 3
        assert Decimal(data["total_amount"]) == Decimal("400.00")
        assert Decimal(data["by_method"]["CASH"]) == Decimal("350.00")
        assert Decimal(data["by_method"]["UPI"]) == Decimal("50.00")

    async def test_get_unknown_payment(self, client: AsyncClient, admin_token: str):
        response = await client.get(
            f"/api/v1/payments/{uuid4()}",
            headers=auth_header(admin_token),
        )
        assert response.status_code == 404


class TestDeletePayment:
    async def test_delete_reopens_allocation(
        self,
        client: AsyncClient,
        db: AsyncSession,
        admin_token: str,
        family: Family,
        allocations: list[FeeAllocation],
    ):
        january = allocations[0]
        response = await pay(
            client,
            admin_token,
            family_id=str(family.id),
            amount="2500.00",
            allocations=[{"fee_allocation_id": str(january.id), "amount": "2500.00"}],
        )
        payment_id = response.json()["id"]

        response = await client.delete(
            f"/api/v1/payments/{payment_id}",
            headers=auth_header(admin_token),
        )

        assert response.status_code == 204
        await db.refresh(january)
        assert january.status == AllocationStatus.PENDING
        assert january.paid_date is None

        response = await client.get(
            f"/api/v1/payments/{payment_id}",
            headers=auth_header(admin_token),
        )
        assert response.status_code == 404
