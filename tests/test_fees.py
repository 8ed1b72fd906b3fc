"""Tests for fee calculation and monthly allocations."""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest
from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.models.course import BillingCycle, Course, FeeStructure, Service
from app.models.family import Family
from app.models.fee import AllocationStatus, FeeAllocation
from app.models.institute import Institute
from app.models.payment import Payment, PaymentAllocation
from app.models.student import Student
from app.models.subscription import StudentSubscription
from app.services import fee as fee_service
from app.services.base import ServiceError
from tests.conftest import auth_header


def course_subscription(
    amount: str,
    cycle: BillingCycle = BillingCycle.MONTHLY,
    discount: str = "0",
    end_date: date | None = None,
) -> StudentSubscription:
    course = Course(
        name=f"Course {amount}",
        fee_structure=FeeStructure(amount=Decimal(amount), billing_cycle=cycle),
    )
    return StudentSubscription(
        course=course,
        discount_amount=Decimal(discount),
        start_date=date(2026, 1, 1),
        end_date=end_date,
    )


def make_student(name: str, *subscriptions: StudentSubscription, active: bool = True) -> Student:
    return Student(name=name, is_active=active, subscriptions=list(subscriptions))


def make_family(discount: str, *students: Student) -> Family:
    return Family(name="Family", discount_amount=Decimal(discount), students=list(students))


class TestConvertToMonthly:
    """Tests for billing cycle conversion."""

    @pytest.mark.parametrize(
        ("amount", "cycle", "expected"),
        [
            ("1200", BillingCycle.MONTHLY, "1200.00"),
            ("3000", BillingCycle.QUARTERLY, "1000.00"),
            ("600", BillingCycle.HALF_YEARLY, "100.00"),
            ("1000", BillingCycle.YEARLY, "83.33"),
        ],
    )
    def test_cycles(self, amount, cycle, expected):
        assert fee_service.convert_to_monthly_amount(Decimal(amount), cycle) == Decimal(expected)

    def test_accepts_plain_strings(self):
        assert fee_service.convert_to_monthly_amount("900", "QUARTERLY") == Decimal("300.00")

    def test_unknown_cycle_is_monthly(self):
        assert fee_service.convert_to_monthly_amount(50, "WEEKLY") == Decimal("50.00")


class TestFeeBreakdown:
    """Tests for per-student fee maths on unsaved objects."""

    def test_gross_and_item_discounts(self):
        student = make_student(
            "Asha",
            course_subscription("1500", discount="100"),
            course_subscription("3000", BillingCycle.QUARTERLY),
        )
        family = make_family("0", student)

        breakdown = fee_service.build_fee_breakdown(family, student)

        assert breakdown["gross_amount"] == Decimal("2500.00")
        assert breakdown["item_discount"] == Decimal("100.00")
        assert breakdown["family_discount"] == Decimal("0")
        assert breakdown["net_amount"] == Decimal("2400.00")
        assert [item["kind"] for item in breakdown["items"]] == ["course", "course"]

    def test_ended_subscriptions_are_ignored(self):
        student = make_student(
            "Asha",
            course_subscription("1000"),
            course_subscription("500", end_date=date(2026, 2, 1)),
        )
        breakdown = fee_service.build_fee_breakdown(make_family("0", student), student)

        assert breakdown["gross_amount"] == Decimal("1000.00")
        assert len(breakdown["items"]) == 1

    def test_service_subscription(self):
        transport = Service(
            name="Transport",
            fee_structure=FeeStructure(amount=Decimal("1200"), billing_cycle=BillingCycle.YEARLY),
        )
        student = make_student("Asha", StudentSubscription(service=transport))

        breakdown = fee_service.build_fee_breakdown(make_family("0", student), student)

        assert breakdown["items"][0]["kind"] == "service"
        assert breakdown["items"][0]["discount_amount"] == Decimal("0")
        assert breakdown["net_amount"] == Decimal("100.00")

    def test_family_discount_is_proportional(self):
        """Test the family discount is split by each student's gross fee."""
        older = make_student("Older", course_subscription("1000"))
        younger = make_student("Younger", course_subscription("500"))
        family = make_family("300", older, younger)

        assert fee_service.family_discount_share(family, older) == Decimal("200.00")
        assert fee_service.family_discount_share(family, younger) == Decimal("100.00")
        assert fee_service.build_fee_breakdown(family, older)["net_amount"] == Decimal("800.00")

    def test_inactive_students_do_not_share_discount(self):
        active = make_student("Active", course_subscription("1000"))
        inactive = make_student("Inactive", course_subscription("1000"), active=False)
        family = make_family("300", active, inactive)

        assert fee_service.family_discount_share(family, active) == Decimal("300.00")
        assert fee_service.family_discount_share(family, inactive) == Decimal("0")

    def test_discount_share_is_rounded(self):
        students = [make_student(name, course_subscription("100")) for name in "ABC"]
        family = make_family("100", *students)

        shares = [fee_service.family_discount_share(family, s) for s in students]
        assert shares == [Decimal("33.33")] * 3

    def test_family_without_fees_has_no_share(self):
        student = make_student("Asha")
        assert fee_service.family_discount_share(make_family("500", student), student) == 0

    def test_net_is_never_negative(self):
        student = make_student("Asha", course_subscription("1000", discount="800"))
        family = make_family("500", student)

        breakdown = fee_service.build_fee_breakdown(family, student)

        assert breakdown["total_discount"] == Decimal("1300.00")
        assert breakdown["net_amount"] == Decimal("0.00")


class TestCalculateFromDatabase:
    async def test_student_fee(self, db: AsyncSession, subscribed_student: Student):
        breakdown = await fee_service.calculate_student_monthly_fee(db, subscribed_student.id)

        assert breakdown["gross_amount"] == Decimal("2500.00")
        assert breakdown["net_amount"] == Decimal("2500.00")

    async def test_family_fees_apply_discount(
        self, db: AsyncSession, family: Family, subscribed_student: Student
    ):
        family.discount_amount = Decimal("250")
        await db.commit()

        summary = await fee_service.calculate_family_fees(db, family.id)

        assert summary["gross_amount"] == Decimal("2500.00")
        assert summary["total_discount"] == Decimal("250.00")
        assert summary["net_amount"] == Decimal("2250.00")
        assert [s["student_name"] for s in summary["students"]] == ["Aarav Patel"]

    async def test_unknown_student(self, db: AsyncSession):
        with pytest.raises(ServiceError) as exc_info:
            await fee_service.calculate_student_monthly_fee(db, uuid4())
        assert exc_info.value.code.value == "STUDENT_NOT_FOUND"

    async def test_family_of_other_institute(
        self, db: AsyncSession, family: Family, other_institute: Institute
    ):
        with pytest.raises(ServiceError) as exc_info:
            await fee_service.calculate_family_fees(db, family.id, other_institute.id)
        assert exc_info.value.code.value == "FAMILY_NOT_FOUND"


class TestGenerateAllocations:
    """Tests for monthly allocation generation."""

    async def _allocations(self, db: AsyncSession) -> list[FeeAllocation]:
        result = await db.execute(
            select(FeeAllocation).execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def test_creates_allocation(
        self, db: AsyncSession, institute: Institute, subscribed_student: Student
    ):
        counts = await fee_service.generate_monthly_allocations(db, institute.id, 3, 2026)

        assert counts == {"month": 3, "year": 2026, "created": 1, "updated": 0, "skipped": 0}
        [allocation] = await self._allocations(db)
        assert allocation.month == date(2026, 3, 1)
        assert allocation.due_date == date(2026, 3, 15)
        assert allocation.net_amount == Decimal("2500.00")
        assert allocation.status == AllocationStatus.PENDING

    async def test_students_without_subscriptions_are_skipped(
        self, db: AsyncSession, institute: Institute, student: Student
    ):
        counts = await fee_service.generate_monthly_allocations(db, institute.id, 3, 2026)

        assert counts["created"] == 0
        assert await self._allocations(db) == []

    async def test_regenerate_refreshes_amounts(
        self, db: AsyncSession, institute: Institute, family: Family, subscribed_student: Student
    ):
        await fee_service.generate_monthly_allocations(db, institute.id, 3, 2026)
        family.discount_amount = Decimal("500")
        await db.commit()

        counts = await fee_service.generate_monthly_allocations(db, institute.id, 3, 2026)

        assert counts["updated"] == 1
        [allocation] = await self._allocations(db)
        assert allocation.discount_amount == Decimal("500.00")
        assert allocation.net_amount == Decimal("2000.00")

    async def test_paid_allocations_are_left_alone(
        self, db: AsyncSession, institute: Institute, subscribed_student: Student
    ):
        await fee_service.generate_monthly_allocations(db, institute.id, 3, 2026)
        [allocation] = await self._allocations(db)
        allocation.status = AllocationStatus.PAID
        await db.commit()

        counts = await fee_service.generate_monthly_allocations(db, institute.id, 3, 2026)

        assert counts["skipped"] == 1
        [allocation] = await self._allocations(db)
        assert allocation.status == AllocationStatus.PAID

    async def _pay_towards(
        self, db: AsyncSession, family: Family, allocation: FeeAllocation, amount: str
    ) -> None:
        payment = Payment(
            institute_id=family.institute_id,
            family_id=family.id,
            amount=Decimal(amount),
            payment_date=date(2026, 12, 1),
        )
        db.add(payment)
        db.add(PaymentAllocation(payment=payment, fee_allocation=allocation, amount=Decimal(amount)))
        allocation.status = AllocationStatus.PARTIAL
        await db.commit()

    async def test_partly_paid_stays_partial(
        self, db: AsyncSession, institute: Institute, family: Family, subscribed_student: Student
    ):
        await fee_service.generate_monthly_allocations(db, institute.id, 12, 2026)
        [allocation] = await self._allocations(db)
        await self._pay_towards(db, family, allocation, "1000")

        await fee_service.generate_monthly_allocations(db, institute.id, 12, 2026)

        [allocation] = await self._allocations(db)
        assert allocation.status == AllocationStatus.PARTIAL

    async def test_lower_amount_settles_partly_paid(
        self, db: AsyncSession, institute: Institute, family: Family, subscribed_student: Student
    ):
        await fee_service.generate_monthly_allocations(db, institute.id, 12, 2026)
        [allocation] = await self._allocations(db)
        await self._pay_towards(db, family, allocation, "2000")
        family.discount_amount = Decimal("500")
        await db.commit()

        counts = await fee_service.generate_monthly_allocations(db, institute.id, 12, 2026)

        assert counts["updated"] == 1
        allocation = (
            await db.execute(
                select(FeeAllocation)
                .options(selectinload(FeeAllocation.payment_allocations))
                .execution_options(populate_existing=True)
            )
        ).scalar_one()
        assert allocation.net_amount == Decimal("2000.00")
        assert allocation.remaining_amount == Decimal("0")
        assert allocation.status == AllocationStatus.PAID
        assert allocation.paid_date is not None

    async def test_overdue_with_new_due_date_reopens(
        self, db: AsyncSession, institute: Institute, subscribed_student: Student
    ):
        await fee_service.generate_monthly_allocations(db, institute.id, 12, 2099)
        [allocation] = await self._allocations(db)
        allocation.status = AllocationStatus.OVERDUE
        allocation.due_date = date(2020, 1, 1)
        await db.commit()

        await fee_service.generate_monthly_allocations(db, institute.id, 12, 2099)

        [allocation] = await self._allocations(db)
        assert allocation.due_date == date(2099, 12, 15)
        assert allocation.status == AllocationStatus.PENDING

    async def test_restricted_to_student_ids(
        self, db: AsyncSession, institute: Institute, subscribed_student: Student
    ):
        counts = await fee_service.generate_monthly_allocations(
            db, institute.id, 3, 2026, student_ids=[uuid4()]
        )
        assert counts["created"] == 0

    async def test_invalid_month(self, db: AsyncSession, institute: Institute):
        with pytest.raises(ServiceError):
            await fee_service.generate_monthly_allocations(db, institute.id, 13, 2026)


class TestMarkOverdue:
    async def test_marks_pending_past_due(
        self, db: AsyncSession, institute: Institute, subscribed_student: Student
    ):
        await fee_service.generate_monthly_allocations(db, institute.id, 1, 2026)

        assert await fee_service.mark_overdue_allocations(db, institute.id, date(2026, 1, 15)) == 0
        assert await fee_service.mark_overdue_allocations(db, institute.id, date(2026, 1, 16)) == 1

        allocation = (
            await db.execute(select(FeeAllocation).execution_options(populate_existing=True))
        ).scalar_one()
        assert allocation.status == AllocationStatus.OVERDUE

    async def test_other_statuses_untouched(
        self, db: AsyncSession, institute: Institute, subscribed_student: Student
    ):
        await fee_service.generate_monthly_allocations(db, institute.id, 1, 2026)
        allocation = (await db.execute(select(FeeAllocation))).scalar_one()
        allocation.status = AllocationStatus.PARTIAL
        await db.commit()

        assert await fee_service.mark_overdue_allocations(db, None, date(2026, 6, 1)) == 0


class TestUpdateStatus:
    """Tests for FeeAllocation.update_status."""

    def _allocation(self, due_date: date | None = date(2026, 3, 15)) -> FeeAllocation:
        return FeeAllocation(
            net_amount=Decimal("1000"),
            status=AllocationStatus.PENDING,
            due_date=due_date,
            payment_allocations=[],
        )

    def test_pending_before_due(self):
        allocation = self._allocation()
        allocation.update_status(today=date(2026, 3, 10))
        assert allocation.status == AllocationStatus.PENDING

    def test_overdue_after_due(self):
        allocation = self._allocation()
        allocation.update_status(today=date(2026, 3, 16))
        assert allocation.status == AllocationStatus.OVERDUE


class TestFeeEndpoints:
    """Tests for /fees endpoints."""

    async def test_generate_and_list(
        self, client: AsyncClient, admin_token: str, subscribed_student: Student
    ):
        response = await client.post(
            "/api/v1/fees/generate",
            headers=auth_header(admin_token),
            json={"month": 3, "year": 2026},
        )

        assert response.status_code == 200
        assert response.json()["created"] == 1

        response = await client.get(
            "/api/v1/fees/allocations",
            headers=auth_header(admin_token),
            params={"student_id": str(subscribed_student.id)},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 1
        item = data["items"][0]
        assert Decimal(item["net_amount"]) == Decimal("2500")
        assert Decimal(item["remaining_amount"]) == Decimal("2500")
        assert item["status"] == "PENDING"

        response = await client.get(
            f"/api/v1/fees/allocations/{item['id']}",
            headers=auth_header(admin_token),
        )
        assert response.status_code == 200

    async def test_allocation_not_found(self, client: AsyncClient, admin_token: str):
        response = await client.get(
            f"/api/v1/fees/allocations/{uuid4()}",
            headers=auth_header(admin_token),
        )
        assert response.status_code == 404

    async def test_generate_invalid_month(self, client: AsyncClient, admin_token: str):
        response = await client.post(
            "/api/v1/fees/generate",
            headers=auth_header(admin_token),
            json={"month": 13, "year": 2026},
        )
        assert response.status_code == 422

    async def test_superadmin_must_name_institute(
        self, client: AsyncClient, superadmin_token: str
    ):
        response = await client.post(
            "/api/v1/fees/generate",
            headers=auth_header(superadmin_token),
            json={"month": 3, "year": 2026},
        )
        assert response.status_code == 400

    async def test_teacher_cannot_generate(self, client: AsyncClient, teacher_token: str):
        response = await client.post(
            "/api/v1/fees/generate",
            headers=auth_header(teacher_token),
            json={"month": 3, "year": 2026},
        )
        assert response.status_code == 403

    async def test_mark_overdue(
        self, client: AsyncClient, admin_token: str, subscribed_student: Student
    ):
        await client.post(
            "/api/v1/fees/generate",
            headers=auth_header(admin_token),
            json={"month": 1, "year": 2026},
        )

        response = await client.post(
            "/api/v1/fees/mark-overdue",
            headers=auth_header(admin_token),
            params={"today": "2026-02-01"},
        )

        assert response.status_code == 200
        assert response.json() == {"updated": 1}

    async def test_calculate_student(
        self, client: AsyncClient, admin_token: str, subscribed_student: Student
    ):
        response = await client.get(
            f"/api/v1/fees/calculate/student/{subscribed_student.id}",
            headers=auth_header(admin_token),
        )

        assert response.status_code == 200
        data = response.json()
        assert Decimal(data["gross_amount"]) == Decimal("2500")
        assert {item["billing_cycle"] for item in data["items"]} == {"MONTHLY", "QUARTERLY"}

    async def test_calculate_unknown_student(self, client: AsyncClient, admin_token: str):
        response = await client.get(
            f"/api/v1/fees/calculate/student/{uuid4()}",
            headers=auth_header(admin_token),
        )

        assert response.status_code == 404
        assert response.json()["code"] == "STUDENT_NOT_FOUND"

    async def test_calculate_family(
        self, client: AsyncClient, admin_token: str, family: Family, subscribed_student: Student
    ):
        response = await client.get(
            f"/api/v1/fees/calculate/family/{family.id}",
            headers=auth_header(admin_token),
        )

        assert response.status_code == 200
        assert Decimal(response.json()["net_amount"]) == Decimal("2500")
