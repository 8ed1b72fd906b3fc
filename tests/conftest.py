"""Test configuration and fixtures."""

import os
import tempfile
from collections.abc import AsyncGenerator
from datetime import date, timedelta
from decimal import Decimal
from pathlib import Path

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from app.core.database import Base, get_db
from app.core.permissions import Role
from app.core.security import get_password_hash
from app.models.course import BillingCycle, Course, FeeStructure, Service
from app.models.family import Family
from app.models.fee import AllocationStatus, FeeAllocation
from app.models.institute import Institute
from app.models.student import Student
from app.models.subscription import StudentSubscription
from app.models.user import User
from app.modules import module_registry
from app.modules.catalog import register_modules
from main import app

# SQLite file so every NullPool connection sees the same data
TEST_DATABASE_URL = os.environ.get(
    "TEST_DATABASE_URL",
    f"sqlite+aiosqlite:///{Path(tempfile.gettempdir()) / 'institute_test.db'}",
)

PASSWORD = "password123"

test_engine = create_async_engine(
    TEST_DATABASE_URL,
    echo=False,
    poolclass=NullPool,
)
test_session_maker = async_sessionmaker(
    test_engine,
    class_=AsyncSession,
    expire_on_commit=False,
)

if test_engine.dialect.name == "sqlite":

    @event.listens_for(test_engine.sync_engine, "connect")
    def _enable_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
    """Override database dependency for tests."""
    async with test_session_maker() as session:
        yield session


@pytest.fixture(autouse=True)
def module_catalog():
    """Every test starts from the default module catalog."""
    module_registry.clear()
    register_modules(module_registry)
    yield module_registry


@pytest_asyncio.fixture(scope="function")
async def setup_database() -> AsyncGenerator[None, None]:
    """Create test database tables before each test that needs it."""
    app.dependency_overrides[get_db] = override_get_db

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    app.dependency_overrides.pop(get_db, None)


@pytest_asyncio.fixture
async def db(setup_database: None) -> AsyncGenerator[AsyncSession, None]:
    """Get database session for tests."""
    async with test_session_maker() as session:
        yield session


@pytest_asyncio.fixture
async def client(setup_database: None) -> AsyncGenerator[AsyncClient, None]:
    """Get async HTTP client."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


# ============== Tenants ==============


@pytest_asyncio.fixture
async def institute(db: AsyncSession) -> Institute:
    institute = Institute(name="Riverside Institute", email="office@riverside.edu")
    db.add(institute)
    await db.commit()
    await db.refresh(institute)
    return institute


@pytest_asyncio.fixture
async def other_institute(db: AsyncSession) -> Institute:
    institute = Institute(name="Hilltop Academy")
    db.add(institute)
    await db.commit()
    await db.refresh(institute)
    return institute


@pytest_asyncio.fixture
async def family(db: AsyncSession, institute: Institute) -> Family:
    family = Family(
        institute_id=institute.id,
        name="Patel",
        phone="+14155550100",
        email="patel@example.com",
    )
    db.add(family)
    await db.commit()
    await db.refresh(family)
    return family


@pytest_asyncio.fixture
async def student(db: AsyncSession, institute: Institute, family: Family) -> Student:
    student = Student(
        institute_id=institute.id,
        family_id=family.id,
        name="Aarav Patel",
        grade="10",
        student_code="RK001",
    )
    db.add(student)
    await db.commit()
    await db.refresh(student)
    return student


@pytest_asyncio.fixture
async def course(db: AsyncSession, institute: Institute) -> Course:
    course = Course(
        institute_id=institute.id,
        name="Mathematics",
        grade="10",
        fee_structure=FeeStructure(
            institute_id=institute.id,
            amount=Decimal("1500.00"),
            billing_cycle=BillingCycle.MONTHLY,
        ),
    )
    db.add(course)
    await db.commit()
    await db.refresh(course)
    return course


@pytest_asyncio.fixture
async def transport(db: AsyncSession, institute: Institute) -> Service:
    service = Service(
        institute_id=institute.id,
        name="Transport",
        fee_structure=FeeStructure(
            institute_id=institute.id,
            amount=Decimal("3000.00"),
            billing_cycle=BillingCycle.QUARTERLY,
        ),
    )
    db.add(service)
    await db.commit()
    await db.refresh(service)
    return service


@pytest_asyncio.fixture
async def subscribed_student(
    db: AsyncSession, student: Student, course: Course, transport: Service
) -> Student:
    """Student taking the course (1500/month) and transport (1000/month)."""
    db.add_all(
        [
            StudentSubscription(
                institute_id=student.institute_id,
                student_id=student.id,
                course_id=course.id,
            ),
            StudentSubscription(
                institute_id=student.institute_id,
                student_id=student.id,
                service_id=transport.id,
            ),
        ]
    )
    await db.commit()
    return student


@pytest_asyncio.fixture
async def allocations(db: AsyncSession, student: Student) -> list[FeeAllocation]:
    """January and February 2026 fees of 2500 each, not yet due."""
    due_date = date.today() + timedelta(days=30)
    records = [
        FeeAllocation(
            institute_id=student.institute_id,
            student_id=student.id,
            month=date(2026, month, 1),
            year=2026,
            gross_amount=Decimal("2500.00"),
            discount_amount=Decimal("0"),
            net_amount=Decimal("2500.00"),
            status=AllocationStatus.PENDING,
            due_date=due_date,
        )
        for month in (1, 2)
    ]
    db.add_all(records)
    await db.commit()
    return records


# ============== Users ==============


async def _create_user(db: AsyncSession, email: str, role: Role, **fields) -> User:
    user = User(
        email=email,
        password_hash=get_password_hash(PASSWORD),
        name=email.split("@")[0].title(),
        role=role,
        **fields,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


@pytest_asyncio.fixture
async def superadmin(db: AsyncSession) -> User:
    return await _create_user(db, "root@example.com", Role.SUPERADMIN)


@pytest_asyncio.fixture
async def admin(db: AsyncSession, institute: Institute) -> User:
    return await _create_user(db, "admin@example.com", Role.ADMIN, institute_id=institute.id)


@pytest_asyncio.fixture
async def teacher(db: AsyncSession, institute: Institute) -> User:
    return await _create_user(db, "teacher@example.com", Role.TEACHER, institute_id=institute.id)


@pytest_asyncio.fixture
async def parent(db: AsyncSession, institute: Institute, family: Family) -> User:
    return await _create_user(
        db, "parent@example.com", Role.PARENT, institute_id=institute.id, family_id=family.id
    )


@pytest_asyncio.fixture
async def student_user(db: AsyncSession, institute: Institute, student: Student) -> User:
    return await _create_user(
        db, "student@example.com", Role.STUDENT, institute_id=institute.id, student_id=student.id
    )


async def login(client: AsyncClient, email: str) -> str:
    response = await client.post(
        "/api/v1/auth/login",
        json={"email": email, "password": PASSWORD},
    )
    return response.json()["access_token"]


@pytest_asyncio.fixture
async def superadmin_token(client: AsyncClient, superadmin: User) -> str:
    return await login(client, superadmin.email)


@pytest_asyncio.fixture
async def admin_token(client: AsyncClient, admin: User) -> str:
    return await login(client, admin.email)


@pytest_asyncio.fixture
async def teacher_token(client: AsyncClient, teacher: User) -> str:
    return await login(client, teacher.email)


@pytest_asyncio.fixture
async def parent_token(client: AsyncClient, parent: User) -> str:
    return await login(client, parent.email)


@pytest_asyncio.fixture
async def student_token(client: AsyncClient, student_user: User) -> str:
    return await login(client, student_user.email)


def auth_header(token: str) -> dict[str, str]:
    """Create authorization header."""
    return {"Authorization": f"Bearer {token}"}
