"""CLI commands for management tasks."""

import asyncio
import sys
from datetime import date
from uuid import UUID

from sqlalchemy import select

from app.core.database import async_session_maker
from app.core.logging import configure_logging
from app.core.permissions import Role
from app.core.security import get_password_hash
from app.models.institute import Institute
from app.models.user import User
from app.modules import module_registry
from app.modules.catalog import register_modules
from app.services import fee as fee_service

USAGE = """Usage: python -m app.cli <command>
Commands:
  create-superadmin <email> <password> <name>
  generate-allocations <month> <year> [institute_id]
  mark-overdue [institute_id]
  modules"""


async def create_superadmin(email: str, password: str, name: str) -> None:
    """Create the platform superadmin."""
    email = email.strip().lower()
    async with async_session_maker() as db:
        result = await db.execute(select(User).where(User.email == email))
        if result.scalar_one_or_none():
            print(f"Error: Email {email} is already registered!")
            sys.exit(1)

        user = User(
            email=email,
            password_hash=get_password_hash(password),
            name=name,
            role=Role.SUPERADMIN,
            institute_id=None,
        )

        db.add(user)
        await db.commit()
        await db.refresh(user)

        print("Superadmin created successfully!")
        print(f"  ID: {user.id}")
        print(f"  Name: {user.name}")
        print(f"  Email: {user.email}")


async def generate_allocations(month: int, year: int, institute_id: UUID | None) -> None:
    """Generate allocations for one institute, or every active institute."""
    async with async_session_maker() as db:
        if institute_id is not None:
            institute_ids = [institute_id]
        else:
            result = await db.execute(select(Institute.id).where(Institute.is_active.is_(True)))
            institute_ids = list(result.scalars().all())

        for current_id in institute_ids:
            counts = await fee_service.generate_monthly_allocations(db, current_id, month, year)
            print(
                f"{current_id}: {counts['created']} created, "
                f"{counts['updated']} updated, {counts['skipped']} skipped"
            )


async def mark_overdue(institute_id: UUID | None) -> None:
    async with async_session_maker() as db:
        updated = await fee_service.mark_overdue_allocations(db, institute_id, date.today())
        print(f"{updated} allocations marked overdue")


def show_modules() -> None:
    register_modules(module_registry)
    for module in sorted(module_registry.get_all_modules(), key=lambda m: -m.config.priority):
        config = module.config
        depends = ", ".join(config.dependencies) or "-"
        print(f"  {config.name:<20} {config.version:<8} {module.status.value:<9} depends on: {depends}")

    stats = module_registry.get_statistics()
    print(f"{stats['enabled']}/{stats['total']} modules enabled")


def _optional_id(args: list[str], index: int) -> UUID | None:
    return UUID(args[index]) if len(args) > index else None


def main() -> None:
    """CLI entry point."""
    configure_logging()

    if len(sys.argv) < 2:
        print(USAGE)
        sys.exit(1)

    command = sys.argv[1]
    args = sys.argv[2:]

    if command == "create-superadmin":
        if len(args) != 3:
            print("Usage: python -m app.cli create-superadmin <email> <password> <name>")
            sys.exit(1)
        asyncio.run(create_superadmin(*args))
    elif command == "generate-allocations":
        if len(args) not in (2, 3):
            print("Usage: python -m app.cli generate-allocations <month> <year> [institute_id]")
            sys.exit(1)
        asyncio.run(generate_allocations(int(args[0]), int(args[1]), _optional_id(args, 2)))
    elif command == "mark-overdue":
        asyncio.run(mark_overdue(_optional_id(args, 0)))
    elif command == "modules":
        show_modules()
    else:
        print(f"Unknown command: {command}")
        sys.exit(1)


if __name__ == "__main__":
    main()
