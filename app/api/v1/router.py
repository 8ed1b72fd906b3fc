"""API v1 router aggregating all route modules."""

from fastapi import APIRouter

from app.api.v1.routes import (
    academics,
    auth,
    courses,
    families,
    fees,
    institutes,
    modules,
    notifications,
    payments,
    portal,
    reports,
    students,
    users,
)

api_router = APIRouter()

api_router.include_router(auth.router)
api_router.include_router(users.router)
api_router.include_router(institutes.router)
api_router.include_router(families.router)
api_router.include_router(students.router)
api_router.include_router(courses.router)
api_router.include_router(courses.services_router)
api_router.include_router(fees.router)
api_router.include_router(payments.router)
api_router.include_router(academics.logs_router)
api_router.include_router(academics.assignments_router)
api_router.include_router(notifications.router)
api_router.include_router(reports.router)
api_router.include_router(portal.router)
api_router.include_router(modules.router)
