# Database models

from app.models.institute import Institute
from app.models.user import User
from app.models.family import Family
from app.models.student import Student
from app.models.course import BillingCycle, Course, FeeStructure, Service
from app.models.subscription import StudentSubscription
from app.models.fee import AllocationStatus, FeeAllocation
from app.models.payment import Payment, PaymentAllocation, PaymentMethod
from app.models.academic import (
    AcademicLog,
    AcademicLogType,
    Assignment,
    AssignmentPriority,
    AssignmentSubmission,
    AssignmentType,
    SubmissionStatus,
)

__all__ = [
    "Institute",
    "User",
    "Family",
    "Student",
    "BillingCycle",
    "Course",
    "FeeStructure",
    "Service",
    "StudentSubscription",
    "AllocationStatus",
    "FeeAllocation",
    "Payment",
    "PaymentAllocation",
    "PaymentMethod",
    "AcademicLog",
    "AcademicLogType",
    "Assignment",
    "AssignmentPriority",
    "AssignmentSubmission",
    "AssignmentType",
    "SubmissionStatus",
]
