"""Modules shipped with the application."""

from app.modules.registry import ModuleCategory, ModuleConfig, ModuleRegistry

CORE_MODULES = [
    ModuleConfig(
        name="core",
        version="1.0.0",
        description="Institutes, users and authentication",
        routes=["/auth", "/users", "/institutes"],
        services=["auth", "user", "institute"],
        priority=100,
        category=ModuleCategory.CORE,
    ),
    ModuleConfig(
        name="security",
        version="1.0.0",
        description="Role permissions and audit logging",
        dependencies=["core"],
        services=["permissions"],
        optional_features=["audit_logging", "rate_limiting", "two_factor_auth"],
        priority=90,
        category=ModuleCategory.CORE,
    ),
]

FEATURE_MODULES = [
    ModuleConfig(
        name="student-management",
        version="1.0.0",
        description="Students and families",
        dependencies=["core"],
        routes=["/students", "/families"],
        services=["StudentService", "FamilyService"],
        optional_features=["input_validation"],
        priority=80,
    ),
    ModuleConfig(
        name="course-management",
        version="1.0.0",
        description="Courses, services and fee structures",
        dependencies=["core"],
        routes=["/courses", "/services"],
        services=["CourseService", "OfferingService"],
        priority=75,
    ),
    ModuleConfig(
        name="fee-management",
        version="1.0.0",
        description="Fee calculation, monthly allocations and payments",
        dependencies=["student-management", "course-management"],
        routes=["/fees", "/payments"],
        services=["fee", "payment"],
        priority=70,
    ),
    ModuleConfig(
        name="academics",
        version="1.0.0",
        description="Academic logs, assignments and submissions",
        dependencies=["student-management"],
        routes=["/academic-logs", "/assignments"],
        services=["AcademicLogService", "AssignmentService"],
        priority=60,
    ),
    ModuleConfig(
        name="reporting",
        version="1.0.0",
        description="Financial and enrolment reports",
        dependencies=["fee-management"],
        routes=["/reports"],
        services=["report"],
        required_features=["advanced_reporting"],
        optional_features=["caching"],
        priority=50,
    ),
    ModuleConfig(
        name="portals",
        version="1.0.0",
        description="Parent, student and teacher portals",
        dependencies=["student-management", "fee-management"],
        routes=["/portal"],
        services=["portal"],
        optional_features=["mobile_optimization"],
        priority=40,
    ),
]

INTEGRATION_MODULES = [
    ModuleConfig(
        name="communication",
        version="1.0.0",
        description="Fee reminders and bill notifications",
        dependencies=["fee-management"],
        routes=["/notifications"],
        services=["notification"],
        required_features=["email_notifications"],
        optional_features=["sms_notifications", "push_notifications"],
        priority=30,
        category=ModuleCategory.INTEGRATION,
    ),
]


def register_modules(registry: ModuleRegistry) -> None:
    """Register every application module in dependency order."""
    for config in [*CORE_MODULES, *FEATURE_MODULES, *INTEGRATION_MODULES]:
        if registry.get_module(config.name) is None:
            registry.register(config)
