"""Tests for the module registry."""

import pytest

from app.core.feature_flags import FeatureFlags
from app.modules import (
    ModuleCategory,
    ModuleConfig,
    ModuleRegistry,
    ModuleRegistryError,
    ModuleStatus,
    RegistryEvent,
)
from app.modules.catalog import register_modules


def make_config(name: str, *dependencies: str, **fields) -> ModuleConfig:
    return ModuleConfig(name=name, version="1.0.0", dependencies=list(dependencies), **fields)


@pytest.fixture
def registry() -> ModuleRegistry:
    return ModuleRegistry(flags=FeatureFlags(FEATURE_REPORTING=True, FEATURE_EMAIL=False))


class TestRegister:
    """Tests for module registration."""

    def test_register_module(self, registry: ModuleRegistry):
        metadata = registry.register(make_config("core"))

        assert metadata.status == ModuleStatus.LOADED
        assert registry.is_enabled("core") is True
        assert metadata.health.status.value == "healthy"

    def test_registry_is_ready(self, registry: ModuleRegistry):
        assert registry.is_ready is True

    def test_duplicate_is_rejected(self, registry: ModuleRegistry):
        """Test a duplicate registration keeps the original module."""
        registry.register(make_config("core", description="first"))

        with pytest.raises(ModuleRegistryError):
            registry.register(make_config("core", description="second"))

        module = registry.get_module("core")
        assert module.config.description == "first"
        assert module.status == ModuleStatus.LOADED

    def test_unknown_dependency_is_stored_as_error(self, registry: ModuleRegistry):
        with pytest.raises(ModuleRegistryError, match="Dependency core not found"):
            registry.register(make_config("students", "core"))

        module = registry.get_module("students")
        assert module.status == ModuleStatus.ERROR
        assert "core" in module.error
        assert registry.is_enabled("students") is False

    def test_self_dependency_is_rejected(self, registry: ModuleRegistry):
        registry.register(make_config("core"))
        registry.register(make_config("loop", "core"))

        with pytest.raises(ModuleRegistryError):
            registry.register(make_config("core-2", "core-2"))

    def test_missing_required_feature_disables(self, registry: ModuleRegistry):
        registry.register(make_config("core"))
        metadata = registry.register(
            make_config("communication", "core", required_features=["email_notifications"])
        )

        assert metadata.status == ModuleStatus.DISABLED
        assert metadata.config.enabled is False
        assert registry.is_enabled("communication") is False

    def test_unknown_feature_counts_as_disabled(self, registry: ModuleRegistry):
        metadata = registry.register(make_config("x", required_features=["no_such_flag"]))
        assert metadata.status == ModuleStatus.DISABLED

    def test_optional_features_reported_in_health(self, registry: ModuleRegistry):
        metadata = registry.register(
            make_config("reports", optional_features=["advanced_reporting", "dark_mode"])
        )
        assert metadata.health.details["features_available"] == {
            "advanced_reporting": True,
            "dark_mode": False,
        }

    def test_config_is_copied(self, registry: ModuleRegistry):
        config = make_config("core")
        registry.register(config)
        registry.disable("core")

        assert config.enabled is True


class TestQueries:
    """Tests for dependency queries."""

    def test_dependency_edges(self, registry: ModuleRegistry):
        registry.register(make_config("core"))
        registry.register(make_config("students", "core"))
        registry.register(make_config("fees", "students", "core"))

        assert registry.get_dependencies("fees") == ["students", "core"]
        assert registry.get_dependents("core") == ["students", "fees"]
        assert registry.get_dependents("fees") == []

    def test_is_enabled_tracks_access(self, registry: ModuleRegistry):
        registry.register(make_config("core"))
        registry.is_enabled("core")
        registry.is_enabled("core")

        metrics = registry.get_module("core").metrics
        assert metrics.access_count == 2
        assert metrics.last_accessed is not None

    def test_unknown_module(self, registry: ModuleRegistry):
        assert registry.is_enabled("missing") is False
        assert registry.get_module("missing") is None

    def test_modules_by_category(self, registry: ModuleRegistry):
        registry.register(make_config("core", category=ModuleCategory.CORE))
        registry.register(make_config("sms", category=ModuleCategory.INTEGRATION))

        names = [m.config.name for m in registry.get_modules_by_category(ModuleCategory.CORE)]
        assert names == ["core"]


class TestEnableDisable:
    """Tests for enabling and disabling modules."""

    def test_cannot_disable_with_enabled_dependent(self, registry: ModuleRegistry):
        registry.register(make_config("core"))
        registry.register(make_config("students", "core"))

        assert registry.can_disable("core") is False
        assert registry.disable("core") is False
        assert registry.is_enabled("core") is True

    def test_disable_leaf_then_parent(self, registry: ModuleRegistry):
        registry.register(make_config("core"))
        registry.register(make_config("students", "core"))

        assert registry.disable("students") is True
        assert registry.can_disable("core") is True
        assert registry.disable("core") is True
        assert registry.get_module("core").status == ModuleStatus.DISABLED

    def test_enable_requires_dependencies(self, registry: ModuleRegistry):
        registry.register(make_config("core"))
        registry.register(make_config("students", "core"))
        registry.disable("students")
        registry.disable("core")

        assert registry.enable("students") is False
        assert registry.enable("core") is True
        assert registry.enable("students") is True

    def test_enable_requires_features(self, registry: ModuleRegistry):
        registry.register(make_config("mail", required_features=["email_notifications"]))
        assert registry.enable("mail") is False

    def test_enable_unknown(self, registry: ModuleRegistry):
        assert registry.enable("missing") is False
        assert registry.disable("missing") is False


class TestHealthAndStatistics:
    def test_health_check_flags_missing_dependency(self, registry: ModuleRegistry):
        registry.register(make_config("core"))
        registry.register(make_config("students", "core"))
        # Force an inconsistent state
        registry.get_module("core").config.enabled = False

        results = registry.perform_health_check()

        assert "core" not in results
        assert results["students"].status.value == "unhealthy"

    def test_statistics(self, registry: ModuleRegistry):
        registry.register(make_config("core", category=ModuleCategory.CORE))
        registry.register(make_config("mail", required_features=["email_notifications"]))
        with pytest.raises(ModuleRegistryError):
            registry.register(make_config("broken", "missing"))

        stats = registry.get_statistics()

        assert stats["total"] == 3
        assert stats["enabled"] == 1
        assert stats["errors"] == 1
        assert stats["by_category"] == {"core": 1, "feature": 2}
        assert stats["by_status"] == {"loaded": 1, "disabled": 1, "error": 1}


class TestEvents:
    def test_listeners_receive_events(self, registry: ModuleRegistry):
        received = []
        registry.add_event_listener(RegistryEvent.MODULE_REGISTERED, received.append)
        registry.add_event_listener(RegistryEvent.MODULE_DISABLED, received.append)

        registry.register(make_config("core"))
        registry.disable("core")

        assert [e.type for e in received] == [
            RegistryEvent.MODULE_REGISTERED,
            RegistryEvent.MODULE_DISABLED,
        ]
        assert received[0].module_name == "core"
        assert received[1].data["reason"] == "manual"

    def test_failing_listener_does_not_break_registry(self, registry: ModuleRegistry):
        def explode(event):
            raise RuntimeError("listener failed")

        registry.add_event_listener(RegistryEvent.MODULE_REGISTERED, explode)
        registry.register(make_config("core"))

        assert registry.is_enabled("core") is True

    def test_remove_listener(self, registry: ModuleRegistry):
        received = []
        registry.add_event_listener(RegistryEvent.MODULE_REGISTERED, received.append)
        registry.remove_event_listener(RegistryEvent.MODULE_REGISTERED, received.append)

        registry.register(make_config("core"))
        assert received == []

    def test_clear(self, registry: ModuleRegistry):
        registry.register(make_config("core"))
        registry.clear()

        assert registry.get_all_modules() == []
        assert registry.is_ready is True


class TestCatalog:
    """Tests for the application module catalog."""

    def test_catalog_registers_every_module(self, registry: ModuleRegistry):
        register_modules(registry)

        names = {m.config.name for m in registry.get_all_modules()}
        assert names == {
            "core",
            "security",
            "student-management",
            "course-management",
            "fee-management",
            "academics",
            "reporting",
            "portals",
            "communication",
        }
        assert registry.is_enabled("reporting") is True
        assert registry.is_enabled("communication") is False
        assert registry.can_disable("student-management") is False

    def test_catalog_is_idempotent(self, registry: ModuleRegistry):
        register_modules(registry)
        register_modules(registry)
        assert registry.get_statistics()["errors"] == 0

    def test_reporting_disabled_without_flag(self):
        registry = ModuleRegistry(flags=FeatureFlags(FEATURE_REPORTING=False))
        register_modules(registry)

        assert registry.is_enabled("reporting") is False
        assert registry.is_enabled("fee-management") is True
