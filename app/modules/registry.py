"""
In-memory registry of application modules.

Each module declares its dependencies and the feature flags it needs.
Enablement is decided once at registration time; afterwards modules can be
enabled or disabled manually as long as the dependency graph allows it.
"""

import logging
import time
from collections.abc import Callable
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from app.core.feature_flags import FeatureFlags, feature_flags

logger = logging.getLogger(__name__)


class ModuleCategory(str, Enum):
    CORE = "core"
    FEATURE = "feature"
    INTEGRATION = "integration"
    EXPERIMENTAL = "experimental"


class ModuleStatus(str, Enum):
    LOADING = "loading"
    LOADED = "loaded"
    ERROR = "error"
    DISABLED = "disabled"


class HealthStatus(str, Enum):
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


class RegistryEvent(str, Enum):
    MODULE_REGISTERED = "module:registered"
    MODULE_ENABLED = "module:enabled"
    MODULE_DISABLED = "module:disabled"
    MODULE_ERROR = "module:error"
    MODULE_HEALTH_CHECK = "module:health-check"
    REGISTRY_READY = "registry:ready"


class ModuleRegistryError(Exception):
    """Raised when a module cannot be registered."""


class ModuleConfig(BaseModel):
    """Declarative description of a module."""

    name: str = Field(..., min_length=1)
    version: str = Field(..., min_length=1)
    description: str = ""
    dependencies: list[str] = Field(default_factory=list)
    routes: list[str] = Field(default_factory=list)
    services: list[str] = Field(default_factory=list)
    enabled: bool = True
    required_features: list[str] = Field(default_factory=list)
    optional_features: list[str] = Field(default_factory=list)
    priority: int = 0
    category: ModuleCategory = ModuleCategory.FEATURE


class ModuleMetrics(BaseModel):
    load_time_ms: float = 0.0
    access_count: int = 0
    last_accessed: datetime | None = None


class ModuleHealth(BaseModel):
    status: HealthStatus
    last_check: datetime
    details: dict[str, Any] = Field(default_factory=dict)


class ModuleMetadata(BaseModel):
    """Registry bookkeeping for a single module."""

    config: ModuleConfig
    loaded_at: datetime
    status: ModuleStatus
    error: str | None = None
    metrics: ModuleMetrics = Field(default_factory=ModuleMetrics)
    health: ModuleHealth | None = None


class RegistryEventPayload(BaseModel):
    type: RegistryEvent
    module_name: str | None = None
    data: dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime


EventListener = Callable[[RegistryEventPayload], None]


def _now() -> datetime:
    return datetime.now(timezone.utc)


class ModuleRegistry:
    """Module catalog with dependency tracking."""

    def __init__(self, flags: FeatureFlags | None = None) -> None:
        self.flags = flags or feature_flags
        self._modules: dict[str, ModuleMetadata] = {}
        self._dependencies: dict[str, list[str]] = {}
        self._dependents: dict[str, list[str]] = {}
        self._listeners: dict[RegistryEvent, list[EventListener]] = {}
        self.is_ready = False
        self._initialize()

    def _initialize(self) -> None:
        self.is_ready = True
        self._emit(RegistryEvent.REGISTRY_READY)

    # ============== Registration ==============

    def register(self, config: ModuleConfig) -> ModuleMetadata:
        """Register a module; raises ModuleRegistryError on invalid input."""
        started = time.perf_counter()
        config = config.model_copy(deep=True)

        try:
            if config.name in self._modules:
                raise ModuleRegistryError(f"Module {config.name} is already registered")

            for dependency in config.dependencies:
                if dependency not in self._modules:
                    raise ModuleRegistryError(
                        f"Dependency {dependency} not found for module {config.name}"
                    )

            if self._has_cycle(config.name, config.dependencies):
                raise ModuleRegistryError(
                    f"Circular dependency detected for module {config.name}"
                )

            missing = self._missing_features(config)
            if missing:
                config.enabled = False
                logger.warning(
                    "Module %s disabled: required feature %s is not enabled",
                    config.name,
                    missing[0],
                )
        except ModuleRegistryError as exc:
            logger.error("Failed to register module %s: %s", config.name, exc)
            # Keep the first successful registration when a duplicate fails
            if config.name not in self._modules:
                self._modules[config.name] = ModuleMetadata(
                    config=config,
                    loaded_at=_now(),
                    status=ModuleStatus.ERROR,
                    error=str(exc),
                    metrics=ModuleMetrics(load_time_ms=_elapsed_ms(started)),
                )
            self._emit(RegistryEvent.MODULE_ERROR, config.name, {"error": str(exc)})
            raise

        metadata = ModuleMetadata(
            config=config,
            loaded_at=_now(),
            status=ModuleStatus.LOADED if config.enabled else ModuleStatus.DISABLED,
            metrics=ModuleMetrics(load_time_ms=_elapsed_ms(started)),
            health=self._healthy(config),
        )

        self._modules[config.name] = metadata
        self._dependencies[config.name] = list(config.dependencies)
        for dependency in config.dependencies:
            self._dependents.setdefault(dependency, []).append(config.name)

        self._emit(
            RegistryEvent.MODULE_REGISTERED,
            config.name,
            {
                "version": config.version,
                "dependencies": config.dependencies,
                "enabled": config.enabled,
            },
        )
        logger.info(
            "Module registered: %s v%s (%.2fms)",
            config.name,
            config.version,
            metadata.metrics.load_time_ms,
        )
        return metadata

    # ============== Queries ==============

    def is_enabled(self, name: str) -> bool:
        module = self._modules.get(name)
        if module is None:
            return False

        module.metrics.access_count += 1
        module.metrics.last_accessed = _now()
        return module.config.enabled and module.status == ModuleStatus.LOADED

    def get_module(self, name: str) -> ModuleMetadata | None:
        return self._modules.get(name)

    def get_all_modules(self) -> list[ModuleMetadata]:
        return list(self._modules.values())

    def get_enabled_modules(self) -> list[ModuleMetadata]:
        return [
            m
            for m in self._modules.values()
            if m.config.enabled and m.status == ModuleStatus.LOADED
        ]

    def get_modules_by_category(self, category: ModuleCategory) -> list[ModuleMetadata]:
        return [m for m in self._modules.values() if m.config.category == category]

    def get_dependencies(self, name: str) -> list[str]:
        return list(self._dependencies.get(name, []))

    def get_dependents(self, name: str) -> list[str]:
        return list(self._dependents.get(name, []))

    def can_disable(self, name: str) -> bool:
        """A module cannot be disabled while an enabled module depends on it."""
        return not any(self.is_enabled(dependent) for dependent in self.get_dependents(name))

    # ============== State changes ==============

    def enable(self, name: str) -> bool:
        module = self._modules.get(name)
        if module is None:
            logger.error("Module %s not found", name)
            return False

        if module.config.enabled and module.status == ModuleStatus.LOADED:
            return True

        for dependency in module.config.dependencies:
            if not self.is_enabled(dependency):
                logger.error(
                    "Cannot enable %s: dependency %s is not enabled", name, dependency
                )
                return False

        missing = self._missing_features(module.config)
        if missing:
            logger.error(
                "Cannot enable %s: required feature %s is not enabled", name, missing[0]
            )
            return False

        module.config.enabled = True
        module.status = ModuleStatus.LOADED
        module.health = self._healthy(module.config)

        self._emit(
            RegistryEvent.MODULE_ENABLED,
            name,
            {"version": module.config.version, "dependencies": module.config.dependencies},
        )
        return True

    def disable(self, name: str) -> bool:
        module = self._modules.get(name)
        if module is None:
            logger.error("Module %s not found", name)
            return False

        if not self.can_disable(name):
            logger.error("Cannot disable %s: other modules depend on it", name)
            return False

        module.config.enabled = False
        module.status = ModuleStatus.DISABLED

        self._emit(
            RegistryEvent.MODULE_DISABLED,
            name,
            {"version": module.config.version, "reason": "manual"},
        )
        return True

    # ============== Health & statistics ==============

    def perform_health_check(self) -> dict[str, ModuleHealth]:
        results: dict[str, ModuleHealth] = {}

        for name, module in self._modules.items():
            if not module.config.enabled:
                continue

            health = self._check_module_health(module)
            module.health = health
            results[name] = health
            self._emit(RegistryEvent.MODULE_HEALTH_CHECK, name, health.model_dump(mode="json"))

        return results

    def get_statistics(self) -> dict[str, Any]:
        modules = self.get_all_modules()
        by_category: dict[str, int] = {}
        by_status: dict[str, int] = {}
        load_times = []

        for module in modules:
            category = module.config.category.value
            by_category[category] = by_category.get(category, 0) + 1
            by_status[module.status.value] = by_status.get(module.status.value, 0) + 1
            if module.metrics.load_time_ms:
                load_times.append(module.metrics.load_time_ms)

        return {
            "total": len(modules),
            "enabled": len(self.get_enabled_modules()),
            "disabled": sum(
                1
                for m in modules
                if not m.config.enabled or m.status == ModuleStatus.DISABLED
            ),
            "errors": sum(1 for m in modules if m.status == ModuleStatus.ERROR),
            "by_category": by_category,
            "by_status": by_status,
            "average_load_time_ms": sum(load_times) / len(load_times) if load_times else 0.0,
        }

    # ============== Events ==============

    def add_event_listener(self, event: RegistryEvent, listener: EventListener) -> None:
        self._listeners.setdefault(event, []).append(listener)

    def remove_event_listener(self, event: RegistryEvent, listener: EventListener) -> None:
        listeners = self._listeners.get(event, [])
        if listener in listeners:
            listeners.remove(listener)

    def clear(self) -> None:
        """Reset the registry to its initial, empty state."""
        self._modules.clear()
        self._dependencies.clear()
        self._dependents.clear()
        self._listeners.clear()
        self.is_ready = False
        self._initialize()

    # ============== Internals ==============

    def _emit(
        self,
        event: RegistryEvent,
        module_name: str | None = None,
        data: dict[str, Any] | None = None,
    ) -> None:
        listeners = self._listeners.get(event)
        if not listeners:
            return

        payload = RegistryEventPayload(
            type=event,
            module_name=module_name,
            data=data or {},
            timestamp=_now(),
        )
        for listener in list(listeners):
            try:
                listener(payload)
            except Exception:
                logger.exception("Error in event listener for %s", event.value)

    def _has_cycle(self, name: str, dependencies: list[str]) -> bool:
        visited: set[str] = set()
        stack: set[str] = set()

        def visit(node: str) -> bool:
            if node in stack:
                return True
            if node in visited:
                return False
            visited.add(node)
            stack.add(node)
            edges = dependencies if node == name else self._dependencies.get(node, [])
            if any(visit(edge) for edge in edges):
                return True
            stack.discard(node)
            return False

        return visit(name)

    def _missing_features(self, config: ModuleConfig) -> list[str]:
        return [f for f in config.required_features if not self.flags.is_feature_enabled(f)]

    def _optional_features(self, config: ModuleConfig) -> dict[str, bool]:
        return {f: self.flags.is_feature_enabled(f) for f in config.optional_features}

    def _healthy(self, config: ModuleConfig) -> ModuleHealth:
        return ModuleHealth(
            status=HealthStatus.HEALTHY,
            last_check=_now(),
            details={
                "dependencies_resolved": True,
                "features_available": self._optional_features(config),
            },
        )

    def _check_module_health(self, module: ModuleMetadata) -> ModuleHealth:
        for dependency in module.config.dependencies:
            if not self.is_enabled(dependency):
                return ModuleHealth(
                    status=HealthStatus.UNHEALTHY,
                    last_check=_now(),
                    details={"error": f"Dependency {dependency} is not enabled"},
                )

        missing = self._missing_features(module.config)
        if missing:
            return ModuleHealth(
                status=HealthStatus.DEGRADED,
                last_check=_now(),
                details={"warning": f"Required feature {missing[0]} is not enabled"},
            )

        return self._healthy(module.config)


def _elapsed_ms(started: float) -> float:
    return (time.perf_counter() - started) * 1000
