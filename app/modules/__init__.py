from app.modules.registry import (
    ModuleCategory,
    ModuleConfig,
    ModuleRegistry,
    ModuleRegistryError,
    ModuleStatus,
    RegistryEvent,
)

module_registry = ModuleRegistry()

__all__ = [
    "ModuleCategory",
    "ModuleConfig",
    "ModuleRegistry",
    "ModuleRegistryError",
    "ModuleStatus",
    "RegistryEvent",
    "module_registry",
]
