"""Module registry routes."""

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.core.deps import require_permission
from app.modules import ModuleCategory, module_registry
from app.modules.registry import ModuleHealth, ModuleMetadata

router = APIRouter(prefix="/modules", tags=["Modules"])


def _get_module(name: str) -> ModuleMetadata:
    module = module_registry.get_module(name)
    if module is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Module '{name}' not found",
        )
    return module


@router.get(
    "",
    response_model=list[ModuleMetadata],
    dependencies=[Depends(require_permission("modules:read"))],
)
async def list_modules(
    category: ModuleCategory | None = Query(None, description="Filter by category"),
    enabled_only: bool = Query(False, description="Only enabled modules"),
) -> list[ModuleMetadata]:
    if enabled_only:
        modules = module_registry.get_enabled_modules()
    else:
        modules = module_registry.get_all_modules()
    if category is not None:
        modules = [m for m in modules if m.config.category == category]
    return modules


@router.get("/stats", dependencies=[Depends(require_permission("modules:read"))])
async def module_statistics() -> dict[str, Any]:
    return module_registry.get_statistics()


@router.get(
    "/health",
    response_model=dict[str, ModuleHealth],
    dependencies=[Depends(require_permission("modules:read"))],
)
async def module_health() -> dict[str, ModuleHealth]:
    """Run a health check on every enabled module."""
    return module_registry.perform_health_check()


@router.get(
    "/{name}",
    dependencies=[Depends(require_permission("modules:read"))],
)
async def get_module(name: str) -> dict[str, Any]:
    module = _get_module(name)
    return {
        **module.model_dump(mode="json"),
        "dependencies": module_registry.get_dependencies(name),
        "dependents": module_registry.get_dependents(name),
        "can_disable": module_registry.can_disable(name),
    }


@router.post(
    "/{name}/enable",
    response_model=ModuleMetadata,
    dependencies=[Depends(require_permission("modules:write"))],
)
async def enable_module(name: str) -> ModuleMetadata:
    """Enable a module whose dependencies and required features are enabled."""
    _get_module(name)
    if not module_registry.enable(name):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Module '{name}' cannot be enabled",
        )
    return module_registry.get_module(name)


@router.post(
    "/{name}/disable",
    response_model=ModuleMetadata,
    dependencies=[Depends(require_permission("modules:write"))],
)
async def disable_module(name: str) -> ModuleMetadata:
    """Disable a module no enabled module depends on."""
    _get_module(name)
    if not module_registry.disable(name):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Module '{name}' is required by {', '.join(module_registry.get_dependents(name))}",
        )
    return module_registry.get_module(name)
