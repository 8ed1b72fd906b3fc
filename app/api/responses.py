"""Helpers turning service results into response envelopes."""

from typing import Any

from pydantic import BaseModel

from app.services.base import ServiceResult


def _convert(data: Any, schema: type[BaseModel]) -> Any:
    if isinstance(data, dict) and "items" in data:
        return {
            "items": [schema.model_validate(item) for item in data["items"]],
            "pagination": data["pagination"],
        }
    if isinstance(data, list):
        return [schema.model_validate(item) for item in data]
    return schema.model_validate(data)


def envelope(result: ServiceResult, schema: type[BaseModel] | None = None) -> dict[str, Any]:
    """Unwrap a service result, raising ServiceFailure when it failed."""
    data = result.unwrap()
    if schema is not None:
        data = _convert(data, schema)
    return {"success": True, "data": data, "metadata": result.metadata}
