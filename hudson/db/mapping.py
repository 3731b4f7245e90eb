"""
Boundary mapping between stored records and in-memory models.

Stored records use the flattened snake_case shape (due_date,
recurring_interval, recipient_role, ...). Models expose camelCase
aliases (dueDate, recurringInterval, ...) to API consumers.
These functions are the only crossing points.
"""

from typing import Type, TypeVar

from pydantic import BaseModel

ModelT = TypeVar("ModelT", bound=BaseModel)


def to_record(model: BaseModel) -> dict:
    """Model -> JSON-safe snake_case record."""
    return model.model_dump(mode="json", by_alias=False)


def from_record(model_cls: Type[ModelT], record: dict) -> ModelT:
    """snake_case record -> validated model."""
    return model_cls.model_validate(record)


def to_api(model: BaseModel) -> dict:
    """Model -> camelCase payload."""
    return model.model_dump(mode="json", by_alias=True)


def from_api_updates(model_cls: Type[BaseModel], payload: dict) -> dict:
    """camelCase (or snake_case) partial payload -> snake_case field updates."""
    names = {}
    for name, field in model_cls.model_fields.items():
        names[name] = name
        if field.alias:
            names[field.alias] = name
    return {names.get(key, key): value for key, value in payload.items()}
