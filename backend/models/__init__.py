"""Models package - settings, Pydantic schemas, roles and domain errors."""

from .roles import Role, Visibility

__all__ = [
    "Role",
    "Visibility",
]
