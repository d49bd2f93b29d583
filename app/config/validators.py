"""Shared validators for Pydantic config models.

This module provides common validation utilities that reduce code
duplication across configuration models:
- String list normalization
- Min/max pair validation
"""

from typing import Any


def normalize_string_list(value: Any) -> list[str]:
    """Normalize string list to stripped lowercase entries.

    Handles None, single strings, and lists.

    Args:
        value: Input value (None, str, or list[str])

    Returns:
        List of lowercased strings
    """
    if value is None:
        return []
    if isinstance(value, str):
        return [value.strip().lower()] if value.strip() else []
    if isinstance(value, list):
        return [s.strip().lower() for s in value if isinstance(s, str) and s.strip()]
    return []


def validate_min_max(minimum: float, maximum: float, field_name: str = "Range") -> None:
    """Validate that a minimum does not exceed its maximum.

    Args:
        minimum: Lower bound
        maximum: Upper bound
        field_name: Name for error messages

    Raises:
        ValueError: If minimum > maximum
    """
    if minimum > maximum:
        raise ValueError(f"{field_name} minimum ({minimum}) exceeds maximum ({maximum})")


__all__ = [
    "normalize_string_list",
    "validate_min_max",
]
