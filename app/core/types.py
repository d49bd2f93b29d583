"""Common type definitions for the application.

This module provides shared type aliases used across multiple modules
to avoid duplication and ensure consistency.
"""

from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy.ext.asyncio import AsyncSession

if TYPE_CHECKING:
    from app.models.activity import ActivityLogEntry

# Type alias for async session factory functions
# Used by services that need to create database sessions
SessionFactory = Callable[[], AsyncSession]

# Injectable wall clock (UTC-aware datetimes)
Clock = Callable[[], datetime]

# Injectable async sleep, asyncio.sleep by default
Sleeper = Callable[[float], Awaitable[None]]

# Append-only activity log writer
ActivityRecorder = Callable[["ActivityLogEntry"], Awaitable[None]]

__all__ = [
    "ActivityRecorder",
    "Clock",
    "SessionFactory",
    "Sleeper",
]
