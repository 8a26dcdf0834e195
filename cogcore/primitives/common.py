"""
CogCore — Common Primitives

Shared base models and small helpers used across all systems.
"""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel


def utc_now() -> datetime:
    """Current UTC time, timezone-aware."""
    return datetime.now(timezone.utc)


def clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))


# ─── Base Models ──────────────────────────────────────────────────


class CogBaseModel(BaseModel):
    """Base model for all CogCore primitives."""

    model_config = {"populate_by_name": True, "from_attributes": True}


class FrozenModel(BaseModel):
    """Immutable value object. Replace with ``model_copy(update=...)``."""

    model_config = {"frozen": True, "populate_by_name": True}
