"""CogCore — Telemetry (structured logging)."""

from cogcore.telemetry.logging import setup_logging

__all__ = ["setup_logging"]
