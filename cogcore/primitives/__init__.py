"""CogCore — Shared primitives."""
