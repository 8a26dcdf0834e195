"""
CogCore — Reasoning collaborator contract and stub.
"""

from cogcore.systems.reasoning.collaborator import ReasoningCollaborator, StubReasoner

__all__ = ["ReasoningCollaborator", "StubReasoner"]
