# (c) Copyright Datacraft, 2026
"""Session validation."""
from .service import SessionValidator, InMemorySessionManager, UserSession

__all__ = ["SessionValidator", "InMemorySessionManager", "UserSession"]
