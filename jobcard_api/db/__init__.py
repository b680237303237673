"""
Persistence layer: declarative base, settings, async engine/session factory
and the ORM models (imported here so Base.metadata is complete).
"""

from . import models  # noqa: F401
from .base import Base
from .config import Settings, get_settings
from .session import dispose_engine, get_async_session, get_engine, get_session_maker, make_session_maker

__all__ = [
    "Base",
    "Settings",
    "dispose_engine",
    "get_async_session",
    "get_engine",
    "get_session_maker",
    "get_settings",
    "make_session_maker",
    "models",
]
