"""Database infrastructure: declarative base, engine/session management, immutability listeners."""

from requisition_kernel.db.base import Base, UUIDString
from requisition_kernel.db.engine import (
    get_engine,
    get_session,
    get_session_factory,
    init_engine_from_url,
    session_scope,
)

__all__ = [
    "Base",
    "UUIDString",
    "get_engine",
    "get_session",
    "get_session_factory",
    "init_engine_from_url",
    "session_scope",
]
