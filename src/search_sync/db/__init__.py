"""
Database Package

Async SQLAlchemy session management for the system of record and the
order-preserving rehydration of search results.
"""

from .session import create_engine_from_settings, create_session_factory, session_scope
from .rehydrator import Rehydrator, primary_key_attribute

__all__ = [
    "create_engine_from_settings",
    "create_session_factory",
    "session_scope",
    "Rehydrator",
    "primary_key_attribute",
]
