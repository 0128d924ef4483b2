# (c) Copyright Datacraft, 2026
"""Database module for the relationship store."""
from .base import Base
from .engine import make_engine, make_session_factory

__all__ = [
	'Base',
	'make_engine',
	'make_session_factory',
]
