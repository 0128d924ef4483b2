# (c) Copyright Datacraft, 2026
"""Relationship-based access control engine."""
from .exceptions import RebacError, ValidationError, ConfigError, StoreError, StoreUnavailable

__all__ = [
	'RebacError',
	'ValidationError',
	'ConfigError',
	'StoreError',
	'StoreUnavailable',
]
