# (c) Copyright Datacraft, 2026
"""Access services."""
from .access import AccessService, create_store

__all__ = ["AccessService", "create_store"]
