# (c) Copyright Datacraft, 2026
"""API routers."""
from .check import router as check_router
from .tuples import router as tuples_router
from .usersets import router as usersets_router

__all__ = ["check_router", "tuples_router", "usersets_router"]
