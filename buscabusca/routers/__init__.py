"""API routers."""

from buscabusca.routers.auth import router as auth_router
from buscabusca.routers.merchants import router as merchants_router

__all__ = ["auth_router", "merchants_router"]
