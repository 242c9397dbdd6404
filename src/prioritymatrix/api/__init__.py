"""API route modules."""

from prioritymatrix.api.matrix import router as matrix_router
from prioritymatrix.api.settings import router as settings_router

__all__ = ["matrix_router", "settings_router"]
