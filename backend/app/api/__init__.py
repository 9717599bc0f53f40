"""API routers for the Care Continuity Engine."""

from app.api.continuity import router as continuity_router
from app.api.suggestions import router as suggestions_router

__all__ = [
    "continuity_router",
    "suggestions_router",
]
