# nabolag/routers/__init__.py
"""
API routers for v1 endpoints.
"""

from nabolag.routers.admin_lifecycle import router as admin_lifecycle_router
from nabolag.routers.posts import router as posts_router

__all__ = [
    "posts_router",
    "admin_lifecycle_router",
]
