# trashcan/routers/__init__.py
"""
API routers.
"""

from trashcan.routers.admin_trashcan import router as admin_trashcan_router

__all__ = [
    "admin_trashcan_router",
]
