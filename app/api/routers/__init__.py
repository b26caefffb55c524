"""
app/api/routers package marker.
"""

from app.api.routers.bulk_import import router as bulk_import_router

__all__ = [
    "bulk_import_router",
]
