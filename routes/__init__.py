"""
API route modules.

Each module defines routes for one domain area.
"""

from routes.stock_import import router as stock_import_router
from routes.stock import router as stock_router
from routes.stock_sync import router as stock_sync_router
from routes.api_keys import router as api_keys_router

__all__ = [
    "stock_import_router",
    "stock_router",
    "stock_sync_router",
    "api_keys_router",
]
