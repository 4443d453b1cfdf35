"""
Stock sync API route for integrations.

Authenticated by the x-api-key header (sk_live_...). Request bodies are
validated by StockSyncRequest; invalid bodies get FastAPI's 422.
"""

from typing import Optional

from fastapi import APIRouter, Header
from fastapi.responses import JSONResponse
import structlog

from models.stock_sync import StockSyncRequest, StockSyncResult
from services.stock_sync_service import get_stock_sync_service
from exceptions import AppError

logger = structlog.get_logger(__name__)

router = APIRouter()


def handle_error(e: Exception) -> JSONResponse:
    """Convert exception to JSON response."""
    if isinstance(e, AppError):
        return JSONResponse(
            status_code=e.status_code,
            content=e.to_dict()
        )
    logger.error("unexpected_error", error=str(e), type=type(e).__name__)
    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "INTERNAL_ERROR",
                "message": "An unexpected error occurred"
            }
        }
    )


@router.post("", response_model=StockSyncResult)
async def sync_stock(
    data: StockSyncRequest,
    api_key: Optional[str] = Header(None, alias="x-api-key"),
):
    """
    Push stock levels for existing products.

    Unknown products are reported in error_details and not created.

    Raises:
        401: Missing, malformed or inactive API key
        409: A bulk import is being applied for this catalog
    """
    try:
        service = get_stock_sync_service()
        key = service.authenticate(api_key)
        return service.sync(data, key)

    except Exception as e:
        return handle_error(e)
