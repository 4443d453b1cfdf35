"""
Stock API routes: stock listing, manual quantity updates and current-stock export.
"""

from io import BytesIO
from typing import Optional

from fastapi import APIRouter, Header, Query
from fastapi.responses import JSONResponse, StreamingResponse
import structlog

from models.stock_import import ManualStockUpdate, StockLevel, StockUpdateResponse
from services.stock_service import get_stock_service
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


@router.get("", response_model=list[StockLevel])
async def list_stock(owner_id: str = Header(..., alias="X-Owner-Id")):
    """List every product with its current quantity and low-stock flag."""
    try:
        return get_stock_service().list_stock(owner_id)

    except Exception as e:
        return handle_error(e)


@router.get("/export")
async def export_current_stock(
    file_format: str = Query("xlsx", pattern="^(xlsx|csv)$"),
    owner_id: str = Header(..., alias="X-Owner-Id"),
):
    """Download the owner's current stock as XLSX or CSV."""
    try:
        export = get_stock_service().export_current_stock(owner_id, file_format)
        return StreamingResponse(
            BytesIO(export.content),
            media_type=export.media_type,
            headers={"Content-Disposition": f'attachment; filename="{export.filename}"'},
        )

    except Exception as e:
        return handle_error(e)


@router.put("/{product_id}", response_model=StockUpdateResponse)
async def update_product_stock(
    product_id: str,
    data: ManualStockUpdate,
    owner_id: str = Header(..., alias="X-Owner-Id"),
    actor_id: Optional[str] = Header(None, alias="X-Actor-Id"),
):
    """
    Set one product's stock quantity.

    Raises:
        404: Product not in this owner's catalog
    """
    try:
        return get_stock_service().set_quantity(
            owner_id,
            product_id,
            data.quantity,
            actor=actor_id or owner_id,
            unit=data.unit,
        )

    except Exception as e:
        return handle_error(e)
