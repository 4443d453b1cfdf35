"""
Stock import API routes.

Upload a stock report, review the staged rows, then apply.
The catalog owner is identified by the X-Owner-Id header.
"""

from io import BytesIO
from typing import Optional

from fastapi import APIRouter, File, Header, Query, UploadFile
from fastapi.responses import JSONResponse, StreamingResponse
import structlog

from models.stock_import import (
    ApplyResponse,
    DefaultCategoryUpdate,
    ImportSessionResponse,
)
from services.export_service import generate_template
from services.stock_import_service import get_stock_import_service
from exceptions import AppError

logger = structlog.get_logger(__name__)

router = APIRouter()


# ===================
# EXCEPTION HANDLER
# ===================

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


# ===================
# UPLOAD
# ===================

@router.post("/upload", response_model=ImportSessionResponse)
async def upload_stock_file(
    file: UploadFile = File(...),
    owner_id: str = Header(..., alias="X-Owner-Id"),
):
    """
    Parse a CSV/XLSX stock report and stage it for review.

    Replaces any unapplied session for this owner.

    Raises:
        422: Unsupported format, malformed file, or missing name/quantity column
        409: An apply is running for this owner
    """
    try:
        content = await file.read()
        logger.info(
            "stock_upload_received",
            owner_id=owner_id,
            filename=file.filename,
            size=len(content)
        )
        session = get_stock_import_service().upload(owner_id, content, file.filename)
        return session.to_response()

    except Exception as e:
        return handle_error(e)


# ===================
# REVIEW
# ===================

@router.get("/session", response_model=ImportSessionResponse)
async def get_import_session(owner_id: str = Header(..., alias="X-Owner-Id")):
    """Current staged rows and selection."""
    try:
        return get_stock_import_service().get_session(owner_id).to_response()

    except Exception as e:
        return handle_error(e)


@router.post("/session/rows/{row_id}/toggle", response_model=ImportSessionResponse)
async def toggle_staged_row(row_id: str, owner_id: str = Header(..., alias="X-Owner-Id")):
    """Include or exclude one staged row."""
    try:
        return get_stock_import_service().toggle_row(owner_id, row_id).to_response()

    except Exception as e:
        return handle_error(e)


@router.put("/session/default-category", response_model=ImportSessionResponse)
async def set_default_category(
    data: DefaultCategoryUpdate,
    owner_id: str = Header(..., alias="X-Owner-Id"),
):
    """Category for new products whose row has none."""
    try:
        service = get_stock_import_service()
        return service.set_default_category(owner_id, data.default_category).to_response()

    except Exception as e:
        return handle_error(e)


@router.delete("/session", status_code=204)
async def cancel_import_session(owner_id: str = Header(..., alias="X-Owner-Id")):
    """Discard the staged upload without writing anything."""
    try:
        get_stock_import_service().cancel(owner_id)
        return None

    except Exception as e:
        return handle_error(e)


# ===================
# APPLY
# ===================

@router.post("/session/apply", response_model=ApplyResponse)
async def apply_import_session(
    owner_id: str = Header(..., alias="X-Owner-Id"),
    actor_id: Optional[str] = Header(None, alias="X-Actor-Id"),
):
    """
    Write all selected rows and end the session.

    Not atomic: rows that succeed stay written even if others fail.
    """
    try:
        outcome = get_stock_import_service().apply(owner_id, actor_id or owner_id)
        return ApplyResponse(message=outcome.summary_message(), outcome=outcome)

    except Exception as e:
        return handle_error(e)


# ===================
# TEMPLATE
# ===================

@router.get("/template")
async def download_template(
    file_format: str = Query("xlsx", pattern="^(xlsx|csv)$"),
    variant: str = Query("standard", pattern="^(standard|accounting)$"),
):
    """Blank upload template with sample rows."""
    try:
        template = generate_template(file_format, variant)
        return StreamingResponse(
            BytesIO(template.content),
            media_type=template.media_type,
            headers={"Content-Disposition": f'attachment; filename="{template.filename}"'},
        )

    except Exception as e:
        return handle_error(e)
