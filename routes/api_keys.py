"""
API key routes: issue, list and revoke stock sync keys, and read sync logs.

Called by the catalog owner (X-Owner-Id), not by integrations.
"""

from fastapi import APIRouter, Header, Query
from fastapi.responses import JSONResponse
import structlog

from models.stock_sync import ApiKeyCreate, ApiKeySummary, IssuedApiKey, SyncLogEntry
from services.api_key_service import get_api_key_service, SYNC_LOG_LIMIT
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


@router.post("", response_model=IssuedApiKey, status_code=201)
async def issue_api_key(
    data: ApiKeyCreate,
    owner_id: str = Header(..., alias="X-Owner-Id"),
):
    """
    Issue a new API key.

    The plain key is in this response only; store it now.
    """
    try:
        return get_api_key_service().issue_key(owner_id, data.name)

    except Exception as e:
        return handle_error(e)


@router.get("", response_model=list[ApiKeySummary])
async def list_api_keys(owner_id: str = Header(..., alias="X-Owner-Id")):
    """List the owner's keys, newest first."""
    try:
        return get_api_key_service().list_keys(owner_id)

    except Exception as e:
        return handle_error(e)


@router.get("/sync-logs", response_model=list[SyncLogEntry])
async def list_sync_logs(
    limit: int = Query(SYNC_LOG_LIMIT, ge=1, le=100),
    owner_id: str = Header(..., alias="X-Owner-Id"),
):
    """Recent stock sync runs."""
    try:
        return get_api_key_service().recent_sync_logs(owner_id, limit)

    except Exception as e:
        return handle_error(e)


@router.post("/{key_id}/revoke", response_model=ApiKeySummary)
async def revoke_api_key(
    key_id: str,
    owner_id: str = Header(..., alias="X-Owner-Id"),
):
    """
    Revoke a key.

    Raises:
        404: Key is not one of this owner's
    """
    try:
        return get_api_key_service().revoke_key(owner_id, key_id)

    except Exception as e:
        return handle_error(e)
