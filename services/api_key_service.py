"""
API key service for stock sync integrations.

Owners issue, list and revoke the keys their integrations push stock
with, and read back recent sync logs. A key is shown once when issued;
supplier_api_keys keeps only its SHA-256 hash and a display prefix.
"""

import base64
import hashlib
import secrets
from datetime import datetime, timezone
from typing import Optional
import structlog

from config import get_supabase_client
from models.stock_sync import ApiKeySummary, IssuedApiKey, SyncLogEntry
from exceptions import ApiKeyNotFoundError, DatabaseError

logger = structlog.get_logger(__name__)

API_KEY_PREFIX = "sk_live_"
MIN_API_KEY_LENGTH = 20
DEFAULT_KEY_NAME = "Default Key"
SYNC_LOG_LIMIT = 10


# ===================
# KEY HELPERS
# ===================

def generate_api_key() -> str:
    """New key: sk_live_ + 24 random bytes, base64 without + / or padding."""
    token = base64.b64encode(secrets.token_bytes(24)).decode("ascii")
    token = token.replace("+", "x").replace("/", "y").rstrip("=")
    return API_KEY_PREFIX + token


def hash_api_key(api_key: str) -> str:
    """SHA-256 hex digest stored in place of the key."""
    return hashlib.sha256(api_key.encode("utf-8")).hexdigest()


def key_prefix(api_key: str) -> str:
    """Displayable prefix, e.g. 'sk_live_AbCd...'."""
    return api_key[:12] + "..."


def is_well_formed_key(api_key: Optional[str]) -> bool:
    return bool(api_key) and api_key.startswith(API_KEY_PREFIX) and len(api_key) >= MIN_API_KEY_LENGTH


class ApiKeyService:
    """
    Manages one owner's stock sync API keys.
    """

    def __init__(self, db=None):
        self.db = db or get_supabase_client()

    def issue_key(self, owner_id: str, name: Optional[str] = None) -> IssuedApiKey:
        """
        Create a key for the owner.

        Args:
            owner_id: Catalog owner the key pushes stock for
            name: Label shown in the key list (default "Default Key")

        Returns:
            IssuedApiKey with the plain key; it cannot be read back later

        Raises:
            DatabaseError: Insert failed
        """
        api_key = generate_api_key()
        row = {
            "supplier_id": owner_id,
            "api_key_hash": hash_api_key(api_key),
            "api_key_prefix": key_prefix(api_key),
            "name": (name or "").strip() or DEFAULT_KEY_NAME,
            "is_active": True,
        }

        try:
            result = self.db.table("supplier_api_keys").insert(row).execute()
        except Exception as e:
            logger.error("api_key_issue_failed", owner_id=owner_id, error=str(e))
            raise DatabaseError("insert", str(e))

        if not result.data:
            raise DatabaseError("insert", "Insert returned no data")

        key = ApiKeySummary(**result.data[0])
        logger.info("api_key_issued", owner_id=owner_id, key_id=key.id, key_prefix=key.api_key_prefix)

        return IssuedApiKey(api_key=api_key, key=key)

    def list_keys(self, owner_id: str) -> list[ApiKeySummary]:
        """Owner's keys, newest first, revoked ones included."""
        try:
            result = (
                self.db.table("supplier_api_keys")
                .select("*")
                .eq("supplier_id", owner_id)
                .order("created_at", desc=True)
                .execute()
            )
        except Exception as e:
            logger.error("api_key_list_failed", owner_id=owner_id, error=str(e))
            raise DatabaseError("select", str(e))

        return [ApiKeySummary(**row) for row in result.data]

    def revoke_key(self, owner_id: str, key_id: str) -> ApiKeySummary:
        """
        Deactivate a key. Syncs with it are rejected from then on.

        Raises:
            ApiKeyNotFoundError: Key is not one of the owner's
            DatabaseError: Update failed
        """
        try:
            result = (
                self.db.table("supplier_api_keys")
                .update({
                    "is_active": False,
                    "revoked_at": datetime.now(timezone.utc).isoformat(),
                })
                .eq("id", key_id)
                .eq("supplier_id", owner_id)
                .execute()
            )
        except Exception as e:
            logger.error("api_key_revoke_failed", owner_id=owner_id, key_id=key_id, error=str(e))
            raise DatabaseError("update", str(e))

        if not result.data:
            raise ApiKeyNotFoundError(key_id)

        logger.info("api_key_revoked", owner_id=owner_id, key_id=key_id)
        return ApiKeySummary(**result.data[0])

    def recent_sync_logs(self, owner_id: str, limit: int = SYNC_LOG_LIMIT) -> list[SyncLogEntry]:
        """Latest stock sync runs for the owner, newest first."""
        try:
            result = (
                self.db.table("stock_sync_logs")
                .select("*")
                .eq("supplier_id", owner_id)
                .order("created_at", desc=True)
                .limit(limit)
                .execute()
            )
        except Exception as e:
            logger.error("sync_log_list_failed", owner_id=owner_id, error=str(e))
            raise DatabaseError("select", str(e))

        return [SyncLogEntry(**row) for row in result.data]


# Singleton instance
_api_key_service: Optional[ApiKeyService] = None


def get_api_key_service() -> ApiKeyService:
    """Get or create API key service instance."""
    global _api_key_service
    if _api_key_service is None:
        _api_key_service = ApiKeyService()
    return _api_key_service
