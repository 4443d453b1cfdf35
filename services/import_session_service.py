"""
Import sessions: in-memory staging between parse and apply.

One session per catalog owner, held in process memory with a TTL. Sessions
are not persisted; a restart drops unapplied reviews.

Lifecycle per owner:
    IDLE -> PARSED -> REVIEWING -> APPLYING -> IDLE

Starting a new upload replaces a PARSED/REVIEWING session. It is rejected
while that owner's apply is running, so two bulk applies never race on one
catalog.
"""

import threading
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from typing import Iterator, Optional
from uuid import uuid4
import structlog

from config import settings
from models.stock_import import (
    StagedRow,
    RowPartition,
    SessionState,
    ImportSessionResponse,
)
from parsers.row_normalizer import RowParseWarning
from services.catalog_matcher import CatalogMatch
from exceptions import (
    ImportSessionNotFoundError,
    StagedRowNotFoundError,
    SessionBusyError,
    ValidationError,
)

logger = structlog.get_logger(__name__)


class ImportSession:
    """
    Staged rows for one upload-review-apply cycle.

    Rows live in an arena keyed by a stable row_id, in input order. Review
    operations only flip selection flags; partition membership never changes.
    """

    def __init__(
        self,
        owner_id: str,
        rows: list[StagedRow],
        default_category: str,
        warnings: Optional[list[RowParseWarning]] = None,
        filename: Optional[str] = None,
        ttl_minutes: int = 30,
    ):
        self.session_id = str(uuid4())
        self.owner_id = owner_id
        self.state = SessionState.PARSED
        self.default_category = default_category
        self.warnings = list(warnings or [])
        self.filename = filename
        self.created_at = datetime.now(timezone.utc)
        self.expires_at = self.created_at + timedelta(minutes=ttl_minutes)
        self._rows: dict[str, StagedRow] = {
            row.row_id: row for row in sorted(rows, key=lambda r: r.row_number)
        }

    @classmethod
    def from_match(
        cls,
        owner_id: str,
        match: CatalogMatch,
        parse_warnings: Optional[list[RowParseWarning]] = None,
        filename: Optional[str] = None,
        default_category: Optional[str] = None,
        ttl_minutes: int = 30,
    ) -> "ImportSession":
        warnings = sorted(
            list(parse_warnings or []) + match.warnings,
            key=lambda w: w.row_number
        )
        return cls(
            owner_id=owner_id,
            rows=match.matched + match.unmatched,
            default_category=default_category or settings.default_category,
            warnings=warnings,
            filename=filename,
            ttl_minutes=ttl_minutes,
        )

    # ===================
    # VIEWS
    # ===================

    @property
    def rows(self) -> list[StagedRow]:
        return list(self._rows.values())

    @property
    def matched(self) -> list[StagedRow]:
        return [r for r in self._rows.values() if r.partition == RowPartition.MATCHED]

    @property
    def unmatched(self) -> list[StagedRow]:
        return [r for r in self._rows.values() if r.partition == RowPartition.UNMATCHED]

    def get_row(self, row_id: str) -> StagedRow:
        row = self._rows.get(row_id)
        if row is None:
            raise StagedRowNotFoundError(row_id)
        return row

    def row_at(self, partition: RowPartition, index: int) -> StagedRow:
        """Positional lookup within one partition."""
        rows = self.matched if partition == RowPartition.MATCHED else self.unmatched
        if index < 0 or index >= len(rows):
            raise StagedRowNotFoundError(f"{partition.value}:{index}")
        return rows[index]

    def selected_rows(self) -> list[StagedRow]:
        return [r for r in self._rows.values() if r.selected]

    def selection_count(self) -> int:
        """Selected rows across both partitions."""
        return sum(1 for r in self._rows.values() if r.selected)

    def category_for(self, row: StagedRow) -> str:
        return row.category or self.default_category

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        if self.state == SessionState.APPLYING:
            return False
        return (now or datetime.now(timezone.utc)) > self.expires_at

    # ===================
    # REVIEW OPERATIONS
    # ===================

    def toggle_row_selected(self, row_id: str) -> StagedRow:
        """Flip one row's selected flag."""
        row = self.get_row(row_id)
        self._begin_review()
        row.selected = not row.selected
        return row

    def set_row_selected(self, row_id: str, selected: bool) -> StagedRow:
        row = self.get_row(row_id)
        self._begin_review()
        row.selected = selected
        return row

    def set_default_category(self, value: str) -> None:
        """Category for unmatched rows that have none of their own."""
        value = (value or "").strip()
        if not value:
            raise ValidationError("Default category cannot be empty")
        self._begin_review()
        self.default_category = value

    def _begin_review(self) -> None:
        if self.state == SessionState.APPLYING:
            raise SessionBusyError(self.owner_id)
        if self.state == SessionState.PARSED:
            self.state = SessionState.REVIEWING

    def to_response(self) -> ImportSessionResponse:
        return ImportSessionResponse(
            session_id=self.session_id,
            owner_id=self.owner_id,
            state=self.state,
            filename=self.filename,
            default_category=self.default_category,
            matched=self.matched,
            unmatched=self.unmatched,
            selection_count=self.selection_count(),
            warnings=self.warnings,
            expires_at=self.expires_at,
        )


class ImportSessionManager:
    """
    Holds the single active ImportSession per owner.

    All state changes go through one lock, so the manager stays consistent
    when it is called from worker threads as well as the event loop.
    """

    def __init__(self, ttl_minutes: Optional[int] = None):
        self.ttl_minutes = ttl_minutes or settings.import_session_ttl_minutes
        self._sessions: dict[str, ImportSession] = {}
        self._applying: set[str] = set()
        self._lock = threading.Lock()

    # ===================
    # LIFECYCLE
    # ===================

    def start_session(
        self,
        owner_id: str,
        match: CatalogMatch,
        parse_warnings: Optional[list[RowParseWarning]] = None,
        filename: Optional[str] = None,
    ) -> ImportSession:
        """
        Stage a freshly matched upload, replacing any unapplied session.

        Raises:
            SessionBusyError: This owner's apply is in flight
        """
        with self._lock:
            if owner_id in self._applying:
                logger.warning("import_session_rejected_busy", owner_id=owner_id)
                raise SessionBusyError(owner_id)

            prior = self._sessions.get(owner_id)
            if prior is not None:
                logger.info(
                    "import_session_replaced",
                    owner_id=owner_id,
                    previous_session_id=prior.session_id,
                    previous_state=prior.state.value
                )

            session = ImportSession.from_match(
                owner_id,
                match,
                parse_warnings=parse_warnings,
                filename=filename,
                ttl_minutes=self.ttl_minutes,
            )
            self._sessions[owner_id] = session
            self._cleanup_expired()

        logger.info(
            "import_session_started",
            owner_id=owner_id,
            session_id=session.session_id,
            matched=len(session.matched),
            unmatched=len(session.unmatched)
        )
        return session

    def get_session(self, owner_id: str) -> ImportSession:
        """
        Raises:
            ImportSessionNotFoundError: No live session for owner
        """
        with self._lock:
            return self._get_live(owner_id)

    def state_of(self, owner_id: str) -> SessionState:
        with self._lock:
            session = self._sessions.get(owner_id)
            if session is None or session.is_expired():
                return SessionState.IDLE
            return session.state

    def cancel_session(self, owner_id: str) -> None:
        """
        Discard an unapplied session.

        Raises:
            ImportSessionNotFoundError: Nothing to cancel
            SessionBusyError: Apply in flight
        """
        with self._lock:
            session = self._get_live(owner_id)
            if session.state == SessionState.APPLYING:
                raise SessionBusyError(owner_id)
            del self._sessions[owner_id]
        logger.info("import_session_cancelled", owner_id=owner_id, session_id=session.session_id)

    # ===================
    # REVIEW (locked wrappers)
    # ===================

    def toggle_row_selected(self, owner_id: str, row_id: str) -> ImportSession:
        with self._lock:
            session = self._get_live(owner_id)
            session.toggle_row_selected(row_id)
            return session

    def set_row_selected(self, owner_id: str, row_id: str, selected: bool) -> ImportSession:
        with self._lock:
            session = self._get_live(owner_id)
            session.set_row_selected(row_id, selected)
            return session

    def set_default_category(self, owner_id: str, value: str) -> ImportSession:
        with self._lock:
            session = self._get_live(owner_id)
            session.set_default_category(value)
            return session

    # ===================
    # APPLY
    # ===================

    def begin_apply(self, owner_id: str) -> ImportSession:
        """
        Move the owner's session to APPLYING.

        Raises:
            ImportSessionNotFoundError: No live session
            SessionBusyError: An apply or sync already holds this owner
        """
        with self._lock:
            session = self._get_live(owner_id)
            if owner_id in self._applying or session.state == SessionState.APPLYING:
                raise SessionBusyError(owner_id)
            session.state = SessionState.APPLYING
            self._applying.add(owner_id)

        logger.info(
            "import_apply_started",
            owner_id=owner_id,
            session_id=session.session_id,
            selected=session.selection_count()
        )
        return session

    def finish_apply(self, owner_id: str) -> None:
        """Destroy the applied session; owner returns to IDLE."""
        with self._lock:
            self._applying.discard(owner_id)
            session = self._sessions.get(owner_id)
            if session is not None and session.state == SessionState.APPLYING:
                del self._sessions[owner_id]

    @contextmanager
    def apply_guard(self, owner_id: str) -> Iterator[None]:
        """
        Hold the owner's apply slot without a session (stock sync).

        Raises:
            SessionBusyError: Another apply holds this owner
        """
        with self._lock:
            if owner_id in self._applying:
                raise SessionBusyError(owner_id)
            self._applying.add(owner_id)
        try:
            yield
        finally:
            with self._lock:
                self._applying.discard(owner_id)

    # ===================
    # INTERNAL
    # ===================

    def _get_live(self, owner_id: str) -> ImportSession:
        session = self._sessions.get(owner_id)
        if session is None:
            raise ImportSessionNotFoundError(owner_id)
        if session.is_expired():
            del self._sessions[owner_id]
            raise ImportSessionNotFoundError(owner_id)
        return session

    def _cleanup_expired(self) -> None:
        now = datetime.now(timezone.utc)
        expired = [k for k, s in self._sessions.items() if s.is_expired(now)]
        for k in expired:
            del self._sessions[k]


# Singleton instance
_import_session_manager: Optional[ImportSessionManager] = None


def get_import_session_manager() -> ImportSessionManager:
    """Get or create the process-wide session manager."""
    global _import_session_manager
    if _import_session_manager is None:
        _import_session_manager = ImportSessionManager()
    return _import_session_manager
