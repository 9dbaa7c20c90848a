"""Persistent cache for AI estimates.

AI analysis is slow and costs money, so its estimates are cached in a
small SQLite database keyed by a fingerprint of (description, project).
Entries carry an expiry timestamp; expired rows are filtered on read and
can be swept with clean_expired().
"""

import hashlib
import json
import logging
import sqlite3
from datetime import datetime, timedelta
from pathlib import Path
from typing import Callable

from .error_handling import handle_cache_errors
from .models import CacheEntry, Estimate, EstimateDetails, EstimationSource
from .utils import ensure_directory, utc_now

logger = logging.getLogger(__name__)

CACHED_SUFFIX = " (cached)"

SCHEMA = """
CREATE TABLE IF NOT EXISTS ai_estimates (
    task_hash TEXT PRIMARY KEY,
    estimate_hours REAL NOT NULL,
    confidence REAL NOT NULL,
    reason TEXT NOT NULL,
    details TEXT,
    created_at TEXT NOT NULL,
    expires_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_ai_estimates_expires_at ON ai_estimates(expires_at);
"""


def _escape_field(value: str) -> str:
    return value.replace("\\", "\\\\").replace("|", "\\|")


def _format_time(value: datetime) -> str:
    # Fixed precision keeps stored timestamps lexicographically ordered
    return value.isoformat(timespec="microseconds")


class AICache:
    """SQLite-backed, content-addressed cache of AI estimates."""

    def __init__(self, db_path: Path, clock: Callable[[], datetime] = utc_now):
        """Open (or create) the cache database.

        Args:
            db_path: Path to the SQLite file
            clock: Returns the current time; injectable for tests

        Raises:
            CacheError: If the database cannot be created
        """
        self.db_path = Path(db_path)
        self.clock = clock
        self._init_db()

    @handle_cache_errors
    def _init_db(self) -> None:
        """Initialize database schema."""
        ensure_directory(self.db_path.parent)
        conn = self._connect()
        try:
            conn.executescript(SCHEMA)
            conn.commit()
        finally:
            conn.close()

    def _connect(self) -> sqlite3.Connection:
        """Get database connection."""
        return sqlite3.connect(str(self.db_path))

    @staticmethod
    def fingerprint(description: str, project: str) -> str:
        """Fixed-length key for a (description, project) pair.

        Both fields are escaped before joining so that no two distinct pairs
        share an encoding ("a|" + "b" vs "a" + "|b").
        """
        key = _escape_field(description) + "|" + _escape_field(project)
        return hashlib.sha256(key.encode("utf-8")).hexdigest()

    @handle_cache_errors
    def get_entry(self, description: str, project: str) -> CacheEntry | None:
        """Get the raw cache entry, expired or not.

        Args:
            description: Task description
            project: Task project ("" for none)

        Returns:
            CacheEntry, or None if nothing is stored
        """
        task_hash = self.fingerprint(description, project)
        conn = self._connect()
        try:
            row = conn.execute(
                """
                SELECT estimate_hours, confidence, reason, details, created_at, expires_at
                FROM ai_estimates
                WHERE task_hash = ?
                """,
                (task_hash,),
            ).fetchone()
        finally:
            conn.close()

        if row is None:
            return None

        hours, confidence, reason, details_json, created_at, expires_at = row
        estimate = Estimate(
            hours=hours,
            source=EstimationSource.AI,
            confidence=confidence,
            reason=reason,
            details=self._load_details(details_json),
        )
        return CacheEntry(
            fingerprint=task_hash,
            estimate=estimate,
            created_at=datetime.fromisoformat(created_at),
            expires_at=datetime.fromisoformat(expires_at),
        )

    def get(self, description: str, project: str) -> Estimate | None:
        """Retrieve a cached estimate.

        Args:
            description: Task description
            project: Task project ("" for none)

        Returns:
            Copy of the stored estimate with " (cached)" appended to its
            reason, or None on a miss or when the entry has expired
        """
        entry = self.get_entry(description, project)
        if entry is None or entry.is_expired(self.clock()):
            return None
        return entry.estimate.with_reason_suffix(CACHED_SUFFIX)

    @handle_cache_errors
    def set(self, description: str, project: str, estimate: Estimate, ttl: timedelta) -> None:
        """Store an estimate, replacing any previous entry for the same task.

        Args:
            description: Task description
            project: Task project ("" for none)
            estimate: Estimate to cache
            ttl: How long the entry stays valid
        """
        now = self.clock()
        conn = self._connect()
        try:
            conn.execute(
                """
                INSERT OR REPLACE INTO ai_estimates
                (task_hash, estimate_hours, confidence, reason, details, created_at, expires_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    self.fingerprint(description, project),
                    estimate.hours,
                    estimate.confidence,
                    estimate.reason,
                    self._dump_details(estimate.details),
                    _format_time(now),
                    _format_time(now + ttl),
                ),
            )
            conn.commit()
        finally:
            conn.close()

    @handle_cache_errors
    def clean_expired(self) -> int:
        """Remove expired cache entries.

        Returns:
            Number of rows removed
        """
        conn = self._connect()
        try:
            cursor = conn.execute(
                "DELETE FROM ai_estimates WHERE expires_at < ?",
                (_format_time(self.clock()),),
            )
            conn.commit()
            removed = cursor.rowcount
        finally:
            conn.close()

        if removed:
            logger.info(f"Removed {removed} expired AI estimates from cache")
        return removed

    @handle_cache_errors
    def count(self) -> int:
        """Number of stored rows, including expired ones."""
        conn = self._connect()
        try:
            return conn.execute("SELECT COUNT(*) FROM ai_estimates").fetchone()[0]
        finally:
            conn.close()

    def close(self) -> None:
        """Release resources (connections are opened per operation)."""

    @staticmethod
    def _dump_details(details: EstimateDetails | None) -> str:
        if details is None:
            return ""
        try:
            return json.dumps(details.to_dict())
        except (TypeError, ValueError) as e:
            logger.warning(f"Could not serialize estimate details, storing empty: {e}")
            return ""

    @staticmethod
    def _load_details(details_json: str | None) -> EstimateDetails | None:
        if not details_json:
            return None
        try:
            data = json.loads(details_json)
        except json.JSONDecodeError:
            return None
        if not isinstance(data, dict):
            return None
        return EstimateDetails.from_dict(data)
