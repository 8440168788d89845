"""
Repository pattern for data access.

Handles the per-day quota ledger, the append-only usage log and the user
profile table.
"""

import sqlite3
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

from editor_assist.core.errors import RetryableStorageError, StorageError

from .db import DEFAULT_DB_PATH, get_connection
from .models import AdmitResult, LLMUsageEvent, UsageRecord, UserProfile


class UsageRepository:
    """Repository for the usage store collaborator.

    Bundles the ledger, log and profile operations behind one database path
    so the endpoint and the CLI share a single handle.
    """

    def __init__(self, db_path: str = DEFAULT_DB_PATH):
        """Initialize the repository with a database path.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = db_path

    def initialize(self) -> None:
        initialize_schema(self.db_path)

    def try_admit(self, user_id: str, day: str, limit: int) -> AdmitResult:
        return try_admit(user_id, day, limit, self.db_path)

    def get_usage(self, user_id: str, day: str) -> Optional[UsageRecord]:
        return get_usage_record(user_id, day, self.db_path)

    def get_daily_usage(self, day: str) -> List[UsageRecord]:
        return fetch_daily_usage(day, self.db_path)

    def log_event(self, event: LLMUsageEvent) -> None:
        insert_usage_event(event, self.db_path)

    def get_recent_events(
        self,
        user_id: Optional[str] = None,
        feature: Optional[str] = None,
        limit: int = 100
    ) -> List[LLMUsageEvent]:
        return fetch_recent_usage_events(user_id=user_id, feature=feature, limit=limit, db_path=self.db_path)

    def get_profile(self, user_id: str) -> UserProfile:
        return get_user_profile(user_id, self.db_path)

    def set_premium(self, user_id: str, premium: bool) -> UserProfile:
        return set_user_premium(user_id, premium, self.db_path)

    def get_usage_stats(self, days: int = 30) -> Dict[str, Dict[str, int]]:
        """Per-feature request and token totals over the last ``days`` days.

        Args:
            days: Number of days to include in the statistics

        Returns:
            Mapping of feature to {"requests", "total_tokens"}
        """
        conn = get_connection(self.db_path)
        try:
            cutoff = (datetime.now(timezone.utc) - timedelta(days=days)).isoformat()
            cursor = conn.execute("""
                SELECT feature, COUNT(*), COALESCE(SUM(total_tokens), 0)
                FROM llm_usage_event
                WHERE timestamp >= ?
                GROUP BY feature
                ORDER BY feature
            """, (cutoff,))
            return {
                row[0]: {"requests": row[1], "total_tokens": row[2]}
                for row in cursor.fetchall()
            }
        finally:
            conn.close()


# Global repository instance
_default_repository: Optional[UsageRepository] = None


def get_repository(db_path: str = DEFAULT_DB_PATH) -> UsageRepository:
    """Get a repository instance.

    Returns the shared instance while the database path is unchanged.

    Args:
        db_path: Path to SQLite database file

    Returns:
        An instance of UsageRepository
    """
    global _default_repository
    if _default_repository is None or _default_repository.db_path != db_path:
        _default_repository = UsageRepository(db_path)
    return _default_repository


def initialize_schema(db_path: str = DEFAULT_DB_PATH) -> None:
    """Create the ledger, usage log and profile tables if they don't exist.

    The llm_usage_event table is append-only; no UPDATE or DELETE is ever
    run against it.

    Args:
        db_path: Path to SQLite database file
    """
    conn = get_connection(db_path)
    try:
        conn.execute("BEGIN")
        conn.execute("""
            CREATE TABLE IF NOT EXISTS usage_daily (
                user_id TEXT NOT NULL,
                day TEXT NOT NULL,
                count INTEGER NOT NULL DEFAULT 0 CHECK (count >= 0),
                updated_at TEXT NOT NULL,
                PRIMARY KEY (user_id, day)
            )
        """)
        conn.execute("""
            CREATE TABLE IF NOT EXISTS llm_usage_event (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                timestamp TEXT NOT NULL,
                user_id TEXT NOT NULL,
                feature TEXT NOT NULL,
                model TEXT NOT NULL,
                prompt_chars INTEGER NOT NULL,
                context_chars INTEGER NOT NULL,
                prompt_tokens INTEGER NOT NULL,
                completion_tokens INTEGER NOT NULL,
                total_tokens INTEGER NOT NULL,
                request_id TEXT
            )
        """)
        conn.execute("""
            CREATE TABLE IF NOT EXISTS user_profile (
                user_id TEXT PRIMARY KEY,
                premium INTEGER NOT NULL DEFAULT 0,
                premium_since TEXT
            )
        """)
        conn.execute("COMMIT")
    except Exception:
        conn.execute("ROLLBACK")
        raise
    finally:
        conn.close()


def try_admit(user_id: str, day: str, limit: int, db_path: str = DEFAULT_DB_PATH) -> AdmitResult:
    """Atomically admit one request against the daily limit.

    Read, compare and conditional increment run inside a single
    ``BEGIN IMMEDIATE`` transaction, so concurrent callers for the same
    (user, day) are serialized and the count never passes ``limit``.
    A denied call leaves the counter untouched.

    Args:
        user_id: Stable user identifier
        day: Calendar day as YYYY-MM-DD
        limit: Daily limit for the user's tier
        db_path: Path to SQLite database file

    Returns:
        AdmitResult with the count after the decision

    Raises:
        RetryableStorageError: If the transaction cannot commit
    """
    try:
        conn = get_connection(db_path)
    except sqlite3.Error as e:
        raise RetryableStorageError(f"cannot open usage store: {e}") from e

    try:
        conn.execute("BEGIN IMMEDIATE")
        row = conn.execute(
            "SELECT count FROM usage_daily WHERE user_id = ? AND day = ?",
            (user_id, day)
        ).fetchone()
        used = row[0] if row else 0

        if used >= limit:
            conn.execute("ROLLBACK")
            return AdmitResult(allowed=False, used=used, limit=limit)

        conn.execute("""
            INSERT INTO usage_daily (user_id, day, count, updated_at)
            VALUES (?, ?, 1, ?)
            ON CONFLICT (user_id, day)
            DO UPDATE SET count = count + 1, updated_at = excluded.updated_at
        """, (user_id, day, datetime.now(timezone.utc).isoformat()))
        conn.execute("COMMIT")
        return AdmitResult(allowed=True, used=used + 1, limit=limit)
    except sqlite3.Error as e:
        if conn.in_transaction:
            try:
                conn.execute("ROLLBACK")
            except sqlite3.Error:
                pass
        raise RetryableStorageError(f"quota transaction failed for {user_id}/{day}: {e}") from e
    finally:
        conn.close()


def get_usage_record(user_id: str, day: str, db_path: str = DEFAULT_DB_PATH) -> Optional[UsageRecord]:
    """Fetch the ledger row for (user, day), or None if nothing was admitted."""
    conn = get_connection(db_path)
    try:
        row = conn.execute(
            "SELECT user_id, day, count, updated_at FROM usage_daily WHERE user_id = ? AND day = ?",
            (user_id, day)
        ).fetchone()
        if row is None:
            return None
        return UsageRecord(
            user_id=row[0],
            day=row[1],
            count=row[2],
            updated_at=datetime.fromisoformat(row[3])
        )
    finally:
        conn.close()


def fetch_daily_usage(day: str, db_path: str = DEFAULT_DB_PATH) -> List[UsageRecord]:
    """All ledger rows for one day, busiest users first."""
    conn = get_connection(db_path)
    try:
        cursor = conn.execute(
            "SELECT user_id, day, count, updated_at FROM usage_daily WHERE day = ? ORDER BY count DESC, user_id",
            (day,)
        )
        return [
            UsageRecord(user_id=row[0], day=row[1], count=row[2], updated_at=datetime.fromisoformat(row[3]))
            for row in cursor.fetchall()
        ]
    finally:
        conn.close()


def insert_usage_event(event: LLMUsageEvent, db_path: str = DEFAULT_DB_PATH) -> None:
    """Insert a single usage event into the append-only log.

    Args:
        event: The usage event to record
        db_path: Path to SQLite database file
    """
    conn = get_connection(db_path)
    try:
        conn.execute("""
            INSERT INTO llm_usage_event
            (timestamp, user_id, feature, model, prompt_chars, context_chars,
             prompt_tokens, completion_tokens, total_tokens, request_id)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """, (
            event.timestamp.isoformat(),
            event.user_id,
            event.feature,
            event.model,
            event.prompt_chars,
            event.context_chars,
            event.prompt_tokens,
            event.completion_tokens,
            event.total_tokens,
            event.request_id
        ))
    finally:
        conn.close()


def fetch_recent_usage_events(
    user_id: Optional[str] = None,
    feature: Optional[str] = None,
    limit: int = 100,
    db_path: str = DEFAULT_DB_PATH
) -> List[LLMUsageEvent]:
    """Fetch recent usage events, optionally filtered by user and feature.

    Returns events in reverse chronological order (newest first).

    Args:
        user_id: Optional filter for a specific user
        feature: Optional filter for specific feature
        limit: Maximum number of events to return
        db_path: Path to SQLite database file

    Returns:
        List of usage events ordered by timestamp (newest first)
    """
    conn = get_connection(db_path)
    try:
        query = """
            SELECT timestamp, user_id, feature, model, prompt_chars, context_chars,
                   prompt_tokens, completion_tokens, total_tokens, request_id
            FROM llm_usage_event
        """
        params = []
        conditions = []

        if user_id:
            conditions.append("user_id = ?")
            params.append(user_id)
        if feature:
            conditions.append("feature = ?")
            params.append(feature)

        if conditions:
            query += " WHERE " + " AND ".join(conditions)

        query += " ORDER BY timestamp DESC, id DESC LIMIT ?"
        params.append(limit)

        cursor = conn.execute(query, params)
        events = []
        for row in cursor.fetchall():
            events.append(LLMUsageEvent(
                timestamp=datetime.fromisoformat(row[0]),
                user_id=row[1],
                feature=row[2],
                model=row[3],
                prompt_chars=row[4],
                context_chars=row[5],
                prompt_tokens=row[6],
                completion_tokens=row[7],
                total_tokens=row[8],
                request_id=row[9]
            ))
        return events
    finally:
        conn.close()


def get_user_profile(user_id: str, db_path: str = DEFAULT_DB_PATH) -> UserProfile:
    """Read a user's profile; unknown users are free tier.

    Raises:
        StorageError: If the profile table cannot be read
    """
    try:
        conn = get_connection(db_path)
        try:
            row = conn.execute(
                "SELECT premium, premium_since FROM user_profile WHERE user_id = ?",
                (user_id,)
            ).fetchone()
        finally:
            conn.close()
    except sqlite3.Error as e:
        raise StorageError(f"cannot read profile for {user_id}: {e}") from e

    if row is None:
        return UserProfile(user_id=user_id, premium=False)
    return UserProfile(
        user_id=user_id,
        premium=bool(row[0]),
        premium_since=datetime.fromisoformat(row[1]) if row[1] else None
    )


def set_user_premium(user_id: str, premium: bool, db_path: str = DEFAULT_DB_PATH) -> UserProfile:
    """Set the premium flag, recording when premium started.

    Args:
        user_id: Stable user identifier
        premium: New premium flag
        db_path: Path to SQLite database file

    Returns:
        The updated profile
    """
    since = datetime.now(timezone.utc).isoformat() if premium else None
    conn = get_connection(db_path)
    try:
        conn.execute("""
            INSERT INTO user_profile (user_id, premium, premium_since)
            VALUES (?, ?, ?)
            ON CONFLICT (user_id)
            DO UPDATE SET premium = excluded.premium,
                          premium_since = CASE
                              WHEN excluded.premium = 1 AND user_profile.premium = 1
                              THEN user_profile.premium_since
                              ELSE excluded.premium_since
                          END
        """, (user_id, int(premium), since))
    finally:
        conn.close()
    return get_user_profile(user_id, db_path)
