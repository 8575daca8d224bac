"""SQLite storage adapter.

Implements the core StoragePort using a simple SQLite database.
"""

from __future__ import annotations

import json
import sqlite3
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, List, Optional

from core.config import StorageConfig
from core.errors import RuleNotFoundError, TweetNotFoundError
from core.models import (
    STATUS_PENDING,
    NewRule,
    NewTweet,
    RoutingRule,
    RuleUpdate,
    Tweet,
    TweetResponse,
    TweetUpdate,
)

# Model field -> column, for the partial updates we accept.
_RULE_COLUMNS = {
    "name": "name",
    "keywords": "keywords",
    "priority": "priority",
    "response_template": "response_template",
    "is_active": "is_active",
}
_TWEET_COLUMNS = {
    "routing_status": "routing_status",
    "matched_rule_id": "matched_rule_id",
}


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _parse_ts(value: str) -> datetime:
    return datetime.fromisoformat(value)


def _to_utc(value: datetime) -> datetime:
    # Stored timestamps are compared as text, so they must share one offset.
    # Naive datetimes are taken to be UTC already.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _rule_from_row(row: sqlite3.Row) -> RoutingRule:
    return RoutingRule(
        id=int(row["id"]),
        name=row["name"],
        keywords=list(json.loads(row["keywords"])),
        priority=int(row["priority"]),
        response_template=row["response_template"],
        is_active=bool(row["is_active"]),
        created_at=_parse_ts(row["created_at"]),
        updated_at=_parse_ts(row["updated_at"]),
    )


def _tweet_from_row(row: sqlite3.Row) -> Tweet:
    return Tweet(
        id=int(row["id"]),
        tweet_id=row["tweet_id"],
        text=row["text"],
        author=row["author"],
        created_at=_parse_ts(row["created_at"]),
        routing_status=row["routing_status"],
        matched_rule_id=row["matched_rule_id"],
    )


def _response_from_row(row: sqlite3.Row) -> TweetResponse:
    return TweetResponse(
        id=int(row["id"]),
        original_tweet_id=row["original_tweet_id"],
        routing_rule_id=int(row["routing_rule_id"]),
        response_text=row["response_text"],
        status=row["status"],
        created_at=_parse_ts(row["created_at"]),
    )


def _encode_rule_value(field: str, value: Any) -> Any:
    if field == "keywords":
        return json.dumps(list(value), ensure_ascii=False)
    if field == "is_active":
        return int(bool(value))
    return value


class SQLiteStorage:
    """Thin SQLite wrapper that satisfies the StoragePort contract.

    Each call opens its own connection unless the calling thread is inside
    ``transaction()``, in which case the transaction's connection is reused so
    that the whole block commits or rolls back together.
    """

    def __init__(self, db_path: str, timeout_seconds: float = 5.0) -> None:
        self._db_path = db_path
        self._timeout = timeout_seconds
        self._local = threading.local()

    @classmethod
    def from_config(cls, config: StorageConfig) -> "SQLiteStorage":
        return cls(config.db_path, timeout_seconds=config.timeout_seconds)

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path, timeout=self._timeout)
        conn.row_factory = sqlite3.Row
        return conn

    @contextmanager
    def _session(self) -> Iterator[sqlite3.Connection]:
        bound = getattr(self._local, "conn", None)
        if bound is not None:
            yield bound
            return
        conn = self._connect()
        try:
            with conn:
                yield conn
        finally:
            conn.close()

    @contextmanager
    def transaction(self) -> Iterator[None]:
        """Run the enclosed store calls as one write-serialized transaction.

        BEGIN IMMEDIATE takes the write lock up front, so a concurrent router
        waits (up to the busy timeout) instead of reading a tweet's status
        that is about to change. Nested calls join the outer transaction.
        """

        if getattr(self._local, "conn", None) is not None:
            yield
            return

        conn = self._connect()
        try:
            conn.execute("BEGIN IMMEDIATE")
            self._local.conn = conn
            try:
                yield
            except BaseException:
                conn.rollback()
                raise
            else:
                conn.commit()
            finally:
                self._local.conn = None
        finally:
            conn.close()

    def init_db(self) -> None:
        """Create tables and indexes if they do not exist.

        Tables:
        - routing_rules: keyword rules with priority and response template
        - tweets: ingested tweets plus their routing outcome
        - tweet_responses: queue of responses waiting for delivery
        """

        with self._session() as conn:
            # keywords holds a JSON array so the admin-entered order survives.
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS routing_rules (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT NOT NULL,
                    keywords TEXT NOT NULL,
                    priority INTEGER NOT NULL,
                    response_template TEXT NOT NULL,
                    is_active INTEGER NOT NULL,
                    created_at TIMESTAMP NOT NULL,
                    updated_at TIMESTAMP NOT NULL
                )
                """
            )
            conn.execute("CREATE INDEX IF NOT EXISTS idx_rules_active ON routing_rules (is_active)")
            # tweet_id is the id on the network; id is ours and is what the
            # router receives. routing_status NULL means "not routed yet".
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS tweets (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    tweet_id TEXT NOT NULL,
                    text TEXT NOT NULL,
                    author TEXT,
                    created_at TIMESTAMP NOT NULL,
                    routing_status TEXT,
                    matched_rule_id INTEGER
                )
                """
            )
            conn.execute("CREATE INDEX IF NOT EXISTS idx_tweets_status ON tweets (routing_status)")
            # No foreign keys: deleting a rule leaves historical responses and
            # tweets pointing at it.
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS tweet_responses (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    original_tweet_id TEXT NOT NULL,
                    routing_rule_id INTEGER NOT NULL,
                    response_text TEXT NOT NULL,
                    status TEXT NOT NULL,
                    created_at TIMESTAMP NOT NULL
                )
                """
            )
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_responses_original ON tweet_responses (original_tweet_id)"
            )

    def list_rules(self) -> List[RoutingRule]:
        with self._session() as conn:
            rows = conn.execute("SELECT * FROM routing_rules ORDER BY id").fetchall()
        return [_rule_from_row(row) for row in rows]

    def list_active_rules(self) -> List[RoutingRule]:
        with self._session() as conn:
            rows = conn.execute("SELECT * FROM routing_rules WHERE is_active = 1 ORDER BY id").fetchall()
        return [_rule_from_row(row) for row in rows]

    def get_rule(self, rule_id: int) -> Optional[RoutingRule]:
        with self._session() as conn:
            row = conn.execute("SELECT * FROM routing_rules WHERE id = ?", (rule_id,)).fetchone()
        return _rule_from_row(row) if row else None

    def count_rules(self) -> int:
        with self._session() as conn:
            row = conn.execute("SELECT COUNT(*) AS total FROM routing_rules").fetchone()
        return int(row["total"])

    def insert_rule(self, rule: NewRule) -> int:
        """Insert a rule and return its id; both timestamps are set to now."""

        now = _now()
        with self._session() as conn:
            cur = conn.execute(
                """
                INSERT INTO routing_rules (
                    name, keywords, priority, response_template, is_active, created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    rule.name,
                    _encode_rule_value("keywords", rule.keywords),
                    rule.priority,
                    rule.response_template,
                    _encode_rule_value("is_active", rule.is_active),
                    now,
                    now,
                ),
            )
            return int(cur.lastrowid)

    def insert_rules(self, rules: List[NewRule]) -> List[int]:
        with self.transaction():
            return [self.insert_rule(rule) for rule in rules]

    def patch_rule(self, rule_id: int, update: RuleUpdate) -> None:
        """Overwrite only the supplied fields; updated_at always moves."""

        values: Dict[str, Any] = {
            _RULE_COLUMNS[field]: _encode_rule_value(field, value) for field, value in update.changes().items()
        }
        values["updated_at"] = _now()
        assignments = ", ".join(f"{column} = ?" for column in values)
        with self._session() as conn:
            cur = conn.execute(
                f"UPDATE routing_rules SET {assignments} WHERE id = ?",
                (*values.values(), rule_id),
            )
            if cur.rowcount == 0:
                raise RuleNotFoundError(rule_id)

    def delete_rule(self, rule_id: int) -> None:
        """Hard delete; references from tweets and responses are left as-is."""

        with self._session() as conn:
            cur = conn.execute("DELETE FROM routing_rules WHERE id = ?", (rule_id,))
            if cur.rowcount == 0:
                raise RuleNotFoundError(rule_id)

    def insert_tweet(self, tweet: NewTweet) -> int:
        created_at = _to_utc(tweet.created_at).isoformat() if tweet.created_at else _now()
        with self._session() as conn:
            cur = conn.execute(
                "INSERT INTO tweets (tweet_id, text, author, created_at) VALUES (?, ?, ?, ?)",
                (tweet.tweet_id, tweet.text, tweet.author, created_at),
            )
            return int(cur.lastrowid)

    def get_tweet(self, tweet_id: int) -> Optional[Tweet]:
        with self._session() as conn:
            row = conn.execute("SELECT * FROM tweets WHERE id = ?", (tweet_id,)).fetchone()
        return _tweet_from_row(row) if row else None

    def patch_tweet(self, tweet_id: int, update: TweetUpdate) -> None:
        changes = update.changes()
        if not changes:
            return
        assignments = ", ".join(f"{_TWEET_COLUMNS[field]} = ?" for field in changes)
        with self._session() as conn:
            cur = conn.execute(
                f"UPDATE tweets SET {assignments} WHERE id = ?",
                (*changes.values(), tweet_id),
            )
            if cur.rowcount == 0:
                raise TweetNotFoundError(tweet_id)

    def list_tweets(self, status: Optional[str] = None) -> List[Tweet]:
        """Return tweets newest first, optionally only one routing status."""

        with self._session() as conn:
            if status == STATUS_PENDING:
                # Freshly ingested tweets carry no status yet and count as pending.
                rows = conn.execute(
                    """
                    SELECT * FROM tweets
                    WHERE routing_status IS NULL OR routing_status IN ('', ?)
                    ORDER BY created_at DESC, id DESC
                    """,
                    (STATUS_PENDING,),
                ).fetchall()
            elif status:
                rows = conn.execute(
                    "SELECT * FROM tweets WHERE routing_status = ? ORDER BY created_at DESC, id DESC",
                    (status,),
                ).fetchall()
            else:
                rows = conn.execute("SELECT * FROM tweets ORDER BY created_at DESC, id DESC").fetchall()
        return [_tweet_from_row(row) for row in rows]

    def insert_response(
        self,
        original_tweet_id: str,
        routing_rule_id: int,
        response_text: str,
        status: str,
    ) -> int:
        with self._session() as conn:
            cur = conn.execute(
                """
                INSERT INTO tweet_responses (
                    original_tweet_id, routing_rule_id, response_text, status, created_at
                ) VALUES (?, ?, ?, ?, ?)
                """,
                (original_tweet_id, routing_rule_id, response_text, status, _now()),
            )
            return int(cur.lastrowid)

    def find_response_by_original_tweet(self, original_tweet_id: str) -> Optional[TweetResponse]:
        with self._session() as conn:
            row = conn.execute(
                "SELECT * FROM tweet_responses WHERE original_tweet_id = ? ORDER BY id LIMIT 1",
                (original_tweet_id,),
            ).fetchone()
        return _response_from_row(row) if row else None

    def list_responses(self, status: Optional[str] = None) -> List[TweetResponse]:
        """Return responses oldest first, the order a sender should drain them."""

        with self._session() as conn:
            if status:
                rows = conn.execute(
                    "SELECT * FROM tweet_responses WHERE status = ? ORDER BY id",
                    (status,),
                ).fetchall()
            else:
                rows = conn.execute("SELECT * FROM tweet_responses ORDER BY id").fetchall()
        return [_response_from_row(row) for row in rows]
