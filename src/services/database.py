import aiosqlite
import json
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncIterator, List, Optional, Tuple
import logging

from core.entities import Digest, Post, SummaryRecord, SummaryStatus
from core.errors import PersistenceError

logger = logging.getLogger(__name__)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class Database:
    """
    aiosqlite-backed store for saved posts, summary records and digest snapshots.

    At most one non-failed summary exists per (user_id, post_id); this is
    enforced by a partial unique index and the upsert in create_or_reuse_summary.
    """

    def __init__(self, path: str):
        self.path = path

    @asynccontextmanager
    async def connect(self) -> AsyncIterator[aiosqlite.Connection]:
        try:
            conn = await aiosqlite.connect(self.path)
        except aiosqlite.Error as e:
            raise PersistenceError(f"Cannot open database {self.path}: {e}") from e
        conn.row_factory = aiosqlite.Row
        try:
            await conn.execute("PRAGMA journal_mode=WAL;")
            await conn.execute("PRAGMA foreign_keys=ON;")
            yield conn
        except aiosqlite.Error as e:
            raise PersistenceError(str(e)) from e
        finally:
            await conn.close()

    async def init_tables(self) -> None:
        """Initialize database tables."""
        async with self.connect() as conn:
            await conn.execute("""
                CREATE TABLE IF NOT EXISTS fetched_posts (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id TEXT NOT NULL,
                    source TEXT NOT NULL,
                    external_id TEXT NOT NULL,
                    title TEXT,
                    content TEXT,
                    topic_hint TEXT,
                    url TEXT NOT NULL,
                    author TEXT,
                    fetched_at TIMESTAMP NOT NULL,
                    updated_at TIMESTAMP NOT NULL,
                    UNIQUE(user_id, source, external_id)
                )
            """)
            await conn.execute("""
                CREATE TABLE IF NOT EXISTS summaries (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id TEXT NOT NULL,
                    post_id TEXT NOT NULL,
                    status TEXT NOT NULL CHECK (status IN ('processing', 'completed', 'failed')),
                    category TEXT NOT NULL,
                    content TEXT NOT NULL DEFAULT '',
                    error_message TEXT,
                    created_at TIMESTAMP NOT NULL,
                    updated_at TIMESTAMP NOT NULL
                )
            """)
            await conn.execute("""
                CREATE UNIQUE INDEX IF NOT EXISTS idx_summaries_active
                ON summaries(user_id, post_id) WHERE status != 'failed'
            """)
            await conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_summaries_post ON summaries(post_id)
            """)
            await conn.execute("""
                CREATE TABLE IF NOT EXISTS digests (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id TEXT NOT NULL,
                    content TEXT NOT NULL,
                    generated_at TIMESTAMP NOT NULL,
                    created_at TIMESTAMP NOT NULL
                )
            """)
            await conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_digests_user ON digests(user_id, generated_at)
            """)
            await conn.commit()
            logger.info("Database tables initialized")

    # ==================== Summary Records ====================

    async def _fetch_summary(self, conn: aiosqlite.Connection, record_id: int) -> SummaryRecord:
        cursor = await conn.execute("SELECT * FROM summaries WHERE id = ?", (record_id,))
        row = await cursor.fetchone()
        if row is None:
            raise PersistenceError(f"Summary record {record_id} not found")
        return SummaryRecord.from_row(dict(row))

    async def create_or_reuse_summary(
        self,
        user_id: str,
        post_id: str,
        category: str,
    ) -> SummaryRecord:
        """
        Put the post's active summary into ``processing``, creating it if needed.
        An existing non-failed record keeps its id and category.
        """
        now = _now()
        async with self.connect() as conn:
            await conn.execute(
                """
                INSERT INTO summaries
                (user_id, post_id, status, category, content, error_message, created_at, updated_at)
                VALUES (?, ?, 'processing', ?, '', NULL, ?, ?)
                ON CONFLICT(user_id, post_id) WHERE status != 'failed'
                DO UPDATE SET
                    status = 'processing',
                    content = '',
                    error_message = NULL,
                    updated_at = excluded.updated_at
                """,
                (user_id, post_id, category, now, now)
            )
            cursor = await conn.execute(
                """SELECT * FROM summaries
                   WHERE user_id = ? AND post_id = ? AND status != 'failed'""",
                (user_id, post_id)
            )
            row = await cursor.fetchone()
            await conn.commit()

        if row is None:
            raise PersistenceError(f"Failed to initialize summary for post {post_id}")
        return SummaryRecord.from_row(dict(row))

    async def mark_processing(self, record_id: int, user_id: str, post_id: str) -> SummaryRecord:
        """Re-enter ``processing`` for a known record of this post on an explicit new request."""
        async with self.connect() as conn:
            cursor = await conn.execute(
                """UPDATE summaries
                   SET status = 'processing', content = '', error_message = NULL, updated_at = ?
                   WHERE id = ? AND user_id = ? AND post_id = ?""",
                (_now(), record_id, user_id, post_id)
            )
            if cursor.rowcount == 0:
                raise PersistenceError(
                    f"Summary record {record_id} not found for post {post_id}"
                )
            record = await self._fetch_summary(conn, record_id)
            await conn.commit()
            return record

    async def _finish(
        self,
        record_id: int,
        status: SummaryStatus,
        content: str,
        error_message: Optional[str],
        allowed: Tuple[str, ...],
    ) -> SummaryRecord:
        placeholders = ", ".join("?" for _ in allowed)
        async with self.connect() as conn:
            cursor = await conn.execute(
                f"""UPDATE summaries
                   SET status = ?, content = ?, error_message = ?, updated_at = ?
                   WHERE id = ? AND status IN ({placeholders})""",
                (status.value, content, error_message, _now(), record_id, *allowed)
            )
            if cursor.rowcount == 0:
                raise PersistenceError(
                    f"Summary record {record_id} is missing or cannot move to {status.value}"
                )
            record = await self._fetch_summary(conn, record_id)
            await conn.commit()
            return record

    async def mark_completed(self, record_id: int, content: str) -> SummaryRecord:
        # concurrent generators for one post share a record; the last completion wins
        return await self._finish(
            record_id, SummaryStatus.COMPLETED, content, None,
            allowed=("processing", "completed"),
        )

    async def mark_failed(self, record_id: int, error_message: str) -> SummaryRecord:
        return await self._finish(
            record_id, SummaryStatus.FAILED, "", error_message,
            allowed=("processing",),
        )

    async def get_summary(self, record_id: int) -> Optional[SummaryRecord]:
        async with self.connect() as conn:
            cursor = await conn.execute("SELECT * FROM summaries WHERE id = ?", (record_id,))
            row = await cursor.fetchone()
            return SummaryRecord.from_row(dict(row)) if row else None

    async def get_completed_summary(self, user_id: str, post_id: str) -> Optional[SummaryRecord]:
        """Latest completed summary for a post, if any."""
        async with self.connect() as conn:
            cursor = await conn.execute(
                """SELECT * FROM summaries
                   WHERE user_id = ? AND post_id = ? AND status = 'completed'
                   ORDER BY created_at DESC
                   LIMIT 1""",
                (user_id, post_id)
            )
            row = await cursor.fetchone()
            return SummaryRecord.from_row(dict(row)) if row else None

    async def get_summaries_for_post(self, user_id: str, post_id: str) -> List[SummaryRecord]:
        async with self.connect() as conn:
            cursor = await conn.execute(
                "SELECT * FROM summaries WHERE user_id = ? AND post_id = ? ORDER BY id",
                (user_id, post_id)
            )
            rows = await cursor.fetchall()
            return [SummaryRecord.from_row(dict(row)) for row in rows]

    # ==================== Saved Posts ====================

    async def store_posts(self, user_id: str, posts: List[Post]) -> int:
        """
        Upsert saved posts keyed on (user_id, source, external id).
        Posts without a URL are skipped. Returns the number stored.
        """
        if not user_id:
            raise ValueError("User ID is required")

        valid = []
        for post in posts:
            if not post.url:
                logger.warning(f"Skipping post {post.id} due to missing URL")
                continue
            valid.append(post)

        if not valid:
            return 0

        now = _now()
        async with self.connect() as conn:
            await conn.executemany(
                """
                INSERT INTO fetched_posts
                (user_id, source, external_id, title, content, topic_hint, url, author, fetched_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(user_id, source, external_id) DO UPDATE SET
                    title = excluded.title,
                    content = excluded.content,
                    topic_hint = excluded.topic_hint,
                    url = excluded.url,
                    author = excluded.author,
                    updated_at = excluded.updated_at
                """,
                [
                    (user_id, p.source, p.id, p.title, p.content, p.topic_hint, p.url, p.author, now, now)
                    for p in valid
                ]
            )
            await conn.commit()

        logger.info(f"Stored {len(valid)} posts for user {user_id}")
        return len(valid)

    @staticmethod
    def _post_from_row(row: aiosqlite.Row) -> Post:
        return Post(
            id=str(row["id"]),
            title=row["title"],
            content=row["content"],
            topic_hint=row["topic_hint"],
            source=row["source"],
            url=row["url"],
            author=row["author"],
        )

    async def get_user_posts(self, user_id: str, source: Optional[str] = None) -> List[Post]:
        async with self.connect() as conn:
            if source:
                cursor = await conn.execute(
                    "SELECT * FROM fetched_posts WHERE user_id = ? AND source = ? ORDER BY id",
                    (user_id, source)
                )
            else:
                cursor = await conn.execute(
                    "SELECT * FROM fetched_posts WHERE user_id = ? ORDER BY id",
                    (user_id,)
                )
            rows = await cursor.fetchall()
            return [self._post_from_row(row) for row in rows]

    async def get_post(self, user_id: str, post_id: str) -> Optional[Post]:
        async with self.connect() as conn:
            cursor = await conn.execute(
                "SELECT * FROM fetched_posts WHERE user_id = ? AND id = ?",
                (user_id, post_id)
            )
            row = await cursor.fetchone()
            return self._post_from_row(row) if row else None

    # ==================== Digests ====================

    async def store_digest(self, user_id: str, digest: Digest) -> int:
        """Persist a digest as an opaque JSON snapshot."""
        async with self.connect() as conn:
            cursor = await conn.execute(
                "INSERT INTO digests (user_id, content, generated_at, created_at) VALUES (?, ?, ?, ?)",
                (user_id, json.dumps(digest.to_dict()), digest.generated_at.isoformat(), _now())
            )
            await conn.commit()
            return cursor.lastrowid

    async def get_latest_digest(self, user_id: str) -> Optional[Digest]:
        async with self.connect() as conn:
            cursor = await conn.execute(
                """SELECT content FROM digests
                   WHERE user_id = ?
                   ORDER BY generated_at DESC, id DESC
                   LIMIT 1""",
                (user_id,)
            )
            row = await cursor.fetchone()
            return Digest.from_dict(json.loads(row["content"])) if row else None
