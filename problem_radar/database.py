"""SQLite database layer for Problem Radar.

This module handles all database operations including:
- Schema creation
- Posts and their extracted problem phrases
- Idea snapshots per window, replaced wholesale on every analysis run
- A small key/value meta table for cache timestamps and watermarks
"""

import json
import sqlite3
import time
from contextlib import contextmanager
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Generator

from problem_radar.models import (
    ClusterPost,
    IdeaCluster,
    IdeaDetails,
    ProblemPhrase,
    RedditPost,
)

SORT_ORDERS = {
    "top": "score DESC",
    "trending": "trend_slope DESC, score DESC",
    "fresh": "updated_at DESC, score DESC",
}


@dataclass
class StoredIdea:
    """An idea as read back from the store."""
    idea: IdeaCluster
    window_days: int
    updated_at: float
    details: IdeaDetails | None = None


# SQL Schema
SCHEMA = """
-- Posts fetched from Reddit
CREATE TABLE IF NOT EXISTS posts (
    post_id TEXT PRIMARY KEY,
    subreddit TEXT NOT NULL,
    title TEXT NOT NULL,
    body TEXT,
    url TEXT NOT NULL,
    created_utc REAL NOT NULL,
    upvotes INTEGER DEFAULT 0,
    num_comments INTEGER DEFAULT 0,
    author TEXT,
    fetched_at REAL NOT NULL
);

-- Problem phrases extracted from posts
CREATE TABLE IF NOT EXISTS problems (
    post_id TEXT NOT NULL,
    phrase TEXT NOT NULL,
    canonical TEXT NOT NULL,
    snippet TEXT,
    cue_id TEXT NOT NULL,
    PRIMARY KEY (post_id, canonical),
    FOREIGN KEY (post_id) REFERENCES posts(post_id)
);

-- Ideas per analysis window
CREATE TABLE IF NOT EXISTS ideas (
    idea_id TEXT PRIMARY KEY,
    window_days INTEGER NOT NULL,
    canonical TEXT NOT NULL,
    title TEXT NOT NULL,
    score REAL DEFAULT 0,
    posts_count INTEGER DEFAULT 0,
    subs_count INTEGER DEFAULT 0,
    upvotes_sum INTEGER DEFAULT 0,
    comments_sum INTEGER DEFAULT 0,
    trend_json TEXT,
    trend_slope REAL DEFAULT 0,
    top_keywords_json TEXT,
    phrases_json TEXT,
    sample_snippet TEXT,
    complexity_tier TEXT,
    effort_days INTEGER,
    worth_estimate TEXT,
    details_json TEXT,
    updated_at REAL NOT NULL
);

-- Representative posts of each idea (snapshot at analysis time)
CREATE TABLE IF NOT EXISTS idea_posts (
    idea_id TEXT NOT NULL,
    post_id TEXT NOT NULL,
    position INTEGER NOT NULL,
    subreddit TEXT NOT NULL,
    title TEXT NOT NULL,
    url TEXT NOT NULL,
    created_utc REAL NOT NULL,
    upvotes INTEGER DEFAULT 0,
    num_comments INTEGER DEFAULT 0,
    author TEXT,
    matched_snippet TEXT,
    problem_phrase TEXT,
    PRIMARY KEY (idea_id, post_id),
    FOREIGN KEY (idea_id) REFERENCES ideas(idea_id)
);

-- Key/value metadata
CREATE TABLE IF NOT EXISTS meta (
    key TEXT PRIMARY KEY,
    value TEXT
);

-- Indexes for performance
CREATE INDEX IF NOT EXISTS idx_posts_created_utc ON posts(created_utc);
CREATE INDEX IF NOT EXISTS idx_posts_subreddit ON posts(subreddit);
CREATE INDEX IF NOT EXISTS idx_problems_canonical ON problems(canonical);
CREATE INDEX IF NOT EXISTS idx_ideas_window ON ideas(window_days);
"""

TABLES = ["posts", "problems", "ideas", "idea_posts", "meta"]


def _row_to_post(row: sqlite3.Row) -> RedditPost:
    return RedditPost(
        post_id=row["post_id"],
        subreddit=row["subreddit"],
        title=row["title"],
        body=row["body"] or "",
        url=row["url"],
        created_utc=row["created_utc"],
        upvotes=row["upvotes"],
        num_comments=row["num_comments"],
        author=row["author"],
    )


class Database:
    """SQLite database manager for Problem Radar."""

    def __init__(self, db_path: str | Path = "./problem_radar.db"):
        """Initialize database connection.

        Args:
            db_path: Path to SQLite database file.
        """
        self.db_path = Path(db_path)
        self._ensure_directory()

    def _ensure_directory(self) -> None:
        """Ensure the database directory exists."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    @contextmanager
    def connection(self) -> Generator[sqlite3.Connection, None, None]:
        """Context manager for database connections.

        Everything executed inside one block commits or rolls back together.

        Yields:
            SQLite connection with row factory set.
        """
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def initialize(self) -> None:
        """Create the schema if it does not exist."""
        with self.connection() as conn:
            conn.executescript(SCHEMA)

    # -------------------------------------------------------------------------
    # Post operations
    # -------------------------------------------------------------------------

    def upsert_posts(self, posts: list[RedditPost], fetched_at: float | None = None) -> None:
        """Insert or update posts.

        Args:
            posts: Posts to store.
            fetched_at: Fetch timestamp. Defaults to now.
        """
        fetched_at = fetched_at or time.time()
        with self.connection() as conn:
            conn.executemany(
                """
                INSERT OR REPLACE INTO posts
                (post_id, subreddit, title, body, url, created_utc, upvotes,
                 num_comments, author, fetched_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                [
                    (
                        p.post_id, p.subreddit, p.title, p.body, p.url,
                        p.created_utc, p.upvotes, p.num_comments, p.author,
                        fetched_at,
                    )
                    for p in posts
                ],
            )

    def get_post(self, post_id: str) -> RedditPost | None:
        """Get a post by ID."""
        with self.connection() as conn:
            row = conn.execute(
                "SELECT * FROM posts WHERE post_id = ?", (post_id,)
            ).fetchone()
            if row:
                return _row_to_post(row)
            return None

    def load_posts_since(self, since_utc: float, limit: int | None = None) -> list[RedditPost]:
        """Get all posts created at or after a timestamp.

        Args:
            since_utc: Unix timestamp.
            limit: Maximum number of posts.

        Returns:
            Posts, newest first.
        """
        query = "SELECT * FROM posts WHERE created_utc >= ? ORDER BY created_utc DESC"
        params: list = [since_utc]

        if limit is not None:
            query += " LIMIT ?"
            params.append(limit)

        with self.connection() as conn:
            rows = conn.execute(query, params).fetchall()
            return [_row_to_post(row) for row in rows]

    # -------------------------------------------------------------------------
    # Problem operations
    # -------------------------------------------------------------------------

    def replace_problems(self, post_ids: list[str], phrases: list[ProblemPhrase]) -> None:
        """Replace the stored phrases of the given posts.

        Args:
            post_ids: Posts whose previous phrases are discarded.
            phrases: New phrases for those posts.
        """
        with self.connection() as conn:
            conn.executemany(
                "DELETE FROM problems WHERE post_id = ?",
                [(post_id,) for post_id in post_ids],
            )
            conn.executemany(
                """
                INSERT OR REPLACE INTO problems
                (post_id, phrase, canonical, snippet, cue_id)
                VALUES (?, ?, ?, ?, ?)
                """,
                [
                    (p.post_id, p.phrase, p.canonical, p.snippet, p.cue_id)
                    for p in phrases
                ],
            )

    def load_problems_for_posts(self, post_ids: list[str]) -> list[ProblemPhrase]:
        """Get stored phrases for a set of posts."""
        if not post_ids:
            return []
        placeholders = ",".join("?" * len(post_ids))
        with self.connection() as conn:
            rows = conn.execute(
                f"""
                SELECT post_id, phrase, canonical, snippet, cue_id
                FROM problems WHERE post_id IN ({placeholders})
                ORDER BY rowid
                """,
                post_ids,
            ).fetchall()
            return [ProblemPhrase(**dict(row)) for row in rows]

    # -------------------------------------------------------------------------
    # Idea operations
    # -------------------------------------------------------------------------

    def store_ideas(
        self,
        window_days: int,
        clusters: list[IdeaCluster],
        details: dict[str, IdeaDetails] | None = None,
    ) -> None:
        """Replace every idea stored for a window.

        Prior ideas for the window are deleted and the new set inserted in
        a single transaction.

        Args:
            window_days: Window the ideas were computed for.
            clusters: Ideas to store.
            details: Synthesized details keyed by idea id.
        """
        details = details or {}
        now = time.time()

        with self.connection() as conn:
            conn.execute(
                """
                DELETE FROM idea_posts WHERE idea_id IN
                (SELECT idea_id FROM ideas WHERE window_days = ?)
                """,
                (window_days,),
            )
            conn.execute("DELETE FROM ideas WHERE window_days = ?", (window_days,))

            for cluster in clusters:
                detail = details.get(cluster.idea_id)
                conn.execute(
                    """
                    INSERT OR REPLACE INTO ideas
                    (idea_id, window_days, canonical, title, score, posts_count,
                     subs_count, upvotes_sum, comments_sum, trend_json, trend_slope,
                     top_keywords_json, phrases_json, sample_snippet,
                     complexity_tier, effort_days, worth_estimate, details_json,
                     updated_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        cluster.idea_id, window_days, cluster.canonical,
                        cluster.title, cluster.score, cluster.posts_count,
                        cluster.subs_count, cluster.upvotes_sum,
                        cluster.comments_sum, json.dumps(cluster.trend),
                        cluster.trend_slope, json.dumps(cluster.top_keywords),
                        json.dumps(cluster.phrases), cluster.sample_snippet,
                        detail.complexity_tier if detail else None,
                        detail.predicted_effort_days if detail else None,
                        detail.worth_estimate if detail else None,
                        json.dumps(asdict(detail)) if detail else None,
                        now,
                    ),
                )
                conn.executemany(
                    """
                    INSERT OR REPLACE INTO idea_posts
                    (idea_id, post_id, position, subreddit, title, url,
                     created_utc, upvotes, num_comments, author,
                     matched_snippet, problem_phrase)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    [
                        (
                            cluster.idea_id, p.post_id, position, p.subreddit,
                            p.title, p.url, p.created_utc, p.upvotes,
                            p.num_comments, p.author, p.matched_snippet,
                            p.problem_phrase,
                        )
                        for position, p in enumerate(cluster.posts)
                    ],
                )

    def _row_to_stored_idea(self, row: sqlite3.Row, posts: list[ClusterPost]) -> StoredIdea:
        idea = IdeaCluster(
            idea_id=row["idea_id"],
            title=row["title"],
            canonical=row["canonical"],
            phrases=json.loads(row["phrases_json"] or "[]"),
            posts=posts,
            score=row["score"],
            posts_count=row["posts_count"],
            subs_count=row["subs_count"],
            upvotes_sum=row["upvotes_sum"],
            comments_sum=row["comments_sum"],
            trend=json.loads(row["trend_json"] or "[]"),
            trend_slope=row["trend_slope"] or 0.0,
            top_keywords=json.loads(row["top_keywords_json"] or "[]"),
            sample_snippet=row["sample_snippet"],
        )
        details = None
        if row["details_json"]:
            details = IdeaDetails(**json.loads(row["details_json"]))
        return StoredIdea(
            idea=idea,
            window_days=row["window_days"],
            updated_at=row["updated_at"],
            details=details,
        )

    def load_ideas(
        self,
        window_days: int,
        sort: str = "top",
        limit: int | None = None,
    ) -> list[StoredIdea]:
        """Get the ideas stored for a window.

        Posts are not loaded; use load_idea_posts for those.

        Args:
            window_days: Window to read.
            sort: One of "top", "trending", "fresh".
            limit: Maximum number of ideas.

        Returns:
            Stored ideas in the requested order.

        Raises:
            ValueError: If the sort option is unknown.
        """
        if sort not in SORT_ORDERS:
            raise ValueError(f"Unknown sort option: {sort}")

        query = f"SELECT * FROM ideas WHERE window_days = ? ORDER BY {SORT_ORDERS[sort]}"
        params: list = [window_days]
        if limit is not None:
            query += " LIMIT ?"
            params.append(limit)

        with self.connection() as conn:
            rows = conn.execute(query, params).fetchall()
            return [self._row_to_stored_idea(row, []) for row in rows]

    def load_idea(self, idea_id: str) -> StoredIdea | None:
        """Get one idea with its posts."""
        with self.connection() as conn:
            row = conn.execute(
                "SELECT * FROM ideas WHERE idea_id = ?", (idea_id,)
            ).fetchone()
        if row is None:
            return None
        return self._row_to_stored_idea(row, self.load_idea_posts(idea_id))

    def load_idea_posts(self, idea_id: str, limit: int | None = None) -> list[ClusterPost]:
        """Get the representative posts of an idea in their original order."""
        query = """
            SELECT post_id, subreddit, title, url, created_utc, upvotes,
                   num_comments, matched_snippet, problem_phrase, author
            FROM idea_posts WHERE idea_id = ? ORDER BY position
        """
        params: list = [idea_id]
        if limit is not None:
            query += " LIMIT ?"
            params.append(limit)

        with self.connection() as conn:
            rows = conn.execute(query, params).fetchall()
            return [ClusterPost(**dict(row)) for row in rows]

    # -------------------------------------------------------------------------
    # Meta operations
    # -------------------------------------------------------------------------

    def get_meta(self, key: str) -> str | None:
        with self.connection() as conn:
            row = conn.execute("SELECT value FROM meta WHERE key = ?", (key,)).fetchone()
            return row["value"] if row else None

    def set_meta(self, key: str, value: str) -> None:
        with self.connection() as conn:
            conn.execute(
                "INSERT OR REPLACE INTO meta (key, value) VALUES (?, ?)",
                (key, value),
            )

    # -------------------------------------------------------------------------
    # Utility operations
    # -------------------------------------------------------------------------

    def get_stats(self) -> dict:
        """Get database statistics.

        Returns:
            Dictionary with counts for each table.
        """
        stats = {}
        with self.connection() as conn:
            for table in TABLES:
                row = conn.execute(f"SELECT COUNT(*) as count FROM {table}").fetchone()
                stats[table] = row["count"]
        return stats


def get_database(db_path: str | Path | None = None) -> Database:
    """Get a database instance.

    Args:
        db_path: Optional path to database file. Defaults to the configured path.

    Returns:
        Database instance.
    """
    if db_path is None:
        from problem_radar.config import get_config
        db_path = get_config().database.path

    return Database(db_path)
