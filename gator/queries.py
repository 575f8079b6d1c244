"""Queries against the feed database, kept in SQLite."""

from __future__ import annotations

import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from uuid import UUID

from gator.models import (
    Feed,
    FeedFollow,
    FeedFollowRow,
    FeedWithUser,
    Post,
    PostForUser,
    User,
)

_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS users (
        id TEXT PRIMARY KEY,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL,
        name TEXT NOT NULL UNIQUE
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS feeds (
        id TEXT PRIMARY KEY,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL,
        name TEXT NOT NULL,
        url TEXT NOT NULL UNIQUE,
        user_id TEXT NOT NULL REFERENCES users (id) ON DELETE CASCADE,
        last_fetched_at TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS feed_follows (
        id TEXT PRIMARY KEY,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL,
        user_id TEXT NOT NULL REFERENCES users (id) ON DELETE CASCADE,
        feed_id TEXT NOT NULL REFERENCES feeds (id) ON DELETE CASCADE,
        UNIQUE (user_id, feed_id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS posts (
        id TEXT PRIMARY KEY,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL,
        title TEXT NOT NULL,
        url TEXT NOT NULL UNIQUE,
        description TEXT,
        published_at TEXT,
        feed_id TEXT NOT NULL REFERENCES feeds (id) ON DELETE CASCADE
    )
    """,
)

_USER_COLUMNS = "users.id, users.created_at, users.updated_at, users.name"
_FEED_COLUMNS = (
    "feeds.id, feeds.created_at, feeds.updated_at, feeds.name, feeds.url, "
    "feeds.user_id, feeds.last_fetched_at"
)
_POST_COLUMNS = (
    "posts.id, posts.created_at, posts.updated_at, posts.title, posts.url, "
    "posts.description, posts.published_at, posts.feed_id"
)
_FOLLOW_ROW_QUERY = """
    SELECT ff.id, ff.created_at, ff.updated_at, ff.user_id, ff.feed_id,
           u.name AS user_name, f.name AS feed_name
    FROM feed_follows AS ff
    JOIN users AS u ON ff.user_id = u.id
    JOIN feeds AS f ON ff.feed_id = f.id
"""


class NoRowsError(LookupError):
    """A query that must return one row found none."""


def _time_to_db(value: datetime | None) -> str | None:
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


def _time_from_db(value: str | None) -> datetime | None:
    return None if value is None else datetime.fromisoformat(value)


def _user(row: tuple) -> User:
    id_, created, updated, name = row
    return User(
        id=UUID(id_),
        created_at=_time_from_db(created),
        updated_at=_time_from_db(updated),
        name=name,
    )


def _feed(row: tuple) -> Feed:
    id_, created, updated, name, url, user_id, fetched = row
    return Feed(
        id=UUID(id_),
        created_at=_time_from_db(created),
        updated_at=_time_from_db(updated),
        name=name,
        url=url,
        user_id=UUID(user_id),
        last_fetched_at=_time_from_db(fetched),
    )


def _follow_row(row: tuple) -> FeedFollowRow:
    id_, created, updated, user_id, feed_id, user_name, feed_name = row
    return FeedFollowRow(
        id=UUID(id_),
        created_at=_time_from_db(created),
        updated_at=_time_from_db(updated),
        user_id=UUID(user_id),
        feed_id=UUID(feed_id),
        user_name=user_name,
        feed_name=feed_name,
    )


def _post_fields(row: tuple) -> dict:
    id_, created, updated, title, url, description, published, feed_id = row
    return {
        "id": UUID(id_),
        "created_at": _time_from_db(created),
        "updated_at": _time_from_db(updated),
        "title": title,
        "url": url,
        "description": description,
        "published_at": _time_from_db(published),
        "feed_id": UUID(feed_id),
    }


class Queries:
    """The database operations the aggregator needs.

    The connection is switched to autocommit mode, so every statement is
    committed on its own unless it runs inside :meth:`transaction`.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        conn.isolation_level = None
        conn.execute("PRAGMA foreign_keys = ON")
        self._conn = conn
        self._depth = 0

    def _one(self, sql: str, params: tuple = ()) -> tuple:
        row = self._conn.execute(sql, params).fetchone()
        if row is None:
            raise NoRowsError("no rows in result set")
        return row

    def create_schema(self) -> None:
        """Create the tables if they do not exist yet."""
        for statement in _SCHEMA:
            self._conn.execute(statement)

    @contextmanager
    def transaction(self) -> Iterator[Queries]:
        """Run the enclosed queries atomically; roll them back on an exception."""
        self._depth += 1
        name = f"gator_tx_{self._depth}"
        self._conn.execute(f"SAVEPOINT {name}")
        try:
            yield self
        except BaseException:
            self._conn.execute(f"ROLLBACK TO {name}")
            self._conn.execute(f"RELEASE {name}")
            raise
        else:
            self._conn.execute(f"RELEASE {name}")
        finally:
            self._depth -= 1

    # Users

    def create_user(self, user: User) -> User:
        """Insert ``user`` and return it as stored."""
        self._conn.execute(
            "INSERT INTO users (id, created_at, updated_at, name) VALUES (?, ?, ?, ?)",
            (str(user.id), _time_to_db(user.created_at),
             _time_to_db(user.updated_at), user.name),
        )
        return _user(self._one(
            f"SELECT {_USER_COLUMNS} FROM users WHERE id = ?", (str(user.id),)
        ))

    def delete_all_users(self) -> None:
        """Remove every user, and with them their feeds, follows and posts."""
        self._conn.execute("DELETE FROM users")

    def get_user(self, name: str) -> User:
        """Return the user called ``name``; raise NoRowsError if there is none."""
        return _user(self._one(
            f"SELECT {_USER_COLUMNS} FROM users WHERE name = ?", (name,)
        ))

    def get_users(self) -> list[User]:
        """Return all users."""
        rows = self._conn.execute(f"SELECT {_USER_COLUMNS} FROM users")
        return [_user(row) for row in rows]

    # Feeds

    def create_feed(self, feed: Feed) -> Feed:
        """Insert ``feed`` and return it as stored."""
        self._conn.execute(
            "INSERT INTO feeds (id, created_at, updated_at, name, url, user_id) "
            "VALUES (?, ?, ?, ?, ?, ?)",
            (str(feed.id), _time_to_db(feed.created_at), _time_to_db(feed.updated_at),
             feed.name, feed.url, str(feed.user_id)),
        )
        return _feed(self._one(
            f"SELECT {_FEED_COLUMNS} FROM feeds WHERE id = ?", (str(feed.id),)
        ))

    def get_feed_by_url(self, url: str) -> Feed:
        """Return the feed at ``url``; raise NoRowsError if there is none."""
        return _feed(self._one(
            f"SELECT {_FEED_COLUMNS} FROM feeds WHERE url = ?", (url,)
        ))

    def get_next_feed_to_fetch(self) -> Feed:
        """Return the feed fetched longest ago, never-fetched feeds first."""
        return _feed(self._one(
            f"SELECT {_FEED_COLUMNS} FROM feeds "
            "ORDER BY last_fetched_at IS NOT NULL, last_fetched_at ASC LIMIT 1"
        ))

    def list_feeds(self) -> list[FeedWithUser]:
        """Return every feed with the user who added it."""
        rows = self._conn.execute(
            f"SELECT {_FEED_COLUMNS}, {_USER_COLUMNS} "
            "FROM feeds JOIN users ON users.id = feeds.user_id"
        )
        return [FeedWithUser(feed=_feed(row[:7]), user=_user(row[7:])) for row in rows]

    def mark_feed_fetched(self, feed_id: UUID) -> Feed:
        """Stamp the feed as fetched now and return it."""
        now = _time_to_db(datetime.now(timezone.utc))
        cursor = self._conn.execute(
            "UPDATE feeds SET last_fetched_at = ?, updated_at = ? WHERE id = ?",
            (now, now, str(feed_id)),
        )
        if cursor.rowcount == 0:
            raise NoRowsError("no rows in result set")
        return _feed(self._one(
            f"SELECT {_FEED_COLUMNS} FROM feeds WHERE id = ?", (str(feed_id),)
        ))

    # Follows

    def create_feed_follow(self, follow: FeedFollow) -> FeedFollowRow:
        """Insert ``follow`` and return it with the user's and feed's names."""
        self._conn.execute(
            "INSERT INTO feed_follows (id, created_at, updated_at, user_id, feed_id) "
            "VALUES (?, ?, ?, ?, ?)",
            (str(follow.id), _time_to_db(follow.created_at),
             _time_to_db(follow.updated_at), str(follow.user_id), str(follow.feed_id)),
        )
        return _follow_row(self._one(
            f"{_FOLLOW_ROW_QUERY} WHERE ff.id = ?", (str(follow.id),)
        ))

    def delete_feed_follow(self, user_id: UUID, feed_id: UUID) -> None:
        """Remove the follow of ``feed_id`` by ``user_id``, if any."""
        self._conn.execute(
            "DELETE FROM feed_follows WHERE user_id = ? AND feed_id = ?",
            (str(user_id), str(feed_id)),
        )

    def list_feed_follows(self, user_id: UUID) -> list[FeedFollowRow]:
        """Return the follows of ``user_id`` with user and feed names."""
        rows = self._conn.execute(
            f"{_FOLLOW_ROW_QUERY} WHERE ff.user_id = ?", (str(user_id),)
        )
        return [_follow_row(row) for row in rows]

    # Posts

    def create_post(self, post: Post) -> Post:
        """Insert ``post`` and return it as stored."""
        self._conn.execute(
            "INSERT INTO posts (id, created_at, updated_at, title, url, description, "
            "published_at, feed_id) VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
            (str(post.id), _time_to_db(post.created_at), _time_to_db(post.updated_at),
             post.title, post.url, post.description,
             _time_to_db(post.published_at), str(post.feed_id)),
        )
        return Post(**_post_fields(self._one(
            f"SELECT {_POST_COLUMNS} FROM posts WHERE id = ?", (str(post.id),)
        )))

    def get_posts_for_user(self, user_id: UUID, limit: int) -> list[PostForUser]:
        """Return up to ``limit`` posts from feeds the user follows, newest first.

        Posts without a publication date come before all others.
        """
        if limit < 0:
            raise ValueError("LIMIT must not be negative")
        rows = self._conn.execute(
            f"SELECT {_POST_COLUMNS}, feeds.name AS feed_name FROM posts "
            "JOIN feed_follows ON feed_follows.feed_id = posts.feed_id "
            "JOIN feeds ON posts.feed_id = feeds.id "
            "WHERE feed_follows.user_id = ? "
            "ORDER BY posts.published_at IS NULL DESC, posts.published_at DESC "
            "LIMIT ?",
            (str(user_id), limit),
        )
        return [PostForUser(**_post_fields(row[:8]), feed_name=row[8]) for row in rows]