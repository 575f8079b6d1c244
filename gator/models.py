"""Records stored in and returned by the feed database."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from uuid import UUID, uuid4


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(kw_only=True)
class _Record:
    """Identifier and timestamps shared by every stored row."""

    id: UUID = field(default_factory=uuid4)
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime | None = None

    def __post_init__(self) -> None:
        if self.updated_at is None:
            self.updated_at = self.created_at


@dataclass(kw_only=True)
class User(_Record):
    """A registered user."""

    name: str


@dataclass(kw_only=True)
class Feed(_Record):
    """An RSS feed added by a user."""

    name: str
    url: str
    user_id: UUID
    last_fetched_at: datetime | None = None


@dataclass(kw_only=True)
class FeedFollow(_Record):
    """A user following a feed."""

    user_id: UUID
    feed_id: UUID


@dataclass(kw_only=True)
class FeedFollowRow(FeedFollow):
    """A follow together with the names of its user and feed."""

    user_name: str
    feed_name: str


@dataclass(kw_only=True)
class Post(_Record):
    """A post collected from a feed."""

    title: str
    url: str
    description: str | None = None
    published_at: datetime | None = None
    feed_id: UUID


@dataclass(kw_only=True)
class PostForUser(Post):
    """A post as shown to a user, with the name of its feed."""

    feed_name: str


@dataclass(kw_only=True)
class FeedWithUser:
    """A feed together with the user who added it."""

    feed: Feed
    user: User