"""The handlers behind each gator command."""

from __future__ import annotations

import logging
import re
import sqlite3
import time
from datetime import datetime, timedelta

from gator.commands import Command, CommandError, State
from gator.models import Feed, FeedFollow, Post, User
from gator.queries import NoRowsError
from gator.rss import fetch_feed, parse_pub_date

logger = logging.getLogger("gator")

_SECOND = 10**9
_MINUTE = 60 * _SECOND
_UNITS = {
    "ns": 1,
    "us": 1_000,
    "\u00b5s": 1_000,
    "\u03bcs": 1_000,
    "ms": 1_000_000,
    "s": _SECOND,
    "m": _MINUTE,
    "h": 60 * _MINUTE,
}
_COMPONENT = re.compile(r"([0-9]*)(?:\.([0-9]*))?(ns|us|\u00b5s|\u03bcs|ms|s|m|h)")
_INTEGER = re.compile(r"[+-]?[0-9]+")

_DAY_NAMES = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")
_MONTH_NAMES = ("Jan", "Feb", "Mar", "Apr", "May", "Jun",
                "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")

DEFAULT_BROWSE_LIMIT = 2


def _fatal(message: str) -> None:
    logger.error(message)
    raise SystemExit(1)


def _parse_nanoseconds(text: str) -> int:
    """Parse a duration such as ``"1h30m"`` or ``"1.5s"`` into nanoseconds."""
    invalid = ValueError(f'time: invalid duration "{text}"')
    rest = text
    negative = False
    if rest[:1] in ("+", "-"):
        negative = rest[0] == "-"
        rest = rest[1:]
    if rest == "0":
        return 0
    if not rest:
        raise invalid
    total = 0
    pos = 0
    while pos < len(rest):
        match = _COMPONENT.match(rest, pos)
        if match is None:
            raise invalid
        whole, fraction, unit = match.groups()
        if not whole and not fraction:
            raise invalid
        scale = _UNITS[unit]
        total += int(whole or "0") * scale
        if fraction:
            total += int(fraction) * scale // 10 ** len(fraction)
        if total > 2**63 - (0 if negative else 1):
            raise invalid
        pos = match.end()
    return -total if negative else total


def parse_duration(text: str) -> timedelta:
    """Parse a duration such as ``"1m"``, ``"1h30m"`` or ``"250ms"``.

    Precision below a microsecond is dropped.
    """
    nanoseconds = _parse_nanoseconds(text)
    delta = timedelta(microseconds=abs(nanoseconds) // 1000)
    return -delta if nanoseconds < 0 else delta


def _decimal(value: int, digits: int) -> str:
    whole, fraction = divmod(value, 10**digits)
    fraction_text = f"{fraction:0{digits}d}".rstrip("0")
    return f"{whole}.{fraction_text}" if fraction_text else str(whole)


def _format_duration(nanoseconds: int) -> str:
    if nanoseconds == 0:
        return "0s"
    sign = "-" if nanoseconds < 0 else ""
    value = abs(nanoseconds)
    if value < _SECOND:
        if value < 1_000:
            return f"{sign}{value}ns"
        if value < 1_000_000:
            return f"{sign}{_decimal(value, 3)}\u00b5s"
        return f"{sign}{_decimal(value, 6)}ms"
    text = _decimal(value % _MINUTE, 9) + "s"
    minutes = value // _MINUTE
    if minutes:
        hours, minutes = divmod(minutes, 60)
        text = f"{minutes}m{text}"
        if hours:
            text = f"{hours}h{text}"
    return sign + text


def scrape_feeds(state: State) -> None:
    """Fetch the feed due next and store its items as posts."""
    feed = state.db.get_next_feed_to_fetch()
    feed = state.db.mark_feed_fetched(feed.id)
    rss_feed = fetch_feed(feed.url)
    for item in rss_feed.items:
        post = Post(
            feed_id=feed.id,
            title=item.title,
            description=item.description,
            url=item.link,
            published_at=parse_pub_date(item.pub_date),
        )
        try:
            state.db.create_post(post)
        except sqlite3.Error:
            # Posts already collected are skipped, as are any that fail to store.
            continue
    logger.info("Feed %s collected, %d posts found", feed.name, len(rss_feed.items))


def handle_agg(state: State, command: Command) -> None:
    """Collect feeds forever, one every given interval."""
    if not command.args:
        raise CommandError(f"usage: {command.name} <time_between_reqs>")
    try:
        nanoseconds = _parse_nanoseconds(command.args[0])
    except ValueError as err:
        raise CommandError(f"invalid duration: {err}") from err
    if nanoseconds <= 0:
        raise CommandError("invalid duration: must be positive")

    interval = nanoseconds / _SECOND
    logger.info("Collecting feeds every %s...", _format_duration(nanoseconds))
    next_tick = time.monotonic()
    while True:
        try:
            scrape_feeds(state)
        except Exception as err:
            logger.debug("scraping failed: %s", err)
        next_tick += interval
        now = time.monotonic()
        if next_tick > now:
            time.sleep(next_tick - now)
        else:
            # Ticks missed while scraping collapse into one that fires at once.
            next_tick = now - (now - next_tick) % interval


def _parse_limit(text: str) -> int:
    if _INTEGER.fullmatch(text) is None:
        raise CommandError(f'invalid limit: strconv.Atoi: parsing "{text}": invalid syntax')
    value = int(text)
    if not -(2**63) <= value < 2**63:
        raise CommandError(f'invalid limit: strconv.Atoi: parsing "{text}": value out of range')
    return (value + 2**31) % 2**32 - 2**31


def _browse_date(value: datetime | None) -> str:
    if value is None:
        value = datetime(1, 1, 1)
    return f"{_DAY_NAMES[value.weekday()]} {_MONTH_NAMES[value.month - 1]} {value.month}"


def handle_browse(state: State, command: Command, user: User) -> None:
    """Show the newest posts from the feeds the user follows."""
    limit = DEFAULT_BROWSE_LIMIT
    if len(command.args) == 1:
        limit = _parse_limit(command.args[0])
    try:
        posts = state.db.get_posts_for_user(user.id, limit)
    except (ValueError, sqlite3.Error) as err:
        raise CommandError(f"couldn't get posts for user: {err}") from err

    print(f"Found {len(posts)} posts for user {user.name}:")
    for post in posts:
        print(f"{_browse_date(post.published_at)} from {post.feed_name}")
        print(f"--- {post.title} ---")
        print(f"    {post.description or ''}")
        print(f"Link: {post.url}")
        print("=====================================")


def handle_add_feed(state: State, command: Command, user: User) -> None:
    """Add a feed and make the user follow it."""
    if len(command.args) < 2:
        raise CommandError(
            "addfeed handler expects feed name and feed url arguments, "
            f"usage: {command.name} <feed_name> <feed_url>"
        )
    name, url = command.args[0], command.args[1]
    feed = state.db.create_feed(Feed(name=name, url=url, user_id=user.id))
    state.db.create_feed_follow(FeedFollow(user_id=user.id, feed_id=feed.id))


def handle_feeds(state: State, command: Command) -> None:
    """List every feed with the user who added it."""
    for row in state.db.list_feeds():
        print("---")
        print(f"feed: {row.feed.name}")
        print(f"url: {row.feed.url}")
        print(f"created by: {row.user.name}")
    print("---")


def handle_following(state: State, command: Command, user: User) -> None:
    """List the feeds the user follows."""
    follows = state.db.list_feed_follows(user.id)
    print(f"Feeds followed by user {user.name}")
    for follow in follows:
        print(f"- {follow.feed_name}")


def handle_follow(state: State, command: Command, user: User) -> None:
    """Make the user follow the feed at the given URL."""
    if not command.args:
        raise CommandError(
            f"follow handler expects a feed url argument, usage: {command.name} <feed_url>"
        )
    feed = state.db.get_feed_by_url(command.args[0])
    follow = state.db.create_feed_follow(FeedFollow(user_id=user.id, feed_id=feed.id))
    print(f"Follow created for user {follow.user_name} and feed {follow.feed_name}")


def handle_unfollow(state: State, command: Command, user: User) -> None:
    """Stop the user following the feed at the given URL."""
    if not command.args:
        raise CommandError(
            f"unfollow handler expects a feed url argument, usage: {command.name} <feed_url>"
        )
    feed = state.db.get_feed_by_url(command.args[0])
    state.db.delete_feed_follow(user.id, feed.id)
    print(f"User {user.name} unfollowd feed {feed.name}")


def handle_reset(state: State, command: Command) -> None:
    """Delete every user and everything that belongs to them."""
    try:
        state.db.delete_all_users()
    except sqlite3.Error:
        _fatal("failed to delete users")
    print("Users deleted!")


def handle_login(state: State, command: Command) -> None:
    """Make an existing user the current one."""
    if not command.args:
        raise CommandError(
            f"login handler expects username argument, usage: {command.name} <name>"
        )
    username = command.args[0]
    try:
        state.db.get_user(username)
    except NoRowsError:
        _fatal("user does not exist")
    state.config.set_user(username)
    print("User has been set!")


def handle_register(state: State, command: Command) -> None:
    """Create a user and make it the current one."""
    if not command.args:
        raise CommandError("register handler expects username argument")
    username = command.args[0]
    try:
        state.db.get_user(username)
    except NoRowsError:
        pass
    else:
        _fatal("user already exists")
    state.db.create_user(User(name=username))
    state.config.set_user(username)
    print("User has been created!")


def handle_users(state: State, command: Command) -> None:
    """List all users, marking the current one."""
    for user in state.db.get_users():
        if user.name == state.config.current_user_name:
            print(f"* {user.name} (current)")
        else:
            print(f"* {user.name}")