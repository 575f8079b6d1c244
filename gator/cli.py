"""The gator command line."""

from __future__ import annotations

import logging
import sqlite3
import sys
from collections.abc import Sequence
from contextlib import closing

from gator import config
from gator.commands import Command, Commands, State, logged_in
from gator.handlers import (
    handle_add_feed,
    handle_agg,
    handle_browse,
    handle_feeds,
    handle_follow,
    handle_following,
    handle_login,
    handle_register,
    handle_reset,
    handle_unfollow,
    handle_users,
)
from gator.queries import Queries

logger = logging.getLogger("gator")


def build_commands() -> Commands:
    """Return the registry of every gator command."""
    commands = Commands()
    commands.register("login", handle_login)
    commands.register("register", handle_register)
    commands.register("reset", handle_reset)
    commands.register("users", handle_users)
    commands.register("agg", handle_agg)
    commands.register("addfeed", logged_in(handle_add_feed))
    commands.register("feeds", handle_feeds)
    commands.register("follow", logged_in(handle_follow))
    commands.register("unfollow", logged_in(handle_unfollow))
    commands.register("following", logged_in(handle_following))
    commands.register("browse", logged_in(handle_browse))
    return commands


def _connect(db_url: str) -> sqlite3.Connection:
    if not db_url:
        raise ValueError("no database URL configured")
    if db_url.startswith("file:"):
        return sqlite3.connect(db_url, uri=True)
    return sqlite3.connect(db_url)


def main(argv: Sequence[str] | None = None) -> int:
    """Run one gator command and return the exit status."""
    logging.basicConfig(
        format="%(asctime)s %(message)s",
        datefmt="%Y/%m/%d %H:%M:%S",
        level=logging.INFO,
    )
    args = list(sys.argv[1:] if argv is None else argv)

    try:
        cfg = config.read()
    except (OSError, ValueError) as err:
        logger.error("error loading config: %s", err)
        return 1

    try:
        conn = _connect(cfg.db_url)
    except (ValueError, sqlite3.Error) as err:
        logger.error("error opening database connection: %s", err)
        return 1

    with closing(conn):
        try:
            queries = Queries(conn)
            queries.create_schema()
        except sqlite3.Error as err:
            logger.error("error opening database connection: %s", err)
            return 1

        if not args:
            logger.error("not enough arguments")
            return 1
        command = Command(args[0], args[1:])
        try:
            build_commands().run(State(config=cfg, db=queries), command)
        except Exception as err:
            logger.error("error running command '%s': %s", command.name, err)
            return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())