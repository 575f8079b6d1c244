"""Command dispatch and the state that command handlers work on."""

from __future__ import annotations

import functools
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field

from gator.config import Config
from gator.models import User
from gator.queries import Queries


class CommandError(Exception):
    """A command was called wrongly or could not be carried out."""


@dataclass
class Command:
    """A command name and the arguments given after it."""

    name: str
    args: list[str] = field(default_factory=list)


@dataclass
class State:
    """The configuration and database shared by all handlers."""

    config: Config
    db: Queries


Handler = Callable[[State, Command], None]
UserHandler = Callable[[State, Command, User], None]


class Commands:
    """A registry mapping command names to their handlers."""

    def __init__(self) -> None:
        self._handlers: dict[str, Handler] = {}

    def register(self, name: str, handler: Handler) -> None:
        """Make ``handler`` answer to ``name``, replacing any earlier one."""
        self._handlers[name] = handler

    def run(self, state: State, command: Command) -> None:
        """Run the handler registered for ``command``."""
        try:
            handler = self._handlers[command.name]
        except KeyError:
            raise CommandError(f"unknown command: {command.name}") from None
        handler(state, command)

    def __contains__(self, name: object) -> bool:
        return name in self._handlers

    def __iter__(self) -> Iterator[str]:
        return iter(self._handlers)


def logged_in(handler: UserHandler) -> Handler:
    """Wrap ``handler`` so that it receives the currently logged-in user."""

    @functools.wraps(handler)
    def wrapper(state: State, command: Command) -> None:
        user = state.db.get_user(state.config.current_user_name)
        handler(state, command, user)

    return wrapper