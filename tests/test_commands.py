import sqlite3

import pytest

from gator.commands import Command, CommandError, Commands, State, logged_in
from gator.config import Config
from gator.models import User
from gator.queries import NoRowsError, Queries


@pytest.fixture
def state(tmp_path):
    conn = sqlite3.connect(":memory:")
    queries = Queries(conn)
    queries.create_schema()
    yield State(config=Config(path=tmp_path / "config.json"), db=queries)
    conn.close()


def test_run_calls_registered_handler(state):
    calls = []
    commands = Commands()
    commands.register("hello", lambda s, c: calls.append((s, c)))
    command = Command("hello", ["a", "b"])
    commands.run(state, command)
    assert calls == [(state, command)]


def test_register_replaces_earlier_handler(state):
    calls = []
    commands = Commands()
    commands.register("hello", lambda s, c: calls.append("first"))
    commands.register("hello", lambda s, c: calls.append("second"))
    commands.run(state, Command("hello"))
    assert calls == ["second"]


def test_run_unknown_command_raises(state):
    commands = Commands()
    with pytest.raises(CommandError, match="unknown command: nope"):
        commands.run(state, Command("nope"))


def test_handler_errors_propagate(state):
    def failing(s, c):
        raise CommandError("broken")

    commands = Commands()
    commands.register("fail", failing)
    with pytest.raises(CommandError, match="broken"):
        commands.run(state, Command("fail"))


def test_contains_and_iteration():
    commands = Commands()
    commands.register("one", lambda s, c: None)
    commands.register("two", lambda s, c: None)
    assert "one" in commands
    assert "three" not in commands
    assert list(commands) == ["one", "two"]


def test_command_args_default_to_empty():
    assert Command("users").args == []


def test_logged_in_passes_current_user(state):
    state.db.create_user(User(name="alice"))
    state.config.current_user_name = "alice"
    seen = []
    wrapped = logged_in(lambda s, c, user: seen.append((c.args, user.name)))
    wrapped(state, Command("browse", ["5"]))
    assert seen == [(["5"], "alice")]


def test_logged_in_without_user_raises(state):
    state.config.current_user_name = "ghost"
    seen = []
    wrapped = logged_in(lambda s, c, user: seen.append(user))
    with pytest.raises(NoRowsError):
        wrapped(state, Command("browse"))
    assert seen == []