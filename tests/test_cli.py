import pytest

from gator.cli import build_commands, main
from gator.config import CONFIG_FILE_NAME, Config, read, write


@pytest.fixture
def home(tmp_path, monkeypatch):
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.setenv("USERPROFILE", str(tmp_path))
    write(Config(db_url=str(tmp_path / "gator.db")), tmp_path / CONFIG_FILE_NAME)
    return tmp_path


def test_build_commands_registers_every_command():
    assert set(build_commands()) == {
        "login", "register", "reset", "users", "agg", "addfeed",
        "feeds", "follow", "unfollow", "following", "browse",
    }


def test_register_then_users(home, capsys):
    assert main(["register", "alice"]) == 0
    assert capsys.readouterr().out == "User has been created!\n"
    assert read(home / CONFIG_FILE_NAME).current_user_name == "alice"
    assert main(["users"]) == 0
    assert capsys.readouterr().out == "* alice (current)\n"


def test_add_feed_and_following(home, capsys):
    assert main(["register", "alice"]) == 0
    assert main(["addfeed", "Blog", "https://example.com/feed"]) == 0
    capsys.readouterr()
    assert main(["following"]) == 0
    assert capsys.readouterr().out.splitlines() == ["Feeds followed by user alice", "- Blog"]


def test_no_arguments_fails(home, caplog):
    assert main([]) == 1
    assert "not enough arguments" in caplog.text


def test_unknown_command_fails(home, caplog):
    assert main(["frobnicate"]) == 1
    assert "error running command 'frobnicate'" in caplog.text


def test_logged_in_command_without_user_fails(home, caplog):
    assert main(["addfeed", "Blog", "https://example.com/feed"]) == 1
    assert "error running command 'addfeed'" in caplog.text


def test_handler_error_is_reported(home, caplog):
    assert main(["register"]) == 1
    assert "register handler expects username argument" in caplog.text


def test_login_unknown_user_exits(home):
    with pytest.raises(SystemExit) as exc:
        main(["login", "ghost"])
    assert exc.value.code == 1


def test_missing_config_fails(tmp_path, monkeypatch, caplog):
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.setenv("USERPROFILE", str(tmp_path))
    assert main(["users"]) == 1
    assert "error loading config" in caplog.text


def test_empty_database_url_fails(tmp_path, monkeypatch, caplog):
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.setenv("USERPROFILE", str(tmp_path))
    write(Config(), tmp_path / CONFIG_FILE_NAME)
    assert main(["users"]) == 1
    assert "error opening database connection" in caplog.text