"""Reading and writing the user's gator configuration file."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path

CONFIG_FILE_NAME = ".gatorconfig.json"

_FIELDS = ("db_url", "current_user_name")

# Characters the config writer escapes inside JSON strings.
_ESCAPES = str.maketrans(
    {
        "<": "\\u003c",
        ">": "\\u003e",
        "&": "\\u0026",
        "\u2028": "\\u2028",
        "\u2029": "\\u2029",
    }
)


@dataclass
class Config:
    """Connection settings and the name of the logged-in user."""

    db_url: str = ""
    current_user_name: str = ""
    path: Path | None = field(default=None, compare=False, repr=False)

    def set_user(self, username: str) -> None:
        """Make ``username`` the current user and save the configuration."""
        self.current_user_name = username
        write(self)


def config_file_path() -> Path:
    """Return the location of the configuration file in the home directory."""
    return Path.home() / CONFIG_FILE_NAME


def _match_field(key: str) -> str | None:
    if key in _FIELDS:
        return key
    folded = key.casefold()
    return next((name for name in _FIELDS if name.casefold() == folded), None)


def read(path: str | Path | None = None) -> Config:
    """Load the configuration from ``path`` or from the default location."""
    target = Path(path) if path is not None else config_file_path()
    text = target.read_bytes().decode("utf-8")
    document, _ = json.JSONDecoder().raw_decode(text.lstrip(" \t\r\n"))
    if document is None:
        return Config(path=target)
    if not isinstance(document, dict):
        raise ValueError("configuration must be a JSON object")

    values: dict[str, str] = {}
    for key, value in document.items():
        name = _match_field(key)
        if name is None or value is None:
            continue
        if not isinstance(value, str):
            raise ValueError(f"configuration field {key!r} must be a string")
        values[name] = value
    return Config(**values, path=target)


def write(config: Config, path: str | Path | None = None) -> None:
    """Save ``config`` as indented JSON to ``path``, its own path or the default."""
    if path is not None:
        target = Path(path)
    elif config.path is not None:
        target = config.path
    else:
        target = config_file_path()
    text = json.dumps(
        {"db_url": config.db_url, "current_user_name": config.current_user_name},
        indent=2,
        ensure_ascii=False,
    )
    target.write_bytes((text.translate(_ESCAPES) + "\n").encode("utf-8"))