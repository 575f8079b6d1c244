# gator

`gator` is a small command-line RSS aggregator. You register users, add
RSS feeds, follow the feeds you care about, and let the aggregator
collect their posts so you can browse them from the terminal. Everything
is stored in a SQLite database; the tables are created on first use.

## Installation

```
pip install .
```

This installs the `gator` command. There are no third-party
dependencies.

## Configuration

`gator` reads its settings from `.gatorconfig.json` in your home
directory. The file must exist before the first run. It holds the
location of the SQLite database and the name of the user who is
currently logged in:

```json
{
  "db_url": "gator.db",
  "current_user_name": ""
}
```

`db_url` is a path to the database file (relative paths are taken from
the current directory) or a SQLite `file:` URI. `gator register` and
`gator login` update `current_user_name` for you.

## Usage

```
gator <command> [arguments...]
```

The command exits with status 0 on success and 1 on any error; errors
are logged to standard error.

### Users

| Command | What it does |
| --- | --- |
| `gator register <name>` | Create a user and log in as them. Fails if the user already exists. |
| `gator login <name>` | Log in as an existing user. Fails if there is no such user. |
| `gator users` | List all users; the current one is marked `(current)`. |
| `gator reset` | Delete all users, together with their feeds, follows and posts. |

### Feeds

These commands, except `feeds`, act as the current user.

| Command | What it does |
| --- | --- |
| `gator addfeed <feed_name> <feed_url>` | Add a feed and follow it. |
| `gator feeds` | List every feed with its URL and the user who added it. |
| `gator follow <feed_url>` | Follow a feed that has already been added. |
| `gator unfollow <feed_url>` | Stop following a feed. |
| `gator following` | List the feeds the current user follows. |

### Collecting and reading posts

```
gator agg 1m
```

`agg` runs until interrupted. On every tick it picks the feed that was
fetched least recently (never-fetched feeds first), downloads it and
stores its items as posts. Posts whose URL is already stored are
skipped, and a feed that fails to download is logged and passed over.
The interval is a positive duration built from a number and a unit:
`ns`, `us` (or `µs`), `ms`, `s`, `m` or `h`, for example `30s`, `1.5m`
or `1h30m`.

```
gator browse [limit]
```

`browse` shows the newest posts from the feeds the current user follows,
two by default, or as many as `limit` asks for. Posts without a
publication date are listed first.

## Using it as a library

The modules can also be used directly:

- `gator.rss.fetch_feed(url)` downloads and parses a feed;
  `gator.rss.parse_feed(data)` parses one you already have, keeping what
  it can of malformed input; `gator.rss.parse_pub_date(text)` reads
  RFC 1123 dates with a numeric zone.
- `gator.queries.Queries` wraps a `sqlite3` connection with the
  operations the commands use; `create_schema()` sets up the tables and
  `transaction()` groups queries atomically. Lookups that find nothing
  raise `gator.queries.NoRowsError`.
- `gator.config.read()` and `gator.config.write()` load and save the
  configuration file.
- `gator.cli.build_commands()` returns the command registry, and
  `gator.cli.main(argv)` runs one command and returns its exit status.

## What it does not do

`gator` works only with SQLite; it cannot connect to a database server.
It reads RSS, not Atom feeds, and it keeps no per-user read state.

## Running the tests

```
pip install ".[test]"
pytest
```