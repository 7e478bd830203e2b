# prreviewer

A small HTTP service that picks reviewers for pull requests. Teams are
registered with their members. When a pull request is opened, the author's
active teammates are assigned as reviewers; if there are more than two, two
of them are chosen at random. A reviewer can later be swapped for another
active member of that reviewer's team, pull requests can be merged, and the
number of open pull requests per reviewer can be queried.

Data is kept in an SQLite database.

## Installation

```
pip install .
```

## Running

```
prreviewer
```

The command takes no options apart from `--help`. Configuration comes from
the environment:

| Variable       | Meaning                                 | Default        |
|----------------|-----------------------------------------|----------------|
| `SERVER_PORT`  | Port the HTTP server listens on         | `8080`         |
| `DATABASE_URL` | Path of the SQLite database file        | `prdb.sqlite3` |

The tables are created on start-up if they do not exist. Each request is
logged at INFO level. Cross-origin requests are allowed from any origin for
`GET`, `POST` and `HEAD`. The server stops cleanly on SIGINT or SIGTERM.

## API

All request and response bodies are JSON. Errors have the shape
`{"error": {"code": "...", "message": "..."}}`. A body that is not valid
JSON, or holds a field of the wrong type, gives 400 `BAD_REQUEST`; other
failures give 500 `INTERNAL_ERROR`.

| Method | Path                        | Purpose |
|--------|-----------------------------|---------|
| POST   | `/team/add`                 | Register `team_name` and add or update each entry of `members` (`user_id`, `username`, `is_active`); answers 201 with the team as sent |
| GET    | `/team/get?team_name=`      | Fetch a team and its members (404 `NOT_FOUND` if unknown) |
| POST   | `/users/setIsActive`        | Set `is_active` for `user_id` and return the user (404 if unknown) |
| POST   | `/users/massDeactivate`     | Deactivate every id in `user_ids`; returns `deactivated_count`, the number of ids sent |
| POST   | `/pullRequest/create`       | Open a PR (`pull_request_id`, `pull_request_name`, `author_id`) and assign reviewers; 201, or 404 for an unknown author, 409 `PR_EXISTS` for a taken id |
| POST   | `/pullRequest/merge`        | Mark a PR as merged; merging twice returns it unchanged |
| POST   | `/pullRequest/reassign`     | Replace `old_reviewer_id` on a PR with another active teammate; returns `pr` and `replaced_by` |
| GET    | `/users/getReview?user_id=` | List the PRs a user is assigned to review (`null` when there are none) |
| GET    | `/stats/reviewers`          | Count of open PRs per reviewer |
| GET    | `/health`                   | `{"status": "OK"}` |

Reassignment answers 404 `NOT_FOUND` for an unknown PR or user, and 409 with
`PR_MERGED`, `NOT_ASSIGNED` or `NO_CANDIDATE` when it cannot be done.

A pull request is returned with `pull_request_id`, `pull_request_name`,
`author_id`, `status` (`OPEN` or `MERGED`), `assigned_reviewers`,
`created_at` and, once merged, `merged_at`, with times in RFC 3339 form.

## Example

```
curl -X POST localhost:8080/team/add -H 'Content-Type: application/json' \
  -d '{"team_name": "backend", "members": [
        {"user_id": "u1", "username": "Alice", "is_active": true},
        {"user_id": "u2", "username": "Bob", "is_active": true},
        {"user_id": "u3", "username": "Carol", "is_active": true}]}'

curl -X POST localhost:8080/pullRequest/create -H 'Content-Type: application/json' \
  -d '{"pull_request_id": "pr-1", "pull_request_name": "feat: add X", "author_id": "u1"}'
```

## Using it as a library

- `prreviewer.config.load(environ=None)` returns a `Config` with
  `server_port` and `db_url`.
- `prreviewer.server.build_app(config)` opens the store and returns the wired
  Flask application; the store is kept in
  `app.extensions[prreviewer.server.STORE_EXTENSION]`.
- `prreviewer.handler.create_app(service)` builds the routes around any
  `prreviewer.service.Service`.
- `prreviewer.service.Service(store, rng=None)` holds the assignment rules;
  pass a `random.Random` for repeatable choices. It raises the errors in
  `prreviewer.model` (`NotFoundError`, `PRExistsError`, `PRMergedError`,
  `NotAssignedError`, `NoCandidateError`, `TeamExistsError`).
- `prreviewer.store.SqliteStore(path=":memory:")` implements the
  `prreviewer.store.Repository` protocol and can be used as a context manager.

## What it does not do

Storage is SQLite only: `DATABASE_URL` is a file path, not the address of a
database server. There is no authentication, and `team_name` given to
`/users/massDeactivate` is not checked against the users' teams.

## Tests

```
pip install .[test]
pytest
```