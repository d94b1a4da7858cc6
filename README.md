# bullscows

A small HTTP server for playing two-player **Bulls and Cows** matches. Match
state is kept in Redis as one hash per room (`room:<id>`), renewed for an hour
whenever a room is created or restarted.

Each player picks a secret four-digit number with no repeated digits for the
opponent to guess. On each turn a player submits a guess and gets back, digit by
digit, whether it is a *bull* (right digit, right place), a *cow* (right digit,
wrong place) or *none*. Guessing all four bulls wins the match.

Combinations and guesses are sent as JSON integers, so a number starting with
`0` cannot be used.

## Installation

```
pip install .
```

## Running the server

```
bullscows
```

The command connects to Redis, then serves the API until interrupted (Ctrl+C),
after which it shuts down within 15 seconds. It exits with status 1 if Redis
cannot be reached or the address cannot be used.

The server is configured through environment variables:

| Variable         | Meaning                                             | Default          |
|------------------|-----------------------------------------------------|------------------|
| `API_ADDR`       | Address to listen on (`host:port`, host optional)   | `:3000`          |
| `ALLOWED_HOST`   | Origin allowed by CORS (`*` allows any origin)      | empty            |
| `DB_MATCHES`     | Redis address (`host:port`)                         | `localhost:6379` |
| `DB_MATCHES_PWD` | Redis password                                      | none             |
| `DB_MATCHES_DB`  | Redis database number                               | `0`              |

## HTTP API

All routes live under `/api/v1`. Room ids are seven characters long.

| Method | Path                                 | Body                                        | Success |
|--------|--------------------------------------|---------------------------------------------|---------|
| POST   | `/matches/create`                    | `{"username": "..."}`                       | 200     |
| PUT    | `/matches/join/{roomId}`             | `{"username": "..."}`                       | 200     |
| PUT    | `/matches/setCombination/{roomId}`   | `{"player_id": "...", "combination": 1234}` | 202     |
| PUT    | `/matches/startGame/{roomId}`        | none                                        | 202     |
| PUT    | `/matches/makeGuess/{roomId}`        | `{"player_id": "...", "guess": 5678}`       | 200     |
| PUT    | `/matches/restart/{roomId}`          | none                                        | 200     |

A typical match:

1. One player creates a room and shares the returned `room_id`.
2. The second player joins it; the room is then full.
3. Each player sets the combination the *other* player has to guess.
4. Anyone starts the game; the response names the player whose turn it is,
   chosen at random.
5. Players take turns guessing. Each guess returns the full guess history of
   both players and whether it won; a winning guess finishes the match.
6. The room can be restarted to play again with the same players: the
   combinations and guesses are cleared and both players set new ones.

Errors come back as `{"error": "..."}` with status 400 for bad input, 404 when
the room (or the player in it) is not found, 409 when the request does not fit
the match's state (room not full, combinations missing, not your turn, match
not started) and 500 for anything else.

## Using it as a library

```python
from bullscows.server import Application, ApplicationConfig

app = Application(ApplicationConfig(addr=":3000"))
flask_app = app.create_app()  # connects to Redis from the environment
```

- `bullscows.domain` holds the game model: `Match.new_guess` scores a guess,
  `validate_combination` checks a combination.
- `bullscows.services.MatchesService` holds the game rules and works with any
  object that follows `bullscows.contracts.MatchesRepositoryProtocol`, wrapped
  in a `bullscows.contracts.Storage`.
- `bullscows.store.RedisMatchesRepository` is the Redis-backed repository;
  `connect_redis` and `new_redis_storage` build one.
- `bullscows.api.create_app(service, allowed_origins)` builds the Flask
  application around any service.

## What it does not do

- There is no storage other than Redis; the server will not start without it.
- Players are not authenticated: anyone who knows a room id and a player id can
  act for that player.
- Restarting does not check that the room exists; it writes a fresh, full room
  under the given id.

## Running the tests

```
pip install .[test]
pytest
```