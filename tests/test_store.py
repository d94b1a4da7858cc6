from unittest import mock

import pytest
import redis

from bullscows.contracts import (
    SetNewGuessCommand,
    SetOpponentCombinationsCommand,
    SetPlayersCommand,
)
from bullscows.domain import (
    EmptyResultError,
    GuessesHistoryItem,
    Match,
    MatchStatus,
    Player,
)
from bullscows.store import (
    MATCH_EXPIRATION_SECONDS,
    RedisMatchesRepository,
    connect_redis,
    has_missing_values,
    new_redis_storage,
    room_key,
)


class FakeRedis:
    def __init__(self, as_bytes=False, fail_hset=False):
        self.hashes = {}
        self.expirations = {}
        self.as_bytes = as_bytes
        self.fail_hset = fail_hset

    def _out(self, value):
        if value is None or not self.as_bytes:
            return value
        return value.encode("utf-8")

    def hset(self, name, key=None, value=None, mapping=None):
        if self.fail_hset:
            raise redis.ConnectionError("down")
        target = self.hashes.setdefault(name, {})
        if key is not None:
            target[key] = value
        for k, v in (mapping or {}).items():
            target[k] = v
        return len(mapping or {})

    def hget(self, name, key):
        return self._out(self.hashes.get(name, {}).get(key))

    def hmget(self, name, keys, *args):
        fields = list(keys) + list(args)
        stored = self.hashes.get(name, {})
        return [self._out(stored.get(f)) for f in fields]

    def expire(self, name, time):
        self.expirations[name] = time
        return True

    def exists(self, *names):
        return sum(1 for n in names if n in self.hashes)


@pytest.fixture
def client():
    return FakeRedis()


@pytest.fixture
def repo(client):
    return RedisMatchesRepository(client)


def test_room_key():
    assert room_key("abcdefg") == "room:abcdefg"


def test_has_missing_values_ignores_last():
    assert has_missing_values(["a", None, "c"]) is True
    assert has_missing_values(["a", "b", None]) is False
    assert has_missing_values([]) is False


def test_create_match_stores_hash(repo, client):
    owner = Player("p1", "alice")
    match = repo.create_match(owner)
    key = room_key(match.room_id)
    assert len(match.room_id) == 7
    assert match.status is MatchStatus.WAITING
    assert match.is_turn_of == "p1"
    stored = client.hashes[key]
    assert stored["Status"] == "Waiting"
    assert stored["OpponentsCombinations"] == "{}"
    assert stored["Guesses"] == "{}"
    assert stored["IsTurnOf"] == "p1"
    assert client.expirations[key] == MATCH_EXPIRATION_SECONDS == 3600


def test_get_room_players_round_trip(repo):
    match = repo.create_match(Player("p1", "alice"))
    assert repo.get_room_players(match.room_id) == {"p1": Player("p1", "alice")}


def test_get_room_players_missing(repo):
    with pytest.raises(EmptyResultError):
        repo.get_room_players("nothere")


def test_get_room_players_empty_string(repo, client):
    client.hashes[room_key("r")] = {"Players": ""}
    assert repo.get_room_players("r") == {}


def test_bytes_responses_are_decoded():
    client = FakeRedis(as_bytes=True)
    repo = RedisMatchesRepository(client)
    match = repo.create_match(Player("p1", "alice"))
    assert repo.get_match_status(match.room_id) is MatchStatus.WAITING
    assert repo.get_room_players(match.room_id)["p1"].username == "alice"


def test_set_players_and_fill_room(repo):
    match = repo.create_match(Player("p1", "alice"))
    players = {"p1": Player("p1", "alice"), "p2": Player("p2", "bob")}
    repo.set_players_and_fill_room(SetPlayersCommand(match.room_id, players))
    assert repo.get_room_players(match.room_id) == players
    assert repo.get_match_status(match.room_id) is MatchStatus.FULL_ROOM


def test_get_match_status_missing(repo):
    with pytest.raises(EmptyResultError):
        repo.get_match_status("nothere")


def test_combinations_round_trip(repo):
    match = repo.create_match(Player("p1", "alice"))
    repo.set_player_combination(
        SetOpponentCombinationsCommand(match.room_id, {"p1": "1234", "p2": "5678"})
    )
    loaded = repo.get_players_and_combinations(match.room_id)
    assert loaded.opponents_combinations == {"p1": "1234", "p2": "5678"}
    assert loaded.players == {"p1": Player("p1", "alice")}


def test_get_players_and_combinations_missing(repo, client):
    client.hashes[room_key("r")] = {"Players": "{}"}
    with pytest.raises(EmptyResultError):
        repo.get_players_and_combinations("r")


def test_get_all_but_guesses(repo):
    match = repo.create_match(Player("p1", "alice"))
    repo.change_status_and_turn(match.room_id, MatchStatus.PLAYING, "p2")
    loaded = repo.get_all_but_guesses(match.room_id)
    assert loaded.status is MatchStatus.PLAYING
    assert loaded.is_turn_of == "p2"
    assert loaded.opponents_combinations == {}


def test_get_all_but_guesses_missing(repo):
    with pytest.raises(EmptyResultError):
        repo.get_all_but_guesses("nothere")


def test_set_new_guess_and_get_all(repo):
    match = repo.create_match(Player("p1", "alice"))
    item = Match().new_guess("1234", "1243")
    repo.set_new_guess(SetNewGuessCommand(match.room_id, {"p1": [item]}, "p2", False))
    loaded = repo.get_all(match.room_id)
    assert loaded.guesses == {"p1": [item]}
    assert loaded.is_turn_of == "p2"
    assert loaded.status is MatchStatus.WAITING


def test_set_new_guess_winner_finishes(repo):
    match = repo.create_match(Player("p1", "alice"))
    item = Match().new_guess("1234", "1234")
    repo.set_new_guess(SetNewGuessCommand(match.room_id, {"p1": [item]}, "p2", True))
    loaded = repo.get_all(match.room_id)
    assert loaded.status is MatchStatus.FINISHED
    assert loaded.guesses["p1"][0].is_winner_combination is True


def test_get_all_missing(repo):
    with pytest.raises(EmptyResultError):
        repo.get_all("nothere")


def test_restart_clears_state(repo, client):
    match = repo.create_match(Player("p1", "alice"))
    repo.set_player_combination(SetOpponentCombinationsCommand(match.room_id, {"p1": "1234"}))
    repo.set_new_guess(
        SetNewGuessCommand(match.room_id, {"p1": [GuessesHistoryItem()]}, "p1", True)
    )
    client.expirations.clear()
    repo.restart(match.room_id)
    loaded = repo.get_all(match.room_id)
    assert loaded.status is MatchStatus.FULL_ROOM
    assert loaded.guesses == {}
    assert loaded.opponents_combinations == {}
    assert client.expirations[room_key(match.room_id)] == MATCH_EXPIRATION_SECONDS


def test_restart_renews_expiry_before_reporting_write_error():
    client = FakeRedis(fail_hset=True)
    repo = RedisMatchesRepository(client)
    with pytest.raises(redis.ConnectionError):
        repo.restart("r")
    assert client.expirations[room_key("r")] == MATCH_EXPIRATION_SECONDS


def test_exists_propagates_client_errors():
    client = mock.Mock()
    client.exists.side_effect = redis.ConnectionError("down")
    with pytest.raises(redis.ConnectionError):
        RedisMatchesRepository(client).exists("r")
    client.exists.assert_called_once_with("room:r")


def test_new_redis_storage(client):
    storage = new_redis_storage(client)
    assert isinstance(storage.matches_repository, RedisMatchesRepository)
    assert storage.matches_repository.client is client


@mock.patch("bullscows.store.redis.Redis")
def test_connect_redis_parses_address(redis_cls):
    password = "password"
    client = connect_redis("db.local:6380", password, 2)
    assert client is redis_cls.return_value
    kwargs = redis_cls.call_args.kwargs
    assert kwargs["host"] == "db.local"
    assert kwargs["port"] == 6380
    assert kwargs["password"] == "password"
    assert kwargs["db"] == 2
    client.ping.assert_called_once_with()


@mock.patch("bullscows.store.redis.Redis")
def test_connect_redis_defaults(redis_cls):
    client = connect_redis("", "", 0)
    assert client is redis_cls.return_value
    kwargs = redis_cls.call_args.kwargs
    assert kwargs["host"] == "localhost"
    assert kwargs["port"] == 6379
    assert kwargs["password"] is None
    assert kwargs["db"] == 0


@mock.patch("bullscows.store.redis.Redis")
def test_connect_redis_ping_failure(redis_cls):
    redis_cls.return_value.ping.side_effect = redis.ConnectionError("down")
    with pytest.raises(redis.ConnectionError):
        connect_redis("localhost:6379", "", 0)