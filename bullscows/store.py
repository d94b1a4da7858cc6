"""Redis-backed persistence for matches."""

from __future__ import annotations

import json
from collections.abc import Sequence
from typing import Any

import redis

from bullscows.contracts import (
    SetNewGuessCommand,
    SetOpponentCombinationsCommand,
    SetPlayersCommand,
    Storage,
)
from bullscows.domain import (
    EmptyResultError,
    Match,
    MatchStatus,
    Player,
    generate_match_id,
    guesses_from_json,
    guesses_to_json,
    players_from_json,
    players_to_json,
)

MATCH_EXPIRATION_SECONDS = 60 * 60
DEFAULT_REDIS_HOST = "localhost"
DEFAULT_REDIS_PORT = 6379


def room_key(room_id: str) -> str:
    """Return the Redis hash key that holds a room."""
    return f"room:{room_id}"


def has_missing_values(values: Sequence[Any]) -> bool:
    """Tell whether any value but the last one is missing."""
    return any(value is None for value in values[:-1])


def _text(value: Any) -> str:
    if isinstance(value, bytes):
        return value.decode("utf-8")
    return "" if value is None else str(value)


def _combinations_to_json(combinations: dict[str, str]) -> str:
    return json.dumps(combinations, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def _combinations_from_json(text: str) -> dict[str, str]:
    data = json.loads(text)
    if data is None:
        return {}
    return {key: str(value) for key, value in data.items()}


class RedisMatchesRepository:
    """Stores each match as a Redis hash under ``room:<id>``."""

    def __init__(self, client: Any) -> None:
        self.client = client

    def create_match(self, player: Player) -> Match:
        match = Match(
            room_id=generate_match_id(),
            players={player.id: player},
            status=MatchStatus.WAITING,
            is_turn_of=player.id,
        )
        key = room_key(match.room_id)
        self.client.hset(
            key,
            mapping={
                "Players": players_to_json(match.players),
                "OpponentsCombinations": _combinations_to_json(match.opponents_combinations),
                "Guesses": guesses_to_json(match.guesses),
                "Status": match.status.value,
                "IsTurnOf": match.is_turn_of,
            },
        )
        self.client.expire(key, MATCH_EXPIRATION_SECONDS)
        return match

    def get_room_players(self, room_id: str) -> dict[str, Player]:
        result = self.client.hget(room_key(room_id), "Players")
        if result is None:
            raise EmptyResultError()
        text = _text(result)
        return players_from_json(text) if text else {}

    def set_players_and_fill_room(self, command: SetPlayersCommand) -> None:
        self.client.hset(
            room_key(command.room_id),
            mapping={
                "Players": players_to_json(command.players),
                "Status": MatchStatus.FULL_ROOM.value,
            },
        )

    def get_match_status(self, room_id: str) -> MatchStatus:
        result = self.client.hget(room_key(room_id), "Status")
        if result is None:
            raise EmptyResultError()
        return MatchStatus(_text(result))

    def set_player_combination(self, command: SetOpponentCombinationsCommand) -> None:
        self.client.hset(
            room_key(command.room_id),
            mapping={"OpponentsCombinations": _combinations_to_json(command.combinations)},
        )

    def get_players_and_combinations(self, room_id: str) -> Match:
        players, combinations = self.client.hmget(
            room_key(room_id), ["Players", "OpponentsCombinations"]
        )
        if players is None or combinations is None:
            raise EmptyResultError()
        return Match(
            players=players_from_json(_text(players)),
            opponents_combinations=_combinations_from_json(_text(combinations)),
        )

    def get_all_but_guesses(self, room_id: str) -> Match:
        results = self.client.hmget(
            room_key(room_id), ["Players", "OpponentsCombinations", "Status", "IsTurnOf"]
        )
        if has_missing_values(results):
            raise EmptyResultError()
        players, combinations, status, is_turn_of = results
        return Match(
            players=players_from_json(_text(players)),
            opponents_combinations=_combinations_from_json(_text(combinations)),
            status=MatchStatus(_text(status)),
            is_turn_of=_text(is_turn_of),
        )

    def change_status_and_turn(
        self, room_id: str, status: MatchStatus, is_turn_of: str
    ) -> None:
        self.client.hset(
            room_key(room_id),
            mapping={"Status": MatchStatus(status).value, "IsTurnOf": is_turn_of},
        )

    def get_all(self, room_id: str) -> Match:
        results = self.client.hmget(
            room_key(room_id),
            ["Players", "OpponentsCombinations", "Guesses", "Status", "IsTurnOf"],
        )
        if has_missing_values(results):
            raise EmptyResultError()
        players, combinations, guesses, status, is_turn_of = results
        return Match(
            players=players_from_json(_text(players)),
            opponents_combinations=_combinations_from_json(_text(combinations)),
            guesses=guesses_from_json(_text(guesses)),
            status=MatchStatus(_text(status)),
            is_turn_of=_text(is_turn_of),
        )

    def set_new_guess(self, command: SetNewGuessCommand) -> None:
        mapping = {
            "Guesses": guesses_to_json(command.guesses),
            "IsTurnOf": command.is_turn_of,
        }
        if command.is_winner:
            mapping["Status"] = MatchStatus.FINISHED.value
        self.client.hset(room_key(command.room_id), mapping=mapping)

    def exists(self, room_id: str) -> None:
        """Issue an EXISTS query; only a failing query raises."""
        self.client.exists(room_key(room_id))

    def restart(self, room_id: str) -> None:
        """Clear combinations and guesses, reopen the room and renew its expiry."""
        key = room_key(room_id)
        write_error: Exception | None = None
        try:
            self.client.hset(
                key,
                mapping={
                    "OpponentsCombinations": _combinations_to_json({}),
                    "Guesses": guesses_to_json({}),
                    "Status": MatchStatus.FULL_ROOM.value,
                },
            )
        except Exception as error:  # reported after the expiry is renewed
            write_error = error
        self.client.expire(key, MATCH_EXPIRATION_SECONDS)
        if write_error is not None:
            raise write_error


def _split_address(addr: str) -> tuple[str, int]:
    if not addr:
        return DEFAULT_REDIS_HOST, DEFAULT_REDIS_PORT
    host, separator, port = addr.rpartition(":")
    if not separator:
        return addr, DEFAULT_REDIS_PORT
    return host or DEFAULT_REDIS_HOST, int(port) if port else DEFAULT_REDIS_PORT


def connect_redis(addr: str, password: str, db: int) -> redis.Redis:
    """Open a Redis client for ``host:port`` and check it answers a ping."""
    host, port = _split_address(addr)
    client = redis.Redis(
        host=host,
        port=port,
        password=password or None,
        db=db,
        decode_responses=True,
    )
    client.ping()
    return client


def new_redis_storage(client: Any) -> Storage:
    return Storage(matches_repository=RedisMatchesRepository(client))