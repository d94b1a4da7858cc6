"""Core game model: players, matches, combinations and guess scoring."""

from __future__ import annotations

import json
import secrets
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

MATCH_ID_LENGTH = 7
MATCH_ID_CHARSET = "abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"
COMBINATION_LENGTH = 4


class EmptyResultError(LookupError):
    """Raised when storage holds nothing for the requested key."""

    def __init__(self, message: str = "empty result") -> None:
        super().__init__(message)


class InvalidCombinationError(ValueError):
    """Raised when a combination does not have exactly four digits."""

    def __init__(self, message: str = "combination must have only 4 digits") -> None:
        super().__init__(message)


class RepeatedDigitError(ValueError):
    """Raised when a combination repeats a digit."""

    def __init__(self, message: str = "number can not be repeated") -> None:
        super().__init__(message)


class BullAndCowType(str, Enum):
    BULL = "bull"
    COW = "cow"
    NONE = "none"


class MatchStatus(str, Enum):
    WAITING = "Waiting"
    FULL_ROOM = "FullRoom"
    PLAYING = "Playing"
    FINISHED = "Finished"


@dataclass
class BullAndCowGuess:
    """One scored digit of a guess."""

    value: str
    type: BullAndCowType

    def to_dict(self) -> dict[str, Any]:
        return {"Value": self.value, "Type": self.type.value}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> BullAndCowGuess:
        return cls(value=data.get("Value", ""), type=BullAndCowType(data.get("Type")))


@dataclass
class GuessesHistoryItem:
    """A scored guess and whether it hit the combination exactly."""

    guess: list[BullAndCowGuess] = field(default_factory=list)
    is_winner_combination: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "Guess": [item.to_dict() for item in self.guess],
            "IsWinnerCombination": self.is_winner_combination,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> GuessesHistoryItem:
        return cls(
            guess=[BullAndCowGuess.from_dict(item) for item in data.get("Guess") or []],
            is_winner_combination=bool(data.get("IsWinnerCombination", False)),
        )


@dataclass
class Player:
    id: str
    username: str

    def to_dict(self) -> dict[str, str]:
        return {"Id": self.id, "Username": self.username}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Player:
        return cls(id=data.get("Id", ""), username=data.get("Username", ""))


@dataclass
class Match:
    """State of one room."""

    room_id: str = ""
    players: dict[str, Player] = field(default_factory=dict)
    opponents_combinations: dict[str, str] = field(default_factory=dict)
    guesses: dict[str, list[GuessesHistoryItem]] = field(default_factory=dict)
    status: MatchStatus | None = None
    is_turn_of: str = ""

    def random_player(self) -> str:
        """Pick one of the two players' ids to take the first turn."""
        if len(self.players) != 2:
            raise ValueError("match needs exactly two players")
        ids = [player.id for player in self.players.values()]
        return ids[time.time_ns() % 2]

    def new_guess(self, guess: str, compared_combination: str) -> GuessesHistoryItem:
        """Score a guess against the combination it tries to find."""
        if len(guess) != COMBINATION_LENGTH or len(compared_combination) != COMBINATION_LENGTH:
            raise InvalidCombinationError()
        digits = set(compared_combination)
        scored = []
        for guess_digit, combination_digit in zip(guess, compared_combination):
            if guess_digit == combination_digit:
                kind = BullAndCowType.BULL
            elif guess_digit in digits:
                kind = BullAndCowType.COW
            else:
                kind = BullAndCowType.NONE
            scored.append(BullAndCowGuess(guess_digit, kind))
        bulls = sum(1 for item in scored if item.type is BullAndCowType.BULL)
        return GuessesHistoryItem(guess=scored, is_winner_combination=bulls == COMBINATION_LENGTH)


def generate_match_id() -> str:
    """Return a random seven-character alphanumeric room id."""
    return "".join(secrets.choice(MATCH_ID_CHARSET) for _ in range(MATCH_ID_LENGTH))


def generate_player_id() -> str:
    return str(uuid.uuid4())


def validate_combination(combination: str) -> None:
    """Raise unless the combination has four characters, none repeated."""
    if len(combination) != COMBINATION_LENGTH:
        raise InvalidCombinationError()
    seen: set[str] = set()
    for digit in combination:
        if digit in seen:
            raise RepeatedDigitError()
        seen.add(digit)


def _dumps(value: Any) -> str:
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


def players_to_json(players: dict[str, Player]) -> str:
    return _dumps({key: players[key].to_dict() for key in sorted(players)})


def players_from_json(text: str) -> dict[str, Player]:
    data = json.loads(text)
    if data is None:
        return {}
    return {key: Player.from_dict(value) for key, value in data.items()}


def guesses_to_json(guesses: dict[str, list[GuessesHistoryItem]]) -> str:
    return _dumps(
        {key: [item.to_dict() for item in guesses[key]] for key in sorted(guesses)}
    )


def guesses_from_json(text: str) -> dict[str, list[GuessesHistoryItem]]:
    data = json.loads(text)
    if data is None:
        return {}
    return {
        key: [GuessesHistoryItem.from_dict(item) for item in items or []]
        for key, items in data.items()
    }