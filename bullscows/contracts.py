"""Commands, responses and the storage interface shared by the layers."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

from bullscows.domain import GuessesHistoryItem, Match, MatchStatus, Player


@dataclass
class PlayerResponse:
    username: str
    id: str

    def to_dict(self) -> dict[str, str]:
        return {"username": self.username, "id": self.id}


@dataclass
class CreateRoomCommand:
    username: str


@dataclass
class CreateRoomResponse:
    room_id: str
    player: PlayerResponse

    def to_dict(self) -> dict[str, Any]:
        return {"room_id": self.room_id, "player": self.player.to_dict()}


@dataclass
class JoinRoomCommand:
    username: str
    room_id: str = ""


@dataclass
class JoinRoomResponse:
    room_id: str
    player: PlayerResponse

    def to_dict(self) -> dict[str, Any]:
        return {"room_id": self.room_id, "player": self.player.to_dict()}


@dataclass
class SetCombinationCommand:
    player_id: str
    combination: int
    room_id: str = ""


@dataclass
class SuccessResponse:
    success: bool

    def to_dict(self) -> dict[str, bool]:
        return {"success": self.success}


@dataclass
class StartMatchResponse:
    is_turn_of: str

    def to_dict(self) -> dict[str, str]:
        return {"is_turn_of": self.is_turn_of}


@dataclass
class MakeGuessCommand:
    guess: int
    player_id: str
    room_id: str = ""


@dataclass
class MakeGuessResponse:
    is_winner: bool
    guesses: dict[str, list[GuessesHistoryItem]] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "is_winner": self.is_winner,
            "guesses": {
                key: [item.to_dict() for item in self.guesses[key]]
                for key in sorted(self.guesses)
            },
        }


@dataclass
class SetPlayersCommand:
    room_id: str
    players: dict[str, Player]


@dataclass
class SetOpponentCombinationsCommand:
    room_id: str
    combinations: dict[str, str]


@dataclass
class SetNewGuessCommand:
    room_id: str
    guesses: dict[str, list[GuessesHistoryItem]]
    is_turn_of: str
    is_winner: bool


@runtime_checkable
class MatchesRepositoryProtocol(Protocol):
    """Persistence operations the match service relies on."""

    def create_match(self, player: Player) -> Match: ...

    def get_room_players(self, room_id: str) -> dict[str, Player]: ...

    def set_players_and_fill_room(self, command: SetPlayersCommand) -> None: ...

    def get_match_status(self, room_id: str) -> MatchStatus: ...

    def set_player_combination(self, command: SetOpponentCombinationsCommand) -> None: ...

    def get_players_and_combinations(self, room_id: str) -> Match: ...

    def get_all_but_guesses(self, room_id: str) -> Match: ...

    def change_status_and_turn(
        self, room_id: str, status: MatchStatus, is_turn_of: str
    ) -> None: ...

    def get_all(self, room_id: str) -> Match: ...

    def set_new_guess(self, command: SetNewGuessCommand) -> None: ...

    def exists(self, room_id: str) -> None: ...

    def restart(self, room_id: str) -> None: ...


@dataclass
class Storage:
    matches_repository: MatchesRepositoryProtocol