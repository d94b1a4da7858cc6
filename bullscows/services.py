"""Match use cases: rooms, combinations, turns and guesses."""

from __future__ import annotations

from bullscows import domain
from bullscows.contracts import (
    CreateRoomCommand,
    CreateRoomResponse,
    JoinRoomCommand,
    JoinRoomResponse,
    MakeGuessCommand,
    MakeGuessResponse,
    PlayerResponse,
    SetCombinationCommand,
    SetNewGuessCommand,
    SetOpponentCombinationsCommand,
    SetPlayersCommand,
    StartMatchResponse,
    Storage,
    SuccessResponse,
)
from bullscows.domain import EmptyResultError, MatchStatus, Player


class ServiceError(Exception):
    """Base class for errors the match service reports to callers."""

    default_message = "match service error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)


class CannotAddPlayerError(ServiceError):
    default_message = "can not add another player to this room"


class RoomNotFullError(ServiceError):
    default_message = "match is being played already or room is not completed"


class InvalidCombinationError(ServiceError):
    default_message = "invalid combination"


class MatchNotFoundError(ServiceError):
    default_message = "match not found"


class ExpectingCombinationsError(ServiceError):
    default_message = "can not start game until players set combinations"


class MatchNotStartedError(ServiceError):
    default_message = "match has not started yet or has finished already"


class MatchFinishedError(ServiceError):
    default_message = "match is finished"


class NotYourTurnError(ServiceError):
    default_message = "this is not your turn"


def _checked_combination(number: int) -> str:
    text = str(number)
    try:
        domain.validate_combination(text)
    except (domain.InvalidCombinationError, domain.RepeatedDigitError) as error:
        raise InvalidCombinationError(
            f"{InvalidCombinationError.default_message}: {error}"
        ) from error
    return text


class MatchesService:
    """Runs the game rules on top of a match repository."""

    def __init__(self, storage: Storage) -> None:
        self.storage = storage

    @property
    def _repository(self):
        return self.storage.matches_repository

    def create_room(self, command: CreateRoomCommand) -> CreateRoomResponse:
        player_id = domain.generate_player_id()
        match = self._repository.create_match(
            Player(id=player_id, username=command.username)
        )
        return CreateRoomResponse(
            room_id=match.room_id,
            player=PlayerResponse(username=command.username, id=player_id),
        )

    def join_room(self, command: JoinRoomCommand) -> JoinRoomResponse:
        try:
            players = self._repository.get_room_players(command.room_id)
        except EmptyResultError as error:
            raise MatchNotFoundError() from error

        if len(players) != 1:
            raise CannotAddPlayerError()

        new_player = Player(id=domain.generate_player_id(), username=command.username)
        players[new_player.id] = new_player

        self._repository.set_players_and_fill_room(
            SetPlayersCommand(room_id=command.room_id, players=players)
        )
        return JoinRoomResponse(
            room_id=command.room_id,
            player=PlayerResponse(username=new_player.username, id=new_player.id),
        )

    def set_combination(self, command: SetCombinationCommand) -> SuccessResponse:
        combination = _checked_combination(command.combination)

        try:
            status = self._repository.get_match_status(command.room_id)
        except EmptyResultError as error:
            raise MatchNotFoundError() from error

        if status != MatchStatus.FULL_ROOM:
            raise RoomNotFullError()

        match = self._repository.get_players_and_combinations(command.room_id)
        opponent = next(
            (key for key in match.players if key != command.player_id), None
        )
        if opponent is not None:
            match.opponents_combinations[opponent] = combination

        self._repository.set_player_combination(
            SetOpponentCombinationsCommand(
                room_id=command.room_id,
                combinations=match.opponents_combinations,
            )
        )
        return SuccessResponse(success=True)

    def start_game(self, room_id: str) -> StartMatchResponse:
        try:
            match = self._repository.get_all_but_guesses(room_id)
        except EmptyResultError as error:
            raise MatchNotFoundError() from error

        if match.status != MatchStatus.FULL_ROOM:
            raise RoomNotFullError()

        if len(match.opponents_combinations) != 2:
            raise ExpectingCombinationsError()

        try:
            is_turn_of = match.random_player()
        except ValueError as error:
            raise RoomNotFullError() from error

        self._repository.change_status_and_turn(room_id, MatchStatus.PLAYING, is_turn_of)
        return StartMatchResponse(is_turn_of=is_turn_of)

    def restart_game(self, room_id: str) -> SuccessResponse:
        try:
            self._repository.exists(room_id)
        except Exception as error:
            raise MatchNotFoundError() from error

        self._repository.restart(room_id)
        return SuccessResponse(success=True)

    def make_guess(self, command: MakeGuessCommand) -> MakeGuessResponse:
        guess = _checked_combination(command.guess)

        try:
            match = self._repository.get_all(command.room_id)
        except EmptyResultError as error:
            raise MatchNotFoundError() from error

        if command.player_id not in match.players:
            raise MatchNotFoundError()

        if match.status != MatchStatus.PLAYING:
            raise MatchNotStartedError()

        if match.is_turn_of != command.player_id:
            raise NotYourTurnError()

        opponent_combination = match.opponents_combinations.get(command.player_id)
        if opponent_combination is None:
            raise MatchNotStartedError()

        try:
            item = match.new_guess(guess, opponent_combination)
        except domain.InvalidCombinationError as error:
            raise InvalidCombinationError() from error

        match.guesses.setdefault(command.player_id, []).append(item)

        others = [key for key in match.players if key != match.is_turn_of]
        if not others:
            raise MatchNotStartedError()
        new_turn_of = others[-1]

        self._repository.set_new_guess(
            SetNewGuessCommand(
                room_id=command.room_id,
                guesses=match.guesses,
                is_turn_of=new_turn_of,
                is_winner=item.is_winner_combination,
            )
        )
        return MakeGuessResponse(
            is_winner=item.is_winner_combination, guesses=match.guesses
        )