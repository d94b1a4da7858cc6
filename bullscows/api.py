"""HTTP routes that expose the match service as a JSON API."""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Iterable, Mapping
from typing import Any

from flask import Blueprint, Flask, Response, request

from bullscows.contracts import (
    CreateRoomCommand,
    JoinRoomCommand,
    MakeGuessCommand,
    SetCombinationCommand,
)
from bullscows.services import (
    CannotAddPlayerError,
    ExpectingCombinationsError,
    InvalidCombinationError,
    MatchNotFoundError,
    MatchNotStartedError,
    NotYourTurnError,
    RoomNotFullError,
)

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"
ROOM_ID_LENGTH = 7
INTERNAL_ERROR_MESSAGE = "The server encountered a problem"
NOT_FOUND_MESSAGE = "Resource Not Found"
ALLOWED_METHODS = ("GET", "POST", "PUT", "DELETE", "OPTIONS")
ALLOWED_HEADERS = ("Accept", "Authorization", "Content-Type", "X-CSRF-Token")
EXPOSED_HEADERS = ("Link",)
CORS_MAX_AGE = 300

_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1


class BadRequestError(ValueError):
    """Raised when a request's path or body is malformed."""


def _field_error(struct: str, field: str, tag: str) -> BadRequestError:
    key = f"{struct}.{field}" if struct else field
    return BadRequestError(
        f"Key: '{key}' Error:Field validation for '{field}' failed on the '{tag}' tag"
    )


def validate_room_id(room_id: str) -> str:
    """Return the room id if it is present and seven characters long."""
    if not room_id:
        raise _field_error("", "RoomId", "required")
    if len(room_id) != ROOM_ID_LENGTH:
        raise _field_error("", "RoomId", "len")
    return room_id


def _json_kind(value: Any) -> str:
    if isinstance(value, bool):
        return "bool"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list):
        return "array"
    return "object"


def _read_object(struct: str) -> dict[str, Any]:
    """Decode the first JSON value of the request body as an object."""
    text = request.get_data(as_text=True).lstrip()
    if not text:
        raise BadRequestError("EOF")
    try:
        value, _ = json.JSONDecoder().raw_decode(text)
    except json.JSONDecodeError as error:
        raise BadRequestError(str(error)) from error
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise BadRequestError(f"cannot decode {_json_kind(value)} into {struct}")
    return value


def _lookup(data: Mapping[str, Any], name: str) -> Any:
    if name in data:
        return data[name]
    folded = name.casefold()
    return next(
        (value for key, value in data.items() if key.casefold() == folded), None
    )


def _string_field(data: Mapping[str, Any], name: str, struct: str) -> str:
    value = _lookup(data, name)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise BadRequestError(
            f"cannot decode {_json_kind(value)} into field {struct}.{name} of type string"
        )
    return value


def _int_field(data: Mapping[str, Any], name: str, struct: str) -> int:
    value = _lookup(data, name)
    if value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, int):
        raise BadRequestError(
            f"cannot decode {_json_kind(value)} into field {struct}.{name} of type int"
        )
    if not _INT64_MIN <= value <= _INT64_MAX:
        raise BadRequestError(
            f"cannot decode number {value} into field {struct}.{name} of type int"
        )
    return value


def _json_response(status: int, payload: Any) -> Response:
    body = json.dumps(payload, ensure_ascii=False) + "\n"
    return Response(body, status=status, content_type="application/json")


def _bad_request(error: Exception) -> Response:
    logger.warning(
        "bad request error method=%s path=%s error=%s", request.method, request.path, error
    )
    return _json_response(400, {"error": str(error)})


def _not_found(error: Exception) -> Response:
    logger.warning(
        "not found error method=%s path=%s error=%s", request.method, request.path, error
    )
    return _json_response(404, {"error": NOT_FOUND_MESSAGE})


def _conflict(error: Exception) -> Response:
    logger.error(
        "conflict error method=%s path=%s error=%s", request.method, request.path, error
    )
    return _json_response(409, {"error": str(error)})


def _internal(error: Exception) -> Response:
    logger.error(
        "internal server error method=%s path=%s error=%s",
        request.method,
        request.path,
        error,
    )
    return _json_response(500, {"error": INTERNAL_ERROR_MESSAGE})


_Reply = Callable[[Exception], Response]


def _handle(
    action: Callable[[], Any],
    status: int,
    failures: Mapping[type[Exception], _Reply],
) -> Response:
    """Run an action and turn its result or failure into a JSON response."""
    try:
        result = action()
    except BadRequestError as error:
        return _bad_request(error)
    except Exception as error:
        for kind, reply in failures.items():
            if isinstance(error, kind):
                return reply(error)
        return _internal(error)
    return _json_response(status, result.to_dict())


def _matches_blueprint(service: Any) -> Blueprint:
    blueprint = Blueprint("matches", __name__, url_prefix=API_PREFIX)

    @blueprint.route("/matches/create", methods=["POST"])
    def create_match() -> Response:
        def action():
            struct = "CreateRoomCommand"
            data = _read_object(struct)
            username = _string_field(data, "username", struct)
            if not username:
                raise _field_error(struct, "Username", "required")
            return service.create_room(CreateRoomCommand(username=username))

        return _handle(action, 200, {})

    @blueprint.route("/matches/join/<room_id>", methods=["PUT"])
    def join_match(room_id: str) -> Response:
        def action():
            validate_room_id(room_id)
            struct = "JoinRoomCommand"
            data = _read_object(struct)
            username = _string_field(data, "username", struct)
            if not username:
                raise _field_error(struct, "Username", "required")
            return service.join_room(JoinRoomCommand(username=username, room_id=room_id))

        return _handle(
            action,
            200,
            {MatchNotFoundError: _not_found, CannotAddPlayerError: _conflict},
        )

    @blueprint.route("/matches/setCombination/<room_id>", methods=["PUT"])
    def set_combination(room_id: str) -> Response:
        def action():
            validate_room_id(room_id)
            struct = "SetCombinationCommand"
            data = _read_object(struct)
            player_id = _string_field(data, "player_id", struct)
            combination = _int_field(data, "combination", struct)
            if not player_id:
                raise _field_error(struct, "PlayerId", "required")
            if not combination:
                raise _field_error(struct, "Combination", "required")
            return service.set_combination(
                SetCombinationCommand(
                    player_id=player_id, combination=combination, room_id=room_id
                )
            )

        return _handle(
            action,
            202,
            {
                RoomNotFullError: _conflict,
                InvalidCombinationError: _bad_request,
                MatchNotFoundError: _not_found,
            },
        )

    @blueprint.route("/matches/startGame/<room_id>", methods=["PUT"])
    def start_game(room_id: str) -> Response:
        def action():
            validate_room_id(room_id)
            return service.start_game(room_id)

        return _handle(
            action,
            202,
            {
                RoomNotFullError: _conflict,
                MatchNotFoundError: _not_found,
                ExpectingCombinationsError: _conflict,
            },
        )

    @blueprint.route("/matches/makeGuess/<room_id>", methods=["PUT"])
    def make_guess(room_id: str) -> Response:
        def action():
            validate_room_id(room_id)
            struct = "MakeGuessCommand"
            data = _read_object(struct)
            return service.make_guess(
                MakeGuessCommand(
                    guess=_int_field(data, "guess", struct),
                    player_id=_string_field(data, "player_id", struct),
                    room_id=room_id,
                )
            )

        return _handle(
            action,
            200,
            {
                NotYourTurnError: _conflict,
                MatchNotStartedError: _conflict,
                MatchNotFoundError: _not_found,
                InvalidCombinationError: _bad_request,
            },
        )

    @blueprint.route("/matches/restart/<room_id>", methods=["PUT"])
    def restart_game(room_id: str) -> Response:
        def action():
            validate_room_id(room_id)
            return service.restart_game(room_id)

        return _handle(action, 200, {MatchNotFoundError: _not_found})

    return blueprint


def _install_cors(app: Flask, allowed_origins: Iterable[str]) -> None:
    origins = set(allowed_origins)
    allow_all = "*" in origins
    allowed_headers = {header.casefold() for header in ALLOWED_HEADERS}

    def origin_allowed(origin: str) -> bool:
        return allow_all or origin in origins

    def is_preflight() -> bool:
        return (
            request.method == "OPTIONS"
            and "Access-Control-Request-Method" in request.headers
        )

    @app.before_request
    def preflight() -> Response | None:
        if not is_preflight():
            return None
        response = Response(status=204)
        response.headers.add(
            "Vary",
            "Origin, Access-Control-Request-Method, Access-Control-Request-Headers",
        )
        origin = request.headers.get("Origin", "")
        if not origin or not origin_allowed(origin):
            return response
        method = request.headers["Access-Control-Request-Method"].upper()
        if method not in ALLOWED_METHODS:
            return response
        requested = [
            header.strip()
            for header in request.headers.get("Access-Control-Request-Headers", "").split(",")
            if header.strip()
        ]
        if any(header.casefold() not in allowed_headers for header in requested):
            return response
        response.headers["Access-Control-Allow-Origin"] = "*" if allow_all else origin
        response.headers["Access-Control-Allow-Methods"] = method
        if requested:
            response.headers["Access-Control-Allow-Headers"] = ", ".join(requested)
        response.headers["Access-Control-Max-Age"] = str(CORS_MAX_AGE)
        return response

    @app.after_request
    def actual_request(response: Response) -> Response:
        if is_preflight():
            return response
        origin = request.headers.get("Origin", "")
        if not origin:
            return response
        response.headers.add("Vary", "Origin")
        if origin_allowed(origin) and request.method in ALLOWED_METHODS:
            response.headers["Access-Control-Allow-Origin"] = "*" if allow_all else origin
            response.headers["Access-Control-Expose-Headers"] = ", ".join(EXPOSED_HEADERS)
        return response


def create_app(service: Any, allowed_origins: Iterable[str] = ()) -> Flask:
    """Build the web application serving the match routes under /api/v1."""
    app = Flask(__name__)
    app.register_blueprint(_matches_blueprint(service))
    _install_cors(app, allowed_origins)
    return app