"""Messages of the line-based JSON bot protocol and their link to the game model."""

from __future__ import annotations

import enum
import json
from dataclasses import dataclass
from typing import Any, Optional, Union

from cctetris.board import HEIGHT, WIDTH, Board
from cctetris.piece import FallingPiece, Piece, PieceState, RotationState, TspinStatus


class Orientation(enum.Enum):
    NORTH = "north"
    SOUTH = "south"
    EAST = "east"
    WEST = "west"


class Spin(enum.Enum):
    NONE = "none"
    MINI = "mini"
    FULL = "full"


@dataclass(frozen=True)
class PieceLocation:
    kind: Piece
    orientation: Orientation
    x: int
    y: int


@dataclass(frozen=True)
class TbiMove:
    location: PieceLocation
    spin: Spin


@dataclass(frozen=True)
class Start:
    hold: Optional[Piece]
    queue: tuple[Piece, ...]
    combo: int
    back_to_back: bool
    board: tuple[tuple[Optional[str], ...], ...]


@dataclass(frozen=True)
class Stop:
    pass


@dataclass(frozen=True)
class Suggest:
    pass


@dataclass(frozen=True)
class Play:
    mv: TbiMove


@dataclass(frozen=True)
class NewPiece:
    piece: Piece


@dataclass(frozen=True)
class Quit:
    pass


@dataclass(frozen=True)
class Ready:
    name: str
    version: str
    author: str


@dataclass(frozen=True)
class Suggestion:
    moves: tuple[TbiMove, ...]


@dataclass(frozen=True)
class Unknown:
    """Any message of a type this side does not know."""


Message = Union[Start, Stop, Suggest, Play, NewPiece, Quit, Ready, Suggestion, Unknown]


def _field(data: dict, key: str) -> Any:
    if key not in data:
        raise ValueError(f"missing field {key!r}")
    return data[key]


def _object(value: Any, what: str) -> dict:
    if not isinstance(value, dict):
        raise ValueError(f"{what} must be an object")
    return value


def _string(value: Any, what: str) -> str:
    if not isinstance(value, str):
        raise ValueError(f"{what} must be a string")
    return value


def _integer(value: Any, what: str, unsigned: bool = False) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{what} must be an integer")
    if unsigned and value < 0:
        raise ValueError(f"{what} must not be negative")
    return value


def _boolean(value: Any, what: str) -> bool:
    if not isinstance(value, bool):
        raise ValueError(f"{what} must be a boolean")
    return value


def _piece(value: Any) -> Piece:
    if not isinstance(value, str) or value not in Piece.__members__:
        raise ValueError(f"unknown piece {value!r}")
    return Piece[value]


def _enum(cls, value: Any):
    try:
        return cls(value)
    except ValueError:
        raise ValueError(f"unknown {cls.__name__.lower()} {value!r}") from None


def _parse_move(value: Any) -> TbiMove:
    data = _object(value, "move")
    location = _object(_field(data, "location"), "location")
    return TbiMove(
        PieceLocation(
            _piece(_field(location, "type")),
            _enum(Orientation, _field(location, "orientation")),
            _integer(_field(location, "x"), "x"),
            _integer(_field(location, "y"), "y"),
        ),
        _enum(Spin, _field(data, "spin")),
    )


def _parse_cell(value: Any) -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, str) or len(value) != 1:
        raise ValueError(f"a board cell must be null or one character, got {value!r}")
    return value


def _parse_board(value: Any) -> tuple[tuple[Optional[str], ...], ...]:
    if not isinstance(value, list) or len(value) != HEIGHT:
        raise ValueError(f"board must have {HEIGHT} rows")
    rows = []
    for row in value:
        if not isinstance(row, list) or len(row) != WIDTH:
            raise ValueError(f"board rows must have {WIDTH} cells")
        rows.append(tuple(_parse_cell(cell) for cell in row))
    return tuple(rows)


def _parse_start(data: dict) -> Start:
    hold = _field(data, "hold")
    queue = _field(data, "queue")
    if not isinstance(queue, list):
        raise ValueError("queue must be a list")
    return Start(
        hold=None if hold is None else _piece(hold),
        queue=tuple(_piece(p) for p in queue),
        combo=_integer(_field(data, "combo"), "combo", unsigned=True),
        back_to_back=_boolean(_field(data, "back_to_back"), "back_to_back"),
        board=_parse_board(_field(data, "board")),
    )


def _parse_suggestion(data: dict) -> Suggestion:
    moves = _field(data, "moves")
    if not isinstance(moves, list):
        raise ValueError("moves must be a list")
    return Suggestion(tuple(_parse_move(m) for m in moves))


_PARSERS = {
    "start": _parse_start,
    "stop": lambda data: Stop(),
    "suggest": lambda data: Suggest(),
    "play": lambda data: Play(_parse_move(_field(data, "move"))),
    "new-piece": lambda data: NewPiece(_piece(_field(data, "piece"))),
    "quit": lambda data: Quit(),
    "ready": lambda data: Ready(
        _string(_field(data, "name"), "name"),
        _string(_field(data, "version"), "version"),
        _string(_field(data, "author"), "author"),
    ),
    "suggestion": _parse_suggestion,
}


def parse_message(text: str) -> Message:
    """Read one JSON message; types this side does not know come back as Unknown."""
    data = _object(json.loads(text), "message")
    kind = _string(_field(data, "type"), "type")
    parser = _PARSERS.get(kind)
    if parser is None:
        return Unknown()
    return parser(data)


def _move_json(mv: TbiMove) -> dict:
    return {
        "location": {
            "type": mv.location.kind.name,
            "orientation": mv.location.orientation.value,
            "x": mv.location.x,
            "y": mv.location.y,
        },
        "spin": mv.spin.value,
    }


def _payload(message: Message) -> dict:
    if isinstance(message, Start):
        return {
            "type": "start",
            "hold": None if message.hold is None else message.hold.name,
            "queue": [p.name for p in message.queue],
            "combo": message.combo,
            "back_to_back": message.back_to_back,
            "board": [list(row) for row in message.board],
        }
    if isinstance(message, Stop):
        return {"type": "stop"}
    if isinstance(message, Suggest):
        return {"type": "suggest"}
    if isinstance(message, Play):
        return {"type": "play", "move": _move_json(message.mv)}
    if isinstance(message, NewPiece):
        return {"type": "new-piece", "piece": message.piece.name}
    if isinstance(message, Quit):
        return {"type": "quit"}
    if isinstance(message, Ready):
        return {
            "type": "ready",
            "name": message.name,
            "version": message.version,
            "author": message.author,
        }
    if isinstance(message, Suggestion):
        return {"type": "suggestion", "moves": [_move_json(m) for m in message.moves]}
    if isinstance(message, Unknown):
        return {"type": "unknown"}
    raise TypeError(f"not a protocol message: {message!r}")


def dump_message(message: Message) -> str:
    """Write a message as compact single-line JSON."""
    return json.dumps(_payload(message), separators=(",", ":"))


def move_from_falling_piece(piece: FallingPiece) -> TbiMove:
    return TbiMove(
        PieceLocation(
            piece.kind.piece,
            Orientation[piece.kind.rotation.name],
            piece.x,
            piece.y,
        ),
        Spin[piece.tspin.name],
    )


def move_to_falling_piece(mv: TbiMove) -> FallingPiece:
    return FallingPiece(
        PieceState(mv.location.kind, RotationState[mv.location.orientation.name]),
        mv.location.x,
        mv.location.y,
        TspinStatus[mv.spin.name],
    )


def board_from_start(message: Start) -> Board:
    """The board a start message describes."""
    board = Board()
    board.hold_piece = message.hold
    for piece in message.queue:
        board.add_next_piece(piece)
    board.combo = message.combo
    board.b2b_bonus = message.back_to_back
    board.set_field([[cell is not None for cell in row] for row in message.board])
    return board