"""Pieces, rotation states and the movement rules of a falling piece."""

from __future__ import annotations

import enum
import random
from dataclasses import dataclass, replace
from typing import Optional, Protocol, Sequence


class BoardLike(Protocol):
    """What piece movement needs to know about a playfield."""

    column_heights: Sequence[int]

    def occupied(self, x: int, y: int) -> bool: ...

    def obstructed(self, piece: "FallingPiece") -> bool: ...


class CellColor(enum.Enum):
    """Colour of a single playfield cell."""

    I = "I"
    O = "O"
    T = "T"
    L = "L"
    J = "J"
    S = "S"
    Z = "Z"
    GARBAGE = "garbage"
    UNCLEARABLE = "unclearable"
    EMPTY = "empty"


class Piece(enum.IntEnum):
    """The seven tetrominoes, ordered as they are ranked everywhere else."""

    I = 0
    O = 1
    T = 2
    L = 3
    J = 4
    S = 5
    Z = 6

    def to_char(self) -> str:
        return self.name

    def color(self) -> CellColor:
        return CellColor[self.name]


class RotationState(enum.IntEnum):
    NORTH = 0
    SOUTH = 1
    EAST = 2
    WEST = 3

    def cw(self) -> "RotationState":
        return _CW_ROTATION[self]

    def ccw(self) -> "RotationState":
        return _CCW_ROTATION[self]

    def mini_tspin_corners(self) -> tuple[tuple[int, int], tuple[int, int]]:
        return _MINI_CORNERS[self]

    def non_mini_tspin_corners(self) -> tuple[tuple[int, int], tuple[int, int]]:
        return _NON_MINI_CORNERS[self]


_CW_ROTATION = {
    RotationState.NORTH: RotationState.EAST,
    RotationState.EAST: RotationState.SOUTH,
    RotationState.SOUTH: RotationState.WEST,
    RotationState.WEST: RotationState.NORTH,
}
_CCW_ROTATION = {after: before for before, after in _CW_ROTATION.items()}

_MINI_CORNERS = {
    RotationState.NORTH: ((-1, 1), (1, 1)),
    RotationState.EAST: ((1, 1), (1, -1)),
    RotationState.SOUTH: ((1, -1), (-1, -1)),
    RotationState.WEST: ((-1, -1), (-1, 1)),
}
_NON_MINI_CORNERS = {
    RotationState.SOUTH: ((-1, 1), (1, 1)),
    RotationState.WEST: ((1, 1), (1, -1)),
    RotationState.NORTH: ((1, -1), (-1, -1)),
    RotationState.EAST: ((-1, -1), (-1, 1)),
}


class TspinStatus(enum.Enum):
    NONE = "none"
    MINI = "mini"
    FULL = "full"


class Direction(enum.Enum):
    UP = "up"
    DOWN = "down"
    LEFT = "left"
    RIGHT = "right"

    def cw(self) -> "Direction":
        return _CW_DIRECTION[self]

    def ccw(self) -> "Direction":
        return _CCW_DIRECTION[self]

    def flip(self) -> "Direction":
        return _CW_DIRECTION[_CW_DIRECTION[self]]


_CW_DIRECTION = {
    Direction.UP: Direction.RIGHT,
    Direction.RIGHT: Direction.DOWN,
    Direction.DOWN: Direction.LEFT,
    Direction.LEFT: Direction.UP,
}
_CCW_DIRECTION = {after: before for before, after in _CW_DIRECTION.items()}


_BASE_CELLS = {
    Piece.I: ((-1, 0), (0, 0), (1, 0), (2, 0)),
    Piece.O: ((0, 0), (1, 0), (0, 1), (1, 1)),
    Piece.T: ((-1, 0), (0, 0), (1, 0), (0, 1)),
    Piece.L: ((-1, 0), (0, 0), (1, 0), (1, 1)),
    Piece.J: ((-1, 0), (0, 0), (1, 0), (-1, 1)),
    Piece.S: ((-1, 0), (0, 0), (0, 1), (1, 1)),
    Piece.Z: ((-1, 1), (0, 1), (0, 0), (1, 0)),
}

_CELLS: dict[tuple[Piece, RotationState], tuple[tuple[int, int], ...]] = {}
for _piece, _base in _BASE_CELLS.items():
    _CELLS[_piece, RotationState.NORTH] = _base
    _CELLS[_piece, RotationState.SOUTH] = tuple((-x, -y) for x, y in _base)
    _CELLS[_piece, RotationState.EAST] = tuple((y, -x) for x, y in _base)
    _CELLS[_piece, RotationState.WEST] = tuple((-y, x) for x, y in _base)

_U, _D, _L, _R = Direction.UP, Direction.DOWN, Direction.LEFT, Direction.RIGHT
_BASE_CONNECTIONS = {
    Piece.I: ({_R}, {_L, _R}, {_L, _R}, {_L}),
    Piece.O: ({_R, _U}, {_L, _U}, {_R, _D}, {_L, _D}),
    Piece.L: ({_R}, {_L, _R}, {_L, _U}, {_D}),
    Piece.J: ({_R, _U}, {_L, _R}, {_L}, {_D}),
    Piece.T: ({_R}, {_L, _R, _U}, {_L}, {_D}),
    Piece.S: ({_R}, {_L, _U}, {_D, _R}, {_L}),
    Piece.Z: ({_R}, {_L, _D}, {_U, _R}, {_L}),
}

_ROTATION_POINTS = {
    (Piece.O, RotationState.NORTH): ((0, 0),) * 5,
    (Piece.O, RotationState.EAST): ((0, -1),) * 5,
    (Piece.O, RotationState.SOUTH): ((-1, -1),) * 5,
    (Piece.O, RotationState.WEST): ((-1, 0),) * 5,
    (Piece.I, RotationState.NORTH): ((0, 0), (-1, 0), (2, 0), (-1, 0), (2, 0)),
    (Piece.I, RotationState.EAST): ((-1, 0), (0, 0), (0, 0), (0, 1), (0, -2)),
    (Piece.I, RotationState.SOUTH): ((-1, 1), (1, 1), (-2, 1), (1, 0), (-2, 0)),
    (Piece.I, RotationState.WEST): ((0, 1), (0, 1), (0, 1), (0, -1), (0, 2)),
}
_COMMON_ROTATION_POINTS = {
    RotationState.NORTH: ((0, 0),) * 5,
    RotationState.EAST: ((0, 0), (1, 0), (1, -1), (0, 2), (1, 2)),
    RotationState.SOUTH: ((0, 0),) * 5,
    RotationState.WEST: ((0, 0), (-1, 0), (-1, -1), (0, 2), (-1, 2)),
}


@dataclass(frozen=True)
class PieceState:
    """A piece kind together with its orientation."""

    piece: Piece
    rotation: RotationState

    def cw(self) -> "PieceState":
        return PieceState(self.piece, self.rotation.cw())

    def ccw(self) -> "PieceState":
        return PieceState(self.piece, self.rotation.ccw())

    def cells(self) -> tuple[tuple[int, int], ...]:
        """Cells occupied relative to the first rotation point."""
        return _CELLS[self.piece, self.rotation]

    def cells_with_connections(
        self,
    ) -> tuple[tuple[int, int, frozenset[Direction]], ...]:
        """Cells with the directions in which each joins a neighbouring cell."""
        if self.rotation is RotationState.EAST:
            turn = Direction.cw
        elif self.rotation is RotationState.SOUTH:
            turn = Direction.flip
        elif self.rotation is RotationState.WEST:
            turn = Direction.ccw
        else:
            turn = None
        result = []
        for (x, y), directions in zip(self.cells(), _BASE_CONNECTIONS[self.piece]):
            turned = frozenset(turn(d) for d in directions) if turn else frozenset(directions)
            result.append((x, y, turned))
        return tuple(result)

    def rotation_points(self) -> tuple[tuple[int, int], ...]:
        """The five rotation points; the first is always tried first."""
        points = _ROTATION_POINTS.get((self.piece, self.rotation))
        if points is None:
            points = _COMMON_ROTATION_POINTS[self.rotation]
        return points


@dataclass(frozen=True)
class FallingPiece:
    """A piece placed on the playfield. Movements return new pieces."""

    kind: PieceState
    x: int
    y: int
    tspin: TspinStatus = TspinStatus.NONE

    def cells(self) -> tuple[tuple[int, int], ...]:
        return tuple((dx + self.x, dy + self.y) for dx, dy in self.kind.cells())

    def cells_with_connections(
        self,
    ) -> tuple[tuple[int, int, frozenset[Direction]], ...]:
        return tuple(
            (dx + self.x, dy + self.y, d) for dx, dy, d in self.kind.cells_with_connections()
        )

    def shift(self, board: BoardLike, dx: int, dy: int) -> Optional["FallingPiece"]:
        """The piece moved by (dx, dy), or None if it is blocked."""
        moved = replace(self, x=self.x + dx, y=self.y + dy)
        if board.obstructed(moved):
            return None
        return replace(moved, tspin=TspinStatus.NONE)

    def sonic_drop(self, board: BoardLike) -> "FallingPiece":
        """The piece dropped as far as it goes; itself if it cannot fall."""
        heights = board.column_heights
        drop_by = min(y - heights[x] for x, y in self.cells())
        if drop_by > 0:
            return replace(self, y=self.y - drop_by, tspin=TspinStatus.NONE)
        if drop_by < 0:
            current = self
            while True:
                lower = replace(current, y=current.y - 1)
                if board.obstructed(lower):
                    return current
                current = replace(lower, tspin=TspinStatus.NONE)
        return self

    def _rotate(self, target: PieceState, board: BoardLike) -> Optional["FallingPiece"]:
        kicks = [
            (x1 - x2, y1 - y2)
            for (x1, y1), (x2, y2) in zip(self.kind.rotation_points(), target.rotation_points())
        ]
        for index, (dx, dy) in enumerate(kicks):
            candidate = replace(self, kind=target, x=self.x + dx, y=self.y + dy)
            if board.obstructed(candidate):
                continue
            if target.piece is Piece.T:
                mini = sum(
                    board.occupied(candidate.x + cx, candidate.y + cy)
                    for cx, cy in target.rotation.mini_tspin_corners()
                )
                non_mini = sum(
                    board.occupied(candidate.x + cx, candidate.y + cy)
                    for cx, cy in target.rotation.non_mini_tspin_corners()
                )
                if mini + non_mini >= 3:
                    status = (
                        TspinStatus.FULL if index == 4 or mini == 2 else TspinStatus.MINI
                    )
                else:
                    status = TspinStatus.NONE
                candidate = replace(candidate, tspin=status)
            return candidate
        return None

    def cw(self, board: BoardLike) -> Optional["FallingPiece"]:
        """The piece rotated clockwise with kicks, or None if it cannot turn."""
        return self._rotate(self.kind.cw(), board)

    def ccw(self, board: BoardLike) -> Optional["FallingPiece"]:
        """The piece rotated counter-clockwise with kicks, or None if it cannot turn."""
        return self._rotate(self.kind.ccw(), board)

    def same_location(self, other: "FallingPiece") -> bool:
        """Whether both pieces are the same kind and cover the same cells."""
        if self.kind.piece is not other.kind.piece:
            return False
        other_cells = set(other.cells())
        return all(cell in other_cells for cell in self.cells())

    def canonical(self) -> "FallingPiece":
        """A single representative among pieces covering the same cells."""
        piece, rotation = self.kind.piece, self.kind.rotation
        if piece in (Piece.T, Piece.J, Piece.L):
            return self
        if piece is Piece.O:
            north = PieceState(Piece.O, RotationState.NORTH)
            if rotation is RotationState.EAST:
                return replace(self, kind=north, y=self.y - 1)
            if rotation is RotationState.WEST:
                return replace(self, kind=north, x=self.x - 1)
            if rotation is RotationState.SOUTH:
                return replace(self, kind=north, x=self.x - 1, y=self.y - 1)
            return self
        if rotation in (RotationState.NORTH, RotationState.WEST):
            return self
        if piece in (Piece.S, Piece.Z):
            if rotation is RotationState.EAST:
                return replace(self, kind=PieceState(piece, RotationState.WEST), x=self.x + 1)
            return replace(self, kind=PieceState(piece, RotationState.NORTH), y=self.y - 1)
        if rotation is RotationState.EAST:
            return replace(self, kind=PieceState(Piece.I, RotationState.WEST), y=self.y - 1)
        return replace(self, kind=PieceState(Piece.I, RotationState.NORTH), x=self.x - 1)


class PieceMovement(enum.Enum):
    LEFT = "left"
    RIGHT = "right"
    CW = "cw"
    CCW = "ccw"
    SONIC_DROP = "sonic_drop"

    def apply(self, piece: FallingPiece, board: BoardLike) -> Optional[FallingPiece]:
        """The piece after this movement, or None if the movement does nothing."""
        if self is PieceMovement.LEFT:
            return piece.shift(board, -1, 0)
        if self is PieceMovement.RIGHT:
            return piece.shift(board, 1, 0)
        if self is PieceMovement.CW:
            return piece.cw(board)
        if self is PieceMovement.CCW:
            return piece.ccw(board)
        dropped = piece.sonic_drop(board)
        return dropped if dropped.y != piece.y else None


class SpawnRule(enum.Enum):
    ROW_19_OR_20 = "row_19_or_20"
    ROW_21_AND_FALL = "row_21_and_fall"

    def spawn(self, piece: Piece, board: BoardLike) -> Optional[FallingPiece]:
        """Where a new piece appears, or None if it cannot spawn."""
        state = PieceState(piece, RotationState.NORTH)
        if self is SpawnRule.ROW_19_OR_20:
            for y in (19, 20):
                spawned = FallingPiece(state, 4, y)
                if not board.obstructed(spawned):
                    return spawned
            return None
        spawned = FallingPiece(state, 4, 21)
        if board.obstructed(spawned):
            return None
        return spawned.shift(board, 0, -1) or spawned


_RANDOM_ORDER = (Piece.I, Piece.T, Piece.O, Piece.L, Piece.J, Piece.S, Piece.Z)


def random_piece(rng: random.Random) -> Piece:
    """Draw a uniformly random piece."""
    return _RANDOM_ORDER[rng.randrange(7)]