"""Finding every placement a piece can reach, with the fastest inputs to reach it."""

from __future__ import annotations

import enum
import heapq
import itertools
from dataclasses import dataclass
from typing import Optional

from cctetris.board import Board
from cctetris.piece import (
    FallingPiece,
    Piece,
    PieceMovement,
    PieceState,
    RotationState,
    TspinStatus,
)

MAX_MOVEMENTS = 32
"""The longest input sequence a placement may carry."""


@dataclass(frozen=True)
class InputList:
    """A sequence of movements and the frames it takes to perform them."""

    movements: tuple[PieceMovement, ...] = ()
    time: int = 0

    @property
    def is_full(self) -> bool:
        return len(self.movements) >= MAX_MOVEMENTS


@dataclass(frozen=True)
class Placement:
    """A reachable final location together with the inputs that reach it."""

    inputs: InputList
    location: FallingPiece


@dataclass(frozen=True)
class Move:
    """A move chosen for play: inputs, where the piece should end up, and hold use."""

    inputs: tuple[PieceMovement, ...]
    expected_location: FallingPiece
    hold: bool


class MovementMode(enum.Enum):
    ZERO_G = "zero_g"
    ZERO_G_COMPLETE = "zero_g_complete"
    TWENTY_G = "twenty_g"
    HARD_DROP_ONLY = "hard_drop_only"


class _SearchQueue:
    """Pops the cheapest placement first: least time, then fewest movements."""

    def __init__(self) -> None:
        self._heap: list[tuple[int, int, int, Placement]] = []
        self._counter = itertools.count()

    def push(self, placement: Placement) -> None:
        inputs = placement.inputs
        heapq.heappush(
            self._heap,
            (inputs.time, len(inputs.movements), next(self._counter), placement),
        )

    def pop(self) -> Placement:
        return heapq.heappop(self._heap)[3]

    def __bool__(self) -> bool:
        return bool(self._heap)


def find_moves(board: Board, spawned: FallingPiece, mode: MovementMode) -> list[Placement]:
    """All distinct places the spawned piece can lock, each with its fastest inputs."""
    locks: dict[FallingPiece, Placement] = {}
    checked: set[FallingPiece] = set()
    queue = _SearchQueue()

    if all(height < 16 for height in board.column_heights):
        # Below this height every column and rotation is reachable at 0G without
        # touching the stack, so the starting positions can be taken as given.
        if mode is MovementMode.TWENTY_G:
            starts = [(spawned, InputList())]
        else:
            starts = _zero_g_starts(spawned.kind.piece)
        # Fast mode skips stack movement that rarely finds anything new;
        # ZERO_G_COMPLETE searches it anyway.
        fast_mode = mode is MovementMode.ZERO_G
        for place, inputs in starts:
            orig_y = place.y
            place = place.sonic_drop(board)
            if not fast_mode:
                checked.add(place)
            _lock_check(place, locks, inputs)
            if mode is not MovementMode.HARD_DROP_ONLY:
                time = inputs.time
                if mode is not MovementMode.TWENTY_G:
                    time += 2 * (orig_y - place.y)
                queue.push(
                    Placement(
                        InputList(inputs.movements + (PieceMovement.SONIC_DROP,), time),
                        place,
                    )
                )
    else:
        fast_mode = False
        movements: tuple[PieceMovement, ...] = ()
        if mode is MovementMode.TWENTY_G:
            spawned = spawned.sonic_drop(board)
            movements = (PieceMovement.SONIC_DROP,)
        checked.add(spawned)
        queue.push(Placement(InputList(movements, 0), spawned))

    while queue:
        placement = queue.pop()
        moves = placement.inputs
        position = placement.location
        if not moves.is_full:
            tried = [(PieceMovement.LEFT, False), (PieceMovement.RIGHT, False)]
            if position.kind.piece is not Piece.O:
                tried += [(PieceMovement.CW, False), (PieceMovement.CCW, False)]
            if mode is MovementMode.ZERO_G:
                tried += [(PieceMovement.LEFT, True), (PieceMovement.RIGHT, True)]
            tried.append((PieceMovement.SONIC_DROP, False))
            for movement, repeat in tried:
                _attempt(
                    board, moves, position, checked, queue, mode, fast_mode, movement, repeat
                )
        _lock_check(position.sonic_drop(board), locks, moves)

    return list(locks.values())


def _lock_check(
    piece: FallingPiece, locks: dict[FallingPiece, Placement], moves: InputList
) -> None:
    if all(y >= 20 for _, y in piece.cells()):
        return
    # The first path found to a location is the fastest one, so keep it.
    locks.setdefault(piece.canonical(), Placement(moves, piece))


def _attempt(
    board: Board,
    moves: InputList,
    piece: FallingPiece,
    checked: set[FallingPiece],
    queue: _SearchQueue,
    mode: MovementMode,
    fast_mode: bool,
    movement: PieceMovement,
    repeat: bool,
) -> None:
    orig_y = piece.y
    moved = movement.apply(piece, board)
    if moved is None:
        return
    movements = list(moves.movements)
    time = moves.time
    if movement is PieceMovement.SONIC_DROP:
        # Soft drop is assumed to move one cell every two frames.
        time += 2 * (orig_y - moved.y)
    else:
        time += 1
    if movements and movements[-1] is movement:
        # Releasing the button before pressing it again costs a frame.
        time += 1
    movements.append(movement)
    while repeat and len(movements) < MAX_MOVEMENTS:
        following: Optional[FallingPiece] = movement.apply(moved, board)
        if following is None:
            break
        moved = following
        movements.append(movement)
        time += 2

    if fast_mode and moved.tspin is TspinStatus.NONE and board.above_stack(moved):
        return

    # High gravity is approximated as 20G, so a drop input tells the executor
    # to wait for the piece to land before continuing.
    drop_input = False
    if mode is MovementMode.TWENTY_G:
        dropped = moved.sonic_drop(board)
        drop_input = dropped.y != moved.y
        moved = dropped
    if moved in checked:
        return
    checked.add(moved)
    if drop_input and len(movements) < MAX_MOVEMENTS:
        movements.append(PieceMovement.SONIC_DROP)
    if mode is MovementMode.HARD_DROP_ONLY and movement is PieceMovement.SONIC_DROP:
        return
    queue.push(Placement(InputList(tuple(movements), time), moved))


_N = RotationState.NORTH
_S = RotationState.SOUTH
_E = RotationState.EAST
_W = RotationState.WEST
_LEFT = PieceMovement.LEFT
_RIGHT = PieceMovement.RIGHT
_CW = PieceMovement.CW
_CCW = PieceMovement.CCW

_O_STARTS = (
    (_N, 4, (), 0),
    (_N, 3, (_LEFT,), 1),
    (_N, 5, (_RIGHT,), 1),
    (_N, 2, (_LEFT, _LEFT), 3),
    (_N, 6, (_RIGHT, _RIGHT), 3),
    (_N, 1, (_LEFT, _LEFT, _LEFT), 5),
    (_N, 7, (_RIGHT, _RIGHT, _RIGHT), 5),
    (_N, 0, (_LEFT, _LEFT, _LEFT, _LEFT), 7),
    (_N, 8, (_RIGHT, _RIGHT, _RIGHT, _RIGHT), 7),
)

_I_STARTS = (
    (_N, 4, (), 0),
    (_N, 3, (_LEFT,), 1),
    (_N, 5, (_RIGHT,), 1),
    (_N, 2, (_LEFT, _LEFT), 3),
    (_N, 6, (_RIGHT, _RIGHT), 3),
    (_N, 1, (_LEFT, _LEFT, _LEFT), 5),
    (_N, 7, (_RIGHT, _RIGHT, _RIGHT), 5),
    (_W, 4, (_CCW,), 1),
    (_W, 3, (_LEFT, _CCW), 2),
    (_W, 2, (_LEFT, _CCW, _LEFT), 3),
    (_W, 1, (_LEFT, _CCW, _LEFT, _LEFT), 5),
    (_W, 0, (_LEFT, _CCW, _LEFT, _LEFT, _LEFT), 7),
    (_W, 5, (_RIGHT, _CCW), 2),
    (_W, 6, (_RIGHT, _CCW, _RIGHT), 3),
    (_W, 7, (_RIGHT, _CCW, _RIGHT, _RIGHT), 5),
    (_W, 8, (_RIGHT, _CCW, _RIGHT, _RIGHT, _RIGHT), 7),
    (_W, 9, (_RIGHT, _CCW, _RIGHT, _RIGHT, _RIGHT, _RIGHT), 9),
    (_E, 5, (_CW,), 1),
    (_E, 4, (_LEFT, _CW), 2),
    (_E, 3, (_LEFT, _CW, _LEFT), 3),
    (_E, 2, (_LEFT, _CW, _LEFT, _LEFT), 5),
    (_E, 1, (_LEFT, _CW, _LEFT, _LEFT, _LEFT), 7),
    (_E, 0, (_LEFT, _CW, _LEFT, _LEFT, _LEFT, _LEFT), 9),
    (_E, 6, (_RIGHT, _CW), 2),
    (_E, 7, (_RIGHT, _CW, _RIGHT), 3),
    (_E, 8, (_RIGHT, _CW, _RIGHT, _RIGHT), 5),
    (_E, 9, (_RIGHT, _CW, _RIGHT, _RIGHT, _RIGHT), 7),
    (_S, 5, (_CW, _CW), 3),
    (_S, 4, (_CW, _LEFT, _CW), 3),
    (_S, 6, (_CW, _RIGHT, _CW), 3),
    (_S, 3, (_CW, _LEFT, _CW, _LEFT), 4),
    (_S, 7, (_CW, _RIGHT, _CW, _RIGHT), 4),
    (_S, 2, (_LEFT, _CW, _LEFT, _CW, _LEFT), 5),
    (_S, 8, (_RIGHT, _CW, _RIGHT, _CW, _RIGHT), 5),
)

_COMMON_STARTS = (
    (_N, 4, (), 0),
    (_N, 3, (_LEFT,), 1),
    (_N, 5, (_RIGHT,), 1),
    (_N, 2, (_LEFT, _LEFT), 3),
    (_N, 6, (_RIGHT, _RIGHT), 3),
    (_N, 1, (_LEFT, _LEFT, _LEFT), 5),
    (_N, 7, (_RIGHT, _RIGHT, _RIGHT), 5),
    (_N, 8, (_RIGHT, _RIGHT, _RIGHT, _RIGHT), 7),
    (_W, 4, (_CCW,), 1),
    (_W, 3, (_LEFT, _CCW), 2),
    (_W, 5, (_RIGHT, _CCW), 2),
    (_W, 2, (_LEFT, _CCW, _LEFT), 3),
    (_W, 6, (_RIGHT, _CCW, _RIGHT), 3),
    (_W, 1, (_LEFT, _CCW, _LEFT, _LEFT), 5),
    (_W, 7, (_RIGHT, _CCW, _RIGHT, _RIGHT), 5),
    (_W, 8, (_RIGHT, _CCW, _RIGHT, _RIGHT, _RIGHT), 7),
    (_W, 9, (_RIGHT, _CCW, _RIGHT, _RIGHT, _RIGHT, _RIGHT), 9),
    (_E, 4, (_CW,), 1),
    (_E, 3, (_LEFT, _CW), 2),
    (_E, 5, (_RIGHT, _CW), 2),
    (_E, 2, (_LEFT, _CW, _LEFT), 3),
    (_E, 6, (_RIGHT, _CW, _RIGHT), 3),
    (_E, 1, (_LEFT, _CW, _LEFT, _LEFT), 5),
    (_E, 7, (_RIGHT, _CW, _RIGHT, _RIGHT), 5),
    (_E, 0, (_LEFT, _CW, _LEFT, _LEFT, _LEFT), 7),
    (_E, 8, (_RIGHT, _CW, _RIGHT, _RIGHT, _RIGHT), 7),
    (_S, 4, (_CW, _CW), 3),
    (_S, 3, (_CW, _LEFT, _CW), 3),
    (_S, 5, (_CW, _RIGHT, _CW), 3),
    (_S, 2, (_CW, _LEFT, _CW, _LEFT), 4),
    (_S, 6, (_CW, _RIGHT, _CW, _RIGHT), 4),
    (_S, 1, (_LEFT, _CW, _LEFT, _CW, _LEFT), 5),
    (_S, 7, (_RIGHT, _CW, _RIGHT, _CW, _RIGHT), 5),
    (_S, 8, (_RIGHT, _CW, _RIGHT, _CW, _RIGHT, _RIGHT), 7),
)


def _zero_g_starts(piece: Piece) -> list[tuple[FallingPiece, InputList]]:
    if piece is Piece.O:
        table = _O_STARTS
    elif piece is Piece.I:
        table = _I_STARTS
    else:
        table = _COMMON_STARTS
    return [
        (FallingPiece(PieceState(piece, rotation), x, 19), InputList(movements, time))
        for rotation, x, movements, time in table
    ]