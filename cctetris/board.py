"""The playfield: rows, column heights, the next queue and the piece bag."""

from __future__ import annotations

import random
from collections import deque
from dataclasses import dataclass, field as dataclass_field
from typing import Iterator, Optional, Sequence, Union

from cctetris.lock_data import COMBO_GARBAGE, LockResult, PlacementKind
from cctetris.piece import CellColor, FallingPiece, Piece

WIDTH = 10
HEIGHT = 40
ALL_PIECES: frozenset[Piece] = frozenset(Piece)

_FULL_BITS = (1 << WIDTH) - 1


@dataclass
class BitRow:
    """A row stored as a bit mask; every filled cell reads back as garbage."""

    bits: int = 0

    @classmethod
    def _empty(cls) -> "BitRow":
        return cls(0)

    @classmethod
    def _solid(cls) -> "BitRow":
        return cls(_FULL_BITS)

    def _copy(self) -> "BitRow":
        return BitRow(self.bits)

    def set(self, x: int, color: CellColor) -> None:
        if color is CellColor.EMPTY:
            self.bits &= ~(1 << x)
        else:
            self.bits |= 1 << x

    def get(self, x: int) -> bool:
        return bool(self.bits & (1 << x))

    def is_full(self) -> bool:
        return self.bits == _FULL_BITS

    def is_empty(self) -> bool:
        return self.bits == 0

    def cell_color(self, x: int) -> CellColor:
        return CellColor.GARBAGE if self.get(x) else CellColor.EMPTY


@dataclass
class ColoredRow:
    """A row that remembers the colour of each cell."""

    cells: list[CellColor] = dataclass_field(
        default_factory=lambda: [CellColor.EMPTY] * WIDTH
    )

    @classmethod
    def _empty(cls) -> "ColoredRow":
        return cls()

    @classmethod
    def _solid(cls) -> "ColoredRow":
        return cls([CellColor.UNCLEARABLE] * WIDTH)

    def _copy(self) -> "ColoredRow":
        return ColoredRow(list(self.cells))

    def set(self, x: int, color: CellColor) -> None:
        self.cells[x] = color

    def get(self, x: int) -> bool:
        return self.cells[x] is not CellColor.EMPTY

    def is_full(self) -> bool:
        return all(c is not CellColor.EMPTY for c in self.cells)

    def is_empty(self) -> bool:
        return all(c is CellColor.EMPTY for c in self.cells)

    def cell_color(self, x: int) -> CellColor:
        return self.cells[x]


Row = Union[BitRow, ColoredRow]
Field = Sequence[Sequence[bool]]


class Board:
    """A 10x40 playfield with hold, next queue, bag, combo and back-to-back state."""

    def __init__(self, row_type: type = BitRow) -> None:
        self.row_type = row_type
        self._cells: list[Row] = [row_type._empty() for _ in range(HEIGHT)]
        self.column_heights: list[int] = [0] * WIDTH
        self.combo = 0
        self.b2b_bonus = False
        self.hold_piece: Optional[Piece] = None
        self._next_pieces: deque[Piece] = deque()
        self.bag: frozenset[Piece] = ALL_PIECES

    @classmethod
    def new_with_state(
        cls,
        field: Field,
        bag_remain: frozenset[Piece],
        hold: Optional[Piece],
        b2b: bool,
        combo: int,
    ) -> "Board":
        """A board with the given field, bag remainder, hold piece, b2b and combo."""
        board = cls()
        board.combo = combo
        board.b2b_bonus = b2b
        board.hold_piece = hold
        board.bag = frozenset(bag_remain) or ALL_PIECES
        board.set_field(field)
        return board

    def generate_next_piece(self, rng: random.Random) -> Piece:
        """Pick a random piece from the bag without removing it."""
        return rng.choice(sorted(self.bag))

    def get_next_piece(self) -> Union[Piece, frozenset[Piece]]:
        """The next piece in the queue, or the set of possible pieces if it is empty."""
        if self._next_pieces:
            return self._next_pieces[0]
        return self.bag

    def get_next_next_piece(self) -> Optional[Piece]:
        """The piece after the next one, if known."""
        return self._next_pieces[1] if len(self._next_pieces) > 1 else None

    def add_next_piece(self, piece: Piece) -> None:
        """Append a piece to the queue and take it out of the bag, refilling when empty."""
        self.bag = self.bag - {piece} or ALL_PIECES
        self._next_pieces.append(piece)

    def _remove_cleared_lines(self) -> tuple[int, ...]:
        cleared = tuple(y for y, row in enumerate(self._cells) if row.is_full())
        kept = [row for row in self._cells if not row.is_full()]
        kept.extend(self.row_type._empty() for _ in cleared)
        self._cells = kept
        for x in range(WIDTH):
            height = self.column_heights[x] - len(cleared)
            while height > 0 and not self._cells[height - 1].get(x):
                height -= 1
            self.column_heights[x] = height
        return cleared

    def occupied(self, x: int, y: int) -> bool:
        if x < 0 or y < 0 or x >= WIDTH or y >= HEIGHT:
            return True
        return self._cells[y].get(x)

    def get_row(self, y: int) -> Row:
        if y < 0:
            return self.row_type._solid()
        if y >= HEIGHT:
            return self.row_type._empty()
        return self._cells[y]

    def obstructed(self, piece: FallingPiece) -> bool:
        return any(self.occupied(x, y) for x, y in piece.cells())

    def above_stack(self, piece: FallingPiece) -> bool:
        return all(y >= self.column_heights[x] for x, y in piece.cells())

    def on_stack(self, piece: FallingPiece) -> bool:
        return any(self.occupied(x, y - 1) for x, y in piece.cells())

    def lock_piece(self, piece: FallingPiece) -> LockResult:
        """Lock a piece: clear lines, score garbage, track combo, b2b and perfect clears."""
        locked_out = True
        color = piece.kind.piece.color()
        for x, y in piece.cells():
            self._cells[y].set(x, color)
            if self.column_heights[x] < y + 1:
                self.column_heights[x] = y + 1
            if y < 20:
                locked_out = False
        cleared = self._remove_cleared_lines()

        placement_kind = PlacementKind.from_clear(len(cleared), piece.tspin)
        garbage_sent = placement_kind.garbage()

        did_b2b = False
        if placement_kind.is_clear():
            if placement_kind.is_hard():
                if self.b2b_bonus:
                    garbage_sent += 1
                    did_b2b = True
                self.b2b_bonus = True
            else:
                self.b2b_bonus = False
            garbage_sent += COMBO_GARBAGE[min(self.combo, len(COMBO_GARBAGE) - 1)]
            self.combo += 1
        else:
            self.combo = 0

        perfect_clear = all(h == 0 for h in self.column_heights)
        if perfect_clear:
            garbage_sent = 10

        return LockResult(
            placement_kind=placement_kind,
            locked_out=locked_out,
            b2b=did_b2b,
            perfect_clear=perfect_clear,
            combo=self.combo - 1 if self.combo else None,
            garbage_sent=garbage_sent,
            cleared_lines=cleared,
        )

    def hold(self, piece: Piece) -> Optional[Piece]:
        """Put a piece in hold and return what was held before."""
        previous = self.hold_piece
        self.hold_piece = piece
        return previous

    def next_queue(self) -> Iterator[Piece]:
        return iter(list(self._next_pieces))

    def advance_queue(self) -> Optional[Piece]:
        """The piece to spawn next, or None if the queue is empty."""
        return self._next_pieces.popleft() if self._next_pieces else None

    def add_garbage(self, col: int) -> bool:
        """Push a garbage row with a hole at col; True if a filled row was pushed out."""
        row = self.row_type._empty()
        for x in range(WIDTH):
            if x == col:
                if self.column_heights[x] != 0:
                    self.column_heights[x] += 1
            else:
                row.set(x, CellColor.GARBAGE)
                self.column_heights[x] += 1
        dead = not self._cells.pop().is_empty()
        self._cells.insert(0, row)
        return dead

    def to_compressed(self) -> "Board":
        """The same board with bit rows."""
        board = Board(BitRow)
        cells = []
        for row in self._cells:
            bit_row = BitRow()
            for x in range(WIDTH):
                bit_row.set(x, row.cell_color(x))
            cells.append(bit_row)
        board._cells = cells
        board.column_heights = list(self.column_heights)
        board.combo = self.combo
        board.b2b_bonus = self.b2b_bonus
        board.hold_piece = self.hold_piece
        board._next_pieces = deque(self._next_pieces)
        board.bag = self.bag
        return board

    def set_field(self, field: Field) -> None:
        """Replace the cells with a 40x10 grid of booleans, indexed [y][x]."""
        self._cells = []
        self.column_heights = [0] * WIDTH
        for y in range(HEIGHT):
            row = self.row_type._empty()
            for x in range(WIDTH):
                if field[y][x]:
                    row.set(x, CellColor.GARBAGE)
                    self.column_heights[x] = y + 1
            self._cells.append(row)

    def get_field(self) -> list[list[bool]]:
        return [[self.occupied(x, y) for x in range(WIDTH)] for y in range(HEIGHT)]

    def next_bag(self) -> frozenset[Piece]:
        """The bag as it stood before the queued pieces were drawn."""
        bag = set(self.bag)
        for piece in reversed(self._next_pieces):
            if bag == ALL_PIECES:
                bag = set()
            bag.add(piece)
        return frozenset(bag)

    def copy(self) -> "Board":
        board = Board(self.row_type)
        board._cells = [row._copy() for row in self._cells]
        board.column_heights = list(self.column_heights)
        board.combo = self.combo
        board.b2b_bonus = self.b2b_bonus
        board.hold_piece = self.hold_piece
        board._next_pieces = deque(self._next_pieces)
        board.bag = self.bag
        return board