"""Opening books: positions, upcoming piece sequences and the moves to play."""

from __future__ import annotations

import bisect
import struct
from dataclasses import dataclass, field
from functools import total_ordering
from typing import BinaryIO, Iterable, Optional

import zstandard

from cctetris.board import ALL_PIECES, HEIGHT, WIDTH, Board
from cctetris.piece import FallingPiece, Piece, PieceState, RotationState, TspinStatus

NEXT_PIECES = 4
"""How many queued pieces past the current and hold pieces a book looks at."""

BOOK_ROWS = 10
"""How many rows of the field a book position records."""

_COMPRESSION_LEVEL = 19


def _row_bits(row) -> int:
    return sum(1 << x for x in range(WIDTH) if row.get(x))


def _refill_if_empty(bag: frozenset[Piece]) -> frozenset[Piece]:
    return bag or ALL_PIECES


@dataclass(frozen=True)
class Position:
    """The part of a board state a book is keyed by.

    Either the bag holds at least two pieces, or its sole piece is also the
    extra piece. An extra piece is always in the bag too.
    """

    rows: tuple[int, ...]
    bag: frozenset[Piece]
    extra: Optional[Piece] = None

    def __post_init__(self) -> None:
        rows = tuple(self.rows)
        if len(rows) != BOOK_ROWS:
            raise ValueError(f"a position has {BOOK_ROWS} rows, got {len(rows)}")
        object.__setattr__(self, "rows", rows)
        object.__setattr__(self, "bag", frozenset(self.bag))

    @classmethod
    def from_board(cls, board: Board) -> "Position":
        """The book position of a board, folding the hold piece into the bag."""
        bag = set(board.next_bag())
        extra: Optional[Piece] = None
        hold = board.hold_piece
        if hold is not None:
            if hold in bag:
                extra = hold
            else:
                bag.add(hold)
        if len(bag) == 1 and extra is None:
            extra = next(iter(bag))
            bag = set(ALL_PIECES)
        rows = tuple(_row_bits(board.get_row(y)) for y in range(BOOK_ROWS))
        return cls(rows, frozenset(bag), extra)

    def advance(self, mv: FallingPiece) -> tuple["Position", float]:
        """The position after placing a piece, and how many slow actions it took."""
        field_rows = [
            [y < BOOK_ROWS and bool(self.rows[y] >> x & 1) for x in range(WIDTH)]
            for y in range(HEIGHT)
        ]
        board = Board.new_with_state(field_rows, self.bag, self.extra, False, 0)
        soft_drop = not board.above_stack(mv)
        clear = board.lock_piece(mv).placement_kind.is_clear()
        rows = tuple(_row_bits(board.get_row(y)) for y in range(BOOK_ROWS))

        piece = mv.kind.piece
        bag = set(self.bag)
        extra = self.extra
        if extra is piece:
            extra = None
            if len(bag) == 1:
                extra = next(iter(bag))
                bag = set(ALL_PIECES)
        else:
            bag.discard(piece)
            if len(bag) == 1 and extra is None:
                extra = next(iter(bag))
                bag = set(ALL_PIECES)
        return Position(rows, frozenset(bag), extra), float(soft_drop) + float(clear)

    def next_possibilities(self) -> list[tuple[frozenset[Piece], frozenset[Piece]]]:
        """Every pair of pieces that could be current and hold, with the bag left after."""
        result = []
        if self.extra is not None:
            for other in sorted(self.bag):
                result.append(
                    (frozenset({self.extra, other}), _refill_if_empty(self.bag - {other}))
                )
        else:
            pieces = sorted(self.bag)
            for i, first in enumerate(pieces):
                for second in pieces[i + 1:]:
                    result.append(
                        (
                            frozenset({first, second}),
                            _refill_if_empty(self.bag - {first, second}),
                        )
                    )
        return result


@total_ordering
@dataclass(frozen=True, eq=True)
class Sequence:
    """The pieces available to place now and the queue that follows them.

    A single piece in next_pieces means the current and hold pieces are the same.
    """

    next_pieces: frozenset[Piece]
    queue: tuple[Piece, ...]

    def __post_init__(self) -> None:
        next_pieces = frozenset(self.next_pieces)
        queue = tuple(self.queue)
        if not 1 <= len(next_pieces) <= 2:
            raise ValueError("a sequence has one or two next pieces")
        if len(queue) != NEXT_PIECES:
            raise ValueError(f"a sequence queue holds {NEXT_PIECES} pieces")
        object.__setattr__(self, "next_pieces", next_pieces)
        object.__setattr__(self, "queue", queue)

    def sort_key(self) -> tuple[Piece, ...]:
        ordered = sorted(self.next_pieces)
        first = ordered[0]
        second = ordered[1] if len(ordered) > 1 else first
        return (first, second, *self.queue)

    def __lt__(self, other: "Sequence") -> bool:
        if not isinstance(other, Sequence):
            return NotImplemented
        return self.sort_key() < other.sort_key()


def encode_piece(piece: FallingPiece) -> int:
    """Pack a placement into a non-zero 16-bit number."""
    kind = int(piece.kind.piece) + 1
    rotation = int(piece.kind.rotation)
    value = kind | rotation << 3 | (piece.x & 0xFFFF) << 5 | (piece.y & 0xFFFF) << 9
    return value & 0xFFFF


def decode_piece(value: int) -> FallingPiece:
    """Unpack a number written by encode_piece."""
    if not 0 < value <= 0xFFFF:
        raise ValueError(f"not a packed piece: {value}")
    kind = value & 0b111
    if kind == 0:
        raise ValueError(f"not a packed piece: {value}")
    return FallingPiece(
        PieceState(Piece(kind - 1), RotationState(value >> 3 & 0b11)),
        value >> 5 & 0b1111,
        value >> 9 & 0b111111,
        TspinStatus.NONE,
    )


def possible_sequences(
    queue: Iterable[Piece], bag: Iterable[Piece]
) -> list[tuple[tuple[Piece, ...], frozenset[Piece]]]:
    """Every way the queue can be filled out to full length from the bag."""
    start = tuple(queue)
    if len(start) > NEXT_PIECES:
        raise ValueError(f"a queue holds at most {NEXT_PIECES} pieces")
    result: list[tuple[tuple[Piece, ...], frozenset[Piece]]] = []

    def solve(current: tuple[Piece, ...], remaining: frozenset[Piece]) -> None:
        if len(current) == NEXT_PIECES:
            result.append((current, remaining))
            return
        for piece in sorted(remaining):
            solve(current + (piece,), _refill_if_empty(remaining - {piece}))

    solve(start, frozenset(bag))
    return result


BookEntries = dict[Position, list[tuple[Sequence, Optional[int]]]]


@dataclass
class Book:
    """Moves to play by position; each position maps sorted sequences to packed moves.

    For a sequence, the entry that applies is the last one not sorting after it.
    """

    entries: BookEntries = field(default_factory=dict)

    @classmethod
    def load(cls, stream: BinaryIO) -> "Book":
        """Read a compressed book."""
        try:
            data = zstandard.ZstdDecompressor().decompressobj().decompress(stream.read())
        except zstandard.ZstdError as error:
            raise ValueError(f"book is not valid compressed data: {error}") from error
        return cls(_decode_entries(data))

    def save(self, stream: BinaryIO) -> None:
        """Write the book compressed."""
        data = _encode_entries(self.entries)
        stream.write(zstandard.ZstdCompressor(level=_COMPRESSION_LEVEL).compress(data))

    def suggest_move(self, board: Board) -> Optional[FallingPiece]:
        """The book move for a board, or None if the book has none or the queue is short."""
        queue = list(board.next_queue())
        if not queue:
            return None
        next_pieces = {queue[0]}
        rest = queue[1:]
        if board.hold_piece is not None:
            next_pieces.add(board.hold_piece)
        else:
            if not rest:
                return None
            next_pieces.add(rest[0])
            rest = rest[1:]
        if len(rest) < NEXT_PIECES:
            return None
        return self.suggest_move_raw(
            Position.from_board(board), frozenset(next_pieces), tuple(rest[:NEXT_PIECES])
        )

    def suggest_move_raw(
        self,
        position: Position,
        next_pieces: frozenset[Piece],
        queue: tuple[Piece, ...],
    ) -> Optional[FallingPiece]:
        """The book move for a position and sequence, if any."""
        moves = self.entries.get(position)
        if not moves:
            return None
        key = Sequence(next_pieces, queue).sort_key()
        index = bisect.bisect_right(moves, key, key=lambda entry: entry[0].sort_key())
        if index == 0:
            return None
        packed = moves[index - 1][1]
        return None if packed is None else decode_piece(packed)

    def merge(self, other: "Book") -> None:
        """Add the positions of another book that this one lacks."""
        for position, moves in other.entries.items():
            self.entries.setdefault(position, moves)


def _bag_bits(bag: Iterable[Piece]) -> int:
    return sum(1 << int(piece) for piece in bag)


def _bag_from_bits(bits: int) -> frozenset[Piece]:
    if bits >> len(Piece):
        raise ValueError(f"invalid piece set bits: {bits}")
    return frozenset(piece for piece in Piece if bits >> int(piece) & 1)


def _encode_entries(entries: BookEntries) -> bytes:
    out = bytearray(struct.pack("<Q", len(entries)))
    for position, moves in entries.items():
        out += struct.pack(f"<{BOOK_ROWS}H", *position.rows)
        out += struct.pack("<B", _bag_bits(position.bag))
        if position.extra is None:
            out += b"\x00"
        else:
            out += struct.pack("<BI", 1, int(position.extra))
        out += struct.pack("<Q", len(moves))
        for sequence, packed in moves:
            out += struct.pack("<B", _bag_bits(sequence.next_pieces))
            out += struct.pack(f"<{NEXT_PIECES}I", *(int(p) for p in sequence.queue))
            if packed is None:
                out += b"\x00"
            else:
                out += struct.pack("<BH", 1, packed)
    return bytes(out)


class _Reader:
    def __init__(self, data: bytes) -> None:
        self._data = data
        self._offset = 0

    def take(self, fmt: str) -> tuple:
        size = struct.calcsize(fmt)
        if self._offset + size > len(self._data):
            raise ValueError("book data ends unexpectedly")
        values = struct.unpack_from(fmt, self._data, self._offset)
        self._offset += size
        return values

    def piece(self) -> Piece:
        (index,) = self.take("<I")
        if index >= len(Piece):
            raise ValueError(f"invalid piece index: {index}")
        return Piece(index)

    def tag(self) -> bool:
        (tag,) = self.take("<B")
        if tag > 1:
            raise ValueError(f"invalid option tag: {tag}")
        return bool(tag)


def _decode_entries(data: bytes) -> BookEntries:
    reader = _Reader(data)
    entries: BookEntries = {}
    (count,) = reader.take("<Q")
    for _ in range(count):
        rows = reader.take(f"<{BOOK_ROWS}H")
        (bag_bits,) = reader.take("<B")
        extra = reader.piece() if reader.tag() else None
        position = Position(rows, _bag_from_bits(bag_bits), extra)
        (move_count,) = reader.take("<Q")
        moves: list[tuple[Sequence, Optional[int]]] = []
        for _ in range(move_count):
            (next_bits,) = reader.take("<B")
            queue = tuple(reader.piece() for _ in range(NEXT_PIECES))
            sequence = Sequence(_bag_from_bits(next_bits), queue)
            packed: Optional[int] = None
            if reader.tag():
                (packed,) = reader.take("<H")
                if packed == 0:
                    raise ValueError("packed piece must be non-zero")
            moves.append((sequence, packed))
        entries[position] = moves
    return entries