"""Building opening books: move graphs, expected values and compilation."""

from __future__ import annotations

import bisect
from collections import deque
from dataclasses import dataclass, field, replace
from functools import total_ordering
from typing import Iterable, Iterator, Optional, Union

from cctetris.board import Board
from cctetris.book import (
    NEXT_PIECES,
    Book,
    Position,
    Sequence,
    decode_piece,
    encode_piece,
    possible_sequences,
)
from cctetris.piece import FallingPiece, Piece


@total_ordering
@dataclass(frozen=True)
class MoveValue:
    """Expected value of a line of play and the expected number of slow moves in it.

    Higher value is better; at equal value, fewer long moves is better.
    """

    value: float = 0.0
    long_moves: float = 0.0

    def _rank(self) -> tuple[float, float]:
        return (self.value, -self.long_moves)

    def __lt__(self, other: "MoveValue") -> bool:
        if not isinstance(other, MoveValue):
            return NotImplemented
        return self._rank() < other._rank()

    def max(self, other: "MoveValue") -> "MoveValue":
        return other if self < other else self


def sum_values(values: Iterable[MoveValue]) -> MoveValue:
    """Average values; long moves are averaged only over non-zero values."""
    total_value = 0.0
    total_long = 0.0
    value_count = 0
    long_count = 0
    for v in values:
        value_count += 1
        total_value += v.value
        if v.value != 0.0:
            long_count += 1
            total_long += v.long_moves
    if long_count:
        total_long /= long_count
    if value_count:
        total_value /= value_count
    return MoveValue(total_value, total_long)


@dataclass(frozen=True)
class BookMove:
    """A move known at a position, with a fixed value if it ends a line."""

    packed: int
    value: Optional[float] = None

    @property
    def location(self) -> FallingPiece:
        return decode_piece(self.packed)


_Entry = tuple[Sequence, MoveValue, tuple[int, ...]]


@dataclass
class _PositionData:
    values: list[_Entry] = field(default_factory=list)
    moves: list[BookMove] = field(default_factory=list)
    backrefs: list[Position] = field(default_factory=list)


def _option_less(a: Optional[float], b: Optional[float]) -> bool:
    if b is None:
        return False
    if a is None:
        return True
    return a < b


def _lookup(values: list[_Entry], sequence: Sequence) -> Optional[_Entry]:
    if not values:
        return None
    index = bisect.bisect_right(values, sequence.sort_key(), key=lambda e: e[0].sort_key())
    if index == 0:
        return None
    return values[index - 1]


class BookBuilder:
    """A graph of positions and moves whose values are propagated back from leaves."""

    def __init__(self) -> None:
        self._data: dict[Position, _PositionData] = {}
        self._dirty_positions: set[Position] = set()
        self._dirty_queue: deque[Position] = deque()

    def _mark_dirty(self, pos: Position) -> None:
        if pos not in self._dirty_positions:
            self._dirty_positions.add(pos)
            self._dirty_queue.append(pos)

    def value_of_position(self, pos: Position) -> MoveValue:
        """Expected value of a position over every possible next pair and queue."""
        return sum_values(
            self.value_of_raw(pos, next_pieces, (), bag)
            for next_pieces, bag in pos.next_possibilities()
        )

    def value_of(self, board: Board) -> MoveValue:
        """Expected value of a board given its known queue."""
        queue = list(board.next_queue())
        if not queue:
            raise ValueError("the board has no queued pieces")
        next_pieces = {queue[0]}
        rest = queue[1:]
        if board.hold_piece is not None:
            next_pieces.add(board.hold_piece)
        else:
            if not rest:
                raise ValueError("the board needs a second queued piece when hold is empty")
            next_pieces.add(rest[0])
            rest = rest[1:]
        return self.value_of_raw(
            Position.from_board(board), frozenset(next_pieces), rest, board.bag
        )

    def value_of_raw(
        self,
        pos: Position,
        next_pieces: Iterable[Piece],
        queue: Iterable[Piece],
        bag: Iterable[Piece],
    ) -> MoveValue:
        """Expected value of a position with the given next pieces and partial queue."""
        data = self._data.get(pos)
        if data is None:
            return MoveValue()
        next_set = frozenset(next_pieces)
        known = tuple(queue)[:NEXT_PIECES]
        results = []
        for full_queue, _ in possible_sequences(known, bag):
            found = _lookup(data.values, Sequence(next_set, full_queue))
            results.append(found[1] if found is not None else MoveValue())
        return sum_values(results)

    def _update_value(self, pos: Position) -> None:
        data = self._data[pos]
        candidates = []
        for mv in data.moves:
            location = mv.location
            after, long_moves = pos.advance(location)
            candidates.append((mv, location.kind.piece, after, long_moves))

        sequences = sorted(
            (
                (Sequence(next_pieces, queue), qbag)
                for next_pieces, bag in pos.next_possibilities()
                for queue, qbag in possible_sequences((), bag)
            ),
            key=lambda item: item[0].sort_key(),
        )

        values: list[_Entry] = []
        for sequence, qbag in sequences:
            best = MoveValue()
            best_moves: list[int] = []
            available = sequence.next_pieces
            queue = sequence.queue
            for mv, piece, after, long_moves in candidates:
                if piece not in available:
                    continue
                if mv.value is not None:
                    value = MoveValue(mv.value, 0.0)
                else:
                    remaining = available if len(available) == 1 else available - {piece}
                    value = self.value_of_raw(after, remaining | {queue[0]}, queue[1:], qbag)
                value = replace(value, long_moves=value.long_moves + long_moves)
                if value > best:
                    best = value
                    best_moves = [mv.packed]
                elif value == best and best != MoveValue():
                    best_moves.append(mv.packed)
            entry = (sequence, best, tuple(best_moves))
            if values and values[-1][1] == entry[1] and values[-1][2] == entry[2]:
                continue
            values.append(entry)

        if data.values != values:
            data.values = values
            for parent in data.backrefs:
                self._mark_dirty(parent)

    def recalculate_graph(self) -> None:
        """Drop positions without moves and propagate values until nothing changes."""
        self._data = {pos: d for pos, d in self._data.items() if d.moves}
        while self._dirty_queue:
            pos = self._dirty_queue.popleft()
            self._dirty_positions.discard(pos)
            self._update_value(pos)

    def add_move(
        self,
        position: Union[Position, Board],
        mv: FallingPiece,
        value: Optional[float],
    ) -> None:
        """Record a move; a value marks it as the end of a line worth that much."""
        if isinstance(position, Board):
            position = Position.from_board(position)
        moves = self._data.setdefault(position, _PositionData()).moves
        add_backref = False
        remove_backref = False
        for index, existing in enumerate(moves):
            if existing.location.same_location(mv):
                if _option_less(existing.value, value):
                    remove_backref = existing.value is None and value is not None
                    moves[index] = replace(existing, value=value)
                break
        else:
            add_backref = value is None
            moves.append(BookMove(encode_piece(mv), value))
        if add_backref:
            child = position.advance(mv)[0]
            self._data.setdefault(child, _PositionData()).backrefs.append(position)
        if remove_backref:
            child_data = self._data.get(position.advance(mv)[0])
            if child_data is not None:
                child_data.backrefs = [p for p in child_data.backrefs if p != position]
        if value is not None:
            self._mark_dirty(position)

    def moves(self, pos: Position) -> list[BookMove]:
        data = self._data.get(pos)
        return list(data.moves) if data is not None else []

    def positions(self) -> Iterator[Position]:
        return iter(list(self._data))

    def compile(self, roots: Iterable[Position]) -> Book:
        """A book of the positions reachable from the roots through best moves."""
        data = {pos: d for pos, d in self._data.items() if d.values}
        entries: dict[Position, list[tuple[Sequence, Optional[int]]]] = {}
        to_compile = list(roots)
        while to_compile:
            pos = to_compile.pop()
            if pos in entries:
                continue
            if pos not in data:
                raise KeyError(f"no book values for position {pos!r}")
            moves = _build_position(data.pop(pos))
            for _, packed in moves:
                if packed is not None:
                    following = pos.advance(decode_piece(packed))[0]
                    if following in data:
                        to_compile.append(following)
            entries[pos] = moves
        return Book(entries)


def _build_position(data: _PositionData) -> list[tuple[Sequence, Optional[int]]]:
    values = iter(data.values)
    run_start, _, first_tie = next(values)
    tie = list(first_tie)
    row: list[tuple[Sequence, Optional[int]]] = []
    for sequence, value, mvs in values:
        if value != MoveValue() and not mvs:
            raise ValueError("a valued sequence has no best move")
        if any(mv in tie for mv in mvs):
            tie = [mv for mv in tie if mv in mvs]
        else:
            row.append((run_start, tie[0] if tie else None))
            run_start = sequence
            tie = list(mvs)
    row.append((run_start, tie[0] if tie else None))
    row.sort(key=lambda entry: entry[0].sort_key())
    deduped: list[tuple[Sequence, Optional[int]]] = []
    for entry in row:
        if deduped and deduped[-1][1] == entry[1]:
            continue
        deduped.append(entry)
    return deduped