# cctetris

A library for Tetris-style games that follow modern guideline rules. It is made
up of these modules:

- `cctetris.piece`: the seven tetrominoes (`Piece`), rotation states, SRS
  rotation with wall kicks, T-spin and mini T-spin detection, sonic drops
  (`FallingPiece`), movements (`PieceMovement`) and spawn rules (`SpawnRule`).
  A `FallingPiece` is immutable. Its movement methods return a new piece, or
  `None` when the piece is blocked.
- `cctetris.board`: a 10×40 `Board` with hold, next queue, a 7-piece bag,
  line clears, combo and back-to-back tracking, garbage rows and perfect-clear
  detection. Rows are stored as `BitRow` (bit masks, the default) or
  `ColoredRow` (one `CellColor` per cell). `Board.to_compressed()` converts a
  board to bit rows.
- `cctetris.lock_data`: `PlacementKind` (single, Tetris, T-spin double and so
  on) with the garbage each kind sends, the `LockResult` of locking a piece,
  and running `Statistics`.
- `cctetris.controller`: `Controller`, the seven game buttons, packed into and
  out of one byte with `to_byte()` and `Controller.from_byte()`.
- `cctetris.moves`: `find_moves`, which returns every resting placement a
  spawned piece can reach, each with the fastest input sequence found. It works
  under `MovementMode.ZERO_G`, `ZERO_G_COMPLETE`, `TWENTY_G` or
  `HARD_DROP_ONLY`.
- `cctetris.book`: opening books. It provides compact board positions
  (`Position`), upcoming piece sequences (`Sequence`), and a `Book` that
  suggests a placement for a board. Books are read and written as
  zstd-compressed binary data.
- `cctetris.book_builder`: `BookBuilder`, which collects moves, propagates
  expected values (`MoveValue`) through the position graph and compiles a
  `Book`.
- `cctetris.tbi`: the JSON messages of the Tetris Bot Interface. It parses and
  writes them and converts between the interface's moves and `FallingPiece`.

## Examples

### Locking pieces

```python
from cctetris.board import Board
from cctetris.lock_data import Statistics
from cctetris.piece import FallingPiece, Piece, PieceState, RotationState

board = Board()
stats = Statistics()

piece = FallingPiece(PieceState(Piece.I, RotationState.NORTH), 1, 0)
result = board.lock_piece(piece)
stats.update(result)

print(result.placement_kind.display_name(), result.garbage_sent)
```

`lock_piece` clears full rows and returns a `LockResult`. The result holds the
`PlacementKind`, the garbage sent, the combo, whether the back-to-back bonus
applied, whether the lock was a perfect clear, whether the piece locked out
above row 20, and the indices of the cleared rows.

### Finding placements

```python
from cctetris.board import Board
from cctetris.moves import MovementMode, find_moves
from cctetris.piece import Piece, SpawnRule

board = Board()
spawned = SpawnRule.ROW_19_OR_20.spawn(Piece.T, board)
for placement in find_moves(board, spawned, MovementMode.ZERO_G):
    print(placement.location, placement.inputs.movements, placement.inputs.time)
```

Each `Placement` pairs a resting location with an `InputList`. The `InputList`
gives the movements to press and an estimate of how many frames they take. An
input list holds at most 32 movements.

### Opening books

```python
from cctetris.book import Book, Position

with open("book.ccbook", "rb") as stream:
    book = Book.load(stream)

suggestion = book.suggest_move(board)        # a FallingPiece, or None
position = Position.from_board(board)
if suggestion is not None:
    after, cost = position.advance(suggestion)
```

`suggest_move` returns `None` in two cases: the book has no entry for the
position, or the queue is too short. With a hold piece the queue needs at
least five pieces; without one it needs six. `Book.load` raises `ValueError`
when the data is not a valid book. `Book.merge(other)` adds the positions of
another book that this one lacks. `Book.save(stream)` writes the book out.

To build a book:

1. Create a `BookBuilder` and call `add_move(position_or_board, piece, value)`
   for each move. Give a value such as `1.0` when a move ends a line, or `None`
   when its worth comes from the moves after it.
2. Call `recalculate_graph()` to propagate values through the positions.
3. Call `compile(roots)` to get a `Book` covering the positions reachable from
   the roots through best moves.

`value_of_position` and `value_of` report expected values along the way.

### TBI messages

```python
from cctetris.tbi import Start, board_from_start, dump_message, parse_message

message = parse_message(line)
if isinstance(message, Start):
    board = board_from_start(message)
```

Messages of an unrecognised type parse to `Unknown`. Malformed messages raise
`ValueError`. `dump_message` returns compact one-line JSON for any message.
`move_from_falling_piece` and `move_to_falling_piece` convert between `TbiMove`
and `FallingPiece`.

## What this package does not do

This is a library of game rules and data structures. It has no command-line
program and no graphical client. It has no game loop or versus battles, and no
search-based bot or board evaluation. The `cctetris.tbi` module encodes and
decodes messages only; it does not run a bot that talks over standard input
and output. Opening books must be assembled from moves you supply, because no
tools for generating them are included.

## Requirements

- Python 3.10 or newer.
- `zstandard`, used to read and write opening books.