import pytest

from cctetris.board import Board
from cctetris.book import Position, encode_piece
from cctetris.book_builder import BookBuilder, BookMove, MoveValue, sum_values
from cctetris.piece import FallingPiece, Piece, PieceState, RotationState

PARENT = Position((0,) * 10, frozenset({Piece.I, Piece.O}))
I_FLAT = FallingPiece(PieceState(Piece.I, RotationState.NORTH), 1, 0)
O_BLOCK = FallingPiece(PieceState(Piece.O, RotationState.NORTH), 4, 0)
T_FLAT = FallingPiece(PieceState(Piece.T, RotationState.NORTH), 4, 0)


def chain_builder():
    builder = BookBuilder()
    child = PARENT.advance(I_FLAT)[0]
    builder.add_move(PARENT, I_FLAT, None)
    builder.add_move(child, O_BLOCK, 1.0)
    builder.recalculate_graph()
    return builder, child


def test_move_value_ordering():
    assert MoveValue(1.0, 0.0) > MoveValue(0.5, 0.0)
    assert MoveValue(1.0, 2.0) < MoveValue(1.0, 1.0)
    assert MoveValue(1.0, 2.0).max(MoveValue(1.0, 1.0)) == MoveValue(1.0, 1.0)
    assert MoveValue(3.0, 9.0).max(MoveValue(1.0, 0.0)) == MoveValue(3.0, 9.0)


def test_sum_values_averages():
    result = sum_values([MoveValue(1.0, 2.0), MoveValue(0.0, 5.0)])
    assert result == MoveValue(0.5, 2.0)
    assert sum_values([]) == MoveValue()


def test_book_move_location_round_trip():
    mv = BookMove(encode_piece(O_BLOCK), 1.0)
    assert mv.location == O_BLOCK


def test_unknown_position_has_no_value():
    builder = BookBuilder()
    assert builder.value_of_position(PARENT) == MoveValue()
    assert builder.moves(PARENT) == []


def test_add_move_keeps_best_value():
    builder = BookBuilder()
    builder.add_move(PARENT, O_BLOCK, None)
    builder.add_move(PARENT, O_BLOCK, 2.0)
    builder.add_move(PARENT, O_BLOCK, 1.0)
    moves = builder.moves(PARENT)
    assert len(moves) == 1
    assert moves[0].value == 2.0


def test_add_move_merges_same_location():
    builder = BookBuilder()
    east = FallingPiece(PieceState(Piece.O, RotationState.EAST), 4, 1)
    builder.add_move(PARENT, O_BLOCK, 1.0)
    builder.add_move(PARENT, east, 1.0)
    assert len(builder.moves(PARENT)) == 1


def test_unvalued_move_creates_child_then_recalc_drops_it():
    builder = BookBuilder()
    builder.add_move(PARENT, I_FLAT, None)
    child = PARENT.advance(I_FLAT)[0]
    assert set(builder.positions()) == {PARENT, child}
    builder.recalculate_graph()
    assert set(builder.positions()) == {PARENT}
    assert builder.value_of_position(PARENT) == MoveValue()


def test_add_move_accepts_board():
    builder = BookBuilder()
    board = Board()
    builder.add_move(board, O_BLOCK, None)
    assert Position.from_board(board) in set(builder.positions())


def test_valued_leaf():
    builder = BookBuilder()
    builder.add_move(PARENT, I_FLAT, 1.0)
    builder.recalculate_graph()
    assert builder.value_of_position(PARENT) == MoveValue(1.0, 0.0)


def test_unavailable_piece_gives_no_value():
    builder = BookBuilder()
    builder.add_move(PARENT, T_FLAT, 1.0)
    builder.recalculate_graph()
    assert builder.value_of_position(PARENT) == MoveValue()


def test_value_propagates_to_parent():
    builder, child = chain_builder()
    assert builder.value_of_position(child) == MoveValue(1.0, 0.0)
    assert builder.value_of_position(PARENT) == MoveValue(1.0, 0.0)


def test_compile_produces_book_moves():
    builder, child = chain_builder()
    book = builder.compile([PARENT])
    assert set(book.entries) == {PARENT, child}
    queue = (Piece.T, Piece.T, Piece.T, Piece.T)
    assert book.suggest_move_raw(PARENT, frozenset({Piece.I, Piece.O}), queue) == I_FLAT
    assert book.suggest_move_raw(child, frozenset({Piece.O, Piece.S}), queue) == O_BLOCK
    for moves in book.entries.values():
        keys = [sequence.sort_key() for sequence, _ in moves]
        assert keys == sorted(keys)


def test_compile_leaves_builder_usable():
    builder, child = chain_builder()
    builder.compile([PARENT])
    assert builder.value_of_position(PARENT) == MoveValue(1.0, 0.0)


def test_compile_unknown_root_raises():
    builder = BookBuilder()
    with pytest.raises(KeyError):
        builder.compile([PARENT])


def test_value_of_empty_queue_raises():
    builder = BookBuilder()
    with pytest.raises(ValueError):
        builder.value_of(Board())


def test_value_of_board_without_data():
    builder = BookBuilder()
    board = Board()
    for piece in (Piece.I, Piece.O, Piece.T, Piece.L, Piece.J, Piece.S):
        board.add_next_piece(piece)
    assert builder.value_of(board) == MoveValue()