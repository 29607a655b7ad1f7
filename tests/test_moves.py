import dataclasses

import pytest

from cctetris.board import Board
from cctetris.lock_data import PlacementKind
from cctetris.moves import (
    MAX_MOVEMENTS,
    InputList,
    Move,
    MovementMode,
    Placement,
    find_moves,
)
from cctetris.piece import (
    FallingPiece,
    Piece,
    PieceMovement,
    PieceState,
    RotationState,
    TspinStatus,
)


def board_from_rows(*rows):
    """Rows are given bottom first; 'X' marks a filled cell."""
    field = [[False] * 10 for _ in range(40)]
    for y, row in enumerate(rows):
        for x, cell in enumerate(row):
            field[y][x] = cell == "X"
    return Board.new_with_state(field, frozenset(), None, False, 0)


def spawn(piece):
    return FallingPiece(PieceState(piece, RotationState.NORTH), 4, 19)


def replay(board, start, movements):
    piece = start
    for movement in movements:
        moved = movement.apply(piece, board)
        if moved is not None:
            piece = moved
    return piece.sonic_drop(board)


def assert_valid(board, placements):
    for placement in placements:
        location = placement.location
        assert not board.obstructed(location)
        assert location.sonic_drop(board).y == location.y
        assert any(y < 20 for _, y in location.cells())
        assert len(placement.inputs.movements) <= MAX_MOVEMENTS
        assert placement.inputs.time >= 0


def test_empty_board_t_piece_count():
    board = Board()
    placements = find_moves(board, spawn(Piece.T), MovementMode.ZERO_G)
    assert len(placements) == 34
    assert_valid(board, placements)


def test_empty_board_i_piece_count():
    board = Board()
    placements = find_moves(board, spawn(Piece.I), MovementMode.ZERO_G)
    assert len(placements) == 17


def test_empty_board_o_piece_count():
    board = Board()
    placements = find_moves(board, spawn(Piece.O), MovementMode.ZERO_G)
    assert len(placements) == 9


@pytest.mark.parametrize("piece", list(Piece))
def test_locations_are_distinct(piece):
    board = Board()
    placements = find_moves(board, spawn(piece), MovementMode.ZERO_G)
    keys = [p.location.canonical() for p in placements]
    assert len(keys) == len(set(keys))
    cell_sets = {frozenset(p.location.cells()) for p in placements}
    assert len(cell_sets) == len(placements)


@pytest.mark.parametrize("piece", list(Piece))
@pytest.mark.parametrize(
    "mode", [MovementMode.ZERO_G, MovementMode.ZERO_G_COMPLETE, MovementMode.TWENTY_G]
)
def test_inputs_replay_to_location(piece, mode):
    board = Board()
    start = spawn(piece)
    for placement in find_moves(board, start, mode):
        final = replay(board, start, placement.inputs.movements)
        assert final.same_location(placement.location)


def test_spawn_column_needs_no_inputs():
    board = Board()
    start = spawn(Piece.T)
    dropped = start.sonic_drop(board)
    matching = [
        p
        for p in find_moves(board, start, MovementMode.ZERO_G)
        if p.location.same_location(dropped)
    ]
    assert len(matching) == 1
    assert matching[0].inputs == InputList((), 0)


def test_hard_drop_only_never_soft_drops():
    board = Board()
    start = spawn(Piece.T)
    hard = find_moves(board, start, MovementMode.HARD_DROP_ONLY)
    zero_g = find_moves(board, start, MovementMode.ZERO_G)
    assert all(PieceMovement.SONIC_DROP not in p.inputs.movements for p in hard)
    assert {p.location.canonical() for p in hard} == {
        p.location.canonical() for p in zero_g
    }


def test_complete_mode_finds_at_least_fast_mode():
    board = board_from_rows("XXXX.XXXXX", "XXX...XXXX", "XXXX......")
    start = spawn(Piece.T)
    fast = {p.location.canonical() for p in find_moves(board, start, MovementMode.ZERO_G)}
    complete = {
        p.location.canonical()
        for p in find_moves(board, start, MovementMode.ZERO_G_COMPLETE)
    }
    assert fast <= complete


@pytest.mark.parametrize("rows", [(), ("X........X",) * 17])
def test_twenty_g_inputs_begin_with_drop(rows):
    board = board_from_rows(*rows)
    placements = find_moves(board, spawn(Piece.L), MovementMode.TWENTY_G)
    assert placements
    assert all(
        p.inputs.movements[:1] in ((), (PieceMovement.SONIC_DROP,)) for p in placements
    )
    assert_valid(board, placements)


def test_tspin_double_slot_is_found():
    board = board_from_rows("XXXX.XXXXX", "XXX...XXXX", "XXXX......")
    start = spawn(Piece.T)
    placements = find_moves(board, start, MovementMode.ZERO_G)
    assert_valid(board, placements)
    spins = [p for p in placements if p.location.tspin is TspinStatus.FULL]
    assert spins
    results = []
    for placement in spins:
        assert replay(board, start, placement.inputs.movements) == placement.location
        results.append(board.copy().lock_piece(placement.location).placement_kind)
    assert PlacementKind.TSPIN2 in results


def test_tall_stack_uses_full_search():
    board = board_from_rows(*([".........X"] * 17))
    start = spawn(Piece.T)
    placements = find_moves(board, start, MovementMode.ZERO_G)
    assert_valid(board, placements)
    for placement in placements:
        final = replay(board, start, placement.inputs.movements)
        assert final.same_location(placement.location)
    assert any(
        min(x for x, _ in p.location.cells()) == 0
        and max(y for _, y in p.location.cells()) <= 1
        for p in placements
    )


def test_time_grows_with_movements():
    board = Board()
    for placement in find_moves(board, spawn(Piece.J), MovementMode.ZERO_G):
        sideways = [
            m for m in placement.inputs.movements if m is not PieceMovement.SONIC_DROP
        ]
        assert placement.inputs.time >= len(sideways)


def test_records_are_immutable():
    location = spawn(Piece.S)
    move = Move((PieceMovement.LEFT,), location, False)
    placement = Placement(InputList((PieceMovement.LEFT,), 1), location)
    assert move == Move((PieceMovement.LEFT,), location, False)
    assert placement.inputs.movements == move.inputs
    with pytest.raises(dataclasses.FrozenInstanceError):
        move.hold = True