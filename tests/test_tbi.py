import json

import pytest

from cctetris.board import ALL_PIECES
from cctetris.piece import FallingPiece, Piece, PieceState, RotationState, TspinStatus
from cctetris.tbi import (
    NewPiece,
    Orientation,
    PieceLocation,
    Play,
    Quit,
    Ready,
    Spin,
    Start,
    Stop,
    Suggest,
    Suggestion,
    TbiMove,
    Unknown,
    board_from_start,
    dump_message,
    move_from_falling_piece,
    move_to_falling_piece,
    parse_message,
)


def start_json(board=None):
    if board is None:
        board = [[None] * 10 for _ in range(40)]
        board[0][0] = "G"
    return json.dumps(
        {
            "type": "start",
            "hold": "O",
            "queue": ["T", "I"],
            "combo": 2,
            "back_to_back": True,
            "board": board,
        }
    )


def test_parse_start_and_build_board():
    message = parse_message(start_json())
    assert isinstance(message, Start)
    assert message.hold is Piece.O
    assert message.queue == (Piece.T, Piece.I)
    board = board_from_start(message)
    assert board.hold_piece is Piece.O
    assert list(board.next_queue()) == [Piece.T, Piece.I]
    assert board.combo == 2
    assert board.b2b_bonus is True
    assert board.occupied(0, 0)
    assert not board.occupied(1, 0)
    assert board.column_heights[0] == 1
    assert board.bag == ALL_PIECES - {Piece.T, Piece.I}


def test_start_rejects_short_board():
    with pytest.raises(ValueError):
        parse_message(start_json([[None] * 10 for _ in range(39)]))


def test_start_rejects_long_cell():
    board = [[None] * 10 for _ in range(40)]
    board[3][3] = "GG"
    with pytest.raises(ValueError):
        parse_message(start_json(board))


def test_parse_play():
    text = (
        '{"type":"play","move":{"location":{"type":"T","orientation":"east",'
        '"x":4,"y":2},"spin":"full"}}'
    )
    message = parse_message(text)
    assert message == Play(TbiMove(PieceLocation(Piece.T, Orientation.EAST, 4, 2), Spin.FULL))
    assert move_to_falling_piece(message.mv) == FallingPiece(
        PieceState(Piece.T, RotationState.EAST), 4, 2, TspinStatus.FULL
    )


@pytest.mark.parametrize(
    "text, expected",
    [
        ('{"type":"stop"}', Stop()),
        ('{"type":"suggest"}', Suggest()),
        ('{"type":"quit"}', Quit()),
        ('{"type":"new-piece","piece":"Z"}', NewPiece(Piece.Z)),
        ('{"type":"something-else","data":1}', Unknown()),
    ],
)
def test_parse_simple_messages(text, expected):
    assert parse_message(text) == expected


def test_dump_ready_matches_wire_format():
    text = dump_message(Ready("Cold Clear", "2020-03-17", "author"))
    assert text == '{"type":"ready","name":"Cold Clear","version":"2020-03-17","author":"author"}'


def test_dump_new_piece_and_stop():
    assert dump_message(NewPiece(Piece.Z)) == '{"type":"new-piece","piece":"Z"}'
    assert dump_message(Stop()) == '{"type":"stop"}'


def test_suggestion_round_trip():
    piece = FallingPiece(PieceState(Piece.L, RotationState.SOUTH), 3, 1, TspinStatus.MINI)
    message = Suggestion((move_from_falling_piece(piece),))
    parsed = parse_message(dump_message(message))
    assert parsed == message
    assert move_to_falling_piece(parsed.moves[0]) == piece


def test_start_round_trip():
    message = parse_message(start_json())
    assert parse_message(dump_message(message)) == message


def test_missing_field_raises():
    with pytest.raises(ValueError):
        parse_message('{"type":"new-piece"}')


def test_missing_type_raises():
    with pytest.raises(ValueError):
        parse_message('{"piece":"Z"}')


def test_bad_piece_raises():
    with pytest.raises(ValueError):
        parse_message('{"type":"new-piece","piece":"X"}')


def test_invalid_json_raises():
    with pytest.raises(ValueError):
        parse_message("{not json")


def test_negative_combo_raises():
    data = json.loads(start_json())
    data["combo"] = -1
    with pytest.raises(ValueError):
        parse_message(json.dumps(data))