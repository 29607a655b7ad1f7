import pytest

from cctetris.lock_data import LockResult, PlacementKind, Statistics
from cctetris.piece import TspinStatus


def test_garbage_values():
    assert PlacementKind.CLEAR4.garbage() == 4
    assert PlacementKind.TSPIN3.garbage() == 6
    assert PlacementKind.CLEAR2.garbage() == 1
    assert PlacementKind.NONE.garbage() == 0


def test_non_clearing_kinds():
    for kind in (PlacementKind.NONE, PlacementKind.MINI_TSPIN, PlacementKind.TSPIN):
        assert not kind.is_clear()
        assert kind.garbage() == 0
    assert PlacementKind.CLEAR1.is_clear()


def test_hard_kinds():
    assert PlacementKind.CLEAR4.is_hard()
    assert PlacementKind.MINI_TSPIN.is_hard()
    for kind in (PlacementKind.NONE, PlacementKind.CLEAR1, PlacementKind.CLEAR3):
        assert not kind.is_hard()


@pytest.mark.parametrize(
    "cleared, tspin, expected",
    [
        (0, TspinStatus.NONE, PlacementKind.NONE),
        (0, TspinStatus.MINI, PlacementKind.MINI_TSPIN),
        (0, TspinStatus.FULL, PlacementKind.TSPIN),
        (1, TspinStatus.NONE, PlacementKind.CLEAR1),
        (1, TspinStatus.MINI, PlacementKind.MINI_TSPIN1),
        (2, TspinStatus.MINI, PlacementKind.MINI_TSPIN2),
        (2, TspinStatus.FULL, PlacementKind.TSPIN2),
        (3, TspinStatus.FULL, PlacementKind.TSPIN3),
        (4, TspinStatus.NONE, PlacementKind.CLEAR4),
    ],
)
def test_from_clear(cleared, tspin, expected):
    assert PlacementKind.from_clear(cleared, tspin) is expected


@pytest.mark.parametrize(
    "cleared, tspin",
    [(3, TspinStatus.MINI), (4, TspinStatus.FULL), (5, TspinStatus.NONE), (-1, TspinStatus.NONE)],
)
def test_from_clear_impossible(cleared, tspin):
    with pytest.raises(ValueError):
        PlacementKind.from_clear(cleared, tspin)


def test_names():
    assert PlacementKind.CLEAR4.display_name() == "Tetris"
    assert PlacementKind.TSPIN2.short_name() == "TSD"
    assert PlacementKind.NONE.short_name() == "..."
    assert len({k.display_name() for k in PlacementKind}) == len(PlacementKind)


def test_lock_result_defaults():
    result = LockResult()
    assert result.placement_kind is PlacementKind.NONE
    assert result.cleared_lines == ()
    assert result.combo is None
    assert result == LockResult()


def test_statistics_update():
    stats = Statistics()
    stats.update(
        LockResult(
            placement_kind=PlacementKind.CLEAR2,
            garbage_sent=1,
            cleared_lines=(0, 1),
            combo=3,
        )
    )
    assert stats.pieces == 1
    assert stats.lines == 2
    assert stats.attack == 1
    assert stats.doubles == 1
    assert stats.max_combo == 3

    stats.update(LockResult(placement_kind=PlacementKind.TSPIN2, cleared_lines=(0, 1), combo=1))
    assert stats.max_combo == 3
    assert stats.tspin_doubles == 1
    assert stats.pieces == 2
    assert stats.lines == 4


def test_statistics_counts_each_kind_once():
    stats = Statistics()
    for kind in PlacementKind:
        stats.update(LockResult(placement_kind=kind))
    assert stats.pieces == len(PlacementKind)
    assert stats.singles == stats.tetrises == stats.mini_tspin_doubles == 1
    assert stats.perfect_clears == 0


def test_statistics_perfect_clear():
    stats = Statistics()
    stats.update(
        LockResult(placement_kind=PlacementKind.CLEAR4, perfect_clear=True, garbage_sent=10)
    )
    assert stats.perfect_clears == 1
    assert stats.attack == 10
    assert stats.tetrises == 1