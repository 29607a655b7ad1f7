"""What happens when a piece locks: clear kinds, garbage and statistics."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Optional

from cctetris.piece import TspinStatus


class PlacementKind(enum.Enum):
    NONE = "none"
    CLEAR1 = "clear1"
    CLEAR2 = "clear2"
    CLEAR3 = "clear3"
    CLEAR4 = "clear4"
    MINI_TSPIN = "mini_tspin"
    MINI_TSPIN1 = "mini_tspin1"
    MINI_TSPIN2 = "mini_tspin2"
    TSPIN = "tspin"
    TSPIN1 = "tspin1"
    TSPIN2 = "tspin2"
    TSPIN3 = "tspin3"

    def garbage(self) -> int:
        """The garbage this kind of placement normally sends."""
        return _GARBAGE[self]

    def is_hard(self) -> bool:
        """Whether this placement takes part in back-to-back chains."""
        return self in _HARD

    def is_clear(self) -> bool:
        """Whether this placement cleared any lines."""
        return self not in (PlacementKind.NONE, PlacementKind.MINI_TSPIN, PlacementKind.TSPIN)

    @classmethod
    def from_clear(cls, cleared: int, tspin: TspinStatus) -> "PlacementKind":
        """The placement kind for a number of cleared lines and spin status."""
        if tspin is TspinStatus.NONE:
            kinds = (cls.NONE, cls.CLEAR1, cls.CLEAR2, cls.CLEAR3, cls.CLEAR4)
        elif tspin is TspinStatus.MINI:
            kinds = (cls.MINI_TSPIN, cls.MINI_TSPIN1, cls.MINI_TSPIN2)
        else:
            kinds = (cls.TSPIN, cls.TSPIN1, cls.TSPIN2, cls.TSPIN3)
        if not 0 <= cleared < len(kinds):
            raise ValueError(f"impossible placement: {cleared} lines with {tspin.name} spin")
        return kinds[cleared]

    def display_name(self) -> str:
        return _NAMES[self][0]

    def short_name(self) -> str:
        return _NAMES[self][1]


_GARBAGE = {
    PlacementKind.NONE: 0,
    PlacementKind.MINI_TSPIN: 0,
    PlacementKind.TSPIN: 0,
    PlacementKind.CLEAR1: 0,
    PlacementKind.MINI_TSPIN1: 0,
    PlacementKind.CLEAR2: 1,
    PlacementKind.MINI_TSPIN2: 1,
    PlacementKind.CLEAR3: 2,
    PlacementKind.TSPIN1: 2,
    PlacementKind.CLEAR4: 4,
    PlacementKind.TSPIN2: 4,
    PlacementKind.TSPIN3: 6,
}

_HARD = frozenset(
    {
        PlacementKind.CLEAR4,
        PlacementKind.MINI_TSPIN,
        PlacementKind.MINI_TSPIN1,
        PlacementKind.MINI_TSPIN2,
        PlacementKind.TSPIN,
        PlacementKind.TSPIN1,
        PlacementKind.TSPIN2,
        PlacementKind.TSPIN3,
    }
)

_NAMES = {
    PlacementKind.NONE: ("", "..."),
    PlacementKind.CLEAR1: ("Single", "S"),
    PlacementKind.CLEAR2: ("Double", "D"),
    PlacementKind.CLEAR3: ("Triple", "T"),
    PlacementKind.CLEAR4: ("Tetris", "Tet"),
    PlacementKind.MINI_TSPIN: ("Mini T-Spin", "ts"),
    PlacementKind.MINI_TSPIN1: ("Mini T-Spin Single", "tss"),
    PlacementKind.MINI_TSPIN2: ("Mini T-Spin Double", "tsd"),
    PlacementKind.TSPIN: ("T-Spin", "TS"),
    PlacementKind.TSPIN1: ("T-Spin Single", "TSS"),
    PlacementKind.TSPIN2: ("T-Spin Double", "TSD"),
    PlacementKind.TSPIN3: ("T-Spin Triple", "TST"),
}

COMBO_GARBAGE = (0, 0, 1, 1, 2, 2, 3, 3, 4, 4, 4, 5)
"""Extra garbage by combo count; the last entry applies to all longer combos."""


@dataclass(frozen=True)
class LockResult:
    """Everything that follows from locking one piece."""

    placement_kind: PlacementKind = PlacementKind.NONE
    locked_out: bool = False
    b2b: bool = False
    perfect_clear: bool = False
    combo: Optional[int] = None
    garbage_sent: int = 0
    cleared_lines: tuple[int, ...] = ()


_COUNTERS = {
    PlacementKind.CLEAR1: "singles",
    PlacementKind.CLEAR2: "doubles",
    PlacementKind.CLEAR3: "triples",
    PlacementKind.CLEAR4: "tetrises",
    PlacementKind.TSPIN: "tspin_zeros",
    PlacementKind.TSPIN1: "tspin_singles",
    PlacementKind.TSPIN2: "tspin_doubles",
    PlacementKind.TSPIN3: "tspin_triples",
    PlacementKind.MINI_TSPIN: "mini_tspin_zeros",
    PlacementKind.MINI_TSPIN1: "mini_tspin_singles",
    PlacementKind.MINI_TSPIN2: "mini_tspin_doubles",
}


@dataclass
class Statistics:
    """Running totals over a game."""

    pieces: int = 0
    lines: int = 0
    attack: int = 0
    singles: int = 0
    doubles: int = 0
    triples: int = 0
    tetrises: int = 0
    tspin_zeros: int = 0
    tspin_singles: int = 0
    tspin_doubles: int = 0
    tspin_triples: int = 0
    mini_tspin_zeros: int = 0
    mini_tspin_singles: int = 0
    mini_tspin_doubles: int = 0
    perfect_clears: int = 0
    max_combo: int = 0

    def update(self, result: LockResult) -> None:
        """Account for one locked piece."""
        self.attack += result.garbage_sent
        self.lines += len(result.cleared_lines)
        self.pieces += 1
        if result.perfect_clear:
            self.perfect_clears += 1
        if result.combo is not None and result.combo > self.max_combo:
            self.max_combo = result.combo
        counter = _COUNTERS.get(result.placement_kind)
        if counter is not None:
            setattr(self, counter, getattr(self, counter) + 1)