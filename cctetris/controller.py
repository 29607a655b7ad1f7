"""The buttons a player holds down during one frame."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Controller:
    left: bool = False
    right: bool = False
    rotate_right: bool = False
    rotate_left: bool = False
    soft_drop: bool = False
    hard_drop: bool = False
    hold: bool = False

    def to_byte(self) -> int:
        """Pack the buttons into one byte; bit 0 is unused."""
        return (
            self.left << 1
            | self.right << 2
            | self.rotate_left << 3
            | self.rotate_right << 4
            | self.hold << 5
            | self.soft_drop << 6
            | self.hard_drop << 7
        )

    @classmethod
    def from_byte(cls, value: int) -> "Controller":
        """Unpack a byte written by to_byte."""
        if not 0 <= value <= 0xFF:
            raise ValueError(f"controller state must fit in a byte, got {value}")
        return cls(
            left=bool(value >> 1 & 1),
            right=bool(value >> 2 & 1),
            rotate_left=bool(value >> 3 & 1),
            rotate_right=bool(value >> 4 & 1),
            hold=bool(value >> 5 & 1),
            soft_drop=bool(value >> 6 & 1),
            hard_drop=bool(value >> 7 & 1),
        )