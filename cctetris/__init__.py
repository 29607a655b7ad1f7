"""Guideline Tetris rules, move generation, opening books and TBI messages."""

__version__ = "0.1.0"