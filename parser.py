"""Module: turn comma-separated Intcode text into an initial tape.

This module contains:
- tokenize(s) -> list of tokens
- parse_program(s) -> list of ints
- load_program(path) -> list of ints
"""

from __future__ import annotations

# ruff: noqa: A005
import re
from pathlib import Path

_INT_RE = re.compile(r"^[-+]?[0-9]+$")


class ProgramError(ValueError):
    """Raised when program text cannot be turned into a tape."""

    pass


def is_int_token(tok: str) -> bool:
    """True if `tok` is a plain decimal integer with an optional sign."""
    return bool(_INT_RE.match(tok))


def tokenize(s: str) -> list[str]:
    """Split program text on commas, stripping whitespace around tokens."""
    if not s.strip():
        return []
    return [tok.strip() for tok in s.strip().split(",")]


def parse_program(s: str) -> list[int]:
    """Parse program text into a list of signed integers.

    Raises ProgramError on an empty program or a token that is not a
    decimal integer.
    """
    tokens = tokenize(s)
    if not tokens:
        msg = "Empty program"
        raise ProgramError(msg)
    program: list[int] = []
    for i, tok in enumerate(tokens):
        if not is_int_token(tok):
            msg = f"Bad program token #{i}: {tok!r}"
            raise ProgramError(msg)
        program.append(int(tok))
    return program


def load_program(path: str | Path) -> list[int]:
    """Read a program file (UTF-8) and parse it."""
    p = Path(path)
    if not p.exists():
        msg = f"Program file not found: {path}"
        raise ProgramError(msg)
    return parse_program(p.read_text(encoding="utf-8"))
