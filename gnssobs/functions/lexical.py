"""
RINEX Lexical Utilities

Small helpers shared by the header and data readers: whitespace trimming,
a lenient numeric-token check and extraction of observation-type codes
from a fixed-format header line.
"""

import typing

WHITESPACE = " \t\r\n"

# First letters of the observation kinds: pseudorange, phase, doppler,
# signal strength, P-code (RINEX 2) and channel number (RINEX 3)
OBS_KIND_LETTERS = "CLDSPT"

DIGITS = "0123456789"
_NUMBER_CHARS = set(DIGITS + "+-.eE \t")


def trim(s: str) -> str:
    """Strip leading and trailing spaces, tabs, carriage returns and newlines."""
    return s.strip(WHITESPACE)


def is_number(s: str) -> bool:
    """
    Check whether a token looks like a floating point number.

    This is a lenient check, not a numeric grammar: interior spaces and tabs
    are ignored and the position of the sign is not enforced, so ``1-2``
    passes. Callers still have to guard the actual ``float()`` conversion.

    Args:
        s: Token to inspect

    Returns:
        True if the token has at least one digit, at most one sign and at
        most one decimal point, and nothing but numeric characters
    """
    dot = False
    sign = False
    digit = False
    for c in s:
        if c in " \t":
            continue
        if c not in _NUMBER_CHARS:
            return False
        if c in "+-":
            if sign:
                return False
            sign = True
        elif c == ".":
            if dot:
                return False
            dot = True
        elif c in DIGITS:
            digit = True
    return digit


def split_tokens(line: str, skip: int = 0) -> list[str]:
    """Whitespace-delimited tokens of ``line`` after the first ``skip`` characters."""
    return line[skip:].split()


def extract_types_from_line(
    line: str,
    skip: int,
    min_len: int,
    max_len: int,
    valid_start: typing.Iterable[str] = OBS_KIND_LETTERS,
) -> list[str]:
    """
    Extract candidate observation-type codes from one header line.

    Works for both RINEX 2 (``# / TYPES OF OBSERV``) and RINEX 3
    (``SYS / # / OBS TYPES``) lines, the caller chooses the column to start
    from and the allowed code length.

    Args:
        line: Physical header line (content area only)
        skip: Number of leading characters to ignore
        min_len: Minimum code length
        max_len: Maximum code length
        valid_start: Allowed first characters

    Returns:
        Codes in the order they appear on the line
    """
    valid = set(valid_start)
    return [
        token
        for token in split_tokens(line, skip)
        if min_len <= len(token) <= max_len and token[0] in valid
    ]


def parse_obs_type_count(line: str) -> int:
    """
    Read the first run of digits on a line as an integer.

    Leading non-digit characters (system letter, spaces) are skipped.

    Returns:
        The integer, or -1 when the line holds no digits
    """
    i = 0
    while i < len(line) and line[i] not in DIGITS:
        i += 1
    start = i
    while i < len(line) and line[i] in DIGITS:
        i += 1
    if start == i:
        return -1
    return int(line[start:i])


def parse_int_field(field: str) -> typing.Optional[int]:
    """Parse a fixed-width integer field, None when blank or malformed."""
    field = trim(field)
    if not field:
        return None
    try:
        return int(field)
    except ValueError:
        return None


class LineCursor:
    """
    Forward-only reader over a sequence of text lines.

    Trailing line terminators are removed. One line can be handed back with
    ``push_back`` so that a continuation read that overshoots does not lose
    the record it stopped at.
    """

    def __init__(self, lines: typing.Iterable[str]):
        self._lines = iter(lines)
        self._pending: list[str] = []
        self.line_number = 0

    def __iter__(self):
        return self

    def __next__(self) -> str:
        line = self.next_line()
        if line is None:
            raise StopIteration
        return line

    def next_line(self) -> typing.Optional[str]:
        """Next line, or None at end of input."""
        if self._pending:
            line = self._pending.pop()
        else:
            try:
                line = next(self._lines)
            except StopIteration:
                return None
            line = line.rstrip("\r\n")
        self.line_number += 1
        return line

    def push_back(self, line: str) -> None:
        self._pending.append(line)
        self.line_number -= 1
