"""
Satellite identifier helpers.

Only GPS is read. RINEX 2 files may list GPS satellites as a bare PRN
(`` 5``, ``05``) or with a blank-padded system letter (``G 5``); both are
brought to the RINEX 3 form ``G05``.
"""

import re

from .lexical import DIGITS, trim

GPS = "G"

_PADDED_ID = re.compile(r"^G +(\d+)$")
_LEADING_PRN = re.compile(r"^\d+")


def is_supported_constellation(token: str) -> bool:
    """True for GPS satellites: ``G`` prefix or a bare RINEX 2 PRN."""
    if not token:
        return False
    return token[0] == GPS or token[0] in DIGITS


def normalize_id(token: str) -> str:
    """
    Map a raw satellite token to ``<letter><2-digit PRN>``.

    Never raises. A token that cannot be interpreted is returned trimmed
    and otherwise unchanged, so callers may see non-canonical ids.
    """
    t = trim(token)
    if not t:
        return t
    if t[0] == GPS and t[1:2] != " ":
        return t
    if t[0] in DIGITS:
        prn = int(_LEADING_PRN.match(t).group(0))
        return f"{GPS}{prn:02d}"
    padded = _PADDED_ID.match(t)
    if padded:
        return f"{GPS}{int(padded.group(1)):02d}"
    return t
