"""
RINEX Observation Header Reader

Reads header records up to ``END OF HEADER`` and validates the GPS
observation-type declaration. Supports both header styles:
- RINEX 2.x: ``# / TYPES OF OBSERV`` (two-character codes, e.g. L1, C1)
- RINEX 3.x/4.x: ``SYS / # / OBS TYPES`` (three-character codes, e.g. L1C)

Every check has to pass before the data section is looked at; a
header that fails any of them is rejected as a whole.
"""

import dataclasses
import enum
import logging
import typing

from .errors import IncompatibleTypeCodesError, InvalidTypeCountError, MissingHeaderError
from .lexical import (
    OBS_KIND_LETTERS,
    LineCursor,
    extract_types_from_line,
    parse_int_field,
    parse_obs_type_count,
    split_tokens,
    trim,
)
from .satellite import GPS

VERSION_MARKER = "RINEX VERSION / TYPE"
END_OF_HEADER = "END OF HEADER"

# Header records carry their label from column 60 on
LABEL_COLUMN = 60

# RINEX 3 signal attribute letters (tracking mode / channel)
V3_ATTRIBUTE_SUFFIXES = frozenset("ABCDEILMNPQSWXYZ")

# RINEX 2 codes that have no place in a RINEX 3 type list
V2_LEGACY_CODES = frozenset([
    "C1", "C2", "C5", "P1", "P2",
    "L1", "L2", "L5", "D1", "D2", "D5",
    "S1", "S2", "S5",
])


class ObsLineStyle(enum.Enum):
    V2 = "# / TYPES OF OBSERV"
    V3 = "SYS / # / OBS TYPES"


@dataclasses.dataclass
class HeaderInfo:
    """Validated header content handed to the data-section reader."""
    is_v3: bool
    obs_types: list[str]
    version: typing.Optional[float] = None
    records: dict[str, typing.Union[str, list[str]]] = dataclasses.field(default_factory=dict)


def _content(line: str, marker: typing.Optional[str] = None) -> str:
    """Data area of a header line, without the label."""
    end = LABEL_COLUMN
    if marker:
        idx = line.find(marker)
        if 0 <= idx < end:
            end = idx
    return line[:end]


def _is_other_record(line: str, style: ObsLineStyle) -> bool:
    """True if ``line`` is a header record other than an obs-type line of ``style``."""
    if style.value in line:
        return False
    if any(marker in line for marker in (END_OF_HEADER, VERSION_MARKER, ObsLineStyle.V3.value, ObsLineStyle.V2.value)):
        return True
    return bool(line[LABEL_COLUMN:].strip())


def detect_v3(line: str) -> bool:
    """
    Version flag from a ``RINEX VERSION / TYPE`` line.

    The version lives in the first 20 columns; 3.x and 4.x share the
    RINEX 3 layout, anything else is read as RINEX 2.
    """
    version = trim(line[:20])
    return bool(version) and version[0] in "34"


def parse_version_number(line: str) -> typing.Optional[float]:
    try:
        return float(line[:9].strip())
    except ValueError:
        return None


class HeaderInterpreter:
    """
    Consumes header lines from a cursor and produces a HeaderInfo.

    A new interpreter is created for every file; all accumulated state
    lives on the instance.
    """

    def __init__(self, cursor: LineCursor):
        self.cursor = cursor
        self.version_found = False
        self.obs_line_found = False
        self.is_v3 = False
        self.version: typing.Optional[float] = None
        self.styles_seen: set[ObsLineStyle] = set()
        self.declared_count = 0
        self.obs_types: list[str] = []
        self.raw_tokens: list[str] = []
        self.records: dict[str, typing.Union[str, list[str]]] = {}

    def run(self) -> HeaderInfo:
        for line in self.cursor:
            self._record(line)
            if END_OF_HEADER in line:
                return self.validate()
            if VERSION_MARKER in line:
                self._read_version(line)
            elif ObsLineStyle.V3.value in line:
                self._read_v3_types(line)
            elif ObsLineStyle.V2.value in line:
                self._read_v2_types(line)
        raise MissingHeaderError(f"End of input reached before '{END_OF_HEADER}'")

    def _record(self, line: str) -> None:
        # Same bookkeeping as the clock reader: label -> content, repeats become lists
        if len(line) <= LABEL_COLUMN:
            return
        label = line[LABEL_COLUMN:].strip()
        if not label:
            return
        content = line[:LABEL_COLUMN].strip()
        if label in self.records:
            if isinstance(self.records[label], list):
                self.records[label].append(content)
            else:
                self.records[label] = [self.records[label], content]
        else:
            self.records[label] = content

    def _read_version(self, line: str) -> None:
        if self.version_found:
            logging.warning(f"Ignoring repeated '{VERSION_MARKER}' record at line {self.cursor.line_number}")
            return
        self.version_found = True
        self.is_v3 = detect_v3(line)
        self.version = parse_version_number(line)
        logging.debug(f"RINEX version {self.version} ({'v3' if self.is_v3 else 'v2'} layout)")

    def _start_obs_line(self, style: ObsLineStyle) -> bool:
        self.styles_seen.add(style)
        if self.obs_line_found:
            logging.warning(f"Ignoring repeated GPS '{style.value}' record at line {self.cursor.line_number}")
            return False
        self.obs_line_found = True
        return True

    def _declared_count(self, field: str, line: str) -> int:
        count = parse_int_field(field)
        if count is None:
            count = parse_obs_type_count(line)
        return count

    def _read_v3_types(self, line: str) -> None:
        style = ObsLineStyle.V3
        if line[:1] != GPS:
            self.styles_seen.add(style)
            logging.debug(f"Skipping observation types for system '{line[:1]}'")
            return
        if not self._start_obs_line(style):
            return
        content = _content(line, style.value)
        self.declared_count = self._declared_count(content[3:6], content)
        self._add_types(content, 7, 3, 4)
        while len(self.obs_types) < self.declared_count:
            nxt = self.cursor.next_line()
            if nxt is None:
                break
            if style.value not in nxt:
                self.cursor.push_back(nxt)
                break
            self._record(nxt)
            self._add_types(_content(nxt, style.value), 0, 3, 4)

    def _read_v2_types(self, line: str) -> None:
        style = ObsLineStyle.V2
        if not self._start_obs_line(style):
            return
        content = _content(line, style.value)
        self.declared_count = self._declared_count(content[:6], content)
        self._add_types(content, 6, 2, 3)
        while len(self.obs_types) < self.declared_count:
            nxt = self.cursor.next_line()
            if nxt is None:
                break
            if _is_other_record(nxt, style):
                self.cursor.push_back(nxt)
                break
            self._record(nxt)
            self._add_types(_content(nxt, style.value), 0, 2, 3)

    def _add_types(self, content: str, skip: int, min_len: int, max_len: int) -> None:
        self.obs_types.extend(extract_types_from_line(content, skip, min_len, max_len))
        self.raw_tokens.extend(split_tokens(content, skip))

    def validate(self) -> HeaderInfo:
        if self.version_found and self.styles_seen:
            expected = ObsLineStyle.V3 if self.is_v3 else ObsLineStyle.V2
            if self.styles_seen != {expected}:
                found = ", ".join(sorted(f"'{s.value}'" for s in self.styles_seen))
                raise InvalidTypeCountError(
                    f"Version {self.version} header declares observation types with {found}"
                )
        if not self.version_found:
            raise MissingHeaderError(f"Missing '{VERSION_MARKER}' record")
        if not self.obs_line_found:
            expected = ObsLineStyle.V3 if self.is_v3 else ObsLineStyle.V2
            raise MissingHeaderError(f"Missing GPS '{expected.value}' record")
        if self.declared_count <= 0:
            raise InvalidTypeCountError(f"Invalid observation type count ({self.declared_count}) in header")
        if not self.obs_types:
            raise InvalidTypeCountError("No observation types found in header")
        if len(self.obs_types) != self.declared_count:
            raise InvalidTypeCountError(
                f"Header declares {self.declared_count} observation types but lists {len(self.obs_types)}"
            )
        self._check_compatible_codes()
        return HeaderInfo(
            is_v3=self.is_v3,
            obs_types=list(self.obs_types),
            version=self.version,
            records=self.records,
        )

    def _check_compatible_codes(self) -> None:
        if self.is_v3:
            legacy = [t for t in self.raw_tokens if t in V2_LEGACY_CODES]
            if legacy:
                raise IncompatibleTypeCodesError(f"RINEX 2 observation codes in RINEX 3 header: {legacy}")
        else:
            v3_codes = [
                t for t in self.raw_tokens
                if len(t) >= 3 and t[0] in OBS_KIND_LETTERS and t[-1] in V3_ATTRIBUTE_SUFFIXES
            ]
            if v3_codes:
                raise IncompatibleTypeCodesError(f"RINEX 3 observation codes in RINEX 2 header: {v3_codes}")


def read_header(cursor: LineCursor) -> HeaderInfo:
    """Read and validate the header, leaving the cursor on the first data line."""
    return HeaderInterpreter(cursor).run()
