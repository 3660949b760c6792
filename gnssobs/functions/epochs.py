"""
RINEX Observation Data Reader

Groups the data section of an observation file into epochs. Two state
machines, one per layout:
- RINEX 2.x: epoch line with the satellite list on it (and on continuation
  lines), then one record per satellite in list order, five observations
  per physical line
- RINEX 3.x/4.x: ``>`` epoch line, then one line per satellite starting
  with its identifier

Only the first two observation types are kept per satellite, as the
(L1, L2) pair. Bad numeric fields read as 0.0 and unreadable epoch lines
are skipped, unless the reader runs in strict mode.
"""

import dataclasses
import enum
import logging
import re
import types
import typing

from .errors import MalformedEpochError
from .lexical import LineCursor, is_number, trim
from .models import Epoch, ObsPair, ParseOptions
from .satellite import is_supported_constellation, normalize_id

FIELD_WIDTH = 16  # F14.3 value + loss-of-lock + signal strength
VALUE_WIDTH = 14
V2_OBS_PER_LINE = 5
V2_SAT_LIST_START = 32
V2_SAT_LIST_END = 68  # receiver clock offset follows on the epoch line
V3_DATA_START = 3

# Event flags 2-5: the count field gives the number of special records
SPECIAL_EVENT_FLAGS = (2, 3, 4, 5)

_V2_EPOCH_LINE = re.compile(
    r"^\s*(\d{1,4})\s+(\d{1,2})\s+(\d{1,2})\s+(\d{1,2})\s+(\d{1,2})\s+(\d+(?:\.\d*)?)\s+(\d)\s*(\d{1,3})(?=[A-Za-z ]|$)"
)
_SAT_TOKEN = re.compile(r"[A-Za-z] ?\d{1,2}|\d{1,2}")


class Phase(enum.Enum):
    IDLE = "idle"
    COLLECT_IDS = "collect_ids"  # RINEX 2 only
    IN_EPOCH = "in_epoch"
    SKIP_RECORDS = "skip_records"


@dataclasses.dataclass
class EpochFields:
    year: int
    month: int
    day: int
    hour: int
    minute: int
    second: float
    flag: int
    num_satellites: int


@dataclasses.dataclass
class PendingEpoch:
    """Epoch under construction; becomes an immutable Epoch when complete."""
    fields: EpochFields
    satellite_ids: list[str] = dataclasses.field(default_factory=list)
    satellites: dict[str, ObsPair] = dataclasses.field(default_factory=dict)

    def build(self) -> Epoch:
        f = self.fields
        return Epoch(
            year=f.year,
            month=f.month,
            day=f.day,
            hour=f.hour,
            minute=f.minute,
            second=f.second,
            flag=f.flag,
            num_satellites=f.num_satellites,
            satellites=types.MappingProxyType(dict(self.satellites)),
        )


@dataclasses.dataclass
class EpochState:
    phase: Phase = Phase.IDLE
    remaining: int = 0
    epoch: typing.Optional[PendingEpoch] = None
    row: int = 0  # RINEX 2: index into the satellite list
    values: list[float] = dataclasses.field(default_factory=list)  # RINEX 2: partial record


Step = tuple[EpochState, typing.Optional[Epoch]]


def expand_year(year: int) -> int:
    """Four-digit year from a RINEX 2 two-digit year (80-99 -> 19xx, 00-79 -> 20xx)."""
    if year >= 100:
        return year
    return year + 1900 if year >= 80 else year + 2000


def _valid_calendar(fields: EpochFields) -> bool:
    return (
        1 <= fields.month <= 12
        and 1 <= fields.day <= 31
        and 0 <= fields.hour <= 23
        and 0 <= fields.minute <= 59
        and 0.0 <= fields.second < 61.0
        and fields.num_satellites >= 0
    )


def parse_v3_epoch_line(line: str) -> typing.Optional[EpochFields]:
    """
    Fields of a ``>`` epoch line, None if the line cannot be read.

    Format: > YYYY MM DD HH MM SS.SSSSSSS  FLAG NUM_SAT [CLOCK_OFFSET]
    """
    tokens = line[1:].split()
    if len(tokens) >= 7 and len(tokens[6]) > 1:
        # flag and a three-digit satellite count run together
        tokens = tokens[:6] + [tokens[6][0], tokens[6][1:]]
    if len(tokens) < 8:
        return None
    try:
        fields = EpochFields(
            year=int(tokens[0]),
            month=int(tokens[1]),
            day=int(tokens[2]),
            hour=int(tokens[3]),
            minute=int(tokens[4]),
            second=float(tokens[5]),
            flag=int(tokens[6]),
            num_satellites=int(tokens[7]),
        )
    except ValueError:
        return None
    return fields if _valid_calendar(fields) else None


def parse_v2_epoch_line(line: str) -> typing.Optional[tuple[EpochFields, str]]:
    """
    Fields of a RINEX 2 epoch line plus the satellite list text trailing it.

    Format: YY MM DD HH MM SS.SSSSSSS  FLAG NUM_SAT SAT_LIST... [CLOCK_OFFSET]
    """
    match = _V2_EPOCH_LINE.match(line)
    if match is None:
        return None
    fields = EpochFields(
        year=expand_year(int(match.group(1))),
        month=int(match.group(2)),
        day=int(match.group(3)),
        hour=int(match.group(4)),
        minute=int(match.group(5)),
        second=float(match.group(6)),
        flag=int(match.group(7)),
        num_satellites=int(match.group(8)),
    )
    if not _valid_calendar(fields):
        return None
    return fields, line[match.end():V2_SAT_LIST_END]


def parse_event_line(text: str) -> typing.Optional[tuple[int, int]]:
    """
    (flag, record count) of a special-event line whose date fields are blank.

    Such lines only carry an event flag of 2-5 and the number of special
    records that follow.
    """
    tokens = text.split()
    if len(tokens) != 2 or not all(t.isdecimal() for t in tokens):
        return None
    flag, count = int(tokens[0]), int(tokens[1])
    if flag not in SPECIAL_EVENT_FLAGS:
        return None
    return flag, count


def split_satellite_list(text: str) -> list[str]:
    """Satellite tokens from a RINEX 2 list (``G01G02``, ``G 1G 2`` or `` 1  2``)."""
    return _SAT_TOKEN.findall(text)


def _column_aligned(slots: list[str]) -> bool:
    # F14.3 values are right justified and fill their whole field
    return all(
        not slot.strip() or (len(slot) == VALUE_WIDTH and slot[-1] != " " and len(slot.split()) == 1)
        for slot in slots
    )


def read_values(text: str, count: int, strict: bool = False) -> list[float]:
    """
    Read ``count`` observation values from the data part of a record line.

    Values are taken from 16-column fields. A line that is not column
    aligned is read as whitespace separated values instead. Blank or
    missing values read as 0.0.
    """
    slots = [text[i * FIELD_WIDTH:i * FIELD_WIDTH + VALUE_WIDTH] for i in range(count)]
    if not _column_aligned(slots):
        slots = text.split()[:count]
    values = [_to_float(slot, strict) for slot in slots]
    values.extend([0.0] * (count - len(values)))
    return values


def _to_float(field: str, strict: bool) -> float:
    field = trim(field)
    if not field:
        return 0.0
    if is_number(field):
        try:
            return float(field)
        except ValueError:
            pass
    if strict:
        raise MalformedEpochError(f"Unreadable observation value '{field}'")
    logging.warning(f"Unreadable observation value '{field}', using 0.0")
    return 0.0


class EpochInterpreter:
    """
    Base state machine: feed lines one at a time, collect finished epochs.

    Subclasses supply the transition for each phase. Transitions return
    the next state and, when an epoch is completed, the finished Epoch.
    """

    def __init__(self, obs_types: list[str], options: typing.Optional[ParseOptions] = None):
        self.obs_types = obs_types
        self.options = options or ParseOptions()
        self.state = EpochState()
        self.epochs: list[Epoch] = []
        self.line_number = 0

    def feed(self, line: str) -> typing.Optional[Epoch]:
        self.line_number += 1
        handler = {
            Phase.IDLE: self.on_idle,
            Phase.COLLECT_IDS: self.on_collect_ids,
            Phase.IN_EPOCH: self.on_in_epoch,
            Phase.SKIP_RECORDS: self.on_skip_records,
        }[self.state.phase]
        self.state, epoch = handler(self.state, line)
        if epoch is not None:
            self.epochs.append(epoch)
        return epoch

    def run(self, lines: typing.Iterable[str]) -> list[Epoch]:
        for line in lines:
            self.feed(line)
        self.finish()
        return self.epochs

    def finish(self) -> None:
        if self.state.phase in (Phase.COLLECT_IDS, Phase.IN_EPOCH):
            self._malformed("Input ended inside an epoch, dropping it")
        self.state = EpochState()

    def on_idle(self, state: EpochState, line: str) -> Step:
        raise NotImplementedError

    def on_collect_ids(self, state: EpochState, line: str) -> Step:
        raise NotImplementedError

    def on_in_epoch(self, state: EpochState, line: str) -> Step:
        raise NotImplementedError

    def on_skip_records(self, state: EpochState, line: str) -> Step:
        remaining = state.remaining - 1
        if remaining <= 0:
            return EpochState(), None
        return dataclasses.replace(state, remaining=remaining), None

    def skip_event(self, flag: int, count: int) -> Step:
        logging.debug(f"Skipping {count} special records (event flag {flag})")
        if count > 0:
            return EpochState(phase=Phase.SKIP_RECORDS, remaining=count), None
        return EpochState(), None

    def open_epoch(self, fields: EpochFields) -> Step:
        """State after an epoch line has been read."""
        if fields.flag in SPECIAL_EVENT_FLAGS:
            return self.skip_event(fields.flag, fields.num_satellites)
        pending = PendingEpoch(fields)
        if fields.num_satellites == 0:
            return EpochState(), pending.build()
        return EpochState(phase=Phase.IN_EPOCH, remaining=fields.num_satellites, epoch=pending), None

    def store(self, state: EpochState, raw_id: str, values: list[float]) -> Step:
        """Store one satellite record and close the epoch after the last one."""
        sat_id = normalize_id(raw_id)
        pending = state.epoch
        if is_supported_constellation(sat_id):
            if sat_id in pending.satellites:
                self._malformed(f"Duplicate satellite {sat_id} in epoch, keeping the last record")
            l1 = values[0] if len(values) > 0 else 0.0
            l2 = values[1] if len(values) > 1 else 0.0
            pending.satellites[sat_id] = (l1, l2)
        remaining = state.remaining - 1
        if remaining == 0:
            return EpochState(), pending.build()
        return dataclasses.replace(state, remaining=remaining, row=state.row + 1, values=[]), None

    def _malformed(self, message: str) -> None:
        message = f"{message} (data line {self.line_number})"
        if self.options.strict:
            raise MalformedEpochError(message)
        logging.warning(message)


class Rinex3EpochInterpreter(EpochInterpreter):
    """States: idle -> in_epoch(remaining) -> idle."""

    def on_idle(self, state: EpochState, line: str) -> Step:
        if line.startswith(">"):
            event = parse_event_line(line[1:])
            if event is not None:
                return self.skip_event(*event)
            fields = parse_v3_epoch_line(line)
            if fields is None:
                self._malformed(f"Unreadable epoch line '{line.strip()}'")
                return EpochState(), None
            return self.open_epoch(fields)
        if line.strip():
            self._malformed(f"Unexpected line outside an epoch '{line.strip()}'")
        return state, None

    def on_in_epoch(self, state: EpochState, line: str) -> Step:
        if line.startswith(">"):
            self._malformed(
                f"Epoch ended after {state.epoch.fields.num_satellites - state.remaining} "
                f"of {state.epoch.fields.num_satellites} satellites, dropping it"
            )
            return self.on_idle(EpochState(), line)
        values = read_values(line[V3_DATA_START:], len(self.obs_types), self.options.strict)
        return self.store(state, line[:V3_DATA_START], values)

    def on_collect_ids(self, state: EpochState, line: str) -> Step:
        raise RuntimeError("RINEX 3 epochs carry no satellite list")


class Rinex2EpochInterpreter(EpochInterpreter):
    """States: idle -> collect_ids -> in_epoch(remaining) -> idle."""

    def on_idle(self, state: EpochState, line: str) -> Step:
        event = parse_event_line(line)
        if event is not None:
            return self.skip_event(*event)
        parsed = parse_v2_epoch_line(line)
        if parsed is None:
            if line.strip():
                self._malformed(f"Unreadable epoch line '{line.strip()}'")
            return state, None
        fields, sat_list = parsed
        next_state, epoch = self.open_epoch(fields)
        if next_state.phase is not Phase.IN_EPOCH:
            return next_state, epoch
        next_state.phase = Phase.COLLECT_IDS
        return self._add_ids(next_state, sat_list)

    def on_collect_ids(self, state: EpochState, line: str) -> Step:
        # continuation lines keep columns 0-31 blank, the list starts at column 32
        tokens = split_satellite_list(line[:V2_SAT_LIST_END])
        if line[:V2_SAT_LIST_START].strip() or not tokens:
            self._malformed("Missing satellite list continuation, dropping epoch")
            return self.on_idle(EpochState(), line)
        return self._add_ids(state, line[:V2_SAT_LIST_END])

    def _add_ids(self, state: EpochState, text: str) -> Step:
        pending = state.epoch
        pending.satellite_ids.extend(split_satellite_list(text))
        expected = pending.fields.num_satellites
        if len(pending.satellite_ids) >= expected:
            if len(pending.satellite_ids) > expected:
                logging.warning(
                    f"Epoch lists {len(pending.satellite_ids)} satellites but declares {expected}"
                )
                del pending.satellite_ids[expected:]
            state.phase = Phase.IN_EPOCH
        return state, None

    def on_in_epoch(self, state: EpochState, line: str) -> Step:
        count = min(V2_OBS_PER_LINE, len(self.obs_types) - len(state.values))
        values = state.values + read_values(line, count, self.options.strict)
        if len(values) < len(self.obs_types):
            # record wraps onto another line
            return dataclasses.replace(state, values=values), None
        return self.store(state, state.epoch.satellite_ids[state.row], values)


def read_epochs(
    cursor: typing.Union[LineCursor, typing.Iterable[str]],
    obs_types: list[str],
    is_v3: bool,
    options: typing.Optional[ParseOptions] = None,
) -> list[Epoch]:
    """Read every epoch remaining on ``cursor``."""
    interpreter_cls = Rinex3EpochInterpreter if is_v3 else Rinex2EpochInterpreter
    return interpreter_cls(obs_types, options).run(cursor)
