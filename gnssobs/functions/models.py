"""
RINEX Observation Data Model

Containers returned by the observation reader: one ObservationSet per
file holding the header metadata and the epochs read from the data
section, plus the per-call reader options.
"""

import dataclasses
import datetime
import types
import typing

# (L1, L2) measurement pair stored per satellite
ObsPair = tuple[float, float]


@dataclasses.dataclass(frozen=True)
class Epoch:
    """One timestamped block of GPS measurements."""
    year: int
    month: int
    day: int
    hour: int
    minute: int
    second: float
    flag: int
    num_satellites: int  # as declared on the epoch line
    satellites: typing.Mapping[str, ObsPair] = dataclasses.field(default_factory=dict)

    def __post_init__(self):
        # read-only copy of the satellite map
        if not isinstance(self.satellites, types.MappingProxyType):
            object.__setattr__(self, "satellites", types.MappingProxyType(dict(self.satellites)))

    @property
    def time(self) -> datetime.datetime:
        return datetime.datetime(
            self.year, self.month, self.day, self.hour, self.minute
        ) + datetime.timedelta(seconds=self.second)


@dataclasses.dataclass
class ObservationSet:
    """
    Parsed RINEX observation file.

    ``obs_types`` keeps the header column order; the first two codes are
    the L1 and L2 channels stored in each epoch's satellite pairs.
    """
    is_v3: bool
    obs_types: list[str]
    epochs: list[Epoch] = dataclasses.field(default_factory=list)
    version: typing.Optional[float] = None
    header: dict[str, typing.Union[str, list[str]]] = dataclasses.field(default_factory=dict)


@dataclasses.dataclass
class ParseOptions:
    """Per-call reader settings."""
    strict: bool = False  # raise MalformedEpochError instead of skipping bad data lines
    encoding: str = "utf-8"
    errors: str = "ignore"
