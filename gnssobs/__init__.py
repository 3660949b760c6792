"""GPS observation reader for RINEX 2.x and 3.x/4.x observation files."""

from .functions.errors import (
    ErrorKind,
    IncompatibleTypeCodesError,
    InvalidTypeCountError,
    MalformedEpochError,
    MissingHeaderError,
    NoEpochsError,
    RinexObsError,
    SourceUnavailableError,
)
from .functions.models import Epoch, ObservationSet, ParseOptions
from .functions.rinexobs import (
    observations_to_dataframe,
    parse_rinex_obs,
    read_rinex_obs,
    read_rinex_obs_to_dataframe,
)

__all__ = [
    "ErrorKind",
    "Epoch",
    "IncompatibleTypeCodesError",
    "InvalidTypeCountError",
    "MalformedEpochError",
    "MissingHeaderError",
    "NoEpochsError",
    "ObservationSet",
    "ParseOptions",
    "RinexObsError",
    "SourceUnavailableError",
    "observations_to_dataframe",
    "parse_rinex_obs",
    "read_rinex_obs",
    "read_rinex_obs_to_dataframe",
]
