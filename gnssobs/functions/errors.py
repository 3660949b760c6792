"""Exceptions raised while reading RINEX observation files."""

import enum


class ErrorKind(enum.Enum):
    SOURCE_UNAVAILABLE = "source-unavailable"
    MISSING_HEADER = "missing-header"
    INVALID_TYPE_COUNT = "invalid-type-count"
    INCOMPATIBLE_TYPE_CODES = "incompatible-type-codes"
    NO_EPOCHS = "no-epochs"
    MALFORMED_EPOCH = "malformed-epoch"


class RinexObsError(ValueError):
    """Base class: the file could not be turned into an ObservationSet."""

    kind: ErrorKind


class SourceUnavailableError(OSError, RinexObsError):
    """The observation file could not be opened or read."""

    kind = ErrorKind.SOURCE_UNAVAILABLE


class MissingHeaderError(RinexObsError):
    """Version line, observation-type line or END OF HEADER is missing."""

    kind = ErrorKind.MISSING_HEADER


class InvalidTypeCountError(RinexObsError):
    """Observation type count is not positive, does not match the listed types, or the header styles disagree."""

    kind = ErrorKind.INVALID_TYPE_COUNT


class IncompatibleTypeCodesError(RinexObsError):
    """RINEX 2 and RINEX 3 observation codes are mixed in one header."""

    kind = ErrorKind.INCOMPATIBLE_TYPE_CODES


class NoEpochsError(RinexObsError):
    """The header is valid but the data section holds no complete epoch."""

    kind = ErrorKind.NO_EPOCHS


class MalformedEpochError(RinexObsError):
    """Raised in strict mode for data-section problems that are otherwise skipped."""

    kind = ErrorKind.MALFORMED_EPOCH
