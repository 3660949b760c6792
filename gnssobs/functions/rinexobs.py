"""
RINEX Observation File Reader

This module reads GPS observations from RINEX observation files and
returns them as an ObservationSet, or as a pandas DataFrame. Supports
the two RINEX observation layouts:
- 2.10, 2.11 (``# / TYPES OF OBSERV`` header, bare or G-prefixed PRNs)
- 3.0x and 4.0x (``SYS / # / OBS TYPES`` header, ``>`` epoch lines)

The header has to validate completely before any data is read. Within
the data section unreadable lines are skipped (see ParseOptions.strict),
but a file that yields no epoch at all is rejected.
"""

import os
import logging
import typing
from pathlib import Path
import pandas as pd
import numpy as np

from .epochs import read_epochs
from .errors import NoEpochsError, RinexObsError, SourceUnavailableError
from .header import read_header
from .lexical import LineCursor
from .models import ObservationSet, ParseOptions

DATAFRAME_COLUMNS = ['Epoch', 'Flag', 'PRN', 'L1', 'L2']


def parse_rinex_obs(
    lines: typing.Iterable[str],
    options: typing.Optional[ParseOptions] = None
) -> ObservationSet:
    """
    Parse the lines of a RINEX observation file.

    Args:
        lines: Lines of the file, with or without line terminators
        options: Reader settings, defaults to ParseOptions()

    Returns:
        ObservationSet with the version flag, the GPS observation types in
        header order and one Epoch per complete epoch block

    Raises:
        MissingHeaderError: Version or observation-type record missing, or
            no END OF HEADER
        InvalidTypeCountError: Observation type count is not positive, does
            not match the listed types, or the header styles disagree
        IncompatibleTypeCodesError: RINEX 2 and RINEX 3 codes are mixed
        NoEpochsError: The header is valid but no epoch could be read
        MalformedEpochError: Bad data line while options.strict is set
    """
    options = options or ParseOptions()
    cursor = LineCursor(lines)

    header = read_header(cursor)
    epochs = read_epochs(cursor, header.obs_types, header.is_v3, options)
    if not epochs:
        raise NoEpochsError("No observation epochs found after END OF HEADER")

    logging.debug(f"Read {len(epochs)} epochs with observation types {header.obs_types}")
    return ObservationSet(
        is_v3=header.is_v3,
        obs_types=header.obs_types,
        epochs=epochs,
        version=header.version,
        header=header.records,
    )


def read_rinex_obs(
    file_path: typing.Union[str, bytes, os.PathLike],
    options: typing.Optional[ParseOptions] = None
) -> ObservationSet:
    """
    Read a RINEX observation file from disk.

    Args:
        file_path: Path to the RINEX observation file
        options: Reader settings; ``encoding`` and ``errors`` are used to
            open the file

    Returns:
        ObservationSet, see parse_rinex_obs

    Raises:
        SourceUnavailableError: If the file doesn't exist or can't be read
        RinexObsError: If the file content is rejected
    """
    options = options or ParseOptions()
    file_path = Path(os.fsdecode(file_path)).expanduser()
    try:
        if not file_path.exists():
            raise SourceUnavailableError(f"RINEX observation file not found: {file_path}")
        try:
            with file_path.open('r', encoding=options.encoding, errors=options.errors) as f:
                return parse_rinex_obs(f, options)
        except (OSError, UnicodeDecodeError) as e:
            if isinstance(e, RinexObsError):
                raise
            raise SourceUnavailableError(f"Cannot read RINEX observation file {file_path}: {e}") from e
    except RinexObsError as e:
        logging.error(f"Error reading RINEX observation file {file_path}: {str(e)}")
        raise


def observations_to_dataframe(obs: ObservationSet) -> pd.DataFrame:
    """
    Flatten an ObservationSet into one row per satellite per epoch.

    Returns:
        pandas.DataFrame with columns:
        - Epoch: Time of observation (datetime)
        - Flag: Epoch flag
        - PRN: Satellite identifier (e.g. G05)
        - L1: First observation type value
        - L2: Second observation type value
    """
    rows = [
        (epoch.time, epoch.flag, prn, l1, l2)
        for epoch in obs.epochs
        for prn, (l1, l2) in epoch.satellites.items()
    ]
    if not rows:
        return pd.DataFrame(columns=DATAFRAME_COLUMNS)

    times, flags, prns, l1, l2 = zip(*rows)
    return pd.DataFrame({
        'Epoch': pd.to_datetime(list(times)),
        'Flag': np.asarray(flags, dtype=np.int64),
        'PRN': list(prns),
        'L1': np.asarray(l1, dtype=np.float64),
        'L2': np.asarray(l2, dtype=np.float64),
    })


def read_rinex_obs_to_dataframe(
    file_path: typing.Union[str, bytes, os.PathLike],
    options: typing.Optional[ParseOptions] = None
) -> pd.DataFrame:
    """Read a RINEX observation file straight into the DataFrame layout of observations_to_dataframe."""
    return observations_to_dataframe(read_rinex_obs(file_path, options))
