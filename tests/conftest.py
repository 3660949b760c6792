"""Synthetic RINEX observation text shared by the tests."""

import pytest


def header_line(content: str, label: str) -> str:
    return f"{content:<60}{label}"


def data_fields(*values: float) -> str:
    # F14.3 value followed by blank loss-of-lock and signal-strength columns
    return "".join(f"{v:14.3f}  " for v in values)


V2_VERSION = header_line("     2.11           OBSERVATION DATA    G (GPS)", "RINEX VERSION / TYPE")
V3_VERSION = header_line("     3.04           OBSERVATION DATA    M (MIXED)", "RINEX VERSION / TYPE")
END = header_line("", "END OF HEADER")


@pytest.fixture
def make_header_line():
    return header_line


@pytest.fixture
def make_fields():
    return data_fields


@pytest.fixture
def v2_header():
    return [
        V2_VERSION,
        header_line("teqc  2019Feb25      Some Agency         20210101 000000UTC", "PGM / RUN BY / DATE"),
        header_line("SITE", "MARKER NAME"),
        header_line("     2    L1    L2", "# / TYPES OF OBSERV"),
        END,
    ]


@pytest.fixture
def v2_lines(v2_header):
    return v2_header + [
        " 21  1  1  0  0  0.0000000  0  2G01G02",
        data_fields(110000000.123, 85000000.456),
        data_fields(120000000.5, 95000000.25),
    ]


@pytest.fixture
def v3_header():
    return [
        V3_VERSION,
        header_line("G    4 L1C L2W C1C C2W", "SYS / # / OBS TYPES"),
        header_line("R    2 C1C L1C", "SYS / # / OBS TYPES"),
        END,
    ]


@pytest.fixture
def v3_lines(v3_header):
    return v3_header + [
        "> 2021 01 01 00 00  0.0000000  0  3",
        "G01" + data_fields(110000000.123, 85000000.456, 20000000.1, 20000001.2),
        "R05" + data_fields(1.0, 2.0),
        "G12" + data_fields(120000000.5, 95000000.25, 21000000.3, 21000001.4),
        "> 2021 01 01 00 00 30.0000000  0  1",
        "G01" + data_fields(110000100.0, 85000100.0, 20000010.0, 20000011.0),
    ]
