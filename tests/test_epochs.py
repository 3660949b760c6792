import logging

import pytest

from gnssobs.functions.epochs import (
    Phase,
    Rinex2EpochInterpreter,
    Rinex3EpochInterpreter,
    expand_year,
    parse_v2_epoch_line,
    parse_v3_epoch_line,
    read_epochs,
    read_values,
    split_satellite_list,
)
from gnssobs.functions.errors import MalformedEpochError
from gnssobs.functions.models import ParseOptions

from conftest import data_fields, header_line

V3_TYPES = ["L1C", "L2W", "C1C", "C2W"]


def test_expand_year():
    assert expand_year(21) == 2021
    assert expand_year(0) == 2000
    assert expand_year(99) == 1999
    assert expand_year(2021) == 2021


def test_parse_v3_epoch_line():
    fields = parse_v3_epoch_line("> 2021 03 14 15 09 26.5000000  0 12      -0.000123456789")
    assert (fields.year, fields.month, fields.day) == (2021, 3, 14)
    assert (fields.hour, fields.minute, fields.second) == (15, 9, 26.5)
    assert fields.flag == 0
    assert fields.num_satellites == 12


def test_parse_v3_epoch_line_with_three_digit_count():
    fields = parse_v3_epoch_line("> 2021 03 14 15 09 26.5000000  0104")
    assert fields.flag == 0
    assert fields.num_satellites == 104


def test_parse_v3_epoch_line_with_three_digit_count_and_clock_offset():
    fields = parse_v3_epoch_line("> 2021 03 14 15 09 26.5000000  0104      -0.000123456789")
    assert fields.flag == 0
    assert fields.num_satellites == 104
    assert fields.second == 26.5


@pytest.mark.parametrize("line", [
    "> 2021 03 14 15 09",
    "> 2021 xx 14 15 09 26.5000000  0 12",
    "> 2021 13 14 15 09 26.5000000  0 12",
])
def test_parse_v3_epoch_line_rejects(line):
    assert parse_v3_epoch_line(line) is None


def test_parse_v2_epoch_line():
    fields, sats = parse_v2_epoch_line(" 98 12 31 23 59 59.9000000  0  3G01G02G03")
    assert fields.year == 1998
    assert fields.second == pytest.approx(59.9)
    assert fields.num_satellites == 3
    assert split_satellite_list(sats) == ["G01", "G02", "G03"]


def test_parse_v2_epoch_line_stops_before_clock_offset():
    line = f"{' 21  1  1  0  0  0.0000000  0  2G01G02':<68}-0.123456789"
    fields, sats = parse_v2_epoch_line(line)
    assert split_satellite_list(sats) == ["G01", "G02"]


def test_parse_v2_epoch_line_rejects_data_rows():
    assert parse_v2_epoch_line(data_fields(110000000.123, 85000000.456)) is None
    assert parse_v2_epoch_line("") is None


def test_split_satellite_list_formats():
    assert split_satellite_list("G 1G 2") == ["G 1", "G 2"]
    assert split_satellite_list("  1  2 12") == ["1", "2", "12"]
    assert split_satellite_list("G01R05") == ["G01", "R05"]


def test_read_values_fixed_columns():
    text = "  23619095.450 7  24001234.125 "
    assert read_values(text, 2) == [23619095.45, 24001234.125]


def test_read_values_with_loss_of_lock_digits():
    text = " 124125634.52317"
    assert read_values(text, 1) == [124125634.523]


def test_read_values_missing_fields_default_to_zero():
    text = "  23619095.450  " + " " * 16 + "  24001234.125"
    assert read_values(text, 4) == [23619095.45, 0.0, 24001234.125, 0.0]


def test_read_values_whitespace_separated():
    assert read_values(" 123456789.123 987654321.321", 2) == [123456789.123, 987654321.321]
    assert read_values(" 1.5", 3) == [1.5, 0.0, 0.0]


def test_read_values_bad_field(caplog):
    with caplog.at_level(logging.WARNING):
        assert read_values("    1.0 abc", 2) == [1.0, 0.0]
    assert "abc" in caplog.text
    with pytest.raises(MalformedEpochError):
        read_values("    1.0 abc", 2, strict=True)


def test_v3_epochs(v3_lines):
    epochs = read_epochs(v3_lines[4:], V3_TYPES, is_v3=True)
    assert len(epochs) == 2
    first = epochs[0]
    assert first.num_satellites == 3
    assert first.satellites == {
        "G01": (110000000.123, 85000000.456),
        "G12": (120000000.5, 95000000.25),
    }
    assert epochs[1].second == 30.0
    assert list(epochs[1].satellites) == ["G01"]


def test_v3_state_transitions():
    interpreter = Rinex3EpochInterpreter(["L1C", "L2W"])
    assert interpreter.feed("> 2021 01 01 00 00  0.0000000  0  2") is None
    assert interpreter.state.phase is Phase.IN_EPOCH
    assert interpreter.state.remaining == 2
    assert interpreter.feed("G01" + data_fields(1.0, 2.0)) is None
    assert interpreter.state.remaining == 1
    epoch = interpreter.feed("G02" + data_fields(3.0, 4.0))
    assert epoch.satellites == {"G01": (1.0, 2.0), "G02": (3.0, 4.0)}
    assert interpreter.state.phase is Phase.IDLE


def test_v3_malformed_epoch_line_is_skipped():
    lines = [
        "> 2021 01 01 00 00",
        "G01" + data_fields(1.0, 2.0),
        "> 2021 01 01 00 00 30.0000000  0  1",
        "G01" + data_fields(5.0, 6.0),
    ]
    epochs = read_epochs(lines, ["L1C", "L2W"], is_v3=True)
    assert len(epochs) == 1
    assert epochs[0].satellites == {"G01": (5.0, 6.0)}


def test_v3_malformed_epoch_line_strict():
    with pytest.raises(MalformedEpochError):
        read_epochs(["> 2021 01 01 00 00"], ["L1C", "L2W"], is_v3=True, options=ParseOptions(strict=True))


def test_v3_truncated_epoch_is_dropped():
    lines = [
        "> 2021 01 01 00 00  0.0000000  0  3",
        "G01" + data_fields(1.0, 2.0),
        "> 2021 01 01 00 00 30.0000000  0  1",
        "G03" + data_fields(5.0, 6.0),
    ]
    epochs = read_epochs(lines, ["L1C", "L2W"], is_v3=True)
    assert len(epochs) == 1
    assert epochs[0].satellites == {"G03": (5.0, 6.0)}


def test_incomplete_epoch_at_end_of_input_is_dropped():
    lines = [
        "> 2021 01 01 00 00  0.0000000  0  2",
        "G01" + data_fields(1.0, 2.0),
    ]
    assert read_epochs(lines, ["L1C", "L2W"], is_v3=True) == []


def test_v3_event_records_are_skipped():
    lines = [
        ">                              4  2",
        "Site occupation changed                                     COMMENT",
        "G01 looks like a satellite but is a comment                 COMMENT",
        "> 2021 01 01 00 00  0.0000000  0  1",
        "G07" + data_fields(7.0, 8.0),
    ]
    epochs = read_epochs(lines, ["L1C", "L2W"], is_v3=True)
    assert len(epochs) == 1
    assert epochs[0].satellites == {"G07": (7.0, 8.0)}


def test_duplicate_satellite_last_write_wins(caplog):
    lines = [
        "> 2021 01 01 00 00  0.0000000  0  2",
        "G01" + data_fields(1.0, 2.0),
        "G01" + data_fields(3.0, 4.0),
    ]
    with caplog.at_level(logging.WARNING):
        epochs = read_epochs(lines, ["L1C", "L2W"], is_v3=True)
    assert epochs[0].satellites == {"G01": (3.0, 4.0)}
    assert "Duplicate satellite G01" in caplog.text
    with pytest.raises(MalformedEpochError):
        read_epochs(lines, ["L1C", "L2W"], is_v3=True, options=ParseOptions(strict=True))


def test_single_type_gives_zero_l2():
    lines = ["> 2021 01 01 00 00  0.0000000  0  1", "G01" + data_fields(1.0)]
    epochs = read_epochs(lines, ["L1C"], is_v3=True)
    assert epochs[0].satellites == {"G01": (1.0, 0.0)}


def test_v2_epochs(v2_lines):
    epochs = read_epochs(v2_lines[5:], ["L1", "L2"], is_v3=False)
    assert len(epochs) == 1
    epoch = epochs[0]
    assert (epoch.year, epoch.month, epoch.day) == (2021, 1, 1)
    assert epoch.satellites == {
        "G01": (110000000.123, 85000000.456),
        "G02": (120000000.5, 95000000.25),
    }


def test_v2_satellite_list_continuation_and_bare_prns():
    sats = "".join(f"{prn:3d}" for prn in range(1, 13))
    lines = [
        f" 21  1  1  0  0  0.0000000  0 14{sats}",
        f"{'':32}G13R04",
    ]
    for prn in range(1, 15):
        lines.append(data_fields(float(prn), float(prn) + 0.5))
    interpreter = Rinex2EpochInterpreter(["L1", "L2"])
    epochs = interpreter.run(lines)
    assert len(epochs) == 1
    satellites = epochs[0].satellites
    assert len(satellites) == 13
    assert satellites["G01"] == (1.0, 1.5)
    assert satellites["G12"] == (12.0, 12.5)
    assert satellites["G13"] == (13.0, 13.5)
    assert "R04" not in satellites


def test_v2_records_wrap_after_five_types():
    types = ["L1", "L2", "C1", "P1", "P2", "S1", "S2"]
    lines = [
        " 21  1  1  0  0 30.0000000  0  2G05G06",
        data_fields(1.0, 2.0, 3.0, 4.0, 5.0),
        data_fields(6.0, 7.0),
        data_fields(11.0, 12.0, 13.0, 14.0, 15.0),
        data_fields(16.0, 17.0),
    ]
    epochs = read_epochs(lines, types, is_v3=False)
    assert epochs[0].satellites == {"G05": (1.0, 2.0), "G06": (11.0, 12.0)}


def test_v2_whitespace_separated_rows():
    lines = [
        " 21  1  1  0  0  0.0000000  0  2G01G02",
        "  100.25  200.5",
        "  300.0  400.0",
    ]
    epochs = read_epochs(lines, ["L1", "L2"], is_v3=False)
    assert epochs[0].satellites == {"G01": (100.25, 200.5), "G02": (300.0, 400.0)}


def test_v2_event_records_are_skipped():
    lines = [
        f"{'':28}4  1",
        header_line("ANTENNA SWAPPED", "COMMENT"),
        " 21  1  1  0  1  0.0000000  0  1G09",
        data_fields(9.0, 9.5),
    ]
    epochs = read_epochs(lines, ["L1", "L2"], is_v3=False)
    assert len(epochs) == 1
    assert epochs[0].minute == 1
    assert epochs[0].satellites == {"G09": (9.0, 9.5)}


def test_v2_dated_event_epoch_is_skipped():
    lines = [
        " 21  1  1  0  0  0.0000000  3  1",
        header_line("NEW SITE", "MARKER NAME"),
        " 21  1  1  0  0 30.0000000  0  1G09",
        data_fields(9.0, 9.5),
    ]
    epochs = read_epochs(lines, ["L1", "L2"], is_v3=False)
    assert [e.second for e in epochs] == [30.0]


def test_epoch_satellites_are_read_only():
    lines = ["> 2021 01 01 00 00  0.0000000  0  1", "G01" + data_fields(1.0, 2.0)]
    epoch = read_epochs(lines, ["L1C", "L2W"], is_v3=True)[0]
    with pytest.raises(TypeError):
        epoch.satellites["G99"] = (0.0, 0.0)
    assert dict(epoch.satellites) == {"G01": (1.0, 2.0)}


def test_v2_short_satellite_list_does_not_read_data_as_ids():
    lines = [
        " 21  1  1  0  0  0.0000000  0  3G01G02",
        data_fields(1.0, 2.0),
        data_fields(3.0, 4.0),
        data_fields(5.0, 6.0),
        " 21  1  1  0  0 30.0000000  0  1G05",
        data_fields(7.0, 8.0),
    ]
    epochs = read_epochs(lines, ["L1", "L2"], is_v3=False)
    assert len(epochs) == 1
    assert epochs[0].second == 30.0
    assert epochs[0].satellites == {"G05": (7.0, 8.0)}
    with pytest.raises(MalformedEpochError):
        read_epochs(lines, ["L1", "L2"], is_v3=False, options=ParseOptions(strict=True))
