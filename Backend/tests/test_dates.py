from __future__ import annotations

from datetime import datetime

import pytest

from healthpipe.errors import UnparseableTimestamp
from healthpipe.utils import dates


def test_hyphenated_date_time_is_normalized():
    assert dates.normalize("2013-05-20-08:43:00") == "05/20/2013 08:43:00"


@pytest.mark.parametrize(
    "value, expected",
    [
        ("2014-01-04 07:12:55", "01/04/2014 07:12:55"),
        ("2014-01-04", "01/04/2014 00:00:00"),
        ("01/04/2014 07:12:55", "01/04/2014 07:12:55"),
        ("01/04/2014", "01/04/2014 00:00:00"),
        ("2014-01-04 07:12 -0500", "01/04/2014 07:12:00"),
        ("2019-03-02 08:01:02 -0800", "03/02/2019 08:01:02"),
        ("2014-01-04 07:12:55.123", "01/04/2014 07:12:55"),
        ("Sat Jan 04 07:12:55 2014", "01/04/2014 07:12:55"),
        ("2014-01-04T07:12:55", "01/04/2014 07:12:55"),
        ("January 4, 2014 7:12 PM", "01/04/2014 19:12:00"),
    ],
)
def test_supported_encodings(value, expected):
    assert dates.normalize(value) == expected


def test_normalized_output_round_trips():
    once = dates.normalize("2019-03-02 08:01:02 -0800")
    assert dates.normalize(once) == once
    assert dates.is_valid_format(once)


def test_datetime_input_is_accepted():
    assert dates.normalize(datetime(2020, 2, 29, 23, 59, 1)) == "02/29/2020 23:59:01"


@pytest.mark.parametrize("value", [None, "", "   ", "not a date"])
def test_unparseable_values_raise(value):
    with pytest.raises(UnparseableTimestamp):
        dates.normalize(value)


def test_unparseable_timestamp_is_a_value_error():
    with pytest.raises(ValueError, match="Unable to parse date"):
        dates.normalize("garbage")


def test_aware_input_converted_when_timezone_given():
    assert dates.normalize("2019-03-02 08:01:02 -0800", "UTC") == "03/02/2019 16:01:02"


def test_naive_input_is_not_shifted_by_timezone():
    assert dates.normalize("2019-03-02 08:01:02", "America/New_York") == "03/02/2019 08:01:02"


def test_unknown_timezone_raises():
    with pytest.raises(UnparseableTimestamp):
        dates.normalize("2019-03-02 08:01:02 -0800", "Mars/Olympus_Mons")


def test_normalize_date_drops_time():
    assert dates.normalize_date("2014-01-04 07:12:55") == "01/04/2014"


def test_calculate_duration_truncates_and_keeps_sign():
    start, end = "2014-01-04 07:00:00", "2014-01-04 08:30:59"
    assert dates.calculate_duration(start, end) == 90
    assert dates.calculate_duration(end, start) == -90


def test_calculate_duration_across_encodings():
    assert dates.calculate_duration("01/04/2014 07:00:00", "2014-01-04-07:45:00") == 45


def test_is_valid_format_is_strict():
    assert dates.is_valid_format("01/04/2014 07:12:55")
    assert not dates.is_valid_format("2014-01-04 07:12:55")
    assert not dates.is_valid_format("01/04/2014")
    assert not dates.is_valid_format(None)


def test_current_timestamp_is_canonical():
    assert dates.is_valid_format(dates.get_current_timestamp())
