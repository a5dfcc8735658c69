from datetime import datetime, timedelta, timezone

from datetime_utils import ensure_utc, parse_iso, to_iso, utc_now


def test_utc_now_is_aware():
    assert utc_now().tzinfo is not None


def test_ensure_utc_handles_naive_and_offsets():
    assert ensure_utc(None) is None
    assert ensure_utc(datetime(2024, 1, 1)).tzinfo == timezone.utc
    shifted = datetime(2024, 1, 1, 5, 30, tzinfo=timezone(timedelta(hours=5, minutes=30)))
    assert ensure_utc(shifted) == datetime(2024, 1, 1, tzinfo=timezone.utc)


def test_parse_iso_variants():
    expected = datetime(2024, 2, 29, 10, 0, 0, 120000, tzinfo=timezone.utc)
    assert parse_iso("2024-02-29T10:00:00.12Z") == expected
    assert parse_iso("2024-02-29T10:00:00.120000+00:00") == expected
    assert parse_iso("2024-02-29T15:30:00.12+05:30") == expected
    assert parse_iso("2024-02-29T10:00:00.1200009") == expected
    assert parse_iso("2024-02-29T10:00:00") == datetime(2024, 2, 29, 10, tzinfo=timezone.utc)


def test_parse_iso_rejects_garbage():
    assert parse_iso(None) is None
    assert parse_iso("   ") is None
    assert parse_iso("not a date") is None


def test_to_iso_keeps_microseconds_in_utc():
    value = datetime(2024, 1, 1, 0, 0, 0, 5, tzinfo=timezone.utc)
    assert to_iso(value) == "2024-01-01T00:00:00.000005+00:00"
    assert parse_iso(to_iso(value)) == value
    assert to_iso(None) is None
