"""Tests for due date/time extraction."""

from datetime import date, datetime, timezone

import pytest

from taskphrase.boundaries import RecurrenceBoundaryResolver
from taskphrase.models import RecurrenceKind, TextSpan
from taskphrase.temporal import (
    TemporalExtractor,
    extract_clock_time,
    find_day_of_month,
    find_weekday,
    rejected_clock_spans,
    next_day_of_month,
    next_weekday,
)


def utc(*args):
    return datetime(*args, tzinfo=timezone.utc)


class TestClockTime:
    """Test explicit clock-time extraction."""

    @pytest.mark.parametrize("text,expected", [
        ("Take medicine every day at 8am", (8, 0)),
        ("Workout every weekday at 6pm", (18, 0)),
        ("Meet at 6:45 pm", (18, 45)),
        ("Submit by 17:30", (17, 30)),
        ("Call at 12am", (0, 0)),
        ("Lunch at 12pm", (12, 0)),
        ("Dinner at 7", (7, 0)),
        ("Meet AT 9AM", (9, 0)),
    ])
    def test_extract(self, text, expected):
        clock = extract_clock_time(text)
        assert clock is not None
        assert (clock.hour, clock.minute) == expected

    @pytest.mark.parametrize("text", [
        "Buy milk",
        "combat 3 enemies",
        "Arrive at 25",
        "Meet at 10:75",
        "Call 555 at 1234",
    ])
    def test_no_clock(self, text):
        assert extract_clock_time(text) is None

    def test_rejected_clock_spans(self):
        text = "Meet at 25pm or by 9am"
        assert [text[s.start:s.end] for s in rejected_clock_spans(text)] == ["at 25pm"]
        assert rejected_clock_spans("Meet at 9am") == []

    def test_span_covers_phrase(self):
        text = "Take medicine every day at 8am"
        clock = extract_clock_time(text)
        assert text[clock.span.start:clock.span.end] == "at 8am"


class TestCalendarHelpers:
    """Test weekday and day-of-month resolution."""

    def test_find_weekday(self):
        index, span = find_weekday("Call mom on Sundays")
        assert index == 6
        assert "Call mom on Sundays"[span.start:span.end] == "on Sundays"

    def test_find_weekday_requires_connector(self):
        assert find_weekday("Ship release next friday") is None

    def test_find_day_of_month(self):
        day, span = find_day_of_month("Pay credit card bill monthly on the 5th")
        assert day == 5
        assert "Pay credit card bill monthly on the 5th"[span.start:span.end] == "on the 5th"

    def test_find_day_of_month_rejects_out_of_range(self):
        assert find_day_of_month("Read the 40th chapter") is None

    @pytest.mark.parametrize("today,weekday,expected", [
        (date(2025, 6, 11), 4, date(2025, 6, 13)),   # Wed -> Fri
        (date(2025, 6, 11), 2, date(2025, 6, 18)),   # Wed -> next Wed
        (date(2025, 6, 15), 6, date(2025, 6, 22)),   # Sun -> next Sun
        (date(2025, 6, 15), 0, date(2025, 6, 16)),   # Sun -> Mon
    ])
    def test_next_weekday_is_strictly_future(self, today, weekday, expected):
        assert next_weekday(today, weekday) == expected

    @pytest.mark.parametrize("today,day,expected", [
        (date(2025, 6, 11), 5, date(2025, 7, 5)),
        (date(2025, 6, 11), 20, date(2025, 6, 20)),
        (date(2025, 6, 11), 11, date(2025, 7, 11)),
        (date(2025, 6, 11), 31, date(2025, 7, 31)),
        (date(2025, 4, 15), 31, date(2025, 5, 31)),
        (date(2025, 1, 31), 30, date(2025, 3, 30)),
        (date(2025, 1, 31), 31, date(2025, 3, 31)),
        (date(2025, 12, 20), 10, date(2026, 1, 10)),
    ])
    def test_next_day_of_month_never_clamps(self, today, day, expected):
        assert next_day_of_month(today, day) == expected


class TestTemporalExtractor:
    """Test due-date strategy precedence."""

    def setup_method(self):
        self.now = utc(2025, 6, 11, 10, 30)

    def make(self, stub_recognizer, phrases=None):
        return TemporalExtractor(stub_recognizer(phrases))

    def test_daily_defaults_to_nine(self, stub_recognizer):
        result = self.make(stub_recognizer).resolve("Stretch daily", RecurrenceKind.DAILY, self.now)
        assert result.strategy == "daily"
        assert result.due == utc(2025, 6, 12, 9)

    def test_daily_uses_clock(self, stub_recognizer):
        text = "Take medicine every day at 8am"
        result = self.make(stub_recognizer).resolve(text, RecurrenceKind.DAILY, self.now, extract_clock_time(text))
        assert result.due == utc(2025, 6, 12, 8)

    def test_weekday_at_midnight(self, stub_recognizer):
        result = self.make(stub_recognizer).resolve("Call mom on Sundays", RecurrenceKind.WEEKLY, self.now)
        assert result.strategy == "weekday"
        assert result.due == utc(2025, 6, 15)

    def test_weekday_with_clock(self, stub_recognizer):
        text = "Yoga on Tuesdays at 7pm"
        result = self.make(stub_recognizer).resolve(text, RecurrenceKind.WEEKLY, self.now, extract_clock_time(text))
        assert result.due == utc(2025, 6, 17, 19)

    def test_weekday_ignored_for_monthly(self, stub_recognizer):
        result = self.make(stub_recognizer).resolve("Report monthly on Fridays", RecurrenceKind.MONTHLY, self.now)
        assert result.strategy == "fallback"

    def test_day_of_month(self, stub_recognizer):
        result = self.make(stub_recognizer).resolve(
            "Pay credit card bill monthly on the 5th", RecurrenceKind.MONTHLY, self.now)
        assert result.strategy == "day_of_month"
        assert result.due == utc(2025, 7, 5)

    def test_day_of_month_with_clock(self, stub_recognizer):
        text = "Pay rent monthly on the 31st at 9am"
        result = self.make(stub_recognizer).resolve(text, RecurrenceKind.MONTHLY, self.now, extract_clock_time(text))
        assert result.due == utc(2025, 7, 31, 9)

    def test_recognizer_with_clock_override(self, stub_recognizer):
        text = "Ship release next friday at 4pm"
        extractor = self.make(stub_recognizer, {"next friday": datetime(2025, 6, 20, 9, 0)})
        result = extractor.resolve(text, RecurrenceKind.NONE, self.now, extract_clock_time(text))
        assert result.strategy == "recognizer"
        assert result.due == utc(2025, 6, 20, 16)

    def test_until_phrase_hidden_from_recognizer(self, stub_recognizer):
        text = "Read until Dec 31"
        extractor = self.make(stub_recognizer, {"Dec 31": datetime(2025, 12, 31, 9)})
        until = RecurrenceBoundaryResolver.find_end_phrase(text)
        result = extractor.resolve(text, RecurrenceKind.NONE, self.now, None, until)
        assert result.strategy == "fallback"
        assert result.due == utc(2025, 6, 12, 9)

    def test_until_phrase_blanked_for_weekly(self, stub_recognizer):
        text = "Water plants weekly until Dec 31"
        extractor = self.make(stub_recognizer, {"Dec 31": datetime(2025, 12, 31, 9)})
        until = TextSpan(text.index("until"), len(text), "until")
        assert len(until) == len("until Dec 31")
        result = extractor.resolve(text, RecurrenceKind.WEEKLY, self.now, None, until)
        assert result.strategy == "fallback"

    def test_recognizer_hit_in_invalid_clock_ignored(self, stub_recognizer):
        extractor = self.make(stub_recognizer, {"25pm": datetime(2025, 6, 11, 10, 30)})
        result = extractor.resolve("Meet at 25pm", RecurrenceKind.NONE, self.now)
        assert result.strategy == "fallback"
        assert result.due == utc(2025, 6, 12, 9)

    def test_fallback_takes_clock(self, stub_recognizer):
        text = "Call the bank at 5pm"
        result = self.make(stub_recognizer).resolve(text, RecurrenceKind.NONE, self.now, extract_clock_time(text))
        assert result.strategy == "fallback"
        assert result.due == utc(2025, 6, 12, 17)
