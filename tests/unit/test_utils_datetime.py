"""
Tests for creatorflow/utils/datetime_utils.py and creatorflow/utils/ids.py
"""

import pytest
from datetime import date, datetime, timedelta
import pytz

from creatorflow.utils.datetime_utils import (
    get_local_tz,
    get_local_now,
    get_local_today,
    to_naive_local,
    to_aware_utc,
    is_overdue,
    period_bounds,
    format_time_spent,
)
from creatorflow.utils.ids import generate_id


class TestGetLocalTz:
    """Tests for get_local_tz function."""

    def test_returns_timezone_object(self):
        tz = get_local_tz()
        assert isinstance(tz, pytz.BaseTzInfo)


class TestGetLocalNow:
    """Tests for get_local_now function."""

    def test_returns_naive_datetime(self):
        now = get_local_now()
        assert isinstance(now, datetime)
        assert now.tzinfo is None

    def test_today_matches_now(self):
        assert get_local_today() == get_local_now().date()


class TestConversions:

    def test_none_passthrough(self):
        assert to_naive_local(None) is None
        assert to_aware_utc(None) is None

    def test_naive_is_kept(self):
        dt = datetime(2026, 10, 18, 9, 30)
        assert to_naive_local(dt) == dt

    def test_aware_roundtrip(self):
        aware = pytz.UTC.localize(datetime(2026, 10, 18, 9, 30))
        naive = to_naive_local(aware)
        assert naive.tzinfo is None
        assert to_aware_utc(naive) == aware


class TestIsOverdue:
    """Tests for is_overdue function."""

    def test_none_is_never_overdue(self):
        assert is_overdue(None) is False

    def test_past_datetime(self):
        now = datetime(2026, 10, 18, 12, 0)
        assert is_overdue(now - timedelta(minutes=1), now) is True
        assert is_overdue(now + timedelta(minutes=1), now) is False

    def test_date_counts_from_midnight(self):
        now = datetime(2026, 10, 18, 12, 0)
        assert is_overdue(date(2026, 10, 18), now) is True
        assert is_overdue(date(2026, 10, 19), now) is False


class TestPeriodBounds:

    def test_today(self):
        day = date(2026, 10, 14)
        assert period_bounds("today", day) == (day, day)

    def test_week_runs_sunday_to_saturday(self):
        # 2026-10-14 is a Wednesday
        assert period_bounds("week", date(2026, 10, 14)) == (date(2026, 10, 11), date(2026, 10, 17))
        # Sunday starts its own week
        assert period_bounds("week", date(2026, 10, 18)) == (date(2026, 10, 18), date(2026, 10, 24))

    def test_month(self):
        assert period_bounds("month", date(2026, 2, 14)) == (date(2026, 2, 1), date(2026, 2, 28))
        assert period_bounds("month", date(2026, 12, 31)) == (date(2026, 12, 1), date(2026, 12, 31))

    def test_all_is_unbounded(self):
        assert period_bounds("all") == (None, None)

    def test_unknown_period(self):
        with pytest.raises(ValueError):
            period_bounds("fortnight")


class TestFormatTimeSpent:

    @pytest.mark.parametrize("minutes, text", [
        (0, "0m"),
        (45, "45m"),
        (60, "1h 0m"),
        (125, "2h 5m"),
        (-5, "0m"),
    ])
    def test_format(self, minutes, text):
        assert format_time_spent(minutes) == text


class TestGenerateId:

    def test_uuid_shape(self):
        value = generate_id()
        assert len(value) == 36
        assert value.count("-") == 4

    def test_unique(self):
        assert len({generate_id() for _ in range(1000)}) == 1000
