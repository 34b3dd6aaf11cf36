from __future__ import annotations

import datetime
import random
from zoneinfo import ZoneInfo

from visitor_desk.schemas import VisitorRecord
from visitor_desk.stats import compute_visitor_stats

from conftest import NOW

UTC = datetime.timezone.utc
BERLIN = ZoneInfo("Europe/Berlin")


def visitor(start: datetime.datetime, end: datetime.datetime | None = None) -> VisitorRecord:
    return VisitorRecord(
        id=f"v-{start.isoformat()}",
        name="Guest",
        start_time=start,
        end_time=end,
        is_active=end is None,
    )


def at(day: int, hour: int, minute: int = 0) -> datetime.datetime:
    return datetime.datetime(2026, 10, day, hour, minute, tzinfo=UTC)


def test_empty_list_gives_zeros():
    stats = compute_visitor_stats([], now=NOW, tz=BERLIN)

    assert stats.today_count == 0
    assert stats.active_count == 0
    assert stats.week_count == 0
    assert stats.average_stay == 0


def test_counts_use_local_calendar_day():
    visitors = [
        visitor(at(18, 8), at(18, 9, 30)),      # 90 min, today
        visitor(at(17, 23)),                    # 01:00 local on the 18th, still here
        visitor(at(17, 21), at(17, 21, 45)),    # 23:00 local on the 17th, 45 min
        visitor(at(5, 9), at(5, 9, 30)),        # two weeks ago, 30 min
    ]

    stats = compute_visitor_stats(visitors, now=NOW, tz=BERLIN)

    assert stats.today_count == 2
    assert stats.active_count == 1
    assert stats.week_count == 3
    assert stats.average_stay == 55


def test_average_stay_is_zero_without_completed_visits():
    visitors = [visitor(at(18, 8)), visitor(at(18, 9))]

    stats = compute_visitor_stats(visitors, now=NOW, tz=BERLIN)

    assert stats.average_stay == 0
    assert stats.active_count == 2


def test_average_stay_rounds_half_up():
    visitors = [
        visitor(at(18, 8), at(18, 8, 1)),
        visitor(at(18, 8), at(18, 8, 2)),
    ]

    assert compute_visitor_stats(visitors, now=NOW, tz=BERLIN).average_stay == 2


def test_average_stay_rounds_to_nearest_minute():
    start = at(18, 8)
    visitors = [visitor(start, start + datetime.timedelta(minutes=10, seconds=20))]

    assert compute_visitor_stats(visitors, now=NOW, tz=BERLIN).average_stay == 10


def test_today_never_exceeds_week():
    rng = random.Random(1234)
    for _ in range(200):
        visitors = []
        for _ in range(rng.randint(0, 15)):
            start = NOW - datetime.timedelta(minutes=rng.randint(0, 60 * 24 * 14))
            end = start + datetime.timedelta(minutes=rng.randint(1, 600)) if rng.random() < 0.5 else None
            visitors.append(visitor(start, end))

        stats = compute_visitor_stats(visitors, now=NOW, tz=BERLIN)

        assert stats.today_count <= stats.week_count
        if not any(v.end_time for v in visitors):
            assert stats.average_stay == 0


def test_defaults_to_timezone_of_now():
    now = datetime.datetime(2026, 10, 18, 0, 30, tzinfo=UTC)
    visitors = [visitor(at(17, 23, 50))]

    stats = compute_visitor_stats(visitors, now=now)

    assert stats.today_count == 0
    assert stats.week_count == 1
