"""
Visitor statistics for the admin dashboard.
"""

import datetime
import math
from typing import Iterable, Optional

from .schemas import VisitorRecord, VisitorStats


# PUBLIC_INTERFACE
def compute_visitor_stats(
    visitors: Iterable[VisitorRecord],
    now: Optional[datetime.datetime] = None,
    tz: Optional[datetime.tzinfo] = None,
) -> VisitorStats:
    """
    Aggregate dashboard counters over an already fetched visitor list.

    Args:
        visitors: Visitor records (anything with start_time, end_time, is_active).
        now: Reference time, defaults to the current time.
        tz: Timezone whose calendar day counts as "today"; defaults to the
            timezone of `now`, or the machine's local one.

    Returns:
        VisitorStats with:
        - today_count: started at or after local midnight
        - active_count: still checked in
        - week_count: started within the last 7 days
        - average_stay: mean of completed stays in minutes, rounded half up;
          0 when no visit has ended
    """
    if now is None:
        now = datetime.datetime.now(tz) if tz else datetime.datetime.now().astimezone()
    if tz is None:
        tz = now.tzinfo or datetime.datetime.now().astimezone().tzinfo

    midnight = now.astimezone(tz).replace(hour=0, minute=0, second=0, microsecond=0)
    week_ago = now - datetime.timedelta(days=7)

    today_count = active_count = week_count = 0
    completed = 0
    total_stay = 0.0
    for visitor in visitors:
        if visitor.start_time >= midnight:
            today_count += 1
        if visitor.start_time >= week_ago:
            week_count += 1
        if visitor.is_active:
            active_count += 1
        if visitor.start_time is not None and visitor.end_time is not None:
            completed += 1
            total_stay += (visitor.end_time - visitor.start_time).total_seconds()

    average_stay = math.floor(total_stay / completed / 60 + 0.5) if completed else 0

    return VisitorStats(
        today_count=today_count,
        active_count=active_count,
        week_count=week_count,
        average_stay=average_stay,
    )
