# phpayroll/attendance/overtime.py

from datetime import datetime, time, timedelta
from decimal import Decimal

# Night differential window for approved overtime: 5PM until 6AM the next day
NIGHT_START = time(17, 0)
NIGHT_END = time(6, 0)


def _overlap_seconds(start, end, window_start, window_end):
    latest_start = max(start, window_start)
    earliest_end = min(end, window_end)
    return max(0, (earliest_end - latest_start).total_seconds())


def night_diff_hours_for_request(ot_date, start_time, end_time, total_hours, end_date=None):
    """
    Night differential hours inside an approved overtime request.

    The request spans midnight when ``end_date`` differs from ``ot_date`` or
    when it ends at or before its start time. The result never exceeds the
    request's ``total_hours``.
    """
    start = datetime.combine(ot_date, start_time)
    end = datetime.combine(end_date or ot_date, end_time)
    if end <= start:
        end += timedelta(days=1)

    seconds = 0
    night = start.date() - timedelta(days=1)
    while night <= end.date():
        window_start = datetime.combine(night, NIGHT_START)
        window_end = datetime.combine(night + timedelta(days=1), NIGHT_END)
        seconds += _overlap_seconds(start, end, window_start, window_end)
        night += timedelta(days=1)

    hours = Decimal(str(seconds)) / Decimal('3600')
    return min(hours, Decimal(str(total_hours or 0)))


def approved_hours_by_date(requests):
    """Sums approved OT and derived ND hours per request date ('YYYY-MM-DD')."""
    ot_by_date = {}
    nd_by_date = {}
    for req in requests:
        key = req.ot_date.isoformat()
        total = Decimal(str(req.total_hours or 0))
        nd = night_diff_hours_for_request(req.ot_date, req.start_time, req.end_time,
                                          total, end_date=req.end_date)
        ot_by_date[key] = ot_by_date.get(key, Decimal('0')) + total
        nd_by_date[key] = nd_by_date.get(key, Decimal('0')) + nd
    return ot_by_date, nd_by_date
