"""Calendar period helpers used by budgets, loans and accounting reports"""
from calendar import monthrange
from datetime import date, datetime

PERIOD_CHOICES = ('month', 'quarter', 'year', 'custom')


def parse_date(value, default=None):
    """Parse YYYY-MM-DD; raises ValueError on malformed input"""
    if value in (None, ''):
        return default
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return datetime.strptime(str(value), '%Y-%m-%d').date()


def month_range(year, month):
    if not 1 <= int(month) <= 12:
        raise ValueError(f'Invalid month: {month}')
    year, month = int(year), int(month)
    return date(year, month, 1), date(year, month, monthrange(year, month)[1])


def quarter_of(day):
    return (day.month - 1) // 3 + 1


def quarter_range(year, quarter):
    quarter = int(quarter)
    if not 1 <= quarter <= 4:
        raise ValueError(f'Invalid quarter: {quarter}')
    first_month = (quarter - 1) * 3 + 1
    start, _ = month_range(year, first_month)
    _, end = month_range(year, first_month + 2)
    return start, end


def year_range(year):
    return date(int(year), 1, 1), date(int(year), 12, 31)


def add_months(day, months):
    """Shift by whole months, clamping the day to the target month's end"""
    total = day.month - 1 + months
    year = day.year + total // 12
    month = total % 12 + 1
    return date(year, month, min(day.day, monthrange(year, month)[1]))


def months_between(start, end):
    """Whole calendar months from start to end (12 for 2024-01-15 -> 2025-01-15)"""
    months = (end.year - start.year) * 12 + (end.month - start.month)
    if end.day < start.day and end.day != monthrange(end.year, end.month)[1]:
        months -= 1
    return max(months, 0)


def is_full_month(start, end):
    return start.day == 1 and end == month_range(start.year, start.month)[1]


def period_range(period, today, date_from=None, date_to=None):
    """
    Date range for a report period relative to ``today``.

    ``custom`` requires both bounds; the others cover the current calendar
    month, quarter or year.
    """
    if period == 'month':
        return month_range(today.year, today.month)
    if period == 'quarter':
        return quarter_range(today.year, quarter_of(today))
    if period == 'year':
        return year_range(today.year)
    if period == 'custom':
        start = parse_date(date_from)
        end = parse_date(date_to)
        if not start or not end:
            raise ValueError('Custom period requires date_from and date_to')
        if start > end:
            raise ValueError('date_from must not be after date_to')
        return start, end
    raise ValueError(f'Unknown period: {period}')
