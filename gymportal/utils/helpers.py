from datetime import date, datetime, timezone

from dateutil.relativedelta import relativedelta


def parse_datetime(value):
    """Parse an ISO date/timestamp string (``Z`` suffix allowed); None if it can't."""
    if value is None or isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    text = str(value).strip()
    if text.endswith('Z'):
        text = text[:-1] + '+00:00'
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None


def format_currency(amount):
    """Format amount as currency"""
    try:
        return f"${float(amount or 0):,.2f}"
    except (TypeError, ValueError):
        return "$0.00"


def format_date(value, with_time=False):
    """'Jan 05, 2024' (or with time); unparseable input is returned as-is."""
    parsed = parse_datetime(value)
    if parsed is None:
        return value or ''
    if with_time:
        return parsed.strftime('%b %d, %Y %I:%M %p')
    return parsed.strftime('%b %d, %Y')


def format_relative_time(value, now=None):
    """'Just now', '5m ago', '3h ago', '2d ago', else the full date."""
    parsed = parse_datetime(value)
    if parsed is None:
        return ''
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    now = now or datetime.now(timezone.utc)
    seconds = int((now - parsed).total_seconds())

    if seconds < 60:
        return 'Just now'
    if seconds < 3600:
        return f"{seconds // 60}m ago"
    if seconds < 86400:
        return f"{seconds // 3600}h ago"
    if seconds < 2592000:
        return f"{seconds // 86400}d ago"
    return format_date(parsed, with_time=True)


def months_between(start, end=None):
    """Whole calendar months from ``start`` to ``end`` (today by default)."""
    start = parse_datetime(start)
    if start is None:
        return 0
    end = end or date.today()
    delta = relativedelta(end, start.date())
    return delta.years * 12 + delta.months


def truncate(text, length=50):
    text = text or ''
    return text[:length] + ('...' if len(text) > length else '')
