"""Absolute and relative timestamp formatting for commit metadata."""


def days_to_ymd(days: int) -> tuple[int, int, int]:
    """Convert days since the Unix epoch to (year, month, day).

    Closed-form civil-from-days conversion (Howard Hinnant's algorithm):
    shift the epoch to 0000-03-01 so leap days fall at the end of the
    year, split into 400-year eras, then derive year-of-era, day-of-year
    and a March-based month.
    """
    z = days + 719468
    era = (z if z >= 0 else z - 146096) // 146097
    doe = z - era * 146097  # [0, 146096]
    yoe = (doe - doe // 1460 + doe // 36524 - doe // 146096) // 365  # [0, 399]
    y = yoe + era * 400
    doy = doe - (365 * yoe + yoe // 4 - yoe // 100)  # [0, 365]
    mp = (5 * doy + 2) // 153  # [0, 11], March == 0
    d = doy - (153 * mp + 2) // 5 + 1
    m = mp + 3 if mp < 10 else mp - 9
    if m <= 2:
        y += 1
    return y, m, d


def format_git_time(seconds: int, offset_minutes: int = 0) -> str:
    """Format an epoch timestamp as ``YYYY-MM-DD HH:MM:SS`` in its own timezone.

    Args:
        seconds: Seconds since the Unix epoch (UTC)
        offset_minutes: Timezone offset east of UTC, in minutes

    Returns:
        Zero-padded local date and time string
    """
    local_secs = seconds + offset_minutes * 60

    # Python's floor division already rounds towards negative infinity,
    # so pre-epoch times keep a non-negative time of day.
    days = local_secs // 86400
    time_of_day = local_secs % 86400

    hours = time_of_day // 3600
    minutes = (time_of_day % 3600) // 60
    secs = time_of_day % 60

    year, month, day = days_to_ymd(days)
    return f'{year:04d}-{month:02d}-{day:02d} {hours:02d}:{minutes:02d}:{secs:02d}'


def parse_tz_offset(offset: str) -> int:
    """Parse a git ``+HHMM`` / ``-HHMM`` timezone into minutes east of UTC."""
    sign = -1 if offset.startswith('-') else 1
    digits = offset.lstrip('+-')
    if len(digits) != 4 or not digits.isdigit():
        return 0
    return sign * (int(digits[:2]) * 60 + int(digits[2:]))


def _ago(count: int, unit: str) -> str:
    label = unit if count == 1 else f'{unit}s'
    return f'{count} {label} ago'


def format_relative_time(secs_ago: int) -> str:
    """Describe an elapsed duration as e.g. "2 hours ago".

    Months and years use fixed 30- and 365-day approximations.
    """
    if secs_ago < 0:
        return 'in the future'
    if secs_ago < 60:
        return _ago(secs_ago, 'second')
    mins = secs_ago // 60
    if mins < 60:
        return _ago(mins, 'minute')
    hours = mins // 60
    if hours < 24:
        return _ago(hours, 'hour')
    days = hours // 24
    if days < 7:
        return _ago(days, 'day')
    weeks = days // 7
    if weeks < 4:
        return _ago(weeks, 'week')
    months = days // 30
    if months < 12:
        return _ago(months, 'month')
    return _ago(days // 365, 'year')
