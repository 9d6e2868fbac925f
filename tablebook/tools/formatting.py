"""Date and time parsing/formatting for tool input and output."""

import re
from datetime import date, timedelta

# Day-of-week name → weekday int (Monday = 0)
_DAY_NAMES: dict[str, int] = {
    "monday": 0, "tuesday": 1, "wednesday": 2, "thursday": 3,
    "friday": 4, "saturday": 5, "sunday": 6,
}


def parse_date(text: str, today: date | None = None) -> str:
    """Parse a date string into YYYY-MM-DD format.

    Supported formats:
    - ISO passthrough: "2026-02-14"
    - "today", "tomorrow"
    - Day name: "Saturday", "this Saturday" (→ next occurrence after today)
    - "next Saturday" (→ one week after that)
    - "in 3 days"
    - "2/14" (month/day, rolling to next year if already past)

    Raises:
        ValueError: If the string cannot be parsed.
    """
    today = today or date.today()
    cleaned = text.strip().lower()

    if re.match(r"\d{4}-\d{2}-\d{2}$", cleaned):
        return date.fromisoformat(cleaned).isoformat()
    if cleaned == "today":
        return today.isoformat()
    if cleaned == "tomorrow":
        return (today + timedelta(days=1)).isoformat()

    in_days = re.match(r"in\s+(\d{1,3})\s+days?$", cleaned)
    if in_days:
        return (today + timedelta(days=int(in_days.group(1)))).isoformat()

    day_match = re.match(r"(next|this)?\s*(\w+)$", cleaned)
    if day_match and day_match.group(2) in _DAY_NAMES:
        days_ahead = (_DAY_NAMES[day_match.group(2)] - today.weekday()) % 7 or 7
        if day_match.group(1) == "next":
            days_ahead += 7
        return (today + timedelta(days=days_ahead)).isoformat()

    slash_date = re.match(r"(\d{1,2})/(\d{1,2})$", cleaned)
    if slash_date:
        result = date(today.year, int(slash_date.group(1)), int(slash_date.group(2)))
        if result < today:
            result = result.replace(year=today.year + 1)
        return result.isoformat()

    raise ValueError(f"Cannot parse date: '{text}'")


def format_time(time_24: str) -> str:
    """Convert 24-hour time string to 12-hour display format."""
    try:
        parts = time_24.split(":")
        hour = int(parts[0])
        minute = parts[1] if len(parts) > 1 else "00"
        suffix = "AM" if hour < 12 else "PM"
        display_hour = hour % 12 or 12
        return f"{display_hour}:{minute} {suffix}"
    except (ValueError, IndexError):
        return time_24


def normalise_time(time_str: str) -> str:
    """Normalise "7:30 PM" / "19:30" / "7pm" to HH:MM 24-hour format.

    Raises:
        ValueError: If the string is not a time.
    """
    cleaned = time_str.strip().upper().replace(" ", "")
    match = re.match(r"^(\d{1,2})(?::(\d{2}))?(AM|PM)?$", cleaned)
    if not match:
        raise ValueError(f"Cannot parse time: '{time_str}'")

    hour = int(match.group(1))
    minute = int(match.group(2) or 0)
    meridiem = match.group(3)
    if meridiem == "PM" and hour != 12:
        hour += 12
    elif meridiem == "AM" and hour == 12:
        hour = 0
    if hour > 23 or minute > 59:
        raise ValueError(f"Cannot parse time: '{time_str}'")
    return f"{hour:02d}:{minute:02d}"


def format_date(iso_date: str) -> str:
    """Render 2026-02-14 as "Sat, Feb 14"; unparseable input is returned as is."""
    try:
        parsed = date.fromisoformat(iso_date)
    except ValueError:
        return iso_date
    return f"{parsed:%a, %b} {parsed.day}"


def guests_label(party_size: int) -> str:
    return f"{party_size} {'Guest' if party_size == 1 else 'Guests'}"
