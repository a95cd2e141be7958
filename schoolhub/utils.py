from datetime import datetime, date


def parse_date(value):
    """``YYYY-MM-DD`` -> date, or None when empty or malformed."""
    value = (value or "").strip()
    if not value:
        return None
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError:
        return None


def parse_time(value):
    try:
        return datetime.strptime((value or "").strip(), "%H:%M").time()
    except ValueError:
        return None


def generate_ra(now=None):
    now = now or datetime.now()
    return f"EST{now.strftime('%Y%m%d%H%M%S%f')}"


def today():
    return date.today()
