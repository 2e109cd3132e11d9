"""Date helpers for upstream query ranges."""

from datetime import date, datetime, timedelta, timezone
from typing import Dict, Optional

from space_api.errors import InvalidRequestError


def utc_today() -> date:
    return datetime.now(timezone.utc).date()


def get_dates(today: Optional[date] = None) -> Dict[str, str]:
    """Common YYYY-MM-DD anchors relative to today (UTC)."""
    today = today or utc_today()
    return {
        "thirty_days_ago": (today - timedelta(days=30)).isoformat(),
        "one_week_ago": (today - timedelta(days=7)).isoformat(),
        "yesterday": (today - timedelta(days=1)).isoformat(),
        "today": today.isoformat(),
    }


def parse_date(value: str) -> date:
    """Parse YYYY-MM-DD, raising InvalidRequestError with a readable message."""
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError:
        raise InvalidRequestError(f"Invalid date: {value}. Please use format YYYY-MM-DD.")
