import logging
import re
from datetime import datetime, timedelta
from typing import Optional

from dateutil import parser as date_parser

from ..models.news import ensure_utc, utcnow

logger = logging.getLogger(__name__)

_MONTH = (
    r"(?:Jan(?:uary)?|Feb(?:ruary)?|Mar(?:ch)?|Apr(?:il)?|May|Jun(?:e)?|Jul(?:y)?|"
    r"Aug(?:ust)?|Sep(?:t(?:ember)?)?|Oct(?:ober)?|Nov(?:ember)?|Dec(?:ember)?)"
)

# Order matters: first match wins.
_DATE_PATTERNS = [
    ("absolute", re.compile(rf"\b{_MONTH}\.?\s+\d{{1,2}}(?:st|nd|rd|th)?,?\s+\d{{4}}\b", re.IGNORECASE)),
    ("absolute", re.compile(rf"\b\d{{1,2}}\s+{_MONTH}\.?,?\s+\d{{4}}\b", re.IGNORECASE)),
    ("absolute", re.compile(r"\b\d{4}-\d{2}-\d{2}\b")),
    ("us_date", re.compile(r"\b(\d{2})/(\d{2})/\d{4}\b")),
    ("hours_ago", re.compile(r"\b(\d{1,2})\s+hours?\s+ago\b", re.IGNORECASE)),
    ("days_ago", re.compile(r"\b(\d{1,2})\s+days?\s+ago\b", re.IGNORECASE)),
    ("yesterday", re.compile(r"\byesterday\b", re.IGNORECASE)),
    ("today", re.compile(r"\btoday\b", re.IGNORECASE)),
]


def parse_date_text(text: str, now: Optional[datetime] = None) -> Optional[datetime]:
    """Parse an absolute date string; None if dateutil cannot make sense of it."""
    if not text or not text.strip():
        return None
    now = now or utcnow()
    default = now.replace(hour=0, minute=0, second=0, microsecond=0, tzinfo=None)
    try:
        parsed = date_parser.parse(text, default=default)
    except (ValueError, OverflowError) as e:
        logger.debug(f"Could not parse date {text!r}: {e}")
        return None
    return ensure_utc(parsed)


def extract_date(content: Optional[str], now: Optional[datetime] = None) -> Optional[datetime]:
    """
    Best-effort publication timestamp from unstructured article text.

    Tries, in order: "Jan 5, 2026", "5 January 2026", "2026-01-05", "01/05/2026",
    "N hours ago", "N days ago", "yesterday", "today". Relative forms are offset
    from `now`. An absolute match that fails to parse falls through to the next
    pattern. Returns None if nothing matches.
    """
    if not content:
        return None
    now = ensure_utc(now or utcnow())

    for kind, pattern in _DATE_PATTERNS:
        m = pattern.search(content)
        if not m:
            continue
        if kind == "hours_ago":
            return now - timedelta(hours=int(m.group(1)))
        if kind == "days_ago":
            return now - timedelta(days=int(m.group(1)))
        if kind == "yesterday":
            return now - timedelta(days=1)
        if kind == "today":
            return now
        if kind == "us_date" and not 1 <= int(m.group(1)) <= 12:
            # Month first only; 13/05/2026 is not read as 13 May
            continue
        parsed = parse_date_text(m.group(0), now)
        if parsed is not None:
            return parsed

    return None
