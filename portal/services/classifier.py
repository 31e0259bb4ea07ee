from datetime import datetime, timedelta
from typing import Iterable, Optional

import dateutil.parser

from portal.schemas import ShipmentView
from portal.services.records import Record, field


# (category, priority, color) in match precedence order.
# A STATUS matching several tokens takes the first one listed.
STATUS_CATEGORIES = [
    ("PORT", 1, "#dc2626"),
    ("STACK", 2, "#f97316"),
    ("PLANNED", 3, "#eab308"),
    ("EN ROUTE", 4, "#2563eb"),
]
OTHER_CATEGORY = ("OTHER", 5, "#16a34a")


def _match_status(status: str) -> tuple[str, int, str]:
    status_u = (status or "").upper()
    for category in STATUS_CATEGORIES:
        if category[0] in status_u:
            return category
    return OTHER_CATEGORY


def classify_status(record: Record) -> str:
    return _match_status(field(record, "STATUS"))[0]


def status_priority(record: Record) -> int:
    return _match_status(field(record, "STATUS"))[1]


def sort_by_priority(records: Iterable[Record]) -> list[Record]:
    # sorted() is stable: equal priorities keep their input order
    return sorted(records, key=status_priority)


def find_eta_field(record: Record, preferred: Optional[str] = None) -> Optional[str]:
    if preferred and preferred in record:
        return preferred
    for name in record:
        if str(name).strip().upper().startswith("ETA"):
            return name
    return None


def parse_eta(raw: str, dayfirst: bool = True) -> Optional[datetime]:
    if not raw or not raw.strip():
        return None
    try:
        return dateutil.parser.parse(raw, dayfirst=dayfirst)
    except (ValueError, OverflowError):
        return None


def is_upcoming(
    record: Record,
    now: Optional[datetime] = None,
    window_days: int = 7,
    eta_field: Optional[str] = None,
    dayfirst: bool = True,
) -> bool:
    """
    True when the record's ETA falls between today and today + window_days.
    Missing or unreadable ETAs are never upcoming.
    """
    name = find_eta_field(record, eta_field)
    if name is None:
        return False

    eta = parse_eta(field(record, name), dayfirst=dayfirst)
    if eta is None:
        return False

    today = (now or datetime.now()).date()
    return today <= eta.date() <= today + timedelta(days=window_days)


def categorize(
    records: Iterable[Record],
    now: Optional[datetime] = None,
    window_days: int = 7,
    eta_field: Optional[str] = None,
    dayfirst: bool = True,
) -> list[ShipmentView]:
    views = []
    for record in sort_by_priority(records):
        category, priority, color = _match_status(field(record, "STATUS"))
        views.append(ShipmentView(
            record=record,
            category=category,
            priority=priority,
            color=color,
            upcoming=is_upcoming(record, now, window_days, eta_field, dayfirst),
        ))
    return views
