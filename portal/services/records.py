from collections.abc import Mapping
from typing import Any, Iterable, Optional

from portal.services.scope import ALL_SCOPE

Record = dict[str, Any]


def field(record: Mapping, name: str) -> str:
    """Absent or null fields read as an empty string."""
    value = record.get(name) if isinstance(record, Mapping) else None
    if value is None:
        return ""
    return str(value)


def _normalize_consignee(value: str) -> str:
    return (value or "").strip().upper()


def is_all_scope(scope: Optional[str]) -> bool:
    return scope is not None and scope.strip() == ALL_SCOPE


def filter_records(records: Iterable[Record], scope: Optional[str]) -> list[Record]:
    """
    Restricts the dataset to what a scope may see.
    - "ALL": every record
    - a tenant label: records whose CONSIGNEE matches (trim + case-insensitive)
    - None (no mapping) or a blank label: nothing
    """
    if scope is None or not scope.strip():
        return []
    if is_all_scope(scope):
        return list(records)

    target = _normalize_consignee(scope)
    return [r for r in records if _normalize_consignee(field(r, "CONSIGNEE")) == target]


def search_records(records: Iterable[Record], query: Optional[str]) -> list[Record]:
    if not query or not query.strip():
        return list(records)

    needle = query.lower()
    return [
        r for r in records
        if any(v is not None and needle in str(v).lower() for v in r.values())
    ]
