import logging
from collections.abc import Mapping
from typing import Any, Iterator, Optional

logger = logging.getLogger(__name__)

ALL_SCOPE = "ALL"
RESTRICTED_LABEL = "Restricted"


def normalize_identity(identity: Optional[str]) -> str:
    return (identity or "").strip().lower()


class ScopeMap(Mapping):
    """
    Immutable identity -> tenant label mapping.
    Keys are normalized (trimmed, lower-cased) once at load time so that
    lookups and the stored keys always agree.
    """

    def __init__(self, entries: Optional[dict[str, str]] = None):
        self._entries: dict[str, str] = dict(entries or {})

    @classmethod
    def from_mapping(cls, raw: Any) -> "ScopeMap":
        if not isinstance(raw, Mapping):
            logger.warning(f"[Scope] Expected a mapping, got {type(raw).__name__}; using empty scope map")
            return cls()

        entries = {}
        for identity, label in raw.items():
            if not isinstance(identity, str) or not isinstance(label, str):
                logger.warning(f"[Scope] Skipping non-string entry for {identity!r}")
                continue
            if not label.strip():
                logger.warning(f"[Scope] Skipping blank label for {identity!r}")
                continue
            key = normalize_identity(identity)
            if not key:
                continue
            entries[key] = label
        return cls(entries)

    def __getitem__(self, identity: str) -> str:
        return self._entries[identity]

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"ScopeMap({len(self._entries)} identities)"


def resolve_scope(identity: Optional[str], scope_map: Mapping) -> Optional[str]:
    """
    Returns the tenant label for an identity, or None when it has no mapping.
    None is a valid outcome (unscoped) and never an error.
    """
    key = normalize_identity(identity)
    if not key:
        return None
    return scope_map.get(key)


def scope_label(scope: Optional[str]) -> str:
    return scope if scope is not None else RESTRICTED_LABEL
