"""
Shipment portal pipeline.

derive_view() is the single derivation from (dataset, scope, query) to the
ordered records a user sees. PortalSession owns one user's dataset and scope
map, loads them concurrently, and tracks the currently selected record's
documents. SessionRegistry keeps one session per identity and evicts
sessions left idle. Loaded data expires after a TTL and is fetched again
on the next request.
"""

import asyncio
import logging
import time
from typing import Callable, Iterable, Optional

from portal.schemas import DocumentDescriptor
from portal.services.classifier import sort_by_priority
from portal.services.documents import (
    CancellationToken,
    DocumentResolver,
    ResolutionCancelled,
    lookup_key,
)
from portal.services.records import Record, filter_records, search_records
from portal.services.scope import ScopeMap, normalize_identity, resolve_scope
from portal.services.sources import JsonSource, SourceError, as_records

logger = logging.getLogger(__name__)


def derive_view(dataset: Iterable[Record], scope: Optional[str], query: Optional[str] = "") -> list[Record]:
    base = filter_records(dataset, scope)
    working = search_records(base, query)
    return sort_by_priority(working)


class PortalSession:
    def __init__(
        self,
        identity: str,
        scope_source: JsonSource,
        dataset_source: JsonSource,
        resolver: DocumentResolver,
        ttl: float = 300,
        clock: Callable[[], float] = time.time,
    ):
        self.identity = identity
        self.ttl = ttl
        self.clock = clock
        self.scope_source = scope_source
        self.dataset_source = dataset_source
        self.resolver = resolver

        self.scope_map = ScopeMap()
        self.dataset: list[Record] = []
        self.scope_loaded = False
        self.dataset_loaded = False
        self._expires_at = 0.0

        self.selected_key: Optional[str] = None
        self.selected_documents: list[DocumentDescriptor] = []

        self._scope_ready = asyncio.Event()
        self._load_lock = asyncio.Lock()
        self._selection: Optional[CancellationToken] = None

    @property
    def scope(self) -> Optional[str]:
        return resolve_scope(self.identity, self.scope_map)

    @property
    def loaded(self) -> bool:
        return self.scope_loaded and self.dataset_loaded

    async def _load_scope(self):
        try:
            raw = await self.scope_source.fetch_async()
            self.scope_map = ScopeMap.from_mapping(raw)
            self.scope_loaded = True
            logger.info(f"[Session] Scope map loaded: {len(self.scope_map)} identities")
        except SourceError as e:
            logger.error(f"[Session] Scope map unavailable, no records visible: {e}")
            self.scope_map = ScopeMap()
        finally:
            self._scope_ready.set()

    async def _load_dataset(self):
        try:
            records = as_records(await self.dataset_source.fetch_async())
            loaded = True
        except SourceError as e:
            logger.error(f"[Session] Dataset unavailable: {e}")
            records, loaded = [], False

        # Never publish the dataset ahead of the scope map
        await self._scope_ready.wait()
        self.dataset = records
        self.dataset_loaded = loaded
        if loaded:
            logger.info(f"[Session] Dataset loaded: {len(records)} records")

    async def ensure_loaded(self):
        """
        Loads whatever is missing. Failed loads are retried on the next call;
        loaded data is refetched once the TTL has passed.
        """
        async with self._load_lock:
            if self.loaded and self.clock() >= self._expires_at:
                logger.info(f"[Session] Data for {self.identity} expired, reloading")
                self.scope_loaded = False
                self.dataset_loaded = False

            if self.loaded:
                return

            tasks = []
            if not self.scope_loaded:
                self._scope_ready.clear()
                tasks.append(self._load_scope())
            if not self.dataset_loaded:
                tasks.append(self._load_dataset())
            await asyncio.gather(*tasks)

            if self.loaded:
                self._expires_at = self.clock() + self.ttl

    def view(self, query: Optional[str] = "") -> list[Record]:
        return derive_view(self.dataset, self.scope, query)

    def find_record(self, key: str) -> Optional[Record]:
        """Looks up a record by lookup key within this session's scoped view."""
        for record in self.view():
            if lookup_key(record) == key:
                return record
        return None

    async def select(self, record: Record) -> Optional[list[DocumentDescriptor]]:
        """
        Resolves documents for a newly selected record. Any in-flight
        resolution for a previous selection is cancelled; a superseded call
        returns None and never overwrites the newer selection's documents.
        """
        if self._selection is not None:
            self._selection.cancel()

        token = CancellationToken()
        self._selection = token
        self.selected_key = lookup_key(record)

        try:
            documents = await self.resolver.resolve(record, token)
        except ResolutionCancelled:
            return None

        if token.cancelled:
            return None

        self.selected_documents = documents
        return documents

    def close(self):
        if self._selection is not None:
            self._selection.cancel()
            self._selection = None


class SessionRegistry:
    def __init__(
        self,
        scope_source: JsonSource,
        dataset_source: JsonSource,
        resolver: DocumentResolver,
        ttl: float = 300,
        idle_timeout: float = 3600,
        clock: Callable[[], float] = time.time,
    ):
        self.scope_source = scope_source
        self.dataset_source = dataset_source
        self.resolver = resolver
        self.ttl = ttl
        self.idle_timeout = idle_timeout
        self.clock = clock
        self._sessions: dict[str, PortalSession] = {}
        self._last_used: dict[str, float] = {}

    def evict_idle(self):
        now = self.clock()
        for key, last_used in list(self._last_used.items()):
            if now - last_used >= self.idle_timeout:
                logger.info(f"[Session] Evicting idle session for {key}")
                self._drop_key(key)

    async def get(self, identity: str) -> PortalSession:
        self.evict_idle()

        key = normalize_identity(identity)
        session = self._sessions.get(key)
        if session is None:
            session = PortalSession(
                identity,
                self.scope_source,
                self.dataset_source,
                self.resolver,
                ttl=self.ttl,
                clock=self.clock,
            )
            self._sessions[key] = session
        self._last_used[key] = self.clock()

        await session.ensure_loaded()
        return session

    def _drop_key(self, key: str):
        self._last_used.pop(key, None)
        session = self._sessions.pop(key, None)
        if session is not None:
            session.close()

    def drop(self, identity: str):
        self._drop_key(normalize_identity(identity))

    def __len__(self) -> int:
        return len(self._sessions)
