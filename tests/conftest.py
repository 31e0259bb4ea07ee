"""
Shared fixtures for the shipment portal tests.

- FakeSource stands in for JsonSource (optionally gated or failing)
- mock_supabase provides a MagicMock storage client
- api_client runs the FastAPI app in-memory with dependency overrides
"""

import asyncio
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from portal.dependencies import get_identity_provider, get_registry
from portal.main import app
from portal.pipeline import SessionRegistry
from portal.schemas import DocumentDescriptor
from portal.services.documents import DocumentResolver, lookup_key
from portal.services.identity import IdentityError
from portal.services.sources import SourceError


# ============================================================================
# Test Data
# ============================================================================

SCOPE_MAP = {
    "a@x.com": "ACME LTD",
    "Ops@Pech.example ": "ALL",
    "b@y.com": "Blue Harbour",
}

DATASET = [
    {"REF": "PF-101", "CONTAINER": "MSCU1111111", "CONSIGNEE": "Acme Ltd", "STATUS": "Offloaded", "ETA": ""},
    {"REF": "PF-102", "CONTAINER": "MSCU2222222", "CONSIGNEE": " acme ltd ", "STATUS": "At Port", "ETA": ""},
    {"REF": "", "CONTAINER": "MAEU3333333", "CONSIGNEE": "Blue Harbour", "STATUS": "En Route", "ETA": ""},
    {"REF": "PF-104", "CONTAINER": "", "CONSIGNEE": "Other", "STATUS": "Planned", "ETA": ""},
    {"REF": "PF-105", "CONTAINER": "CMAU5555555", "CONSIGNEE": "ACME LTD", "STATUS": "Stacked", "ETA": ""},
]


# ============================================================================
# Fakes
# ============================================================================

class FakeSource:
    def __init__(self, payload=None, error=None, gate=None):
        self.payload = payload
        self.error = error
        self.gate = gate
        self.calls = 0

    async def fetch_async(self):
        self.calls += 1
        if self.gate is not None:
            await self.gate.wait()
        if self.error:
            raise SourceError(self.error)
        return self.payload


class GatedResolver:
    """Resolves only when the test releases the record's gate."""

    def __init__(self):
        self.gates = {}
        self.started = {}

    def gate(self, key):
        return self.gates.setdefault(key, asyncio.Event())

    def started_event(self, key):
        return self.started.setdefault(key, asyncio.Event())

    async def resolve(self, record, token=None):
        key = lookup_key(record)
        self.started_event(key).set()
        await self.gate(key).wait()
        if token is not None:
            token.raise_if_cancelled()
        return [DocumentDescriptor(name=f"{key}.pdf", url=f"https://s/{key}.pdf")]


class FakeIdentityProvider:
    def __init__(self, tokens):
        self.tokens = tokens
        self.signed_out = []

    def identify(self, token):
        if token not in self.tokens:
            raise IdentityError("Token rejected")
        return self.tokens[token]

    def sign_out(self, token):
        self.signed_out.append(token)


def make_storage(entries=None, error=None):
    """MagicMock Supabase client whose storage lists `entries` for any folder."""
    client = MagicMock()
    bucket = client.storage.from_.return_value

    if error is not None:
        bucket.list.side_effect = error
    else:
        bucket.list.return_value = entries or []

    def create_signed_url(path, expires_in):
        return {"signedURL": f"https://storage.example/sign/{path}?expires={expires_in}"}

    bucket.create_signed_url.side_effect = create_signed_url
    return client


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def dataset():
    return [dict(r) for r in DATASET]


@pytest.fixture
def scope_map():
    return dict(SCOPE_MAP)


@pytest.fixture
def mock_supabase():
    return make_storage([
        {"name": "invoice.pdf"},
        {"name": "order-confirmation.pdf"},
    ])


@pytest.fixture
def registry(dataset, scope_map, mock_supabase):
    return SessionRegistry(
        scope_source=FakeSource(scope_map),
        dataset_source=FakeSource(dataset),
        resolver=DocumentResolver(mock_supabase, bucket="documents", expires_in=60),
    )


@pytest.fixture
def identity_provider():
    return FakeIdentityProvider({
        "token-acme": "A@X.COM",
        "token-ops": "ops@pech.example",
        "token-nobody": "nobody@z.com",
    })


@pytest.fixture
def api_client(registry, identity_provider):
    app.dependency_overrides[get_registry] = lambda: registry
    app.dependency_overrides[get_identity_provider] = lambda: identity_provider
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()


def auth(token):
    return {"Authorization": f"Bearer {token}"}
