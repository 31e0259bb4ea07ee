import asyncio

import httpx
import pytest

from conftest import FakeSource, GatedResolver, auth
from portal.dependencies import get_identity_provider, get_registry
from portal.main import app
from portal.pipeline import SessionRegistry


def test_health(api_client):
    resp = api_client.get("/")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ONLINE"


def test_missing_token_is_unauthorized(api_client):
    assert api_client.get("/shipments").status_code == 401


def test_rejected_token_is_unauthorized(api_client):
    assert api_client.get("/shipments", headers=auth("forged")).status_code == 401


def test_me_reports_scope(api_client):
    resp = api_client.get("/me", headers=auth("token-acme"))
    assert resp.json() == {"identity": "A@X.COM", "scope": "ACME LTD"}

    resp = api_client.get("/me", headers=auth("token-nobody"))
    assert resp.json()["scope"] == "Restricted"


def test_shipments_are_scoped_and_ordered(api_client):
    resp = api_client.get("/shipments", headers=auth("token-acme"))
    assert resp.status_code == 200

    body = resp.json()
    assert body["scope"] == "ACME LTD"
    assert body["total"] == 3
    assert [s["record"]["REF"] for s in body["shipments"]] == ["PF-102", "PF-105", "PF-101"]
    assert [s["category"] for s in body["shipments"]] == ["PORT", "STACK", "OTHER"]


def test_shipments_search(api_client):
    resp = api_client.get("/shipments", params={"q": "CMAU"}, headers=auth("token-acme"))
    body = resp.json()
    assert body["query"] == "CMAU"
    assert [s["record"]["REF"] for s in body["shipments"]] == ["PF-105"]


def test_all_scope_sees_everything(api_client, dataset):
    resp = api_client.get("/shipments", headers=auth("token-ops"))
    body = resp.json()
    assert body["scope"] == "ALL"
    assert body["total"] == len(dataset)
    assert [s["priority"] for s in body["shipments"]] == [1, 2, 3, 4, 5]


def test_unmapped_identity_sees_nothing(api_client):
    body = api_client.get("/shipments", headers=auth("token-nobody")).json()
    assert body["total"] == 0
    assert body["shipments"] == []


def test_documents_for_visible_record(api_client):
    resp = api_client.get("/shipments/PF-102/documents", headers=auth("token-acme"))
    assert resp.status_code == 200

    docs = resp.json()["documents"]
    assert [d["name"] for d in docs] == ["order-confirmation.pdf", "invoice.pdf"]
    assert [d["type"] for d in docs] == ["OrderConfirmation", "ExportDocument"]


def test_documents_outside_scope_are_not_found(api_client):
    resp = api_client.get("/shipments/MAEU3333333/documents", headers=auth("token-acme"))
    assert resp.status_code == 404


def test_signout_drops_session(api_client, registry, identity_provider):
    api_client.get("/shipments", headers=auth("token-acme"))
    assert len(registry) == 1

    resp = api_client.post("/auth/signout", headers=auth("token-acme"))
    assert resp.status_code == 200
    assert identity_provider.signed_out == ["token-acme"]
    assert len(registry) == 0


def test_documents_for_key_with_slash(api_client, dataset, mock_supabase):
    dataset.append({"REF": "PF/2041", "CONSIGNEE": "Acme Ltd", "STATUS": "Planned"})

    resp = api_client.get("/shipments/PF/2041/documents", headers=auth("token-acme"))
    assert resp.status_code == 200
    assert resp.json()["key"] == "PF/2041"
    mock_supabase.storage.from_.return_value.list.assert_called_with("documents/PF/2041")


@pytest.mark.asyncio
async def test_superseded_document_request_conflicts(dataset, scope_map, identity_provider):
    resolver = GatedResolver()
    registry = SessionRegistry(FakeSource(scope_map), FakeSource(dataset), resolver)
    app.dependency_overrides[get_registry] = lambda: registry
    app.dependency_overrides[get_identity_provider] = lambda: identity_provider

    try:
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://portal.test") as client:
            older = asyncio.create_task(client.get("/shipments/PF-101/documents", headers=auth("token-acme")))
            await resolver.started_event("PF-101").wait()
            newer = asyncio.create_task(client.get("/shipments/PF-105/documents", headers=auth("token-acme")))
            await resolver.started_event("PF-105").wait()

            resolver.gate("PF-105").set()
            newer_resp = await newer
            resolver.gate("PF-101").set()
            older_resp = await older
    finally:
        app.dependency_overrides.clear()

    assert newer_resp.status_code == 200
    assert [d["name"] for d in newer_resp.json()["documents"]] == ["PF-105.pdf"]
    assert older_resp.status_code == 409
