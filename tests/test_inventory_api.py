from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace
from typing import Any, List, Optional

import httpx
import openai
from starlette.testclient import TestClient

from inventory_manager.ai import SummaryService
from inventory_manager.api import create_app
from inventory_manager.config import Settings
from inventory_manager.store import ItemStore
from inventory_manager.store.constants import SAMPLE_ITEMS

_OPENAI_URL = "https://api.openai.com/v1/chat/completions"


class _FakeCompletions:
    def __init__(self, *, text: Optional[str] = "- Stock is healthy", error: Optional[BaseException] = None) -> None:
        self.text = text
        self.error = error
        self.calls: List[dict] = []

    def create(self, **kwargs: Any) -> Any:
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        message = SimpleNamespace(content=self.text)
        return SimpleNamespace(id="chatcmpl-test", choices=[SimpleNamespace(message=message)], usage=None)


def _fake_client(completions: _FakeCompletions) -> Any:
    return SimpleNamespace(chat=SimpleNamespace(completions=completions))


def _status_error(cls: type, status: int) -> Exception:
    request = httpx.Request("POST", _OPENAI_URL)
    return cls("upstream error", response=httpx.Response(status, request=request), body=None)


def _client(tmp_path: Path, summarizer: Optional[SummaryService] = None, **kwargs: Any) -> TestClient:
    store = ItemStore(str(tmp_path / "inventory.sqlite3"))
    app = create_app(store, summarizer or SummaryService(None), allow_origins=["*"])
    return TestClient(app, **kwargs)


def test_create_and_list_example(tmp_path: Path) -> None:
    client = _client(tmp_path)

    created = client.post("/api/products", json={"name": "Apples", "qty": 50})
    assert created.status_code == 201
    body = created.json()
    assert body["id"] == 1
    assert body["name"] == "Apples"
    assert body["qty"] == 50
    assert body["lastUpdated"]

    listed = client.get("/api/products")
    assert listed.status_code == 200
    assert listed.json() == [body]


def test_get_product_by_id(tmp_path: Path) -> None:
    client = _client(tmp_path)
    item_id = client.post("/api/products", json={"name": "Chips", "qty": 75}).json()["id"]

    response = client.get(f"/api/products/{item_id}")
    assert response.status_code == 200
    assert response.json()["name"] == "Chips"

    missing = client.get("/api/products/999")
    assert missing.status_code == 404
    assert missing.json() == {"error": "Product not found"}


def test_non_integer_id_does_not_match_route(tmp_path: Path) -> None:
    client = _client(tmp_path)
    response = client.get("/api/products/abc")
    assert response.status_code == 404
    assert "error" in response.json()


def test_create_validates_input(tmp_path: Path) -> None:
    client = _client(tmp_path)

    for payload in ({"name": "Apples"}, {"qty": 5}, {"name": "", "qty": 5}, {"name": "   ", "qty": 1}):
        response = client.post("/api/products", json=payload)
        assert response.status_code == 400, payload
        assert response.json() == {"error": "Name and quantity are required"}

    bad_qty = client.post("/api/products", json={"name": "Apples", "qty": "lots"})
    assert bad_qty.status_code == 400
    assert bad_qty.json() == {"error": "Quantity must be an integer"}

    not_object = client.post("/api/products", json=["Apples", 5])
    assert not_object.status_code == 400

    malformed = client.post(
        "/api/products",
        content=b"{name: Apples",
        headers={"Content-Type": "application/json"},
    )
    assert malformed.status_code == 400
    assert malformed.json() == {"error": "Request body must be valid JSON"}

    assert client.get("/api/products").json() == []


def test_create_accepts_numeric_string_qty(tmp_path: Path) -> None:
    client = _client(tmp_path)
    response = client.post("/api/products", json={"name": "Bottled Water", "qty": "120"})
    assert response.status_code == 201
    assert response.json()["qty"] == 120


def test_update_product(tmp_path: Path) -> None:
    client = _client(tmp_path)
    original = client.post("/api/products", json={"name": "Apples", "qty": 50}).json()

    response = client.put(f"/api/products/{original['id']}", json={"name": "Green Apples", "qty": 45})
    assert response.status_code == 200
    updated = response.json()
    assert updated["id"] == original["id"]
    assert updated["name"] == "Green Apples"
    assert updated["qty"] == 45
    assert updated["lastUpdated"] >= original["lastUpdated"]


def test_update_errors(tmp_path: Path) -> None:
    client = _client(tmp_path)
    item_id = client.post("/api/products", json={"name": "Apples", "qty": 50}).json()["id"]

    missing = client.put("/api/products/404", json={"name": "Ghost", "qty": 1})
    assert missing.status_code == 404
    assert missing.json() == {"error": "Product not found"}

    invalid = client.put(f"/api/products/{item_id}", json={"name": "Apples"})
    assert invalid.status_code == 400
    assert client.get(f"/api/products/{item_id}").json()["qty"] == 50


def test_delete_product_twice(tmp_path: Path) -> None:
    client = _client(tmp_path)
    item_id = client.post("/api/products", json={"name": "Apples", "qty": 50}).json()["id"]

    first = client.delete(f"/api/products/{item_id}")
    assert first.status_code == 200
    assert first.json() == {"success": True, "message": "Product deleted"}

    second = client.delete(f"/api/products/{item_id}")
    assert second.status_code == 404
    assert second.json() == {"error": "Product not found"}


def test_method_not_allowed_uses_error_body(tmp_path: Path) -> None:
    client = _client(tmp_path)
    response = client.patch("/api/products/1", json={})
    assert response.status_code == 405
    assert "error" in response.json()


def test_storage_failure_maps_to_500(tmp_path: Path) -> None:
    store = ItemStore(str(tmp_path / "inventory.sqlite3"))
    client = TestClient(create_app(store, SummaryService(None), allow_origins=["*"]))
    store.close()

    response = client.get("/api/products")
    assert response.status_code == 500
    assert "error" in response.json()

    health = client.get("/api/health")
    assert health.status_code == 200
    assert health.json()["database"] == "error"


def test_health_reports_database_and_ai_state(tmp_path: Path) -> None:
    disabled = _client(tmp_path).get("/api/health").json()
    assert disabled["status"] == "ok"
    assert disabled["database"] == "connected"
    assert disabled["aiEnabled"] is False
    assert disabled["timestamp"]

    enabled = _client(tmp_path, SummaryService(client=_fake_client(_FakeCompletions()))).get("/api/health").json()
    assert enabled["aiEnabled"] is True


def test_root_lists_endpoints(tmp_path: Path) -> None:
    payload = _client(tmp_path).get("/").json()
    assert payload["endpoints"]["products"] == "/api/products"


def test_ai_requires_notes_regardless_of_credential(tmp_path: Path) -> None:
    completions = _FakeCompletions()
    for summarizer in (SummaryService(None), SummaryService(client=_fake_client(completions))):
        client = _client(tmp_path, summarizer)
        for payload in ({}, {"notes": ""}, {"notes": "   "}, {"notes": 12}):
            response = client.post("/api/ai", json=payload)
            assert response.status_code == 400
            assert response.json() == {"error": "Notes are required for AI analysis"}
    assert completions.calls == []


def test_ai_without_credential_returns_503(tmp_path: Path) -> None:
    response = _client(tmp_path).post("/api/ai", json={"notes": "Chips running low"})
    assert response.status_code == 503
    body = response.json()
    assert body["error"] == "AI service unavailable"
    assert "OPENAI_API_KEY" in body["message"]


def test_ai_returns_generated_text_verbatim(tmp_path: Path) -> None:
    completions = _FakeCompletions(text="* Summary\n* Reorder chips")
    client = _client(tmp_path, SummaryService(client=_fake_client(completions)))

    response = client.post("/api/ai", json={"notes": "Chips running low"})

    assert response.status_code == 200
    assert response.json() == {"analysis": "* Summary\n* Reorder chips"}
    assert len(completions.calls) == 1


def test_ai_upstream_errors_are_mapped(tmp_path: Path) -> None:
    cases = [
        (_status_error(openai.RateLimitError, 429), 429, "Rate limit"),
        (_status_error(openai.AuthenticationError, 401), 500, "misconfigured"),
        (_status_error(openai.InternalServerError, 502), 500, "AI analysis failed"),
        (openai.APIConnectionError(request=httpx.Request("POST", _OPENAI_URL)), 500, "AI analysis failed"),
    ]
    for error, status, fragment in cases:
        completions = _FakeCompletions(error=error)
        client = _client(tmp_path, SummaryService(client=_fake_client(completions)))

        response = client.post("/api/ai", json={"notes": "Water stock"})

        assert response.status_code == status, error
        assert fragment in response.json()["error"]
        assert len(completions.calls) == 1


def test_unexpected_errors_become_500(tmp_path: Path) -> None:
    completions = _FakeCompletions(error=RuntimeError("boom"))
    client = _client(tmp_path, SummaryService(client=_fake_client(completions)), raise_server_exceptions=False)

    response = client.post("/api/ai", json={"notes": "anything"})

    assert response.status_code == 500
    assert response.json() == {"error": "Internal server error"}


def test_app_built_from_settings_bootstraps_sample_data(tmp_path: Path) -> None:
    settings = Settings(db_path=str(tmp_path / "var" / "inventory.sqlite3"))
    with TestClient(create_app(settings=settings)) as client:
        items = client.get("/api/products").json()
        assert sorted(i["name"] for i in items) == sorted(name for name, _ in SAMPLE_ITEMS)
        assert client.get("/api/health").json()["aiEnabled"] is False


def test_cors_headers_present(tmp_path: Path) -> None:
    client = _client(tmp_path)
    response = client.get("/api/products", headers={"Origin": "http://example.com"})
    assert response.headers["access-control-allow-origin"] == "*"


def test_oversized_qty_is_rejected(tmp_path: Path) -> None:
    client = _client(tmp_path)
    item_id = client.post("/api/products", json={"name": "Apples", "qty": 50}).json()["id"]

    for qty in (10**20, "99999999999999999999", -(2**63) - 1):
        created = client.post("/api/products", json={"name": "X", "qty": qty})
        assert created.status_code == 400, qty
        assert created.json() == {"error": "Quantity must be an integer"}

        updated = client.put(f"/api/products/{item_id}", json={"name": "X", "qty": qty})
        assert updated.status_code == 400, qty

    assert client.get(f"/api/products/{item_id}").json()["qty"] == 50
    assert len(client.get("/api/products").json()) == 1


def test_ids_beyond_sqlite_integer_are_not_found(tmp_path: Path) -> None:
    client = _client(tmp_path)
    path = "/api/products/99999999999999999999"

    responses = [
        client.get(path),
        client.put(path, json={"name": "Ghost", "qty": 1}),
        client.delete(path),
    ]

    for response in responses:
        assert response.status_code == 404
        assert response.json() == {"error": "Product not found"}
