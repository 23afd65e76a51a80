"""API tests for the experience data endpoints."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from app.main import create_app
from app.routers import experience_data
from app.services.access import AccessLevel, HostAccessResolver, StaticAccessResolver
from app.services.playlist_defaults import DEFAULT_TITLE, default_playlist
from app.services.storage_client import StorageError


def _client(storage, level: AccessLevel) -> TestClient:
    app = create_app()
    app.dependency_overrides[experience_data.get_storage] = lambda: storage
    app.dependency_overrides[experience_data.get_access_resolver] = lambda: StaticAccessResolver(level)
    return TestClient(app)


def _payload(title: str = "Team videos") -> dict:
    document = default_playlist().to_document()
    document["title"] = title
    return document


@pytest.fixture
def admin(storage) -> TestClient:
    return _client(storage, AccessLevel.ADMIN)


@pytest.fixture
def customer(storage) -> TestClient:
    return _client(storage, AccessLevel.CUSTOMER)


def test_get_requires_experience_id(admin: TestClient) -> None:
    response = admin.get("/experience-data")
    assert response.status_code == 400
    assert response.json()["detail"] == "Experience ID is required"


def test_get_denies_callers_without_access(storage) -> None:
    response = _client(storage, AccessLevel.NO_ACCESS).get("/experience-data", params={"experienceId": "exp_1"})
    assert response.status_code == 403


def test_get_returns_defaults_when_nothing_stored(customer: TestClient) -> None:
    response = customer.get("/experience-data", params={"experienceId": "exp_1"})

    assert response.status_code == 200
    body = response.json()
    assert body["title"] == DEFAULT_TITLE
    assert len(body["videos"]) == 3
    assert "createdAt" in body["videos"][0]


def test_get_returns_stored_document(storage, customer: TestClient) -> None:
    storage.documents["exp_1"] = _payload("Stored")
    response = customer.get("/experience-data", params={"experienceId": "exp_1"})
    assert response.json()["title"] == "Stored"


@pytest.mark.parametrize("problem", ["unconfigured", "failure", "invalid"])
def test_get_falls_back_to_defaults_on_storage_problems(storage, customer: TestClient, problem: str) -> None:
    if problem == "unconfigured":
        storage.configured = False
    elif problem == "failure":
        storage.fail_reads = StorageError("Failed to retrieve data: 503", status_code=503)
    else:
        storage.documents["exp_1"] = {"title": "Broken", "videos": "nope"}

    response = customer.get("/experience-data", params={"experienceId": "exp_1"})

    assert response.status_code == 200
    assert response.json()["title"] == DEFAULT_TITLE


def test_put_by_non_admin_is_rejected_and_storage_untouched(storage, customer: TestClient) -> None:
    storage.documents["exp_1"] = _payload("Original")

    response = customer.put("/experience-data", params={"experienceId": "exp_1"}, json=_payload("Hijacked"))

    assert response.status_code == 403
    assert response.json()["detail"] == "Admin access required"
    assert storage.documents["exp_1"]["title"] == "Original"
    assert storage.writes == []


def test_put_by_admin_replaces_document(storage, admin: TestClient) -> None:
    response = admin.put("/experience-data", params={"experienceId": "exp_1"}, json=_payload("Updated"))

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["data"]["title"] == "Updated"
    assert storage.documents["exp_1"]["title"] == "Updated"


def test_put_requires_experience_id(admin: TestClient) -> None:
    assert admin.put("/experience-data", json=_payload()).status_code == 400


def test_put_rejects_duplicate_video_ids(admin: TestClient) -> None:
    payload = _payload()
    payload["videos"][1]["id"] = payload["videos"][0]["id"]
    assert admin.put("/experience-data", params={"experienceId": "exp_1"}, json=payload).status_code == 422


def test_put_reports_unconfigured_storage(storage, admin: TestClient) -> None:
    storage.configured = False
    response = admin.put("/experience-data", params={"experienceId": "exp_1"}, json=_payload())
    assert response.status_code == 500
    assert response.json()["detail"] == "Storage not configured"


def test_put_reports_write_failure(storage, admin: TestClient) -> None:
    storage.fail_writes = StorageError("Failed to save data: 500", status_code=500)
    response = admin.put("/experience-data", params={"experienceId": "exp_1"}, json=_payload())
    assert response.status_code == 500
    assert response.json()["detail"] == "Failed to save data"


def test_admin_lists_and_deletes_documents(storage, admin: TestClient) -> None:
    storage.documents["exp_1"] = _payload()
    storage.documents["exp_2"] = _payload()

    listing = admin.get("/experience-data/admin", params={"experienceId": "exp_1"})
    assert listing.status_code == 200
    assert listing.json()["files"] == ["experience-exp_1.json", "experience-exp_2.json"]
    assert listing.json()["message"] == "Found 2 stored experience files"

    deleted = admin.delete("/experience-data/admin", params={"experienceId": "exp_1"})
    assert deleted.status_code == 200
    assert deleted.json()["success"] is True
    assert "exp_1" not in storage.documents

    again = admin.delete("/experience-data/admin", params={"experienceId": "exp_1"})
    assert again.status_code == 500


def test_admin_endpoints_reject_customers(customer: TestClient) -> None:
    params = {"experienceId": "exp_1"}
    assert customer.get("/experience-data/admin", params=params).status_code == 403
    assert customer.delete("/experience-data/admin", params=params).status_code == 403


def test_admin_endpoints_require_experience_id(admin: TestClient) -> None:
    assert admin.get("/experience-data/admin").status_code == 400
    assert admin.delete("/experience-data/admin").status_code == 400


def test_unverifiable_identity_is_denied(storage) -> None:
    app = create_app()
    app.dependency_overrides[experience_data.get_storage] = lambda: storage
    app.dependency_overrides[experience_data.get_access_resolver] = lambda: HostAccessResolver(
        "https://host.example.com/access", token_header="x-whop-user-token"
    )

    response = TestClient(app).get("/experience-data", params={"experienceId": "exp_1"})

    assert response.status_code == 403


def test_experience_page_renders_playlist(storage, customer: TestClient) -> None:
    response = customer.get("/experiences/exp_1", params={"video": "2"})

    assert response.status_code == 200
    assert "text/html" in response.headers["content-type"]
    assert DEFAULT_TITLE in response.text
    assert 'src="https://www.youtube.com/embed/DGQwd1_Apzc"' in response.text


def test_healthcheck(customer: TestClient) -> None:
    assert customer.get("/healthz").json() == {"status": "ok"}


@pytest.mark.parametrize(
    "url",
    ["javascript:alert(document.cookie)", "https://vimeo.com/123", "https://www.youtube.com/watch?v=abc123"],
)
def test_put_rejects_non_embed_urls(storage, admin: TestClient, url: str) -> None:
    payload = _payload()
    payload["videos"][0]["url"] = url

    response = admin.put("/experience-data", params={"experienceId": "exp_1"}, json=payload)

    assert response.status_code == 422
    assert storage.writes == []


def test_experience_page_never_renders_stored_script_url(storage, customer: TestClient) -> None:
    payload = _payload("Tampered")
    payload["videos"][0]["url"] = "javascript:alert(document.cookie)"
    storage.documents["exp_1"] = payload

    response = customer.get("/experiences/exp_1")

    assert response.status_code == 200
    assert "javascript:" not in response.text
    assert DEFAULT_TITLE in response.text
