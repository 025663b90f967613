import pytest
import responses
from fastapi.testclient import TestClient

from catalog_sync.api.app import create_app
from catalog_sync.config.database_settings import DatabaseSettings
from catalog_sync.config.provider_settings import AdminSettings, FlixcdnSettings, VideoseedSettings
from catalog_sync.persistence.stores.catalog import CatalogStore
from catalog_sync.pipeline.sources import build_sources

from conftest import flixcdn_item

FLIXCDN = "https://flixcdn.test"
VIDEOSEED = "https://videoseed.test/apiv2.php"
SECRET = "s3cret"
AUTH = {"Authorization": f"Bearer {SECRET}"}


def source_factory(provider, kind):
    return build_sources(
        provider,
        kind=kind,
        flixcdn_settings=FlixcdnSettings(flixcdn_token="tok", flixcdn_api_base=FLIXCDN),
        videoseed_settings=VideoseedSettings(videoseed_token="tok", videoseed_api_base=VIDEOSEED),
    )


def make_client(tmp_path, *, secret=SECRET, database=True):
    url = f"sqlite:///{tmp_path / 'api.db'}" if database else None
    app = create_app(
        database_settings=DatabaseSettings(database_url=url),
        admin_settings=AdminSettings(admin_sync_token=secret),
        source_factory=source_factory,
    )
    return TestClient(app)


# --- FIXTURES ---
@pytest.fixture
def client(tmp_path):
    return make_client(tmp_path)


# --- 1. POSITIVE TESTING (The Contract) ---
@responses.activate
def test_recent_sync_returns_summary(client):
    responses.add(
        responses.GET,
        f"{FLIXCDN}/api/updates",
        json={"result": [flixcdn_item(1), flixcdn_item(2)], "next": None},
    )

    res = client.get("/admin/sync", params={"mode": "recent", "pages": "3", "limit": "50"}, headers=AUTH)

    assert res.status_code == 200
    body = res.json()
    assert body["success"] is True
    assert body["provider"] == "flixcdn"
    assert body["mode"] == "recent"
    assert (body["scanned"], body["upserted"], body["nextCursor"], body["done"]) == (2, 2, None, True)

    with client.app.state.app_state.db().get_session() as session:
        assert CatalogStore(session, "flixcdn").count() == 2


@responses.activate
def test_query_token_is_accepted_and_params_are_clamped(client):
    responses.add(
        responses.GET,
        f"{FLIXCDN}/api/search",
        json={"result": [flixcdn_item(i) for i in range(1, 51)], "next": {"offset": 50, "limit": 50}},
    )

    res = client.get("/admin/sync", params={"token": SECRET, "mode": "full", "pages": "0", "limit": "500"})

    assert res.status_code == 200
    body = res.json()
    assert body["pages"] == 1
    assert body["limit"] == 50
    assert body["nextCursor"] == 50
    assert body["done"] is False
    assert "limit=50" in responses.calls[0].request.url


@responses.activate
def test_videoseed_all_kinds_report_per_kind_results(client):
    responses.add(responses.GET, VIDEOSEED, json={"status": "success", "data": [{"id": 1, "name": "A"}]})
    responses.add(responses.GET, VIDEOSEED, json={"status": "success", "data": [{"id": 2, "name": "B"}]})

    res = client.get("/admin/sync", params={"provider": "videoseed", "kind": "all"}, headers=AUTH)

    assert res.status_code == 200
    body = res.json()
    assert [r["kind"] for r in body["results"]] == ["movie", "serial"]
    assert body["scanned"] == 2
    assert body["done"] is True


# --- 2. NEGATIVE TESTING (The Fragility) ---
def test_wrong_token_is_401(client):
    res = client.get("/admin/sync", headers={"Authorization": "Bearer nope"})

    assert res.status_code == 401
    assert res.json() == {"success": False, "message": "Unauthorized"}


def test_missing_secret_is_500(tmp_path):
    res = make_client(tmp_path, secret=None).get("/admin/sync", headers=AUTH)

    assert res.status_code == 500
    assert res.json()["message"] == "Missing env: ADMIN_SYNC_TOKEN"


def test_missing_database_is_500(tmp_path):
    res = make_client(tmp_path, database=False).get("/admin/sync", headers=AUTH)

    assert res.status_code == 500
    assert res.json()["message"] == "Missing env: DATABASE_URL"


@responses.activate
def test_upstream_failure_is_502(client):
    responses.add(responses.GET, f"{FLIXCDN}/api/updates", body="Forbidden", status=403)

    res = client.get("/admin/sync", headers=AUTH)

    assert res.status_code == 502
    assert res.json()["message"].startswith("Sync error: FlixCDN API error 403")


def test_unknown_provider_is_400(client):
    res = client.get("/admin/sync", params={"provider": "kodik"}, headers=AUTH)

    assert res.status_code == 400


# --- 3. EMBEDS ---
@responses.activate
def test_embed_lookup_after_sync(client):
    responses.add(
        responses.GET,
        f"{FLIXCDN}/api/updates",
        json={"result": [flixcdn_item(3, quality="720p")], "next": None},
    )
    client.get("/admin/sync", headers=AUTH)

    res = client.get("/embeds/1003")

    assert res.status_code == 200
    body = res.json()
    assert body["kpId"] == 1003
    assert body["best"]["embed_url"] == "https://player.flixcdn.test/embed/3"
    assert body["best"]["quality_score"] == 720

    assert client.get("/embeds/999999").status_code == 404
