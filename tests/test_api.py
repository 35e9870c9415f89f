from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from grantflow.crawlers import CrawlerManager, WebsiteCrawler
from grantflow.main import create_application

from fakes import FakeExtractor, FakeFetcher, FakeGateway, RecordingCrawler

PAGE_URL = "https://funds.example.org/apply"
LISTING_PAGE = """
<div class="grant-item">
  <h3>Music Teachers Grant</h3>
  <p class="description">Funding for music teachers in public schools.</p>
</div>
"""


@pytest.fixture
def gateway(nonprofit_profile):
    nonprofit_profile["keywords"] = "music"
    return FakeGateway([nonprofit_profile])


@pytest.fixture
def manager(gateway):
    fetcher = FakeFetcher({PAGE_URL: LISTING_PAGE})
    manager = CrawlerManager()
    manager.register(RecordingCrawler(gateway, fetcher))
    manager.register(WebsiteCrawler(gateway, fetcher, FakeExtractor(), request_delay=0))
    return manager


@pytest.fixture
def client(gateway, manager):
    # No context manager: the lifespan (database check) is not run
    app = create_application()
    app.state.gateway = gateway
    app.state.crawler_manager = manager
    return TestClient(app)


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert response.json()["crawlers_registered"] == 2


def test_list_and_status(client):
    assert [c["name"] for c in client.get("/api/v1/crawlers/list").json()] == ["recording", "website"]

    status = client.get("/api/v1/crawlers/status").json()
    assert status[0]["name"] == "recording"
    assert status[0]["status"] == "idle"
    assert status[0]["opportunities_found"] == 0


def test_run_one_crawler(client, manager, nonprofit_profile):
    response = client.post(
        "/api/v1/crawlers/run/recording",
        json={"profile_ids": [nonprofit_profile["id"]]},
    )

    assert response.status_code == 202
    assert response.json()["crawlers"] == ["recording"]
    # Background tasks finish before TestClient returns
    assert manager.get("recording").seen == [nonprofit_profile["id"]]
    assert client.get("/api/v1/crawlers/status").json()[0]["status"] == "completed"


def test_run_unknown_crawler(client):
    response = client.post("/api/v1/crawlers/run/nope")
    assert response.status_code == 404
    assert response.json()["error"]["code"] == "CRAWLER_NOT_FOUND"


def test_run_all(client, manager, nonprofit_profile):
    response = client.post("/api/v1/crawlers/run-all")

    assert response.status_code == 202
    assert response.json()["crawlers"] == ["recording", "website"]
    assert manager.get("recording").seen == [nonprofit_profile["id"]]


def test_run_for_profile(client, manager, nonprofit_profile):
    response = client.post(
        f"/api/v1/crawlers/run-for-profile/{nonprofit_profile['id']}",
        json={"crawlers": ["recording", "nope"]},
    )

    assert response.status_code == 202
    body = response.json()
    assert body["crawlers"] == ["recording"]
    assert body["profile_ids"] == [nonprofit_profile["id"]]
    assert manager.get("recording").seen == [nonprofit_profile["id"]]


def test_run_for_unknown_profile(client):
    response = client.post(f"/api/v1/crawlers/run-for-profile/{uuid4()}")
    assert response.status_code == 404
    assert response.json()["error"]["code"] == "ENTITY_NOT_FOUND"


def test_crawl_url_without_profile(client, gateway):
    response = client.post("/api/v1/crawlers/crawl-url", json={"url": PAGE_URL})

    assert response.status_code == 200
    body = response.json()
    assert body["opportunities_found"] == 1
    assert body["opportunities"][0]["title"] == "Music Teachers Grant"
    assert len(gateway.opportunities) == 1
    assert gateway.matches == {}


def test_crawl_url_for_profile_records_match(client, gateway, nonprofit_profile):
    response = client.post(
        "/api/v1/crawlers/crawl-url",
        json={"url": PAGE_URL, "profile_id": nonprofit_profile["id"]},
    )
    assert response.status_code == 200

    matches = client.get(f"/api/v1/crawlers/matches/{nonprofit_profile['id']}").json()
    assert len(matches) == 1
    assert matches[0]["title"] == "Music Teachers Grant"
    assert matches[0]["category"] == "custom"
    assert matches[0]["reasons"] == ["Keyword matches: music"]


def test_crawl_url_with_unknown_profile_saves_unscored(client, gateway):
    response = client.post("/api/v1/crawlers/crawl-url", json={"url": PAGE_URL, "profile_id": str(uuid4())})

    assert response.status_code == 200
    assert len(gateway.opportunities) == 1
    assert gateway.matches == {}


def test_crawl_url_rejects_non_http_urls(client):
    response = client.post("/api/v1/crawlers/crawl-url", json={"url": "ftp://funds.example.org"})
    assert response.status_code == 422


def test_crawl_url_fetch_failure(client):
    response = client.post("/api/v1/crawlers/crawl-url", json={"url": "https://unreachable.example.org"})
    assert response.status_code == 500
    assert response.json()["error"]["code"] == "FETCH_ERROR"


def test_stats(client):
    client.post("/api/v1/crawlers/crawl-url", json={"url": PAGE_URL})

    stats = client.get("/api/v1/crawlers/stats").json()

    assert stats["total_opportunities"] == 1
    assert stats["by_source"] == {"website": 1}
    assert stats["total_matches"] == 0
    assert [c["name"] for c in stats["crawlers"]] == ["recording", "website"]
