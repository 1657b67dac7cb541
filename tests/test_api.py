from __future__ import annotations

from fastapi.testclient import TestClient

from shopcrawl.adapters.base import ProductRecord
from shopcrawl.apis import app as api
from shopcrawl.engines.base import CrawlReport, SeedError
from shopcrawl.engines.runner import RunSummary

client = TestClient(api.app)


def test_health() -> None:
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_crawl_returns_records(monkeypatch) -> None:
    seen = {}

    async def fake_crawl_sites(cfg, registry=None, exporter=None):
        seen["cfg"] = cfg
        seen["exporter"] = exporter
        report = CrawlReport(
            site="Flipkart",
            records=[ProductRecord(site="Flipkart", title="Phone A", price="₹9,999", url="https://x/p/1")],
        )
        return RunSummary(reports=[report])

    monkeypatch.setattr(api, "crawl_sites", fake_crawl_sites)

    response = client.post("/crawl", json={"query": "laptop", "max_products": 1, "sites": ["flipkart"]})

    assert response.status_code == 200
    body = response.json()
    assert body["sites"] == ["Flipkart"]
    assert body["saved"] == 1
    assert body["records"][0]["title"] == "Phone A"
    assert seen["cfg"].query == "laptop"
    assert seen["exporter"] is None


def test_crawl_rejects_bad_input(monkeypatch) -> None:
    assert client.post("/crawl", json={"max_products": 0}).status_code == 422
    assert client.post("/crawl", json={"dedup_policy": "random"}).status_code == 422


def test_crawl_seed_failure_maps_to_bad_gateway(monkeypatch) -> None:
    async def failing(cfg, registry=None, exporter=None):
        raise SeedError("browser missing")

    monkeypatch.setattr(api, "crawl_sites", failing)
    response = client.post("/crawl", json={"sites": ["amazon"]})
    assert response.status_code == 502
