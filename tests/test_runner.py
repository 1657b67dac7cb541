from __future__ import annotations

import asyncio
import csv
import re

import pytest

from conftest import SEARCH_URL, listing_html, product_html
from shopcrawl.adapters.base import PageKind
from shopcrawl.config import CrawlConfig
from shopcrawl.engines.base import SeedError
from shopcrawl.engines.runner import build_exporter, build_registry, crawl_sites

BASE = "https://www.flipkart.com"


def serve_two_phones(web) -> None:
    web.pages[SEARCH_URL] = listing_html(["/phone-a/p/itm1", "/phone-b/p/itm2", "/phone-c/p/itm3"])
    web.pages[f"{BASE}/phone-a/p/itm1"] = product_html("Phone A", "₹9,999")
    web.pages[f"{BASE}/phone-b/p/itm2"] = product_html("Phone B", "₹14,500")
    web.pages[f"{BASE}/phone-c/p/itm3"] = product_html("Phone C", "₹19,000")


def read_rows(path):
    with open(path, newline="", encoding="utf-8") as f:
        return list(csv.DictReader(f))


def make_config(tmp_path, **overrides) -> CrawlConfig:
    cfg = CrawlConfig(query="mobile", max_products=2, sites=["flipkart"], output_path=str(tmp_path / "products.csv"))
    for key, value in overrides.items():
        setattr(cfg, key, value)
    cfg.validate()
    return cfg


def run(cfg: CrawlConfig):
    return asyncio.run(crawl_sites(cfg, registry=build_registry(cfg), exporter=build_exporter(cfg)))


def test_end_to_end_two_products_to_csv(web, tmp_path) -> None:
    serve_two_phones(web)
    cfg = make_config(tmp_path)

    summary = run(cfg)

    rows = read_rows(cfg.output_path)
    assert len(rows) == 2
    assert list(rows[0]) == ["site", "title", "price", "url"]
    assert [(r["title"], r["price"]) for r in rows] == [(r.title, r.price) for r in summary.records]
    assert {(r["title"], r["price"]) for r in rows} == {("Phone A", "₹9,999"), ("Phone B", "₹14,500")}
    assert {r["site"] for r in rows} == {"Flipkart"}
    assert summary.sites == ["Flipkart"]
    assert summary.total_saved == 2


def test_overwrite_mode_replaces_stale_file(web, tmp_path) -> None:
    serve_two_phones(web)
    cfg = make_config(tmp_path)
    with open(cfg.output_path, "w", encoding="utf-8") as f:
        f.write("site,title,price,url\nOld,Stale,₹1,https://old.example\n")

    run(cfg)

    assert "Stale" not in {r["title"] for r in read_rows(cfg.output_path)}
    assert len(read_rows(cfg.output_path)) == 2


def test_append_mode_keeps_existing_rows(web, tmp_path) -> None:
    serve_two_phones(web)
    cfg = make_config(tmp_path, write_mode="append")
    with open(cfg.output_path, "w", encoding="utf-8") as f:
        f.write("site,title,price,url\nOld,Kept,₹1,https://old.example\n")

    run(cfg)

    rows = read_rows(cfg.output_path)
    assert [r["title"] for r in rows][0] == "Kept"
    assert len(rows) == 3


@pytest.mark.parametrize("write_mode", ["overwrite", "append"])
def test_incremental_persistence_writes_each_record(web, tmp_path, write_mode) -> None:
    serve_two_phones(web)
    cfg = make_config(tmp_path, persist="incremental", write_mode=write_mode, extended_columns=True)

    run(cfg)

    rows = read_rows(cfg.output_path)
    assert len(rows) == 2
    assert set(rows[0]) == {"site", "title", "price", "url", "rating", "description", "fetched_at"}
    assert all(r["fetched_at"] for r in rows)


def test_sites_run_in_order_and_export_sequentially(web, tmp_path, monkeypatch) -> None:
    serve_two_phones(web)

    class SecondShop:
        name = "second"
        label = "Second"
        base_url = "https://second.example"
        engine = "shopcrawl.engines.simple_engine:SimpleCrawlEngine"
        product_link_pattern = re.compile(r"/item/")

        def build_search_url(self, query):
            return f"{self.base_url}/search?q={query}"

        def classify(self, url):
            return PageKind.LISTING if "/search" in url else PageKind.PRODUCT

    web.pages["https://second.example/search?q=mobile"] = listing_html(["/item/1"])
    web.pages["https://second.example/item/1"] = product_html("Other phone", "₹5,000")

    cfg = make_config(tmp_path, sites=["flipkart", "second"])
    registry = build_registry(cfg)
    registry.register(SecondShop())

    summary = asyncio.run(crawl_sites(cfg, registry=registry, exporter=build_exporter(cfg)))

    rows = read_rows(cfg.output_path)
    assert [r["site"] for r in rows] == ["Flipkart", "Flipkart", "Second"]
    assert summary.sites == ["Flipkart", "Second"]


def test_unbuildable_seed_is_fatal(web, tmp_path) -> None:
    class BrokenShop:
        name = "broken"
        label = "Broken"
        base_url = "not a url"
        engine = "shopcrawl.engines.simple_engine:SimpleCrawlEngine"
        product_link_pattern = re.compile(r"/p/")

        def build_search_url(self, query):
            return "ftp://nowhere"

        def classify(self, url):
            raise AssertionError("never fetched")

    cfg = make_config(tmp_path, sites=["broken"])
    registry = build_registry(cfg)
    registry.register(BrokenShop())

    with pytest.raises(SeedError):
        asyncio.run(crawl_sites(cfg, registry=registry))


def test_unknown_site_rejected(tmp_path) -> None:
    cfg = make_config(tmp_path, sites=["nowhere"])
    with pytest.raises(ValueError):
        asyncio.run(crawl_sites(cfg))
