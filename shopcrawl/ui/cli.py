from __future__ import annotations

import argparse
import asyncio
import logging
from typing import List

from ..config import CrawlConfig, DEDUP_POLICIES, PERSIST_MODES, WRITE_MODES
from ..utils.logging import setup_logging
from ..engines.base import SeedError
from ..engines.runner import RunSummary, build_exporter, build_registry, crawl_sites

logger = logging.getLogger(__name__)

_EXPORTERS = {
    "csv": "shopcrawl.export.csv_exporter:CSVExporter",
    "json": "shopcrawl.export.json_exporter:JSONExporter",
}


def build_arg_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Crawl e-commerce search results into a product table")
    p.add_argument("query", nargs="?", default=None, help="Search query (default from config: 'mobile')")
    p.add_argument("max_products", nargs="?", type=int, default=None,
                   help="Stop each site after this many saved products (default from config)")
    p.add_argument("--config", type=str, help="Path to config JSON", default=None)
    p.add_argument("--sites", type=str, default=None, help="Comma-separated site names, crawled in order")
    p.add_argument("--max-concurrency", type=int, default=None, help="Pages handled at once per site")
    p.add_argument("--timeout", type=float, default=None, help="Per-request timeout in seconds")
    p.add_argument("--output", type=str, default=None, help="Output file path")
    p.add_argument("--format", choices=sorted(_EXPORTERS), default=None, help="Output format")
    p.add_argument("--exporter", type=str, default=None, help="Exporter dotted path (module:ClassName)")
    p.add_argument("--write-mode", choices=WRITE_MODES, default=None,
                   help="Overwrite the output file or append to it")
    p.add_argument("--persist", choices=PERSIST_MODES, default=None,
                   help="Write after each site (bulk) or after each saved product (incremental)")
    p.add_argument("--dedup", action="store_true", default=None, help="Drop products whose title was already saved")
    p.add_argument("--dedup-policy", choices=DEDUP_POLICIES, default=None,
                   help="Which duplicate to keep when --dedup is on")
    p.add_argument("--extended-columns", action="store_true", default=None,
                   help="Also write rating, description and fetched_at")
    p.add_argument("--no-pagination", action="store_true", help="Never follow 'next page' links")
    p.add_argument("--extra-adapters", type=str, default=None,
                   help="Comma-separated dotted paths for additional adapters")
    p.add_argument("--log-level", type=str, default=None, help="Log level (DEBUG, INFO, WARNING, ERROR)")
    p.add_argument("--serve", action="store_true", help="Run REST API server instead of CLI crawl")
    p.add_argument("--host", type=str, default="127.0.0.1", help="API host (when --serve)")
    p.add_argument("--port", type=int, default=8000, help="API port (when --serve)")
    return p


def _load_config(args: argparse.Namespace) -> CrawlConfig:
    if args.config:
        cfg = CrawlConfig.from_file(args.config)
    else:
        cfg = CrawlConfig.from_env()

    if args.query:
        cfg.query = args.query
    if args.max_products is not None:
        cfg.max_products = args.max_products
    if args.sites:
        cfg.sites = [s.strip() for s in args.sites.split(",") if s.strip()]
    if args.max_concurrency is not None:
        cfg.max_concurrency = args.max_concurrency
    if args.timeout is not None:
        cfg.request_timeout = args.timeout
    if args.output:
        cfg.output_path = args.output
    if args.format:
        cfg.exporter = _EXPORTERS[args.format]
    if args.exporter:
        cfg.exporter = args.exporter
    if args.write_mode:
        cfg.write_mode = args.write_mode
    if args.persist:
        cfg.persist = args.persist
    if args.dedup:
        cfg.dedup = True
    if args.dedup_policy:
        cfg.dedup_policy = args.dedup_policy
    if args.extended_columns:
        cfg.extended_columns = True
    if args.no_pagination:
        cfg.follow_pagination = False
    if args.extra_adapters:
        cfg.extra_adapters = [a.strip() for a in args.extra_adapters.split(",") if a.strip()]

    cfg.validate()
    return cfg


def run_server(host: str, port: int) -> None:
    import uvicorn

    uvicorn.run("shopcrawl.apis.app:app", host=host, port=port)


def run_cli(argv: List[str] | None = None) -> int:
    args = build_arg_parser().parse_args(argv)
    setup_logging(args.log_level)

    if args.serve:
        run_server(args.host, args.port)
        return 0

    try:
        cfg = _load_config(args)
        registry = build_registry(cfg)
        exporter = build_exporter(cfg)

        logger.info("Starting scrapers for: %s", cfg.query)
        summary: RunSummary = asyncio.run(crawl_sites(cfg, registry=registry, exporter=exporter))
    except SeedError as exc:
        logger.error("Crawl could not start: %s", exc)
        return 1
    except ValueError as exc:
        logger.error("Invalid configuration: %s", exc)
        return 2

    logger.info("Sites crawled: %s | Records saved: %s | Output: %s",
                ", ".join(summary.sites),
                summary.total_saved,
                cfg.output_path)
    return 0
