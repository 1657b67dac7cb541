from __future__ import annotations

from typing import Any, Dict, List, Optional
import logging

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field

from ..config import CrawlConfig
from ..engines.base import SeedError
from ..engines.runner import RunSummary, build_registry, crawl_sites
from ..version import __version__

logger = logging.getLogger(__name__)

app = FastAPI(title="shopcrawl API", version=__version__)


class CrawlRequest(BaseModel):
    query: str = "mobile"
    max_products: int = Field(default=20, gt=0)
    sites: Optional[List[str]] = None
    dedup: bool = False
    dedup_policy: str = "first"


@app.get("/health")
async def health() -> Dict[str, str]:
    return {"status": "ok"}


@app.post("/crawl")
async def crawl(req: CrawlRequest) -> Dict[str, Any]:
    """Run a crawl and return the saved records; nothing is written to disk."""
    cfg = CrawlConfig.from_env()
    cfg.query = req.query
    cfg.max_products = req.max_products
    if req.sites:
        cfg.sites = req.sites
    cfg.dedup = req.dedup
    cfg.dedup_policy = req.dedup_policy

    try:
        cfg.validate()
        registry = build_registry(cfg)
        summary: RunSummary = await crawl_sites(cfg, registry=registry)
    except SeedError as exc:
        logger.error("Crawl could not start: %s", exc)
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc

    return {
        "sites": summary.sites,
        "saved": summary.total_saved,
        "records": [record.to_dict() for record in summary.records],
    }
