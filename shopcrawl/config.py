from __future__ import annotations

from dataclasses import dataclass, field, asdict
from typing import List, Dict, Any
import os
import json

from .version import __version__, CONFIG_SCHEMA_VERSION

WRITE_MODES = ("overwrite", "append")
PERSIST_MODES = ("bulk", "incremental")
DEDUP_POLICIES = ("first", "last")

BASE_COLUMNS = ["site", "title", "price", "url"]
EXTENDED_COLUMNS = ["rating", "description", "fetched_at"]


@dataclass
class CrawlConfig:
    """
    Canonical configuration object passed throughout the system.
    Keep it dataclass-only (no heavy deps) so every layer can import it.
    """
    schema_version: int = CONFIG_SCHEMA_VERSION
    query: str = "mobile"
    max_products: int = 20
    # Site adapter names, crawled in this order
    sites: List[str] = field(default_factory=lambda: ["flipkart", "amazon"])
    max_concurrency: int = 2
    request_timeout: float = 30.0
    retries: int = 2
    max_requests_per_crawl: int = 100
    user_agent: str = f"shopcrawl/{__version__}"
    currency_symbol: str = "₹"
    follow_pagination: bool = True
    headless: bool = True
    # Dotted path for the exporter to allow runtime swapping without code changes.
    exporter: str = "shopcrawl.export.csv_exporter:CSVExporter"
    # Extra adapters (dotted class paths) to register at startup
    extra_adapters: List[str] = field(default_factory=list)
    # Where and how to write results
    output_path: str = "output/products.csv"
    write_mode: str = "overwrite"
    persist: str = "bulk"
    dedup: bool = False
    dedup_policy: str = "first"
    extended_columns: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @property
    def columns(self) -> List[str]:
        if self.extended_columns:
            return BASE_COLUMNS + EXTENDED_COLUMNS
        return list(BASE_COLUMNS)

    # ---------- Loaders ----------

    @classmethod
    def from_env(cls) -> "CrawlConfig":
        """
        Build config from environment variables (all optional).
        """
        def _get(name: str, default: str) -> str:
            return os.getenv(name, default)

        def _flag(name: str, default: bool) -> bool:
            raw = os.getenv(name)
            if raw is None:
                return default
            return raw.strip().lower() in ("1", "true", "yes", "on")

        defaults = cls()
        sites = [s.strip() for s in _get("SHOPCRAWL_SITES", "").split(",") if s.strip()]

        return cls(
            query=_get("SHOPCRAWL_QUERY", defaults.query),
            max_products=int(_get("SHOPCRAWL_MAX_PRODUCTS", str(defaults.max_products))),
            sites=sites or defaults.sites,
            max_concurrency=int(_get("SHOPCRAWL_MAX_CONCURRENCY", str(defaults.max_concurrency))),
            request_timeout=float(_get("SHOPCRAWL_REQUEST_TIMEOUT", str(defaults.request_timeout))),
            retries=int(_get("SHOPCRAWL_RETRIES", str(defaults.retries))),
            max_requests_per_crawl=int(
                _get("SHOPCRAWL_MAX_REQUESTS_PER_CRAWL", str(defaults.max_requests_per_crawl))
            ),
            user_agent=_get("SHOPCRAWL_USER_AGENT", defaults.user_agent),
            currency_symbol=_get("SHOPCRAWL_CURRENCY_SYMBOL", defaults.currency_symbol),
            follow_pagination=_flag("SHOPCRAWL_FOLLOW_PAGINATION", defaults.follow_pagination),
            headless=_flag("SHOPCRAWL_HEADLESS", defaults.headless),
            exporter=_get("SHOPCRAWL_EXPORTER", defaults.exporter),
            extra_adapters=[a.strip() for a in _get("SHOPCRAWL_EXTRA_ADAPTERS", "").split(",") if a.strip()],
            output_path=_get("SHOPCRAWL_OUTPUT_PATH", defaults.output_path),
            write_mode=_get("SHOPCRAWL_WRITE_MODE", defaults.write_mode),
            persist=_get("SHOPCRAWL_PERSIST", defaults.persist),
            dedup=_flag("SHOPCRAWL_DEDUP", defaults.dedup),
            dedup_policy=_get("SHOPCRAWL_DEDUP_POLICY", defaults.dedup_policy),
            extended_columns=_flag("SHOPCRAWL_EXTENDED_COLUMNS", defaults.extended_columns),
        )

    @classmethod
    def from_file(cls, path: str | os.PathLike[str]) -> "CrawlConfig":
        """
        Load configuration from a JSON file. Older schema versions are migrated first.
        """
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        data = migrate_config(data)
        return cls(**data)

    # ---------- Validation ----------

    def validate(self) -> None:
        if not self.query.strip():
            raise ValueError("query cannot be empty.")
        if self.max_products <= 0:
            raise ValueError("max_products must be > 0")
        if not self.sites:
            raise ValueError("sites cannot be empty; provide at least one site adapter name.")
        if self.max_concurrency <= 0:
            raise ValueError("max_concurrency must be > 0")
        if self.request_timeout <= 0:
            raise ValueError("request_timeout must be > 0")
        if self.max_requests_per_crawl <= 0:
            raise ValueError("max_requests_per_crawl must be > 0")
        if self.write_mode not in WRITE_MODES:
            raise ValueError(f"write_mode must be one of {WRITE_MODES}, got {self.write_mode!r}")
        if self.persist not in PERSIST_MODES:
            raise ValueError(f"persist must be one of {PERSIST_MODES}, got {self.persist!r}")
        if self.dedup_policy not in DEDUP_POLICIES:
            raise ValueError(f"dedup_policy must be one of {DEDUP_POLICIES}, got {self.dedup_policy!r}")
        # Rows already on disk cannot be replaced by a later duplicate.
        if self.persist == "incremental" and self.dedup and self.dedup_policy == "last":
            raise ValueError("incremental persistence cannot be combined with dedup_policy='last'")
        if not self.output_path.strip():
            raise ValueError("output_path cannot be empty")


def migrate_config(raw: Dict[str, Any]) -> Dict[str, Any]:
    """
    Migrate config dict to the latest schema version.
    Keep this pure and additive. Add migrations here as you bump schema.
    """
    data = dict(raw)
    schema = data.get("schema_version", 1)

    if schema < 2:
        # Schema 1 described a depth-bounded crawl of explicit start URLs.
        for obsolete in ("start_urls", "allowed_domains", "max_depth", "engine", "keywords"):
            data.pop(obsolete, None)
        if data.get("output_path", "").endswith("product_urls.json"):
            data.pop("output_path")

    data["schema_version"] = CONFIG_SCHEMA_VERSION
    return data
