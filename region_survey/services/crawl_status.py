from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable

logger = logging.getLogger(__name__)


@dataclass
class BulkCrawlStatusResult:
    is_crawled: bool
    updated: list[str] = field(default_factory=list)
    failures: list[dict] = field(default_factory=list)

    @property
    def updated_count(self) -> int:
        return len(self.updated)


def toggle_crawl_status(repo, region_name: str) -> dict:
    existing = repo.get_crawl_status(region_name)
    is_crawled = not existing["is_crawled"] if existing else True
    row = repo.set_crawl_status(region_name, is_crawled)
    logger.info("crawl_status_toggled region=%s is_crawled=%s", region_name, is_crawled)
    return row


def bulk_update_crawl_status(repo, region_names: Iterable[str], is_crawled: bool) -> BulkCrawlStatusResult:
    result = BulkCrawlStatusResult(is_crawled=is_crawled)
    for region_name in dict.fromkeys(region_names):
        try:
            repo.set_crawl_status(region_name, is_crawled)
        except Exception as exc:  # noqa: BLE001
            repo.rollback()
            logger.warning("crawl_status_update_failed region=%s error=%s", region_name, exc)
            result.failures.append({"region": region_name, "error": str(exc)})
            continue
        result.updated.append(region_name)

    logger.info(
        "crawl_status_bulk_updated is_crawled=%s updated=%s failed=%s",
        is_crawled,
        result.updated_count,
        len(result.failures),
    )
    return result
