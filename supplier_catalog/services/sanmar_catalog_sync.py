"""
Live SanMar catalog sync: page through GetProducts sequentially and persist each product.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Protocol

from sqlalchemy.orm import Session

from supplier_catalog.exceptions import PersistenceError
from supplier_catalog.parsers.sanmar_catalog import extract_catalog_page
from supplier_catalog.services.import_runner import ImportIssue, ImportOutcome
from supplier_catalog.services.product_store import commit_product, persist_product_record

logger = logging.getLogger(__name__)


class CatalogPageSource(Protocol):
    def fetch_page(self, page: int, page_size: int, modified_since: datetime | None = None) -> dict[str, Any]:
        ...


@dataclass
class CatalogSyncResult:
    created: int = 0
    updated: int = 0
    fetched: int = 0
    pages: int = 0
    failed: int = 0
    issues: list[ImportIssue] = field(default_factory=list)

    @property
    def processed(self) -> int:
        return self.created + self.updated

    def to_dict(self) -> dict[str, Any]:
        return {
            "created": self.created,
            "updated": self.updated,
            "processed": self.processed,
            "fetched": self.fetched,
            "pages": self.pages,
            "failed": self.failed,
        }

    def to_outcome(self) -> ImportOutcome:
        return ImportOutcome(
            read_count=self.fetched,
            write_count=self.processed,
            result=self.to_dict(),
            issues=list(self.issues),
        )


def sync_sanmar_catalog(
    session: Session | None,
    client: CatalogPageSource,
    page_size: int = 100,
    modified_since: datetime | None = None,
    max_pages: int | None = None,
    dry_run: bool = False,
    start_page: int = 1,
) -> CatalogSyncResult:
    """
    One request in flight at a time: the next page is requested only after the previous page has
    been parsed and persisted. Transport and protocol errors abort the sync; a product that fails to
    persist is recorded and skipped.
    """
    result = CatalogSyncResult()
    page: int | None = start_page

    while page is not None:
        if max_pages is not None and result.pages >= max_pages:
            logger.info(f"[CATALOG] stopping after {result.pages} pages (max_pages)")
            break

        payload = client.fetch_page(page, page_size, modified_since)
        catalog_page = extract_catalog_page(payload, page, page_size)
        result.pages += 1
        result.fetched += len(catalog_page.products)
        logger.info(f"[CATALOG] page {page}: {len(catalog_page.products)} products")

        if not dry_run:
            for record in catalog_page.products:
                try:
                    created = persist_product_record(session, record, supplier="SANMAR")
                    commit_product(session, record.supplier_part_id)
                except PersistenceError as e:
                    session.rollback()
                    result.failed += 1
                    result.issues.append(
                        ImportIssue("product", e.message, entity_id=record.supplier_part_id, error_code=e.error_code)
                    )
                    logger.error(f"[CATALOG] failed to persist {record.supplier_part_id}: {e.message}")
                    continue
                if created:
                    result.created += 1
                else:
                    result.updated += 1

        if not catalog_page.raw_count:
            break
        page = catalog_page.next_page

    logger.info(
        f"[CATALOG] done: pages={result.pages} fetched={result.fetched} "
        f"created={result.created} updated={result.updated} dry_run={dry_run}"
    )
    return result
