"""
Incremental SSActivewear sync: list the styles PromoStandards reports as sellable (optionally only
those changed since a timestamp), then fetch each one through the SOAP -> REST fallback and persist it.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Protocol

from sqlalchemy.orm import Session

from supplier_catalog.exceptions import PersistenceError, SupplierFallbackError
from supplier_catalog.services.fallback import SupplierFallback
from supplier_catalog.services.import_runner import ImportIssue, ImportOutcome
from supplier_catalog.services.product_store import commit_product, persist_product_record

logger = logging.getLogger(__name__)

SUPPLIER = "SSACTIVEWEAR"


class SellableIdSource(Protocol):
    def fetch_sellable_product_ids(self, modified_since: datetime | None = None) -> list[str]:
        ...


@dataclass
class SellableSyncResult:
    sellable: int = 0
    fetched: int = 0
    created: int = 0
    updated: int = 0
    failed: int = 0
    from_secondary: int = 0
    issues: list[ImportIssue] = field(default_factory=list)

    @property
    def processed(self) -> int:
        return self.created + self.updated

    def to_dict(self) -> dict[str, Any]:
        return {
            "sellable": self.sellable,
            "fetched": self.fetched,
            "created": self.created,
            "updated": self.updated,
            "processed": self.processed,
            "failed": self.failed,
            "fromSecondary": self.from_secondary,
        }

    def to_outcome(self) -> ImportOutcome:
        return ImportOutcome(
            read_count=self.fetched,
            write_count=self.processed,
            result=self.to_dict(),
            issues=list(self.issues),
        )


def sync_ssactivewear_sellable(
    session: Session | None,
    sellable_source: SellableIdSource,
    fallback: SupplierFallback,
    modified_since: datetime | None = None,
    limit: int | None = None,
    dry_run: bool = False,
) -> SellableSyncResult:
    """
    A failure listing the sellable ids aborts the run. After that each product is independent:
    one whose sources all fail, or whose write fails, is recorded as an issue and skipped.
    Dry runs fetch but never touch the session.
    """
    result = SellableSyncResult()
    product_ids = sellable_source.fetch_sellable_product_ids(modified_since)
    result.sellable = len(product_ids)
    if limit is not None:
        product_ids = product_ids[:limit]
    logger.info(
        f"[SSA_SYNC] {result.sellable} sellable styles (modified since {modified_since}), syncing {len(product_ids)}"
    )

    for product_id in product_ids:
        try:
            fetched = fallback.fetch_product(product_id)
        except SupplierFallbackError as e:
            result.failed += 1
            result.issues.append(ImportIssue("product", e.message, entity_id=product_id, error_code=e.error_code))
            logger.error(f"[SSA_SYNC] could not fetch {product_id}: {e.message}")
            continue

        result.fetched += 1
        if fetched.source == "secondary":
            result.from_secondary += 1
        if dry_run:
            continue

        record = fetched.record
        try:
            created = persist_product_record(session, record, supplier=SUPPLIER)
            commit_product(session, record.supplier_part_id)
        except PersistenceError as e:
            session.rollback()
            result.failed += 1
            result.issues.append(
                ImportIssue("product", e.message, entity_id=record.supplier_part_id, error_code=e.error_code)
            )
            logger.error(f"[SSA_SYNC] failed to persist {record.supplier_part_id}: {e.message}")
            continue
        if created:
            result.created += 1
        else:
            result.updated += 1

    logger.info(
        f"[SSA_SYNC] done: sellable={result.sellable} fetched={result.fetched} created={result.created} "
        f"updated={result.updated} failed={result.failed} secondary={result.from_secondary} dry_run={dry_run}"
    )
    return result
