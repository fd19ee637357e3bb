import argparse
import json
import logging
import sys
from datetime import datetime

from supplier_catalog.clients.promostandards import PromoStandardsClient, SanMarCatalogClient
from supplier_catalog.clients.ssactivewear_rest import SsActivewearRestClient
from supplier_catalog.exceptions import CatalogError
from supplier_catalog.records import InventoryFilter
from supplier_catalog.services.dip_importer import import_sanmar_dip
from supplier_catalog.services.epdd_importer import import_sanmar_epdd
from supplier_catalog.services.fallback import SupplierFallback
from supplier_catalog.services.import_runner import ImportRunner
from supplier_catalog.services.inventory_store import upsert_inventory_records
from supplier_catalog.services.product_store import persist_product_record
from supplier_catalog.services.sanmar_catalog_sync import sync_sanmar_catalog
from supplier_catalog.services.sdl_importer import import_sdl_catalog
from supplier_catalog.services.ssactivewear_sync import sync_ssactivewear_sellable
from supplier_catalog.session_factory import session_factory
from supplier_catalog.settings import settings

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s [%(levelname)s] %(name)s: %(message)s'
)
logger = logging.getLogger("supplier_catalog.cli")


def _print(payload) -> None:
    print(json.dumps(payload, indent=2, ensure_ascii=False, default=str))


def _styles(raw: str | None) -> list[str]:
    return [style.strip() for style in (raw or "").split(",") if style.strip()]


def _run_import(job: str, meta: dict, dry_run: bool, func, supplier: str = "SANMAR") -> dict:
    """Dry runs never touch the database, including the run bookkeeping."""
    if dry_run:
        return func(None).to_dict()
    with session_factory() as session:
        runner = ImportRunner(session, job=job, supplier=supplier)
        import_run = runner.run(lambda: func(session).to_outcome(), meta=meta)
        return {"runId": str(import_run.id), "status": import_run.status, **(import_run.result or {})}


def run_import_sdl(args):
    logger.info(f"[CLI] SDL import from {args.path}")
    return _run_import(
        "sanmar_sdl",
        {"path": args.path, "limit": args.limit},
        args.dry_run,
        lambda session: import_sdl_catalog(session, args.path, limit=args.limit, dry_run=args.dry_run),
    )


def run_import_epdd(args):
    logger.info(f"[CLI] EPDD import from {args.path}")
    styles = _styles(args.styles)
    return _run_import(
        "sanmar_epdd",
        {"path": args.path, "styles": styles},
        args.dry_run,
        lambda session: import_sanmar_epdd(session, args.path, style_filter=styles, dry_run=args.dry_run),
    )


def run_import_dip(args):
    logger.info(f"[CLI] DIP import from {args.path}")
    styles = _styles(args.styles)
    return _run_import(
        "sanmar_dip",
        {"path": args.path, "styles": styles},
        args.dry_run,
        lambda session: import_sanmar_dip(session, args.path, style_filter=styles, dry_run=args.dry_run),
    )


def run_sync_catalog(args):
    client = SanMarCatalogClient()
    modified_since = datetime.fromisoformat(args.modified_since) if args.modified_since else None
    page_size = args.page_size or settings.sanmar_catalog_page_size
    logger.info(f"[CLI] SanMar catalog sync (page size {page_size}, max pages {args.max_pages})")
    return _run_import(
        "sanmar_catalog",
        {"pageSize": page_size, "maxPages": args.max_pages, "modifiedSince": args.modified_since},
        args.dry_run,
        lambda session: sync_sanmar_catalog(
            session,
            client,
            page_size=page_size,
            modified_since=modified_since,
            max_pages=args.max_pages,
            dry_run=args.dry_run,
        ),
    )


def _ssactivewear_fallback() -> SupplierFallback:
    return SupplierFallback(PromoStandardsClient.for_ssactivewear(), SsActivewearRestClient.from_settings())


def run_sync_ssactivewear(args):
    fallback = _ssactivewear_fallback()
    modified_since = datetime.fromisoformat(args.modified_since) if args.modified_since else None
    logger.info(f"[CLI] SSActivewear sellable sync (modified since {args.modified_since}, limit {args.limit})")
    return _run_import(
        "ssactivewear_sync",
        {"modifiedSince": args.modified_since, "limit": args.limit},
        args.dry_run,
        lambda session: sync_ssactivewear_sellable(
            session, fallback.primary, fallback, modified_since=modified_since, limit=args.limit, dry_run=args.dry_run
        ),
        supplier="SSACTIVEWEAR",
    )


def run_fetch_product(args):
    result = _ssactivewear_fallback().fetch_product(args.product_id)
    if args.persist:
        with session_factory() as session:
            persist_product_record(session, result.record, supplier="SSACTIVEWEAR")
            session.commit()
    return {
        "source": result.source,
        "warnings": result.warnings,
        "fetchedAt": result.fetched_at.isoformat(),
        "product": result.record.to_dict(),
    }


def run_fetch_inventory(args):
    inventory_filter = InventoryFilter(
        part_id=args.part_id, color=args.color, size=args.size, warehouse_id=args.warehouse
    )
    if args.supplier == "sanmar":
        client = PromoStandardsClient.for_sanmar()
        inventory = client.fetch_inventory(args.product_id, inventory_filter)
        source, warnings, fetched_at = "primary", [], datetime.now().astimezone()
    else:
        result = _ssactivewear_fallback().fetch_inventory(args.product_id, inventory_filter)
        inventory, source, warnings, fetched_at = result.record, result.source, result.warnings, result.fetched_at

    written = 0
    if args.persist:
        with session_factory() as session:
            written = upsert_inventory_records(session, inventory.records, fetched_at=fetched_at)
            session.commit()
    return {"source": source, "warnings": warnings, "written": written, "inventory": inventory.to_dict()}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Supplier catalog ingestion CLI")
    subparsers = parser.add_subparsers(dest="command", required=True)

    sdl = subparsers.add_parser("import-sdl", help="Import a SanMar SDL catalog CSV")
    sdl.add_argument("path")
    sdl.add_argument("--limit", type=int, default=None, help="Max rows to scan")
    sdl.add_argument("--dry-run", action="store_true")
    sdl.set_defaults(func=run_import_sdl)

    epdd = subparsers.add_parser("import-epdd", help="Merge a SanMar EPDD CSV into existing products")
    epdd.add_argument("path")
    epdd.add_argument("--styles", default=None, help="Comma separated style filter")
    epdd.add_argument("--dry-run", action="store_true")
    epdd.set_defaults(func=run_import_epdd)

    dip = subparsers.add_parser("import-dip", help="Import a SanMar DIP inventory file")
    dip.add_argument("path")
    dip.add_argument("--styles", default=None, help="Comma separated style filter")
    dip.add_argument("--dry-run", action="store_true")
    dip.set_defaults(func=run_import_dip)

    catalog = subparsers.add_parser("sync-catalog", help="Page through the SanMar product catalog service")
    catalog.add_argument("--page-size", type=int, default=None)
    catalog.add_argument("--max-pages", type=int, default=None)
    catalog.add_argument("--modified-since", default=None, help="ISO timestamp")
    catalog.add_argument("--dry-run", action="store_true")
    catalog.set_defaults(func=run_sync_catalog)

    ssa = subparsers.add_parser(
        "sync-ssactivewear", help="Sync SSActivewear styles listed as sellable (SOAP, then REST per style)"
    )
    ssa.add_argument("--modified-since", default=None, help="ISO timestamp")
    ssa.add_argument("--limit", type=int, default=None, help="Max styles to fetch")
    ssa.add_argument("--dry-run", action="store_true")
    ssa.set_defaults(func=run_sync_ssactivewear)

    product = subparsers.add_parser("fetch-product", help="Fetch one SSActivewear product (SOAP, then REST)")
    product.add_argument("product_id")
    product.add_argument("--persist", action="store_true")
    product.set_defaults(func=run_fetch_product)

    inventory = subparsers.add_parser("fetch-inventory", help="Fetch live inventory for one style")
    inventory.add_argument("product_id")
    inventory.add_argument("--supplier", choices=["ssactivewear", "sanmar"], default="ssactivewear")
    inventory.add_argument("--part-id", default=None)
    inventory.add_argument("--color", default=None)
    inventory.add_argument("--size", default=None)
    inventory.add_argument("--warehouse", default=None)
    inventory.add_argument("--persist", action="store_true")
    inventory.set_defaults(func=run_fetch_inventory)

    return parser


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        _print(args.func(args))
    except CatalogError as e:
        logger.error(f"[CLI] {e.error_code}: {e.message}")
        _print(e.to_dict())
        return 1
    except FileNotFoundError as e:
        logger.error(f"[CLI] file not found: {e.filename}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
