"""Command line seeder: import a directory of auction invoices.

Usage:
    lotparser-seed --invoices ./invoices --auctions ./auctions.xlsx
    lotparser-seed --invoices ./invoices --dry-run --log-level debug
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from .config import get_settings
from .core.errors import LotParserError
from .core.models import FileKind, JobOptions, JobStatus
from .ingestion import IngestionOrchestrator, JsonFileJobStore, JsonFileSeedState
from .persistence import InMemoryGateway

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="lotparser-seed",
        description="Import auction invoice PDFs into the inventory store",
    )
    parser.add_argument("--invoices", type=Path, default=Path("./invoices"), help="Directory containing PDF invoices")
    parser.add_argument("--auctions", type=Path, default=Path("./auctions.xlsx"), help="Spreadsheet with auction metadata")
    parser.add_argument("--state", type=Path, default=None, help="State file tracking processed invoices")
    parser.add_argument("--job-store", type=Path, default=None, help="JSON file persisting import jobs")
    parser.add_argument("--workers", type=int, default=None, help="Number of concurrent workers")
    parser.add_argument("--log-level", default=None, help="Log level (debug, info, warn, error)")
    parser.add_argument("--dry-run", action="store_true", help="Run the pipeline without storing items")
    parser.add_argument("--force", action="store_true", help="Reprocess invoices that were already imported")
    return parser


async def seed(args: argparse.Namespace) -> int:
    """Run one seeding pass. Returns the process exit code."""
    overrides = {}
    if args.workers:
        overrides["worker_pool_size"] = args.workers
    if args.state:
        overrides["seed_state_path"] = args.state
    if args.job_store:
        overrides["job_store_path"] = args.job_store
    settings = get_settings().model_copy(update=overrides)

    if not args.invoices.is_dir():
        print(f"ERROR: Invoices directory not found: {args.invoices}")
        return 1

    pdf_files = sorted(p for p in args.invoices.iterdir() if p.suffix.lower() == ".pdf")
    if not pdf_files:
        print(f"WARNING: No PDF files in {args.invoices}")
        return 0

    gateway = InMemoryGateway()
    orchestrator = IngestionOrchestrator(
        gateway=gateway,
        job_store=JsonFileJobStore(settings.job_store_path) if settings.job_store_path else None,
        seed_state=JsonFileSeedState(settings.seed_state_path),
        settings=settings,
    )

    if args.auctions.exists():
        try:
            count = orchestrator.load_auctions(args.auctions.read_bytes(), args.auctions.name)
            logger.info(f"Auction metadata loaded for {count} invoices")
        except LotParserError as e:
            print(f"WARNING: Cannot use auction sheet {args.auctions}: {e}")
    else:
        print(f"WARNING: Auction sheet {args.auctions} not found, using default premium and tax")

    options = JobOptions(force=args.force, dry_run=args.dry_run)
    jobs = []
    for i, path in enumerate(pdf_files):
        invoice_id = path.stem
        print(f"PROGRESS: Queued {i + 1}/{len(pdf_files)}: {invoice_id}")
        job_id = await orchestrator.enqueue(path, invoice_id, options=options, file_kind=FileKind.PDF)
        jobs.append((invoice_id, job_id))

    await orchestrator.start()
    try:
        await orchestrator.join()
    finally:
        await orchestrator.stop()

    total_items = 0
    succeeded: list[tuple[str, int]] = []
    failed: list[str] = []

    for invoice_id, job_id in jobs:
        view = orchestrator.get_status(job_id)
        result = view.result

        if view.status != JobStatus.COMPLETED:
            message = view.error.message if view.error else view.status.value
            print(f"ERROR: Failed to process invoice_id:{invoice_id} - {message}")
            failed.append(invoice_id)
            continue

        if result is None or result.items_produced == 0:
            print(f"WARNING: No items found in invoice_id:{invoice_id}")
            failed.append(invoice_id)
            continue

        for error in result.errors:
            print(f"WARNING: invoice_id:{invoice_id} line {error.position}: {error.message}")

        note = " (already imported)" if result.duplicate_of else ""
        print(f"SUCCESS: Processed invoice_id:{invoice_id} - {result.items_produced} items{note}")
        total_items += result.items_produced
        succeeded.append((invoice_id, result.items_produced))

    print("\n" + "=" * 60)
    print("Seeding summary" + (" (dry run)" if args.dry_run else ""))
    print("=" * 60)
    print(f"Total PDFs Processed: {len(pdf_files)}")
    print(f"Total Items Extracted: {total_items}")
    if succeeded:
        print(f"Average Items per Invoice: {total_items / len(succeeded):.1f}")
        print(f"\nSuccessfully Processed ({len(succeeded)} invoices):")
        for invoice_id, count in succeeded:
            print(f"  - {invoice_id}: {count} items")
    if failed:
        print(f"\nFailed/Empty Invoices ({len(failed)}):")
        for invoice_id in failed:
            print(f"  - {invoice_id}")

    return 1 if failed and not succeeded else 0


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    level = args.log_level or get_settings().log_level
    level = level.strip().upper()
    if level == "WARN":
        level = "WARNING"

    # Configure logging
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    return asyncio.run(seed(args))


if __name__ == "__main__":
    sys.exit(main())
