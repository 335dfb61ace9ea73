#!/usr/bin/env python3
"""Run one embedding sync from the command line.

Same job as the /sync-embeddings endpoint, for cron or manual backfills:
  1) select curated recipes missing embeddings (most loved first)
  2) compute embeddings with recipe_embeddings.embedding.embed
  3) upsert them into recipe_embeddings in batches

Prints the JSON report and exits 1 when the run failed, including when the
EMBEDDING_SYNC_* env vars or the flags hold invalid values.
"""

from __future__ import annotations

import argparse
import json
import sys
from dataclasses import replace

from recipe_embeddings.config import SyncSettings
from recipe_embeddings.logging_utils import get_logger
from recipe_embeddings.sync.pipeline import run_sync
from recipe_embeddings.sync.schema import SyncReport

logger = get_logger("sync_embeddings")


def _print_report(report: SyncReport) -> int:
    print(json.dumps(report.to_dict(), indent=2))
    return 0 if report.success else 1


def main(argv: list[str] | None = None) -> int:
    try:
        defaults = SyncSettings.from_env()
    except ValueError as exc:
        logger.error(
            "Invalid sync settings in environment: %s",
            exc,
            extra={
                "invoking_func": "main",
                "invoking_purpose": "Read sync tunables",
                "next_step": "Exit with failure report",
                "resolution": "Fix EMBEDDING_SYNC_* env vars",
            },
        )
        return _print_report(SyncReport.failure(str(exc)))

    ap = argparse.ArgumentParser()
    ap.add_argument("--limit", type=int, default=defaults.max_recipes)
    ap.add_argument("--batch", type=int, default=defaults.batch_size)
    ap.add_argument("--min-loves", type=int, default=defaults.min_loves)
    ap.add_argument("--delay", type=float, default=defaults.batch_delay_seconds)
    args = ap.parse_args(argv)

    try:
        settings = replace(
            defaults,
            max_recipes=args.limit,
            batch_size=args.batch,
            min_loves=args.min_loves,
            batch_delay_seconds=args.delay,
        )
    except ValueError as exc:
        logger.error(
            "Invalid sync settings from flags: %s",
            exc,
            extra={
                "invoking_func": "main",
                "invoking_purpose": "Apply command-line overrides",
                "next_step": "Exit with failure report",
                "resolution": "Use --batch >= 1, --limit 1..1000, --delay >= 0",
            },
        )
        return _print_report(SyncReport.failure(str(exc)))

    logger.info(
        "Running sync: limit=%d batch=%d min_loves=%d delay=%.2fs",
        settings.max_recipes,
        settings.batch_size,
        settings.min_loves,
        settings.batch_delay_seconds,
        extra={
            "invoking_func": "main",
            "invoking_purpose": "Trigger one embedding sync run",
            "next_step": "Run sync pipeline",
            "resolution": "",
        },
    )
    report = run_sync(settings=settings)
    logger.info(
        "Sync finished: success=%s processed=%s",
        report.success,
        report.processed,
        extra={
            "invoking_func": "main",
            "invoking_purpose": "Trigger one embedding sync run",
            "next_step": "Print report and exit",
            "resolution": "" if report.success else "See error in report",
        },
    )
    return _print_report(report)


if __name__ == "__main__":
    sys.exit(main())
