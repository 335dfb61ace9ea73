"""
Embedding sync pipeline: main entry point is run_sync().

1. Read the "dataset" feature flag (advisory, fail-open)
2. Fetch curated candidates (no owner, loves_count >= 50, most loved first, window of 500)
3. Fetch which of those recipe_ids already have an embedding
4. Work list = candidates without an embedding; a fully embedded window moves
   on to the next 500, so less loved recipes are reached on later runs
5. Process the work list in sequential batches of 20 with a 0.5s pause between batches
6. Per record: build content -> embed; failures recorded, siblings continue
7. Per batch: one upsert on_conflict=recipe_id; a rejected upsert credits 0 for the batch
8. Return a SyncReport

Failure scopes (smallest first):
a. record  -> "Recipe <id>: <msg>" in report.errors
b. batch   -> "Database insertion: <msg>" / "Batch <a>-<b>: <msg>" in report.errors
c. run     -> SyncReport(success=False); only when the initial reads fail

Nothing is retried inside a run. A record that failed still has no embedding,
so the next invocation picks it up again.
"""
from __future__ import annotations

import time
from typing import Callable, List, Optional, Sequence

from supabase import Client

from recipe_embeddings.config import SyncSettings, get_supabase_client
from recipe_embeddings.embedding.content import build_recipe_content
from recipe_embeddings.embedding.embedder import embed
from recipe_embeddings.feature_flags import is_feature_enabled
from recipe_embeddings.logging_utils import get_logger
from recipe_embeddings.sync.schema import BatchResult, EmbeddingRecord, SourceRecord, SyncReport
from recipe_embeddings.sync.store import RecipeStore, StoreError

logger = get_logger("pipeline")

MODULE_PURPOSE = "Incremental batch sync of dataset_recipes into recipe_embeddings"


class EmbeddingSyncPipeline:
    def __init__(
        self,
        client: Client,
        settings: Optional[SyncSettings] = None,
        *,
        content_builder: Callable[[SourceRecord], str] = build_recipe_content,
        embedder: Callable[[str], List[float]] = embed,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.client = client
        self.store = RecipeStore(client)
        self.settings = settings or SyncSettings()
        self.content_builder = content_builder
        self.embedder = embedder
        self.sleep = sleep

    # -----------------------------------------------------
    # Public API
    # -----------------------------------------------------
    def run_sync(self) -> SyncReport:
        """Run one sync. Never raises; fatal read failures give success=False."""
        logger.info(
            "Starting embedding synchronization",
            extra={
                "invoking_func": "run_sync",
                "invoking_purpose": MODULE_PURPOSE,
                "next_step": "Read dataset feature flag",
                "resolution": "",
            },
        )

        dataset_enabled = is_feature_enabled(self.client, self.settings.feature_flag)
        if not dataset_enabled:
            logger.info(
                "Dataset feature is disabled, but sync will continue for maintenance",
                extra={
                    "invoking_func": "run_sync",
                    "invoking_purpose": MODULE_PURPOSE,
                    "next_step": "Fetch candidate recipes",
                    "resolution": "",
                },
            )

        try:
            candidates, work = self._find_work()
        except StoreError as exc:
            logger.error(
                "Sync aborted: %s",
                exc,
                extra={
                    "invoking_func": "run_sync",
                    "invoking_purpose": MODULE_PURPOSE,
                    "next_step": "Return failure report",
                    "resolution": "Check Supabase URL, service role key and table access",
                },
            )
            return SyncReport.failure(str(exc))

        if not candidates:
            return SyncReport(
                success=True,
                message="No recipes found to process",
                processed=0,
                dataset_enabled=dataset_enabled,
            )

        if not work:
            return SyncReport(
                success=True,
                message="All recipes already have embeddings",
                total_recipes=len(candidates),
                processed=0,
                dataset_enabled=dataset_enabled,
            )

        logger.info(
            "Processing %d recipes without embeddings (of %d candidates)",
            len(work),
            len(candidates),
            extra={
                "invoking_func": "run_sync",
                "invoking_purpose": MODULE_PURPOSE,
                "next_step": f"Process batches of {self.settings.batch_size}",
                "resolution": "",
            },
        )

        processed, errors = self._process_all(work)

        report = SyncReport(
            success=True,
            message="Embedding synchronization completed",
            total_recipes=len(candidates),
            recipes_needing_embeddings=len(work),
            processed=processed,
            dataset_enabled=dataset_enabled,
            errors=errors,
        )
        logger.info(
            "Sync completed: processed=%d errors=%d",
            report.processed,
            len(report.errors),
            extra={
                "invoking_func": "run_sync",
                "invoking_purpose": MODULE_PURPOSE,
                "next_step": "Return report",
                "resolution": "Failed recipes are retried on the next run" if errors else "",
            },
        )
        return report

    # -----------------------------------------------------
    # Candidate windows
    # -----------------------------------------------------
    def _find_work(self) -> tuple[List[SourceRecord], List[SourceRecord]]:
        """
        Walk loves-desc windows of max_recipes candidates until one still
        has recipes without an embedding, or the corpus runs out.

        Returns (every candidate scanned, work list of the first window with
        work). The work list never exceeds max_recipes.
        """
        window_size = self.settings.max_recipes
        scanned: List[SourceRecord] = []
        offset = 0

        while True:
            window = self.store.fetch_candidates(
                min_loves=self.settings.min_loves,
                limit=window_size,
                offset=offset,
            )
            if not window:
                return scanned, []

            scanned.extend(window)
            existing_ids = self.store.fetch_existing_embedding_ids([rec.id for rec in window])
            work = [rec for rec in window if rec.id not in existing_ids]
            if work or len(window) < window_size:
                return scanned, work

            offset += len(window)
            logger.debug(
                "Window of %d candidates fully embedded, moving to offset %d",
                len(window),
                offset,
                extra={
                    "invoking_func": "_find_work",
                    "invoking_purpose": "Find the next candidates without embeddings",
                    "next_step": "Fetch next candidate window",
                    "resolution": "",
                },
            )

    # -----------------------------------------------------
    # Batching
    # -----------------------------------------------------
    def _process_all(self, work: Sequence[SourceRecord]) -> tuple[int, List[str]]:
        batch_size = self.settings.batch_size
        total_processed = 0
        errors: List[str] = []

        for start in range(0, len(work), batch_size):
            batch = work[start : start + batch_size]
            try:
                result = self.process_batch(batch)
                total_processed += result.processed
                errors.extend(result.errors)
            except Exception as exc:  # noqa: BLE001
                logger.error(
                    "Error processing batch %d-%d",
                    start,
                    start + batch_size,
                    exc_info=exc,
                    extra={
                        "invoking_func": "_process_all",
                        "invoking_purpose": "Process work list in sequential batches",
                        "next_step": "Continue with next batch",
                        "resolution": "",
                    },
                )
                errors.append(f"Batch {start}-{start + batch_size}: {exc}")

            if start + batch_size < len(work):
                self.sleep(self.settings.batch_delay_seconds)

        return total_processed, errors

    def process_batch(self, batch: Sequence[SourceRecord]) -> BatchResult:
        """Embed each recipe of the batch, then upsert all successes at once."""
        result = BatchResult()
        to_insert: List[EmbeddingRecord] = []

        for recipe in batch:
            try:
                content = self.content_builder(recipe)
                embedding = self.embedder(content)
                to_insert.append(EmbeddingRecord(recipe_id=recipe.id, embedding=embedding, content=content))
            except Exception as exc:  # noqa: BLE001
                logger.error(
                    "Error processing recipe %s: %s",
                    recipe.id,
                    exc,
                    extra={
                        "invoking_func": "process_batch",
                        "invoking_purpose": "Build content and embedding per recipe",
                        "next_step": "Continue with next recipe in batch",
                        "resolution": "",
                    },
                )
                result.errors.append(f"Recipe {recipe.id}: {exc}")

        if not to_insert:
            return result

        try:
            self.store.upsert_embeddings(to_insert)
        except StoreError as exc:
            logger.error(
                "Database insertion error: %s",
                exc,
                extra={
                    "invoking_func": "process_batch",
                    "invoking_purpose": "Persist batch of embeddings",
                    "next_step": "Count batch as 0 processed and continue",
                    "resolution": "Batch stays eligible for the next run",
                },
            )
            result.errors.append(f"Database insertion: {exc}")
            result.processed = 0
            return result

        result.processed = len(to_insert)
        return result


def run_sync(client: Optional[Client] = None, settings: Optional[SyncSettings] = None) -> SyncReport:
    """
    Entry point used by the HTTP handler and the CLI.

    Invalid settings and client creation failures (missing env vars, bad
    URL) are reported the same way as failed initial reads.
    """
    try:
        if settings is None:
            settings = SyncSettings.from_env()
        if client is None:
            client = get_supabase_client()
    except Exception as exc:  # noqa: BLE001
        logger.error(
            "Could not set up sync: %r",
            exc,
            extra={
                "invoking_func": "run_sync",
                "invoking_purpose": MODULE_PURPOSE,
                "next_step": "Return failure report",
                "resolution": "Check SUPABASE_* and EMBEDDING_SYNC_* env vars",
            },
        )
        return SyncReport.failure(str(exc))

    return EmbeddingSyncPipeline(client, settings).run_sync()
