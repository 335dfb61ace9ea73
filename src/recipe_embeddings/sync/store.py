"""
store.py

Supabase access for the embedding sync job.

Tables:
  dataset_recipes   (id, title, ingredients, steps, loves_count, user_id, ...)
  recipe_embeddings (recipe_id UNIQUE, embedding vector(384), content)

Every failure of the underlying client (postgrest APIError, network errors)
is re-raised as StoreError so the pipeline can decide the scope it belongs to.
"""
from __future__ import annotations

from typing import List, Sequence, Set

from supabase import Client

from recipe_embeddings.logging_utils import get_logger
from recipe_embeddings.sync.schema import EmbeddingRecord, SourceRecord

logger = get_logger("store")

RECIPES_TABLE = "dataset_recipes"
EMBEDDINGS_TABLE = "recipe_embeddings"


class StoreError(RuntimeError):
    """A Supabase read or write for the sync job failed."""


class RecipeStore:
    def __init__(self, client: Client) -> None:
        self.client = client

    def fetch_existing_embedding_ids(self, recipe_ids: Sequence[str]) -> Set[str]:
        """
        Subset of `recipe_ids` that already has an embedding.

        Scoped to the given ids: an unfiltered select is cut at PostgREST's
        max-rows (1000), which would drop ids once the table grows past it.
        """
        if not recipe_ids:
            return set()
        try:
            res = (
                self.client.table(EMBEDDINGS_TABLE)
                .select("recipe_id")
                .in_("recipe_id", list(recipe_ids))
                .execute()
            )
        except Exception as exc:  # noqa: BLE001
            raise StoreError(f"Failed to fetch existing embeddings: {exc}") from exc
        return {str(row["recipe_id"]) for row in res.data or []}

    def fetch_candidates(self, *, min_loves: int, limit: int, offset: int = 0) -> List[SourceRecord]:
        """
        Curated recipes (no owning user) with loves_count >= min_loves,
        most loved first, at most `limit` rows starting at `offset`.

        Ties on loves_count are broken by id so consecutive windows neither
        overlap nor skip rows.
        """
        try:
            res = (
                self.client.table(RECIPES_TABLE)
                .select("id, title, ingredients, steps, loves_count")
                .is_("user_id", "null")
                .gte("loves_count", min_loves)
                .order("loves_count", desc=True)
                .order("id")
                .range(offset, offset + limit - 1)
                .execute()
            )
        except Exception as exc:  # noqa: BLE001
            raise StoreError(f"Failed to fetch recipes: {exc}") from exc
        return [SourceRecord.from_row(row) for row in res.data or []]

    def upsert_embeddings(self, records: Sequence[EmbeddingRecord]) -> None:
        """Replace-on-conflict by recipe_id; never creates a second row per recipe."""
        if not records:
            return

        rows = [rec.to_row() for rec in records]
        try:
            self.client.table(EMBEDDINGS_TABLE).upsert(
                rows, on_conflict="recipe_id", ignore_duplicates=False
            ).execute()
        except Exception as exc:  # noqa: BLE001
            raise StoreError(str(exc)) from exc

        logger.debug(
            "Upserted %d embeddings",
            len(rows),
            extra={
                "invoking_func": "upsert_embeddings",
                "invoking_purpose": "Persist one batch of embeddings",
                "next_step": "Return to pipeline",
                "resolution": "",
            },
        )
