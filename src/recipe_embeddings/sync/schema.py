# src/recipe_embeddings/sync/schema.py
from __future__ import annotations

"""
schema.py

Purpose:
    Shared dataclasses for the embedding sync job.

    These are the internal contracts between:
      - the store (Supabase rows in / out),
      - the pipeline (batching, error accounting),
      - the entry points (HTTP JSON body, CLI output).

    Nothing in this module talks to Supabase directly.

Objects:
  - SourceRecord    (row of dataset_recipes)
  - EmbeddingRecord (row of recipe_embeddings)
  - BatchResult     (outcome of one batch)
  - SyncReport      (outcome of one run)
"""

import datetime
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional


def utc_timestamp() -> str:
    """ISO-8601 UTC timestamp with millisecond precision, e.g. 2025-06-18T08:48:04.123Z."""
    now = datetime.datetime.now(datetime.timezone.utc)
    return now.strftime("%Y-%m-%dT%H:%M:%S.") + f"{now.microsecond // 1000:03d}Z"


@dataclass(frozen=True)
class SourceRecord:
    """A curated recipe as fetched from dataset_recipes."""

    id: str
    title: Optional[str]
    ingredients: Optional[str]
    steps: Optional[str]
    loves_count: Optional[int] = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "SourceRecord":
        return cls(
            id=str(row["id"]),
            title=row.get("title"),
            ingredients=row.get("ingredients"),
            steps=row.get("steps"),
            loves_count=row.get("loves_count"),
        )


@dataclass
class EmbeddingRecord:
    """One row of recipe_embeddings; unique per recipe_id."""

    recipe_id: str
    embedding: List[float]
    content: str

    def to_row(self) -> Dict[str, Any]:
        return {
            "recipe_id": self.recipe_id,
            "embedding": self.embedding,
            "content": self.content,
        }


@dataclass
class BatchResult:
    processed: int = 0
    errors: List[str] = field(default_factory=list)


@dataclass
class SyncReport:
    """
    Outcome of one run_sync() call.

    A failed run only carries success=False, error and timestamp; every
    other field is meaningful only when success is True.
    """

    success: bool
    timestamp: str = field(default_factory=utc_timestamp)
    message: str = ""
    total_recipes: Optional[int] = None
    recipes_needing_embeddings: Optional[int] = None
    processed: int = 0
    dataset_enabled: Optional[bool] = None
    errors: List[str] = field(default_factory=list)
    error: Optional[str] = None

    @classmethod
    def failure(cls, error: str) -> "SyncReport":
        return cls(success=False, error=error)

    def to_dict(self) -> Dict[str, Any]:
        """camelCase JSON body as served to the mobile client."""
        if not self.success:
            return {"success": False, "error": self.error, "timestamp": self.timestamp}

        body: Dict[str, Any] = {"success": True, "message": self.message}
        if self.total_recipes is not None:
            body["totalRecipes"] = self.total_recipes
        if self.recipes_needing_embeddings is not None:
            body["recipesNeedingEmbeddings"] = self.recipes_needing_embeddings
        body["processed"] = self.processed
        body["datasetEnabled"] = self.dataset_enabled
        if self.errors:
            body["errors"] = list(self.errors)
        body["timestamp"] = self.timestamp
        return body
