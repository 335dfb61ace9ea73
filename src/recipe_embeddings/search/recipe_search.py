"""
recipe_search.py

Vector search over recipe_embeddings.

Uses the pgvector RPCs when available:
  search_recipes_by_text(query_embedding, similarity_threshold, match_count)
  find_similar_recipes(query_embedding, min_loves, similarity_threshold, match_count)

If an RPC call fails, falls back to scoring a bounded sample of stored
embeddings in Python with cosine similarity, so search keeps working on a
database where the functions were not created yet.
"""
from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional

from supabase import Client

from recipe_embeddings.embedding.content import build_query_content, preprocess_query
from recipe_embeddings.embedding.embedder import embed
from recipe_embeddings.embedding.similarity import cosine_similarity
from recipe_embeddings.logging_utils import get_logger

logger = get_logger("recipe_search")

FALLBACK_SCAN_LIMIT = 1000


@dataclass
class RecipeMatch:
    id: str
    title: str
    similarity_score: float
    ingredients: Optional[str] = None
    steps: Optional[str] = None
    loves_count: Optional[int] = None
    url: Optional[str] = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "RecipeMatch":
        return cls(
            id=str(row["id"]),
            title=row.get("title") or "",
            similarity_score=float(row.get("similarity_score") or 0.0),
            ingredients=row.get("ingredients"),
            steps=row.get("steps"),
            loves_count=row.get("loves_count"),
            url=row.get("url"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "ingredients": self.ingredients,
            "steps": self.steps,
            "loves_count": self.loves_count,
            "url": self.url,
            "similarity_score": self.similarity_score,
        }


def _parse_vector(value: Any) -> List[float]:
    # pgvector columns come back from PostgREST as "[0.1,0.2,...]" strings
    if isinstance(value, str):
        value = json.loads(value)
    return [float(x) for x in value or []]


class RecipeSearch:
    def __init__(self, client: Client) -> None:
        self.client = client

    # ------------------------------------------------------------------
    # Public APIs
    # ------------------------------------------------------------------
    def search_by_text(self, query: str, *, threshold: float = 0.4, limit: int = 10) -> List[RecipeMatch]:
        """Free-text search, e.g. "nasi goreng pedas"."""
        query_embedding = embed(preprocess_query(query))
        return self._match(
            "search_recipes_by_text",
            {
                "query_embedding": query_embedding,
                "similarity_threshold": float(threshold),
                "match_count": int(limit),
            },
            query_embedding=query_embedding,
            threshold=threshold,
            limit=limit,
        )

    def find_similar_recipes(
        self,
        ingredients: Iterable[Mapping[str, Optional[str]]],
        *,
        min_loves: int = 50,
        threshold: float = 0.3,
        limit: int = 12,
    ) -> List[RecipeMatch]:
        """Recipes matching what the user has in the pantry."""
        query_embedding = embed(build_query_content(ingredients))
        return self._match(
            "find_similar_recipes",
            {
                "query_embedding": query_embedding,
                "min_loves": int(min_loves),
                "similarity_threshold": float(threshold),
                "match_count": int(limit),
            },
            query_embedding=query_embedding,
            threshold=threshold,
            limit=limit,
            min_loves=min_loves,
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _match(
        self,
        rpc_name: str,
        params: Dict[str, Any],
        *,
        query_embedding: List[float],
        threshold: float,
        limit: int,
        min_loves: Optional[int] = None,
    ) -> List[RecipeMatch]:
        try:
            rows = self.client.rpc(rpc_name, params).execute().data
        except Exception as exc:  # noqa: BLE001
            logger.warning(
                "%s RPC failed (falling back to local scoring): %s",
                rpc_name,
                exc,
                extra={
                    "invoking_func": "_match",
                    "invoking_purpose": "Vector search via pgvector RPC",
                    "next_step": "Score stored embeddings in Python",
                    "resolution": "Apply the vector search migration",
                },
            )
            return self._match_locally(query_embedding, threshold=threshold, limit=limit, min_loves=min_loves)

        return [RecipeMatch.from_row(row) for row in rows or []]

    def _match_locally(
        self,
        query_embedding: List[float],
        *,
        threshold: float,
        limit: int,
        min_loves: Optional[int],
    ) -> List[RecipeMatch]:
        try:
            res = (
                self.client.table("recipe_embeddings")
                .select("recipe_id, embedding, dataset_recipes(id, title, ingredients, steps, loves_count, url, user_id)")
                .limit(FALLBACK_SCAN_LIMIT)
                .execute()
            )
        except Exception as exc:  # noqa: BLE001
            logger.warning(
                "Local search fallback failed: %s",
                exc,
                extra={
                    "invoking_func": "_match_locally",
                    "invoking_purpose": "Score stored embeddings in Python",
                    "next_step": "Return no results",
                    "resolution": "",
                },
            )
            return []

        matches: List[RecipeMatch] = []
        for row in res.data or []:
            recipe = row.get("dataset_recipes") or {}
            if not recipe or recipe.get("user_id") is not None:
                continue
            if min_loves is not None and (recipe.get("loves_count") or 0) < min_loves:
                continue

            score = cosine_similarity(query_embedding, _parse_vector(row.get("embedding")))
            if score < threshold:
                continue
            matches.append(RecipeMatch.from_row({**recipe, "similarity_score": score}))

        matches.sort(key=lambda m: m.similarity_score, reverse=True)
        return matches[:limit]
