"""
content.py

Text projections that feed the embedder:
  - build_recipe_content: the exact text stored in recipe_embeddings.content
  - preprocess_query / build_query_content: query-side text for search
"""
from __future__ import annotations

import re
from typing import Iterable, Mapping, Optional

from recipe_embeddings.sync.schema import SourceRecord

MAX_CONTENT_CHARS = 2000
MAX_QUERY_CHARS = 1000

_NON_WORD = re.compile(r"[^\w\s]")
_WHITESPACE = re.compile(r"\s+")


def _truncate_utf16(text: str, limit: int) -> str:
    """
    First `limit` UTF-16 code units of text. A character that would be split
    across the limit (astral plane, e.g. emoji) is dropped whole.
    """
    units = 0
    for index, char in enumerate(text):
        units += 2 if ord(char) > 0xFFFF else 1
        if units > limit:
            return text[:index]
    return text


def build_recipe_content(recipe: SourceRecord) -> str:
    """Title, ingredients, steps; empty parts dropped, space-joined, capped at 2000 UTF-16 units."""
    parts = [recipe.title or "", recipe.ingredients or "", recipe.steps or ""]
    return _truncate_utf16(" ".join(part for part in parts if part), MAX_CONTENT_CHARS)


def preprocess_query(text: str) -> str:
    cleaned = _NON_WORD.sub(" ", text.lower())
    return _WHITESPACE.sub(" ", cleaned).strip()[:MAX_QUERY_CHARS]


def build_query_content(ingredients: Iterable[Mapping[str, Optional[str]]]) -> str:
    """
    Query text for "what can I cook with these" searches: ingredient names
    followed by their categories, e.g. [{"name": "telur", "category": "protein"}].
    """
    items = list(ingredients)
    names = " ".join(item.get("name") or "" for item in items)
    categories = " ".join(item["category"] for item in items if item.get("category"))
    return f"{names} {categories}".strip()
