# src/recipe_embeddings/embedding/embedder.py
from __future__ import annotations

"""
embedder.py

Purpose:
    Provide embed(text) -> list[float], a deterministic 384-dim "embedding"
    built from feature hashing. It is stored in Supabase (pgvector) and
    compared with cosine distance by the search RPCs.

Design:
  - No model, no randomness, no network: vectors must be reproducible
    bit-for-bit from recipe_embeddings.content alone.
  - Words are hashed with the 32-bit string hash (h = h*31 + unit) into
    one of 384 buckets, weighted by 1/(position+1). Each word's bigrams
    add half that weight.
  - Buckets 0..2 are overwritten with whole-text statistics
    (word count, letter ratio, digit ratio).
  - The result is unit-normalized; empty text stays all zeros.

Text is measured in UTF-16 code units, the unit the stored vectors were
first produced with, so lengths, bigrams and hashes agree for non-BMP text.
"""

import math
from typing import List, Sequence

EMBEDDING_DIMENSION = 384

_INT32_MASK = 0xFFFFFFFF
_INT32_SIGN = 0x80000000


def _utf16_units(text: str) -> List[int]:
    data = text.encode("utf-16-le", "surrogatepass")
    return [data[i] | (data[i + 1] << 8) for i in range(0, len(data), 2)]


def _hash_code(units: Sequence[int]) -> int:
    """32-bit signed polynomial hash, wrapped at every step."""
    h = 0
    for unit in units:
        h = (h * 31 + unit) & _INT32_MASK
        if h & _INT32_SIGN:
            h -= 1 << 32
    return h


def _bucket(units: Sequence[int]) -> int:
    return abs(_hash_code(units)) % EMBEDDING_DIMENSION


def _is_ascii_letter(unit: int) -> bool:
    return 65 <= unit <= 90 or 97 <= unit <= 122


def _is_ascii_digit(unit: int) -> bool:
    return 48 <= unit <= 57


def embed(text: str) -> List[float]:
    """
    Returns:
        list of EMBEDDING_DIMENSION floats with unit norm, or all zeros
        when the text carries no signal. Never raises for str input.
    """
    words = text.lower().split()
    vector = [0.0] * EMBEDDING_DIMENSION

    for index, word in enumerate(words):
        units = _utf16_units(word)
        if len(units) <= 2:
            continue

        vector[_bucket(units)] += 1 / (index + 1)

        # character-level features
        for i in range(len(units) - 1):
            vector[_bucket(units[i : i + 2])] += 0.5 / (index + 1)

    # Whole-text features overwrite whatever hashing put in buckets 0..2
    text_units = _utf16_units(text)
    length = len(text_units)
    vector[0] = len(words) / 100
    vector[1] = sum(1 for u in text_units if _is_ascii_letter(u)) / length if length else 0.0
    vector[2] = sum(1 for u in text_units if _is_ascii_digit(u)) / length if length else 0.0

    magnitude = math.sqrt(sum(v * v for v in vector))
    if magnitude > 0:
        return [v / magnitude for v in vector]
    return vector
