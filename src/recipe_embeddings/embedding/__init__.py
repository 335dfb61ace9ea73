"""
Embedding layer: deterministic text -> 384-dim vector, plus the text
projections and similarity helpers built around it.
"""
from recipe_embeddings.embedding.embedder import EMBEDDING_DIMENSION, embed

__all__ = ["EMBEDDING_DIMENSION", "embed"]
