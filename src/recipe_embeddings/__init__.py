"""
Recipe embeddings service

Deterministic feature-hashing embeddings for recipe text, and the job that
keeps Supabase's recipe_embeddings table in step with dataset_recipes:
  - embedding: text -> 384-dim unit vector (no model, bit-reproducible)
  - sync:      batched, resumable, failure-isolated backfill
  - search:    pgvector similarity search over the stored vectors
  - api:       HTTP entry points used by the mobile app
"""
