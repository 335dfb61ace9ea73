"""
Embedding sync layer.

Keeps recipe_embeddings eventually consistent with the curated part of
dataset_recipes (no owning user, loves_count >= 50):
  - schema:   dataclasses shared by store / pipeline / entry points
  - store:    Supabase reads + batch upsert, errors raised as StoreError
  - pipeline: batching, per-record / per-batch failure isolation, reporting
"""
