"""
config.py

Purpose:
    - get_supabase_client(): create a Supabase Python client from env vars.
    - SyncSettings: tunables of the embedding sync job, read from env vars
      with defaults matching the deployed edge function.

Usage:
    from recipe_embeddings.config import get_supabase_client, SyncSettings
"""
from __future__ import annotations

import os
from dataclasses import dataclass

# Client connection details come from the environment, never hardcoded.
from supabase import create_client, Client

from dotenv import load_dotenv

load_dotenv()  # loads .env


def get_supabase_client() -> Client:
    """Create a Supabase client using env vars."""
    url = os.environ["SUPABASE_URL"]
    key = os.environ["SUPABASE_SERVICE_ROLE_KEY"]  # service role: sync writes recipe_embeddings
    return create_client(url, key)


# PostgREST's default max-rows; a larger candidate window would come back short.
MAX_ROWS_PER_REQUEST = 1000


@dataclass(frozen=True)
class SyncSettings:
    batch_size: int = 20
    max_recipes: int = 500
    min_loves: int = 50
    batch_delay_seconds: float = 0.5
    feature_flag: str = "dataset"

    def __post_init__(self) -> None:
        if self.batch_size < 1:
            raise ValueError(f"batch_size must be at least 1, got {self.batch_size}")
        if not 1 <= self.max_recipes <= MAX_ROWS_PER_REQUEST:
            raise ValueError(
                f"max_recipes must be between 1 and {MAX_ROWS_PER_REQUEST}, got {self.max_recipes}"
            )
        if self.batch_delay_seconds < 0:
            raise ValueError(
                f"batch_delay_seconds must not be negative, got {self.batch_delay_seconds}"
            )

    @classmethod
    def from_env(cls) -> "SyncSettings":
        """Read EMBEDDING_SYNC_* env vars. Raises ValueError on malformed values."""
        defaults = cls()
        return cls(
            batch_size=int(os.getenv("EMBEDDING_SYNC_BATCH_SIZE", defaults.batch_size)),
            max_recipes=int(os.getenv("EMBEDDING_SYNC_MAX_RECIPES", defaults.max_recipes)),
            min_loves=int(os.getenv("EMBEDDING_SYNC_MIN_LOVES", defaults.min_loves)),
            batch_delay_seconds=float(
                os.getenv("EMBEDDING_SYNC_BATCH_DELAY_SECONDS", defaults.batch_delay_seconds)
            ),
        )
