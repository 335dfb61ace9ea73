"""
feature_flags.py

Purpose:
    Read a boolean feature flag (feature_flags.name -> enabled) from Supabase.

    Server-side reads are fail-open: any error, a missing row or a NULL
    value resolves to `default` (True), so maintenance jobs keep running
    when the flag table is unavailable.
"""
from __future__ import annotations

from supabase import Client

from recipe_embeddings.logging_utils import get_logger

logger = get_logger("feature_flags")


def is_feature_enabled(client: Client, name: str, *, default: bool = True) -> bool:
    try:
        res = (
            client.table("feature_flags")
            .select("enabled")
            .eq("name", name)
            .single()
            .execute()
        )
    except Exception as exc:  # noqa: BLE001
        logger.warning(
            "Could not fetch feature flag '%s': %s",
            name,
            exc,
            extra={
                "invoking_func": "is_feature_enabled",
                "invoking_purpose": "Read feature flag before sync",
                "next_step": f"Continue with default enabled={default}",
                "resolution": "Check feature_flags table and service role access",
            },
        )
        return default

    row = res.data or {}
    enabled = row.get("enabled")
    if enabled is None:
        enabled = default

    logger.info(
        "Feature flag '%s': %s",
        name,
        "enabled" if enabled else "disabled",
        extra={
            "invoking_func": "is_feature_enabled",
            "invoking_purpose": "Read feature flag before sync",
            "next_step": "Return flag state to caller",
            "resolution": "",
        },
    )
    return bool(enabled)
