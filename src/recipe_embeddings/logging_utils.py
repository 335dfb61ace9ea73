"""
logging_utils.py

Central logging utilities for the recipe embeddings service.

Log format (one line):
<RunId>|<Date>|<Time>|<Level>|<File:Line>|<Module.Func>|<ModulePurpose>|
<InvokingFunc>|<InvokingFuncPurpose>|<Detail>|<NextStep>|<Resolution>|<END>

Usage:
    logger = get_logger("pipeline")
    logger.info(
        "Something happened",
        extra={
            "invoking_func": "some_function",
            "invoking_purpose": "High-level purpose",
            "next_step": "What happens next",
            "resolution": "How to fix if error",
        },
    )
"""

from __future__ import annotations

import datetime
import logging
import uuid
from typing import Dict

RUN_ID: str = uuid.uuid4().hex[:8]


class StructuredFormatter(logging.Formatter):
    """
    Emits a single '|' separated line conforming to the log template above.
    """

    # High-level purposes by module name
    MODULE_PURPOSES: Dict[str, str] = {
        "feature_flags": "Read boolean feature flags from Supabase (fail-open)",
        "store": "Supabase reads of recipes/embeddings and batch upserts",
        "pipeline": "Incremental batch sync of dataset_recipes into recipe_embeddings",
        "recipe_search": "Vector search over recipe_embeddings via pgvector RPCs",
        "main": "HTTP entry points for embedding generation, sync and search",
        "sync_embeddings": "Command-line trigger for one embedding sync run",
    }

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        """Format log record into structured pipe-delimited format."""
        dt = datetime.datetime.fromtimestamp(record.created)
        date_str = dt.strftime("%Y-%m-%d")
        time_str = dt.strftime("%H:%M:%S")

        run_id = getattr(record, "run_id", RUN_ID)

        level = record.levelname
        code_location = f"{record.filename}:{record.lineno}"
        func_name = record.funcName
        module_name = record.module
        module_purpose = self.MODULE_PURPOSES.get(module_name, "")

        # Optional extra context supplied via logger calls
        invoking_func = getattr(record, "invoking_func", "")
        invoking_purpose = getattr(record, "invoking_purpose", "")
        next_step = getattr(record, "next_step", "")
        resolution = getattr(record, "resolution", "")

        detail = record.getMessage()
        if record.exc_info:
            detail = f"{detail} | EXC={record.exc_info[1]!r}"

        return (
            f"{run_id}|{date_str}|{time_str}|{level}|{code_location}|"
            f"{module_name}.{func_name}|{module_purpose}|"
            f"{invoking_func}|{invoking_purpose}|"
            f"{detail}|{next_step}|{resolution}|<END>"
        )


def init_logging(level: int = logging.INFO) -> None:
    """
    Initialize root logger once with our StructuredFormatter.

    Call get_logger() from modules instead of calling logging.basicConfig()
    everywhere, so configuration stays central.
    """
    root = logging.getLogger()
    if root.handlers:
        # Already configured (uvicorn, pytest, REPL) - avoid double handlers
        return

    handler = logging.StreamHandler()
    handler.setFormatter(StructuredFormatter())
    root.addHandler(handler)
    root.setLevel(level)


def get_logger(name: str) -> logging.Logger:
    """Return a logger configured with structured formatting."""
    init_logging()
    return logging.getLogger(name)
