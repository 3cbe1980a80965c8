"""
utils/loggers.py

Console logging for the app plus structured JSON-lines events for the
ledger reconciliation steps.

Public API
----------
- get_logger(name) -> logging.Logger
- log_event(logger, op, phase, message, extra=None)
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Dict

__all__ = ["get_logger", "JsonLineFormatter", "log_event"]


def get_logger(name="wholesale_ledger"):
    logger = logging.getLogger(name)
    if not logger.handlers:
        logger.setLevel(logging.INFO)
        ch = logging.StreamHandler()
        ch.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s"))
        logger.addHandler(ch)
    return logger


class JsonLineFormatter(logging.Formatter):
    """
    Minimal JSON-lines formatter:
      {"ts":"2025-09-16T12:00:01.123Z","level":"INFO","name":"wholesale_ledger.ledger","msg":"...","extra":{...}}
    """
    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        payload = {
            "ts": datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z",
            "level": record.levelname,
            "name": record.name,
            "msg": record.getMessage(),
        }
        if hasattr(record, "extra_payload") and isinstance(record.extra_payload, dict):
            payload["extra"] = record.extra_payload
        return json.dumps(payload, ensure_ascii=False, default=str)


def log_event(
    logger: logging.Logger,
    op: str,
    phase: str,
    message: str,
    extra: Dict[str, object] | None = None,
    level: int = logging.INFO,
) -> None:
    """
    Log a structured event line.

    Args:
        logger: Any stdlib logger; attach JsonLineFormatter to a handler to get JSON output.
        op: Operation name, e.g. "ledger.create", "ledger.update", "ledger.delete".
        phase: Phase within the operation, e.g. "start", "reconcile", "persist".
        message: Human-readable short message.
        extra: Optional additional key/values (ledger id, product counts, amounts).
        level: Logging level (default INFO).
    """
    extra_payload = {"op": op, "phase": phase}
    if extra:
        # Merge without overwriting the required keys
        for k, v in extra.items():
            if k not in extra_payload:
                extra_payload[k] = v

    logger.log(level, message, extra={"extra_payload": extra_payload})
