"""
utils/loggers.py

Purpose
-------
One place to configure the "kourosh_inventory" logger tree.

Public API
----------
- get_logger(name, file_path, level) -> logging.Logger
- log_event(logger, op, phase, message, extra: dict = {})
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Optional

from .. import config

__all__ = ["get_logger", "log_event"]

_ROOT_LOGGER_NAME = "kourosh_inventory"


class _JsonLineFormatter(logging.Formatter):
    """
    Minimal JSON-lines formatter:
      {"ts":"2025-09-16T12:00:01.123Z","level":"INFO","name":"kourosh_inventory","msg":"...","extra":{...}}
    """
    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        payload = {
            "ts": datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z"),
            "level": record.levelname,
            "name": record.name,
            "msg": record.getMessage(),
        }
        if hasattr(record, "extra_payload") and isinstance(record.extra_payload, dict):
            payload["extra"] = record.extra_payload
        return json.dumps(payload, ensure_ascii=False)


def get_logger(
    name: str = _ROOT_LOGGER_NAME,
    file_path: Optional[str] = None,
    level: Optional[str | int] = None,
) -> logging.Logger:
    """
    Return the package logger (or a child of it), configuring handlers once.

    The root package logger gets a plain stream handler and, when a file path
    is given (or KOUROSH_LOG_FILE is set), a JSON-lines file handler.
    Child loggers propagate to it and never get handlers of their own.
    """
    root = logging.getLogger(_ROOT_LOGGER_NAME)
    if not root.handlers:
        root.setLevel(level if level is not None else config.LOG_LEVEL)

        ch = logging.StreamHandler()
        ch.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s"))
        root.addHandler(ch)

        log_file = file_path or config.LOG_FILE
        if log_file:
            path = Path(log_file)
            path.parent.mkdir(parents=True, exist_ok=True)
            fh = logging.FileHandler(str(path), mode="a", encoding="utf-8", delay=True)
            fh.setFormatter(_JsonLineFormatter())
            root.addHandler(fh)

    if name == _ROOT_LOGGER_NAME:
        return root
    if not name.startswith(_ROOT_LOGGER_NAME + "."):
        name = f"{_ROOT_LOGGER_NAME}.{name}"
    return logging.getLogger(name)


def log_event(
    logger: logging.Logger,
    op: str,
    phase: str,
    message: str,
    extra: Dict[str, object] | None = None,
    level: int = logging.INFO,
) -> None:
    """
    Log a structured event line for an orchestrator milestone.

    Args:
        logger: Any logger in the package tree.
        op: Operation name, e.g. "sale", "installment_sale", "goods_receipt".
        phase: Phase within the operation, e.g. "commit", "rollback", "post".
        message: Short human-readable message.
        extra: Optional ids and amounts; never overrides op/phase.
        level: Logging level (default INFO).
    """
    extra_payload: Dict[str, object] = {"op": op, "phase": phase}
    if extra:
        for k, v in extra.items():
            if k not in extra_payload:
                extra_payload[k] = v

    logger.log(level, message, extra={"extra_payload": extra_payload})
