"""Unified logger with scan_id tracing."""
import logging
import os
import uuid
from contextvars import ContextVar

scan_id_var: ContextVar[str] = ContextVar("scan_id", default="")

_factory_installed = False


def _install_record_factory() -> None:
    global _factory_installed
    if _factory_installed:
        return
    old_factory = logging.getLogRecordFactory()

    def record_factory(*args, **kwargs):
        record = old_factory(*args, **kwargs)
        record.scan_id = scan_id_var.get() or "-"
        return record

    logging.setLogRecordFactory(record_factory)
    _factory_installed = True


def get_logger(name: str) -> logging.Logger:
    _install_record_factory()
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler()
        fmt = logging.Formatter(
            "[%(asctime)s] [%(scan_id)s] %(levelname)s %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S"
        )
        handler.setFormatter(fmt)
        logger.addHandler(handler)
        logger.setLevel(os.getenv("LOG_LEVEL", "INFO").upper())
    return logger


def new_scan_id() -> str:
    sid = str(uuid.uuid4())[:8]
    scan_id_var.set(sid)
    return sid
