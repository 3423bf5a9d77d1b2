"""Structured logging configuration for the Washroom Quote API."""
import json
import logging
import os
import sys
from datetime import datetime, timezone


LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_JSON = os.getenv("LOG_JSON", "true").lower() in ("1", "true", "yes")


class JSONFormatter(logging.Formatter):
    """JSON structured log formatter for production."""
    def format(self, record):
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }
        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)
        for extra in ("session_id", "submission_id", "using_defaults"):
            if hasattr(record, extra):
                log_entry[extra] = getattr(record, extra)
        return json.dumps(log_entry, default=str)


def setup_logging(level: str = LOG_LEVEL, json_output: bool = LOG_JSON):
    """Configure application logging."""
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    handler = logging.StreamHandler(sys.stdout)
    if json_output:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(
            "%(asctime)s [%(name)s] %(levelname)s: %(message)s"
        ))

    root.handlers = [handler]

    # Suppress noisy loggers
    for name in ["uvicorn.access", "httpcore", "httpx", "hpack"]:
        logging.getLogger(name).setLevel(logging.WARNING)
