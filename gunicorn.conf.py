from __future__ import annotations

import logging
import multiprocessing
import os
import sys
from typing import Final

LOGGER: Final = logging.getLogger("gunicorn.config")


def _env_int(key: str, default: int) -> int:
    """Parse integer environment values with sane fallbacks."""
    try:
        return int(os.environ.get(key, default))
    except (TypeError, ValueError):
        return default


def _configured_workers() -> int:
    """Respect explicit worker counts while preventing overcommit."""
    cpu_count = max(multiprocessing.cpu_count(), 1)
    auto_workers = max(2, min(4, cpu_count))

    if "GUNICORN_WORKERS" in os.environ:
        return _env_int("GUNICORN_WORKERS", auto_workers)
    if "WEB_CONCURRENCY" in os.environ:
        return _env_int("WEB_CONCURRENCY", auto_workers)
    return auto_workers


# Server socket
bind = f"0.0.0.0:{os.environ.get('PORT', 5000)}"

# Sync workers: each split commits vessel by vessel and holds its request
worker_class = os.environ.get("GUNICORN_WORKER_CLASS", "sync")
workers = _configured_workers()

timeout = _env_int("GUNICORN_TIMEOUT", 60)
keepalive = _env_int("GUNICORN_KEEPALIVE", 5)

max_requests = _env_int("GUNICORN_MAX_REQUESTS", 2000)
max_requests_jitter = _env_int("GUNICORN_MAX_REQUESTS_JITTER", 100)

# Logging
access_log_format = '%(h)s "%(r)s" %(s)s %(b)s %(D)s'
errorlog = "-"
accesslog = "-"
loglevel = os.environ.get("GUNICORN_LOG_LEVEL", "info")

proc_name = "vinetrack"

sys.stderr.write(f"Gunicorn bind={bind} class={worker_class} workers={workers} timeout={timeout}s\n")
