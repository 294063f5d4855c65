"""File-server hit counter shown on /admin/metrics."""
from __future__ import annotations

import threading
from functools import wraps

from flask import current_app


class HitCounter:
    def __init__(self) -> None:
        self._hits = 0
        self._lock = threading.Lock()

    def increment(self) -> int:
        with self._lock:
            self._hits += 1
            return self._hits

    def reset(self) -> None:
        with self._lock:
            self._hits = 0

    @property
    def value(self) -> int:
        with self._lock:
            return self._hits


def hits() -> HitCounter:
    return current_app.extensions["hits"]


def counted(fn):
    """Count one hit per call of the wrapped view."""
    @wraps(fn)
    def wrapper(*args, **kwargs):
        hits().increment()
        return fn(*args, **kwargs)

    return wrapper
