"""Thread-safe cache of compiled regular expressions."""

from __future__ import annotations

import re
import threading

_cache: dict[str, re.Pattern[str]] = {}
_lock = threading.Lock()


def must_compile_and_cache(expression: str) -> re.Pattern[str]:
    """Compile ``expression`` once and return the same pattern on every call.

    Raises ``re.error`` when the expression is invalid.
    """
    pattern = _cache.get(expression)
    if pattern is not None:
        return pattern

    compiled = re.compile(expression)
    with _lock:
        return _cache.setdefault(expression, compiled)