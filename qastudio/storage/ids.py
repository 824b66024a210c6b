"""Session and script identifiers."""

from __future__ import annotations

import threading
import time

_lock = threading.Lock()
_last_issued = 0


def issue_id() -> str:
    """Return a new id, unique and strictly increasing within this process.

    Ids are millisecond wall-clock values. When two ids are requested within
    the same millisecond (or the clock steps backwards) the previous id plus
    one is used instead.
    """
    global _last_issued
    with _lock:
        candidate = int(time.time() * 1000)
        if candidate <= _last_issued:
            candidate = _last_issued + 1
        _last_issued = candidate
        return str(candidate)


def now_ms() -> int:
    """Current wall-clock time in milliseconds, the unit used for timestamps."""
    return int(time.time() * 1000)
