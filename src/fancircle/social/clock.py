from __future__ import annotations

import threading
import time

_lock = threading.Lock()
_last = 0


def now_ms() -> int:
    """Epoch milliseconds, strictly increasing within this process."""
    global _last
    with _lock:
        t = time.time_ns() // 1_000_000
        _last = t if t > _last else _last + 1
        return _last
