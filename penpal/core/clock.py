import threading
from datetime import datetime, timedelta, timezone

_lock = threading.Lock()
_last_issued = datetime.min


def utc_now() -> datetime:
    """Naive UTC timestamp, strictly increasing within the process.

    Used as the creation time of every stored row, so "newest first" ordering
    matches insertion order even when two writes land in the same microsecond.
    """
    global _last_issued
    with _lock:
        now = datetime.now(timezone.utc).replace(tzinfo=None)
        if now <= _last_issued:
            now = _last_issued + timedelta(microseconds=1)
        _last_issued = now
        return now
