import time
from datetime import datetime, timezone


def utcnow() -> datetime:
    """Наивный UTC (колонки DateTime без таймзоны)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def now_ms() -> int:
    return int(time.time() * 1000)
