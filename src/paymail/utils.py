from datetime import UTC, datetime


def now() -> datetime:
    return datetime.now(UTC)


def now_ms() -> int:
    """Current wall-clock time as epoch milliseconds."""
    return int(now().timestamp() * 1000)
