from datetime import datetime, timezone

__all__ = ["utc_now_iso"]


def utc_now_iso() -> str:
    """ISO-8601 UTC timestamp with fixed microsecond precision, so values sort as strings."""
    return datetime.now(timezone.utc).isoformat(timespec="microseconds")
