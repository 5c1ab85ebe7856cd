"""
Timestamp helpers for recorded answers.

Every Response carries a timezone-aware UTC timestamp. Callers may supply
their own (often naive, from a transport layer) or let the engine stamp the
answer when it is recorded.
"""
from datetime import datetime, timezone
from typing import Optional


def utc_now() -> datetime:
    """Current time in UTC. Patch this, not datetime, to freeze the clock."""
    return datetime.now(timezone.utc)


def answer_timestamp(dt: Optional[datetime] = None) -> datetime:
    """
    Normalize the timestamp of an answer to aware UTC.

    Args:
        dt: Caller-supplied timestamp. None means "now". Naive values are
            taken to be UTC already; aware values in another zone are
            converted.

    Returns:
        A timezone-aware datetime in UTC.
    """
    if dt is None:
        return utc_now()
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)
