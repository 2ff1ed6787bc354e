"""UTC datetime utilities."""

from datetime import datetime, timedelta, timezone


def utc_now() -> datetime:
    """Return timezone-aware UTC now."""
    return datetime.now(timezone.utc)


def clearing_cutoff(now: datetime, window_days: int) -> datetime:
    """Orders paid at or before this instant have cleared the escrow window."""
    if window_days < 0:
        raise ValueError(f"window_days must be >= 0, got {window_days}")
    return now - timedelta(days=window_days)
