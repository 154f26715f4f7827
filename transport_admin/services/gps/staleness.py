"""
Read-time freshness of a device location.

Never stored: always derived from ``last_gps_update`` and the caller's ``now``.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from transport_admin.models.base.enums import StalenessStatus

ONLINE_MINUTES = 2
RECENT_MINUTES = 5


@dataclass(frozen=True)
class Staleness:
    status: StalenessStatus
    minutes_ago: Optional[int]
    last_seen: str


def last_seen_label(minutes_ago: Optional[int]) -> str:
    if minutes_ago is None:
        return "Never"
    if minutes_ago < 1:
        return "Just now"
    if minutes_ago < 60:
        return f"{minutes_ago} min ago"
    hours = minutes_ago // 60
    if hours < 24:
        return f"{hours} hr ago"
    return f"{hours // 24} days ago"


def classify(last_update: Optional[datetime], now: datetime) -> Staleness:
    """online within 2 minutes, recent within 5, otherwise offline."""
    if last_update is None:
        return Staleness(StalenessStatus.OFFLINE, None, last_seen_label(None))

    minutes_ago = max(int((now - last_update).total_seconds() // 60), 0)
    if minutes_ago <= ONLINE_MINUTES:
        status = StalenessStatus.ONLINE
    elif minutes_ago <= RECENT_MINUTES:
        status = StalenessStatus.RECENT
    else:
        status = StalenessStatus.OFFLINE
    return Staleness(status, minutes_ago, last_seen_label(minutes_ago))
