"""Usage metering domain models."""

from dataclasses import dataclass
from datetime import datetime


@dataclass
class UsageRecord:
    """Fallback usage for one subject within the current TTL window."""

    subject_key: str
    count: int
    first_seen_at: datetime
