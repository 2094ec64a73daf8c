"""Supabase-backed usage ledger.

The check-and-increment runs inside Postgres functions so concurrent
workers share one quota per subject:

- ``consume_fallback_usage(p_subject_key, p_quota, p_ttl_seconds) -> boolean``
- ``fallback_usage_remaining(p_subject_key, p_quota, p_ttl_seconds) -> integer``
- ``reset_fallback_usage(p_subject_key) -> void``
- ``sweep_fallback_usage(p_ttl_seconds) -> integer``
"""

from dataclasses import dataclass
from datetime import timedelta

from supabase import Client

from food_resolver.services.ledger import UsageLedger


@dataclass
class SupabaseUsageLedger(UsageLedger):
    """Supabase implementation of fallback usage metering."""

    client: Client
    quota: int
    ttl: timedelta

    def try_consume(self, subject_key: str) -> bool:
        """Record one use through the atomic consume function."""
        response = self.client.rpc(
            "consume_fallback_usage",
            {
                "p_subject_key": subject_key,
                "p_quota": self.quota,
                "p_ttl_seconds": self._ttl_seconds,
            },
        ).execute()
        return bool(response.data)

    def remaining(self, subject_key: str) -> int:
        """Return the uses left for the subject."""
        response = self.client.rpc(
            "fallback_usage_remaining",
            {
                "p_subject_key": subject_key,
                "p_quota": self.quota,
                "p_ttl_seconds": self._ttl_seconds,
            },
        ).execute()
        if response.data is None:
            return self.quota
        return max(0, int(response.data))

    def reset(self, subject_key: str) -> None:
        """Delete the subject's usage row."""
        self.client.rpc(
            "reset_fallback_usage", {"p_subject_key": subject_key}
        ).execute()

    def sweep(self) -> int:
        """Delete expired usage rows."""
        response = self.client.rpc(
            "sweep_fallback_usage", {"p_ttl_seconds": self._ttl_seconds}
        ).execute()
        return int(response.data or 0)

    @property
    def _ttl_seconds(self) -> int:
        return int(self.ttl.total_seconds())
