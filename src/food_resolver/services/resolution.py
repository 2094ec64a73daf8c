"""Fan-out/fallback orchestration for food resolution."""

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import StrEnum

from food_resolver.domain.errors import NoResultsError, ProviderError, ProviderErrorKind
from food_resolver.domain.food import (
    FoodQuery,
    ProviderId,
    RawResult,
    ResolutionResult,
)
from food_resolver.services.confidence import score
from food_resolver.services.estimator import FallbackEstimator
from food_resolver.services.ledger import UsageLedger
from food_resolver.services.merger import dedup_key, merge
from food_resolver.services.providers import ProviderClient, supports

_logger = logging.getLogger(__name__)


class ResolutionState(StrEnum):
    """Lifecycle of a single resolution request."""

    QUERYING = "QUERYING"
    MERGING = "MERGING"
    ACCEPTED = "ACCEPTED"
    ESTIMATING = "ESTIMATING"
    DEGRADED = "DEGRADED"
    DONE = "DONE"


@dataclass(frozen=True)
class _ProviderOutcome:
    provider_id: ProviderId
    results: list[RawResult] = field(default_factory=list)
    error: ProviderError | None = None


@dataclass
class ResolutionOrchestrator:
    """Queries providers, ranks their answers and falls back to estimates."""

    providers: Sequence[ProviderClient]
    estimator: FallbackEstimator
    ledger: UsageLedger
    accept_threshold: float = 0.6
    provider_timeout_seconds: float = 5.0
    merge_limit: int | None = 10

    async def resolve(self, query: FoodQuery, subject_key: str) -> ResolutionResult:
        """Resolve a query into ranked nutrition records."""
        state = ResolutionState.QUERYING
        _logger.debug("Resolving %s query %r: %s", query.kind, query.value, state)
        outcomes = await self._query_providers(query)
        degraded = [outcome.provider_id for outcome in outcomes if outcome.error]

        state = ResolutionState.MERGING
        _logger.debug("Resolving %r: %s", query.value, state)
        candidates = [
            score(raw, outcome.provider_id)
            for outcome in outcomes
            for raw in outcome.results
        ]
        merged = merge(candidates, limit=self.merge_limit)

        if merged and merged[0].confidence >= self.accept_threshold:
            state = ResolutionState.ACCEPTED
            _logger.debug(
                "Resolving %r: %s (top=%.2f from %s)",
                query.value,
                state,
                merged[0].confidence,
                merged[0].source,
            )
            return ResolutionResult(
                items=merged, degraded_providers=degraded, state=state.value
            )

        state = ResolutionState.ESTIMATING
        _logger.debug("Resolving %r: %s", query.value, state)
        if self.ledger.try_consume(subject_key):
            estimate = self.estimator.estimate(query.value, query.quantity, query.unit)
            # The estimate stands in for any weaker hit on the same food.
            key = dedup_key(estimate)
            others = [food for food in merged if dedup_key(food) != key]
            return ResolutionResult(
                items=[estimate, *others],
                estimated=True,
                degraded_providers=degraded,
                state=state.value,
            )

        _logger.info("Fallback quota exhausted for subject %s", subject_key)
        if not merged:
            raise NoResultsError(
                f"No nutrition data found for {query.value!r}", quota_exceeded=True
            )
        return ResolutionResult(
            items=merged,
            quota_exceeded=True,
            degraded_providers=degraded,
            state=ResolutionState.DEGRADED.value,
        )

    async def _query_providers(self, query: FoodQuery) -> list[_ProviderOutcome]:
        """Query every applicable provider concurrently and wait for all."""
        applicable = [p for p in self.providers if supports(p, query)]
        outcomes = await asyncio.gather(
            *(self._query_one(provider, query) for provider in applicable)
        )
        return list(outcomes)

    async def _query_one(
        self, provider: ProviderClient, query: FoodQuery
    ) -> _ProviderOutcome:
        timeout = self.provider_timeout_seconds
        try:
            results = await asyncio.wait_for(provider.search(query, timeout), timeout)
        except TimeoutError:
            error = ProviderError(
                provider.provider_id,
                ProviderErrorKind.TIMEOUT,
                f"no answer within {timeout:g}s",
            )
        except ProviderError as exc:
            error = exc
        except Exception as exc:
            error = ProviderError(
                provider.provider_id, ProviderErrorKind.MALFORMED_RESPONSE, repr(exc)
            )
        else:
            return _ProviderOutcome(provider_id=provider.provider_id, results=results)
        _logger.warning("Degraded coverage for %r: %s", query.value, error)
        return _ProviderOutcome(provider_id=provider.provider_id, error=error)

