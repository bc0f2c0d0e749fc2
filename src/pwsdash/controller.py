# filepath: src/pwsdash/controller.py
"""Fetch orchestration for the PWS dashboard."""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Final

from pwsdash.cache.policy import FreshnessPolicy, StaleAction
from pwsdash.cache.store import CacheSnapshot, ObservationCache
from pwsdash.utils.time import TimeUtils
from pwsdash.weather.api import WeatherAPI
from pwsdash.weather.errors import (
    CacheUnavailableError,
    StaleDataError,
    TimestampParseError,
    WeatherAPIError,
)
from pwsdash.weather.models import ObservationSet

logger: Final = logging.getLogger(__name__)


class DataSource(Enum):
    """Where the served observation set came from."""

    FETCHED = "fetched"
    CACHE = "cache"


@dataclass(frozen=True)
class ServedObservation:
    """Observation set handed to the page, with its provenance.

    ``error`` holds the fetch problem that was absorbed, if any (for
    example a StaleDataError for accepted stale data, or the failure that
    caused a fallback to the cache).
    """

    observations: ObservationSet
    fetched_at: datetime
    as_of: datetime
    source: DataSource
    error: WeatherAPIError | None = None

    @classmethod
    def from_snapshot(
        cls, snapshot: CacheSnapshot, error: WeatherAPIError | None = None
    ) -> ServedObservation:
        assert snapshot.observations is not None and snapshot.last_fetched is not None
        return cls(
            observations=snapshot.observations,
            fetched_at=snapshot.last_fetched,
            as_of=snapshot.data_age or snapshot.last_fetched,
            source=DataSource.CACHE,
            error=error,
        )


@dataclass
class _Candidate:
    observations: ObservationSet
    fetched_at: datetime
    as_of: datetime


class WeatherController:
    """Serves observations per request, fetching only when the policy says so.

    Per request: snapshot the cache → ask the policy → if a fetch is due,
    call the upstream with the policy's retry rules → cache accepted data →
    respond with fresh data, or the best cached copy when the fetch fails.
    Only an empty cache plus a failed fetch raises CacheUnavailableError.

    Concurrent requests that all decide to fetch are coalesced: one
    performs the upstream call while the others serve the cache, or wait
    for the result when nothing is cached yet.
    """

    def __init__(
        self,
        weather_api: WeatherAPI,
        policy: FreshnessPolicy,
        cache: ObservationCache | None = None,
        clock: Callable[[], datetime] = TimeUtils.now_utc,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """Initialize the controller.

        Args:
            weather_api: Upstream client
            policy: The single active freshness policy
            cache: Shared cache (default: a new empty cache)
            clock: Returns the current UTC time
            sleep: Blocks for the retry delay (seconds)
        """
        self.weather_api = weather_api
        self.policy = policy
        self.cache = cache or ObservationCache()
        self.clock = clock
        self.sleep = sleep
        self._fetch_lock = threading.Lock()
        # Completed fetches, and the error of the last one that produced nothing
        self._generation = 0
        self._last_failure: WeatherAPIError | None = None

    def get_observations(self) -> ServedObservation:
        """Return the observation set to display for this request.

        Raises:
            CacheUnavailableError: If nothing is cached and the fetch failed
        """
        now = self.clock()
        snapshot = self.cache.snapshot()
        decision = self.policy.decide(now, snapshot)
        logger.debug("Freshness decision at %s: %s", now.strftime("%H:%M:%S"), decision.value)

        if decision.must_fetch:
            logger.info("Fetching new weather data (%s)", decision.value)
            return self._fetch_coalesced(snapshot)

        if not snapshot.exists:
            # Outside the fetch window with nothing cached
            logger.info("No cached data (%s), forcing fallback fetch", decision.value)
            return self._fetch_coalesced(snapshot)

        assert snapshot.last_fetched is not None
        logger.info(
            "Using cached weather data (%s, fetched %s ago)",
            decision.value,
            TimeUtils.format_age(now - snapshot.last_fetched),
        )
        return ServedObservation.from_snapshot(snapshot)

    def _fetch_coalesced(self, seen: CacheSnapshot) -> ServedObservation:
        """Run one fetch at a time; late arrivals reuse its result.

        A request that waited on an empty cache shares the outcome of the
        fetch it waited for, including a failure.
        """
        generation = self._generation
        if not self._fetch_lock.acquire(blocking=not seen.exists):
            logger.info("Fetch already in flight, serving cached data")
            return ServedObservation.from_snapshot(seen)

        try:
            current = self.cache.snapshot()
            if current.exists and current.last_fetched != seen.last_fetched:
                logger.debug("Cache refreshed by a concurrent request, reusing it")
                return ServedObservation.from_snapshot(current)
            if not current.exists and self._generation != generation:
                last_error = self._last_failure
                logger.info("Concurrent fetch found no data, not fetching again")
                raise CacheUnavailableError(last_error=last_error) from last_error
            try:
                return self._fetch_with_retries()
            finally:
                self._generation += 1
        finally:
            self._fetch_lock.release()

    def _fetch_with_retries(self) -> ServedObservation:
        rules = self.policy.rules
        last_error: WeatherAPIError | None = None
        stale: _Candidate | None = None

        for attempt in range(1, rules.max_attempts + 1):
            self.cache.mark_attempt(self.clock())
            try:
                candidate = self._fetch_once()
                self._check_staleness(candidate)
            except StaleDataError as err:
                stale = candidate
                if rules.stale_action is StaleAction.ACCEPT:
                    logger.warning("%s; caching it anyway", err.message)
                    return self._accept(stale, error=err)
                last_error = err
                logger.warning("Attempt %d/%d rejected: %s", attempt, rules.max_attempts, err.message)
            except WeatherAPIError as err:
                last_error = err
                logger.warning(
                    "Attempt %d/%d failed: %s",
                    attempt,
                    rules.max_attempts,
                    self.weather_api.redact(str(err)),
                )
            else:
                return self._accept(candidate)

            if attempt < rules.max_attempts:
                self.sleep(rules.retry_delay.total_seconds())

        return self._fallback(last_error, stale)

    def _fetch_once(self) -> _Candidate:
        observations = self.weather_api.fetch_observations()
        fetched_at = self.clock()
        try:
            as_of = observations.current.observed_at
        except TimestampParseError as exc:
            logger.warning("Could not determine data freshness: %s; treating as fresh", exc)
            as_of = fetched_at
        return _Candidate(observations, fetched_at, as_of)

    def _check_staleness(self, candidate: _Candidate) -> None:
        ceiling = self.policy.rules.stale_ceiling
        age = candidate.fetched_at - candidate.as_of
        fresh = age <= ceiling
        logger.info(
            "Data observation time (UTC): %s, current time (UTC): %s, age: %s, fresh: %s",
            candidate.as_of.strftime("%H:%M:%S"),
            candidate.fetched_at.strftime("%H:%M:%S"),
            TimeUtils.format_age(age),
            fresh,
        )
        if not fresh:
            raise StaleDataError(candidate.as_of, age, ceiling, candidate.observations)

    def _accept(self, candidate: _Candidate, error: WeatherAPIError | None = None) -> ServedObservation:
        self.cache.replace(candidate.observations, candidate.fetched_at, candidate.as_of)
        return ServedObservation(
            observations=candidate.observations,
            fetched_at=candidate.fetched_at,
            as_of=candidate.as_of,
            source=DataSource.FETCHED,
            error=error,
        )

    def _fallback(
        self, last_error: WeatherAPIError | None, stale: _Candidate | None
    ) -> ServedObservation:
        snapshot = self.cache.snapshot()
        if snapshot.exists:
            assert snapshot.last_fetched is not None
            logger.warning(
                "Fetch failed, returning cached data from %s: %s",
                snapshot.last_fetched.strftime("%H:%M:%S"),
                self.weather_api.redact(str(last_error)),
            )
            return ServedObservation.from_snapshot(snapshot, error=last_error)

        if stale is not None:
            logger.warning("No cached data, serving stale observations rather than nothing")
            return self._accept(stale, error=last_error)

        logger.error("No weather data available: %s", self.weather_api.redact(str(last_error)))
        self._last_failure = last_error
        raise CacheUnavailableError(last_error=last_error) from last_error
