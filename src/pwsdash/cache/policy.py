"""Freshness policies deciding when a request must hit the upstream API.

Three mutually exclusive policies exist; exactly one is active per process,
selected by ``UserSettings.freshness_policy``:

- ``fixed-grid``: fetch only in a short buffer after each 5-minute
  publishing boundary, once per boundary.
- ``observation-age``: fetch when the cached observation is older than
  5 minutes, at most once every 30 seconds.
- ``long-interval``: fetch at most once every 30 minutes.

``decide()`` is pure: it reads the snapshot and ``now`` and nothing else.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Final, Protocol, runtime_checkable

from pwsdash.cache.store import CacheSnapshot
from pwsdash.settings import ConfigError, UserSettings
from pwsdash.utils.time import TimeUtils

PUBLISH_INTERVAL: Final = timedelta(minutes=5)


class FetchDecision(Enum):
    """Outcome of a freshness check."""

    NO_CACHE = "no-cache"
    WINDOW_MISSED = "window-missed"
    RATE_LIMITED = "rate-limited"
    STALE = "cache-stale"
    FRESH = "cache-fresh"

    @property
    def must_fetch(self) -> bool:
        """Whether the request must go upstream before responding."""
        return self in (FetchDecision.NO_CACHE, FetchDecision.STALE)


class StaleAction(Enum):
    """What to do with a successfully parsed but stale observation set."""

    RETRY = "retry"  # reject, retry, then fall back to the cache
    ACCEPT = "accept"  # cache it and report the staleness


@dataclass(frozen=True)
class FetchRules:
    """Retry and staleness rules that travel with a policy."""

    max_retries: int = 0
    retry_delay: timedelta = timedelta(seconds=5)
    stale_ceiling: timedelta = timedelta(minutes=35)
    stale_action: StaleAction = StaleAction.RETRY

    @property
    def max_attempts(self) -> int:
        """Total upstream attempts per orchestrated fetch."""
        return 1 + max(self.max_retries, 0)


@runtime_checkable
class FreshnessPolicy(Protocol):
    """Protocol implemented by every freshness policy."""

    name: str
    rules: FetchRules

    def decide(self, now: datetime, snapshot: CacheSnapshot) -> FetchDecision:
        """Decide whether ``snapshot`` can be served at ``now``."""
        ...


class FixedGridPolicy:
    """Fetch once per 5-minute publishing window, inside a short buffer.

    Outside the buffer the answer is always WINDOW_MISSED, even with an
    empty cache; the orchestrator forces a fallback fetch in that case.
    """

    name = "fixed-grid"

    def __init__(
        self,
        buffer: timedelta = timedelta(seconds=30),
        rules: FetchRules | None = None,
    ) -> None:
        self.buffer = buffer
        self.rules = rules or FetchRules(
            max_retries=3,
            retry_delay=timedelta(seconds=5),
            stale_ceiling=timedelta(minutes=5),
            stale_action=StaleAction.RETRY,
        )

    def window_start(self, now: datetime) -> datetime:
        """Start of the publishing window containing ``now``."""
        return TimeUtils.truncate(now, PUBLISH_INTERVAL)

    def in_window(self, now: datetime) -> bool:
        """Whether ``now`` falls in the fetch buffer after a boundary."""
        since_boundary = now - self.window_start(now)
        return timedelta(0) <= since_boundary <= self.buffer

    def decide(self, now: datetime, snapshot: CacheSnapshot) -> FetchDecision:
        if not self.in_window(now):
            return FetchDecision.WINDOW_MISSED
        if not snapshot.exists or snapshot.last_fetched is None:
            return FetchDecision.NO_CACHE
        if TimeUtils.truncate(snapshot.last_fetched, PUBLISH_INTERVAL) != self.window_start(now):
            return FetchDecision.STALE
        return FetchDecision.FRESH


class ObservationAgePolicy:
    """Fetch when the cached observation itself is too old.

    A spacing floor keeps a stale-but-unchanged upstream from being
    queried on every request.
    """

    name = "observation-age"

    def __init__(
        self,
        max_age: timedelta = timedelta(minutes=5),
        floor: timedelta = timedelta(seconds=30),
        rules: FetchRules | None = None,
    ) -> None:
        self.max_age = max_age
        self.floor = floor
        self.rules = rules or FetchRules(
            max_retries=0,
            stale_ceiling=max_age,
            stale_action=StaleAction.ACCEPT,
        )

    def decide(self, now: datetime, snapshot: CacheSnapshot) -> FetchDecision:
        if not snapshot.exists:
            return FetchDecision.NO_CACHE
        as_of = snapshot.data_age or snapshot.last_fetched
        if as_of is not None and now - as_of <= self.max_age:
            return FetchDecision.FRESH
        last = snapshot.last_fetch_activity
        if last is not None and now - last < self.floor:
            return FetchDecision.RATE_LIMITED
        return FetchDecision.STALE


class LongIntervalPolicy:
    """Fetch at most once per interval, whatever the data looks like."""

    name = "long-interval"

    def __init__(
        self,
        interval: timedelta = timedelta(minutes=30),
        rules: FetchRules | None = None,
    ) -> None:
        self.interval = interval
        self.rules = rules or FetchRules(
            max_retries=0,
            stale_ceiling=timedelta(minutes=35),
            stale_action=StaleAction.RETRY,
        )

    def decide(self, now: datetime, snapshot: CacheSnapshot) -> FetchDecision:
        if not snapshot.exists:
            return FetchDecision.NO_CACHE
        last = snapshot.last_fetch_activity
        if last is not None and now - last < self.interval:
            return FetchDecision.RATE_LIMITED
        return FetchDecision.STALE


def create_policy(settings: UserSettings) -> FreshnessPolicy:
    """Build the single freshness policy named in settings.

    Args:
        settings: User settings with ``freshness_policy`` and fetch buffer

    Returns:
        The configured policy

    Raises:
        ConfigError: If the policy name is unknown
    """
    name = settings.freshness_policy
    if name == FixedGridPolicy.name:
        return FixedGridPolicy(buffer=timedelta(seconds=settings.fetch_buffer_seconds))
    if name == ObservationAgePolicy.name:
        return ObservationAgePolicy()
    if name == LongIntervalPolicy.name:
        return LongIntervalPolicy()
    raise ConfigError(f"Unknown freshness policy: {name}")
