"""Observation cache and the freshness policies that drive it."""

from pwsdash.cache.policy import (
    FetchDecision,
    FetchRules,
    FixedGridPolicy,
    FreshnessPolicy,
    LongIntervalPolicy,
    ObservationAgePolicy,
    StaleAction,
    create_policy,
)
from pwsdash.cache.store import CacheSnapshot, ObservationCache, ReadWriteLock

__all__ = [
    "CacheSnapshot",
    "FetchDecision",
    "FetchRules",
    "FixedGridPolicy",
    "FreshnessPolicy",
    "LongIntervalPolicy",
    "ObservationAgePolicy",
    "ObservationCache",
    "ReadWriteLock",
    "StaleAction",
    "create_policy",
]
