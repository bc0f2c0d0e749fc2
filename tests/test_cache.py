import threading
from collections.abc import Callable
from datetime import timedelta

import pytest

from conftest import OBS_TIME
from pwsdash.cache.store import ObservationCache, ReadWriteLock
from pwsdash.weather.errors import EmptyObservationsError
from pwsdash.weather.models import ObservationSet


def test_new_cache_is_empty() -> None:
    snap = ObservationCache().snapshot()
    assert snap.exists is False
    assert snap.observations is None
    assert snap.last_fetched is None
    assert snap.data_age is None


def test_snapshot_is_idempotent(observation_set: ObservationSet) -> None:
    cache = ObservationCache()
    cache.replace(observation_set, OBS_TIME + timedelta(minutes=1), OBS_TIME)
    assert cache.snapshot() == cache.snapshot()


def test_replace_then_snapshot_round_trips(observation_set: ObservationSet) -> None:
    cache = ObservationCache()
    fetched = OBS_TIME + timedelta(minutes=1)
    cache.replace(observation_set, fetched, OBS_TIME)

    snap = cache.snapshot()
    assert snap.exists
    assert snap.observations is observation_set
    assert snap.observations.model_dump_json() == observation_set.model_dump_json()
    assert snap.last_fetched == fetched
    assert snap.data_age == OBS_TIME


def test_replace_is_wholesale(make_observations: Callable[..., ObservationSet]) -> None:
    cache = ObservationCache()
    first = make_observations(imperial={"temp": 60})
    second = make_observations(obs_time=OBS_TIME + timedelta(minutes=5), imperial={"temp": 61})

    cache.replace(first, OBS_TIME, OBS_TIME)
    cache.replace(second, OBS_TIME + timedelta(minutes=6), OBS_TIME + timedelta(minutes=5))

    snap = cache.snapshot()
    assert snap.observations is second
    assert snap.data_age == OBS_TIME + timedelta(minutes=5)


def test_empty_set_is_never_cached() -> None:
    cache = ObservationCache()
    with pytest.raises(EmptyObservationsError):
        cache.replace(ObservationSet(), OBS_TIME, OBS_TIME)
    assert cache.snapshot().exists is False


def test_mark_attempt_leaves_data_untouched(observation_set: ObservationSet) -> None:
    cache = ObservationCache()
    cache.replace(observation_set, OBS_TIME, OBS_TIME)
    attempt = OBS_TIME + timedelta(minutes=30)
    cache.mark_attempt(attempt)

    snap = cache.snapshot()
    assert snap.observations is observation_set
    assert snap.last_fetched == OBS_TIME
    assert snap.last_attempt == attempt
    assert snap.last_fetch_activity == attempt


def test_concurrent_snapshots_never_see_torn_state(
    make_observations: Callable[..., ObservationSet],
) -> None:
    """Every snapshot's data and timestamps come from the same replace()."""
    versions = [
        (make_observations(obs_time=OBS_TIME + timedelta(minutes=i)), i) for i in range(50)
    ]
    cache = ObservationCache()
    cache.replace(versions[0][0], OBS_TIME + timedelta(minutes=0, seconds=30), OBS_TIME)

    stop = threading.Event()
    torn: list[str] = []

    def reader() -> None:
        while not stop.is_set():
            snap = cache.snapshot()
            assert snap.observations is not None
            as_of = snap.observations.current.observed_at
            if snap.data_age != as_of or snap.last_fetched != as_of + timedelta(seconds=30):
                torn.append(f"{snap.data_age} vs {as_of}")

    def writer() -> None:
        for obs_set, i in versions[1:]:
            as_of = OBS_TIME + timedelta(minutes=i)
            cache.replace(obs_set, as_of + timedelta(seconds=30), as_of)

    readers = [threading.Thread(target=reader) for _ in range(8)]
    for t in readers:
        t.start()
    writer_thread = threading.Thread(target=writer)
    writer_thread.start()
    writer_thread.join(timeout=10)
    stop.set()
    for t in readers:
        t.join(timeout=10)

    assert torn == []
    assert cache.snapshot().data_age == OBS_TIME + timedelta(minutes=49)


def test_rwlock_allows_concurrent_readers() -> None:
    lock = ReadWriteLock()
    both_inside = threading.Barrier(2, timeout=5)

    def read() -> None:
        with lock.read():
            both_inside.wait()

    threads = [threading.Thread(target=read) for _ in range(2)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=5)
    assert not both_inside.broken


def test_rwlock_writer_excludes_readers() -> None:
    lock = ReadWriteLock()
    events: list[str] = []
    writer_in = threading.Event()
    release_writer = threading.Event()

    def write() -> None:
        with lock.write():
            events.append("write-start")
            writer_in.set()
            release_writer.wait(timeout=5)
            events.append("write-end")

    def read() -> None:
        with lock.read():
            events.append("read")

    w = threading.Thread(target=write)
    w.start()
    writer_in.wait(timeout=5)
    r = threading.Thread(target=read)
    r.start()
    r.join(timeout=0.2)
    assert r.is_alive()  # blocked behind the writer
    release_writer.set()
    w.join(timeout=5)
    r.join(timeout=5)
    assert events == ["write-start", "write-end", "read"]
