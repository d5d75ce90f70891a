import threading
import time

from nlql.schema.cache import SchemaCache
from nlql.schema.models import SchemaSnapshot


def _snapshot(connection_id="sqlite:///a.db"):
    return SchemaSnapshot(connection_id=connection_id, dialect="sqlite", tables=())


class FakeClock:
    def __init__(self):
        self.now = 100.0

    def __call__(self):
        return self.now


class TestSchemaCache:

    def test_hit_within_ttl(self):
        clock = FakeClock()
        cache = SchemaCache(ttl_sec=30, clock=clock)
        calls = []

        def build():
            calls.append(1)
            return _snapshot()

        first = cache.get_or_build("a", build)
        clock.now += 10
        second = cache.get_or_build("a", build)
        assert first is second
        assert len(calls) == 1

    def test_expires_after_ttl(self):
        clock = FakeClock()
        cache = SchemaCache(ttl_sec=30, clock=clock)
        builds = []
        cache.get_or_build("a", lambda: builds.append(1) or _snapshot())
        clock.now += 31
        cache.get_or_build("a", lambda: builds.append(1) or _snapshot())
        assert len(builds) == 2

    def test_keys_are_independent(self):
        cache = SchemaCache(ttl_sec=30)
        a = cache.get_or_build("a", lambda: _snapshot("a"))
        b = cache.get_or_build("b", lambda: _snapshot("b"))
        assert a.connection_id == "a"
        assert b.connection_id == "b"

    def test_invalidate(self):
        cache = SchemaCache(ttl_sec=30)
        builds = []
        cache.get_or_build("a", lambda: builds.append(1) or _snapshot())
        cache.invalidate("a")
        cache.get_or_build("a", lambda: builds.append(1) or _snapshot())
        assert len(builds) == 2

    def test_concurrent_misses_build_once(self):
        cache = SchemaCache(ttl_sec=30)
        builds = []
        start = threading.Event()

        def build():
            builds.append(1)
            time.sleep(0.05)
            return _snapshot()

        results = []

        def worker():
            start.wait()
            results.append(cache.get_or_build("a", build))

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        start.set()
        for t in threads:
            t.join()

        assert len(builds) == 1
        assert len(results) == 8
        assert all(r is results[0] for r in results)
