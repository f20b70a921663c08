from interviewiq.session.registry import SessionRegistry


class _Clock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


def test_registry_counts_active_connections():
    registry = SessionRegistry(clock=_Clock())

    registry.register("s1")
    registry.register("s2")
    assert registry.active_count() == 2

    registry.mark_inactive("s1")
    assert registry.active_count() == 1

    # unknown ids are ignored
    registry.touch("missing")
    registry.mark_inactive("missing")
    assert registry.active_count() == 1


def test_cleanup_removes_only_stale_inactive_connections():
    clock = _Clock()
    registry = SessionRegistry(clock=clock)
    registry.register("closed-long-ago")
    registry.register("closed-recently")
    registry.register("still-open")

    registry.mark_inactive("closed-long-ago")
    clock.now += 3600
    registry.mark_inactive("closed-recently")
    registry.touch("still-open")

    # ttl below 30s is clamped up to 30s
    assert registry.cleanup_inactive(ttl_sec=0) == 1
    assert registry.cleanup_inactive(ttl_sec=0) == 0

    clock.now += 31
    assert registry.cleanup_inactive(ttl_sec=0) == 1
    assert registry.cleanup_inactive(ttl_sec=0) == 0
    assert registry.active_count() == 1
