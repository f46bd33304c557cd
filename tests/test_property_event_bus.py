"""Property-based tests for the event bus using Hypothesis."""
from hypothesis import given, strategies as st

from tinybus.events import EventBus

event_names = st.text(min_size=1, max_size=20)


# =============================================================================
# Ordering Property Tests
# =============================================================================

@given(st.integers(min_value=1, max_value=30), st.integers())
def test_subscribers_run_in_registration_order(count, payload):
    """Property: N subscribers run exactly once each, in order, with the payload."""
    bus = EventBus()
    calls = []

    for index in range(count):
        bus.subscribe("evt", lambda x, i=index: calls.append((i, x)))

    bus.emit("evt", payload)
    assert calls == [(i, payload) for i in range(count)]


@given(st.lists(st.sampled_from(["a", "b", "c"]), max_size=30), event_names)
def test_emit_only_reaches_matching_event(names, target):
    """Property: emit never invokes subscribers of other events."""
    bus = EventBus()
    hits = []

    for name in names:
        bus.subscribe(name, lambda n=name: hits.append(n))

    bus.emit(target)
    assert all(n == target for n in hits)
    assert len(hits) == names.count(target)


@given(event_names)
def test_emit_unknown_event_never_changes_registry(name):
    """Property: emitting with no subscribers leaves the registry empty."""
    bus = EventBus()
    bus.emit(name)
    assert bus.event_names() == []


# =============================================================================
# Handle Property Tests
# =============================================================================

@given(st.integers(min_value=1, max_value=30))
def test_handles_are_unique(count):
    """Property: every subscribe call yields a distinct handle id."""
    bus = EventBus()

    def cb():
        pass

    handles = [bus.subscribe("evt", cb) for _ in range(count)]
    assert len({h.id for h in handles}) == count


@given(st.integers(min_value=1, max_value=20), st.data())
def test_unsubscribe_handle_is_idempotent(count, data):
    """Property: a handle removes one entry once, then returns False."""
    bus = EventBus()

    def cb():
        pass

    handles = [bus.subscribe("evt", cb) for _ in range(count)]
    target = data.draw(st.sampled_from(handles))

    assert bus.unsubscribe("evt", target) is True
    assert bus.subscriber_count("evt") == count - 1
    assert bus.unsubscribe("evt", target) is False
    assert bus.subscriber_count("evt") == count - 1
