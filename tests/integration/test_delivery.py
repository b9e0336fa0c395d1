"""Integration tests for delivery rounds, callback isolation and disconnect."""

import gc
import logging

import pytest

from deltawatch import (
    ChangeSummary,
    Observer,
    create_observer,
    deliver_all,
    live_observers,
)


@pytest.mark.integration
@pytest.mark.delivery
def test_no_pending_changes_means_no_callback(observer, recorder):
    """deliver() with nothing pending does not invoke the callback"""
    model = {"a": 1}
    observer.observe_object(model)
    observer.observe_path(model, "a")
    observer.deliver()
    observer.deliver()
    assert recorder.count == 0


@pytest.mark.integration
@pytest.mark.delivery
def test_mutations_are_not_delivered_until_asked(observer, recorder):
    """Writes trigger nothing on their own"""
    model = {}
    observer.observe_object(model)
    model["a"] = 1
    assert recorder.count == 0
    observer.deliver()
    assert recorder.count == 1


@pytest.mark.integration
@pytest.mark.delivery
def test_callback_errors_do_not_stop_other_observers(recorder, caplog):
    """A raising callback is logged and the other observers still deliver"""

    def explode(summaries):
        recorder(summaries)
        raise RuntimeError("Bad")

    model = {"id": 1}
    observers = [Observer(recorder)] + [Observer(explode) for _ in range(3)]
    for obs in observers:
        obs.observe_object(model)

    model["id"] = 2
    model["id2"] = 2

    with caplog.at_level(logging.ERROR, logger="deltawatch.observer"):
        for obs in observers:
            obs.deliver()

    assert recorder.count == 4
    assert caplog.text.count("Error in observer callback") == 3


@pytest.mark.integration
@pytest.mark.delivery
def test_callback_errors_can_be_silenced(caplog):
    """log_callback_errors=False swallows the error without logging"""

    def explode(summaries):
        raise RuntimeError("Bad")

    observer = Observer(explode, log_callback_errors=False)
    model = {}
    observer.observe_object(model)
    model["a"] = 1

    with caplog.at_level(logging.ERROR, logger="deltawatch.observer"):
        observer.deliver()
    assert caplog.text == ""


@pytest.mark.integration
@pytest.mark.delivery
def test_observers_are_independent(recorder):
    """Each observer keeps its own snapshots"""
    other = []
    first = Observer(recorder)
    second = Observer(other.append)
    model = {}
    first.observe_object(model)
    second.observe_object(model)

    model["a"] = 1
    first.deliver()
    model["b"] = 2
    second.deliver()

    assert recorder.last[0].added == {"a": 1}
    assert other[0][0].added == {"a": 1, "b": 2}


@pytest.mark.integration
@pytest.mark.delivery
def test_single_round_by_default():
    """Changes made by the callback wait for the next delivery"""
    arr = [0, 1, 2, 3, 4]
    calls = []

    def callback(summaries):
        calls.append(summaries)
        if arr:
            arr.pop(0)

    observer = Observer(callback)
    observer.observe_array(arr)
    arr.pop(0)
    observer.deliver()

    assert len(calls) == 1
    assert arr == [2, 3, 4]


@pytest.mark.integration
@pytest.mark.delivery
def test_redeliver_until_stable():
    """Redelivery keeps going while the callback produces changes"""
    arr = [0, 1, 2, 3, 4]
    calls = []

    def callback(summaries):
        calls.append(summaries)
        if arr:
            arr.pop(0)

    observer = Observer(callback, redeliver_until_stable=True)
    observer.observe_array(arr)
    arr.pop(0)
    observer.deliver()

    assert len(calls) == 5
    assert arr == []


@pytest.mark.integration
@pytest.mark.delivery
def test_redelivery_rounds_are_capped(caplog):
    """A callback that always mutates stops at max_delivery_rounds"""
    model = {"n": 0}
    calls = []

    def callback(summaries):
        calls.append(summaries)
        model["n"] += 1

    observer = Observer(callback, redeliver_until_stable=True, max_delivery_rounds=3)
    observer.observe_object(model)
    model["n"] = 1

    with caplog.at_level(logging.WARNING, logger="deltawatch.observer"):
        observer.deliver()

    assert len(calls) == 3
    assert "after 3 delivery rounds" in caplog.text


# ============================================================================
# DISCONNECT
# ============================================================================


@pytest.mark.integration
@pytest.mark.delivery
def test_disconnect_returns_pending_summaries(recorder):
    """Pending changes are handed back instead of delivered"""
    observer = Observer(recorder)
    model = {}
    observer.observe_object(model)
    model["a"] = 1

    pending = observer.disconnect()
    assert pending == [ChangeSummary(model, added={"a": 1}, removed={}, changed={})]
    assert recorder.count == 0
    assert not observer.connected


@pytest.mark.integration
@pytest.mark.delivery
def test_disconnect_without_pending_changes(recorder):
    """Nothing pending means None"""
    observer = Observer(recorder)
    observer.observe_object({})
    assert observer.disconnect() is None
    assert observer.disconnect() is None


@pytest.mark.integration
@pytest.mark.delivery
def test_disconnected_observer_ignores_everything(recorder):
    """Registration after disconnect is a no-op"""
    observer = Observer(recorder)
    observer.disconnect()

    model = {"a": 1}
    observer.observe_object(model)
    assert observer.observe_path(model, "a") == 1
    assert observer.bind(model, "a", model, "b") is None
    model["a"] = 2
    observer.deliver()

    assert recorder.count == 0
    assert "b" not in model


@pytest.mark.integration
@pytest.mark.delivery
def test_context_manager_disconnects(recorder):
    """Leaving the with block disconnects the observer"""
    with Observer(recorder) as observer:
        observer.observe_object({})
        assert observer.connected
    assert not observer.connected
    assert observer not in live_observers()


# ============================================================================
# DELIVER ALL
# ============================================================================


@pytest.mark.integration
@pytest.mark.delivery
def test_deliver_all(recorder):
    """deliver_all flushes every live observer"""
    first = create_observer(recorder)
    second = create_observer(recorder)
    a, b = {}, {}
    first.observe_object(a)
    second.observe_object(b)

    a["x"] = 1
    b["y"] = 2
    deliver_all()

    assert recorder.count == 2
    assert [call[0].object for call in recorder.calls] == [a, b]


@pytest.mark.integration
@pytest.mark.delivery
def test_deliver_all_isolates_failing_observers(recorder, caplog):
    """An observer raising during delivery does not stop the others"""
    failing = create_observer(recorder, max_cascade_passes=2, cascade_limit_policy="raise")
    healthy = create_observer(recorder)

    class Counter:
        def __init__(self):
            self.reads = 0

        @property
        def value(self):
            self.reads += 1
            return self.reads

    failing.bind(Counter(), "value", {}, "value")
    model = {}
    healthy.observe_object(model)
    model["a"] = 1

    with caplog.at_level(logging.ERROR, logger="deltawatch.observer"):
        deliver_all()

    assert recorder.count == 1
    assert recorder.last[0].object is model
    assert "Error delivering" in caplog.text


@pytest.mark.integration
@pytest.mark.delivery
def test_live_observers_tracks_references(recorder):
    """Dropped and disconnected observers leave the registry"""
    kept = Observer(recorder)
    dropped = Observer(recorder)
    disconnected = Observer(recorder)
    disconnected.disconnect()

    del dropped
    gc.collect()

    assert live_observers() == [kept]
