"""Integration tests for bindings and the cascade loop."""

import logging

import pytest

from deltawatch import (
    BindingCycleError,
    CascadeLimitError,
    Observer,
    UNDEFINED,
)


def deliver_paths(observer, recorder):
    recorder.reset()
    observer.deliver()
    assert recorder.count == 1
    (summary,) = recorder.last
    return summary.path_changed, summary.old_values


class Ticker:
    """Every read of ``value`` returns a new number."""

    def __init__(self):
        self._ticks = 0

    @property
    def value(self):
        self._ticks += 1
        return self._ticks


@pytest.mark.integration
@pytest.mark.bindings
def test_bind_syncs_immediately(observer):
    """The target takes the source value as soon as the binding exists"""
    model = {"a": 1, "b": 2}
    binding = observer.bind(model, "a", model, "b")
    assert binding is not None
    assert model["b"] == 1
    assert observer.bindings() == [binding]


@pytest.mark.integration
@pytest.mark.bindings
def test_binding_composition(observer, recorder):
    """a -> b and b -> c converge within one delivery"""
    model = {"a": 1, "b": 2, "c": 3}
    observer.observe_path(model, "a")
    observer.observe_path(model, "c")

    observer.bind(model, "a", model, "b")
    observer.bind(model, "b", model, "c")
    assert model == {"a": 1, "b": 1, "c": 1}
    assert deliver_paths(observer, recorder) == ({"c": 1}, {"c": 3})

    model["a"] = 3
    assert deliver_paths(observer, recorder) == ({"a": 3, "c": 3}, {"a": 1, "c": 1})
    assert model == {"a": 3, "b": 3, "c": 3}


@pytest.mark.integration
@pytest.mark.bindings
def test_bindings_are_directional(observer, recorder):
    """Writing a chain's middle only flows downstream"""
    model = {"a": 1, "b": 1, "c": 1}
    observer.observe_path(model, "a")
    observer.observe_path(model, "c")
    observer.bind(model, "a", model, "b")
    observer.bind(model, "b", model, "c")

    model["b"] = 4
    assert deliver_paths(observer, recorder) == ({"c": 4}, {"c": 1})
    assert model == {"a": 1, "b": 4, "c": 4}

    model["c"] = 9
    assert deliver_paths(observer, recorder) == ({"c": 9}, {"c": 4})
    assert model == {"a": 1, "b": 4, "c": 9}


@pytest.mark.integration
@pytest.mark.bindings
def test_upstream_change_wins_over_downstream(observer, recorder):
    """When a and b both change, the first binding decides"""
    model = {"a": 1, "b": 1, "c": 1}
    observer.observe_path(model, "a")
    observer.observe_path(model, "c")
    observer.bind(model, "a", model, "b")
    observer.bind(model, "b", model, "c")

    model["a"] = 5
    model["b"] = 6
    assert deliver_paths(observer, recorder)[0] == {"a": 5, "c": 5}
    assert model == {"a": 5, "b": 5, "c": 5}


@pytest.mark.integration
@pytest.mark.bindings
def test_bindings_across_objects(observer, recorder):
    """Bindings link paths on different roots"""
    form = {"user": {"name": "Ada"}}
    view = {"title": ""}
    observer.observe_path(view, "title")
    observer.bind(form, "user.name", view, "title")
    observer.deliver()

    form["user"] = {"name": "Grace"}
    recorder.reset()
    observer.deliver()
    (summary,) = recorder.last
    assert summary.object is view
    assert summary.path_changed == {"title": "Grace"}


@pytest.mark.integration
@pytest.mark.bindings
def test_binding_sources_alone_are_not_reported(observer, recorder):
    """A bound but unobserved source does not produce a summary"""
    model = {"a": 1, "b": 1}
    observer.bind(model, "a", model, "b")
    model["a"] = 2
    observer.deliver()
    assert recorder.count == 0
    assert model["b"] == 2


@pytest.mark.integration
@pytest.mark.bindings
def test_two_way_binding(observer, recorder):
    """Either side of a two-way binding updates the other"""
    left, right = {"v": "left"}, {"v": "right"}
    observer.observe_path(right, "v")
    forward, backward = observer.bind_two_way(left, "v", right, "v")
    assert right["v"] == "left"

    right["v"] = "typed"
    observer.deliver()
    assert left["v"] == "typed"

    left["v"] = "reset"
    observer.deliver()
    assert right["v"] == "reset"
    assert observer.bindings() == [forward, backward]


@pytest.mark.integration
@pytest.mark.bindings
def test_unbind_stops_propagation(observer):
    """Unbound targets keep their last value"""
    model = {"a": 1, "b": 0}
    observer.bind(model, "a", model, "b")
    observer.unbind(model, "a", model, "b")

    model["a"] = 2
    observer.deliver()
    assert model["b"] == 1
    assert observer.bindings() == []
    assert len(observer) == 0


@pytest.mark.integration
@pytest.mark.bindings
@pytest.mark.edge_case
def test_unusable_bindings(observer):
    """Empty or malformed paths and scalar sources create nothing"""
    model = {"a": 1}
    assert observer.bind(model, "", model, "a") is None
    assert observer.bind(model, "a", model, "b..c") is None
    assert observer.bind(5, "real", model, "a") is None
    assert observer.bind_two_way(model, "a", model, "") is None
    assert observer.bindings() == []


@pytest.mark.integration
@pytest.mark.bindings
@pytest.mark.edge_case
def test_binding_to_missing_target_is_noop(observer):
    """Targets below a missing intermediate are not created"""
    model = {"a": 1}
    observer.bind(model, "a", model, "x.y")
    assert model == {"a": 1}
    assert observer.observe_path(model, "x.y") is UNDEFINED


# ============================================================================
# CYCLES AND RUNAWAY CASCADES
# ============================================================================


@pytest.mark.integration
@pytest.mark.bindings
def test_binding_cycle_settles(observer, recorder):
    """A cycle over stable values settles after one round trip"""
    model = {"a": 1, "b": 1}
    observer.observe_path(model, "b")
    observer.bind(model, "a", model, "b")
    observer.bind(model, "b", model, "a")

    model["a"] = 2
    assert deliver_paths(observer, recorder) == ({"b": 2}, {"b": 1})
    assert model == {"a": 2, "b": 2}


@pytest.mark.integration
@pytest.mark.bindings
def test_ancestor_written_by_binding_is_reported_first(observer, recorder):
    """A descendant changed in an earlier pass still follows its ancestor"""
    inner = {"y": 1}
    model = {"src": inner, "x": inner}
    observer.observe_path(model, "x.y")
    observer.observe_path(model, "x")
    observer.bind(model, "src", model, "x")
    observer.deliver()

    model["x"]["y"] = 2
    model["src"] = {"y": 3}
    path_changed, old_values = deliver_paths(observer, recorder)
    assert list(path_changed) == ["x", "x.y"]
    assert path_changed == {"x": model["src"], "x.y": 3}
    assert old_values == {"x": inner, "x.y": 1}

@pytest.mark.integration
@pytest.mark.bindings
def test_rejecting_cycles(recorder):
    """Strict observers refuse cycle-closing bindings"""
    observer = Observer(recorder, reject_binding_cycles=True)
    model = {"a": 1, "b": 1}
    observer.bind(model, "a", model, "b")

    with pytest.raises(BindingCycleError):
        observer.bind(model, "b", model, "a")
    assert len(observer.bindings()) == 1


@pytest.mark.integration
@pytest.mark.bindings
def test_runaway_cascade_warns(recorder, caplog):
    """A source that never settles hits the pass limit and logs a warning"""
    observer = Observer(recorder, max_cascade_passes=5)
    ticker = Ticker()
    target = {"value": 0}
    observer.observe_path(target, "value")
    observer.bind(ticker, "value", target, "value")

    with caplog.at_level(logging.WARNING, logger="deltawatch.observer"):
        observer.deliver()

    assert "did not settle within 5 passes" in caplog.text
    assert recorder.count == 1


@pytest.mark.integration
@pytest.mark.bindings
def test_runaway_cascade_raises_when_configured(recorder):
    """The raise policy surfaces the runaway cascade to the caller"""
    observer = Observer(recorder, max_cascade_passes=5, cascade_limit_policy="raise")
    ticker = Ticker()
    target = {"value": 0}
    observer.bind(ticker, "value", target, "value")

    with pytest.raises(CascadeLimitError):
        observer.deliver()
