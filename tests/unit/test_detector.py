"""Unit tests for the object property detector."""

from collections import ChainMap

import pytest

from deltawatch.detector import detect_object_changes
from deltawatch.snapshot import ObjectSnapshot
from deltawatch.values import UNDEFINED


class Model:
    pass


@pytest.mark.unit
@pytest.mark.objects
def test_detects_added_removed_and_changed():
    """Each kind of property change lands in its own bucket"""
    model = {"keep": 1, "change": 2, "remove": 3}
    snapshot = ObjectSnapshot.capture(model)

    model["change"] = 20
    del model["remove"]
    model["add"] = 4

    diff, _ = detect_object_changes(model, snapshot)
    assert diff.added == {"add": 4}
    assert diff.removed == {"remove": UNDEFINED}
    assert diff.changed == {"change": 20}
    assert diff.old_values["change"] == 2
    assert diff.old_values["remove"] == 3


@pytest.mark.unit
@pytest.mark.objects
def test_returns_next_snapshot():
    """The returned snapshot reflects current state"""
    model = {"a": 1}
    diff, snapshot = detect_object_changes(model, ObjectSnapshot.capture(model))
    assert diff.is_empty()

    model["a"] = 2
    diff, snapshot = detect_object_changes(model, snapshot)
    assert diff.changed == {"a": 2}

    diff, snapshot = detect_object_changes(model, snapshot)
    assert diff.is_empty()


@pytest.mark.unit
@pytest.mark.objects
def test_value_set_back_is_not_a_change():
    """Intermediate writes that restore the original value cancel out"""
    model = {"a": 1}
    snapshot = ObjectSnapshot.capture(model)
    model["a"] = 2
    model["a"] = 1
    diff, _ = detect_object_changes(model, snapshot)
    assert diff.is_empty()


@pytest.mark.unit
@pytest.mark.objects
def test_delete_then_add_is_a_change():
    """Removing and re-adding with a new value reports a change"""
    model = {"a": 1}
    snapshot = ObjectSnapshot.capture(model)
    del model["a"]
    model["a"] = 2
    diff, _ = detect_object_changes(model, snapshot)
    assert diff.changed == {"a": 2}
    assert not diff.added and not diff.removed


@pytest.mark.unit
@pytest.mark.objects
def test_setting_none_is_a_change_not_a_removal():
    """A key holding None still exists"""
    model = {"a": 1}
    snapshot = ObjectSnapshot.capture(model)
    model["a"] = None
    diff, _ = detect_object_changes(model, snapshot)
    assert diff.changed == {"a": None}
    assert diff.removed == {}


@pytest.mark.unit
@pytest.mark.objects
def test_instance_attributes():
    """Plain instances are diffed through their __dict__"""
    model = Model()
    model.x = 1
    snapshot = ObjectSnapshot.capture(model)
    model.x = 2
    model.y = 3
    diff, _ = detect_object_changes(model, snapshot)
    assert diff.changed == {"x": 2}
    assert diff.added == {"y": 3}


@pytest.mark.unit
@pytest.mark.objects
def test_shadowing_an_inherited_value_is_an_addition():
    """Shadowing a ChainMap parent entry adds an own property"""
    model = ChainMap({}, {"x": 1})
    snapshot = ObjectSnapshot.capture(model)
    model["x"] = 1
    diff, _ = detect_object_changes(model, snapshot)
    assert diff.added == {"x": 1}


@pytest.mark.unit
@pytest.mark.objects
@pytest.mark.edge_case
def test_nan_property_is_stable():
    """A NaN property is not reported on every check"""
    model = {"n": float("nan")}
    snapshot = ObjectSnapshot.capture(model)
    model["n"] = float("nan")
    diff, _ = detect_object_changes(model, snapshot)
    assert diff.is_empty()


@pytest.mark.unit
@pytest.mark.objects
@pytest.mark.edge_case
def test_complex_nan_property_is_stable():
    """A recomputed complex NaN property is not a change"""
    model = {"z": complex(float("nan"), 1.0)}
    snapshot = ObjectSnapshot.capture(model)
    model["z"] = complex(float("nan"), 1.0)
    diff, _ = detect_object_changes(model, snapshot)
    assert diff.is_empty()
