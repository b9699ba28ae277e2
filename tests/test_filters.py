import pytest

from core.filters import (
    ALL,
    FilterContextError,
    FilterSelection,
    FilterState,
    filter_scope,
    normalize_selection,
    use_filter_state,
)


def test_default_selection_is_all():
    sel = FilterSelection()
    assert sel.as_tuple() == (ALL, ALL, ALL)
    assert sel == normalize_selection({})


def test_normalize_selection_uppercases_and_defaults():
    sel = normalize_selection({"make": " toyota ", "body": "", "state": None})
    assert sel == FilterSelection(make="TOYOTA")
    assert normalize_selection(None) == FilterSelection()


def test_with_value_returns_new_selection():
    sel = FilterSelection()
    updated = sel.with_value("state", "ca")
    assert updated.state == "CA"
    assert sel.state == ALL


def test_unknown_field_is_rejected():
    with pytest.raises(ValueError):
        FilterSelection().with_value("color", "red")
    with pytest.raises(ValueError):
        FilterState().set("color", "red")


def test_set_notifies_subscribers_with_new_selection():
    state = FilterState()
    seen = []
    state.subscribe(seen.append)
    state.set("make", "BMW")
    assert seen == [FilterSelection(make="BMW")]
    assert state.get("make") == "BMW"


def test_setting_same_value_does_not_notify():
    state = FilterState(FilterSelection(make="BMW"))
    seen = []
    state.subscribe(seen.append)
    state.set("make", "bmw")
    assert seen == []


def test_unsubscribe_stops_notifications():
    state = FilterState()
    seen = []
    unsubscribe = state.subscribe(seen.append)
    unsubscribe()
    unsubscribe()
    state.set("body", "SUV")
    assert seen == []


def test_listener_write_supersedes_outer_notification():
    state = FilterState()
    seen = []

    def reset_body(sel):
        if sel.body != ALL:
            state.set("body", ALL)

    state.subscribe(reset_body)
    state.subscribe(seen.append)
    state.set("body", "SUV")
    assert seen == [FilterSelection()]
    assert state.selection == FilterSelection()


def test_use_filter_state_outside_scope_fails_fast():
    with pytest.raises(FilterContextError):
        use_filter_state()


def test_filter_scope_binds_and_restores():
    outer = FilterState()
    inner = FilterState(FilterSelection(make="KIA"))
    with filter_scope(outer):
        assert use_filter_state() is outer
        with filter_scope(inner):
            assert use_filter_state().selection.make == "KIA"
        assert use_filter_state() is outer
    with pytest.raises(FilterContextError):
        use_filter_state()


def test_filter_scope_creates_default_state():
    with filter_scope() as state:
        assert state.selection == FilterSelection()
