"""Tests for per-unit edit sessions."""

import pytest

from draft_engine.models import SessionState
from draft_engine.models.content_unit import UnitKind
from draft_engine.utils.edit_session import EditSession, EditSessionManager


def test_edits_are_routed_by_locale():
    session = EditSession(unit_id="index")
    session.set_form_value("heroKey-0", "title", "Hello", default_locale="en")
    session.set_form_value("heroKey-0", "title", "Hello", locale="en", default_locale="en")
    session.set_form_value("heroKey-0", "title", "Bonjour", locale="fr", default_locale="en")

    assert session.form_edits == {"heroKey-0": {"title": "Hello"}}
    assert session.translation_edits == {"fr": {"heroKey-0": {"title": "Bonjour"}}}
    assert session.has_buffered_edits()


def test_delete_drops_form_edits_and_restore_undoes_marker():
    session = EditSession(unit_id="index")
    session.set_form_value("heroKey-0", "title", "Hello")
    session.mark_deleted("heroKey-0")

    assert session.form_edits == {}
    assert session.deleted_ids == {"heroKey-0"}

    session.restore("heroKey-0")
    assert not session.has_buffered_edits()


def test_discard_applied_keeps_edits_made_after_snapshot():
    session = EditSession(unit_id="index")
    session.set_form_value("heroKey-0", "title", "Hello")
    session.set_form_value("heroKey-0", "subtitle", "Sub")
    session.set_form_value("heroKey-0", "title", "Bonjour", locale="fr", default_locale="en")
    snapshot = session.snapshot_buffers()

    # edits arriving while the save is in flight
    session.set_form_value("heroKey-0", "title", "Hello again")
    session.set_form_value("heroKey-1", "title", "New")

    session.discard_applied(snapshot)

    assert session.form_edits == {"heroKey-0": {"title": "Hello again"}, "heroKey-1": {"title": "New"}}
    assert session.translation_edits == {}


def test_snapshot_is_independent_of_later_edits():
    session = EditSession(unit_id="index")
    session.set_form_value("heroKey-0", "features", [{"title": "A"}])
    snapshot = session.snapshot_buffers()

    session.form_edits["heroKey-0"]["features"].append({"title": "B"})

    assert snapshot["form_edits"] == {"heroKey-0": {"features": [{"title": "A"}]}}


def test_state_transitions():
    session = EditSession(unit_id="index")
    session.transition(SessionState.LOADING)
    session.transition(SessionState.READY)
    session.transition(SessionState.SAVING)
    session.transition(SessionState.FAILED)
    session.transition(SessionState.SAVING)
    session.transition(SessionState.READY)
    assert session.state == SessionState.READY

    with pytest.raises(ValueError):
        session.transition(SessionState.FAILED)


def test_globals_session_kind():
    assert EditSession(unit_id="globals").kind == UnitKind.GLOBALS
    assert EditSession(unit_id="index").kind == UnitKind.PAGE


def test_manager_tracks_selection():
    manager = EditSessionManager()
    session = manager.get_or_create("index")

    assert manager.get_or_create("index") is session
    manager.select("index")
    assert manager.is_selected("index")

    manager.select("about")
    assert not manager.is_selected("index")

    manager.cleanup("about")
    assert manager.selected_unit_id is None
    assert manager.list_sessions() == ["index"]
