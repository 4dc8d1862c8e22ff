"""Tests for the debounced per-unit autosave scheduler."""

import asyncio
import logging
from typing import Dict, List, Optional

import pytest

from draft_engine.exceptions import TransientStorageError
from draft_engine.models import ContentUnit
from draft_engine.storage.local_drafts import InMemoryDraftStore
from draft_engine.workflow.autosave import AutosaveScheduler

from conftest import make_hero, make_unit


class RecordingDraftStore(InMemoryDraftStore):
    def __init__(self):
        super().__init__()
        self.writes: List[str] = []

    async def set_draft(self, unit_id: str, unit: ContentUnit) -> None:
        self.writes.append(unit_id)
        await super().set_draft(unit_id, unit)


class FullDraftStore(InMemoryDraftStore):
    async def set_draft(self, unit_id: str, unit: ContentUnit) -> None:
        raise TransientStorageError("write", unit_id, OSError("quota exceeded"))


class Snapshots:
    """Current snapshot per unit, read when the timer fires"""

    def __init__(self):
        self.units: Dict[str, Optional[ContentUnit]] = {}

    def __call__(self, unit_id: str) -> Optional[ContentUnit]:
        return self.units.get(unit_id)


def titled(unit_id: str, title: str) -> ContentUnit:
    return make_unit(unit_id, make_hero(title=title))


@pytest.mark.asyncio
async def test_burst_of_edits_writes_once_with_last_state():
    store = RecordingDraftStore()
    snapshots = Snapshots()
    scheduler = AutosaveScheduler(store, snapshots, quiet_period=0.02)

    for title in ["H", "He", "Hello"]:
        snapshots.units["index"] = titled("index", title)
        scheduler.notify("index")

    await asyncio.sleep(0.1)

    assert store.writes == ["index"]
    draft = await store.get_draft("index")
    assert draft.get_component("heroKey-0").field_value("title") == "Hello"


@pytest.mark.asyncio
async def test_timers_are_per_unit():
    store = RecordingDraftStore()
    snapshots = Snapshots()
    snapshots.units = {"index": titled("index", "A"), "about": titled("about", "B")}
    scheduler = AutosaveScheduler(store, snapshots, quiet_period=0.01)

    scheduler.notify("index")
    scheduler.notify("about")
    await asyncio.sleep(0.08)

    assert sorted(store.writes) == ["about", "index"]
    assert (await store.get_draft("about")).get_component("heroKey-0").field_value("title") == "B"


@pytest.mark.asyncio
async def test_no_snapshot_means_no_write():
    store = RecordingDraftStore()
    scheduler = AutosaveScheduler(store, Snapshots(), quiet_period=0.01)

    scheduler.notify("index")
    await asyncio.sleep(0.05)

    assert store.writes == []


@pytest.mark.asyncio
async def test_cancel_drops_pending_write():
    store = RecordingDraftStore()
    snapshots = Snapshots()
    snapshots.units["index"] = titled("index", "A")
    scheduler = AutosaveScheduler(store, snapshots, quiet_period=0.02)

    scheduler.notify("index")
    assert scheduler.cancel("index") is True
    assert scheduler.cancel("index") is False
    await asyncio.sleep(0.06)

    assert store.writes == []


@pytest.mark.asyncio
async def test_flush_writes_pending_units_immediately():
    store = RecordingDraftStore()
    snapshots = Snapshots()
    snapshots.units["index"] = titled("index", "A")
    scheduler = AutosaveScheduler(store, snapshots, quiet_period=60)

    scheduler.notify("index")
    assert scheduler.pending_unit_ids() == ["index"]

    assert await scheduler.flush() == ["index"]
    assert scheduler.pending_unit_ids() == []
    assert store.writes == ["index"]
    await scheduler.aclose()


@pytest.mark.asyncio
async def test_flush_single_unit_leaves_others_pending():
    store = RecordingDraftStore()
    snapshots = Snapshots()
    snapshots.units = {"index": titled("index", "A"), "about": titled("about", "B")}
    scheduler = AutosaveScheduler(store, snapshots, quiet_period=60)

    scheduler.notify("index")
    scheduler.notify("about")

    assert await scheduler.flush("about") == ["about"]
    assert scheduler.pending_unit_ids() == ["index"]
    await scheduler.aclose()
    assert scheduler.pending_unit_ids() == []


@pytest.mark.asyncio
async def test_storage_failure_is_logged_not_raised(caplog):
    snapshots = Snapshots()
    snapshots.units["index"] = titled("index", "A")
    scheduler = AutosaveScheduler(FullDraftStore(), snapshots, quiet_period=60)

    scheduler.notify("index")
    with caplog.at_level(logging.WARNING, logger="draft_engine.workflow.autosave"):
        written = await scheduler.flush()

    assert written == []
    assert "quota exceeded" in caplog.text
