"""Tests for working-copy reconciliation on unit selection."""

from typing import List, Optional

import pytest

from draft_engine.core.manifest import ManifestSynchronizer
from draft_engine.exceptions import RemoteStoreError, TransientStorageError
from draft_engine.models import ContentUnit
from draft_engine.storage.local_drafts import InMemoryDraftStore
from draft_engine.storage.remote import InMemoryContentStore
from draft_engine.workflow.reconciler import DraftReconciler, ReconcileSource

from conftest import make_hero, make_unit


class BrokenDraftStore(InMemoryDraftStore):
    async def get_draft(self, unit_id: str) -> Optional[ContentUnit]:
        raise TransientStorageError("read", unit_id, OSError("disk unavailable"))


class FlakyRemoteStore(InMemoryContentStore):
    async def has_unpublished_draft(self) -> bool:
        raise RemoteStoreError("Branch lookup failed (503)", status_code=503)


class CountingRemoteStore(InMemoryContentStore):
    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.loaded: List[str] = []

    async def load_unit(self, unit_id: str) -> Optional[ContentUnit]:
        self.loaded.append(unit_id)
        return await super().load_unit(unit_id)


def manifest():
    return ManifestSynchronizer({"index": {"heroKey": 2}}, lambda key: "Hero")


def active_for(calls: int):
    """True for the first `calls` checks, then False"""
    state = {"remaining": calls}

    def is_active() -> bool:
        state["remaining"] -= 1
        return state["remaining"] >= 0

    return is_active


@pytest.mark.asyncio
async def test_local_draft_wins_over_everything():
    draft_store = InMemoryDraftStore()
    await draft_store.set_draft("index", make_unit("index", make_hero(title="Draft")))
    remote = InMemoryContentStore(
        units={"index": make_unit("index", make_hero(title="Published"))},
        drafts={"index": make_unit("index", make_hero(title="Remote draft"))},
    )

    result = await DraftReconciler(draft_store, remote, manifest()).reconcile("index")

    assert result.source == ReconcileSource.LOCAL_DRAFT
    assert result.draft_pending is True
    assert result.unit.get_component("heroKey-0").field_value("title") == "Draft"
    # local drafts are taken as written
    assert result.unit.component_ids() == ["heroKey-0"]


@pytest.mark.asyncio
async def test_remote_draft_replaces_published_copy():
    remote = InMemoryContentStore(
        units={"index": make_unit("index", make_hero(title="Published"))},
        drafts={"index": make_unit("index", make_hero(title="Remote draft"))},
    )

    result = await DraftReconciler(InMemoryDraftStore(), remote, manifest()).reconcile("index")

    assert result.source == ReconcileSource.REMOTE_DRAFT
    assert result.draft_pending is False
    assert result.unit.get_component("heroKey-0").field_value("title") == "Remote draft"
    assert result.unit.component_ids() == ["heroKey-0", "heroKey-1"]


@pytest.mark.asyncio
async def test_published_copy_is_synced_with_manifest():
    remote = InMemoryContentStore(units={"index": make_unit("index", make_hero(title="Published"))})

    result = await DraftReconciler(InMemoryDraftStore(), remote, manifest()).reconcile("index")

    assert result.source == ReconcileSource.REMOTE
    assert result.unit.component_ids() == ["heroKey-0", "heroKey-1"]


@pytest.mark.asyncio
async def test_cached_copy_skips_remote_load():
    remote = CountingRemoteStore()
    cached = make_unit("index", make_hero(title="Cached"))

    result = await DraftReconciler(InMemoryDraftStore(), remote, manifest()).reconcile("index", cached=cached)

    assert result.source == ReconcileSource.CACHED
    assert remote.loaded == []
    assert result.unit.get_component("heroKey-0").field_value("title") == "Cached"


@pytest.mark.asyncio
async def test_unknown_unit_starts_from_manifest():
    result = await DraftReconciler(InMemoryDraftStore(), InMemoryContentStore(), manifest()).reconcile("index")
    assert result.source == ReconcileSource.EMPTY
    assert result.unit.component_ids() == ["heroKey-0", "heroKey-1"]


@pytest.mark.asyncio
async def test_lookup_failure_falls_back_to_cached_copy():
    cached = make_unit("index", make_hero(title="Cached"))

    result = await DraftReconciler(InMemoryDraftStore(), FlakyRemoteStore(), manifest()).reconcile(
        "index", cached=cached
    )

    assert result.source == ReconcileSource.CACHED
    assert result.unit.get_component("heroKey-0").field_value("title") == "Cached"
    assert result.unit.component_ids() == ["heroKey-0", "heroKey-1"]


@pytest.mark.asyncio
async def test_unreadable_local_draft_is_treated_as_absent():
    remote = InMemoryContentStore(units={"index": make_unit("index", make_hero(title="Published"))})

    result = await DraftReconciler(BrokenDraftStore(), remote, manifest()).reconcile("index")

    assert result.source == ReconcileSource.REMOTE
    assert result.draft_pending is False


@pytest.mark.asyncio
async def test_stale_selection_returns_none():
    reconciler = DraftReconciler(InMemoryDraftStore(), InMemoryContentStore(), manifest())
    assert await reconciler.reconcile("index", is_active=lambda: False) is None


@pytest.mark.asyncio
async def test_selection_going_stale_mid_load_returns_none():
    remote = InMemoryContentStore(
        units={"index": make_unit("index", make_hero(title="Published"))},
        drafts={"index": make_unit("index", make_hero(title="Remote draft"))},
    )
    reconciler = DraftReconciler(InMemoryDraftStore(), remote, manifest())

    # active after the local draft and published reads, stale before the draft check answers
    assert await reconciler.reconcile("index", is_active=active_for(2)) is None
