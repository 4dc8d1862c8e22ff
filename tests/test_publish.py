"""Tests for partial-failure-tolerant batch publishing."""

import asyncio
from typing import List, Optional

import pytest

from draft_engine.core.validator_resolver import ValidatorResolver
from draft_engine.exceptions import TransientStorageError
from draft_engine.models import ContentUnit, PublishStatus
from draft_engine.storage.local_drafts import InMemoryDraftStore
from draft_engine.storage.remote import InMemoryContentStore
from draft_engine.workflow.publisher import Publisher

from conftest import DEFAULT_LOCALE, LOCALES, make_hero, make_unit


class SlowContentStore(InMemoryContentStore):
    """Tracks how many commits run at once"""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.active = 0
        self.peak = 0

    async def save_unit(self, unit_id: str, unit: ContentUnit, message: Optional[str] = None) -> None:
        self.active += 1
        self.peak = max(self.peak, self.active)
        try:
            await asyncio.sleep(0.01)
            await super().save_unit(unit_id, unit, message)
        finally:
            self.active -= 1


class UnlistableDraftStore(InMemoryDraftStore):
    async def list_draft_unit_ids(self) -> List[str]:
        raise TransientStorageError("list", None, OSError("storage disabled"))


async def seed(store: InMemoryDraftStore, *unit_ids: str) -> None:
    for unit_id in unit_ids:
        if unit_id == "globals":
            await store.set_draft(unit_id, make_unit("globals"))
        else:
            await store.set_draft(unit_id, make_unit(unit_id, make_hero(title=f"{unit_id} title")))


@pytest.mark.asyncio
async def test_partial_failure_keeps_every_draft(draft_store):
    await seed(draft_store, "index", "about", "globals")
    remote = InMemoryContentStore(fail_units=["about"])

    result = await Publisher(draft_store, remote).publish()

    assert result.status == PublishStatus.PARTIAL
    assert result.successes == ["index", "globals"]
    assert result.failed_unit_ids == ["about"]
    assert result.failures[0].error == "[about] commit rejected"
    assert result.drafts_cleared is False
    assert sorted(await draft_store.list_draft_unit_ids()) == ["about", "globals", "index"]
    assert sorted(commit["unit_id"] for commit in remote.commits) == ["globals", "index"]


@pytest.mark.asyncio
async def test_full_success_clears_drafts_and_reports_commits(draft_store):
    await seed(draft_store, "index", "globals")
    remote = InMemoryContentStore()
    committed = {}

    result = await Publisher(draft_store, remote, on_committed=committed.update).publish()

    assert result.status == PublishStatus.PUBLISHED
    assert result.drafts_cleared is True
    assert await draft_store.list_draft_unit_ids() == []
    assert sorted(committed) == ["globals", "index"]
    assert result.message == "Modified pages: index; Modified global settings"
    assert {commit["message"] for commit in remote.commits} == {result.message}
    assert result.promoted is True
    assert remote.published == [{"message": result.message, "unit_ids": ["globals", "index"]}]
    assert await remote.has_unpublished_draft() is False
    assert (await remote.load_unit("index")).get_component("heroKey-0").field_value("title") == "index title"


@pytest.mark.asyncio
async def test_failed_promotion_keeps_drafts_for_retry(draft_store):
    await seed(draft_store, "index", "globals")
    remote = InMemoryContentStore(fail_publish=True)
    committed = {}

    result = await Publisher(draft_store, remote, on_committed=committed.update).publish("Spring launch")

    assert result.status == PublishStatus.FAILED
    assert result.promoted is False
    assert result.drafts_cleared is False
    assert sorted(result.failed_unit_ids) == ["globals", "index"]
    assert result.failures[0].error_type == "RemoteStoreError"
    assert committed == {}
    assert sorted(await draft_store.list_draft_unit_ids()) == ["globals", "index"]
    assert await remote.load_unit("index") is None

    remote.fail_publish = False
    retry = await Publisher(draft_store, remote).publish("Spring launch")
    assert retry.status == PublishStatus.PUBLISHED
    assert retry.promoted is True
    assert await draft_store.list_draft_unit_ids() == []


@pytest.mark.asyncio
async def test_every_commit_failing_is_failed(draft_store):
    await seed(draft_store, "index", "about")
    remote = InMemoryContentStore(fail_units=["index", "about"])

    result = await Publisher(draft_store, remote).publish()

    assert result.status == PublishStatus.FAILED
    assert sorted(result.failed_unit_ids) == ["about", "index"]
    assert sorted(await draft_store.list_draft_unit_ids()) == ["about", "index"]


@pytest.mark.asyncio
async def test_nothing_to_publish(draft_store):
    result = await Publisher(draft_store, InMemoryContentStore()).publish()
    assert result.status == PublishStatus.NOTHING_TO_PUBLISH
    assert result.message == "No changes detected"


@pytest.mark.asyncio
async def test_invalid_draft_blocks_whole_batch(draft_store, registry):
    await seed(draft_store, "index")
    await draft_store.set_draft("about", make_unit("about", make_hero()))
    remote = InMemoryContentStore()
    resolver = ValidatorResolver(registry, LOCALES, DEFAULT_LOCALE)

    result = await Publisher(draft_store, remote, resolver=resolver).publish()

    assert result.status == PublishStatus.INVALID
    assert [(e.unit_id, e.component_id, e.field_path) for e in result.validation_errors] == [
        ("about", "heroKey-0", "title")
    ]
    assert remote.commits == []
    assert sorted(await draft_store.list_draft_unit_ids()) == ["about", "index"]


@pytest.mark.asyncio
async def test_commit_message_precedence(draft_store):
    publisher = Publisher(draft_store, InMemoryContentStore(), default_message="Content update")
    assert publisher.commit_message(["index"], "Spring launch") == "Spring launch"
    assert publisher.commit_message(["index"]) == "Content update"
    assert Publisher(draft_store, InMemoryContentStore()).commit_message(["globals"]) == "Modified global settings"


@pytest.mark.asyncio
async def test_commits_respect_concurrency_limit(draft_store):
    await seed(draft_store, "a", "b", "c", "d", "e")
    remote = SlowContentStore()

    result = await Publisher(draft_store, remote, concurrency=2).publish("batch")

    assert result.status == PublishStatus.PUBLISHED
    assert remote.peak == 2
    assert len(remote.commits) == 5


@pytest.mark.asyncio
async def test_unreadable_draft_store_fails_publish():
    result = await Publisher(UnlistableDraftStore(), InMemoryContentStore()).publish()
    assert result.status == PublishStatus.FAILED
    assert "storage disabled" in result.message
