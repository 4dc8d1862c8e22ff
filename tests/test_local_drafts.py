"""Tests for the local draft stores."""

import json

import pytest

from draft_engine.exceptions import TransientStorageError
from draft_engine.storage.local_drafts import InMemoryDraftStore, JsonFileDraftStore, update_draft_field

from conftest import make_hero, make_unit


@pytest.fixture
def file_store(tmp_path):
    return JsonFileDraftStore(str(tmp_path / "drafts"))


@pytest.mark.asyncio
async def test_missing_draft_is_none(file_store):
    assert await file_store.get_draft("index") is None
    assert await file_store.list_draft_unit_ids() == []


@pytest.mark.asyncio
async def test_set_get_and_index(file_store):
    unit = make_unit("index", make_hero(title={"en": "Hello", "fr": "Bonjour"}))
    await file_store.set_draft("index", unit)
    await file_store.set_draft("globals", make_unit("globals"))
    await file_store.set_draft("index", unit)

    assert await file_store.get_draft("index") == unit
    assert await file_store.list_draft_unit_ids() == ["index", "globals"]
    assert await file_store.has_draft("globals")

    index = json.loads((file_store.drafts_dir / "index.json").read_text(encoding="utf-8"))
    assert index == ["index", "globals"]


@pytest.mark.asyncio
async def test_globals_draft_is_written_as_variables(file_store):
    await file_store.set_draft("globals", make_unit("globals"))
    document = json.loads(file_store._path_for("globals").read_text(encoding="utf-8"))
    assert document == {"variables": []}


@pytest.mark.asyncio
async def test_clear_draft_updates_index(file_store):
    await file_store.set_draft("index", make_unit("index"))
    await file_store.set_draft("about", make_unit("about"))

    await file_store.clear_draft("index")
    await file_store.clear_draft("missing")

    assert await file_store.get_draft("index") is None
    assert await file_store.list_draft_unit_ids() == ["about"]


@pytest.mark.asyncio
async def test_clear_all_drafts(file_store):
    await file_store.set_draft("index", make_unit("index"))
    await file_store.set_draft("about", make_unit("about"))

    await file_store.clear_all_drafts()

    assert await file_store.list_draft_unit_ids() == []
    assert not file_store._path_for("about").exists()


def test_unit_ids_map_to_safe_file_names(file_store):
    assert file_store._path_for("blog/first post").name == "draft_blog__first__post.json"


@pytest.mark.asyncio
async def test_corrupt_draft_raises_transient_error(file_store):
    file_store.drafts_dir.mkdir(parents=True)
    file_store._path_for("index").write_text("{not json", encoding="utf-8")

    with pytest.raises(TransientStorageError) as exc_info:
        await file_store.get_draft("index")
    assert exc_info.value.unit_id == "index"
    assert exc_info.value.operation == "read"


@pytest.mark.asyncio
async def test_in_memory_store_isolates_callers():
    store = InMemoryDraftStore()
    unit = make_unit("index", make_hero(title="Hello"))
    await store.set_draft("index", unit)

    first = await store.get_draft("index")
    first.components.clear()

    assert (await store.get_draft("index")) == unit


@pytest.mark.asyncio
async def test_update_draft_field_merges_one_locale():
    store = InMemoryDraftStore()
    await store.set_draft("index", make_unit("index", make_hero(title="Hello")))

    assert await update_draft_field(store, "index", "heroKey-0", "title", "Bonjour", locale="fr")

    draft = await store.get_draft("index")
    assert draft.get_component("heroKey-0").field_value("title") == {"en": "Hello", "fr": "Bonjour"}


@pytest.mark.asyncio
async def test_update_draft_field_creates_unknown_field():
    store = InMemoryDraftStore()
    await store.set_draft("index", make_unit("index", make_hero()))

    assert await update_draft_field(store, "index", "heroKey-0", "badge", "New")

    entry = (await store.get_draft("index")).get_component("heroKey-0").data["badge"]
    assert entry.type == "unknown"
    assert entry.value == "New"


@pytest.mark.asyncio
async def test_update_draft_field_without_draft_or_component():
    store = InMemoryDraftStore()
    assert not await update_draft_field(store, "index", "heroKey-0", "title", "x")

    await store.set_draft("index", make_unit("index", make_hero()))
    assert not await update_draft_field(store, "index", "heroKey-7", "title", "x")
