"""Tests for pending-upload resolution before save."""

import pytest

from draft_engine.storage.assets import PassthroughAssetPipeline, QueuedAssetPipeline


def pending_file(name: str) -> dict:
    return {"name": name, "size": 10, "type": "image/png", "pending": True, "preview": "blob:1"}


@pytest.mark.asyncio
async def test_pending_uploads_are_replaced_with_references():
    uploaded = []

    async def uploader(file):
        uploaded.append(file["name"])
        return {"url": f"https://cdn.test/{file['name']}"}

    pipeline = QueuedAssetPipeline(uploader)
    kept = {"url": "https://cdn.test/old.png", "name": "old.png", "size": 5, "type": "image/png"}
    form_data = {
        "heroKey-0": {
            "background": {"files": [kept, pending_file("new.png")]},
            "title": "Hello",
        }
    }

    assert pipeline.has_pending_operations(form_data)
    result = await pipeline.process_pending_uploads(form_data)

    assert uploaded == ["new.png"]
    assert result["heroKey-0"]["title"] == "Hello"
    assert result["heroKey-0"]["background"]["files"] == [
        kept,
        {"url": "https://cdn.test/new.png", "name": "new.png", "size": 10, "type": "image/png"},
    ]
    # the caller's buffers are left alone
    assert form_data["heroKey-0"]["background"]["files"][1]["pending"] is True


@pytest.mark.asyncio
async def test_queued_deletes_run_once():
    deleted = []

    async def uploader(file):
        return {}

    async def deleter(url):
        deleted.append(url)

    pipeline = QueuedAssetPipeline(uploader, deleter)
    pipeline.queue_delete("https://cdn.test/old.png")
    pipeline.queue_delete("https://cdn.test/old.png")
    assert pipeline.has_pending_operations({})

    await pipeline.process_pending_uploads({})
    await pipeline.process_pending_uploads({})

    assert deleted == ["https://cdn.test/old.png"]
    assert not pipeline.has_pending_operations({})


@pytest.mark.asyncio
async def test_passthrough_pipeline_returns_input():
    form_data = {"heroKey-0": {"title": "Hello"}}
    assert await PassthroughAssetPipeline().process_pending_uploads(form_data) is form_data
