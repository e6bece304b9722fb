"""RecordingAggregator 테스트 (정확히 한 번 트리거, 처리 후 정리, stale 폐기)."""

import asyncio
from pathlib import Path
from unittest.mock import AsyncMock

import pytest

from conftest import FakeProcessor, wait_for
from modules.recording import RecordingAggregator, SessionState, TransientUploadError


async def test_first_upload_creates_collecting_session(aggregator, processor):
    receipt = await aggregator.add_audio("42", "Alice", "alice@x.com", b"a1", "alice.webm")

    session = aggregator.get_session("42")
    assert session.state == SessionState.COLLECTING
    assert receipt.contributors == 1 and receipt.expected == 2
    assert receipt.triggered is False
    assert session.blob_paths()[0].suffix == ".webm"
    assert processor.calls == []


async def test_same_contributor_does_not_trigger(aggregator, processor):
    for i in range(3):
        receipt = await aggregator.add_audio("42", "Alice", "alice@x.com", f"a{i}".encode())
    assert receipt.contributors == 1
    assert len(aggregator.get_session("42").contributions) == 3
    await asyncio.sleep(0.05)
    assert processor.calls == []


async def test_two_contributors_trigger_processing_once(aggregator, processor):
    await aggregator.add_audio("42", "Alice", "alice@x.com", b"a1")
    receipt = await aggregator.add_audio("42", "Bob", "bob@x.com", b"b1")

    assert receipt.triggered is True
    await wait_for(lambda: aggregator.get_session("42") is None)

    assert len(processor.calls) == 1
    call = processor.calls[0]
    assert {c.contributor for c in call["contributions"]} == {"Alice", "Bob"}
    assert call["files_present"] is True
    assert list(aggregator.storage.base_dir.iterdir()) == []


async def test_concurrent_uploads_trigger_exactly_once(storage):
    processor = FakeProcessor()
    aggregator = RecordingAggregator(storage, processor, processing_delay=0.5)
    uploads = []
    for i in range(10):
        uploads.append(aggregator.add_audio("42", "Alice", "alice@x.com", f"a{i}".encode()))
        uploads.append(aggregator.add_audio("42", "Bob", "bob@x.com", f"b{i}".encode()))

    receipts = await asyncio.gather(*uploads)
    await wait_for(lambda: aggregator.pending_processing == 0)

    assert sum(r.triggered for r in receipts) == 1
    assert len(processor.calls) == 1


async def test_rooms_are_independent(aggregator, processor):
    await aggregator.add_audio("42", "Alice", "", b"a")
    await aggregator.add_audio("43", "Bob", "", b"b")
    await asyncio.sleep(0.05)

    assert processor.calls == []
    assert aggregator.get_session("42").contributor_count == 1
    assert aggregator.get_session("43").contributor_count == 1


async def test_late_chunk_within_delay_is_included(storage):
    processor = FakeProcessor()
    aggregator = RecordingAggregator(storage, processor, processing_delay=0.1)

    await aggregator.add_audio("42", "Alice", "alice@x.com", b"a1")
    await aggregator.add_audio("42", "Bob", "bob@x.com", b"b1")
    await aggregator.add_audio("42", "Bob", "bob@x.com", b"b2-final")

    await wait_for(lambda: aggregator.get_session("42") is None)
    assert len(processor.calls[0]["contributions"]) == 3


async def test_chunk_after_snapshot_is_still_deleted(storage):
    processor = FakeProcessor(delay=0.1)
    aggregator = RecordingAggregator(storage, processor, processing_delay=0)

    await aggregator.add_audio("42", "Alice", "", b"a1")
    await aggregator.add_audio("42", "Bob", "", b"b1")
    await wait_for(lambda: processor.calls)
    receipt = await aggregator.add_audio("42", "Alice", "", b"a2-late")

    assert receipt.state == SessionState.PROCESSING
    assert receipt.triggered is False
    await wait_for(lambda: aggregator.get_session("42") is None)
    assert len(processor.calls) == 1
    assert len(processor.calls[0]["contributions"]) == 2
    assert list(storage.base_dir.iterdir()) == []


async def test_cleanup_runs_when_processing_raises(storage):
    processor = FakeProcessor(error=RuntimeError("transcription service down"))
    aggregator = RecordingAggregator(storage, processor, processing_delay=0)

    await aggregator.add_audio("42", "Alice", "", b"a1")
    await aggregator.add_audio("42", "Bob", "", b"b1")

    await wait_for(lambda: aggregator.get_session("42") is None)
    assert len(processor.calls) == 1
    assert list(storage.base_dir.iterdir()) == []


async def test_upload_after_completion_starts_new_session(aggregator, processor):
    await aggregator.add_audio("42", "Alice", "", b"a1")
    await aggregator.add_audio("42", "Bob", "", b"b1")
    await wait_for(lambda: aggregator.get_session("42") is None)

    receipt = await aggregator.add_audio("42", "Alice", "", b"a2")

    assert receipt.contributors == 1
    assert aggregator.get_session("42").state == SessionState.COLLECTING


async def test_storage_failure_is_not_counted(aggregator, processor):
    await aggregator.add_audio("42", "Alice", "", b"a1")
    aggregator.storage.save = AsyncMock(side_effect=TransientUploadError("disk full"))

    with pytest.raises(TransientUploadError):
        await aggregator.add_audio("42", "Bob", "", b"b1")

    assert aggregator.get_session("42").contributor_count == 1
    assert processor.calls == []


async def test_discard_stale_removes_collecting_session(aggregator):
    await aggregator.add_audio("42", "Alice", "", b"a1")
    blob = aggregator.get_session("42").blob_paths()[0]

    assert await aggregator.discard_stale("42") is True
    assert aggregator.get_session("42") is None
    assert not Path(blob).exists()
    assert await aggregator.discard_stale("42") is False


async def test_discard_stale_leaves_processing_session(storage):
    processor = FakeProcessor(delay=0.1)
    aggregator = RecordingAggregator(storage, processor, processing_delay=0)
    await aggregator.add_audio("42", "Alice", "", b"a1")
    await aggregator.add_audio("42", "Bob", "", b"b1")

    assert await aggregator.discard_stale("42") is False
    await wait_for(lambda: aggregator.get_session("42") is None)
    assert len(processor.calls) == 1


async def test_shutdown_waits_for_processing_and_drops_collecting(storage):
    processor = FakeProcessor(delay=0.05)
    aggregator = RecordingAggregator(storage, processor, processing_delay=0)
    await aggregator.add_audio("42", "Alice", "", b"a1")
    await aggregator.add_audio("42", "Bob", "", b"b1")
    await aggregator.add_audio("43", "Carol", "", b"c1")

    await aggregator.shutdown()

    assert len(processor.calls) == 1
    assert aggregator.sessions == {}
    assert list(storage.base_dir.iterdir()) == []


async def test_upload_queued_behind_stale_discard_does_not_trigger(aggregator, processor):
    await aggregator.add_audio("42", "Alice", "", b"a1")
    alice_blob = aggregator.get_session("42").blob_paths()[0]

    release = asyncio.Event()

    async def hold_room():
        async with aggregator._locks.hold("42"):
            await release.wait()

    holder = asyncio.create_task(hold_room())
    await wait_for(lambda: aggregator._locks.locked("42"))
    discard = asyncio.create_task(aggregator.discard_stale("42"))
    await wait_for(lambda: aggregator._locks._holders.get("42") == 2)
    upload = asyncio.create_task(aggregator.add_audio("42", "Bob", "", b"b-final"))
    await wait_for(lambda: aggregator._locks._holders.get("42") == 3)

    release.set()
    await holder
    discarded = await discard
    receipt = await upload

    assert discarded is True
    assert receipt.triggered is False
    assert receipt.contributors == 1
    assert not Path(alice_blob).exists()
    session = aggregator.get_session("42")
    assert session.state == SessionState.COLLECTING
    assert [c.contributor for c in session.contributions] == ["Bob"]
    await asyncio.sleep(0.05)
    assert processor.calls == []
