import os
import tempfile

import sqlite3
import pytest

from bridge_indexer import BridgeEvent, BridgeStatus, EventType, sqlite_persistence_factory


def sent_record(message_id=1, amount="10", proof=None, block_number=5):
    return BridgeEvent(
        message_id=message_id,
        event_type=EventType.SENT,
        sender="0x" + "aa" * 20,
        receiver="0x" + "bb" * 32,
        amount=amount,
        proof=proof if proof is not None else {"storageProof": [{"value": "1"}]},
        status=BridgeStatus.IN_PROGRESS,
        source_block_hash="0x" + "01" * 32,
        source_transaction_hash="0x" + "02" * 32,
        block_number=block_number,
    )


@pytest.mark.asyncio
async def test_upsert_inserts_then_overwrites(store):
    record = sent_record()
    await store.upsert("bridge_event", record.primary_key, record.to_row())
    assert await store.get(1, EventType.SENT) == record

    updated = sent_record(amount="20", proof={"storageProof": []}, block_number=6)
    await store.upsert("bridge_event", updated.primary_key, updated.to_row())

    assert await store.count() == 1
    assert await store.get(1, EventType.SENT) == updated


@pytest.mark.asyncio
async def test_large_message_id_and_amount_survive_storage(store):
    record = sent_record(message_id=2**255, amount=str(2**256 - 1))
    await store.upsert("bridge_event", record.primary_key, record.to_row())

    loaded = await store.get(2**255, EventType.SENT)
    assert loaded.message_id == 2**255
    assert loaded.amount == str(2**256 - 1)


@pytest.mark.asyncio
async def test_upsert_rejects_mismatched_key(store):
    record = sent_record(message_id=1)
    with pytest.raises(ValueError, match="do not match primary key"):
        await store.upsert("bridge_event", (2, EventType.SENT), record.to_row())


@pytest.mark.asyncio
async def test_upsert_rejects_unknown_table(store):
    record = sent_record()
    with pytest.raises(ValueError, match="Unknown table"):
        await store.upsert("other", record.primary_key, record.to_row())


@pytest.mark.asyncio
async def test_status_column_only_accepts_known_states(store):
    row = sent_record().to_row()
    row["status"] = "In Progress"
    with pytest.raises(sqlite3.IntegrityError):
        await store.upsert("bridge_event", (1, EventType.SENT), row)
    assert await store.count() == 0


@pytest.mark.asyncio
async def test_find_by_message_id_missing(store):
    assert await store.find_by_message_id(404) == []
    assert await store.get(404, EventType.RECEIVED) is None


@pytest.mark.asyncio
async def test_file_persistence():
    with tempfile.TemporaryDirectory() as tmpdir:
        db_path = os.path.join(tmpdir, "bridge.db")
        record = sent_record()

        # Session 1: write the row
        async with sqlite_persistence_factory(db_path) as store:
            await store.upsert("bridge_event", record.primary_key, record.to_row())

        # Session 2: read it back
        async with sqlite_persistence_factory(db_path) as store:
            assert await store.get(1, EventType.SENT) == record


@pytest.mark.asyncio
async def test_custom_table_name():
    async with sqlite_persistence_factory(":memory:", table="eth_bridge_event") as store:
        record = sent_record()
        await store.upsert("eth_bridge_event", record.primary_key, record.to_row())
        assert await store.count() == 1


@pytest.mark.asyncio
async def test_missing_db_path():
    with pytest.raises(ValueError, match="db_path"):
        async with sqlite_persistence_factory(""):
            pass
