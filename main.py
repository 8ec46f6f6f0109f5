"""
Replays bridge events from a JSON-lines file into the SQLite store.

Each line holds one delivered event plus its name, e.g.
{"event": "AvailBridgeV1:MessageSent", "transactionHash": "0x..", "blockNumber": 1,
 "blockHash": "0x..", "args": {"messageId": 42, "from": "0x..", "to": "0x.."}}
"""
import argparse
import asyncio
import json
import logging

from bridge_indexer import BridgeContext, BridgeEventProcessor, PayloadDecoder, sqlite_persistence_factory
from bridge_indexer.adaptors.rpc import connect
from bridge_indexer.config import get_settings


def read_events(path: str):
    with open(path) as f:
        for line in f:
            line = line.strip()
            if not line:
                continue
            payload = json.loads(line)
            yield payload.pop("event"), payload


async def main():
    parser = argparse.ArgumentParser()
    parser.add_argument("events", help="JSON-lines file of delivered events")
    parser.add_argument("--db-path", help="Overrides BRIDGE_DB_PATH")
    args = parser.parse_args()

    settings = get_settings()
    logging.basicConfig(level=settings.log_level, format="%(asctime)s %(levelname)s %(message)s")
    if not settings.rpc_url:
        parser.error("BRIDGE_RPC_URL must be set")

    rpc = connect(settings.rpc_url)
    async with sqlite_persistence_factory(args.db_path or settings.db_path, table=settings.table_name) as store:
        context = BridgeContext(
            transactions=rpc,
            proofs=rpc,
            store=store,
            contract_address=settings.contract_address,
            decoder=PayloadDecoder(foreign_selectors=settings.foreign_selectors),
            proof_policy=settings.proof_policy,
            message_slot=settings.message_slot,
            table=settings.table_name,
        )
        processor = BridgeEventProcessor(context)
        stats = await processor.process_many(read_events(args.events), batch_size=settings.batch_size)
        for name, cause in stats.failures:
            print(f"FAILED {name}: {cause}")


if __name__ == "__main__":
    asyncio.run(main())
