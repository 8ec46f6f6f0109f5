from functools import lru_cache
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .abi import SAFE_EXEC_TRANSACTION_SELECTOR
from .handlers import DEFAULT_BATCH_SIZE
from .proof import MESSAGE_COMPLETION_SLOT
from .reconciler import BRIDGE_EVENT_TABLE, ProofPolicy

AVAIL_BRIDGE_V1_ADDRESS = "0x42CDc5D4B05E8dACc2FCD181cbe0Cc86Ee14c439"
AVAIL_BRIDGE_V1_START_BLOCK = 17942156


class IndexerSettings(BaseSettings):
    """Indexer configuration, read from `BRIDGE_*` environment variables or `.env`."""
    model_config = SettingsConfigDict(env_prefix="BRIDGE_", env_file=".env", extra="ignore")

    db_path: str = "bridge_events.db"
    rpc_url: Optional[str] = None
    contract_address: str = AVAIL_BRIDGE_V1_ADDRESS
    # Where the notifier starts; not used by the core itself.
    start_block: int = AVAIL_BRIDGE_V1_START_BLOCK
    message_slot: int = MESSAGE_COMPLETION_SLOT
    # Selectors of functions that share the bridge address but are not decoded.
    foreign_selectors: List[str] = [SAFE_EXEC_TRANSACTION_SELECTOR]
    proof_policy: ProofPolicy = ProofPolicy.REQUIRED
    table_name: str = BRIDGE_EVENT_TABLE
    # Events processed concurrently by the replay CLI.
    batch_size: int = Field(default=DEFAULT_BATCH_SIZE, ge=1)
    log_level: str = "INFO"

    @field_validator("foreign_selectors")
    @classmethod
    def check_selectors(cls, value: List[str]) -> List[str]:
        normalized = []
        for selector in value:
            selector = selector.lower()
            if not selector.startswith("0x"):
                selector = "0x" + selector
            if len(selector) != 10:
                raise ValueError(f"selector must be 4 bytes, got {selector!r}")
            bytes.fromhex(selector[2:])
            normalized.append(selector)
        return normalized

    @field_validator("table_name")
    @classmethod
    def check_table_name(cls, value: str) -> str:
        # Interpolated into SQL by the SQLite adapter.
        if not value.replace("_", "").isalnum():
            raise ValueError(f"invalid table name: {value!r}")
        return value


@lru_cache(maxsize=1)
def get_settings() -> IndexerSettings:
    return IndexerSettings()
