from .sqlite import SQLitePersistenceAdapter, sqlite_persistence_factory
from .rpc import Web3RpcClient, connect

__all__ = ["SQLitePersistenceAdapter", "sqlite_persistence_factory", "Web3RpcClient", "connect"]
