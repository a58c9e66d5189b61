"""Storage module: repository errors, in-memory repository and pool snapshots."""

from dexarb.storage.memory import InMemoryPoolRepository
from dexarb.storage.repository import (
    PoolNotFoundError,
    RepositoryError,
    RepositoryNotInitializedError,
)
from dexarb.storage.snapshot import dump_pools_to_json, load_pools_from_json


__all__ = [
    "InMemoryPoolRepository",
    "PoolNotFoundError",
    "RepositoryError",
    "RepositoryNotInitializedError",
    "dump_pools_to_json",
    "load_pools_from_json",
]
