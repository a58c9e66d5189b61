"""
Repository error taxonomy.

The repository contract itself is the ``PoolRepository`` protocol in
``dexarb.core.types``; implementations raise these errors.
"""


class RepositoryError(Exception):
    """Base exception for repository errors."""

    pass


class RepositoryNotInitializedError(RepositoryError):
    """Raised when a repository is used before ``initialize()``."""

    def __init__(self, name: str) -> None:
        super().__init__(f"{name} used before initialize()")
        self.name = name


class PoolNotFoundError(RepositoryError, KeyError):
    """Raised when a pool id is unknown."""

    def __init__(self, pool_id: str) -> None:
        super().__init__(f"Pool not found: {pool_id}")
        self.pool_id = pool_id
