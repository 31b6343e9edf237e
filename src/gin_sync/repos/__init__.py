"""Read-only access to the platform's repository list."""

from .store import InMemoryRepositoryStore, JsonRepositoryStore, RepositoryStore

__all__ = ["RepositoryStore", "InMemoryRepositoryStore", "JsonRepositoryStore"]
