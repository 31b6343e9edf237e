"""
Repository stores for index rebuilds and dispatch callers.

The platform owns repository persistence; these stores only read from it.
JsonRepositoryStore reads the repository list the platform exports as JSON:

    [{"id": 42, "owner": "alice", "name": "myrepo", "path": "/data/alice/myrepo.git"}]
"""

import json
import logging
from pathlib import Path
from typing import Iterable, List, Optional, Protocol

from pydantic import ValidationError

from ..exceptions import RepositoryStoreError
from ..models import Repository

logger = logging.getLogger(__name__)


class RepositoryStore(Protocol):
    """Read-only repository lookup used by the search components."""

    def list_repositories(self) -> List[Repository]: ...

    def get_repository(self, repo_id: int) -> Optional[Repository]: ...


class InMemoryRepositoryStore:
    """Store backed by a fixed list of repositories."""

    def __init__(self, repositories: Optional[Iterable[Repository]] = None):
        self._repositories = list(repositories or [])

    def list_repositories(self) -> List[Repository]:
        return list(self._repositories)

    def get_repository(self, repo_id: int) -> Optional[Repository]:
        for repo in self._repositories:
            if repo.id == repo_id:
                return repo
        return None


class JsonRepositoryStore:
    """Store reading the exported repository list from a JSON file.

    The file is read on every call so a rebuild always sees the latest export.
    """

    def __init__(self, registry_file: Path):
        self.registry_file = Path(registry_file)

    def list_repositories(self) -> List[Repository]:
        if not self.registry_file.exists():
            raise RepositoryStoreError(
                "Repository registry not found", str(self.registry_file)
            )

        try:
            with open(self.registry_file, "r") as f:
                entries = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            raise RepositoryStoreError(
                f"Failed to read repository registry {self.registry_file}", str(e)
            )

        if not isinstance(entries, list):
            raise RepositoryStoreError(
                f"Repository registry {self.registry_file} must contain a list"
            )

        repos: List[Repository] = []
        for entry in entries:
            try:
                repos.append(
                    Repository(
                        id=entry["id"],
                        owner=entry["owner"],
                        name=entry["name"],
                        disk_path=entry.get("path"),
                    )
                )
            except (KeyError, TypeError, AttributeError, ValidationError) as e:
                raise RepositoryStoreError(
                    f"Malformed repository entry in {self.registry_file}", str(e)
                )

        logger.debug(f"Loaded {len(repos)} repositories from {self.registry_file}")
        return repos

    def get_repository(self, repo_id: int) -> Optional[Repository]:
        for repo in self.list_repositories():
            if repo.id == repo_id:
                return repo
        return None
