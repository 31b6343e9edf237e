"""Full search index rebuild: one dispatch per known repository."""

import logging

from ..exceptions import ConfigurationError, RepositoryStoreError
from ..repos.store import RepositoryStore
from .dispatcher import IndexDispatcher

logger = logging.getLogger(__name__)


class IndexRebuilder:
    """
    Sends every repository in the store to the search service.

    Dispatches are scheduled, not awaited: rebuild_index returns once each
    repository has been handed to the dispatcher. Per-repository failures are
    only visible in the dispatcher's logs.
    """

    def __init__(self, dispatcher: IndexDispatcher, store: RepositoryStore):
        self.dispatcher = dispatcher
        self.store = store

    def rebuild_index(self) -> int:
        """
        Schedule an index request for every repository.

        Returns:
            Number of dispatches scheduled

        Raises:
            ConfigurationError: If no indexing endpoint is configured
            RepositoryStoreError: If the repository list cannot be read
        """
        if not self.dispatcher.config.enabled:
            raise ConfigurationError("Indexing service not configured")

        try:
            repos = list(self.store.list_repositories())
        except RepositoryStoreError:
            raise
        except Exception as e:
            raise RepositoryStoreError("get all repos", str(e))

        logger.info(f"Found {len(repos)} repositories to index")
        for repo in repos:
            self.dispatcher.start_indexing(repo)

        logger.info("Rebuilding search index")
        return len(repos)
