"""
Fire-and-forget dispatch of index requests to the search service.

Each dispatch builds an IndexRequest for one repository, encrypts it with the
pre-shared key and POSTs it to the configured endpoint. Dispatches run on a
thread pool; the caller gets a future it may ignore. Failures are logged in
the worker thread and never reach the code that triggered the dispatch.
"""

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Optional

import httpx
from pydantic import ValidationError

from ..config import SearchConfig
from ..exceptions import EncryptionError, SerializationError, TransportError
from ..models import DispatchResult, IndexRequest, Repository
from .cipher import encrypt_string

logger = logging.getLogger(__name__)


class IndexDispatcher:
    """Sends index requests for repositories without blocking the caller."""

    def __init__(
        self,
        config: SearchConfig,
        client: Optional[httpx.Client] = None,
        executor: Optional[ThreadPoolExecutor] = None,
    ):
        """
        Initialize the dispatcher.

        Args:
            config: Search service configuration (endpoint, key, timeout, bounds)
            client: Optional shared HTTP client; one client per dispatch otherwise
            executor: Optional executor to run dispatches on; a thread pool is
                started on the first start_indexing otherwise
        """
        self.config = config
        self._key = config.key_bytes
        self._client = client
        self._executor = executor
        self._executor_lock = threading.Lock()
        self._closed = False
        self._slots: Optional[threading.BoundedSemaphore] = None
        if config.max_outstanding is not None:
            self._slots = threading.BoundedSemaphore(config.max_outstanding)

    def __enter__(self) -> "IndexDispatcher":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.shutdown(wait=True)

    def start_indexing(self, repo: Repository) -> Optional[Future]:
        """
        Schedule an index request for a repository.

        Returns immediately. When indexing is disabled (no endpoint configured)
        nothing is scheduled and None is returned.

        Args:
            repo: Repository to index

        Returns:
            Future resolving to a DispatchResult, or None when disabled
        """
        if not self.config.enabled:
            logger.debug("Indexing not enabled")
            return None

        if self._slots is not None:
            self._slots.acquire()

        try:
            future = self._get_executor().submit(self.dispatch, repo)
        except RuntimeError as e:
            # Executor already shut down
            if self._slots is not None:
                self._slots.release()
            logger.error(f"Could not schedule index request for repository {repo.id}: {e}")
            return None

        if self._slots is not None:
            future.add_done_callback(self._release_slot)
        return future

    def dispatch(self, repo: Repository) -> DispatchResult:
        """
        Build, encrypt and send the index request for one repository.

        Never raises: every failure is logged and reported in the result.
        """
        logger.debug(f"Indexing repository {repo.id}")
        try:
            payload = self._build_payload(repo)
            token = encrypt_string(self._key, payload)
            status_code = self._post(token)
        except SerializationError as e:
            logger.error(f"Could not marshal index request for repository {repo.id}: {e}")
            return self._failed(repo, e)
        except EncryptionError as e:
            logger.error(f"Could not encrypt index request for repository {repo.id}: {e}")
            return self._failed(repo, e)
        except TransportError as e:
            logger.error(
                f"Error submitting index request for [{repo.id}: {repo.full_name}]: {e}"
            )
            return self._failed(repo, e, status_code=e.status_code)
        except Exception as e:
            # Nothing above a detached task will ever see this exception
            logger.error(
                f"Unexpected error indexing repository {repo.id}: {e}", exc_info=True
            )
            return self._failed(repo, e)

        logger.debug(f"Index request accepted for [{repo.id}: {repo.full_name}]")
        return DispatchResult(
            repo_id=repo.id,
            repo_path=repo.full_name,
            success=True,
            status_code=status_code,
        )

    def shutdown(self, wait: bool = True) -> None:
        """Stop accepting dispatches; optionally wait for in-flight ones."""
        with self._executor_lock:
            self._closed = True
            executor = self._executor
        if executor is not None:
            executor.shutdown(wait=wait)

    def _get_executor(self) -> ThreadPoolExecutor:
        with self._executor_lock:
            if self._closed:
                raise RuntimeError("dispatcher has been shut down")
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=self.config.max_workers,
                    thread_name_prefix="index-dispatch",
                )
            return self._executor

    def _build_payload(self, repo: Repository) -> str:
        try:
            request = IndexRequest(repo_id=repo.id, repo_path=repo.full_name)
            return request.to_json()
        except (ValidationError, ValueError, TypeError) as e:
            raise SerializationError("Invalid index request", str(e))

    def _post(self, token: str) -> int:
        """POST the encrypted token; returns the status code on HTTP 200."""
        try:
            if self._client is not None:
                response = self._client.post(
                    self.config.index_url, content=token, timeout=self.config.timeout
                )
            else:
                with httpx.Client(timeout=self.config.timeout) as client:
                    response = client.post(self.config.index_url, content=token)
        except httpx.HTTPError as e:
            raise TransportError("Index request failed", str(e))

        if response.status_code != httpx.codes.OK:
            raise TransportError(
                "Search service rejected index request",
                f"HTTP {response.status_code}",
                status_code=response.status_code,
            )
        return response.status_code

    def _release_slot(self, _future: Future) -> None:
        if self._slots is not None:
            self._slots.release()

    @staticmethod
    def _failed(
        repo: Repository, error: Exception, status_code: Optional[int] = None
    ) -> DispatchResult:
        return DispatchResult(
            repo_id=repo.id,
            repo_path=repo.full_name,
            success=False,
            status_code=status_code,
            error=str(error),
        )
