"""
Lifecycle management for a repository's git-annex sidecar.

The sidecar's state lives entirely in its own on-disk metadata, so nothing
here tracks it. Setup is a fixed sequence of steps that are each safe to
re-apply to an already configured repository:

1. init (``--version=7``): a failure aborts the sequence and is raised
2. upgrade: a failure aborts the rest of the sequence but is not raised
3. addunlocked, backend, size filter: failures are logged and skipped

Sync retries exactly once. Teardown falls back to making the whole tree
writable when ``git annex uninit`` fails, so the directory can be removed.
"""

import logging
import os
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional, Union

from ..config import AnnexConfig
from ..exceptions import (
    AnnexCommandError,
    AnnexStepError,
    AnnexSyncError,
    PermissionRemediationError,
)
from .runner import DEFAULT_BACKEND, MEGABYTE, AnnexRunner

logger = logging.getLogger(__name__)

# A remote annex that was never synced usually fails the first sync
SYNC_ATTEMPTS = 2


@dataclass
class SetupReport:
    """Result of running the setup sequence on one repository."""

    path: str
    completed: bool = True
    failed_steps: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.completed and not self.failed_steps


class AnnexLifecycle:
    """Configures, synchronizes and tears down git-annex sidecars."""

    def __init__(self, config: AnnexConfig, runner: Optional[AnnexRunner] = None):
        self.config = config
        self.runner = runner or AnnexRunner(timeout=config.command_timeout)

    @property
    def size_threshold(self) -> int:
        """Size filter threshold in bytes."""
        return self.config.min_file_size_mb * MEGABYTE

    def init(self, path: Union[str, Path]) -> None:
        """Initialise annex in case it's a new repository."""
        self._run_step("init", path, lambda: self.runner.init(path))

    def upgrade(self, path: Union[str, Path]) -> None:
        """Upgrade to v7 in case the directory was left behind by an older setup."""
        self._run_step("upgrade", path, lambda: self.runner.upgrade(path))

    def enable_unlocked_mode(self, path: Union[str, Path]) -> None:
        self._run_step("addunlocked", path, lambda: self.runner.set_add_unlocked(path))

    def set_backend(self, path: Union[str, Path], backend: str = DEFAULT_BACKEND) -> None:
        self._run_step("backend", path, lambda: self.runner.set_backend(path, backend))

    def set_size_filter(
        self, path: Union[str, Path], threshold_bytes: Optional[int] = None
    ) -> None:
        if threshold_bytes is None:
            threshold_bytes = self.size_threshold
        self._run_step(
            "largefiles", path, lambda: self.runner.set_size_filter(path, threshold_bytes)
        )

    def setup(self, path: Union[str, Path]) -> SetupReport:
        """
        Bring the sidecar at ``path`` into the standard configuration.

        Args:
            path: Repository directory

        Returns:
            SetupReport listing the steps that failed

        Raises:
            AnnexStepError: If init fails (nothing else can be configured)
        """
        logger.debug(f"Running annex setup (with filesize filter) in '{path}'")
        report = SetupReport(path=str(path))

        self.init(path)

        try:
            self.upgrade(path)
        except AnnexStepError as e:
            report.completed = False
            report.failed_steps.append(e.step)
            return report

        optional_steps: List[Callable[[], None]] = [
            lambda: self.enable_unlocked_mode(path),
            lambda: self.set_backend(path),
            lambda: self.set_size_filter(path),
        ]
        for step in optional_steps:
            try:
                step()
            except AnnexStepError as e:
                report.failed_steps.append(e.step)

        return report

    def sync(self, path: Union[str, Path]) -> None:
        """
        Synchronise annexed content with the sidecar's remotes.

        Runs ``git annex sync --content`` and, if that fails, exactly once more
        regardless of the cause.

        Raises:
            AnnexSyncError: If both attempts fail
        """
        logger.debug(f"Synchronising annexed data in '{path}'")
        last_error: Optional[AnnexCommandError] = None

        for attempt in range(1, SYNC_ATTEMPTS + 1):
            try:
                self.runner.sync(path, "--content")
                return
            except AnnexCommandError as e:
                last_error = e
                logger.error(
                    f"Annex sync failed in '{path}' (attempt {attempt}/{SYNC_ATTEMPTS}): {e}"
                )

        raise AnnexSyncError(path, str(last_error) if last_error else None)

    def teardown(self, path: Union[str, Path]) -> List[PermissionRemediationError]:
        """
        Uninit the annex at ``path``.

        If uninit fails, every file and directory below ``path`` is made
        writable for owner and group so that the directory can be deleted.

        Returns:
            Permission changes that failed during remediation (empty when uninit succeeded)
        """
        logger.debug(f"Uninit annex at '{path}'")
        try:
            self.runner.uninit(path)
            return []
        except AnnexCommandError as e:
            logger.error(f"uninit failed in '{path}': {e}")

        return self.remediate_permissions(path)

    def remediate_permissions(
        self, path: Union[str, Path]
    ) -> List[PermissionRemediationError]:
        """
        Walk ``path`` and set file and directory modes from the annex config.

        Directories are changed before they are listed, so read-only annex
        object directories become traversable. Failures are logged and the
        walk continues. Symlinks are left alone.
        """
        root = Path(path)
        failures: List[PermissionRemediationError] = []

        def chmod(target: Union[str, Path], mode: int) -> None:
            try:
                os.chmod(target, mode)
            except OSError as e:
                error = PermissionRemediationError(target, str(e))
                logger.error(str(error))
                failures.append(error)

        def on_walk_error(error: OSError) -> None:
            failed = PermissionRemediationError(error.filename or root, str(error))
            logger.error(f"file permission change failed: {failed}")
            failures.append(failed)

        if root.is_symlink() or not root.exists():
            return failures

        if not root.is_dir():
            chmod(root, self.config.file_mode)
            return failures

        chmod(root, self.config.dir_mode)
        for dirpath, dirnames, filenames in os.walk(root, onerror=on_walk_error):
            for name in dirnames:
                target = os.path.join(dirpath, name)
                if not os.path.islink(target):
                    chmod(target, self.config.dir_mode)
            for name in filenames:
                target = os.path.join(dirpath, name)
                if not os.path.islink(target):
                    chmod(target, self.config.file_mode)

        if failures:
            logger.warning(
                f"{len(failures)} permission changes failed while remediating '{path}'"
            )
        return failures

    def purge(self, path: Union[str, Path]) -> None:
        """
        Tear down the annex and delete the repository directory.

        Raises:
            OSError: If the directory cannot be removed
        """
        self.teardown(path)
        target = Path(path)
        if not target.exists():
            logger.debug(f"Repository directory already deleted: {path}")
            return
        shutil.rmtree(target)
        logger.info(f"Removed repository directory: {path}")

    def _run_step(self, step: str, path: Union[str, Path], action: Callable[[], str]) -> None:
        try:
            action()
        except AnnexCommandError as e:
            logger.error(f"Annex step '{step}' failed in '{path}': {e}")
            raise AnnexStepError(step, path, str(e)) from e
