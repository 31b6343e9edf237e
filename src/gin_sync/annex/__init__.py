"""git-annex sidecar configuration, synchronization and teardown."""

from .lifecycle import SYNC_ATTEMPTS, AnnexLifecycle, SetupReport
from .runner import MEGABYTE, AnnexRunner

__all__ = ["AnnexLifecycle", "AnnexRunner", "SetupReport", "MEGABYTE", "SYNC_ATTEMPTS"]
