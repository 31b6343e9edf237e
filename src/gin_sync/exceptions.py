"""Exception classes for index dispatch and annex lifecycle operations."""

from pathlib import Path
from typing import Optional, Union


class GinSyncError(Exception):
    """Base exception for all gin-sync errors."""

    def __init__(self, message: str, details: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def __str__(self):
        if self.details:
            return f"{self.message}: {self.details}"
        return self.message


class ConfigurationError(GinSyncError):
    """Raised when required configuration is missing or invalid."""

    pass


class SerializationError(GinSyncError):
    """Raised when an index request cannot be encoded."""

    pass


class EncryptionError(GinSyncError):
    """Raised when a payload cannot be encrypted or decrypted."""

    pass


class TransportError(GinSyncError):
    """Raised when the search service is unreachable or rejects a request."""

    def __init__(
        self,
        message: str,
        details: Optional[str] = None,
        status_code: Optional[int] = None,
    ):
        super().__init__(message, details)
        self.status_code = status_code


class RepositoryStoreError(GinSyncError):
    """Raised when the repository store cannot be read."""

    pass


class AnnexCommandError(GinSyncError):
    """Raised when a git-annex (or git config) invocation fails."""

    def __init__(
        self,
        message: str,
        details: Optional[str] = None,
        returncode: Optional[int] = None,
        output: str = "",
    ):
        super().__init__(message, details)
        self.returncode = returncode
        self.output = output


class AnnexStepError(GinSyncError):
    """Raised when a single annex configuration step fails."""

    def __init__(self, step: str, path: Union[str, Path], details: Optional[str] = None):
        super().__init__(f"Annex step '{step}' failed in '{path}'", details)
        self.step = step
        self.path = str(path)


class AnnexSyncError(GinSyncError):
    """Raised when annex content synchronization fails on every attempt."""

    def __init__(self, path: Union[str, Path], details: Optional[str] = None):
        super().__init__(f"git annex sync --content [{path}]", details)
        self.path = str(path)


class PermissionRemediationError(GinSyncError):
    """Raised (and usually only logged) when a chmod fails during teardown."""

    def __init__(self, path: Union[str, Path], details: Optional[str] = None):
        super().__init__(f"Failed to change permissions on '{path}'", details)
        self.path = str(path)
