"""
Index request and repository data models.

Provides Pydantic models shared by the search dispatcher, the index
rebuilder and the repository store.
"""

from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class IndexRequest(BaseModel):
    """Request body sent (encrypted) to the search service.

    Serialized by alias so the wire form is ``{"RepoID": ..., "RepoPath": ...}``.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    repo_id: int = Field(..., alias="RepoID", description="Repository identifier")
    repo_path: str = Field(
        ..., alias="RepoPath", description="Repository full name (owner/name)"
    )

    @field_validator("repo_path")
    @classmethod
    def validate_repo_path(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("repo_path must not be empty")
        return v

    def to_json(self) -> str:
        """Serialize to the compact JSON form expected by the search service."""
        return self.model_dump_json(by_alias=True)


class Repository(BaseModel):
    """Read-only view of a hosted repository."""

    model_config = ConfigDict(frozen=True)

    id: int = Field(..., description="Repository identifier")
    owner: str = Field(..., description="Owner (user or organization) name")
    name: str = Field(..., description="Repository name")
    disk_path: Optional[Path] = Field(
        default=None, description="On-disk location of the repository"
    )

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"

    @classmethod
    def from_full_name(
        cls, repo_id: int, full_name: str, disk_path: Optional[Path] = None
    ) -> "Repository":
        """Build a repository from an ``owner/name`` string."""
        owner, sep, name = full_name.partition("/")
        if not sep or not owner or not name:
            raise ValueError(f"Expected 'owner/name', got '{full_name}'")
        return cls(id=repo_id, owner=owner, name=name, disk_path=disk_path)


class DispatchResult(BaseModel):
    """Outcome of a single index dispatch (only observable through its future)."""

    repo_id: int
    repo_path: str
    success: bool
    status_code: Optional[int] = None
    error: Optional[str] = None
