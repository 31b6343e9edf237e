"""
GIN Sync - search-index dispatch and git-annex lifecycle management.

Keeps the search service and each repository's git-annex sidecar in step
with the canonical repository state of a self-hosted code-hosting platform.
"""

__version__ = "0.3.0"
