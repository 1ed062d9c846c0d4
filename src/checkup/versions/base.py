"""
Version adapter contract.

A version adapter asks an upstream provider for the newest published
version of a tracked artifact. Adapters raise VersionFetchError for
every failure (transport, HTTP status, unrecognized payload) so the
update checker has one exception type to record per artifact.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Protocol, runtime_checkable

import httpx

from checkup.storage.models import TrackedArtifact


class VersionFetchError(Exception):
    """Raised when an upstream version cannot be determined."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


@dataclass
class VersionInfo:
    """Normalized upstream release information."""

    version: str
    release_date: Optional[str] = None
    release_notes: Optional[str] = None


@runtime_checkable
class VersionAdapter(Protocol):
    """
    Protocol every version adapter implements.

    provider is the applications.provider tag it is registered under.
    """

    provider: str

    async def fetch_version(
        self, artifact: TrackedArtifact, client: httpx.AsyncClient
    ) -> VersionInfo:
        ...
