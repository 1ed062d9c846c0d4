"""
Generic JSON version API provider.

Field precedence: version, tag_name, latest. A body that is a bare
string is taken as the version itself.
"""
from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from checkup.storage.models import TrackedArtifact
from checkup.versions.base import VersionFetchError, VersionInfo

logger = logging.getLogger(__name__)

VERSION_FIELDS = ("version", "tag_name", "latest")


def extract_version(payload: Any) -> Optional[str]:
    """Find a version string in a decoded response body."""
    if isinstance(payload, str):
        return payload.strip() or None
    if isinstance(payload, dict):
        for key in VERSION_FIELDS:
            value = payload.get(key)
            if value:
                return str(value)
    return None


class GenericVersionApi:
    """Fetch a version from an arbitrary URL returning JSON or plain text."""

    provider = "api"

    def __init__(self, timeout: float = 10.0) -> None:
        self._timeout = timeout

    async def fetch_version(
        self, artifact: TrackedArtifact, client: httpx.AsyncClient
    ) -> VersionInfo:
        if not artifact.api_url:
            raise VersionFetchError(f"{artifact.name}: no api_url configured")

        try:
            response = await client.get(artifact.api_url, timeout=self._timeout)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise VersionFetchError(
                f"Custom API error: HTTP {e.response.status_code}",
                status_code=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            raise VersionFetchError(f"Custom API error: {e}") from e

        try:
            payload = response.json()
        except ValueError:
            payload = response.text
        if isinstance(payload, (int, float)):
            # Bare numbers like 2 or 1.5 decode as JSON scalars
            payload = response.text

        version = extract_version(payload)
        if not version:
            raise VersionFetchError("Unrecognized version API response format")

        if isinstance(payload, dict):
            return VersionInfo(
                version=version,
                release_date=payload.get("published_at") or payload.get("date"),
                release_notes=payload.get("notes") or payload.get("changelog"),
            )
        return VersionInfo(version=version)
