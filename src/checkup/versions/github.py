"""
GitHub release provider.

Uses the latest release; repositories that never published a release
(404) fall back to the newest tag.
"""
from __future__ import annotations

import logging
from typing import Dict, Optional

import httpx

from checkup.storage.models import TrackedArtifact
from checkup.versions.base import VersionFetchError, VersionInfo

logger = logging.getLogger(__name__)


class GitHubReleases:
    """Fetch the newest release (or tag) of owner/repo."""

    provider = "github"
    API_URL = "https://api.github.com"

    def __init__(
        self,
        timeout: float = 10.0,
        user_agent: str = "CheckUp-Monitor/1.0",
        token: Optional[str] = None,
        api_url: str = API_URL,
    ) -> None:
        self._timeout = timeout
        self._api_url = api_url.rstrip("/")
        self._headers: Dict[str, str] = {
            "User-Agent": user_agent,
            "Accept": "application/vnd.github+json",
        }
        if token:
            self._headers["Authorization"] = f"Bearer {token}"

    async def fetch_version(
        self, artifact: TrackedArtifact, client: httpx.AsyncClient
    ) -> VersionInfo:
        if not artifact.repository:
            raise VersionFetchError(f"{artifact.name}: no repository configured")

        base = f"{self._api_url}/repos/{artifact.repository}"
        try:
            response = await client.get(
                f"{base}/releases/latest", headers=self._headers, timeout=self._timeout
            )
        except httpx.HTTPError as e:
            raise VersionFetchError(f"GitHub API error: {e}") from e

        if response.status_code == 404:
            logger.debug(f"{artifact.repository} has no releases, falling back to tags")
            return await self._latest_tag(artifact.repository, base, client)

        if response.is_error:
            raise VersionFetchError(
                f"GitHub API error: HTTP {response.status_code}",
                status_code=response.status_code,
            )

        data = response.json()
        tag = data.get("tag_name")
        if not tag:
            raise VersionFetchError(f"GitHub release for {artifact.repository} has no tag_name")
        return VersionInfo(
            version=tag,
            release_date=data.get("published_at"),
            release_notes=data.get("body"),
        )

    async def _latest_tag(
        self, repository: str, base: str, client: httpx.AsyncClient
    ) -> VersionInfo:
        try:
            response = await client.get(f"{base}/tags", headers=self._headers, timeout=self._timeout)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise VersionFetchError(
                f"Could not fetch GitHub tags: HTTP {e.response.status_code}",
                status_code=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            raise VersionFetchError(f"Could not fetch GitHub tags: {e}") from e

        tags = response.json()
        if not tags:
            raise VersionFetchError(f"{repository} has neither releases nor tags")
        return VersionInfo(version=tags[0]["name"])
