"""
Docker Hub tag provider.

Reads the most recently updated tags and skips pre-release looking ones.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List

import httpx

from checkup.storage.models import TrackedArtifact
from checkup.versions.base import VersionFetchError, VersionInfo

logger = logging.getLogger(__name__)

PRERELEASE_MARKERS = ("dev", "beta", "alpha", "rc")


def is_stable_tag(name: str) -> bool:
    lowered = name.lower()
    if lowered == "latest":
        return False
    return not any(marker in lowered for marker in PRERELEASE_MARKERS)


def select_tag(tags: List[Dict[str, Any]]) -> Dict[str, Any]:
    """
    Pick the tag to report from a newest-first list.

    The newest stable tag wins; if every tag looks like a pre-release,
    the newest tag overall is used instead.
    """
    if not tags:
        raise VersionFetchError("No tags found")
    for tag in tags:
        if is_stable_tag(tag.get("name", "")):
            return tag
    return tags[0]


class DockerHubTags:
    """Fetch the newest stable tag of an image."""

    provider = "dockerhub"
    API_URL = "https://registry.hub.docker.com/v2/repositories"

    def __init__(
        self, timeout: float = 10.0, page_size: int = 25, api_url: str = API_URL
    ) -> None:
        self._timeout = timeout
        self._page_size = page_size
        self._api_url = api_url.rstrip("/")

    @staticmethod
    def repository_path(image: str) -> str:
        """Official images live under the library/ namespace."""
        return image if "/" in image else f"library/{image}"

    async def fetch_version(
        self, artifact: TrackedArtifact, client: httpx.AsyncClient
    ) -> VersionInfo:
        if not artifact.image:
            raise VersionFetchError(f"{artifact.name}: no image configured")

        url = f"{self._api_url}/{self.repository_path(artifact.image)}/tags/"
        try:
            response = await client.get(
                url,
                params={"page_size": self._page_size, "ordering": "-last_updated"},
                timeout=self._timeout,
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise VersionFetchError(
                f"Docker Hub API error: HTTP {e.response.status_code}",
                status_code=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            raise VersionFetchError(f"Docker Hub API error: {e}") from e

        results = (response.json() or {}).get("results") or []
        tag = select_tag(results)
        return VersionInfo(version=tag["name"], release_date=tag.get("last_updated"))
