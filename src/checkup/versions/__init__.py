"""
Version Adapters - one fetcher per artifact provider.

    - GitHubReleases: latest release, falling back to newest tag
    - DockerHubTags: newest stable registry tag
    - GenericVersionApi: version field from a JSON/plain-text endpoint

Each returns a VersionInfo or raises VersionFetchError.
"""

from .api import GenericVersionApi, extract_version
from .base import VersionAdapter, VersionFetchError, VersionInfo
from .compare import compare_versions, is_update_available
from .dockerhub import DockerHubTags, is_stable_tag, select_tag
from .github import GitHubReleases
from .registry import (
    UnknownProviderError,
    VersionProviderRegistry,
    default_version_registry,
)

__all__ = [
    "VersionAdapter",
    "VersionFetchError",
    "VersionInfo",
    "GitHubReleases",
    "DockerHubTags",
    "GenericVersionApi",
    "extract_version",
    "is_stable_tag",
    "select_tag",
    "compare_versions",
    "is_update_available",
    "VersionProviderRegistry",
    "UnknownProviderError",
    "default_version_registry",
]
