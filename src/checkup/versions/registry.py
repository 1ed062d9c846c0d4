"""
Version provider registry: maps applications.provider to an adapter.
"""
from __future__ import annotations

from typing import Dict, Iterable, List, Optional

from .api import GenericVersionApi
from .base import VersionAdapter
from .dockerhub import DockerHubTags
from .github import GitHubReleases


class UnknownProviderError(LookupError):
    """Raised when no adapter is registered for a provider tag."""

    pass


class VersionProviderRegistry:
    """
    Registry for version adapter lookup by provider.

    Usage:
        registry = VersionProviderRegistry([GitHubReleases()])
        adapter = registry.get("github")
    """

    def __init__(self, adapters: Optional[Iterable[VersionAdapter]] = None) -> None:
        self._adapters: Dict[str, VersionAdapter] = {}
        for adapter in adapters or ():
            self.register(adapter)

    def register(self, adapter: VersionAdapter) -> None:
        """Register (or replace) the adapter for its provider tag."""
        self._adapters[adapter.provider] = adapter

    def get(self, provider: str) -> VersionAdapter:
        """
        Raises:
            UnknownProviderError: If no adapter handles this provider
        """
        if provider not in self._adapters:
            raise UnknownProviderError(f"Unsupported provider: {provider}")
        return self._adapters[provider]

    def list_all(self) -> List[str]:
        return sorted(self._adapters.keys())

    def __contains__(self, provider: str) -> bool:
        return provider in self._adapters


def default_version_registry(
    timeout: float = 10.0,
    user_agent: str = "CheckUp-Monitor/1.0",
    github_token: Optional[str] = None,
) -> VersionProviderRegistry:
    """Registry with every built-in provider."""
    return VersionProviderRegistry([
        GitHubReleases(timeout=timeout, user_agent=user_agent, token=github_token),
        DockerHubTags(timeout=timeout),
        GenericVersionApi(timeout=timeout),
    ])
