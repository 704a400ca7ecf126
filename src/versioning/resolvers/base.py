"""Base resolver interface shared by ecosystem resolvers."""

from abc import ABC, abstractmethod
from typing import List, Optional, Tuple

from ..models import Ecosystem, RequirementSpec


class VersionResolver(ABC):
    """Picks a concrete version for a requirement from a set of candidates."""

    def __init__(self, cache=None):
        """Initialize resolver with an optional candidate source."""
        self.cache = cache

    @property
    @abstractmethod
    def ecosystem(self) -> Ecosystem:
        """Return the ecosystem this resolver handles."""

    @abstractmethod
    def fetch_candidates(self, req: RequirementSpec) -> List[str]:
        """Return the version strings available for ``req``."""

    @abstractmethod
    def pick(
        self, req: RequirementSpec, candidates: List[str]
    ) -> Tuple[Optional[str], int, Optional[str]]:
        """Select a version.

        Returns:
            Tuple of (resolved_version, candidate_count, error_message)
        """
