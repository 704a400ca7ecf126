"""RubyGems version resolver backed by the locally installed gem index."""

import logging
from typing import List, Optional, Tuple

from packaging import version

from common.logging_utils import extra_context, is_debug_enabled
from registry.rubygems.errors import DescendantUnresolved
from registry.rubygems.models import Spec

from ..models import Ecosystem, RequirementSpec, ResolutionMode
from ..parser import parse_requirement
from .base import VersionResolver

logger = logging.getLogger(__name__)


def _major(value: str) -> int:
    head = value.split(".", 1)[0]
    try:
        return int(head)
    except ValueError:
        return -1


def _sort_key(value: str):
    try:
        parsed = version.Version(value)
    except version.InvalidVersion:
        parsed = version.Version("0")
    return (_major(value), parsed, value)


class RubyGemsVersionResolver(VersionResolver):
    """Resolver for gems installed on the host.

    ``cache`` is a populated DependencyCache; candidates are the versions it
    knows for a gem name. No registry is consulted.
    """

    @property
    def ecosystem(self) -> Ecosystem:
        """Return RubyGems ecosystem."""
        return Ecosystem.RUBYGEMS

    def fetch_candidates(self, req: RequirementSpec) -> List[str]:
        """Installed versions of ``req.name``, in cache order."""
        if self.cache is None:
            return []
        versions = self.cache.get(req.name)
        if versions is None:
            return []
        return list(versions.versions.keys())

    def pick(
        self, req: RequirementSpec, candidates: List[str]
    ) -> Tuple[Optional[str], int, Optional[str]]:
        """Select an installed version for ``req``.

        The requested version when installed; otherwise the only installed
        version; otherwise the one with the highest major version.

        Returns:
            Tuple of (resolved_version, candidate_count, error_message)
        """
        if not candidates:
            return None, 0, f"{req.name} is not installed"
        if req.version and req.version in candidates:
            return req.version, len(candidates), None
        if len(candidates) == 1:
            return candidates[0], 1, None
        return max(candidates, key=_sort_key), len(candidates), None

    def resolve(self, raw: str) -> Spec:
        """Return the installed Spec satisfying the requirement string ``raw``.

        Raises:
            DescendantUnresolved: no installed gem carries the requested name.
        """
        req = parse_requirement(raw)
        candidates = self.fetch_candidates(req) if req.name else []
        chosen, count, error = self.pick(req, candidates)
        if is_debug_enabled(logger):
            logger.debug(
                "Resolved requirement",
                extra=extra_context(
                    event="resolve",
                    component="resolver",
                    action="pick",
                    outcome="resolved" if chosen else "unresolved",
                    target=req.name,
                    requested=req.version or None,
                    resolved=chosen,
                    candidates=count,
                    mode=req.mode.value,
                ),
            )
        if chosen is None:
            raise DescendantUnresolved(raw, req.name)
        if req.mode is ResolutionMode.EXACT and req.version and chosen != req.version:
            logger.debug("Pinned %s %s is not installed; using %s", req.name, req.version, chosen)
        return self.cache.get(req.name).versions[chosen]
