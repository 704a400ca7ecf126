"""Bundler project plugin: the entry point a multi-ecosystem SBOM tool calls."""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from constants import Constants
from registry.rubygems import host
from registry.rubygems.cache import DependencyCache
from registry.rubygems.client import fetch_gem_info
from registry.rubygems.detect import ensure_platform, ensure_rakefile, validate_project_type
from registry.rubygems.errors import (
    DependenciesNotInstalled,
    GemResolutionError,
    InvalidProjectType,
)
from registry.rubygems.graph import GraphBuilder
from sbom_module import Module

logger = logging.getLogger(__name__)


@dataclass
class PluginMetadata:
    """Static description of a package-manager plugin."""
    name: str
    slug: str
    manifests: List[str] = field(default_factory=list)
    module_paths: List[str] = field(default_factory=list)


def parse_bundler_version(output: str) -> str:
    """Extract ``2.4.10`` from ``Bundler version 2.4.10``.

    Raises:
        GemResolutionError: the output does not have that shape.
    """
    fields = output.split()
    if len(fields) < 3 or fields[0] != "Bundler" or fields[1] != "version":
        raise GemResolutionError(f"unexpected output format: {output.strip()}")
    return fields[2]


class GemPlugin:
    """Resolves the gems used by a Bundler-managed gem project."""

    def __init__(
        self,
        cache: Optional[DependencyCache] = None,
        max_depth: Optional[int] = None,
        remote: Optional[bool] = None,
        repair_platforms: Optional[bool] = None,
    ):
        self.metadata = PluginMetadata(
            name="Bundler",
            slug="bundler",
            manifests=list(Constants.MANIFESTS),
            module_paths=[Constants.MODULE_PATH],
        )
        self.cache = cache if cache is not None else DependencyCache()
        self.max_depth = max_depth
        self.remote = Constants.REMOTE_ENABLED if remote is None else remote
        self.repair_platforms = (
            Constants.REPAIR_PLATFORMS if repair_platforms is None else repair_platforms
        )
        self.root_module: Optional[Module] = None
        self.unresolved: List[Tuple[str, str]] = []

    def _builder(self) -> GraphBuilder:
        return GraphBuilder(
            cache=self.cache,
            max_depth=self.max_depth,
            remote=fetch_gem_info if self.remote else None,
        )

    def is_valid(self, path: str) -> bool:
        """True when any Bundler manifest exists in ``path``."""
        return any(os.path.exists(os.path.join(path, m)) for m in self.metadata.manifests)

    def has_modules_installed(self, path: str) -> None:
        """Check that Bundler installed the project's gems into ``vendor/bundle``.

        Creates a missing Rakefile and, when enabled, adds the host platform
        to the lock file.

        Raises:
            InvalidProjectType: no gemspec in ``path``.
            DependenciesNotInstalled: nothing under ``vendor/bundle``.
        """
        if not validate_project_type(path):
            raise InvalidProjectType()
        has_rakefile = ensure_rakefile(path)
        if self.repair_platforms:
            ensure_platform(path)
        has_modules = any(
            os.path.exists(os.path.join(path, module_path))
            for module_path in self.metadata.module_paths
        )
        if not (has_rakefile and has_modules):
            raise DependenciesNotInstalled()

    def get_version(self) -> str:
        """Installed Bundler version.

        Raises:
            GemResolutionError: bundler is missing or printed something unexpected.
        """
        output = host.bundler_version_output()
        if output is None:
            raise GemResolutionError("bundler is not available on this host")
        return parse_bundler_version(output)

    def get_root_module(self, path: str) -> Module:
        """Module describing the project's own gem."""
        self.has_modules_installed(path)
        return self._builder().root_module(path)

    def set_root_module(self, path: str) -> None:
        """Resolve and remember the project's root module."""
        self.root_module = self.get_root_module(path)

    def list_used_modules(self, path: str) -> List[Module]:
        """Every module the project uses, root first."""
        return self.list_modules_with_deps(path)

    def list_modules_with_deps(self, path: str) -> List[Module]:
        """Root module followed by its dependencies, layer by layer."""
        self.has_modules_installed(path)
        builder = self._builder()
        modules = builder.build(path)
        self.unresolved = list(builder.unresolved)
        self.root_module = modules[0]
        logger.info("Resolved %d module(s) for %s", len(modules), self.root_module.name)
        return modules
