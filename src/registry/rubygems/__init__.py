"""RubyGems / Bundler support.

This package resolves the dependency graph of a gem project from what is
installed locally:
- gemspec_parser.py / lockfile_parser.py: manifest readers
- host.py: ``gem``/``bundler``/``ruby`` queries
- cache.py: index of installed gems across install roots
- checksum.py / license.py: archive digests and license files
- graph.py: root discovery and bounded expansion
- plugin.py: the Bundler plugin surface
- client.py: optional rubygems.org enrichment

graph.py and plugin.py are imported from their modules directly; they
depend on the versioning package, which itself imports from here.
"""

from .errors import (  # noqa: F401
    ChecksumUnavailable,
    DependenciesNotInstalled,
    DescendantUnresolved,
    FilesystemError,
    GemResolutionError,
    InvalidProjectType,
    LicenseNotFound,
    ManifestNotFound,
    NoDependenciesFound,
)
from .models import LockedPackage, Spec, VersionMap  # noqa: F401
from .gemspec_parser import load_gemspec, parse_gemspec  # noqa: F401
from .lockfile_parser import get_locked_dependencies, parse_gemfile_lock  # noqa: F401
from .cache import DependencyCache  # noqa: F401
from .client import GemMetadata, fetch_gem_info  # noqa: F401

__all__ = [
    # Errors
    "GemResolutionError",
    "ManifestNotFound",
    "DescendantUnresolved",
    "ChecksumUnavailable",
    "LicenseNotFound",
    "FilesystemError",
    "DependenciesNotInstalled",
    "InvalidProjectType",
    "NoDependenciesFound",
    # Models
    "Spec",
    "VersionMap",
    "LockedPackage",
    # Readers
    "parse_gemspec",
    "load_gemspec",
    "parse_gemfile_lock",
    "get_locked_dependencies",
    # Index and registry
    "DependencyCache",
    "GemMetadata",
    "fetch_gem_info",
]
