"""Data models for parsed gem metadata."""

from dataclasses import dataclass, field
from typing import Dict, List


@dataclass
class Spec:
    """Fields recovered from one gemspec file."""
    name: str = ""
    version: str = ""
    license: str = ""
    licenses: List[str] = field(default_factory=list)
    license_text: str = ""
    install_dir: str = ""
    copyright: str = ""
    checksum: str = ""
    homepage: str = ""
    authors: List[str] = field(default_factory=list)
    emails: List[str] = field(default_factory=list)
    summary: str = ""
    description: str = ""
    rubygems_version: str = ""
    required_ruby_version: str = ""
    runtime_dependencies: List[str] = field(default_factory=list)
    development_dependencies: List[str] = field(default_factory=list)


@dataclass
class VersionMap:
    """Every installed version of one gem, keyed by version string."""
    versions: Dict[str, Spec] = field(default_factory=dict)

    @property
    def count(self) -> int:
        """Number of distinct known versions."""
        return len(self.versions)


@dataclass
class LockedPackage:
    """A ``specs:`` entry of a Gemfile.lock and the gems it depends on."""
    name: str
    version: str = ""
    relations: List[str] = field(default_factory=list)
