"""Gemfile.lock reader.

Bundler lock files list every resolved gem inside indented ``specs:``
blocks (under ``GEM``, ``GIT`` and ``PATH`` sections)::

    GEM
      remote: https://rubygems.org/
      specs:
        rspec (3.12.0)
          rspec-core (~> 3.12.0)

The first indentation level under ``specs:`` names a package; deeper lines
are the gems that package depends on.
"""
from __future__ import annotations

import logging
import os
import re
from typing import Iterable, List, Optional

from constants import Constants, DetectionMode
from registry.rubygems.detect import detect_manifest
from registry.rubygems.errors import NoDependenciesFound
from registry.rubygems.gemspec_parser import read_lines
from registry.rubygems.models import LockedPackage

logger = logging.getLogger(__name__)

_ENTRY = re.compile(r"^(?P<name>[^\s(]+)(?:\s+\((?P<version>[^)]*)\))?")


def _indent(row: str) -> int:
    return len(row) - len(row.lstrip(" "))


def _entry(value: str) -> LockedPackage:
    match = _ENTRY.match(value)
    if not match:
        return LockedPackage(name=value)
    return LockedPackage(name=match.group("name"), version=match.group("version") or "")


def parse_gemfile_lock(rows: Iterable[str]) -> List[LockedPackage]:
    """Collect every package listed in the ``specs:`` blocks of a lock file.

    Args:
        rows: Lock file content, one line per item.

    Returns:
        Packages in file order, each with its raw relation strings.
    """
    packages: List[LockedPackage] = []
    specs_indent: Optional[int] = None
    package_indent: Optional[int] = None
    current: Optional[LockedPackage] = None

    for row in rows:
        value = row.strip()
        if not value:
            specs_indent = package_indent = None
            current = None
            continue
        indent = _indent(row)

        if value == Constants.LOCK_SPECS_TITLE:
            specs_indent, package_indent, current = indent, None, None
            continue
        if specs_indent is None:
            continue
        if indent <= specs_indent:
            specs_indent = package_indent = None
            current = None
            continue

        if package_indent is None:
            package_indent = indent
        if indent == package_indent:
            current = _entry(value)
            packages.append(current)
        elif current is not None and indent > package_indent and value not in current.relations:
            current.relations.append(value)

    return packages


def get_locked_dependencies(path: str) -> List[LockedPackage]:
    """Parse the lock file found in the project root ``path``.

    Raises:
        ManifestNotFound: no lock file in ``path``.
        FilesystemError: the lock file cannot be read.
        NoDependenciesFound: the lock file lists no packages.
    """
    manifest = detect_manifest(path, DetectionMode.LOCK)
    lock_path = os.path.join(path, manifest)
    packages = parse_gemfile_lock(read_lines(lock_path))
    if not packages:
        raise NoDependenciesFound(f"no dependencies were found in {lock_path}")
    logger.debug("Read %d locked package(s) from %s", len(packages), lock_path)
    return packages

