"""Project inspection: manifest detection, vendor roots and environment repair."""
from __future__ import annotations

import logging
import os
from typing import List, Tuple

from constants import Constants, DetectionMode
from common.logging_utils import log_discovered_files
from registry.rubygems import host
from registry.rubygems.errors import FilesystemError, ManifestNotFound

logger = logging.getLogger(__name__)


def _list_dir(path: str) -> List[str]:
    try:
        return sorted(os.listdir(path))
    except OSError as exc:
        raise FilesystemError(path, exc) from exc


def _matches(name: str, mode: DetectionMode) -> bool:
    ext = os.path.splitext(name)[1]
    if mode is DetectionMode.LOCK:
        return ext in (Constants.LOCK_EXTENSION, Constants.LEGACY_LOCK_EXTENSION)
    return ext == Constants.SPEC_EXTENSION


def detect_manifest(path: str, mode: DetectionMode = DetectionMode.SPEC) -> str:
    """Return the name of the first manifest of ``mode`` directly under ``path``.

    Raises:
        ManifestNotFound: no file with the expected extension.
        FilesystemError: ``path`` cannot be listed.
    """
    entries = _list_dir(path)
    for entry in entries:
        if _matches(entry, mode) and os.path.isfile(os.path.join(path, entry)):
            return entry
    expected = Constants.SPEC_EXTENSION if mode is DetectionMode.SPEC else Constants.LOCK_EXTENSION
    raise ManifestNotFound(f"No file with extension '{expected}' was detected in {path}")


def validate_project_type(path: str) -> bool:
    """True when the project root carries a gemspec."""
    try:
        detect_manifest(path, DetectionMode.SPEC)
    except (ManifestNotFound, FilesystemError):
        return False
    return True


def vendor_roots(project_root: str) -> List[str]:
    """Bundler install roots under ``vendor/bundle/ruby/<abi>``.

    Each returned directory holds ``specifications``, ``gems`` and ``cache``.
    """
    base = os.path.join(project_root, Constants.VENDOR_PATH)
    if not os.path.isdir(base):
        return []
    roots = [
        os.path.join(base, entry)
        for entry in _list_dir(base)
        if os.path.isdir(os.path.join(base, entry, Constants.SPEC_DIR))
    ]
    log_discovered_files(logger, "rubygems", {"vendor_root": roots})
    return roots


def ensure_rakefile(path: str) -> bool:
    """Create a minimal Rakefile when the project has none.

    Bundler's install tasks expect one to exist.
    """
    filename = os.path.join(path, Constants.RAKEFILE)
    if os.path.exists(filename):
        return True
    try:
        with open(filename, "w", encoding="utf-8") as fh:
            fh.write(Constants.RAKEFILE_CONTENT)
    except OSError as exc:
        logger.warning("Couldn't create %s: %s", filename, exc)
        return False
    logger.info("Created missing %s", filename)
    return True


def _platform_block(rows: List[str]) -> Tuple[int, int, List[str]]:
    """Locate the PLATFORMS block.

    Returns the index just past its last entry (-1 when absent), the
    entries' indentation and the entries themselves.
    """
    start = -1
    for i, row in enumerate(rows):
        if row.strip() == Constants.PLATFORMS_SECTION and not row.startswith(" "):
            start = i
            break
    if start < 0:
        return -1, 2, []
    indent, entries = 2, []
    end = start + 1
    while end < len(rows) and rows[end].strip() and rows[end].startswith(" "):
        indent = len(rows[end]) - len(rows[end].lstrip())
        entries.append(rows[end].strip())
        end += 1
    return end, indent, entries


def ensure_platform(path: str) -> bool:
    """Add the host platform to the lock file's PLATFORMS block.

    Returns True when the file was rewritten.
    """
    try:
        manifest = detect_manifest(path, DetectionMode.LOCK)
    except (ManifestNotFound, FilesystemError):
        return False
    lock_path = os.path.join(path, manifest)
    try:
        with open(lock_path, "r", encoding="utf-8") as fh:
            rows = fh.read().splitlines()
    except OSError as exc:
        logger.warning("Couldn't read %s: %s", lock_path, exc)
        return False

    index, indent, entries = _platform_block(rows)
    platform_name = host.local_platform()
    if index < 0 or platform_name in entries:
        return False
    rows.insert(index, " " * indent + platform_name)
    try:
        with open(lock_path, "w", encoding="utf-8") as fh:
            fh.write("\n".join(rows) + "\n")
    except OSError as exc:
        logger.warning("Couldn't update %s: %s", lock_path, exc)
        return False
    logger.info("Added platform %s to %s", platform_name, lock_path)
    return True
