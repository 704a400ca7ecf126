"""SHA-256 digests of packaged ``.gem`` archives."""
from __future__ import annotations

import hashlib
import logging
import os
import re
from pathlib import PurePath
from typing import Iterable

from constants import Constants
from registry.rubygems import host
from registry.rubygems.errors import ChecksumUnavailable

logger = logging.getLogger(__name__)

_HEX_DIGEST = re.compile(r"^[0-9a-fA-F]{64}$")


def is_cache_dir(path: str) -> bool:
    """True when ``path`` sits inside a gem package cache directory."""
    return Constants.CACHE_DIR in PurePath(path).parts


def sha256_file(path: str) -> str:
    """Compute the digest in process."""
    digest = hashlib.sha256()
    with open(path, "rb") as fh:
        for chunk in iter(lambda: fh.read(65536), b""):
            digest.update(chunk)
    return digest.hexdigest()


def _from_tool(args) -> str:
    output = host.run_command(args)
    fields = output.split() if output else []
    if not fields or not _HEX_DIGEST.match(fields[0]):
        raise ChecksumUnavailable(f"{args[0]} produced no digest for {args[-1]}")
    return fields[0].lower()


def compute_checksum(cache_dir: str, stem: str) -> str:
    """Digest ``<cache_dir>/<stem>.gem``.

    Returns an empty string, without error, when ``cache_dir`` is not a
    package cache directory.

    Raises:
        ChecksumUnavailable: the archive is missing or the tool failed.
    """
    if not is_cache_dir(cache_dir):
        return ""
    archive = os.path.join(cache_dir, stem + Constants.GEM_EXTENSION)
    if not os.path.isfile(archive):
        raise ChecksumUnavailable(f"no archive at {archive}")

    os_name = host.host_os()
    if os_name == "linux":
        return _from_tool(["sha256sum", archive])
    if os_name == "darwin":
        return _from_tool(["shasum", "-a", "256", archive])
    try:
        return sha256_file(archive)
    except OSError as exc:
        raise ChecksumUnavailable(str(exc)) from exc


def checksum_or_none(cache_dirs: Iterable[str], stem: str) -> str:
    """First digest found across ``cache_dirs``, else the ``NONE`` sentinel."""
    for cache_dir in cache_dirs:
        if not cache_dir or not os.path.isdir(cache_dir):
            continue
        try:
            sha = compute_checksum(cache_dir, stem)
        except ChecksumUnavailable as exc:
            logger.debug("Checksum lookup for %s in %s failed: %s", stem, cache_dir, exc)
            continue
        if sha:
            return sha
    return Constants.CHECKSUM_NONE
