"""License file discovery and copyright extraction."""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import List

from constants import Constants
from registry.rubygems.errors import LicenseNotFound
from registry.rubygems.models import Spec

logger = logging.getLogger(__name__)


@dataclass
class LicenseInfo:
    """What a license file says."""
    copyright: str
    text: str
    path: str


def _is_license_file(name: str) -> bool:
    upper = name.upper()
    return any(marker in upper for marker in Constants.LICENSE_MARKERS)


def find_license_file(directory: str) -> str:
    """Path of the first license-like file in ``directory``.

    Raises:
        LicenseNotFound: no such file, or the directory is unreadable.
    """
    try:
        entries = sorted(os.listdir(directory))
    except OSError as exc:
        raise LicenseNotFound(f"cannot list {directory}: {exc}") from exc
    for entry in entries:
        full = os.path.join(directory, entry)
        if _is_license_file(entry) and os.path.isfile(full):
            return full
    raise LicenseNotFound(f"no license file in {directory}")


def copyright_line(lines: List[str]) -> str:
    """First line carrying the ``Copyright (c)`` label, verbatim, or ''."""
    for line in lines:
        if Constants.COPYRIGHT_LABEL in line:
            return line
    return ""


def extract_license(directory: str) -> LicenseInfo:
    """Read the license file under ``directory``.

    Returns:
        LicenseInfo with the copyright line (empty when the file has none),
        the full text, and the directory it was found in.

    Raises:
        LicenseNotFound: when no license file can be read.
    """
    path = find_license_file(directory)
    try:
        with open(path, "r", encoding="utf-8", errors="replace") as fh:
            text = fh.read()
    except OSError as exc:
        raise LicenseNotFound(f"cannot read {path}: {exc}") from exc
    return LicenseInfo(copyright=copyright_line(text.splitlines()), text=text, path=directory)


def declared_license(spec: Spec) -> str:
    """License expression declared by the gemspec, or ``NOASSERTION``."""
    ids = [lic for lic in spec.licenses if lic]
    if not ids and spec.license:
        ids = [spec.license]
    ids = list(dict.fromkeys(ids))
    if not ids:
        return Constants.NO_ASSERTION
    if len(ids) == 1:
        return ids[0]
    return " OR ".join(ids)
