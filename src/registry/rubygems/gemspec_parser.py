"""Line-oriented gemspec reader.

A gemspec is Ruby source, so this does not evaluate anything: each line is
matched against a small allow-list of conventional DSL statements
(``s.name = ...``, ``spec.add_dependency ...``) and everything else is
treated as noise. The scan is stateless, so the same content always yields
the same Spec.
"""
from __future__ import annotations

import logging
import re
from typing import Iterable, List, Optional, Tuple

from registry.rubygems.errors import FilesystemError
from registry.rubygems.models import Spec

logger = logging.getLogger(__name__)

RECEIVERS = ("s", "spec")

_SCALAR_FIELDS = (
    "name",
    "version",
    "license",
    "homepage",
    "summary",
    "description",
    "rubygems_version",
    "required_ruby_version",
)
_LIST_FIELDS = ("licenses", "email", "authors")
_RUNTIME_FIELDS = ("add_dependency", "add_runtime_dependency")
_DEVELOPMENT_FIELDS = ("add_development_dependency",)

REQUIRED = frozenset(
    f"{receiver}.{attr}"
    for receiver in RECEIVERS
    for attr in _SCALAR_FIELDS + _LIST_FIELDS + _RUNTIME_FIELDS + _DEVELOPMENT_FIELDS
)

_COLUMN_SPLIT = re.compile(r"[\s(=]")
_PERCENT_LITERAL = re.compile(r"%[qQ]?[<{(\[]([^>})\]]*)[>})\]]")
_QUOTED = re.compile(r"\"([^\"]*)\"|'([^']*)'")
_HEREDOC = re.compile(r"^<<[~-]?(?:[A-Z_]\w*|\"[^\"]+\"|'[^']+')")
_VERSION_LITERAL = re.compile(r"^\d[\w.\-]*$")
_STEM = re.compile(r"^(?P<name>.+?)-(?P<version>\d[\w.]*)(?:-(?P<platform>.+))?$")


def unfreeze(value: str) -> str:
    """Drop the ``.freeze`` suffix bundler adds to string literals."""
    return value.replace(".freeze", "")


def clean_name(name: str) -> str:
    """Strip quoting and assignment debris from a gem name."""
    for ch in ("=", "\"", "“", "”", "'"):
        name = name.replace(ch, "")
    return name.strip()


def clean_uri(url: str) -> str:
    """Strip quoting and a leading assignment from a URL."""
    url = url.strip()
    if url.startswith("="):
        url = url[1:]
    return url.replace("\"", "").replace("'", "").strip()


def split_stem(stem: str) -> Tuple[str, str]:
    """Split ``rake-13.0.6`` (or ``nokogiri-1.15.4-x86_64-linux``) into name and version.

    Returns ``(stem, "")`` when the stem carries no version.
    """
    match = _STEM.match(stem)
    if not match:
        return stem, ""
    return match.group("name"), match.group("version")


def columns(row: str) -> str:
    """Return the leading identifier of a row (``s.name``, ``spec.add_dependency``)."""
    stripped = row.lstrip()
    if not stripped:
        return ""
    return _COLUMN_SPLIT.split(stripped, 1)[0]


def invalid_row(row: str) -> bool:
    """True for rows carrying Ruby string interpolation."""
    return "#{" in row


def strip_comment(row: str) -> str:
    """Drop a trailing ``#`` comment that sits outside string quotes."""
    quote = None
    for index, ch in enumerate(row):
        if quote:
            if ch == quote:
                quote = None
        elif ch in ("\"", "'"):
            quote = ch
        elif ch == "#":
            return row[:index].rstrip()
    return row


def _remainder(row: str, column: str) -> str:
    rest = strip_comment(row.lstrip()[len(column):]).strip()
    if rest.startswith("="):
        rest = rest[1:].strip()
    return unfreeze(rest)


def _literal(value: str) -> str:
    """Unquote a Ruby string literal; return other expressions untouched."""
    value = value.strip()
    if value[:1] in ("\"", "'"):
        quote = value[0]
        end = value.find(quote, 1)
        return value[1:end] if end != -1 else value[1:]
    match = _PERCENT_LITERAL.match(value)
    if match:
        return match.group(1)
    return value


def _list(value: str) -> List[str]:
    for ch in ("[", "]", "\"", "'", "="):
        value = value.replace(ch, "")
    return [item.strip() for item in value.split(",") if item.strip()]


def _dependency(value: str) -> Optional[str]:
    """Canonicalize a dependency declaration to ``"name", "req", ...``.

    Handles ``"x", "~> 1.0"``, ``"x", [">= 1.0"]`` and the generated
    ``(%q<x>.freeze, [">= 1.0"])`` forms.
    """
    match = _PERCENT_LITERAL.search(value)
    quoted = _QUOTED.search(value)
    if match and (quoted is None or match.start() < quoted.start()):
        name, tail = match.group(1), value[match.end():]
    elif quoted:
        name, tail = quoted.group(1) or quoted.group(2) or "", value[quoted.end():]
    else:
        return None
    name = clean_name(name)
    if not name:
        return None
    requirements = [
        (m.group(1) if m.group(1) is not None else m.group(2)).strip()
        for m in _QUOTED.finditer(tail)
    ]
    return ", ".join(f'"{part}"' for part in [name] + [r for r in requirements if r])


def _reduce_scalar(spec: Spec, attr: str, value: str) -> None:
    # Heredoc bodies span later lines, which are not scanned.
    text = "" if _HEREDOC.match(value) else _literal(value)
    if attr == "name":
        spec.name = clean_name(text)
    elif attr == "version":
        spec.version = text if _VERSION_LITERAL.match(text) else ""
    elif attr == "homepage":
        spec.homepage = clean_uri(text)
    else:
        setattr(spec, attr, text)


def _reduce_list(spec: Spec, attr: str, value: str) -> None:
    items = _list(value)
    if attr == "email":
        spec.emails = items
    else:
        setattr(spec, attr, items)


def _append_unique(target: List[str], value: Optional[str]) -> None:
    if value and value not in target:
        target.append(value)


def reduce_spec(row: str, column: str, spec: Spec) -> None:
    """Fold one recognized row into ``spec``."""
    attr = column.split(".", 1)[1]
    value = _remainder(row, column)
    if attr in _SCALAR_FIELDS:
        _reduce_scalar(spec, attr, value)
    elif attr in _LIST_FIELDS:
        _reduce_list(spec, attr, value)
    elif attr in _RUNTIME_FIELDS:
        _append_unique(spec.runtime_dependencies, _dependency(value))
    else:
        _append_unique(spec.development_dependencies, _dependency(value))


def parse_gemspec(rows: Iterable[str]) -> Spec:
    """Build a Spec from the lines of a gemspec file.

    Args:
        rows: File content, one line per item.

    Returns:
        Spec with every recognized field filled in.
    """
    spec = Spec()
    for row in rows:
        column = columns(row)
        if column not in REQUIRED or invalid_row(row):
            continue
        reduce_spec(row, column, spec)
    return spec


def read_lines(path: str) -> List[str]:
    """Read a text file as a list of lines without trailing newlines."""
    try:
        with open(path, "r", encoding="utf-8", errors="replace") as fh:
            return fh.read().splitlines()
    except OSError as exc:
        raise FilesystemError(path, exc) from exc


def load_gemspec(path: str) -> Spec:
    """Parse the gemspec at ``path``.

    Raises:
        FilesystemError: if the file cannot be read.
    """
    spec = parse_gemspec(read_lines(path))
    logger.debug(
        "Parsed %s: name=%s version=%s runtime_deps=%d",
        path, spec.name, spec.version, len(spec.runtime_dependencies),
    )
    return spec
