"""Requirement string parsing for gem dependencies."""

import re
from typing import List, Tuple

from .models import RequirementSpec, ResolutionMode

RANGE_OPERATORS = ("~>", ">=", "<=", "!=", ">", "<", "=")

_PERCENT_LITERAL = re.compile(r"^%[qQ]?[<{(\[]([^>})\]]*)[>})\]]")
_QUOTED = re.compile(r"\"([^\"]*)\"|'([^']*)'")
_BARE_NAME = re.compile(r"^([A-Za-z0-9_.\-]+)")
_NUMERIC = re.compile(r"\d[0-9A-Za-z.]*")


def _unquoted(match) -> str:
    return match.group(1) if match.group(1) is not None else match.group(2)


def tokenize_requirement(raw: str) -> Tuple[str, List[str]]:
    """Return (gem name, constraint strings) for a dependency requirement.

    Accepts ``"name", "~> 1.2", ">= 1.2.3"``, ``name ">= 1.0"`` and
    ``%q<name>, [">= 1.0"]``.
    """
    text = raw.replace(".freeze", "").strip().lstrip("(").strip()
    match = _PERCENT_LITERAL.match(text)
    if match:
        name, rest = match.group(1), text[match.end():]
    elif text[:1] in ("\"", "'"):
        quoted = _QUOTED.match(text)
        if quoted is None:
            return text.strip("\"'"), []
        name, rest = _unquoted(quoted), text[quoted.end():]
    else:
        bare = _BARE_NAME.match(text)
        if bare is None:
            return "", []
        name, rest = bare.group(1), text[bare.end():]

    constraints = [_unquoted(m).strip() for m in _QUOTED.finditer(rest)]
    if not constraints:
        cleaned = rest.replace("[", "").replace("]", "").replace(")", "")
        constraints = [part.strip() for part in cleaned.split(",")]
    return name.strip(), [c for c in constraints if c]


def strip_operators(constraint: str) -> str:
    """Remove leading range operators (``~>``, ``>=``, ...) from a constraint."""
    value = constraint.strip()
    changed = True
    while changed:
        changed = False
        for op in RANGE_OPERATORS:
            if value.startswith(op):
                value = value[len(op):].strip()
                changed = True
    return value


def _determine_resolution_mode(constraints: List[str]) -> ResolutionMode:
    if not constraints:
        return ResolutionMode.LATEST
    for constraint in constraints:
        stripped = constraint.strip()
        if stripped.startswith(RANGE_OPERATORS[:-1]):
            return ResolutionMode.RANGE
    return ResolutionMode.EXACT


def parse_requirement(raw: str) -> RequirementSpec:
    """Parse a requirement into a RequirementSpec.

    The version token is the first numeric token left once range operators
    are stripped from the constraints, in declaration order.
    """
    name, constraints = tokenize_requirement(raw)
    version = ""
    for constraint in constraints:
        match = _NUMERIC.search(strip_operators(constraint))
        if match:
            version = match.group(0).rstrip(".")
            break
    return RequirementSpec(
        raw=raw,
        name=name,
        constraints=constraints,
        version=version,
        mode=_determine_resolution_mode(constraints),
    )
