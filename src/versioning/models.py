"""Data models for versioning and requirement resolution."""

from dataclasses import dataclass, field
from enum import Enum
from typing import List


class Ecosystem(Enum):
    """Enum for supported ecosystems."""
    RUBYGEMS = "rubygems"


class ResolutionMode(Enum):
    """Resolution strategy derived from the requirement."""
    EXACT = "exact"
    RANGE = "range"
    LATEST = "latest"


@dataclass
class RequirementSpec:
    """A gem requirement split into name, constraints and a usable version token."""
    raw: str
    name: str
    constraints: List[str] = field(default_factory=list)
    version: str = ""  # first numeric token with range operators stripped
    mode: ResolutionMode = ResolutionMode.LATEST

