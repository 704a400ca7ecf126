"""Version resolvers for different ecosystems."""

from .base import VersionResolver
from .rubygems import RubyGemsVersionResolver

__all__ = [
    "VersionResolver",
    "RubyGemsVersionResolver",
]
