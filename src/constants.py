"""Constants used in the project."""

import json
import logging
import os
from enum import Enum
from typing import Any, Dict, Optional


class ExitCodes(Enum):
    """Exit codes for the program.

    Args:
        Enum (int): Exit codes for the program.
    """

    SUCCESS = 0
    FILE_ERROR = 1
    EXIT_WARNINGS = 3


class DetectionMode(Enum):
    """Manifest detection modes.

    Args:
        Enum (string): Kind of manifest to look for in a project root.
    """

    SPEC = "spec"
    LOCK = "lock"


class Constants:  # pylint: disable=too-few-public-methods
    """General constants used in the project.
    Data holder for configuration constants; not intended to provide behavior.
    """

    # Gem layout
    SPEC_EXTENSION = ".gemspec"
    LOCK_EXTENSION = ".locked"
    LEGACY_LOCK_EXTENSION = ".lock"
    GEM_EXTENSION = ".gem"
    SPEC_DIR = "specifications"
    CACHE_DIR = "cache"
    GEM_DIR = "gems"
    VENDOR_PATH = os.path.join("vendor", "bundle", "ruby")
    MODULE_PATH = os.path.join("vendor", "bundle")
    RAKEFILE = "Rakefile"
    RAKEFILE_CONTENT = "require \"bundler/gem_tasks\" \ntask :default => :spec"
    PLATFORMS_SECTION = "PLATFORMS"
    LOCK_SPECS_TITLE = "specs:"
    MANIFESTS = ["Gemfile", "Gemfile.lock", "gems.rb", "gems.locked"]

    # License discovery
    LICENSE_MARKERS = ["LICENSE", "LICENCE", "GPL", "LGPL", "PSFL"]
    COPYRIGHT_LABEL = "Copyright (c)"

    # Sentinels
    CHECKSUM_NONE = "NONE"
    NO_ASSERTION = "NOASSERTION"

    # Resolver tunables (overridable via config file, env and CLI)
    MAX_DEPTH = 3
    PARSE_WORKERS = 8
    REMOTE_ENABLED = False
    REPAIR_PLATFORMS = False
    SUBPROCESS_TIMEOUT: Optional[int] = None

    # Registry enrichment
    REGISTRY_URL_RUBYGEMS = "https://rubygems.org/api/v1/gems/"
    REQUEST_TIMEOUT = 30  # Timeout in seconds for all HTTP requests
    HTTP_RETRY_MAX = 3
    HTTP_RETRY_BASE_DELAY_SEC = 0.3
    HTTP_CACHE_TTL_SEC = 300

    LOG_FORMAT = "[%(levelname)s] %(message)s"
    ENV_LOG_LEVEL = "GEMGRAPH_LOG_LEVEL"
    ENV_CONFIG = "GEMGRAPH_CONFIG"
    DEFAULT_CONFIG_LOCATIONS = [
        "gemgraph.yml",
        "gemgraph.yaml",
        os.path.join("~", ".config", "gemgraph", "gemgraph.yml"),
    ]


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


# Config keys mapped onto Constants attributes
_CONFIG_KEYS = {
    "max_depth": ("MAX_DEPTH", int),
    "parse_workers": ("PARSE_WORKERS", int),
    "remote": ("REMOTE_ENABLED", _as_bool),
    "repair_platforms": ("REPAIR_PLATFORMS", _as_bool),
    "subprocess_timeout": ("SUBPROCESS_TIMEOUT", int),
    "registry_url": ("REGISTRY_URL_RUBYGEMS", str),
    "request_timeout": ("REQUEST_TIMEOUT", int),
}


def _load_yaml_config(path: Optional[str] = None) -> Dict[str, Any]:
    """Load the first readable config file (YAML or JSON).

    Lookup order: explicit ``path``, ``GEMGRAPH_CONFIG``, then the default
    locations. Returns an empty dict when nothing usable is found.
    """
    import yaml  # pylint: disable=import-outside-toplevel

    candidates = []
    if path:
        candidates.append(path)
    env_path = os.environ.get(Constants.ENV_CONFIG)
    if env_path:
        candidates.append(env_path)
    candidates.extend(Constants.DEFAULT_CONFIG_LOCATIONS)

    for candidate in candidates:
        full = os.path.expanduser(candidate)
        if not os.path.isfile(full):
            continue
        try:
            with open(full, "r", encoding="utf-8") as fh:
                if full.lower().endswith(".json"):
                    data = json.load(fh) or {}
                else:
                    data = yaml.safe_load(fh) or {}
        except (OSError, ValueError, yaml.YAMLError) as exc:
            logging.getLogger(__name__).warning("Couldn't load config %s: %s", full, exc)
            continue
        if isinstance(data, dict):
            section = data.get("resolver", data)
            return section if isinstance(section, dict) else {}
    return {}


def apply_config(cfg: Dict[str, Any]) -> None:
    """Apply a config mapping to Constants, ignoring unknown or malformed keys."""
    for key, (attr, caster) in _CONFIG_KEYS.items():
        if key not in cfg or cfg[key] is None:
            continue
        try:
            setattr(Constants, attr, caster(cfg[key]))
        except (TypeError, ValueError):
            logging.getLogger(__name__).warning("Ignoring invalid config value for %s: %r", key, cfg[key])
