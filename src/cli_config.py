"""CLI configuration overrides for resolver tunables.

Kept out of gemgraph.py so the entrypoint stays slim. Sources are applied
lowest precedence first: config file, then ``GEMGRAPH_*`` environment
variables, then CLI flags. Malformed values are logged and skipped.
"""

from __future__ import annotations

import logging
import os
from typing import Dict

from constants import Constants, _load_yaml_config, apply_config

logger = logging.getLogger(__name__)

# Environment variable -> config key
ENV_OVERRIDES: Dict[str, str] = {
    "GEMGRAPH_MAX_DEPTH": "max_depth",
    "GEMGRAPH_PARSE_WORKERS": "parse_workers",
    "GEMGRAPH_REMOTE": "remote",
    "GEMGRAPH_REPAIR_PLATFORMS": "repair_platforms",
    "GEMGRAPH_SUBPROCESS_TIMEOUT": "subprocess_timeout",
    "GEMGRAPH_REGISTRY_URL": "registry_url",
    "GEMGRAPH_REQUEST_TIMEOUT": "request_timeout",
}


def env_overrides(environ=None) -> Dict[str, str]:
    """Config mapping built from ``GEMGRAPH_*`` environment variables."""
    environ = os.environ if environ is None else environ
    out: Dict[str, str] = {}
    for var, key in ENV_OVERRIDES.items():
        value = environ.get(var)
        if value is not None and value.strip():
            out[key] = value.strip()
    return out


def cli_overrides(args) -> Dict[str, object]:
    """Config mapping built from parsed CLI arguments; unset flags are omitted."""
    out: Dict[str, object] = {}
    if getattr(args, "MAX_DEPTH", None) is not None:
        out["max_depth"] = args.MAX_DEPTH
    if getattr(args, "PARSE_WORKERS", None) is not None:
        out["parse_workers"] = args.PARSE_WORKERS
    if getattr(args, "REMOTE", False):
        out["remote"] = True
    if getattr(args, "REPAIR_PLATFORMS", False):
        out["repair_platforms"] = True
    return out


def apply_resolver_overrides(args, environ=None) -> None:
    """Apply config file, environment and CLI settings to Constants."""
    apply_config(_load_yaml_config(getattr(args, "CONFIG", None)))
    apply_config(env_overrides(environ))
    apply_config(cli_overrides(args))
    if Constants.MAX_DEPTH < 0:
        logger.warning("max_depth must not be negative; using 0")
        Constants.MAX_DEPTH = 0
