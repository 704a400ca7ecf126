"""rubygems.org client used to enrich modules the local install cannot describe."""
from __future__ import annotations

import logging
import urllib.parse
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from constants import Constants
from common.http_client import get_json
from common.logging_utils import extra_context, is_debug_enabled, safe_url

logger = logging.getLogger(__name__)

HEADERS_JSON = {"Accept": "application/json"}


@dataclass
class GemMetadata:
    """Subset of the ``/api/v1/gems/<name>.json`` payload."""
    name: str
    version: str = ""
    sha: str = ""
    licenses: List[str] = field(default_factory=list)
    homepage_uri: str = ""
    source_code_uri: str = ""
    project_uri: str = ""
    authors: str = ""


def _log_http_pre(url: str) -> None:
    """Debug-log outbound HTTP request for the RubyGems client."""
    logger.debug(
        "HTTP request",
        extra=extra_context(
            event="http_request",
            component="client",
            action="GET",
            target=safe_url(url),
            package_manager="rubygems",
        ),
    )


def metadata_url(name: str) -> str:
    """API URL describing the latest release of ``name``."""
    base = Constants.REGISTRY_URL_RUBYGEMS
    if not base.endswith("/"):
        base += "/"
    return f"{base}{urllib.parse.quote(name, safe='')}.json"


def parse_metadata(payload: Dict[str, Any]) -> Optional[GemMetadata]:
    """Build GemMetadata from a decoded API payload, or None if it names no gem."""
    name = payload.get("name")
    if not isinstance(name, str) or not name:
        return None
    licenses = payload.get("licenses") or []
    if not isinstance(licenses, list):
        licenses = [str(licenses)]
    return GemMetadata(
        name=name,
        version=str(payload.get("version") or ""),
        sha=str(payload.get("sha") or ""),
        licenses=[str(lic) for lic in licenses if lic],
        homepage_uri=str(payload.get("homepage_uri") or ""),
        source_code_uri=str(payload.get("source_code_uri") or ""),
        project_uri=str(payload.get("project_uri") or ""),
        authors=str(payload.get("authors") or ""),
    )


def fetch_gem_info(name: str) -> Optional[GemMetadata]:
    """Look up ``name`` on rubygems.org.

    Returns None on any transport, HTTP or decoding failure.
    """
    url = metadata_url(name)
    if is_debug_enabled(logger):
        _log_http_pre(url)
    status_code, _, data = get_json(url, headers=HEADERS_JSON)
    if status_code != 200 or not isinstance(data, dict):
        logger.debug("No registry metadata for %s (status %s)", name, status_code)
        return None
    return parse_metadata(data)
