"""Shared HTTP helpers for the optional registry enrichment.

Wraps ``requests`` with a timeout, bounded retries and a small TTL cache so
callers only deal with ``(status, headers, payload)`` tuples and never with
transport exceptions.
"""
from __future__ import annotations

import json
import logging
import time
from typing import Any, Dict, Optional, Tuple

import requests

from constants import Constants
from common.logging_utils import extra_context, is_debug_enabled, safe_url, Timer

logger = logging.getLogger(__name__)

# Simple in-memory cache for HTTP responses
_http_cache: Dict[str, Tuple[Tuple[int, Dict[str, str], str], float]] = {}


def _get_cache_key(url: str, headers: Optional[Dict[str, str]] = None) -> str:
    """Generate cache key from request parameters."""
    headers_str = str(sorted(headers.items())) if headers else ""
    return f"GET:{url}:{headers_str}"


def _is_cache_valid(cached_at: float) -> bool:
    return time.time() - cached_at < Constants.HTTP_CACHE_TTL_SEC


def clear_cache() -> None:
    """Drop every cached response."""
    _http_cache.clear()


def robust_get(
    url: str,
    *,
    headers: Optional[Dict[str, str]] = None,
    **kwargs: Any
) -> Tuple[int, Dict[str, str], str]:
    """GET with timeout, retries and caching.

    Returns:
        Tuple of (status_code, headers_dict, body_text). ``status_code`` is 0
        when every attempt failed at the transport level.
    """
    cache_key = _get_cache_key(url, headers)
    safe_target = safe_url(url)

    cached = _http_cache.get(cache_key)
    if cached is not None and _is_cache_valid(cached[1]):
        if is_debug_enabled(logger):
            logger.debug("HTTP cache hit", extra=extra_context(
                event="cache_hit", component="http_client", action="GET", target=safe_target
            ))
        return cached[0]

    last_exception = None
    for attempt in range(Constants.HTTP_RETRY_MAX):
        if attempt:
            time.sleep(Constants.HTTP_RETRY_BASE_DELAY_SEC * (2 ** (attempt - 1)))
        with Timer() as t:
            try:
                response = requests.get(
                    url,
                    timeout=Constants.REQUEST_TIMEOUT,
                    headers=headers,
                    **kwargs
                )
            except requests.Timeout:
                last_exception = "timeout"
                outcome = "timeout"
            except requests.RequestException as exc:  # includes ConnectionError
                last_exception = str(exc)
                outcome = "request_exception"
            else:
                result = (response.status_code, dict(response.headers), response.text)
                if response.status_code < 500:  # Don't cache server errors
                    _http_cache[cache_key] = (result, time.time())
                if is_debug_enabled(logger):
                    logger.debug("HTTP response", extra=extra_context(
                        event="http_response", component="http_client", action="GET",
                        outcome="success", status_code=response.status_code,
                        duration_ms=t.duration_ms(), target=safe_target
                    ))
                return result

        if is_debug_enabled(logger):
            logger.debug("HTTP request failed", extra=extra_context(
                event="http_exception", component="http_client", action="GET",
                outcome=outcome, attempt=attempt + 1, target=safe_target
            ))

    logger.warning(
        "GET %s failed after %s attempts: %s",
        safe_target,
        Constants.HTTP_RETRY_MAX,
        last_exception,
    )
    return 0, {}, ""


def get_json(
    url: str,
    *,
    headers: Optional[Dict[str, str]] = None,
    **kwargs: Any
) -> Tuple[int, Dict[str, str], Optional[Any]]:
    """Perform GET request and parse a JSON body.

    Returns:
        Tuple of (status_code, headers_dict, parsed_json_or_none)
    """
    status_code, response_headers, text = robust_get(url, headers=headers, **kwargs)

    if status_code == 200 and text:
        try:
            return status_code, response_headers, json.loads(text)
        except json.JSONDecodeError:
            if is_debug_enabled(logger):
                logger.debug("JSON decode error", extra=extra_context(
                    event="parse", component="http_client", action="get_json",
                    outcome="json_decode_error", status_code=status_code, target=safe_url(url)
                ))
    return status_code, response_headers, None
