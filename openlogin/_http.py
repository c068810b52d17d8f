"""Shared HTTP request utilities for the token endpoint client."""

from __future__ import annotations

import logging
from typing import Any

import httpx

logger = logging.getLogger(__name__)

FORM_HEADERS = {
    "Content-Type": "application/x-www-form-urlencoded",
    "Accept": "application/json",
}


def parse_json_object(response: httpx.Response) -> dict[str, Any] | None:
    """Decode a JSON object body, or return None if the body is not one."""
    try:
        data = response.json()
    except ValueError:
        return None
    if not isinstance(data, dict):
        return None
    return data


def response_excerpt(response: httpx.Response, limit: int = 200) -> str:
    """Return a short excerpt of the response body for error messages.

    Reading the body can fail (closed stream, undecodable bytes); that
    failure only costs us the excerpt.
    """
    try:
        text = response.text
    except Exception:
        logger.debug("Could not read response body", exc_info=True)
        return ""
    if len(text) > limit:
        return text[:limit] + "..."
    return text


def pick_string(data: dict[str, Any], key: str) -> str | None:
    """Return ``data[key]`` if it is a non-empty string."""
    value = data.get(key)
    if isinstance(value, str) and value:
        return value
    return None
