from __future__ import annotations

import logging
from typing import Optional

import httpx

from .config import FETCH_TIMEOUT_SECONDS
from .normalize import decode_payload

logger = logging.getLogger(__name__)


class InvalidUrlError(ValueError):
    pass


def validate_url(url: str) -> httpx.URL:
    """Accept only absolute http(s) URLs with a host."""
    try:
        parsed = httpx.URL(url.strip())
    except httpx.InvalidURL as exc:
        raise InvalidUrlError(f"Invalid URL format: {url!r}") from exc

    if parsed.scheme not in ("http", "https") or not parsed.host:
        raise InvalidUrlError(f"Invalid URL format: {url!r}")
    return parsed


async def fetch_remote_text(url: str, *, transport: Optional[httpx.AsyncBaseTransport] = None) -> str:
    """GET ``url`` and return the decoded body. Non-2xx responses raise httpx.HTTPStatusError."""
    target = validate_url(url)

    async with httpx.AsyncClient(
        timeout=FETCH_TIMEOUT_SECONDS,
        follow_redirects=True,
        transport=transport,
    ) as client:
        response = await client.get(target)
        response.raise_for_status()

    text, report = decode_payload(response.content)
    logger.debug("Decoded %d bytes from %s: %s", len(response.content), target, report)
    return text
