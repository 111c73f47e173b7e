"""Key-injecting forwarders for the OpenRouter and Google Places APIs."""
from __future__ import annotations

import logging
from typing import Any

import httpx

from ..core.config import settings

logger = logging.getLogger(__name__)

CONFIG_ERROR = {"error": "Server configuration error."}
INTERNAL_ERROR = {"error": "An internal error occurred."}


async def forward_json(
    client: httpx.AsyncClient,
    url: str,
    body: Any,
    headers: dict[str, str],
    upstream_name: str,
) -> tuple[int, Any]:
    """
    POST `body` to the upstream API.

    Returns:
        (status code, JSON body) to hand back to the caller verbatim
    """
    try:
        response = await client.post(url, json=body, headers={"Content-Type": "application/json", **headers})
    except httpx.HTTPError as exc:
        logger.error("Proxy internal error calling %s: %s", upstream_name, exc)
        return 500, INTERNAL_ERROR

    if not response.is_success:
        logger.error("%s API Error: %s %s %s", upstream_name, response.status_code, response.reason_phrase, response.text)
        return response.status_code, {
            "error": f"Failed to fetch from {upstream_name} API.",
            "details": response.text,
        }

    try:
        return 200, response.json()
    except ValueError as exc:
        logger.error("Proxy internal error decoding %s response: %s", upstream_name, exc)
        return 500, INTERNAL_ERROR


async def forward_openrouter(client: httpx.AsyncClient, body: Any, cache_control: str | None = None) -> tuple[int, Any]:
    if not settings.openrouter_api_key:
        logger.error("OPENROUTER_API_KEY is not set on the proxy server.")
        return 500, CONFIG_ERROR

    headers = {
        "Authorization": f"Bearer {settings.openrouter_api_key}",
        "HTTP-Referer": settings.openrouter_referer,
        "X-Title": settings.openrouter_title,
    }
    if cache_control:
        headers["Cache-Control"] = cache_control
    return await forward_json(client, settings.openrouter_url, body, headers, "OpenRouter")


async def forward_places_search(client: httpx.AsyncClient, body: Any, field_mask: str | None = None) -> tuple[int, Any]:
    if not settings.google_maps_api_key:
        logger.error("GOOGLE_MAPS_API_KEY is not set on the proxy server.")
        return 500, CONFIG_ERROR

    headers = {
        "X-Goog-Api-Key": settings.google_maps_api_key,
        # The caller passes the field mask it needs
        "X-Goog-FieldMask": field_mask or settings.google_places_field_mask,
    }
    return await forward_json(client, settings.google_places_url, body, headers, "Google Places")
