from __future__ import annotations

import asyncio
import json
import logging

import httpx

from eventmap.errors import NameLookupError

logger = logging.getLogger(__name__)


async def _get_json(client: httpx.AsyncClient, url: str) -> dict:
    try:
        response = await client.get(url)
    except httpx.HTTPError as exc:
        raise NameLookupError(url=url, detail=f"{type(exc).__name__}: {exc}") from exc
    if response.status_code != 200:
        raise NameLookupError(url=url, detail=f"non-200 response: {response.status_code}")
    try:
        payload = response.json()
    except json.JSONDecodeError as exc:
        raise NameLookupError(url=url, detail=f"response is not valid JSON: {exc}") from exc
    if not isinstance(payload, dict):
        raise NameLookupError(url=url, detail="response must be a JSON object")
    return payload


def build_id_to_name(*payloads: dict) -> dict[int, str]:
    mapping: dict[int, str] = {}
    for payload in payloads:
        for item in payload.get("cards") or []:
            if not isinstance(item, dict) or item.get("id") is None or item.get("name") is None:
                continue
            try:
                mapping[int(item["id"])] = str(item["name"])
            except (TypeError, ValueError):
                logger.warning("skipping lookup entry with non-numeric id: %r", item.get("id"))
    return mapping


async def fetch_id_to_name(
    *,
    cards_url: str,
    talents_url: str,
    timeout_s: float = 20.0,
    transport: httpx.AsyncBaseTransport | None = None,
) -> dict[int, str]:
    """Fetch the card and talent catalogues concurrently and merge them into one id map."""
    client_kwargs: dict = {"timeout": httpx.Timeout(timeout=timeout_s)}
    if transport is not None:
        client_kwargs["transport"] = transport
    async with httpx.AsyncClient(**client_kwargs) as client:
        cards, talents = await asyncio.gather(_get_json(client, cards_url), _get_json(client, talents_url))
    mapping = build_id_to_name(cards, talents)
    logger.info("name lookup loaded %s ids", len(mapping))
    return mapping
