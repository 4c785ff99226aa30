"""
Nominatim (OpenStreetMap) address search for mission locations.

No API key required, just a user agent string. Results are cached in Redis
when it is reachable.
"""

import logging

import httpx
from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from .. import config
from ..cache import JsonCache

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/geocoding", tags=["Geocoding"])
search_cache = JsonCache("nominatim:search", ttl=config.GEOCODING_CACHE_SECONDS)


class GeocodingCandidate(BaseModel):
    latitude: float
    longitude: float
    displayName: str


class GeocodingSearchResponse(BaseModel):
    results: list[GeocodingCandidate]


def parse_candidates(raw_data: list) -> list[GeocodingCandidate]:
    """Convert Nominatim results, best match first, skipping unusable entries"""
    ranked = sorted(raw_data, key=lambda item: float(item.get("importance") or 0), reverse=True)
    candidates = []
    for item in ranked:
        try:
            candidates.append(
                GeocodingCandidate(
                    latitude=float(item["lat"]),
                    longitude=float(item["lon"]),
                    displayName=item.get("display_name") or "",
                )
            )
        except (KeyError, TypeError, ValueError):
            logger.debug(f"Skipping malformed Nominatim entry: {item!r}")
    return candidates


@router.get("/search", response_model=GeocodingSearchResponse)
async def search_address(q: str, limit: int = 5):
    """
    Resolve a free-text address into coordinate candidates.

    Args:
        q: Address search query
        limit: Maximum number of results (1-10)
    """
    query = (q or "").strip()
    if len(query) < 3:
        return GeocodingSearchResponse(results=[])

    limit = max(1, min(int(limit), 10))
    cache_parts = (limit, query.lower())

    cached = search_cache.fetch(*cache_parts)
    if cached is not None:
        return GeocodingSearchResponse(results=[GeocodingCandidate(**x) for x in cached])

    params = {
        "q": query,
        "format": "json",
        "limit": str(limit),
        "countrycodes": config.NOMINATIM_COUNTRY_CODES,
    }
    headers = {"User-Agent": config.NOMINATIM_USER_AGENT}

    try:
        async with httpx.AsyncClient() as client:
            resp = await client.get(
                f"{config.NOMINATIM_BASE_URL}/search", params=params, headers=headers, timeout=10.0
            )
    except httpx.HTTPError as e:
        logger.error(f"❌ Nominatim request failed: {e}")
        raise HTTPException(status_code=502, detail="Service de géocodage indisponible")

    if resp.status_code >= 400:
        logger.warning(f"Nominatim API error {resp.status_code}: {resp.text[:200]}")
        raise HTTPException(status_code=502, detail="Service de géocodage indisponible")

    try:
        raw_data = resp.json()
    except ValueError:
        logger.error("❌ Nominatim returned a non-JSON body")
        raise HTTPException(status_code=502, detail="Réponse de géocodage invalide")

    candidates = parse_candidates(raw_data if isinstance(raw_data, list) else [])
    search_cache.store([c.model_dump() for c in candidates], *cache_parts)
    logger.info(f"📍 Geocoded '{query}': {len(candidates)} candidate(s)")
    return GeocodingSearchResponse(results=candidates)
