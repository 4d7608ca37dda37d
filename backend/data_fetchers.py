"""GlowPath Backend — External Data Fetchers (place search, nearby venues, crime CSI)

All three talk to the GlowPath data backend at GLOWPATH_BACKEND_URL. Each
non-success status or malformed payload raises UpstreamFailure; nothing is
retried and no default is substituted.
"""

import math
import logging
from typing import Optional

import httpx

from config import (
    GLOWPATH_BACKEND_URL, HTTP_TIMEOUT_S,
    CRIME_WINDOW_DAYS, NEARBY_MAX_RESULTS,
)
from errors import UpstreamFailure
from models import LatLng, OpenStatus, Place, PlaceCandidate

logger = logging.getLogger("glowpath.fetchers")

# Shared async HTTP client
client = httpx.AsyncClient(timeout=HTTP_TIMEOUT_S)


def _base_url(base_url: Optional[str], source: str) -> str:
    url = (base_url if base_url is not None else GLOWPATH_BACKEND_URL).rstrip("/")
    if not url:
        raise UpstreamFailure(source, "GLOWPATH_BACKEND_URL is not configured")
    return url


def _location(raw, source: str) -> LatLng:
    try:
        return LatLng(lat=float(raw["lat"]), lng=float(raw["lng"]))
    except (KeyError, TypeError, ValueError) as e:
        raise UpstreamFailure(source, "response missing location") from e


async def _send(method: str, url: str, source: str, **kwargs) -> httpx.Response:
    try:
        return await client.request(method, url, **kwargs)
    except httpx.HTTPError as e:
        logger.warning(f"{source} transport error: {e}")
        raise UpstreamFailure(source, f"{type(e).__name__}: {e}") from e


def _json(r: httpx.Response, source: str):
    try:
        return r.json()
    except ValueError as e:
        raise UpstreamFailure(source, "response is not JSON", r.status_code) from e


# ─────────────────────────── Place Search ───────────────────────

async def fetch_place_text(query: str, *, base_url: Optional[str] = None) -> Optional[Place]:
    """Resolve a free-text destination. Returns None when nothing matches."""
    source = "place/text"
    url = f"{_base_url(base_url, source)}/place/text"

    r = await _send("POST", url, source, json={"query": query})
    if r.status_code == 404:
        logger.info(f"No place found for {query!r}")
        return None
    if r.status_code != 200:
        raise UpstreamFailure(source, r.text[:200], r.status_code)

    p = _json(r, source)
    if not isinstance(p, dict):
        raise UpstreamFailure(source, "response is not an object")
    place = Place(
        name=p.get("name") or query,
        address=p.get("address"),
        location=_location(p.get("location"), source),
        place_id=p.get("placeId"),
    )
    logger.info(f"Resolved {query!r} → {place.name} ({place.location.lat:.4f}, {place.location.lng:.4f})")
    return place


# ─────────────────────────── Nearby Venues ──────────────────────

async def fetch_nearby_candidates(
    center: LatLng,
    radius_m: int,
    when_iso: Optional[str] = None,
    *,
    max_results: int = NEARBY_MAX_RESULTS,
    base_url: Optional[str] = None,
) -> list[PlaceCandidate]:
    """Discover venues around center, with open-at-time knowledge when the backend has it."""
    source = "place/nearby_open"
    url = f"{_base_url(base_url, source)}/place/nearby_open"

    r = await _send("POST", url, source, json={
        "center": {"lat": center.lat, "lng": center.lng},
        "radius_m": radius_m,
        "max_results": max_results,
        "when_iso": when_iso,
    })
    if r.status_code != 200:
        raise UpstreamFailure(source, r.text[:200], r.status_code)

    data = _json(r, source) or []
    if not isinstance(data, list):
        raise UpstreamFailure(source, "response is not a list")

    candidates = []
    for p in data:
        if not isinstance(p, dict):
            raise UpstreamFailure(source, "candidate is not an object")
        candidates.append(PlaceCandidate(
            name=p.get("name") or "Unknown",
            address=p.get("address"),
            location=_location(p.get("location"), source),
            place_id=p.get("placeId"),
            hours_known=bool(p.get("hours_known")),
            open_at_time=OpenStatus.from_flag(p.get("open_at_time")),
        ))

    logger.info(f"Nearby: {len(candidates)} candidates within {radius_m}m")
    return candidates


# ─────────────────────────── Crime CSI ──────────────────────────

async def fetch_crime_csi(
    lat: float,
    lng: float,
    distance_m: int,
    days: int = CRIME_WINDOW_DAYS,
    *,
    base_url: Optional[str] = None,
) -> float:
    """Fetch the crime severity index (nominally 0-100) around a point.

    The raw value is returned unclamped; scoring clamps at the point of use.
    """
    source = "crime/csi"
    url = f"{_base_url(base_url, source)}/crime/csi"

    r = await _send("GET", url, source, params={
        "lat": str(lat),
        "lng": str(lng),
        "distance_m": str(distance_m),
        "days": str(days),
    })
    if r.status_code != 200:
        raise UpstreamFailure(source, r.text[:200], r.status_code)

    data = _json(r, source)
    raw = data.get("csi") if isinstance(data, dict) else None
    try:
        csi = float(raw)
    except (TypeError, ValueError):
        csi = math.nan
    if not math.isfinite(csi):
        raise UpstreamFailure(source, "response missing csi")

    logger.debug(f"CSI {csi:.1f} at ({lat:.4f}, {lng:.4f}) r={distance_m}m/{days}d")
    return csi
