"""GlowPath Backend — Assessment & Alternatives Pipeline

assess:            place → crime CSI → lighting → vibe/warmth → Gemini → reconcile
rank_alternatives: place → nearby venues → per-venue CSI → filter closed → sort

Collaborators are passed in as keyword arguments; the defaults are the live
fetchers. Nothing here is retried or patched with defaults: any failure
aborts the whole operation.
"""

import asyncio
import logging
import math
from typing import Awaitable, Callable, Optional

from config import (
    RADIUS_M, ALTERNATIVES_SHORTLIST, ALTERNATIVES_TOP_N, ALTERNATIVES_CONCURRENCY,
)
from classifier import classify_mismatch
from data_fetchers import fetch_place_text, fetch_nearby_candidates, fetch_crime_csi
from errors import InvalidInputError, NotFoundError
from models import (
    ClassificationSignals, GlowPathResult, LatLng, ModelOutput,
    OpenStatus, Place, PlaceCandidate,
)
from scoring import (
    clamp_csi, lighting_score_from_radiance, risk_level_from_vibe,
    round_half_up, social_warmth_proxy, vibe_score,
)

logger = logging.getLogger("glowpath.pipeline")

ResolvePlace = Callable[[str], Awaitable[Optional[Place]]]
DiscoverNearby = Callable[[LatLng, int, Optional[str]], Awaitable[list[PlaceCandidate]]]
FetchCrime = Callable[[float, float, int], Awaitable[float]]
Classify = Callable[[ClassificationSignals], Awaitable[ModelOutput]]


def parse_radiance(raw) -> float:
    """Validate the night-light override. Accepts numbers and numeric strings."""
    if isinstance(raw, bool):
        raise InvalidInputError("Night-light intensity must be a number.")
    try:
        radiance = float(raw)
    except (TypeError, ValueError):
        raise InvalidInputError("Night-light intensity must be a number.") from None
    if not math.isfinite(radiance):
        raise InvalidInputError("Night-light intensity must be a number.")
    return radiance


async def _resolve(destination: str, resolve_place: ResolvePlace) -> Place:
    place = await resolve_place(destination)
    if place is None:
        raise NotFoundError("No place found for that name.")
    return place


# ─────────────────────────── Result Reconciler ──────────────────

def assemble_final_result(
    *,
    vibe_score: int,
    lighting_score: int,
    crime_baseline: int,
    social_warmth: int,
    model_output: ModelOutput,
) -> GlowPathResult:
    """Merge deterministic scores with the model's qualitative output.

    risk_level always comes from risk_level_from_vibe; the model's own value is
    discarded. classification, confidence and rationale pass through as-is.
    """
    expected = risk_level_from_vibe(vibe_score)
    if model_output.risk_level != expected:
        logger.info(
            f"Overriding model risk_level {model_output.risk_level.value} → {expected.value} "
            f"(vibe {vibe_score})"
        )
    model_output = model_output.model_copy(update={"risk_level": expected})

    return GlowPathResult(
        vibe_score=vibe_score,
        risk_level=model_output.risk_level,
        classification=model_output.classification,
        social_warmth=social_warmth,
        lighting_score=lighting_score,
        crime_baseline=crime_baseline,
        confidence=model_output.confidence,
        safe_haven_nearby=False,
        rationale=model_output.rationale,
    )


# ─────────────────────────── Assessment ─────────────────────────

async def assess(
    destination: str,
    raw_radiance,
    *,
    radius_m: int = RADIUS_M,
    resolve_place: ResolvePlace = fetch_place_text,
    fetch_crime: FetchCrime = fetch_crime_csi,
    classify: Classify = classify_mismatch,
) -> GlowPathResult:
    """Compute the safety vibe for a destination under a radiance override."""
    radiance = parse_radiance(raw_radiance)
    dest = await _resolve(destination, resolve_place)

    csi = await fetch_crime(dest.location.lat, dest.location.lng, radius_m)

    lighting = lighting_score_from_radiance(radiance)
    vibe = vibe_score(csi, lighting)
    warmth = social_warmth_proxy(csi, lighting)
    logger.info(f"Assess {dest.name}: csi={csi:.1f} lighting={lighting} vibe={vibe} warmth={warmth}")

    model_output = await classify(ClassificationSignals(
        csi=csi, radiance=radiance, vibe_score=vibe, lighting_score=lighting,
    ))

    return assemble_final_result(
        vibe_score=vibe,
        lighting_score=lighting,
        crime_baseline=round_half_up(clamp_csi(csi)),
        social_warmth=warmth,
        model_output=model_output,
    )


# ─────────────────────────── Alternatives Ranker ────────────────

async def score_candidates(
    candidates: list[PlaceCandidate],
    lighting_score: int,
    fetch_crime: FetchCrime,
    *,
    radius_m: int = RADIUS_M,
    concurrency: int = ALTERNATIVES_CONCURRENCY,
) -> list[PlaceCandidate]:
    """Attach vibe_score/risk_level to each candidate, preserving input order.

    Crime lookups run with at most `concurrency` in flight. The first failure
    cancels the rest and propagates.
    """
    semaphore = asyncio.Semaphore(max(1, concurrency))

    async def _score(c: PlaceCandidate) -> PlaceCandidate:
        async with semaphore:
            csi = await fetch_crime(c.location.lat, c.location.lng, radius_m)
        vibe = vibe_score(csi, lighting_score)
        return c.enriched(vibe, risk_level_from_vibe(vibe))

    tasks = [asyncio.ensure_future(_score(c)) for c in candidates]
    try:
        return list(await asyncio.gather(*tasks))
    except BaseException:
        for t in tasks:
            t.cancel()
        raise


def rank_candidates(scored: list[PlaceCandidate], top_n: int = ALTERNATIVES_TOP_N) -> list[PlaceCandidate]:
    """Drop closed venues, then order open-before-unknown and by vibe score descending.

    sorted() is stable, so full ties keep their input order.
    """
    kept = [c for c in scored if c.open_at_time is not OpenStatus.CLOSED]
    kept = sorted(kept, key=lambda c: (
        0 if c.open_at_time is OpenStatus.OPEN else 1,
        -(c.vibe_score or 0),
    ))
    return kept[:top_n]


async def rank_alternatives(
    destination: str,
    raw_radiance,
    when_iso: Optional[str] = None,
    radius_m: int = RADIUS_M,
    *,
    resolve_place: ResolvePlace = fetch_place_text,
    discover_nearby: DiscoverNearby = fetch_nearby_candidates,
    fetch_crime: FetchCrime = fetch_crime_csi,
    shortlist: int = ALTERNATIVES_SHORTLIST,
    top_n: int = ALTERNATIVES_TOP_N,
    concurrency: int = ALTERNATIVES_CONCURRENCY,
) -> list[PlaceCandidate]:
    """Rank nearby venues that are open (or not known to be closed) at when_iso.

    Lighting is not re-measured per venue: the destination radiance override
    applies to every candidate.
    """
    radiance = parse_radiance(raw_radiance)
    dest = await _resolve(destination, resolve_place)

    candidates = await discover_nearby(dest.location, radius_m, when_iso)
    lighting = lighting_score_from_radiance(radiance)

    scored = await score_candidates(
        candidates[:shortlist], lighting, fetch_crime,
        radius_m=radius_m, concurrency=concurrency,
    )
    ranked = rank_candidates(scored, top_n)
    logger.info(
        f"Alternatives near {dest.name}: {len(candidates)} found, "
        f"{len(scored)} scored, {len(ranked)} returned"
    )
    return ranked
