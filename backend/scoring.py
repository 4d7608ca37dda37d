"""GlowPath Backend — Deterministic Scoring

Pure transforms from raw signals to scores:
  radiance            → lighting score (bucketed)
  csi + lighting      → vibe score, social warmth
  vibe score          → risk level

risk_level_from_vibe is the only place a risk level is ever derived.
"""

import math

from models import RiskLevel

# Radiance bucket upper bounds (exclusive) → lighting score.
_LIGHTING_BUCKETS: list[tuple[float, int]] = [
    (0.5, 15),
    (2.0, 35),
    (10.0, 65),
]
_LIGHTING_MAX = 85

LIGHTING_SCORES = (15, 35, 65, 85)

# Vibe score: absence of crime dominates. Social warmth: lighting dominates.
VIBE_SAFETY_WEIGHT = 0.7
VIBE_LIGHTING_WEIGHT = 0.3
WARMTH_LIGHTING_WEIGHT = 0.7
WARMTH_SAFETY_WEIGHT = 0.3

SAFE_THRESHOLD = 65
CAUTION_THRESHOLD = 40


def _clamp(x: float, lo: float = 0.0, hi: float = 100.0) -> float:
    return max(lo, min(hi, x))


def round_half_up(x: float) -> int:
    """Round to the nearest integer with halves going up (18.5 → 19)."""
    # Snap float noise first so 0.7*a + 0.3*b landing on .5 is not read as .4999
    return int(math.floor(round(x, 9) + 0.5))


def clamp_csi(csi: float) -> float:
    """Clamp a crime baseline into [0, 100]. Out-of-range data is clamped, not rejected."""
    return _clamp(csi)


def lighting_score_from_radiance(radiance: float) -> int:
    """Map a night-light radiance reading to a lighting score.

    Negative readings are treated as 0. Buckets are left-inclusive:
      [0, 0.5)    → 15
      [0.5, 2.0)  → 35
      [2.0, 10.0) → 65
      [10.0, ∞)   → 85
    """
    rad = max(0.0, radiance)
    for upper, score in _LIGHTING_BUCKETS:
        if rad < upper:
            return score
    return _LIGHTING_MAX


def vibe_score(crime_csi: float, lighting_score: float) -> int:
    """Safety-weighted blend of (100 - csi) and lighting, in [0, 100]."""
    csi = clamp_csi(crime_csi)
    light = _clamp(lighting_score)
    return round_half_up(VIBE_SAFETY_WEIGHT * (100 - csi) + VIBE_LIGHTING_WEIGHT * light)


def social_warmth_proxy(crime_csi: float, lighting_score: float) -> int:
    """Lighting-weighted blend. Reported for context, never used for risk."""
    csi = clamp_csi(crime_csi)
    light = _clamp(lighting_score)
    return round_half_up(WARMTH_LIGHTING_WEIGHT * light + WARMTH_SAFETY_WEIGHT * (100 - csi))


def risk_level_from_vibe(vibe: int) -> RiskLevel:
    """Threshold a vibe score into a risk band.

    Mapping:
      >= 65  → SAFE
      40-64  → CAUTION
      < 40   → UNSAFE
    """
    if vibe >= SAFE_THRESHOLD:
        return RiskLevel.SAFE
    elif vibe >= CAUTION_THRESHOLD:
        return RiskLevel.CAUTION
    else:
        return RiskLevel.UNSAFE
