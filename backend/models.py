"""GlowPath Backend — Pydantic Models"""

from enum import Enum
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field, StrictFloat, StrictInt


class RiskLevel(str, Enum):
    UNSAFE = "UNSAFE"
    CAUTION = "CAUTION"
    SAFE = "SAFE"

    @property
    def rank(self) -> int:
        """Ordinal position: UNSAFE < CAUTION < SAFE."""
        return _RISK_RANK[self]


_RISK_RANK = {RiskLevel.UNSAFE: 0, RiskLevel.CAUTION: 1, RiskLevel.SAFE: 2}


class Classification(str, Enum):
    SAFE = "SAFE"
    UNSAFE = "UNSAFE"
    SOCIAL_BALANCED = "SOCIAL_BALANCED"
    INFRA_MISMATCH = "INFRA_MISMATCH"
    UNCERTAIN = "UNCERTAIN"


class OpenStatus(str, Enum):
    """Open-at-time-of-visit. UNKNOWN is its own state, never open or closed."""

    OPEN = "open"
    CLOSED = "closed"
    UNKNOWN = "unknown"

    @classmethod
    def from_flag(cls, value) -> "OpenStatus":
        # Only literal booleans count; anything else (null, "yes", 1) is unknown.
        if value is True:
            return cls.OPEN
        if value is False:
            return cls.CLOSED
        return cls.UNKNOWN


class LatLng(BaseModel):
    model_config = ConfigDict(frozen=True)

    lat: float
    lng: float


class Place(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    address: Optional[str] = None
    location: LatLng
    place_id: Optional[str] = None


class PlaceCandidate(BaseModel):
    name: str
    address: Optional[str] = None
    location: LatLng
    place_id: Optional[str] = None
    open_at_time: OpenStatus = OpenStatus.UNKNOWN
    hours_known: bool = False
    vibe_score: Optional[int] = None
    risk_level: Optional[RiskLevel] = None

    def enriched(self, vibe_score: int, risk_level: RiskLevel) -> "PlaceCandidate":
        """Return a copy carrying its score. Scores are append-only."""
        if self.vibe_score is not None or self.risk_level is not None:
            raise ValueError(f"Candidate {self.name!r} is already scored")
        return self.model_copy(update={"vibe_score": vibe_score, "risk_level": risk_level})


class ClassificationSignals(BaseModel):
    csi: float
    radiance: float
    vibe_score: int = Field(ge=0, le=100)
    lighting_score: int = Field(ge=0, le=100)


class ModelOutput(BaseModel):
    """Reasoning-service reply. Every field is required; nothing is defaulted."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    risk_level: RiskLevel
    classification: Classification
    confidence: float = Field(ge=0.0, le=1.0, allow_inf_nan=False)
    rationale: str = Field(max_length=240)


class GlowPathResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    vibe_score: int
    risk_level: RiskLevel
    classification: Classification
    social_warmth: int
    lighting_score: int
    crime_baseline: int
    confidence: float
    safe_haven_nearby: bool = False
    rationale: str


class AssessRequest(BaseModel):
    destination: str = Field(min_length=1)
    radiance: Union[StrictFloat, StrictInt, str]  # demo override; validated by the pipeline


class AlternativesRequest(BaseModel):
    destination: str = Field(min_length=1)
    radiance: Union[StrictFloat, StrictInt, str]
    when_iso: Optional[str] = None
    radius_m: Optional[int] = Field(default=None, gt=0)


class AlternativesResponse(BaseModel):
    alternatives: list[PlaceCandidate]
