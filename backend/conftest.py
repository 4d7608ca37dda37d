"""Shared fakes for the GlowPath collaborator interfaces."""

import asyncio

import pytest

from errors import UpstreamFailure
from models import (
    Classification, LatLng, ModelOutput, OpenStatus, Place, PlaceCandidate, RiskLevel,
)

SOHO = Place(name="Soho, London", location=LatLng(lat=51.5136, lng=-0.1365), place_id="soho")


def candidate(name: str, lat: float, open_at_time: OpenStatus = OpenStatus.UNKNOWN) -> PlaceCandidate:
    return PlaceCandidate(name=name, location=LatLng(lat=lat, lng=-0.13), open_at_time=open_at_time)


class FakeCollaborators:
    """In-memory stand-ins for place search, nearby discovery, crime CSI and Gemini."""

    def __init__(self, csi_by_lat=None, default_csi=50.0, nearby=None, model_output=None, place=SOHO):
        self.place = place
        self.csi_by_lat = csi_by_lat or {}
        self.default_csi = default_csi
        self.nearby = nearby or []
        self.model_output = model_output or ModelOutput(
            risk_level=RiskLevel.SAFE,
            classification=Classification.UNCERTAIN,
            confidence=0.6,
            rationale="csi and lighting point in different directions.",
        )
        self.crime_calls: list[tuple[float, float, int]] = []
        self.nearby_calls: list[tuple[LatLng, int, object]] = []
        self.signals = []
        self.failing_lats: set[float] = set()
        self.delays: dict[float, float] = {}

    async def resolve_place(self, query: str):
        return self.place

    async def discover_nearby(self, center, radius_m, when_iso=None):
        self.nearby_calls.append((center, radius_m, when_iso))
        return list(self.nearby)

    async def fetch_crime(self, lat, lng, distance_m):
        self.crime_calls.append((lat, lng, distance_m))
        if lat in self.delays:
            await asyncio.sleep(self.delays[lat])
        if lat in self.failing_lats:
            raise UpstreamFailure("crime/csi", "boom", 503)
        return self.csi_by_lat.get(lat, self.default_csi)

    async def classify(self, signals):
        self.signals.append(signals)
        return self.model_output


@pytest.fixture
def fakes():
    return FakeCollaborators()
