"""GlowPath Backend — FastAPI Routes"""

import logging
import time

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config import API_VERSION, GLOWPATH_BACKEND_URL, GEMINI_API_KEY, RADIUS_M, RATE_LIMIT_PER_MINUTE
from classifier import classify_mismatch
from data_fetchers import client, fetch_place_text, fetch_nearby_candidates, fetch_crime_csi
from errors import GlowPathError
from models import (
    AssessRequest, AlternativesRequest, AlternativesResponse,
    ClassificationSignals, GlowPathResult, ModelOutput,
)
from pipeline import assess, rank_alternatives

logger = logging.getLogger("glowpath")


# ─────────────────────────── App Setup ──────────────────────────

app = FastAPI(title="GlowPath Safety Vibe API", version=API_VERSION)

_allowed_origins = [
    f"http://localhost:{p}" for p in range(5173, 5180)
] + [
    f"http://127.0.0.1:{p}" for p in range(5173, 5180)
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=_allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
async def startup_event():
    if not GLOWPATH_BACKEND_URL:
        logger.warning("GLOWPATH_BACKEND_URL is not set; place and crime lookups will fail")
    if not GEMINI_API_KEY:
        logger.warning("GEMINI_API_KEY is not set; classification will fail")


@app.on_event("shutdown")
async def shutdown_event():
    await client.aclose()


@app.exception_handler(GlowPathError)
async def glowpath_error_handler(request: Request, exc: GlowPathError):
    logger.warning(f"{request.url.path} failed ({exc.status_code}): {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


# ─────────────────────────── Rate Limiting ──────────────────────

_rate_store: dict[str, list[float]] = {}
RATE_WINDOW = 60  # seconds
_RATE_EVICT_INTERVAL = 300
_last_rate_evict = 0.0


@app.middleware("http")
async def rate_limit_middleware(request: Request, call_next):
    client_ip = request.client.host if request.client else "unknown"
    now = time.time()

    global _last_rate_evict
    if now - _last_rate_evict > _RATE_EVICT_INTERVAL:
        stale_ips = [ip for ip, timestamps in _rate_store.items()
                     if not timestamps or now - timestamps[-1] > RATE_WINDOW * 2]
        for ip in stale_ips:
            del _rate_store[ip]
        _last_rate_evict = now

    window = [t for t in _rate_store.get(client_ip, []) if now - t < RATE_WINDOW]
    if len(window) >= RATE_LIMIT_PER_MINUTE:
        _rate_store[client_ip] = window
        return JSONResponse(
            status_code=429,
            content={"detail": "Rate limit exceeded. Try again in a minute."},
        )

    window.append(now)
    _rate_store[client_ip] = window
    return await call_next(request)


# ─────────────────────────── Assessment ─────────────────────────

@app.post("/api/assess", response_model=GlowPathResult)
async def assess_destination(req: AssessRequest):
    logger.info(f"Assess request: {req.destination!r} radiance={req.radiance!r}")
    return await assess(
        req.destination,
        req.radiance,
        resolve_place=fetch_place_text,
        fetch_crime=fetch_crime_csi,
        classify=classify_mismatch,
    )


@app.post("/api/alternatives", response_model=AlternativesResponse)
async def find_alternatives(req: AlternativesRequest):
    logger.info(f"Alternatives request: {req.destination!r} at {req.when_iso or 'now'}")
    ranked = await rank_alternatives(
        req.destination,
        req.radiance,
        req.when_iso,
        req.radius_m or RADIUS_M,
        resolve_place=fetch_place_text,
        discover_nearby=fetch_nearby_candidates,
        fetch_crime=fetch_crime_csi,
    )
    return AlternativesResponse(alternatives=ranked)


@app.post("/api/classify", response_model=ModelOutput)
async def classify(signals: ClassificationSignals):
    """Raw (validated) model output. risk_level here is NOT reconciled."""
    return await classify_mismatch(signals)


# ─────────────────────────── Utility Endpoints ──────────────────

@app.get("/api/health")
async def health():
    return {"status": "ok", "version": API_VERSION}
