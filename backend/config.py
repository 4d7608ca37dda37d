"""GlowPath Backend — Configuration & Constants"""

import os
from pathlib import Path
from dotenv import load_dotenv

# Load .env from project root (one level up from backend/)
_env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_env_path)

# ── Collaborator backend (place search, nearby discovery, crime CSI) ──
GLOWPATH_BACKEND_URL = os.environ.get("GLOWPATH_BACKEND_URL", "").rstrip("/")
HTTP_TIMEOUT_S = float(os.environ.get("HTTP_TIMEOUT_S", "15"))

# ── Gemini ──
GEMINI_API_KEY = os.environ.get("GEMINI_API_KEY") or os.environ.get("VITE_GEMINI_API_KEY", "")
GEMINI_MODEL = os.environ.get("GEMINI_MODEL", "gemini-2.0-flash")

# ── Search radius / crime window ──
RADIUS_M = int(os.environ.get("RADIUS_M", "700"))
CRIME_WINDOW_DAYS = int(os.environ.get("CRIME_WINDOW_DAYS", "30"))
NEARBY_MAX_RESULTS = int(os.environ.get("NEARBY_MAX_RESULTS", "12"))

# ── Alternatives ranking ──
# Shortlist only bounds the number of crime/csi calls per ranking.
ALTERNATIVES_SHORTLIST = int(os.environ.get("ALTERNATIVES_SHORTLIST", "10"))
ALTERNATIVES_TOP_N = int(os.environ.get("ALTERNATIVES_TOP_N", "5"))
ALTERNATIVES_CONCURRENCY = int(os.environ.get("ALTERNATIVES_CONCURRENCY", "4"))

# ── HTTP surface ──
RATE_LIMIT_PER_MINUTE = int(os.environ.get("RATE_LIMIT_PER_MINUTE", "30"))

API_VERSION = "1.0.0"
