"""
GlowPath Safety Vibe Backend — FastAPI + Gemini
Modular entry point. All logic is split across:
  config.py, errors.py, models.py, scoring.py, classifier.py,
  data_fetchers.py, pipeline.py, routes.py
"""

import logging

logging.basicConfig(level=logging.INFO)

from routes import app  # noqa: F401

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
