"""GlowPath Backend — Mismatch Classifier (Gemini)

Asks Gemini for a qualitative label describing how the crime signal and the
lighting signal disagree, plus a short rationale. The reply is untrusted:
it is parsed and validated against ModelOutput, and any violation is a hard
failure. Its risk_level is advisory only; the pipeline re-derives it.
"""

import json
import logging

from pydantic import ValidationError

from config import GEMINI_API_KEY, GEMINI_MODEL
from errors import UpstreamFailure, ValidationFailure
from models import ClassificationSignals, ModelOutput
from scoring import CAUTION_THRESHOLD, SAFE_THRESHOLD

logger = logging.getLogger("glowpath.classifier")

SOURCE = "gemini/classify"
RATIONALE_MAX_CHARS = 240

# (classification, condition) in the order the model should check them.
MISMATCH_RULES: list[tuple[str, str]] = [
    ("SOCIAL_BALANCED", "csi >= 70 AND lighting_score >= 60 (high crime, but well lit and busy)"),
    ("INFRA_MISMATCH", "csi <= 60 AND lighting_score <= 35 (low crime, but poorly lit)"),
    ("UNSAFE", "csi >= 70 AND lighting_score <= 35"),
    ("SAFE", "csi <= 35 AND lighting_score >= 60"),
    ("UNCERTAIN", "none of the above"),
]


def build_classification_prompt(signals: ClassificationSignals) -> str:
    rules = "\n".join(f"- {label} when {cond}" for label, cond in MISMATCH_RULES)
    return f"""You are a night-time safety analyst. Classify the mismatch between a crime signal and a lighting signal for one destination.

Signals:
- csi (crime severity index, 0-100, higher = more crime): {signals.csi:.1f}
- radiance (night-light intensity): {signals.radiance:.2f}
- lighting_score (0-100): {signals.lighting_score}
- vibe_score (0-100, higher = safer): {signals.vibe_score}

Classification rules (prefer the first that matches):
{rules}

Constraints:
1. risk_level MUST agree with vibe_score: SAFE if vibe_score >= {SAFE_THRESHOLD}, CAUTION if vibe_score >= {CAUTION_THRESHOLD}, otherwise UNSAFE
2. confidence is a number between 0 and 1
3. rationale is at most {RATIONALE_MAX_CHARS} characters and mentions both csi and lighting

Return ONLY valid JSON (no markdown):
{{"risk_level": "SAFE|CAUTION|UNSAFE", "classification": "SAFE|UNSAFE|SOCIAL_BALANCED|INFRA_MISMATCH|UNCERTAIN", "confidence": <0-1>, "rationale": "<= {RATIONALE_MAX_CHARS} chars"}}"""


def parse_model_output(text: str) -> ModelOutput:
    """Parse and validate a raw model reply. Never coerces or fills defaults."""
    text = (text or "").strip()

    start_idx = text.find('{')
    end_idx = text.rfind('}')
    if start_idx != -1 and end_idx != -1:
        text = text[start_idx:end_idx + 1]

    try:
        parsed = json.loads(text)
    except json.JSONDecodeError as e:
        raise ValidationFailure(SOURCE, f"response is not JSON ({e.msg})") from e

    if not isinstance(parsed, dict):
        raise ValidationFailure(SOURCE, "response is not a JSON object")

    try:
        # Strict: "0.9" or true for confidence is a violation, not a float
        return ModelOutput.model_validate_json(text, strict=True)
    except ValidationError as e:
        fields = ", ".join(".".join(str(p) for p in err["loc"]) or "<root>" for err in e.errors())
        raise ValidationFailure(SOURCE, f"schema violation in {fields}") from e


async def classify_mismatch(signals: ClassificationSignals) -> ModelOutput:
    """Classify crime/lighting mismatch via Gemini.

    Raises UpstreamFailure when Gemini is unconfigured or the call fails,
    ValidationFailure when the reply breaks the schema.
    """
    if not GEMINI_API_KEY:
        raise UpstreamFailure(SOURCE, "GEMINI_API_KEY is not configured")

    import google.generativeai as genai
    genai.configure(api_key=GEMINI_API_KEY)
    model = genai.GenerativeModel(GEMINI_MODEL)

    try:
        result = await model.generate_content_async(
            build_classification_prompt(signals),
            generation_config=genai.types.GenerationConfig(
                response_mime_type="application/json",
            ),
        )
        text = result.text
    except Exception as e:
        logger.warning(f"Gemini classification error: {e}")
        raise UpstreamFailure(SOURCE, str(e)[:200]) from e

    output = parse_model_output(text)
    logger.info(
        f"Gemini classification: {output.classification.value} "
        f"(risk {output.risk_level.value}, confidence {output.confidence:.2f})"
    )
    return output
