"""Mismatch classifier: prompt contract and strict output validation."""

import asyncio
import json

import pytest

import classifier
from classifier import build_classification_prompt, classify_mismatch, parse_model_output
from errors import UpstreamFailure, ValidationFailure
from models import Classification, ClassificationSignals, RiskLevel

SIGNALS = ClassificationSignals(csi=80, radiance=6.3, vibe_score=34, lighting_score=65)


def _reply(**overrides) -> str:
    body = {
        "risk_level": "UNSAFE",
        "classification": "SOCIAL_BALANCED",
        "confidence": 0.72,
        "rationale": "High csi of 80 but lighting is strong, so the street is busy.",
    }
    body.update(overrides)
    return json.dumps(body)


def test_prompt_embeds_rule_table_and_signals():
    prompt = build_classification_prompt(SIGNALS)
    for label in ("SOCIAL_BALANCED", "INFRA_MISMATCH", "UNSAFE", "SAFE", "UNCERTAIN"):
        assert label in prompt
    assert "csi >= 70 AND lighting_score >= 60" in prompt
    assert "csi <= 60 AND lighting_score <= 35" in prompt
    assert "vibe_score >= 65" in prompt
    assert "240 characters" in prompt
    assert "80.0" in prompt and "65" in prompt


def test_parse_valid_reply():
    out = parse_model_output(_reply())
    assert out.risk_level is RiskLevel.UNSAFE
    assert out.classification is Classification.SOCIAL_BALANCED
    assert out.confidence == pytest.approx(0.72)


def test_parse_strips_surrounding_text():
    out = parse_model_output("```json\n" + _reply(classification="UNCERTAIN") + "\n```")
    assert out.classification is Classification.UNCERTAIN


@pytest.mark.parametrize("overrides", [
    {"confidence": 1.5},
    {"confidence": -0.1},
    {"confidence": "0.9"},
    {"confidence": "1"},
    {"confidence": True},
    {"risk_level": None},
    {"risk_level": "MAYBE"},
    {"classification": "SKETCHY"},
    {"rationale": "x" * 241},
])
def test_schema_violations_raise(overrides):
    with pytest.raises(ValidationFailure):
        parse_model_output(_reply(**overrides))


@pytest.mark.parametrize("field", ["risk_level", "classification", "confidence", "rationale"])
def test_missing_field_is_not_defaulted(field):
    body = json.loads(_reply())
    del body[field]
    with pytest.raises(ValidationFailure) as exc:
        parse_model_output(json.dumps(body))
    assert field in str(exc.value)


def test_non_json_reply_raises():
    with pytest.raises(ValidationFailure):
        parse_model_output("I think it is probably fine.")
    with pytest.raises(ValidationFailure):
        parse_model_output("")


def test_validation_failure_is_an_upstream_failure():
    with pytest.raises(UpstreamFailure):
        parse_model_output(_reply(confidence=2))


def test_rationale_at_limit_is_accepted():
    assert len(parse_model_output(_reply(rationale="y" * 240)).rationale) == 240


def test_missing_api_key_fails_hard(monkeypatch):
    monkeypatch.setattr(classifier, "GEMINI_API_KEY", "")
    with pytest.raises(UpstreamFailure, match="GEMINI_API_KEY"):
        asyncio.run(classify_mismatch(SIGNALS))


class _FakeResponse:
    def __init__(self, text):
        self.text = text


class _FakeModel:
    reply = _reply()
    prompts: list[str] = []

    def __init__(self, name, **kwargs):
        self.name = name

    async def generate_content_async(self, prompt, generation_config=None):
        _FakeModel.prompts.append(prompt)
        if isinstance(self.reply, Exception):
            raise self.reply
        return _FakeResponse(self.reply)


@pytest.fixture
def fake_gemini(monkeypatch):
    import google.generativeai as genai
    monkeypatch.setattr(classifier, "GEMINI_API_KEY", "test-key")
    monkeypatch.setattr(genai, "configure", lambda **kwargs: None)
    monkeypatch.setattr(genai, "GenerativeModel", _FakeModel)
    _FakeModel.prompts = []
    return _FakeModel


def test_classify_mismatch_validates_reply(fake_gemini, monkeypatch):
    monkeypatch.setattr(fake_gemini, "reply", _reply())
    out = asyncio.run(classify_mismatch(SIGNALS))
    assert out.classification is Classification.SOCIAL_BALANCED
    assert len(fake_gemini.prompts) == 1


def test_classify_mismatch_rejects_bad_reply(fake_gemini, monkeypatch):
    monkeypatch.setattr(fake_gemini, "reply", _reply(risk_level="MAYBE"))
    with pytest.raises(ValidationFailure):
        asyncio.run(classify_mismatch(SIGNALS))


def test_classify_mismatch_wraps_transport_errors(fake_gemini, monkeypatch):
    monkeypatch.setattr(fake_gemini, "reply", RuntimeError("quota exceeded"))
    with pytest.raises(UpstreamFailure, match="quota exceeded") as exc:
        asyncio.run(classify_mismatch(SIGNALS))
    assert not isinstance(exc.value, ValidationFailure)


def test_integer_confidence_is_still_a_number():
    assert parse_model_output(_reply(confidence=1)).confidence == 1.0
    assert parse_model_output(_reply(confidence=0)).confidence == 0.0
