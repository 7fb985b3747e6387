"""
AI symptom analysis – prompting the LLM and parsing its verdict.
"""

import json
import re
import sys
from typing import Any, Dict

from langchain_openai import ChatOpenAI
from langchain_core.messages import HumanMessage, SystemMessage

from healthportal.config import SEVERITIES
from healthportal.models import SymptomVerdict

DISCLAIMER = (
    "This analysis is informational only and is not a diagnosis. "
    "Consult a healthcare professional for medical advice."
)


def fallback_verdict() -> SymptomVerdict:
    """Verdict returned when the model is unavailable or fails."""
    return SymptomVerdict(
        severity="low",
        possible_conditions=[],
        recommendations=["Consult a healthcare professional about your symptoms."],
        confidence=0.0,
        summary="AI analysis unavailable. " + DISCLAIMER,
    )


# ── Parsing ──────────────────────────────────────────────────────────

def _strip_fences(content: str) -> str:
    text = content.strip()
    if text.startswith("```"):
        text = text.strip("`")
        text = re.sub(r"^json", "", text, flags=re.IGNORECASE).strip()
    return text


def _as_list(value: Any) -> list:
    if value is None:
        return []
    if isinstance(value, str):
        return [value] if value.strip() else []
    if isinstance(value, (list, tuple)):
        return [str(v) for v in value if str(v).strip()]
    return [str(value)]


def _as_confidence(value: Any) -> float:
    try:
        confidence = float(value)
    except (TypeError, ValueError):
        return 0.0
    # accept both 0..1 and 0..100 scales
    if 0 < confidence <= 1:
        confidence *= 100
    return round(min(max(confidence, 0.0), 100.0), 1)


def parse_verdict(content: str) -> SymptomVerdict:
    """Turn the model's JSON answer into a SymptomVerdict.

    Unknown severities become "medium"; missing fields get empty defaults.
    Raises ValueError when the answer holds no JSON object.
    """
    text = _strip_fences(content)
    match = re.search(r"\{.*\}", text, flags=re.DOTALL)
    if not match:
        raise ValueError(f"LLM returned no JSON object: {text[:160]}...")
    try:
        data: Dict[str, Any] = json.loads(match.group(0))
    except json.JSONDecodeError as e:
        raise ValueError(f"LLM returned malformed JSON: {e}") from e

    severity = str(data.get("severity", "")).strip().lower()
    if severity not in SEVERITIES:
        severity = "medium"

    return SymptomVerdict(
        severity=severity,
        possible_conditions=_as_list(data.get("possibleConditions")),
        recommendations=_as_list(data.get("recommendations")),
        confidence=_as_confidence(data.get("confidence")),
        summary=str(data.get("summary", "")).strip(),
    )


# ── Main analysis function ───────────────────────────────────────────

def analyze_symptoms(llm: ChatOpenAI, symptoms: str) -> SymptomVerdict:
    """Ask the LLM for a triage-style verdict on a free-text symptom description."""
    system = SystemMessage(
        content=(
            "You are a cautious medical triage assistant for a patient portal.\n"
            "You will see a patient's own description of their symptoms.\n\n"
            "Respond with ONE JSON object and nothing else, with these keys:\n"
            '- "severity": one of "low", "medium", "high".\n'
            '- "possibleConditions": list of up to 5 short condition names.\n'
            '- "recommendations": list of up to 5 short, practical next steps.\n'
            '- "confidence": number from 0 to 100.\n'
            '- "summary": 2–4 plain sentences, no markdown.\n\n'
            "Use \"high\" whenever the description suggests an emergency and "
            "recommend seeking urgent care. Never claim a definitive diagnosis."
        )
    )
    human = HumanMessage(content=f"Patient symptoms:\n{symptoms}\n")

    resp = llm.invoke([system, human])
    return parse_verdict(resp.content)


def analyze_or_fallback(llm, symptoms: str) -> SymptomVerdict:
    """Run analyze_symptoms, falling back when the LLM is missing or fails."""
    if llm is None:
        return fallback_verdict()
    try:
        return analyze_symptoms(llm, symptoms)
    except Exception as e:
        print(f"[WARN] AI symptom analysis failed: {e}", file=sys.stderr)
        return fallback_verdict()
