from __future__ import annotations

import logging
from typing import Any, Optional, Sequence

from .aggregate import bottom_n, filter_by_category, top_n
from .models import Event, School
from .utils import api_key_from_env, load_json, model_from_env, rules_path

try:
    import google.generativeai as genai
except Exception:  # pragma: no cover
    genai = None

logger = logging.getLogger(__name__)

RULES = load_json(rules_path(), {})

NOT_CONFIGURED_MESSAGE = "API Key not configured. Please set GEMINI_API_KEY to use AI features."
FAILED_MESSAGE = "Failed to generate AI analysis. Please check your connection."
EMPTY_MESSAGE = "No analysis generated."


def _fmt(schools: Sequence[School]) -> str:
    return ", ".join(f"{s.name} ({s.total_score:g} pts)" for s in schools) or "-"


def build_prompt(top: Sequence[School], bottom: Sequence[School], event_count: int, category: str) -> str:
    return (
        "You are an AI analyst for an educational organization.\n"
        f"Analyze the following participation data for {category} schools.\n\n"
        "Context:\n"
        "- We track school participation in events (Socializations, Data Requests).\n"
        "- High scores indicate active, compliant schools.\n\n"
        "Data:\n"
        f"- Total Events Held: {event_count}\n"
        f"- Top 5 Active Schools: {_fmt(top)}\n"
        f"- Bottom 5 Inactive Schools: {_fmt(bottom)}\n\n"
        "Task:\n"
        "Provide a professional executive summary (max 150 words) in Indonesian (Bahasa Indonesia).\n"
        "Highlight the gap between top and bottom performers and suggest 1 actionable strategy "
        "to improve the participation of the bottom schools.\n"
        "Do not use markdown formatting like bolding, just plain text paragraphs."
    )


def _extract_text(resp: Any) -> str:
    text = getattr(resp, "text", None)
    if isinstance(text, str) and text.strip():
        return text.strip()
    try:
        parts = resp.candidates[0].content.parts
    except (AttributeError, IndexError, TypeError):
        return ""
    out = [p.text for p in parts if isinstance(getattr(p, "text", None), str) and p.text]
    return "\n".join(out).strip()


def summarize(
    top: Sequence[School],
    bottom: Sequence[School],
    event_count: int,
    category: str,
    *,
    api_key: Optional[str] = None,
    model_name: Optional[str] = None,
) -> str:
    """Executive summary text from Gemini. Never raises; falls back to a fixed message."""
    api_key = (api_key if api_key is not None else api_key_from_env()).strip()
    if not api_key or genai is None:
        logger.warning("Summary unavailable: Gemini API key or client library missing")
        return NOT_CONFIGURED_MESSAGE

    prompt = build_prompt(top, bottom, event_count, category)
    try:
        genai.configure(api_key=api_key)
        model = genai.GenerativeModel(model_name or model_from_env())
        resp = model.generate_content(prompt)
        text = _extract_text(resp)
    except Exception:
        logger.warning("Gemini summary failed", exc_info=True)
        return FAILED_MESSAGE

    return text or EMPTY_MESSAGE


def executive_summary(
    schools: Sequence[School],
    events: Sequence[Event],
    category: Optional[str] = None,
    **kwargs,
) -> str:
    n = int(RULES.get("summary_top_n", 5))
    pool = filter_by_category(schools, category)
    label = "all" if category is None or str(category).upper() == "ALL" else str(getattr(category, "value", category))
    return summarize(top_n(pool, n), bottom_n(pool, n), len(events), label, **kwargs)
