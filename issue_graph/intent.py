"""
Intent extraction: turns a free-text question into a typed ``Intent``.

The model is asked for a JSON object, but its answer is untrusted: it may wrap
the object in prose or code fences, truncate it, or invent enum values. The
answer goes through ``parse_intent`` which returns a tagged result; callers
only ever see a valid Intent because every failure maps to
``Intent.fallback()``.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from pydantic import ValidationError

from .config import OllamaConfig
from .errors import LLMError
from .models import Area, Difficulty, Intent, IssueType

logger = logging.getLogger(__name__)

DEFAULT_EXPLANATION = "Showing issues that match your question"

PROMPT_TEMPLATE = """You are an AI assistant helping developers find GitHub issues. Analyze this query and extract structured information.

User query: {query}

Extract the following and respond ONLY with valid JSON:
{{
  "difficulty": "beginner" | "intermediate" | "advanced" | "any",
  "area": "frontend" | "backend" | "docs" | "testing" | "api" | "any",
  "type": "bug" | "feature" | "enhancement" | "documentation" | "any",
  "keywords": ["keyword1", "keyword2"],
  "explanation": "Brief explanation of what the user wants"
}}

Examples:
- "What's a good issue for a beginner?" → {{"difficulty": "beginner", "area": "any", "type": "any", "keywords": [], "explanation": "User wants beginner-friendly issues"}}
- "Show me frontend bugs" → {{"difficulty": "any", "area": "frontend", "type": "bug", "keywords": [], "explanation": "User wants frontend bug issues"}}
- "I want to work on API documentation" → {{"difficulty": "any", "area": "backend", "type": "documentation", "keywords": ["api", "docs"], "explanation": "User wants API documentation issues"}}

Now analyze the user query above and respond with JSON only:"""


@dataclass
class IntentParseResult:
    intent: Optional[Intent] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.intent is not None

    def unwrap_or_fallback(self) -> Intent:
        return self.intent if self.intent is not None else Intent.fallback()


def extract_json_object(text: str) -> Optional[str]:
    """Return the first balanced top-level ``{...}`` substring of ``text``.

    Braces inside JSON string literals are ignored. Returns None when no
    object starts or the first one never closes (truncated output).
    """
    start = text.find("{")
    if start == -1:
        return None

    depth = 0
    in_string = False
    escaped = False
    for pos in range(start, len(text)):
        ch = text[pos]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return text[start : pos + 1]
    return None


def _normalise_enum(value: Any, enum_cls) -> str:
    if isinstance(value, str):
        cleaned = value.strip().lower()
        if cleaned in {m.value for m in enum_cls}:
            return cleaned
    return "any"


def _repair(payload: Dict[str, Any]) -> Dict[str, Any]:
    keywords = payload.get("keywords", [])
    if keywords is None:
        keywords = []
    if not isinstance(keywords, list):
        # Structural problem, left for validation to reject
        cleaned_keywords = keywords
    else:
        cleaned_keywords = [str(k).strip() for k in keywords if k is not None and str(k).strip()]

    explanation = payload.get("explanation")
    if not isinstance(explanation, str) or not explanation.strip():
        explanation = DEFAULT_EXPLANATION

    return {
        "difficulty": _normalise_enum(payload.get("difficulty"), Difficulty),
        "area": _normalise_enum(payload.get("area"), Area),
        "type": _normalise_enum(payload.get("type"), IssueType),
        "keywords": cleaned_keywords,
        "explanation": explanation.strip(),
    }


def parse_intent(raw: str) -> IntentParseResult:
    """Validate a raw model answer into an Intent.

    Unknown or missing enum values are repaired to ``any``; anything that is
    not a JSON object with a list of keywords is a failure.
    """
    blob = extract_json_object(raw or "")
    if blob is None:
        return IntentParseResult(error="no JSON object in model output")

    try:
        payload = json.loads(blob)
    except json.JSONDecodeError as e:
        return IntentParseResult(error=f"invalid JSON: {e}")

    if not isinstance(payload, dict):
        return IntentParseResult(error="model output is not an object")

    try:
        return IntentParseResult(intent=Intent.model_validate(_repair(payload)))
    except ValidationError as e:
        return IntentParseResult(error=f"schema mismatch: {e.error_count()} error(s)")


class IntentExtractor:
    def __init__(self, llm, ollama_config: Optional[OllamaConfig] = None):
        self.llm = llm
        self.temperature = (ollama_config or OllamaConfig()).intent_temperature

    def build_prompt(self, query: str) -> str:
        # Question goes in as a JSON string literal
        return PROMPT_TEMPLATE.format(query=json.dumps(query, ensure_ascii=False))

    def extract_intent(self, query: str) -> Intent:
        try:
            raw = self.llm.complete(self.build_prompt(query), temperature=self.temperature)
        except LLMError as e:
            logger.error("Failed to extract intent: %s", e)
            return Intent.fallback()

        result = parse_intent(raw)
        if not result.ok:
            logger.warning("Intent fallback (%s)", result.error)
            return Intent.fallback()

        logger.info("Extracted intent: %s", result.intent.model_dump(mode="json"))
        return result.intent
