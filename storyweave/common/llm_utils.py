"""Shared utilities for parsing LLM responses."""

from __future__ import annotations

import json
from typing import Any


def strip_code_fences(raw: str) -> str:
    """Remove markdown code fence lines (```json ... ```) from a response."""
    text = raw.strip()
    if text.startswith("```"):
        lines = text.split("\n")
        lines = [l for l in lines if not l.strip().startswith("```")]
        text = "\n".join(lines)
    return text


def parse_llm_json(raw: str) -> Any:
    """Parse JSON from an LLM response, handling code fences and preamble text.

    Tries in order:
    1. Strip markdown code fences, then json.loads
    2. Extract substring between first '{' and last '}', then json.loads

    Returns whatever JSON value was decoded (callers check the type).
    Raises ValueError when nothing parses.
    """
    if not raw or not raw.strip():
        raise ValueError("Empty response")

    text = strip_code_fences(raw)

    try:
        return json.loads(text)
    except json.JSONDecodeError:
        pass

    start = raw.find("{")
    end = raw.rfind("}") + 1
    if start >= 0 and end > start:
        try:
            return json.loads(raw[start:end])
        except json.JSONDecodeError:
            pass

    raise ValueError("Response is not valid JSON")
