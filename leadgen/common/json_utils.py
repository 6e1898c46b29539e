"""
JSON Utilities for LLM Response Parsing.

Text-generation replies often wrap the requested JSON in prose or markdown
fences, or return slightly malformed JSON (single quotes, trailing commas).
Uses json-repair as a fallback when standard json parsing fails.
"""

import json
from typing import Any, Dict


_decoder = json.JSONDecoder()


def parse_llm_json(text: str) -> Dict[str, Any]:
    """
    Parse the first JSON object found in an LLM reply.

    Args:
        text: Raw LLM response text that may contain JSON

    Returns:
        Parsed dictionary

    Raises:
        ValueError: If no JSON object can be extracted or repaired

    Example:
        >>> parse_llm_json('Sure! ```json\\n{"industry": "dental"}\\n``` Anything else?')
        {'industry': 'dental'}
        >>> parse_llm_json("{'location': 'Madrid',}")
        {'location': 'Madrid'}
    """
    if not text or not text.strip():
        raise ValueError("Empty input: no JSON content to parse")

    cleaned = _strip_markdown_blocks(text.strip())

    start = cleaned.find("{")
    if start == -1:
        raise ValueError(f"No JSON object found in text: {text[:200]}")

    # raw_decode stops at the end of the first complete object
    try:
        obj, _ = _decoder.raw_decode(cleaned[start:])
        if isinstance(obj, dict):
            return obj
    except json.JSONDecodeError:
        pass

    end = cleaned.rfind("}")
    candidate = cleaned[start:end + 1] if end > start else cleaned[start:]

    try:
        from json_repair import repair_json
        repaired = repair_json(candidate, return_objects=True)
    except Exception as e:
        raise ValueError(f"Failed to parse or repair JSON: {e}") from e

    if isinstance(repaired, dict) and repaired:
        return repaired
    if isinstance(repaired, list):
        for item in repaired:
            if isinstance(item, dict) and item:
                return item

    raise ValueError(
        f"Failed to parse or repair JSON. Original text (first 500 chars): {text[:500]}"
    )


def _strip_markdown_blocks(text: str) -> str:
    """Remove a leading ```json / ``` fence and a trailing ``` fence."""
    result = text
    fence = result.find("```")
    if fence != -1:
        result = result[fence + 3:]
        if result.lower().startswith("json"):
            result = result[4:]
        closing = result.find("```")
        if closing != -1:
            result = result[:closing]
    return result.strip()
