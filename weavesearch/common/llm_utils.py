"""Shared utilities for parsing LLM responses.

Model output is free-form text that usually embeds JSON. Extraction is
best-effort and takes the first matching span; callers treat
LLMResponseError as "use the fallback".
"""

from __future__ import annotations

import json
import re
from typing import Iterable, List

# Greedy: first "{" through the last "}"
_OBJECT_SPAN = re.compile(r"\{.*\}", re.DOTALL)
# First bracketed list made only of non-negative integers
_INDEX_LIST_SPAN = re.compile(r"\[[\d\s,]+\]")


class LLMResponseError(ValueError):
    """The model response did not contain the expected JSON."""


def extract_json_object(raw: str) -> dict:
    """Return the first JSON object embedded in *raw*.

    Raises LLMResponseError when no span is found, the span does not parse,
    or it parses to something other than an object.
    """
    match = _OBJECT_SPAN.search(raw or "")
    if not match:
        raise LLMResponseError("No JSON found in response")

    try:
        data = json.loads(match.group(0))
    except json.JSONDecodeError as e:
        raise LLMResponseError(f"Malformed JSON in response: {e}") from e

    if not isinstance(data, dict):
        raise LLMResponseError(f"Expected a JSON object, got {type(data).__name__}")
    return data


def extract_index_list(raw: str) -> List[int]:
    """Return the first ``[i, j, ...]`` integer list embedded in *raw*."""
    match = _INDEX_LIST_SPAN.search(raw or "")
    if not match:
        raise LLMResponseError("No index array found in response")

    try:
        values = json.loads(match.group(0))
    except json.JSONDecodeError as e:
        # e.g. "[1, 2,]" or "[1,,2]"
        raise LLMResponseError(f"Malformed index array: {e}") from e
    return [int(v) for v in values]


def order_by_indices(count: int, indices: Iterable[int]) -> List[int]:
    """Turn a model-proposed ordering into a permutation of ``range(count)``.

    Out-of-range indices are dropped, repeats keep their first position, and
    indices the model never mentioned are appended in their original order.
    """
    ordered = []
    seen = set()
    for idx in indices:
        if 0 <= idx < count and idx not in seen:
            seen.add(idx)
            ordered.append(idx)

    ordered.extend(i for i in range(count) if i not in seen)
    return ordered


def string_list(value) -> List[str]:
    """Coerce a model-provided list field into a list of strings."""
    if isinstance(value, str):
        return [value] if value.strip() else []
    if not isinstance(value, list):
        return []
    return [str(v) for v in value if v is not None and str(v).strip()]
