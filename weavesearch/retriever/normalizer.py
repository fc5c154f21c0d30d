"""
Response Normalizer

Turns whatever the Airweave search endpoint returns into canonical
SearchResult records. The payload schema varies by deployment and data
source, so both levels are handled with flat, ordered rules:

1. Response level: which sequence holds the hits (EXTRACTION_RULES)
2. Field level: which key feeds each canonical field (FIELD_CANDIDATES)

Nothing in here raises on bad input; the worst case for a hit is a result
whose content is the hit's JSON serialization.
"""

import json
import logging
import math
from typing import Any, Callable, Dict, List, Optional, Sequence

from ..common.schemas import SearchResult

logger = logging.getLogger("weavesearch.retriever.normalizer")

# Wrapper-object fields that may hold the hit list, in priority order
RESULT_CONTAINER_FIELDS = ("results", "data", "items", "hits", "documents")

FIELD_CANDIDATES: Dict[str, Sequence[str]] = {
    "content": ("content", "text", "body", "document", "page_content", "chunk", "data"),
    "id": ("id", "_id", "entity_id"),
    "source": ("source", "source_name", "collection"),
    "source_type": ("source_type", "type"),
    "score": ("score", "relevance_score", "_score", "similarity"),
    "title": ("title", "name"),
    "created_at": ("created_at", "createdAt"),
    "updated_at": ("updated_at", "updatedAt"),
}

DEFAULT_SOURCE = "notion"
DEFAULT_SOURCE_TYPE = "notion"
DEFAULT_SCORE = 1.0

ExtractionRule = Callable[[Any], Optional[list]]


def _bare_sequence(payload: Any) -> Optional[list]:
    return payload if isinstance(payload, list) else None


def _container(field_name: str) -> ExtractionRule:
    def rule(payload: Any) -> Optional[list]:
        if isinstance(payload, dict) and isinstance(payload.get(field_name), list):
            return payload[field_name]
        return None

    rule.__name__ = f"container_{field_name}"
    return rule


EXTRACTION_RULES: List[ExtractionRule] = [_bare_sequence] + [
    _container(name) for name in RESULT_CONTAINER_FIELDS
]


def extract_records(payload: Any) -> list:
    """
    Find the list of raw hits in a search payload.

    First matching rule wins; an unrecognized payload means zero results.
    """
    for rule in EXTRACTION_RULES:
        records = rule(payload)
        if records is not None:
            return records

    if isinstance(payload, dict):
        logger.warning("Unknown response structure, keys: %s", sorted(payload.keys()))
    elif payload is not None:
        logger.warning("Unknown response type: %s", type(payload).__name__)
    return []


def _is_empty(value: Any) -> bool:
    # 0 and False are real values (a zero score or id is kept), unlike a
    # plain truthiness test; only None and empty str/list/dict fall through
    if value is None:
        return True
    if isinstance(value, (str, list, dict)):
        return len(value) == 0
    return False


def first_present(record: Dict[str, Any], fields: Sequence[str]) -> Any:
    """Value of the first field in *fields* that is present and non-empty"""
    for name in fields:
        value = record.get(name)
        if not _is_empty(value):
            return value
    return None


def serialize(value: Any) -> str:
    """JSON form of an arbitrary decoded value (never empty)"""
    try:
        return json.dumps(value, ensure_ascii=False, default=str)
    except (TypeError, ValueError):
        return repr(value)


def _as_text(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, (dict, list)):
        return serialize(value)
    return str(value)


def _optional_text(record: Dict[str, Any], field_name: str) -> Optional[str]:
    value = first_present(record, FIELD_CANDIDATES[field_name])
    return None if value is None else _as_text(value)


def _as_score(record: Dict[str, Any]) -> float:
    """First candidate that is a finite number (bools excluded)"""
    for name in FIELD_CANDIDATES["score"]:
        value = record.get(name)
        if value is None or isinstance(value, bool):
            continue
        try:
            score = float(value)
        except (TypeError, ValueError):
            continue
        if math.isfinite(score):
            return score
    return DEFAULT_SCORE


def to_search_result(raw: Any, index: int) -> SearchResult:
    """
    Map one raw hit to a SearchResult.

    Args:
        raw: Decoded JSON element of unknown shape
        index: Zero-based position in the hit list (id fallback)
    """
    if not isinstance(raw, dict):
        return SearchResult(id=str(index), content=serialize(raw))

    content = first_present(raw, FIELD_CANDIDATES["content"])
    record_id = first_present(raw, FIELD_CANDIDATES["id"])
    source = first_present(raw, FIELD_CANDIDATES["source"])
    source_type = first_present(raw, FIELD_CANDIDATES["source_type"])
    metadata = raw.get("metadata")
    url = raw.get("url")

    return SearchResult(
        id=_as_text(record_id) if record_id is not None else str(index),
        content=_as_text(content) if content is not None else serialize(raw),
        source=_as_text(source) if source is not None else DEFAULT_SOURCE,
        source_type=_as_text(source_type) if source_type is not None else DEFAULT_SOURCE_TYPE,
        score=_as_score(raw),
        metadata=metadata if isinstance(metadata, dict) else None,
        url=_as_text(url) if not _is_empty(url) else None,
        title=_optional_text(raw, "title"),
        created_at=_optional_text(raw, "created_at"),
        updated_at=_optional_text(raw, "updated_at"),
    )


def normalize_response(payload: Any) -> List[SearchResult]:
    """Extract and map every hit; a bad hit never aborts the batch"""
    results = []
    for index, raw in enumerate(extract_records(payload)):
        try:
            results.append(to_search_result(raw, index))
        except Exception as e:
            logger.warning("Could not map result %d, keeping raw form: %s", index, e)
            results.append(SearchResult(id=str(index), content=serialize(raw)))
    return results
