"""
Gemini Web response decoding.

The StreamGenerate endpoint answers with a line-oriented body whose first
JSON array line wraps the real payload as a JSON string. Everything here is
pure and never touches the network.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from typing import Any

from webgate.core.exceptions import (
    NoCandidatesError,
    PayloadParseError,
    ResponseBodyNotFoundError,
)

from .constants import BODY_INDEX, CANDIDATE_INDEX, CARD_CONTENT_PATTERN, MAX_BODY_SEARCH_DEPTH

_CARD_CONTENT_RE = re.compile(CARD_CONTENT_PATTERN)


@dataclass
class Candidate:
    """One reply alternative."""

    rcid: str
    text: str
    thoughts: str | None = None


@dataclass
class ModelOutput:
    """Decoded generation result. ``chosen`` is always the first candidate."""

    metadata: list[Any] = field(default_factory=list)
    candidates: list[Candidate] = field(default_factory=list)
    chosen: int = 0

    @property
    def text(self) -> str:
        return self.candidates[self.chosen].text

    @property
    def rcid(self) -> str:
        return self.candidates[self.chosen].rcid


def extract_json_from_response(text: str) -> list[Any]:
    """Return the first line of ``text`` that parses as a JSON array."""
    for line in text.splitlines():
        stripped = line.strip()
        if not stripped:
            continue
        try:
            parsed = json.loads(stripped)
        except ValueError:
            continue
        if isinstance(parsed, list):
            return parsed
    raise PayloadParseError()


def get_nested_value(data: Any, path: tuple[int, ...] | list[int], fallback: Any = None) -> Any:
    """Walk ``data`` by list indices; any miss (or a null leaf) yields ``fallback``."""
    cursor = data
    for index in path:
        if not isinstance(cursor, list) or index < 0 or index >= len(cursor):
            return fallback
        cursor = cursor[index]
    return fallback if cursor is None else cursor


def _as_text(value: Any) -> str:
    return "" if value is None else str(value)


def is_candidate_list(value: Any) -> bool:
    if not isinstance(value, list) or not value:
        return False
    for item in value:
        if not isinstance(item, list):
            continue
        rcid = _as_text(get_nested_value(item, CANDIDATE_INDEX["rcid"], ""))
        text = _as_text(get_nested_value(item, CANDIDATE_INDEX["text"], ""))
        if rcid and text:
            return True
    return False


def find_body_with_candidates(node: Any, depth: int = 0) -> list[Any] | None:
    """Depth-first search for a nested list whose candidate slot holds a candidate list."""
    if depth > MAX_BODY_SEARCH_DEPTH or not isinstance(node, list):
        return None

    if is_candidate_list(get_nested_value(node, BODY_INDEX["candidates"])):
        return node

    for child in node:
        found = find_body_with_candidates(child, depth + 1)
        if found is not None:
            return found
    return None


def locate_body(response_json: list[Any]) -> list[Any]:
    """
    Find the payload body inside the outer response array.

    First tier: each element's embedded JSON string. Second tier: a bounded
    recursive search of the raw nesting.
    """
    for part in response_json:
        if not isinstance(part, list):
            continue
        raw_body = get_nested_value(part, BODY_INDEX["raw_body"])
        if not isinstance(raw_body, str):
            continue
        try:
            parsed = json.loads(raw_body)
        except ValueError:
            continue
        if is_candidate_list(get_nested_value(parsed, BODY_INDEX["candidates"])):
            return parsed

    body = find_body_with_candidates(response_json)
    if body is None:
        raise ResponseBodyNotFoundError()
    return body


def decode_candidates(raw: Any) -> list[Candidate]:
    """Turn the raw candidate list into ``Candidate`` objects, skipping entries without an id."""
    candidates: list[Candidate] = []
    if not isinstance(raw, list):
        return candidates

    for item in raw:
        if not isinstance(item, list):
            continue
        rcid = _as_text(get_nested_value(item, CANDIDATE_INDEX["rcid"], ""))
        if not rcid:
            continue
        text = _as_text(get_nested_value(item, CANDIDATE_INDEX["text"], ""))
        if _CARD_CONTENT_RE.match(text):
            text = _as_text(get_nested_value(item, CANDIDATE_INDEX["card_text"], text))
        thoughts = _as_text(get_nested_value(item, CANDIDATE_INDEX["thoughts"], ""))
        candidates.append(Candidate(rcid=rcid, text=text, thoughts=thoughts or None))
    return candidates


def parse_model_output(response_json: list[Any]) -> ModelOutput:
    """Decode an outer response array into a ``ModelOutput``."""
    body = locate_body(response_json)
    candidates = decode_candidates(get_nested_value(body, BODY_INDEX["candidates"], []))
    if not candidates:
        raise NoCandidatesError()

    metadata = get_nested_value(body, BODY_INDEX["metadata"], [])
    if not isinstance(metadata, list):
        metadata = []
    return ModelOutput(metadata=metadata, candidates=candidates, chosen=0)


__all__ = [
    "Candidate",
    "ModelOutput",
    "extract_json_from_response",
    "get_nested_value",
    "is_candidate_list",
    "find_body_with_candidates",
    "locate_body",
    "decode_candidates",
    "parse_model_output",
]
