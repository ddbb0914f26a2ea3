"""Normalize raw model output into validated category results.

Models frequently wrap JSON in markdown code fences or add preamble text.
The normalizer strips fences, locates the first bracket-balanced JSON value
that parses (skipping bracketed preamble), never repairs it, and accepts exactly
three shapes:

1. a list of categories
2. an object with a ``categories`` list
3. an object whose ``categories`` is a single category object

Individual malformed entries are skipped; anything else raises.
"""

import json
import logging
import re
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from mapmygap.errors import MalformedResponseError, UnrecognizedStructureError
from mapmygap.models.analysis import CategoryResult, ControlResult

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"```[a-zA-Z]*[ \t]*\n?|```")

_CLOSERS = {"{": "}", "[": "]"}


def strip_code_fences(text: str) -> str:
    """Remove every markdown code fence marker, keeping the fenced content."""
    return _FENCE_RE.sub("", text).strip()


def _match_brackets(text: str, start: int, ends: dict[int, int]) -> None:
    """Scan from the opener at ``start``, recording where each opener closes.

    Brackets inside string literals (including escaped quotes) are ignored.
    Openers left unclosed by a mismatch or the end of text map to -1.
    """
    stack: list[int] = []
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        ch = text[i]
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
        elif ch in _CLOSERS:
            stack.append(i)
        elif ch in ("}", "]"):
            if _CLOSERS[text[stack[-1]]] != ch:
                break
            ends[stack.pop()] = i + 1
            if not stack:
                return
    for pos in stack:
        ends[pos] = -1


def _decode_first(text: str) -> tuple[str | None, Any, json.JSONDecodeError | None]:
    """Return the first bracketed span of ``text`` that parses as JSON.

    An opener that never balances is passed over. A balanced span that is not
    valid JSON is skipped whole, so fragments nested inside it are not tried.
    Returns ``(span, value, last_error)``; ``span`` is None when nothing parses.
    """
    ends: dict[int, int] = {}
    error = None
    i = 0
    while i < len(text):
        if text[i] not in _CLOSERS:
            i += 1
            continue
        if i not in ends:
            _match_brackets(text, i, ends)
        end = ends[i]
        if end < 0:
            i += 1
            continue
        span = text[i:end]
        try:
            return span, json.loads(span), None
        except json.JSONDecodeError as e:
            error = e
            i = end
    return None, None, error


def find_json_span(text: str) -> str | None:
    """Return the first balanced JSON object or array in ``text`` that parses.

    Bracketed preamble such as ``Analysis for [NIST_CSF]:`` is passed over.
    """
    span, _, _ = _decode_first(text)
    return span


def parse_model_json(text: str) -> Any:
    """Extract and parse the first JSON value from a model response.

    Raises:
        MalformedResponseError: No balanced JSON value, or none that parses.
    """
    span, value, error = _decode_first(strip_code_fences(text or ""))
    if span is not None:
        return value
    if error is not None:
        raise MalformedResponseError(f"AI response is not valid JSON: {error}") from error
    raise MalformedResponseError("No JSON object found in AI response")


def _category_list(data: Any) -> list:
    if isinstance(data, list):
        return data
    if isinstance(data, dict) and "categories" in data:
        categories = data["categories"]
        if isinstance(categories, list):
            return categories
        if isinstance(categories, dict):
            return [categories]
    raise UnrecognizedStructureError(
        f"Expected a categories list, got {type(data).__name__}"
    )


def _error_summary(error: PydanticValidationError) -> str:
    """One line per failing field, e.g. ``id: Field required``."""
    return "; ".join(
        f"{'.'.join(str(p) for p in err['loc']) or 'entry'}: {err['msg']}"
        for err in error.errors()
    )


def _normalize_category(raw: Any) -> CategoryResult | None:
    if not isinstance(raw, dict):
        logger.warning(f"Skipping category entry of type {type(raw).__name__}")
        return None
    results = raw.get("results")
    if not isinstance(results, list):
        logger.warning(f"Skipping category {raw.get('name')!r}: no results list")
        return None

    controls = []
    for entry in results:
        if not isinstance(entry, dict):
            continue
        try:
            controls.append(ControlResult.model_validate(entry))
        except PydanticValidationError as e:
            logger.warning(
                f"Skipping control {entry.get('id')!r} in {raw.get('name')!r}: "
                f"{_error_summary(e)}"
            )

    return CategoryResult(
        name=str(raw.get("name") or ""),
        description=str(raw.get("description") or ""),
        results=controls,
    )


def normalize_categories(data: Any) -> list[CategoryResult]:
    """Normalize an already-parsed JSON value into category results."""
    categories = []
    for raw in _category_list(data):
        category = _normalize_category(raw)
        if category is not None:
            categories.append(category)
    return categories


def normalize_response(text: str) -> list[CategoryResult]:
    """Parse raw model text into category results.

    Raises:
        MalformedResponseError: Text holds no parseable JSON.
        UnrecognizedStructureError: JSON is not one of the accepted shapes.
    """
    categories = normalize_categories(parse_model_json(text))
    logger.info(
        f"Normalized {len(categories)} categories, "
        f"{sum(len(c.results) for c in categories)} controls"
    )
    return categories
