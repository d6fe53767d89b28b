"""Turn one raw text frame into an ordered batch of request items."""

from __future__ import annotations

import json
from typing import Any

from loguru import logger

from emitrpc.rpc.messages import (
    INVALID_ITEM,
    PARSE_FAILURE,
    Batch,
    ParsedItem,
    ParseFailure,
    Request,
)


def parse_frame(text: str | bytes) -> Batch | ParseFailure:
    """
    Parse a text frame into a batch.

    A JSON array yields one item per element; any other JSON value is
    treated as a one-element batch. Malformed elements become InvalidItem
    markers without affecting their siblings. Invalid JSON yields
    PARSE_FAILURE.
    """
    try:
        payload = json.loads(text)
    except (json.JSONDecodeError, UnicodeDecodeError, TypeError) as e:
        logger.debug("Malformed JSON-RPC frame: {}", e)
        return PARSE_FAILURE

    candidates = payload if isinstance(payload, list) else [payload]
    return [parse_item(candidate) for candidate in candidates]


def parse_item(candidate: Any) -> ParsedItem:
    """Validate one decoded candidate; returns INVALID_ITEM when it is not request-shaped."""
    if not isinstance(candidate, dict):
        return INVALID_ITEM

    method = candidate.get("method")
    if not isinstance(method, str) or not method:
        return INVALID_ITEM

    params = candidate.get("params")
    if params is None:
        params = []
    elif not isinstance(params, list):
        return INVALID_ITEM

    request_id = candidate.get("id")
    if not _is_valid_id(request_id):
        return INVALID_ITEM

    return Request.build(method, request_id, params)


def _is_valid_id(value: Any) -> bool:
    if value is None:
        return True
    # bool is an int subclass but not a valid id
    if isinstance(value, bool):
        return False
    return isinstance(value, (str, int, float))
