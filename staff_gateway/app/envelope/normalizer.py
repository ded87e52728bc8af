"""
Unwraps the backend response envelope.

The backend wraps every payload as
``{success, message, data?, meta?, timestamp, path, method, statusCode}``.
Callers only see ``data``, or ``{data, meta}`` for paginated lists.
"""

from typing import Any


def is_paginated(body: Any) -> bool:
    """Whether an envelope carries pagination metadata."""
    return isinstance(body, dict) and "data" in body and "meta" in body


def normalize_envelope(body: Any) -> Any:
    """Return the caller-visible payload of a successful response body.

    Bodies that are not objects, or have no ``data`` key, pass through unchanged.
    """
    if not isinstance(body, dict) or "data" not in body:
        return body

    if "meta" in body:
        return {"data": body["data"], "meta": body["meta"]}

    return body["data"]
