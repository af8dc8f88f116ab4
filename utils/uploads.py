"""
Helpers for stored upload references.

Image columns may hold absolute URLs captured from an older host; they are
rewritten to the host-independent ``/uploads/<name>`` form on the way out.
"""

from __future__ import annotations

import re
from typing import Any, Dict, Iterable, List, Optional

_ABSOLUTE_UPLOAD = re.compile(r"^https?://[^/]+(/uploads/.*)$", re.IGNORECASE)


def to_relative_upload_path(value: Optional[str]) -> Optional[str]:
    if not value:
        return value
    trimmed = value.strip()
    if not trimmed:
        return None

    match = _ABSOLUTE_UPLOAD.match(trimmed)
    if match:
        return match.group(1)
    if trimmed.startswith("/uploads/"):
        return trimmed
    if trimmed.startswith("uploads/"):
        return "/" + trimmed
    return trimmed


def normalize_upload_fields(entity: Dict[str, Any], fields: Iterable[str]) -> Dict[str, Any]:
    """Rewrite the named keys of ``entity`` in place and return it."""
    for field in fields:
        if field in entity and (entity[field] is None or isinstance(entity[field], str)):
            entity[field] = to_relative_upload_path(entity[field])
    return entity


def normalize_upload_collection(
    items: List[Dict[str, Any]],
    fields: Iterable[str],
) -> List[Dict[str, Any]]:
    fields = list(fields)
    for item in items:
        normalize_upload_fields(item, fields)
    return items
