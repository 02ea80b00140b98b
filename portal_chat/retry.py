from __future__ import annotations

import math
import re
from decimal import Decimal
from typing import Any, Iterator, List, Optional


RETRY_INFO_TYPE = "type.googleapis.com/google.rpc.RetryInfo"

_DURATION_RE = re.compile(r"^(\d+(?:\.\d+)?)s$", re.IGNORECASE)

# Attributes on provider errors where a structured detail list may live
_DETAIL_ATTRS = ("error_details", "details", "response_json", "body")


def iter_error_chain(err: Any, limit: int = 5) -> Iterator[Any]:
    """Yield ``err`` followed by its causes (``__cause__`` or ``__context__``)."""
    seen: List[int] = []
    current = err
    while current is not None and len(seen) < limit and id(current) not in seen:
        seen.append(id(current))
        yield current
        current = getattr(current, "__cause__", None) or getattr(current, "__context__", None)


def _detail_lists(err: Any) -> Iterator[list]:
    candidates = [getattr(err, attr, None) for attr in _DETAIL_ATTRS]
    if isinstance(err, dict):
        candidates.append(err)
    for value in candidates:
        if isinstance(value, list):
            yield value
        elif isinstance(value, dict):
            nested = value.get("details")
            if not isinstance(nested, list):
                inner = value.get("error")
                nested = inner.get("details") if isinstance(inner, dict) else None
            if isinstance(nested, list):
                yield nested


def duration_to_ms(value: str) -> Optional[int]:
    match = _DURATION_RE.match(value.strip())
    if not match:
        return None
    return math.ceil(Decimal(match.group(1)) * 1000)


def parse_retry_delay_ms(err: Any) -> Optional[int]:
    """Return the provider-requested retry delay in milliseconds, or None.

    Looks for a ``google.rpc.RetryInfo`` entry such as
    ``{"@type": RETRY_INFO_TYPE, "retryDelay": "32s"}`` in the known detail
    locations of ``err`` and its causes. The first retry-info entry with a
    well-formed duration wins. Malformed payloads are treated as "no delay".
    """
    try:
        for link in iter_error_chain(err):
            for details in _detail_lists(link):
                for entry in details:
                    if not isinstance(entry, dict):
                        continue
                    delay = entry.get("retryDelay")
                    if entry.get("@type") != RETRY_INFO_TYPE or not isinstance(delay, str):
                        continue
                    ms = duration_to_ms(delay)
                    if ms is not None:
                        return ms
    except Exception:
        return None
    return None
