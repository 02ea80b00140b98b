"""Best-effort field extraction from free-text chatbot messages.

Each field has an ordered tuple of strategies. A strategy returns a value or
None; the first non-None value wins. Extraction never raises: whatever cannot
be recognized stays None and the caller decides whether that is fatal.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, Optional, Sequence


Strategy = Callable[[str], Optional[str]]

KNOWN_SUBJECT_CODES = (
    "DSA", "DBMS", "OS", "CN", "TOC", "DAA", "OOPS", "COA",
    "SE", "CD", "AI", "ML", "DS", "CG", "MATHS", "PHYSICS", "CHEMISTRY",
)

_EXAM_KEYWORDS = {"mid", "internal", "end", "endsem", "sem", "exam", "summary"}

_ROLL_RE = re.compile(r"(?<!\d)(\d{2}[A-Za-z]{2,6}\d{3,4})")
_FILLER_RE = re.compile(
    r"\s+(?:for|in|please|roll|mid|internal|end|endsem|exam|marks|paper|with|from|on)\b.*$",
    re.IGNORECASE,
)
_SUBJECT_CODE_RE = re.compile(
    r"\b(" + "|".join(KNOWN_SUBJECT_CODES) + r")\b", re.IGNORECASE
)
_MID_RE = re.compile(r"\bmid(?:[\s_-]*(?:sem|term))?[\s_-]*([1-9])\b", re.IGNORECASE)
_INTERNAL_RE = re.compile(r"\binternals?[\s_-]*([1-9])\b", re.IGNORECASE)
_END_RE = re.compile(r"\bend(?:[\s_-]*sem(?:ester)?)?\b", re.IGNORECASE)

END_SEM_LABEL = "End-Sem"


@dataclass(frozen=True)
class ExtractedQuery:
    roll_no: Optional[str] = None
    subject_name: Optional[str] = None
    exam_name: Optional[str] = None


def roll_number(text: str) -> Optional[str]:
    match = _ROLL_RE.search(text)
    return match.group(1).upper() if match else None


def labelled_subject(label: str) -> Strategy:
    pattern = re.compile(
        r"\b" + label + r"\s*[:-]?\s*([A-Za-z&][A-Za-z& ]{1,24})", re.IGNORECASE
    )

    def strategy(text: str) -> Optional[str]:
        match = pattern.search(text)
        if not match:
            return None
        value = _FILLER_RE.sub("", match.group(1)).strip()
        if len(value) < 2 or value.lower() in _EXAM_KEYWORDS:
            return None
        return value

    return strategy


def known_subject_code(text: str) -> Optional[str]:
    match = _SUBJECT_CODE_RE.search(text)
    return match.group(1).upper() if match else None


def mid_exam(text: str) -> Optional[str]:
    match = _MID_RE.search(text)
    return f"Mid-{match.group(1)}" if match else None


def internal_exam(text: str) -> Optional[str]:
    match = _INTERNAL_RE.search(text)
    return f"Internal-{match.group(1)}" if match else None


def end_exam(text: str) -> Optional[str]:
    return END_SEM_LABEL if _END_RE.search(text) else None


def _first_match(strategies: Sequence[Strategy], text: str) -> Optional[str]:
    for strategy in strategies:
        value = strategy(text)
        if value:
            return value
    return None


class QueryExtractor:
    roll_strategies: Sequence[Strategy] = (roll_number,)
    subject_strategies: Sequence[Strategy] = (
        labelled_subject("subject"),
        labelled_subject("exam"),
        known_subject_code,
    )
    exam_strategies: Sequence[Strategy] = (mid_exam, internal_exam, end_exam)

    def extract(self, text: Optional[str]) -> ExtractedQuery:
        if not isinstance(text, str) or not text.strip():
            return ExtractedQuery()
        return ExtractedQuery(
            roll_no=_first_match(self.roll_strategies, text),
            subject_name=_first_match(self.subject_strategies, text),
            exam_name=_first_match(self.exam_strategies, text),
        )


def extract_query(text: Optional[str]) -> ExtractedQuery:
    return QueryExtractor().extract(text)
