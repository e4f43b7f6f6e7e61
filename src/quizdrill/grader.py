"""
Answer normalization and comparison.

Answers are option letters. Multi-select answers are comma-joined letters
and compare independent of order, case, spacing and duplicates:
"b, a" and "A,B" are the same answer.
"""

from __future__ import annotations

import re
from collections.abc import Iterable

_WHITESPACE = re.compile(r"\s+")


def normalize(answer: str | None) -> str:
    """Canonical form of an answer string. normalize(normalize(s)) == normalize(s)."""
    if answer is None:
        return ""
    text = _WHITESPACE.sub("", str(answer).upper())
    if "," in text:
        tokens = sorted({token for token in text.split(",") if token})
        return ",".join(tokens)
    return text


def is_correct(user_answer: str | None, correct_answer: str | None) -> bool:
    """True when both answers are present and normalize to the same value."""
    user = normalize(user_answer)
    correct = normalize(correct_answer)
    if not user or not correct:
        return False
    return user == correct


def join_choices(choices: Iterable[str]) -> str:
    """Canonical answer for a set of selected letters, e.g. ["c", "a"] -> "A,C"."""
    return normalize(",".join(choices) + ",")
