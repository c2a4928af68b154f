"""Deterministic scoring helpers.

Shared by the Success Prediction Engine and the Recommendation Engine.

Rules
-----
- NO API calls
- NO DB access
- NO LLMs
- Pure deterministic math
- Every weight table sums to 1.0 (checked at import time)
"""

from __future__ import annotations

import math
import re
from typing import Iterable, Mapping

# Success prediction composite.
PREDICTION_WEIGHTS: dict[str, float] = {
    "market_timing": 0.25,
    "technical_feasibility": 0.25,
    "developer_match": 0.30,
    "funding_probability": 0.20,
}

# Recommendation ranking key.
RECOMMENDATION_WEIGHTS: dict[str, float] = {
    "collaborative": 0.4,
    "content": 0.4,
    "popularity": 0.2,
}

# Developer match composite (completion rate enters on its 0-1 scale).
DEVELOPER_MATCH_WEIGHTS: dict[str, float] = {
    "alignment": 0.4,
    "success_rate": 0.3,
    "completion_rate": 0.2,
    "specialization": 0.1,
}


def _check_weights(name: str, weights: Mapping[str, float]) -> None:
    total = sum(weights.values())
    if not math.isclose(total, 1.0, abs_tol=1e-9):
        raise ValueError(f"{name} must sum to 1.0, got {total}")


for _name, _weights in (
    ("PREDICTION_WEIGHTS", PREDICTION_WEIGHTS),
    ("RECOMMENDATION_WEIGHTS", RECOMMENDATION_WEIGHTS),
    ("DEVELOPER_MATCH_WEIGHTS", DEVELOPER_MATCH_WEIGHTS),
):
    _check_weights(_name, _weights)


def _clamp(value: float, lo: float = 0.0, hi: float = 100.0) -> float:
    """Clamp *value* to [lo, hi]."""
    return max(lo, min(hi, value))


def weighted_sum(values: Mapping[str, float], weights: Mapping[str, float]) -> float:
    """Sum of ``values[k] * weights[k]`` over the keys of *weights*.

    Missing values count as 0.
    """
    return sum(values.get(key, 0.0) * weight for key, weight in weights.items())


# ── Tech-stack term matching ────────────────────────────────────────────

_TOKEN_SPLIT = re.compile(r"[^a-z0-9]+")


def tech_matches(entry: str, term: str) -> bool:
    """Does tech-stack *entry* name the technology *term*?

    ``term`` matches when it equals one of the entry's alphanumeric
    tokens ("node.js" -> node, "machine learning" -> machine learning),
    or, for terms of 4+ characters, when the compacted entry starts with
    it ("reactjs" -> react, "next.js" -> nextjs).  Short terms such as
    "ai" or "ar" never match inside longer words.
    """
    entry = entry.lower().strip()
    term = term.lower().strip()
    if not entry or not term:
        return False
    tokens = [t for t in _TOKEN_SPLIT.split(entry) if t]
    term_tokens = [t for t in _TOKEN_SPLIT.split(term) if t]
    if not term_tokens:
        return False
    width = len(term_tokens)
    for i in range(len(tokens) - width + 1):
        if tokens[i : i + width] == term_tokens:
            return True
    compact_term = "".join(term_tokens)
    if len(compact_term) >= 4 and "".join(tokens).startswith(compact_term):
        return True
    return False


def count_matching(entries: Iterable[str], terms: Iterable[str]) -> int:
    """Number of *entries* that match at least one of *terms*."""
    term_list = list(terms)
    return sum(1 for entry in entries if any(tech_matches(entry, term) for term in term_list))
