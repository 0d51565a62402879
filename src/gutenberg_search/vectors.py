"""
Vector helpers shared by the in-memory store and result ranking.
"""

from __future__ import annotations

import json
from typing import Any, Sequence

import numpy as np


def coerce_embedding(value: Any) -> list[float] | None:
    """
    Normalize a stored embedding to a list of floats.

    Embeddings may come back from a store as a list/tuple or as a JSON-ish
    string such as ``"[0.1,0.2]"``. Returns None for missing or unparseable
    values.
    """
    if value is None:
        return None
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            parsed = json.loads(text)
        except json.JSONDecodeError:
            return None
        if not isinstance(parsed, list):
            return None
        value = parsed
    if isinstance(value, (list, tuple)):
        try:
            return [float(v) for v in value]
        except (TypeError, ValueError):
            return None
    return None


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine of the angle between two vectors; 0.0 for empty, mismatched or zero vectors."""
    left = np.asarray(a, dtype=np.float64)
    right = np.asarray(b, dtype=np.float64)
    if left.size == 0 or left.shape != right.shape:
        return 0.0
    left_norm = float(np.linalg.norm(left))
    right_norm = float(np.linalg.norm(right))
    if left_norm == 0.0 or right_norm == 0.0:
        return 0.0
    return float(np.dot(left, right) / (left_norm * right_norm))


def bounded_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine similarity clamped to [0, 1] for reporting."""
    return float(np.clip(cosine_similarity(a, b), 0.0, 1.0))
