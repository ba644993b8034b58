"""Connection-strength scale conversions.

Contacts store strength on a 0-100 scale. Connection paths carry strength in
[0,1], which is also what the network-graph provider reports. Every crossing
between the two goes through this module.
"""
from __future__ import annotations

import math
from typing import Optional


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def graph_to_contact(strength: float) -> float:
    """Provider [0,1] -> stored 0-100."""
    return float(round_half_up(clamp(strength, 0.0, 1.0) * 100))


def contact_to_path(strength: Optional[float]) -> float:
    """Stored 0-100 -> path [0,1]. A contact with no observed strength contributes 0."""
    if strength is None:
        return 0.0
    return clamp(strength, 0.0, 100.0) / 100.0


def ai_path_strength(relevance_score: float, contact_strength: Optional[float]) -> float:
    """Synthetic path strength for an AI match: relevance (0-100) times tie strength (0-100), in [0,1]."""
    relevance = clamp(relevance_score, 0.0, 100.0) / 100.0
    return relevance * contact_to_path(contact_strength)
