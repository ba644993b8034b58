from __future__ import annotations

from typing import Iterable, List, Sequence

from models.ai_match import AIMatch
from models.connection_path import ConnectionPath, ConnectionScore
from models.contact import Contact
from models.prospect import Prospect
from services.strength import ai_path_strength, clamp, round_half_up


QUALITY_WEIGHT = 70
PER_PATH_BONUS = 5
MAX_PATH_BONUS = 30


def score_paths(paths: Sequence[ConnectionPath]) -> ConnectionScore:
    """Collapse strength-sorted paths into a 0-100 connection score.

    score = round(mean(strength) * 70 + min(len(paths) * 5, 30)), rounded
    half up and clipped to [0, 100]. ``best_path`` is ``paths[0]``, so
    callers pass paths already sorted strongest first.
    """
    if not paths:
        return ConnectionScore(score=0, best_path=None, path_count=0)
    avg_strength = sum(p.strength for p in paths) / len(paths)
    path_bonus = min(len(paths) * PER_PATH_BONUS, MAX_PATH_BONUS)
    raw = avg_strength * QUALITY_WEIGHT + path_bonus
    score = int(clamp(round_half_up(raw), 0, 100))
    return ConnectionScore(score=score, best_path=paths[0], path_count=len(paths))


def ai_match_to_path(match: AIMatch, contact: Contact, company_name: str | None = None) -> ConnectionPath:
    """Adapt one AI-proposed match into a synthetic single-hop path through the matched contact."""
    return ConnectionPath(
        connector_name=contact.full_name,
        connector_contact_id=contact.id,
        target_name=None,
        target_company=company_name,
        connection_type=match.match_type,
        strength=ai_path_strength(match.relevance_score, contact.connection_strength),
        shared_context=match.reasoning,
    )


def has_warm_intro(score: int, threshold: int) -> bool:
    return score >= threshold


def rank_prospects(prospects: Iterable[Prospect]) -> List[Prospect]:
    """Highest connection score first; ties by company name, then id."""
    return sorted(
        prospects,
        key=lambda p: (-p.connection_score, p.company_name.lower(), p.id if p.id is not None else 0),
    )
