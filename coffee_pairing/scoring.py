from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional, Tuple

import numpy as np
from sklearn.metrics.pairwise import haversine_distances

from .availability import overlap_minutes, same_day_slot_pairs
from .config import (
    COMPONENTS,
    DEFAULT_RADIUS_KM,
    EARTH_RADIUS_KM,
    GOAL_COMPATIBILITY,
    INDUSTRY_PROXIMITY,
    PROFESSION_RELATIONS,
    TOP_K_CANDIDATES,
    MatchingConfig,
)
from .data_models import Candidate, CandidateSnapshot, City, Mode
from .matching_models import PairScore

logger = logging.getLogger(__name__)

# Overlap length (minutes) at which a slot pair counts as fully compatible.
FULL_OVERLAP_MINUTES = 120

_DEFAULT_CONFIG = MatchingConfig()


def _jaccard(a: Iterable[str], b: Iterable[str]) -> float:
    sa, sb = set(a), set(b)
    union = sa | sb
    if not union:
        return 0.0
    return len(sa & sb) / len(union)


def haversine_km(city_a: City, city_b: City) -> float:
    coords = np.radians(
        np.array(
            [[city_a.latitude, city_a.longitude], [city_b.latitude, city_b.longitude]],
            dtype=float,
        )
    )
    return float(haversine_distances(coords)[0, 1] * EARTH_RADIUS_KM)


def pair_radius_km(a: Candidate, b: Candidate, default_km: float = DEFAULT_RADIUS_KM) -> float:
    """Permitted meeting radius: the tighter of the two, unset radii default to ``default_km``."""
    return min(a.radius_km or default_km, b.radius_km or default_km)


def topics_similarity(a: Candidate, b: Candidate) -> float:
    return _jaccard((t.lower() for t in a.topics), (t.lower() for t in b.topics))


def industry_similarity(a: Candidate, b: Candidate) -> float:
    best = 0.0
    for ind_a in a.industries:
        for ind_b in b.industries:
            if ind_a == ind_b:
                return 1.0
            if ind_b in INDUSTRY_PROXIMITY.get(ind_a, ()) or ind_a in INDUSTRY_PROXIMITY.get(ind_b, ()):
                best = 0.7
    return best


def profession_similarity(a: Candidate, b: Candidate) -> float:
    if not a.profession or not b.profession:
        return 0.5  # neutral if missing
    if a.profession == b.profession:
        return 1.0
    if b.profession in PROFESSION_RELATIONS.get(a.profession, ()) or a.profession in PROFESSION_RELATIONS.get(
        b.profession, ()
    ):
        return 0.8
    return 0.3


def goal_compatibility(a: Candidate, b: Candidate) -> float:
    """Shared goal -> 1.0, goal listed compatible for ``a`` -> 0.8, otherwise 0.4.

    The compatibility table is keyed by the scoring candidate's goals, so this is
    the one component that can differ between the two directions.
    """
    goals_b = set(b.goals)
    if goals_b.intersection(a.goals):
        return 1.0
    for goal_a in a.goals:
        compatible = GOAL_COMPATIBILITY.get(goal_a.value, ())
        if any(goal_b.value in compatible for goal_b in goals_b):
            return 0.8
    return 0.4


def seniority_fit(a: Candidate, b: Candidate) -> float:
    gap = abs(a.seniority.rank - b.seniority.rank)
    return {0: 1.0, 1: 0.9, 2: 0.7, 3: 0.5}.get(gap, 0.3)


def availability_overlap(a: Candidate, b: Candidate) -> float:
    if not a.availability or not b.availability:
        return 0.7  # neutral if availability not set
    total, pairs = 0.0, 0
    for slot_a, slot_b in same_day_slot_pairs(a.availability, b.availability):
        pairs += 1
        total += min(overlap_minutes(slot_a, slot_b) / FULL_OVERLAP_MINUTES, 1.0)
    return total / pairs if pairs else 0.7


def distance_penalty(a: Candidate, b: Candidate, default_radius_km: float = DEFAULT_RADIUS_KM) -> float:
    if a.mode == Mode.ONLINE or b.mode == Mode.ONLINE:
        return 1.0
    if a.city is None or b.city is None:
        return 0.5
    distance = haversine_km(a.city, b.city)
    radius = pair_radius_km(a, b, default_radius_km)
    if distance <= radius:
        return 1.0 - (distance / radius) * 0.3
    return 0.1


def diversity_boost(a: Candidate, b: Candidate) -> float:
    score = 0.5
    if a.company and b.company and a.company != b.company:
        score += 0.3
    if not a.industries & b.industries:
        score += 0.2
    return min(score, 1.0)


def component_values(a: Candidate, b: Candidate, config: Optional[MatchingConfig] = None) -> Dict[str, float]:
    config = config or _DEFAULT_CONFIG
    return {
        "topics": topics_similarity(a, b),
        "industry": industry_similarity(a, b),
        "profession": profession_similarity(a, b),
        "goal": goal_compatibility(a, b),
        "seniority": seniority_fit(a, b),
        "availability": availability_overlap(a, b),
        "distance": distance_penalty(a, b, config.default_radius_km),
        "diversity": diversity_boost(a, b),
    }


def vibe_multipliers(a: Candidate, b: Candidate, config: Optional[MatchingConfig] = None) -> Dict[str, float]:
    """Per-component mean of the two candidates' vibe adjustments."""
    config = config or _DEFAULT_CONFIG
    adj_a = config.vibe_weight_adjustments[a.vibe.value]
    adj_b = config.vibe_weight_adjustments[b.vibe.value]
    return {c: (adj_a[c] + adj_b[c]) / 2.0 for c in COMPONENTS}


def score_pair(a: Candidate, b: Candidate, config: Optional[MatchingConfig] = None) -> PairScore:
    """Score ``b`` as a partner for ``a``.

    Each component in [0, 1] is scaled by its base weight and by the mean vibe
    multiplier of both candidates; the sum is clamped to [0, 1].
    """
    config = config or _DEFAULT_CONFIG
    components = component_values(a, b, config)
    multipliers = vibe_multipliers(a, b, config)
    weights = config.weights.as_dict()
    contributions = {
        c: components[c] * multipliers[c] * weights[c] for c in COMPONENTS
    }
    total = float(np.clip(sum(contributions.values()), 0.0, 1.0))
    return PairScore(
        from_id=a.id,
        to_id=b.id,
        score=total,
        components=components,
        contributions=contributions,
    )


def score_both_directions(
    a: Candidate, b: Candidate, config: Optional[MatchingConfig] = None
) -> Tuple[PairScore, PairScore]:
    return score_pair(a, b, config), score_pair(b, a, config)


def top_k_for_candidate(
    snapshot: CandidateSnapshot,
    candidate_id: str,
    k: int = TOP_K_CANDIDATES,
    config: Optional[MatchingConfig] = None,
) -> List[PairScore]:
    """Return the ``k`` best-scoring partners for one candidate, with component scores.

    This is a recommendation view: it scores every other candidate in the
    snapshot and ignores eligibility, modality and cooldown constraints.
    """
    seeker = snapshot.candidate(candidate_id)
    scores = [score_pair(seeker, other, config) for other in snapshot.candidates if other.id != seeker.id]
    scores.sort(key=lambda s: (-s.score, s.to_id))
    return scores[:k]
