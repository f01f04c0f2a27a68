"""
Reciprocal greedy matcher.

For every bucket it will:

- Drop pairs that fail the hard constraints (modality, location radius)
- Drop pairs that were already paired within the cooldown window
- Score the surviving pairs in both directions
- Sort them by average score (ties by candidate ids) and walk the list,
  accepting a pair only when both candidates are still free and each one is in
  the other's top-N preference list

Scoring of different buckets runs in a thread pool since it only reads the
snapshot. The greedy walk runs afterwards, one bucket at a time in key order,
against a single matched set, so a BOTH-mode candidate can never be paired in
two buckets. This is a heuristic, not a maximum-weight or stable matching: a pair
rejected by the reciprocity gate is skipped without backtracking.
"""
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Dict, Iterable, List, Mapping, Optional, Set, Tuple

from .bucketing import IN_PERSON, BucketKey
from .config import MatchingConfig
from .data_models import Candidate, Mode, PriorPairing
from .matching_models import PairScore
from .scoring import haversine_km, pair_radius_km, score_both_directions

logger = logging.getLogger(__name__)

_DEFAULT_CONFIG = MatchingConfig()


def pair_key(user_id1: str, user_id2: str) -> Tuple[str, str]:
    """Canonical, order-independent key for a pair of candidates."""
    a, b = sorted((user_id1, user_id2))
    return a, b


class CooldownIndex:
    """Answers whether two candidates were paired within the cooldown window."""

    def __init__(self, history: Iterable[PriorPairing], now: datetime, cooldown_weeks: int):
        self.cutoff = now - timedelta(weeks=cooldown_weeks)
        self._latest: Dict[Tuple[str, str], datetime] = {}
        for p in history:
            k = pair_key(p.user_a_id, p.user_b_id)
            if k not in self._latest or p.created_at > self._latest[k]:
                self._latest[k] = p.created_at

    def last_paired(self, user_id1: str, user_id2: str) -> Optional[datetime]:
        return self._latest.get(pair_key(user_id1, user_id2))

    def blocks(self, user_id1: str, user_id2: str) -> bool:
        last = self.last_paired(user_id1, user_id2)
        return last is not None and last >= self.cutoff


def modes_compatible(a: Candidate, b: Candidate) -> bool:
    return {a.mode, b.mode} != {Mode.ONLINE, Mode.IN_PERSON}


def passes_hard_constraints(a: Candidate, b: Candidate, config: Optional[MatchingConfig] = None) -> bool:
    """Modality compatibility and, when both could meet in person, location radius."""
    config = config or _DEFAULT_CONFIG
    if a.id == b.id or not modes_compatible(a, b):
        return False
    if a.in_person_relevant and b.in_person_relevant:
        if a.city is None or b.city is None:
            return False
        if haversine_km(a.city, b.city) > pair_radius_km(a, b, config.default_radius_km):
            return False
    return True


def resolve_meeting_mode(a: Candidate, b: Candidate, channel: str) -> Mode:
    if Mode.ONLINE in (a.mode, b.mode):
        return Mode.ONLINE
    if Mode.IN_PERSON in (a.mode, b.mode):
        return Mode.IN_PERSON
    return Mode.IN_PERSON if channel == IN_PERSON else Mode.ONLINE


@dataclass(frozen=True)
class ScoredPair:
    a: Candidate
    b: Candidate
    a_to_b: PairScore
    b_to_a: PairScore

    @property
    def avg_score(self) -> float:
        return (self.a_to_b.score + self.b_to_a.score) / 2.0

    @property
    def ids(self) -> Tuple[str, str]:
        return self.a.id, self.b.id


@dataclass
class BucketPlan:
    key: BucketKey
    pairs: List[ScoredPair] = field(default_factory=list)
    rejected_hard: int = 0
    rejected_cooldown: int = 0


def _sort_key(pair: ScoredPair) -> Tuple[float, str, str]:
    return (-pair.avg_score, pair.a.id, pair.b.id)


def score_bucket(
    key: BucketKey,
    members: List[Candidate],
    cooldown: CooldownIndex,
    config: Optional[MatchingConfig] = None,
) -> BucketPlan:
    """Apply hard and cooldown constraints, then score surviving pairs in both directions."""
    config = config or _DEFAULT_CONFIG
    ordered = sorted(members, key=lambda c: c.id)
    plan = BucketPlan(key=key)
    for i, a in enumerate(ordered):
        for b in ordered[i + 1:]:
            if not passes_hard_constraints(a, b, config):
                plan.rejected_hard += 1
                continue
            if cooldown.blocks(a.id, b.id):
                plan.rejected_cooldown += 1
                continue
            a_to_b, b_to_a = score_both_directions(a, b, config)
            plan.pairs.append(ScoredPair(a=a, b=b, a_to_b=a_to_b, b_to_a=b_to_a))
    plan.pairs.sort(key=_sort_key)
    logger.debug(
        "Scored bucket %s: %d candidates, %d pairs (%d hard-rejected, %d in cooldown)",
        key,
        len(ordered),
        len(plan.pairs),
        plan.rejected_hard,
        plan.rejected_cooldown,
    )
    return plan


def preference_lists(pairs: Iterable[ScoredPair], top_n: int) -> Dict[str, Set[str]]:
    """Each candidate's top-N partners, ranked by that candidate's own directional score."""
    ranked: Dict[str, List[Tuple[float, str]]] = {}
    for p in pairs:
        ranked.setdefault(p.a.id, []).append((p.a_to_b.score, p.b.id))
        ranked.setdefault(p.b.id, []).append((p.b_to_a.score, p.a.id))
    return {
        cid: {pid for _, pid in sorted(entries, key=lambda e: (-e[0], e[1]))[:top_n]}
        for cid, entries in ranked.items()
    }


def is_reciprocal(pair: ScoredPair, preferences: Mapping[str, Set[str]]) -> bool:
    return pair.b.id in preferences.get(pair.a.id, set()) and pair.a.id in preferences.get(pair.b.id, set())


def assign_bucket(
    plan: BucketPlan,
    matched: Set[str],
    config: Optional[MatchingConfig] = None,
) -> List[ScoredPair]:
    """Greedy walk over a scored bucket. Mutates ``matched`` with accepted candidates.

    Pairs touching candidates already matched in earlier buckets are removed
    before preference lists are built, so they neither match nor crowd anyone's
    top-N.
    """
    config = config or _DEFAULT_CONFIG
    open_pairs = [p for p in plan.pairs if p.a.id not in matched and p.b.id not in matched]
    preferences = preference_lists(open_pairs, config.mutual_top_n)

    accepted: List[ScoredPair] = []
    skipped = 0
    for pair in open_pairs:
        if pair.a.id in matched or pair.b.id in matched:
            continue
        if not is_reciprocal(pair, preferences):
            skipped += 1
            continue
        accepted.append(pair)
        matched.add(pair.a.id)
        matched.add(pair.b.id)

    logger.info(
        "Bucket %s: %d pairs accepted, %d failed reciprocity",
        plan.key,
        len(accepted),
        skipped,
    )
    return accepted


def match_buckets(
    buckets: Mapping[BucketKey, List[Candidate]],
    cooldown: CooldownIndex,
    config: Optional[MatchingConfig] = None,
    matched: Optional[Set[str]] = None,
) -> List[Tuple[BucketKey, ScoredPair]]:
    """Score all buckets in parallel, then assign them sequentially in key order."""
    config = config or _DEFAULT_CONFIG
    matched = set() if matched is None else matched
    keys = sorted(buckets)
    if not keys:
        return []

    with ThreadPoolExecutor(max_workers=config.max_workers) as pool:
        plans = list(pool.map(lambda k: score_bucket(k, buckets[k], cooldown, config), keys))

    results: List[Tuple[BucketKey, ScoredPair]] = []
    for plan in plans:
        for pair in assign_bucket(plan, matched, config):
            results.append((plan.key, pair))
    return results


