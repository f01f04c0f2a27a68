"""
Account-level eligibility for a matching run.

Only per-member checks live here (onboarding, pause, open pairings, weekly
quota). Partner-dependent constraints such as cooldown, modality and distance are
applied by the matcher.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Dict, Iterable, List, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .config import MatchingConfig
from .data_models import Candidate, CandidateSnapshot, EligibilityFacts, PriorPairing

logger = logging.getLogger(__name__)

_DEFAULT_CONFIG = MatchingConfig()

REASON_MISSING_FACTS = "missing_facts"
REASON_NOT_ONBOARDED = "not_onboarded"
REASON_PAUSED = "paused"
REASON_OPEN_PAIRING = "open_pairing"
REASON_QUOTA = "weekly_quota_reached"


@dataclass
class EligibilityReport:
    eligible: List[Candidate] = field(default_factory=list)
    excluded: Dict[str, str] = field(default_factory=dict)

    @property
    def eligible_ids(self) -> List[str]:
        return [c.id for c in self.eligible]


def weekly_quota(facts: EligibilityFacts, config: Optional[MatchingConfig] = None) -> int:
    config = config or _DEFAULT_CONFIG
    return config.weekly_quota_elevated if facts.has_elevated_quota else config.weekly_quota_free


def exclusion_reason(facts: Optional[EligibilityFacts], config: Optional[MatchingConfig] = None) -> Optional[str]:
    """Return why a candidate is ineligible, or None if they may be paired this run.

    Missing or partial facts exclude the candidate: an unknown pending-pairing
    status must never risk a duplicate pairing.
    """
    if facts is None or not facts.complete:
        return REASON_MISSING_FACTS
    if not facts.onboarded:
        return REASON_NOT_ONBOARDED
    if facts.paused:
        return REASON_PAUSED
    if facts.has_open_pairing:
        return REASON_OPEN_PAIRING
    if facts.weekly_pairings >= weekly_quota(facts, config):
        return REASON_QUOTA
    return None


def is_eligible(facts: Optional[EligibilityFacts], config: Optional[MatchingConfig] = None) -> bool:
    return exclusion_reason(facts, config) is None


def filter_eligible(snapshot: CandidateSnapshot, config: Optional[MatchingConfig] = None) -> EligibilityReport:
    report = EligibilityReport()
    for candidate in snapshot.candidates:
        reason = exclusion_reason(snapshot.facts.get(candidate.id), config)
        if reason is None:
            report.eligible.append(candidate)
            continue
        report.excluded[candidate.id] = reason
        if reason == REASON_MISSING_FACTS:
            logger.warning("Excluding %s: eligibility facts unavailable", candidate.id)
        else:
            logger.debug("Excluding %s: %s", candidate.id, reason)
    logger.info(
        "Eligibility for %s: %d eligible, %d excluded",
        snapshot.locale,
        len(report.eligible),
        len(report.excluded),
    )
    return report


def resolve_zone(tz: str) -> ZoneInfo:
    try:
        return ZoneInfo(tz)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Unknown timezone %r, falling back to UTC", tz)
        return ZoneInfo("UTC")


def week_start(now: datetime, tz: str = "UTC") -> datetime:
    """Monday 00:00 of the week containing ``now``, in the ``tz`` zone."""
    local = now.astimezone(resolve_zone(tz))
    monday = local - timedelta(days=local.weekday())
    return monday.replace(hour=0, minute=0, second=0, microsecond=0)


def facts_from_history(
    candidate_id: str,
    history: Iterable[PriorPairing],
    now: datetime,
    tz: str = "UTC",
    onboarded: bool = True,
    paused: bool = False,
    has_elevated_quota: bool = False,
) -> EligibilityFacts:
    """Derive weekly count and open-pairing status from raw pairing history."""
    start = week_start(now, tz)
    mine = [p for p in history if p.involves(candidate_id)]
    return EligibilityFacts(
        onboarded=onboarded,
        paused=paused,
        weekly_pairings=sum(1 for p in mine if p.created_at >= start),
        has_elevated_quota=has_elevated_quota,
        has_open_pairing=any(p.status.is_open for p in mine),
    )
