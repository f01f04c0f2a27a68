"""Run trigger for the batch matching engine.

``run_matching`` is the single entry point a scheduler calls once per locale:

1) fetch the locale's snapshot from the candidate source
2) keep account-level eligible candidates
3) partition them into buckets by modality and locale
4) score buckets and resolve pairs against one matched set
5) attach proposed meeting slots and hand each proposal to the publisher
"""
from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Callable, Dict, List, Optional, Sequence

from .availability import drop_short_slots, suggest_meeting_times
from .bucketing import BucketKey, bucket_candidates
from .config import MatchingConfig
from .data_models import CandidateSnapshot
from .eligibility import filter_eligible, resolve_zone
from .exceptions import CandidateSourceError, PairingEngineError
from .ingest import CandidateSource
from .matcher import CooldownIndex, ScoredPair, match_buckets, resolve_meeting_mode
from .matching_models import PairingProposal
from .publishers import PairingPublisher

logger = logging.getLogger(__name__)


def build_proposal(
    key: BucketKey,
    pair: ScoredPair,
    today: date,
    config: MatchingConfig,
) -> PairingProposal:
    """Turn an accepted pair into a proposal with suggested slots.

    Slot timezone labels come from the first candidate's profile.
    """
    suggestions = suggest_meeting_times(
        pair.a.availability,
        pair.b.availability,
        timezone=pair.a.timezone,
        today=today,
        min_duration_minutes=config.min_overlap_minutes,
        limit=config.max_suggestions,
    )
    return PairingProposal(
        user_a_id=pair.a.id,
        user_b_id=pair.b.id,
        score_a_to_b=pair.a_to_b.score,
        score_b_to_a=pair.b_to_a.score,
        avg_score=pair.avg_score,
        mode=resolve_meeting_mode(pair.a, pair.b, key.channel),
        bucket=str(key),
        proposed_slots=suggestions[: config.proposal_slots],
    )


def match_snapshot(
    snapshot: CandidateSnapshot,
    config: Optional[MatchingConfig] = None,
    now: Optional[datetime] = None,
) -> List[PairingProposal]:
    """Run the matching pipeline over an in-memory snapshot. Pure: no publishing.

    A naive ``now`` is taken to be UTC, like pairing timestamps in the snapshot.
    """
    config = config or MatchingConfig()
    now = now or snapshot.taken_at
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)

    report = filter_eligible(snapshot, config)
    if len(report.eligible) < 2:
        logger.info("Not enough eligible candidates for %s (%d)", snapshot.locale, len(report.eligible))
        return []

    eligible = [drop_short_slots(c, config.min_slot_minutes) for c in report.eligible]
    buckets = bucket_candidates(eligible)
    for key, members in buckets.items():
        logger.info("Bucket %s: %d candidates", key, len(members))

    cooldown = CooldownIndex(snapshot.history, now=now, cooldown_weeks=config.cooldown_weeks)
    today = now.astimezone(resolve_zone(snapshot.locale)).date()
    return [build_proposal(key, pair, today, config) for key, pair in match_buckets(buckets, cooldown, config)]


def run_matching(
    locale: str,
    source: CandidateSource,
    publisher: Optional[PairingPublisher] = None,
    config: Optional[MatchingConfig] = None,
    now: Optional[datetime] = None,
) -> List[PairingProposal]:
    """Produce pairing proposals for one locale.

    Args:
        locale: Locale tag (an IANA timezone such as ``Europe/Berlin``).
        source: Provider of the candidate snapshot for ``locale``.
        publisher: Optional sink; each proposal is handed over once. Publisher
            failures are logged and not retried.
        config: Matching configuration; defaults to the reference constants.
        now: Reference time for cooldown and slot dates; defaults to the
            snapshot timestamp.

    Returns:
        The proposals created in this run.

    Raises:
        CandidateSourceError: If the snapshot for ``locale`` cannot be fetched.
    """
    config = config or MatchingConfig()
    started = time.monotonic()
    logger.info("Starting matching run for %s", locale)

    try:
        snapshot = source.fetch(locale)
    except CandidateSourceError:
        raise
    except Exception as e:
        raise CandidateSourceError(locale, f"candidate fetch failed: {e}") from e

    proposals = match_snapshot(snapshot, config=config, now=now)

    if publisher is not None:
        for proposal in proposals:
            try:
                publisher.publish(proposal)
            except Exception:
                logger.exception("Publisher failed for %s <-> %s", proposal.user_a_id, proposal.user_b_id)

    logger.info(
        "Matching run for %s finished: %d proposals in %.2fs",
        locale,
        len(proposals),
        time.monotonic() - started,
    )
    return proposals


@dataclass
class LocaleRunResult:
    locale: str
    proposals: List[PairingProposal] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def run_all_locales(
    locales: Sequence[str],
    source: CandidateSource,
    publisher_factory: Optional[Callable[[str], Optional[PairingPublisher]]] = None,
    config: Optional[MatchingConfig] = None,
    now: Optional[datetime] = None,
    max_workers: int = 2,
) -> Dict[str, LocaleRunResult]:
    """Run several locales concurrently; a failing locale does not affect the others."""
    config = config or MatchingConfig()

    def _run(locale: str) -> LocaleRunResult:
        try:
            publisher = publisher_factory(locale) if publisher_factory else None
            return LocaleRunResult(locale, run_matching(locale, source, publisher, config, now))
        except PairingEngineError as e:
            logger.error("Matching run for %s failed: %s", locale, e)
            return LocaleRunResult(locale, error=str(e))
        except Exception as e:
            logger.exception("Unexpected failure in matching run for %s", locale)
            return LocaleRunResult(locale, error=f"{type(e).__name__}: {e}")

    with ThreadPoolExecutor(max_workers=max_workers) as pool:
        results = list(pool.map(_run, locales))
    return {r.locale: r for r in results}
