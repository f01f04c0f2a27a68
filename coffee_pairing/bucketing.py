from __future__ import annotations

import logging
from typing import Dict, Iterable, List, NamedTuple

from .data_models import Candidate, Mode

logger = logging.getLogger(__name__)

ONLINE = "online"
IN_PERSON = "in_person"


class BucketKey(NamedTuple):
    channel: str
    label: str

    def __str__(self) -> str:
        return f"{self.channel}:{self.label}"


def bucket_keys(candidate: Candidate) -> List[BucketKey]:
    """Bucket keys for a candidate. BOTH-mode candidates may land in two buckets."""
    keys: List[BucketKey] = []
    if candidate.mode in (Mode.ONLINE, Mode.BOTH):
        keys.append(BucketKey(ONLINE, candidate.timezone))
    if candidate.mode in (Mode.IN_PERSON, Mode.BOTH):
        if candidate.city is not None:
            keys.append(BucketKey(IN_PERSON, candidate.city.key))
        else:
            logger.debug("%s has no home location, skipping in-person channel", candidate.id)
    return keys


def bucket_candidates(candidates: Iterable[Candidate], min_size: int = 2) -> Dict[BucketKey, List[Candidate]]:
    """Partition candidates into independent matching pools.

    Buckets come back sorted by key, members sorted by id, and buckets smaller
    than ``min_size`` are dropped, so iteration order is reproducible.
    """
    buckets: Dict[BucketKey, List[Candidate]] = {}
    for candidate in candidates:
        for key in bucket_keys(candidate):
            buckets.setdefault(key, []).append(candidate)

    out: Dict[BucketKey, List[Candidate]] = {}
    for key in sorted(buckets):
        members = sorted(buckets[key], key=lambda c: c.id)
        if len(members) < min_size:
            logger.debug("Dropping bucket %s with %d candidate(s)", key, len(members))
            continue
        out[key] = members
    return out
