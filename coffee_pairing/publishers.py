from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Protocol, Sequence

import pandas as pd

from .matching_models import PairingProposal

logger = logging.getLogger(__name__)

PROPOSAL_COLUMNS = [
    "pair_index",
    "user_a_id",
    "user_b_id",
    "score_a_to_b",
    "score_b_to_a",
    "avg_score",
    "mode",
    "bucket",
    "proposed_slots",
]


class PairingPublisher(Protocol):
    def publish(self, proposal: PairingProposal) -> None:
        ...


def proposals_to_frame(proposals: Sequence[PairingProposal]) -> pd.DataFrame:
    """Flatten proposals into one row per pair; slots are joined into a readable string."""
    rows = []
    for i, p in enumerate(proposals, start=1):
        rows.append(
            {
                "pair_index": i,
                "user_a_id": p.user_a_id,
                "user_b_id": p.user_b_id,
                "score_a_to_b": round(p.score_a_to_b, 4),
                "score_b_to_a": round(p.score_b_to_a, 4),
                "avg_score": round(p.avg_score, 4),
                "mode": p.mode.value,
                "bucket": p.bucket,
                "proposed_slots": " | ".join(s.label() for s in p.proposed_slots),
            }
        )
    return pd.DataFrame(rows, columns=PROPOSAL_COLUMNS)


class CollectingPublisher:
    """Keeps published proposals in memory."""

    def __init__(self) -> None:
        self.proposals: List[PairingProposal] = []

    def publish(self, proposal: PairingProposal) -> None:
        self.proposals.append(proposal)


class CsvPublisher:
    """Buffers proposals and writes them as a CSV table on ``flush``."""

    def __init__(self, path: Path):
        self.path = Path(path)
        self.proposals: List[PairingProposal] = []

    def publish(self, proposal: PairingProposal) -> None:
        self.proposals.append(proposal)

    def flush(self) -> Path:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        proposals_to_frame(self.proposals).to_csv(self.path, index=False)
        logger.info("Wrote %d proposals to %s", len(self.proposals), self.path)
        return self.path
