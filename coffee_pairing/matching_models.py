# pydantic models for engine outputs
import datetime as dt
from typing import Dict, List

from pydantic import BaseModel, ConfigDict, Field

from .data_models import Mode, minutes_to_time


class PairScore(BaseModel):
    """Directional compatibility score from ``from_id``'s perspective.

    Fields:
        from_id: Candidate the score is computed for.
        to_id: Candidate being scored as a partner.
        score: Weighted, vibe-adjusted sum clamped to [0, 1].
        components: Raw component values in [0, 1], keyed by component name.
        contributions: Each component's weighted contribution to ``score``.
    """

    model_config = ConfigDict(frozen=True)

    from_id: str
    to_id: str
    score: float = Field(..., ge=0.0, le=1.0)
    components: Dict[str, float] = Field(default_factory=dict)
    contributions: Dict[str, float] = Field(default_factory=dict)


class ProposedSlot(BaseModel):
    """A concrete meeting window on the next occurrence of a weekday.

    The timezone label is passed through from the first participant's slot; no
    conversion is applied.
    """

    model_config = ConfigDict(frozen=True)

    date: dt.date
    day_of_week: int = Field(..., ge=0, le=6)
    start_minute: int
    end_minute: int
    timezone: str

    @property
    def duration_minutes(self) -> int:
        return self.end_minute - self.start_minute

    @property
    def start_time(self) -> str:
        return minutes_to_time(self.start_minute)

    @property
    def end_time(self) -> str:
        return minutes_to_time(self.end_minute)

    def label(self) -> str:
        return f"{self.date.isoformat()} {self.start_time}-{self.end_time} ({self.timezone})"


class PairingProposal(BaseModel):
    """Output unit of a run: two matched candidates, their scores and proposed slots.

    Fields:
        user_a_id / user_b_id: Matched candidates, ``user_a_id`` sorts first.
        score_a_to_b / score_b_to_a: Directional scores retained for reciprocity.
        avg_score: Mean of the two directional scores.
        mode: Resolved meeting mode (ONLINE or IN_PERSON).
        bucket: Key of the bucket the pair was formed in.
        proposed_slots: Suggested meeting windows, earliest weekday first.
    """

    model_config = ConfigDict(frozen=True)

    user_a_id: str
    user_b_id: str
    score_a_to_b: float = Field(..., ge=0.0, le=1.0)
    score_b_to_a: float = Field(..., ge=0.0, le=1.0)
    avg_score: float = Field(..., ge=0.0, le=1.0)
    mode: Mode
    bucket: str
    proposed_slots: List[ProposedSlot] = Field(default_factory=list)

    @property
    def member_ids(self) -> tuple[str, str]:
        return (self.user_a_id, self.user_b_id)
