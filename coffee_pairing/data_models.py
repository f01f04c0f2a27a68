from __future__ import annotations

import re
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .config import MIN_SLOT_MINUTES, SENIORITY_LEVELS


MINUTES_PER_DAY = 24 * 60
_HHMM = re.compile(r"^([01]?[0-9]|2[0-3]):([0-5][0-9])$")


def time_to_minutes(value: str) -> int:
    """Convert an ``HH:MM`` string to minute-of-day. ``24:00`` marks end of day."""
    s = value.strip()
    if s == "24:00":
        return MINUTES_PER_DAY
    m = _HHMM.match(s)
    if not m:
        raise ValueError(f"Invalid time format: {value!r} (expected HH:MM)")
    return int(m.group(1)) * 60 + int(m.group(2))


def minutes_to_time(minutes: int) -> str:
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


class Mode(str, Enum):
    ONLINE = "ONLINE"
    IN_PERSON = "IN_PERSON"
    BOTH = "BOTH"


class Vibe(str, Enum):
    CASUAL = "CASUAL"
    PROFESSIONAL = "PROFESSIONAL"
    MIXED = "MIXED"


class Goal(str, Enum):
    NETWORKING = "NETWORKING"
    MENTORSHIP = "MENTORSHIP"
    CAREER_ADVICE = "CAREER_ADVICE"
    INDUSTRY_INSIGHTS = "INDUSTRY_INSIGHTS"
    COLLABORATION = "COLLABORATION"
    FRIENDSHIP = "FRIENDSHIP"


class SeniorityLevel(str, Enum):
    ENTRY = "ENTRY"
    MID = "MID"
    SENIOR = "SENIOR"
    LEAD = "LEAD"
    DIRECTOR = "DIRECTOR"
    VP = "VP"
    C_LEVEL = "C_LEVEL"

    @property
    def rank(self) -> int:
        return SENIORITY_LEVELS[self.value]


class PairingStatus(str, Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    EXPIRED = "EXPIRED"
    DONE = "DONE"
    NO_SHOW = "NO_SHOW"

    @property
    def is_open(self) -> bool:
        return self in (PairingStatus.PENDING, PairingStatus.CONFIRMED)


class AvailabilitySlot(BaseModel):
    """
    One weekly availability window. ``day_of_week`` 0 is Monday.

    Start/end accept minute-of-day integers or ``HH:MM`` strings.
    """

    model_config = ConfigDict(frozen=True)

    day_of_week: int = Field(..., ge=0, le=6)
    start_minute: int = Field(..., ge=0, le=MINUTES_PER_DAY)
    end_minute: int = Field(..., ge=0, le=MINUTES_PER_DAY)
    timezone: str = "UTC"

    @field_validator("start_minute", "end_minute", mode="before")
    @classmethod
    def _parse_hhmm(cls, v: Any) -> Any:
        if isinstance(v, str) and ":" in v:
            return time_to_minutes(v)
        return v

    @model_validator(mode="after")
    def _check_span(self) -> "AvailabilitySlot":
        if self.start_minute >= self.end_minute:
            raise ValueError("start_minute must be before end_minute")
        if self.end_minute - self.start_minute < MIN_SLOT_MINUTES:
            raise ValueError(f"slot must span at least {MIN_SLOT_MINUTES} minutes")
        return self

    @property
    def duration_minutes(self) -> int:
        return self.end_minute - self.start_minute

    @property
    def start_time(self) -> str:
        return minutes_to_time(self.start_minute)

    @property
    def end_time(self) -> str:
        return minutes_to_time(self.end_minute)


class City(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    country: str = ""
    latitude: float = Field(..., ge=-90.0, le=90.0)
    longitude: float = Field(..., ge=-180.0, le=180.0)

    @property
    def key(self) -> str:
        return f"{self.name}_{self.country}"


class Candidate(BaseModel):
    """
    Matching-relevant snapshot of one member for a single run.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    profession: Optional[str] = None
    seniority: SeniorityLevel = SeniorityLevel.MID
    company: Optional[str] = None
    goals: Tuple[Goal, ...] = ()
    mode: Mode = Mode.ONLINE
    vibe: Vibe = Vibe.MIXED
    timezone: str = "UTC"
    city: Optional[City] = None
    radius_km: Optional[float] = Field(default=None, gt=0)
    topics: FrozenSet[str] = frozenset()
    industries: FrozenSet[str] = frozenset()
    availability: Tuple[AvailabilitySlot, ...] = ()

    @field_validator("profession", "company", mode="before")
    @classmethod
    def _blank_to_none(cls, v: Any) -> Any:
        if isinstance(v, str):
            v = v.strip()
            return v or None
        return v

    @field_validator("topics", "industries", mode="before")
    @classmethod
    def _clean_names(cls, v: Any) -> Any:
        if v is None:
            return frozenset()
        if isinstance(v, str):
            v = [v]
        return frozenset(s.strip() for s in v if isinstance(s, str) and s.strip())

    @field_validator("goals")
    @classmethod
    def _at_most_two_goals(cls, v: Tuple[Goal, ...]) -> Tuple[Goal, ...]:
        unique = tuple(dict.fromkeys(v))
        if len(unique) > 2:
            raise ValueError("a candidate may declare at most two goals")
        return unique

    @field_validator("availability")
    @classmethod
    def _sort_slots(cls, v: Tuple[AvailabilitySlot, ...]) -> Tuple[AvailabilitySlot, ...]:
        return tuple(sorted(v, key=lambda s: (s.day_of_week, s.start_minute, s.end_minute)))

    @property
    def in_person_relevant(self) -> bool:
        return self.mode in (Mode.IN_PERSON, Mode.BOTH)


class EligibilityFacts(BaseModel):
    """
    Account-level facts supplied by the store. ``None`` means the lookup failed.
    """

    model_config = ConfigDict(frozen=True)

    onboarded: Optional[bool] = None
    paused: Optional[bool] = None
    weekly_pairings: Optional[int] = Field(default=None, ge=0)
    has_elevated_quota: Optional[bool] = None
    has_open_pairing: Optional[bool] = None

    @property
    def complete(self) -> bool:
        return None not in (
            self.onboarded,
            self.paused,
            self.weekly_pairings,
            self.has_elevated_quota,
            self.has_open_pairing,
        )


class PriorPairing(BaseModel):
    model_config = ConfigDict(frozen=True)

    user_a_id: str
    user_b_id: str
    created_at: datetime
    status: PairingStatus = PairingStatus.DONE

    @field_validator("created_at")
    @classmethod
    def _assume_utc(cls, v: datetime) -> datetime:
        return v if v.tzinfo is not None else v.replace(tzinfo=timezone.utc)

    def involves(self, user_id: str) -> bool:
        return user_id in (self.user_a_id, self.user_b_id)


class CandidateSnapshot(BaseModel):
    """
    Immutable input to one matching run: candidates, their eligibility facts and
    the pairing history used for cooldown checks.
    """

    model_config = ConfigDict(frozen=True)

    locale: str = "UTC"
    taken_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    candidates: Tuple[Candidate, ...] = ()
    facts: Dict[str, EligibilityFacts] = Field(default_factory=dict)
    history: Tuple[PriorPairing, ...] = ()

    @field_validator("taken_at")
    @classmethod
    def _assume_utc(cls, v: datetime) -> datetime:
        return v if v.tzinfo is not None else v.replace(tzinfo=timezone.utc)

    @model_validator(mode="after")
    def _unique_ids(self) -> "CandidateSnapshot":
        seen: set[str] = set()
        dupes: List[str] = []
        for c in self.candidates:
            if c.id in seen:
                dupes.append(c.id)
            seen.add(c.id)
        if dupes:
            raise ValueError(f"Duplicate candidate ids in snapshot: {sorted(set(dupes))}")
        return self

    def candidate(self, candidate_id: str) -> Candidate:
        for c in self.candidates:
            if c.id == candidate_id:
                return c
        raise KeyError(f"Unknown candidate id: {candidate_id}")

    @property
    def locales(self) -> List[str]:
        return sorted({c.timezone for c in self.candidates})

    def for_locale(self, locale: str) -> "CandidateSnapshot":
        """Restrict the snapshot to candidates whose timezone is ``locale``."""
        members = tuple(c for c in self.candidates if c.timezone == locale)
        return self.model_copy(update={"locale": locale, "candidates": members})
