"""Matching constants and run configuration.

All values are named constants so a deployment can override them through
``MatchingConfig`` (directly or via ``COFFEE_PAIRING_*`` environment variables).
"""
from __future__ import annotations

import json
import os
from dataclasses import asdict, dataclass
from typing import Dict, List, Mapping, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, model_validator

from .exceptions import ConfigurationError


COMPONENTS: List[str] = [
    "topics",
    "industry",
    "profession",
    "goal",
    "seniority",
    "availability",
    "distance",
    "diversity",
]

MATCHING_WEIGHTS: Dict[str, float] = {
    "topics": 0.25,
    "industry": 0.15,
    "profession": 0.15,
    "goal": 0.15,
    "seniority": 0.10,
    "availability": 0.10,
    "distance": 0.05,
    "diversity": 0.05,
}

VIBE_WEIGHT_ADJUSTMENTS: Dict[str, Dict[str, float]] = {
    "CASUAL": {
        "topics": 1.2,
        "industry": 0.8,
        "profession": 0.8,
        "goal": 1.1,
        "seniority": 0.9,
        "availability": 1.0,
        "distance": 1.0,
        "diversity": 1.1,
    },
    "PROFESSIONAL": {
        "topics": 0.9,
        "industry": 1.3,
        "profession": 1.3,
        "goal": 1.2,
        "seniority": 1.2,
        "availability": 1.0,
        "distance": 1.0,
        "diversity": 0.8,
    },
    "MIXED": {c: 1.0 for c in COMPONENTS},
}

PROFESSION_RELATIONS: Dict[str, List[str]] = {
    "Software Engineer": ["Product Manager", "Designer", "Data Scientist", "DevOps Engineer"],
    "Product Manager": ["Software Engineer", "Designer", "Marketing Manager", "Business Analyst"],
    "Designer": ["Product Manager", "Software Engineer", "Marketing Manager", "UX Researcher"],
    "Data Scientist": ["Software Engineer", "Product Manager", "Business Analyst", "ML Engineer"],
    "Marketing Manager": ["Product Manager", "Designer", "Sales Manager", "Content Creator"],
    "Sales Manager": ["Marketing Manager", "Business Development", "Account Manager", "Customer Success"],
    "Consultant": ["Business Analyst", "Strategy Manager", "Project Manager", "Operations Manager"],
    "CEO": ["CTO", "CMO", "CFO", "VP of Engineering", "VP of Sales"],
    "CTO": ["CEO", "VP of Engineering", "Software Engineer", "Product Manager"],
}

INDUSTRY_PROXIMITY: Dict[str, List[str]] = {
    "Technology": ["Software", "AI/ML", "Fintech", "Healthtech", "E-commerce"],
    "Finance": ["Banking", "Investment", "Insurance", "Fintech", "Real Estate"],
    "Healthcare": ["Medical", "Pharma", "Biotech", "Healthtech", "Medical Devices"],
    "Consulting": ["Strategy", "Management", "Operations", "Technology", "Finance"],
    "Media": ["Entertainment", "Publishing", "Advertising", "Social Media", "Gaming"],
    "Education": ["EdTech", "Training", "Academic", "E-learning", "Research"],
}

# Directional: keys are the scoring candidate's goals.
GOAL_COMPATIBILITY: Dict[str, List[str]] = {
    "NETWORKING": ["COLLABORATION", "INDUSTRY_INSIGHTS", "FRIENDSHIP"],
    "MENTORSHIP": ["CAREER_ADVICE", "INDUSTRY_INSIGHTS", "NETWORKING"],
    "CAREER_ADVICE": ["MENTORSHIP", "NETWORKING", "INDUSTRY_INSIGHTS"],
    "INDUSTRY_INSIGHTS": ["NETWORKING", "CAREER_ADVICE", "COLLABORATION"],
    "COLLABORATION": ["NETWORKING", "INDUSTRY_INSIGHTS", "FRIENDSHIP"],
    "FRIENDSHIP": ["NETWORKING", "COLLABORATION", "INDUSTRY_INSIGHTS"],
}

SENIORITY_LEVELS: Dict[str, int] = {
    "ENTRY": 1,
    "MID": 2,
    "SENIOR": 3,
    "LEAD": 4,
    "DIRECTOR": 5,
    "VP": 6,
    "C_LEVEL": 7,
}

COOLDOWN_WEEKS = 12
MUTUAL_TOP_N = 10
WEEKLY_QUOTA_FREE = 1
WEEKLY_QUOTA_ELEVATED = 5
MIN_OVERLAP_MINUTES = 60
MIN_SLOT_MINUTES = 15
MAX_SUGGESTIONS = 5
PROPOSAL_SLOTS = 3
DEFAULT_RADIUS_KM = 25.0
EARTH_RADIUS_KM = 6371.0
TOP_K_CANDIDATES = 50

ENV_PREFIX = "COFFEE_PAIRING_"


@dataclass(frozen=True)
class ScoreWeights:
    w_topics: float = MATCHING_WEIGHTS["topics"]
    w_industry: float = MATCHING_WEIGHTS["industry"]
    w_profession: float = MATCHING_WEIGHTS["profession"]
    w_goal: float = MATCHING_WEIGHTS["goal"]
    w_seniority: float = MATCHING_WEIGHTS["seniority"]
    w_availability: float = MATCHING_WEIGHTS["availability"]
    w_distance: float = MATCHING_WEIGHTS["distance"]
    w_diversity: float = MATCHING_WEIGHTS["diversity"]

    def as_dict(self) -> Dict[str, float]:
        return {name[2:]: value for name, value in asdict(self).items()}

    @classmethod
    def from_mapping(cls, weights: Mapping[str, float]) -> "ScoreWeights":
        unknown = set(weights) - set(COMPONENTS)
        if unknown:
            raise ConfigurationError(f"Unknown score components: {sorted(unknown)}")
        return cls(**{f"w_{k}": float(v) for k, v in weights.items()})


class MatchingConfig(BaseModel):
    """Tunable knobs for one matching run.

    Defaults mirror the module constants. ``from_env`` reads overrides such as
    ``COFFEE_PAIRING_COOLDOWN_WEEKS=8`` or
    ``COFFEE_PAIRING_MATCHING_WEIGHTS='{"topics": 0.3, ...}'``.
    """

    matching_weights: Dict[str, float] = Field(default_factory=lambda: dict(MATCHING_WEIGHTS))
    vibe_weight_adjustments: Dict[str, Dict[str, float]] = Field(
        default_factory=lambda: {k: dict(v) for k, v in VIBE_WEIGHT_ADJUSTMENTS.items()}
    )
    cooldown_weeks: int = Field(default=COOLDOWN_WEEKS, ge=0)
    mutual_top_n: int = Field(default=MUTUAL_TOP_N, ge=1)
    weekly_quota_free: int = Field(default=WEEKLY_QUOTA_FREE, ge=0)
    weekly_quota_elevated: int = Field(default=WEEKLY_QUOTA_ELEVATED, ge=0)
    min_overlap_minutes: int = Field(default=MIN_OVERLAP_MINUTES, ge=1)
    min_slot_minutes: int = Field(default=MIN_SLOT_MINUTES, ge=1)
    max_suggestions: int = Field(default=MAX_SUGGESTIONS, ge=0)
    proposal_slots: int = Field(default=PROPOSAL_SLOTS, ge=0)
    default_radius_km: float = Field(default=DEFAULT_RADIUS_KM, gt=0)
    max_workers: Optional[int] = Field(default=None, ge=1)

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def _check_tables(self) -> "MatchingConfig":
        if set(self.matching_weights) != set(COMPONENTS):
            raise ValueError(f"matching_weights must define exactly {COMPONENTS}")
        total = sum(self.matching_weights.values())
        if abs(total - 1.0) > 1e-6:
            raise ValueError(f"matching_weights must sum to 1.0 (got {total:.4f})")
        for vibe in VIBE_WEIGHT_ADJUSTMENTS:
            table = self.vibe_weight_adjustments.get(vibe)
            if table is None or set(table) != set(COMPONENTS):
                raise ValueError(f"vibe_weight_adjustments[{vibe}] must define {COMPONENTS}")
        return self

    @property
    def weights(self) -> ScoreWeights:
        return ScoreWeights.from_mapping(self.matching_weights)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "MatchingConfig":
        if environ is None:
            load_dotenv()
            environ = os.environ
        overrides: Dict[str, object] = {}
        for name in cls.model_fields:
            raw = environ.get(f"{ENV_PREFIX}{name.upper()}")
            if raw is None or raw == "":
                continue
            if name in ("matching_weights", "vibe_weight_adjustments"):
                try:
                    overrides[name] = json.loads(raw)
                except json.JSONDecodeError as e:
                    raise ConfigurationError(f"{ENV_PREFIX}{name.upper()} is not valid JSON: {e}") from e
            else:
                overrides[name] = raw
        try:
            return cls(**overrides)
        except ValidationError as e:
            raise ConfigurationError(str(e)) from e
