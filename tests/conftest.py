"""Shared fixtures for the pairing engine tests."""

from datetime import datetime, timezone
from typing import Dict, Iterable, Optional

import pytest

from coffee_pairing.data_models import Candidate, CandidateSnapshot, EligibilityFacts, PriorPairing


# Wednesday
NOW = datetime(2025, 3, 5, 12, 0, tzinfo=timezone.utc)

NYC = {"name": "New York", "country": "USA", "latitude": 40.7128, "longitude": -74.0060}
BROOKLYN = {"name": "New York", "country": "USA", "latitude": 40.6782, "longitude": -73.9442}
LOS_ANGELES = {"name": "Los Angeles", "country": "USA", "latitude": 34.0522, "longitude": -118.2437}

WEEKDAY_SLOTS = [
    {"day_of_week": 0, "start_minute": "09:00", "end_minute": "12:00"},
    {"day_of_week": 1, "start_minute": "14:00", "end_minute": "17:00"},
    {"day_of_week": 2, "start_minute": "09:00", "end_minute": "11:00"},
    {"day_of_week": 3, "start_minute": "09:00", "end_minute": "11:00"},
]


def eligible_facts(**overrides) -> EligibilityFacts:
    values = {
        "onboarded": True,
        "paused": False,
        "weekly_pairings": 0,
        "has_elevated_quota": False,
        "has_open_pairing": False,
    }
    values.update(overrides)
    return EligibilityFacts(**values)


def candidate(candidate_id: str, **overrides) -> Candidate:
    return Candidate.model_validate({"id": candidate_id, **overrides})


def snapshot(
    candidates: Iterable[Candidate],
    facts: Optional[Dict[str, EligibilityFacts]] = None,
    history: Iterable[PriorPairing] = (),
    locale: str = "UTC",
    taken_at: datetime = NOW,
) -> CandidateSnapshot:
    members = tuple(candidates)
    if facts is None:
        facts = {c.id: eligible_facts() for c in members}
    return CandidateSnapshot(
        locale=locale,
        taken_at=taken_at,
        candidates=members,
        facts=facts,
        history=tuple(history),
    )


@pytest.fixture
def make_candidate():
    """Factory for candidates; keyword overrides are validated like snapshot input."""
    return candidate


@pytest.fixture
def make_snapshot():
    """Factory for snapshots; every candidate is eligible unless ``facts`` is given."""
    return snapshot


@pytest.fixture
def online_group():
    """Six online candidates in UTC who all share weekday availability."""
    return [
        candidate("u1", profession="Software Engineer", topics=["AI", "Startups"], industries=["Technology"],
                  goals=["NETWORKING"], company="TechCorp", availability=WEEKDAY_SLOTS),
        candidate("u2", profession="Software Engineer", topics=["AI", "Leadership"], industries=["Technology"],
                  goals=["NETWORKING"], company="CloudFirst", availability=WEEKDAY_SLOTS),
        candidate("u3", profession="Product Manager", topics=["Product Strategy"], industries=["Fintech"],
                  goals=["MENTORSHIP"], seniority="SENIOR", availability=WEEKDAY_SLOTS),
        candidate("u4", profession="Designer", topics=["Design Thinking", "Product Strategy"], industries=["Media"],
                  goals=["CAREER_ADVICE"], seniority="ENTRY", availability=WEEKDAY_SLOTS),
        candidate("u5", profession="Data Scientist", topics=["AI", "Data Science"], industries=["AI/ML"],
                  goals=["COLLABORATION"], vibe="PROFESSIONAL", availability=WEEKDAY_SLOTS),
        candidate("u6", profession="Consultant", topics=["Investing"], industries=["Finance"],
                  goals=["FRIENDSHIP"], vibe="CASUAL", availability=WEEKDAY_SLOTS),
    ]
