#!/usr/bin/env python3
"""Generate a synthetic candidate snapshot for demos and load tests."""

import argparse
import random
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Dict, List

import pandas as pd
import shortuuid
from dotenv import load_dotenv

from coffee_pairing.data_models import (
    Candidate,
    CandidateSnapshot,
    EligibilityFacts,
    Goal,
    Mode,
    PairingStatus,
    PriorPairing,
    SeniorityLevel,
    Vibe,
)
from coffee_pairing.ingest import save_snapshot


PROFESSIONS = [
    "Software Engineer", "Product Manager", "Designer", "Data Scientist", "Marketing Manager",
    "Sales Manager", "Consultant", "CEO", "CTO", "Engineering Manager", "Operations Manager",
    "Business Analyst", "UX Researcher", "DevOps Engineer", "Technical Writer",
]

COMPANIES = [
    "TechCorp", "InnovateLab", "DataFlow Inc", "CloudFirst", "StartupX", "MegaCorp",
    "DesignStudio", "AI Innovations", "FinanceFlow", "HealthTech Solutions", "EduPlatform",
]

INDUSTRIES = [
    "Technology", "Finance", "Healthcare", "Consulting", "Media", "Education",
    "E-commerce", "AI/ML", "Fintech", "Gaming", "Real Estate", "Banking", "Biotech",
]

TOPICS = [
    "Artificial Intelligence", "Startups", "Product Strategy", "Leadership", "Career Growth",
    "Investing", "Remote Work", "Tech Trends", "Entrepreneurship", "Data Science",
    "Design Thinking", "Marketing", "Cloud Computing", "Cybersecurity", "Venture Capital",
]

CITIES: List[Dict[str, Any]] = [
    {"name": "New York", "country": "USA", "latitude": 40.7128, "longitude": -74.0060, "timezone": "America/New_York"},
    {"name": "San Francisco", "country": "USA", "latitude": 37.7749, "longitude": -122.4194, "timezone": "America/Los_Angeles"},
    {"name": "London", "country": "UK", "latitude": 51.5074, "longitude": -0.1278, "timezone": "Europe/London"},
    {"name": "Berlin", "country": "Germany", "latitude": 52.5200, "longitude": 13.4050, "timezone": "Europe/Berlin"},
    {"name": "Singapore", "country": "Singapore", "latitude": 1.3521, "longitude": 103.8198, "timezone": "Asia/Singapore"},
]


def generate_synthetic_id() -> str:
    """Generate a short UUID for synthetic candidate identification."""
    return shortuuid.uuid()


def generate_timestamped_filename(prefix: str, extension: str) -> str:
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    return f"{prefix}_{timestamp}.{extension}"


def generate_availability(rng: random.Random, tz: str) -> List[Dict[str, Any]]:
    """Two to four weekday slots between 09:00 and 17:00."""
    days = rng.sample(range(5), rng.randint(2, 4))
    slots = []
    for day in sorted(days):
        start = rng.randint(9, 15)
        end = min(start + rng.randint(1, 3), 17)
        slots.append({"day_of_week": day, "start_minute": f"{start:02d}:00", "end_minute": f"{end:02d}:00", "timezone": tz})
    return slots


def generate_candidate(rng: random.Random) -> Candidate:
    city = rng.choice(CITIES)
    mode = rng.choice(list(Mode))
    return Candidate.model_validate(
        {
            "id": generate_synthetic_id(),
            "profession": rng.choice(PROFESSIONS),
            "seniority": rng.choice(list(SeniorityLevel)),
            "company": rng.choice(COMPANIES),
            "goals": rng.sample(list(Goal), rng.randint(1, 2)),
            "mode": mode,
            "vibe": rng.choice(list(Vibe)),
            "timezone": city["timezone"],
            "city": {k: city[k] for k in ("name", "country", "latitude", "longitude")},
            "radius_km": rng.choice([None, 10.0, 25.0, 50.0]),
            "topics": rng.sample(TOPICS, rng.randint(2, 5)),
            "industries": rng.sample(INDUSTRIES, rng.randint(1, 2)),
            "availability": generate_availability(rng, city["timezone"]),
        }
    )


def generate_facts(rng: random.Random) -> EligibilityFacts:
    """Mostly eligible members, with a sprinkling of each exclusion reason."""
    return EligibilityFacts(
        onboarded=rng.random() > 0.05,
        paused=rng.random() < 0.05,
        weekly_pairings=rng.choice([0, 0, 0, 1]),
        has_elevated_quota=rng.random() < 0.2,
        has_open_pairing=rng.random() < 0.05,
    )


def generate_history(rng: random.Random, ids: List[str], now: datetime, num_pairings: int) -> List[PriorPairing]:
    history = []
    for _ in range(num_pairings if len(ids) >= 2 else 0):
        a, b = rng.sample(ids, 2)
        history.append(
            PriorPairing(
                user_a_id=a,
                user_b_id=b,
                created_at=now - timedelta(days=rng.randint(1, 180)),
                status=rng.choice([PairingStatus.DONE, PairingStatus.EXPIRED, PairingStatus.NO_SHOW]),
            )
        )
    return history


def generate_snapshot(total: int, num_pairings: int, seed: int) -> CandidateSnapshot:
    rng = random.Random(seed)
    now = datetime.now(timezone.utc)
    candidates = [generate_candidate(rng) for _ in range(total)]
    ids = [c.id for c in candidates]
    return CandidateSnapshot(
        locale="UTC",
        taken_at=now,
        candidates=tuple(candidates),
        facts={cid: generate_facts(rng) for cid in ids},
        history=tuple(generate_history(rng, ids, now, num_pairings)),
    )


def summarize(snapshot: CandidateSnapshot) -> pd.DataFrame:
    """Candidate counts per locale and mode."""
    df = pd.DataFrame([{"locale": c.timezone, "mode": c.mode.value} for c in snapshot.candidates])
    return df.groupby(["locale", "mode"]).size().unstack(fill_value=0)


def parse_args() -> argparse.Namespace:
    """Parse CLI arguments."""
    parser = argparse.ArgumentParser(description="Generate a synthetic candidate snapshot.")
    parser.add_argument("--total", type=int, required=True, help="Number of synthetic candidates to generate")
    parser.add_argument("--history", type=int, default=0, help="Number of prior pairings to generate")
    parser.add_argument("--seed", type=int, default=42, help="Random seed")
    parser.add_argument("--out", type=Path, default=None, help="Output JSON path (timestamped under data/ by default)")
    return parser.parse_args()


def main() -> None:
    """Entry point for CLI execution."""
    load_dotenv()
    args = parse_args()

    snapshot = generate_snapshot(args.total, args.history, args.seed)

    out_path = args.out
    if out_path is None:
        data_dir = Path("data")
        data_dir.mkdir(exist_ok=True)
        out_path = data_dir / generate_timestamped_filename("synthetic_snapshot", "json")
    save_snapshot(snapshot, out_path)

    print(summarize(snapshot).to_string())
    print(f"Wrote {len(snapshot.candidates)} candidates and {len(snapshot.history)} pairings to {out_path}")


if __name__ == "__main__":
    main()
