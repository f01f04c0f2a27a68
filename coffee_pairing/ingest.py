from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol, Tuple

import pandas as pd
from pydantic import ValidationError

from .data_models import (
    AvailabilitySlot,
    Candidate,
    CandidateSnapshot,
    EligibilityFacts,
)
from .exceptions import CandidateSourceError, SnapshotError

logger = logging.getLogger(__name__)

LIST_SEPARATOR = ";"

FACT_COLUMNS = ["onboarded", "paused", "weekly_pairings", "has_elevated_quota", "has_open_pairing"]

_TRUE = {"true", "yes", "y", "1"}
_FALSE = {"false", "no", "n", "0"}


class CandidateSource(Protocol):
    def fetch(self, locale: str) -> CandidateSnapshot:
        ...


def _is_missing(val: Any) -> bool:
    if val is None:
        return True
    if isinstance(val, float) and pd.isna(val):
        return True
    return isinstance(val, str) and val.strip() in ("", "nan", "None", "NULL")


def _split(val: Any) -> List[str]:
    if _is_missing(val):
        return []
    return [part.strip() for part in str(val).split(LIST_SEPARATOR) if part.strip()]


def _to_bool(val: Any) -> Optional[bool]:
    if _is_missing(val):
        return None
    if isinstance(val, bool):
        return val
    s = str(val).strip().lower()
    if s in _TRUE:
        return True
    if s in _FALSE:
        return False
    raise ValueError(f"Not a boolean: {val!r}")


def parse_availability(val: Any, tz: str) -> List[AvailabilitySlot]:
    """Parse ``"0 09:00-12:00; 2 14:00-16:30"`` into slots (day 0 = Monday)."""
    slots = []
    for part in _split(val):
        day, _, span = part.partition(" ")
        start, _, end = span.strip().partition("-")
        slots.append(AvailabilitySlot(day_of_week=int(day), start_minute=start.strip(), end_minute=end.strip(), timezone=tz))
    return slots


def _row_to_candidate(row: Dict[str, Any]) -> Candidate:
    tz = row.get("timezone") if not _is_missing(row.get("timezone")) else "UTC"
    city = None
    if not _is_missing(row.get("latitude")) and not _is_missing(row.get("longitude")):
        city = {
            "name": row.get("city_name") if not _is_missing(row.get("city_name")) else "",
            "country": row.get("city_country") if not _is_missing(row.get("city_country")) else "",
            "latitude": float(row["latitude"]),
            "longitude": float(row["longitude"]),
        }
    payload: Dict[str, Any] = {
        "id": str(row["id"]).strip(),
        "profession": None if _is_missing(row.get("profession")) else row.get("profession"),
        "company": None if _is_missing(row.get("company")) else row.get("company"),
        "goals": _split(row.get("goals")),
        "timezone": tz,
        "city": city,
        "radius_km": None if _is_missing(row.get("radius_km")) else float(row["radius_km"]),
        "topics": _split(row.get("topics")),
        "industries": _split(row.get("industries")),
        "availability": parse_availability(row.get("availability"), tz),
    }
    for key in ("seniority", "mode", "vibe"):
        if not _is_missing(row.get(key)):
            payload[key] = str(row[key]).strip().upper()
    return Candidate.model_validate(payload)


def _row_to_facts(row: Dict[str, Any]) -> EligibilityFacts:
    weekly = row.get("weekly_pairings")
    return EligibilityFacts(
        onboarded=_to_bool(row.get("onboarded")),
        paused=_to_bool(row.get("paused")),
        weekly_pairings=None if _is_missing(weekly) else int(float(weekly)),
        has_elevated_quota=_to_bool(row.get("has_elevated_quota")),
        has_open_pairing=_to_bool(row.get("has_open_pairing")),
    )


def read_candidates_frame(df: pd.DataFrame) -> Tuple[List[Candidate], Dict[str, EligibilityFacts]]:
    """Build candidates and their eligibility facts from a flat table.

    Multi-valued columns (goals, topics, industries, availability) use ``;`` as
    separator. Rows without any fact column get no facts entry and are
    therefore excluded by the eligibility filter.
    """
    out = df.copy()
    out.columns = [c.strip() if isinstance(c, str) else c for c in out.columns]
    if "id" not in out.columns:
        raise SnapshotError("Candidate table must contain an 'id' column")
    has_facts = any(col in out.columns for col in FACT_COLUMNS)

    candidates: List[Candidate] = []
    facts: Dict[str, EligibilityFacts] = {}
    for i, row in enumerate(out.to_dict(orient="records")):
        try:
            candidate = _row_to_candidate(row)
            if has_facts:
                facts[candidate.id] = _row_to_facts(row)
        except (ValidationError, ValueError, KeyError) as e:
            raise SnapshotError(f"Invalid candidate row {i}: {e}") from e
        candidates.append(candidate)
    return candidates, facts


def load_snapshot(path: Path, locale: Optional[str] = None) -> CandidateSnapshot:
    """Load a snapshot from JSON (full model) or CSV (candidates and facts, no history)."""
    path = Path(path)
    if not path.exists():
        raise SnapshotError(f"Snapshot not found: {path}")
    try:
        if path.suffix.lower() == ".csv":
            candidates, facts = read_candidates_frame(pd.read_csv(path, dtype=str))
            snapshot = CandidateSnapshot(
                locale=locale or "UTC",
                taken_at=datetime.now(timezone.utc),
                candidates=tuple(candidates),
                facts=facts,
            )
        else:
            snapshot = CandidateSnapshot.model_validate_json(path.read_text(encoding="utf-8"))
    except ValidationError as e:
        raise SnapshotError(f"Invalid snapshot {path}: {e}") from e
    logger.info("Loaded %d candidates from %s", len(snapshot.candidates), path)
    return snapshot


def save_snapshot(snapshot: CandidateSnapshot, path: Path) -> None:
    Path(path).write_text(snapshot.model_dump_json(indent=2), encoding="utf-8")


class InMemoryCandidateSource:
    """Serves locale slices of an already-built snapshot."""

    def __init__(self, snapshot: CandidateSnapshot):
        self.snapshot = snapshot

    def fetch(self, locale: str) -> CandidateSnapshot:
        return self.snapshot.for_locale(locale)


class JsonSnapshotSource:
    """Reads the snapshot file on every fetch so each run sees the latest export."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def fetch(self, locale: str) -> CandidateSnapshot:
        try:
            snapshot = load_snapshot(self.path)
        except (SnapshotError, OSError) as e:
            raise CandidateSourceError(locale, str(e)) from e
        return snapshot.for_locale(locale)
