"""Tests for snapshot loading and publishing."""

import pandas as pd
import pytest

from coffee_pairing.data_models import Goal, Mode, SeniorityLevel
from coffee_pairing.engine import match_snapshot
from coffee_pairing.exceptions import CandidateSourceError, SnapshotError
from coffee_pairing.ingest import (
    InMemoryCandidateSource,
    JsonSnapshotSource,
    load_snapshot,
    parse_availability,
    read_candidates_frame,
    save_snapshot,
)
from coffee_pairing.publishers import PROPOSAL_COLUMNS, CsvPublisher, proposals_to_frame

from conftest import NOW


CSV_ROWS = [
    {
        "id": "m1",
        "profession": "Software Engineer",
        "seniority": "senior",
        "goals": "NETWORKING; MENTORSHIP",
        "mode": "both",
        "timezone": "America/New_York",
        "city_name": "New York",
        "city_country": "USA",
        "latitude": "40.7128",
        "longitude": "-74.0060",
        "radius_km": "10",
        "topics": "AI; Startups",
        "industries": "Technology",
        "availability": "0 09:00-12:00; 2 14:00-16:30",
        "onboarded": "yes",
        "paused": "no",
        "weekly_pairings": "0",
        "has_elevated_quota": "false",
        "has_open_pairing": "false",
    },
    {
        "id": "m2",
        "profession": None,
        "seniority": None,
        "goals": None,
        "mode": None,
        "timezone": None,
        "city_name": None,
        "city_country": None,
        "latitude": None,
        "longitude": None,
        "radius_km": None,
        "topics": None,
        "industries": None,
        "availability": None,
        "onboarded": "true",
        "paused": None,
        "weekly_pairings": "1",
        "has_elevated_quota": "false",
        "has_open_pairing": "false",
    },
]


class TestCsvIngest:
    def test_parse_availability(self):
        slots = parse_availability("0 09:00-12:00; 2 14:00-16:30", "Europe/London")

        assert [(s.day_of_week, s.start_minute, s.end_minute) for s in slots] == [(0, 540, 720), (2, 840, 990)]
        assert all(s.timezone == "Europe/London" for s in slots)

    def test_read_frame(self):
        candidates, facts = read_candidates_frame(pd.DataFrame(CSV_ROWS))

        full, sparse = candidates
        assert full.seniority == SeniorityLevel.SENIOR
        assert full.mode == Mode.BOTH
        assert full.goals == (Goal.NETWORKING, Goal.MENTORSHIP)
        assert full.city.key == "New York_USA"
        assert full.radius_km == 10.0
        assert full.topics == frozenset({"AI", "Startups"})
        assert full.availability[1].timezone == "America/New_York"
        assert facts["m1"].complete

        assert sparse.mode == Mode.ONLINE
        assert sparse.timezone == "UTC"
        assert sparse.city is None
        assert not facts["m2"].complete

    def test_frame_without_fact_columns(self):
        candidates, facts = read_candidates_frame(pd.DataFrame([{"id": "a"}, {"id": "b"}]))

        assert [c.id for c in candidates] == ["a", "b"]
        assert facts == {}

    def test_missing_id_column(self):
        with pytest.raises(SnapshotError):
            read_candidates_frame(pd.DataFrame([{"name": "a"}]))

    def test_bad_row(self):
        with pytest.raises(SnapshotError, match="row 0"):
            read_candidates_frame(pd.DataFrame([{"id": "a", "mode": "telepathy"}]))

    def test_load_csv(self, tmp_path):
        path = tmp_path / "candidates.csv"
        pd.DataFrame(CSV_ROWS).to_csv(path, index=False)

        snap = load_snapshot(path, locale="America/New_York")

        assert snap.locale == "America/New_York"
        assert [c.id for c in snap.candidates] == ["m1", "m2"]
        assert snap.history == ()


class TestJsonSnapshot:
    def test_save_and_load(self, tmp_path, make_snapshot, online_group):
        path = tmp_path / "snapshot.json"
        original = make_snapshot(online_group)

        save_snapshot(original, path)
        loaded = load_snapshot(path)

        assert loaded == original
        assert loaded.taken_at == NOW

    def test_missing_file(self, tmp_path):
        with pytest.raises(SnapshotError):
            load_snapshot(tmp_path / "nope.json")

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text('{"candidates": [{"id": "a"}, {"id": "a"}]}', encoding="utf-8")

        with pytest.raises(SnapshotError):
            load_snapshot(path)


class TestSources:
    def test_in_memory_source_slices_locale(self, make_candidate, make_snapshot):
        snap = make_snapshot([make_candidate("a", timezone="Asia/Tokyo"), make_candidate("b")])

        sliced = InMemoryCandidateSource(snap).fetch("Asia/Tokyo")

        assert sliced.locale == "Asia/Tokyo"
        assert [c.id for c in sliced.candidates] == ["a"]

    def test_json_source_wraps_errors(self, tmp_path):
        with pytest.raises(CandidateSourceError) as exc_info:
            JsonSnapshotSource(tmp_path / "missing.json").fetch("UTC")

        assert exc_info.value.locale == "UTC"


class TestPublishers:
    def test_frame_columns(self, make_snapshot, online_group):
        frame = proposals_to_frame(match_snapshot(make_snapshot(online_group)))

        assert list(frame.columns) == PROPOSAL_COLUMNS
        assert list(frame["pair_index"]) == [1, 2, 3]
        assert frame.loc[0, "proposed_slots"].startswith("2025-03-10 09:00-12:00 (UTC)")

    def test_empty_frame_keeps_columns(self):
        assert list(proposals_to_frame([]).columns) == PROPOSAL_COLUMNS

    def test_csv_publisher(self, tmp_path, make_snapshot, online_group):
        publisher = CsvPublisher(tmp_path / "out" / "proposals.csv")
        for proposal in match_snapshot(make_snapshot(online_group)):
            publisher.publish(proposal)

        path = publisher.flush()

        written = pd.read_csv(path)
        assert len(written) == 3
        assert set(written["mode"]) == {"ONLINE"}
