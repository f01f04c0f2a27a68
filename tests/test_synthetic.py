"""Tests for the synthetic snapshot generator."""

from coffee_pairing.engine import match_snapshot
from synthetic_generation.gen_synthetic_candidates import generate_snapshot, summarize


class TestGenerateSnapshot:
    def test_shape(self):
        snap = generate_snapshot(total=30, num_pairings=10, seed=7)

        assert len(snap.candidates) == 30
        assert len(snap.history) == 10
        assert set(snap.facts) == {c.id for c in snap.candidates}
        assert all(len(c.goals) <= 2 for c in snap.candidates)

    def test_profiles_are_seeded(self):
        first = generate_snapshot(total=10, num_pairings=0, seed=3)
        second = generate_snapshot(total=10, num_pairings=0, seed=3)

        assert [c.profession for c in first.candidates] == [c.profession for c in second.candidates]

    def test_snapshot_can_be_matched(self):
        snap = generate_snapshot(total=40, num_pairings=5, seed=11)

        for locale in snap.locales:
            proposals = match_snapshot(snap.for_locale(locale))
            ids = [cid for p in proposals for cid in p.member_ids]
            assert len(ids) == len(set(ids))

    def test_summary(self):
        snap = generate_snapshot(total=15, num_pairings=0, seed=5)

        assert summarize(snap).values.sum() == 15
