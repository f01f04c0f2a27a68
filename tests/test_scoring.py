"""Unit tests for pair scoring."""

import pytest

from coffee_pairing.config import COMPONENTS, MatchingConfig
from coffee_pairing.data_models import City
from coffee_pairing.scoring import (
    availability_overlap,
    distance_penalty,
    diversity_boost,
    goal_compatibility,
    haversine_km,
    industry_similarity,
    profession_similarity,
    score_both_directions,
    score_pair,
    seniority_fit,
    top_k_for_candidate,
    topics_similarity,
    vibe_multipliers,
)

from conftest import BROOKLYN, LOS_ANGELES, NYC


class TestComponents:
    def test_topics_jaccard(self, make_candidate):
        a = make_candidate("a", topics=["AI", "Startups", "Leadership"])
        b = make_candidate("b", topics=["AI", "Investing"])

        assert topics_similarity(a, b) == pytest.approx(0.25)

    def test_topics_ignore_case(self, make_candidate):
        a = make_candidate("a", topics=["ai"])
        b = make_candidate("b", topics=["AI"])

        assert topics_similarity(a, b) == 1.0

    def test_topics_empty_is_zero(self, make_candidate):
        assert topics_similarity(make_candidate("a"), make_candidate("b")) == 0.0

    def test_industry_levels(self, make_candidate):
        tech = make_candidate("a", industries=["Technology"])

        assert industry_similarity(tech, make_candidate("b", industries=["Technology"])) == 1.0
        assert industry_similarity(tech, make_candidate("c", industries=["Fintech"])) == 0.7
        assert industry_similarity(tech, make_candidate("d", industries=["Banking"])) == 0.0

    def test_profession_levels(self, make_candidate):
        engineer = make_candidate("a", profession="Software Engineer")

        assert profession_similarity(engineer, make_candidate("b")) == 0.5
        assert profession_similarity(engineer, make_candidate("c", profession="Software Engineer")) == 1.0
        assert profession_similarity(engineer, make_candidate("d", profession="Product Manager")) == 0.8
        assert profession_similarity(engineer, make_candidate("e", profession="Sales Manager")) == 0.3

    def test_goal_is_directional(self, make_candidate):
        mentee = make_candidate("a", goals=["MENTORSHIP"])
        networker = make_candidate("b", goals=["NETWORKING"])

        assert goal_compatibility(mentee, networker) == 0.8
        assert goal_compatibility(networker, mentee) == 0.4

    def test_shared_goal(self, make_candidate):
        a = make_candidate("a", goals=["NETWORKING", "FRIENDSHIP"])
        b = make_candidate("b", goals=["FRIENDSHIP"])

        assert goal_compatibility(a, b) == 1.0
        assert goal_compatibility(b, a) == 1.0

    def test_seniority_gaps(self, make_candidate):
        assert seniority_fit(make_candidate("a", seniority="MID"), make_candidate("b", seniority="SENIOR")) == 0.9
        assert seniority_fit(make_candidate("a", seniority="ENTRY"), make_candidate("b", seniority="C_LEVEL")) == 0.3
        assert seniority_fit(make_candidate("a", seniority="LEAD"), make_candidate("b", seniority="LEAD")) == 1.0

    def test_availability_partial_overlap(self, make_candidate):
        a = make_candidate("a", availability=[{"day_of_week": 0, "start_minute": "09:00", "end_minute": "12:00"}])
        b = make_candidate("b", availability=[{"day_of_week": 0, "start_minute": "10:00", "end_minute": "11:00"}])

        assert availability_overlap(a, b) == pytest.approx(0.5)

    def test_availability_neutral_without_shared_days(self, make_candidate):
        a = make_candidate("a", availability=[{"day_of_week": 0, "start_minute": "09:00", "end_minute": "12:00"}])
        b = make_candidate("b", availability=[{"day_of_week": 4, "start_minute": "09:00", "end_minute": "12:00"}])

        assert availability_overlap(a, b) == 0.7
        assert availability_overlap(a, make_candidate("c")) == 0.7

    def test_diversity(self, make_candidate):
        a = make_candidate("a", company="TechCorp", industries=["Technology"])

        assert diversity_boost(a, make_candidate("b", company="MegaCorp", industries=["Media"])) == 1.0
        assert diversity_boost(a, make_candidate("c", company="TechCorp", industries=["Technology"])) == 0.5


class TestDistance:
    def test_haversine_within_city(self):
        km = haversine_km(City(**NYC), City(**BROOKLYN))

        assert 5.0 < km < 8.0

    def test_haversine_across_country(self):
        km = haversine_km(City(**NYC), City(**LOS_ANGELES))

        assert 3900 < km < 4000

    def test_penalty_close_by(self, make_candidate):
        a = make_candidate("a", mode="IN_PERSON", city=NYC)
        b = make_candidate("b", mode="IN_PERSON", city=BROOKLYN)

        penalty = distance_penalty(a, b)
        assert 0.5 < penalty <= 1.0

    def test_penalty_out_of_radius(self, make_candidate):
        a = make_candidate("a", mode="IN_PERSON", city=NYC)
        b = make_candidate("b", mode="IN_PERSON", city=LOS_ANGELES)

        assert distance_penalty(a, b) == 0.1

    def test_online_has_no_penalty(self, make_candidate):
        a = make_candidate("a", mode="ONLINE", city=NYC)
        b = make_candidate("b", mode="IN_PERSON", city=LOS_ANGELES)

        assert distance_penalty(a, b) == 1.0

    def test_missing_city_is_neutral(self, make_candidate):
        a = make_candidate("a", mode="BOTH", city=NYC)
        b = make_candidate("b", mode="BOTH")

        assert distance_penalty(a, b) == 0.5


class TestScorePair:
    def test_empty_profiles(self, make_candidate):
        result = score_pair(make_candidate("a"), make_candidate("b"))

        assert 0.0 <= result.score <= 1.0
        assert result.score == pytest.approx(0.39)
        assert set(result.components) == set(COMPONENTS)

    def test_contributions_sum_to_score(self, make_candidate):
        a = make_candidate("a", topics=["AI"], profession="Designer", vibe="CASUAL")
        b = make_candidate("b", topics=["AI", "HR"], profession="Product Manager")

        result = score_pair(a, b)
        assert sum(result.contributions.values()) == pytest.approx(result.score)

    def test_score_is_clamped(self, make_candidate):
        slots = [{"day_of_week": 0, "start_minute": "09:00", "end_minute": "12:00"}]
        shared = dict(
            profession="Software Engineer",
            topics=["AI"],
            industries=["Technology"],
            goals=["NETWORKING"],
            vibe="PROFESSIONAL",
            availability=slots,
        )
        a = make_candidate("a", company="TechCorp", **shared)
        b = make_candidate("b", company="MegaCorp", **shared)

        result = score_pair(a, b)
        assert sum(result.contributions.values()) > 1.0
        assert result.score == 1.0

    def test_vibe_multipliers_average(self, make_candidate):
        mult = vibe_multipliers(make_candidate("a", vibe="PROFESSIONAL"), make_candidate("b", vibe="CASUAL"))

        assert mult["topics"] == pytest.approx(1.05)
        assert mult["industry"] == pytest.approx(1.05)
        assert mult["availability"] == 1.0

    def test_directions_differ_only_by_goal(self, make_candidate):
        a = make_candidate("a", goals=["MENTORSHIP"], topics=["AI"])
        b = make_candidate("b", goals=["NETWORKING"], topics=["AI"])

        a_to_b, b_to_a = score_both_directions(a, b)
        assert a_to_b.from_id == "a" and b_to_a.from_id == "b"
        assert a_to_b.score - b_to_a.score == pytest.approx(0.4 * 0.15)

    def test_custom_weights(self, make_candidate):
        weights = {c: 0.0 for c in COMPONENTS}
        weights["topics"] = 1.0
        config = MatchingConfig(matching_weights=weights)
        a = make_candidate("a", topics=["AI", "HR"])
        b = make_candidate("b", topics=["AI"])

        assert score_pair(a, b, config).score == pytest.approx(0.5)


class TestTopK:
    def test_ranked_and_limited(self, make_snapshot, online_group):
        snap = make_snapshot(online_group)

        recs = top_k_for_candidate(snap, "u1", k=3)

        assert len(recs) == 3
        assert all(r.from_id == "u1" and r.to_id != "u1" for r in recs)
        assert [r.score for r in recs] == sorted((r.score for r in recs), reverse=True)
        assert recs[0].to_id == "u2"

    def test_unknown_candidate(self, make_snapshot, online_group):
        with pytest.raises(KeyError):
            top_k_for_candidate(make_snapshot(online_group), "nobody")


class TestWeights:
    def test_contributions_use_config_weights(self, make_candidate):
        config = MatchingConfig()
        weights = config.weights
        a = make_candidate("a", topics=["AI"], seniority="SENIOR")
        b = make_candidate("b", topics=["AI"])

        result = score_pair(a, b, config)

        assert result.contributions["topics"] == pytest.approx(weights.w_topics)
        assert result.contributions["seniority"] == pytest.approx(0.9 * weights.w_seniority)
