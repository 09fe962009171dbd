"""Tests for batch analytics."""

import pytest
from pydantic import ValidationError

from telos_matrix.analytics import (
    build_snapshot,
    detect_rare_patterns,
    detect_recommendation_issues,
    detect_score_outliers,
    detect_timing_anomalies,
    label_stance,
    median,
    pattern_frequency,
    percentile,
    recommendation_counts,
    score_distribution,
    score_trends,
    std_dev,
    top_patterns,
    trend_direction,
)
from telos_matrix.config import AnalyticsSettings
from telos_matrix.schema import TrendDirection

from helpers import days_after, make_idea


class TestDescriptiveStatistics:
    """Mean, median, stddev and percentiles."""

    @pytest.mark.parametrize("p,expected", [
        (0, 1.0),
        (50, 5.5),
        (75, 7.75),
        (90, 9.1),
        (100, 10.0),
    ])
    def test_percentile_interpolates(self, p, expected):
        assert percentile([float(v) for v in range(10, 0, -1)], p) == pytest.approx(expected)

    def test_percentile_empty(self):
        assert percentile([], 50) == 0.0

    def test_std_dev_population(self):
        assert std_dev([2, 4, 4, 4, 5, 5, 7, 9]) == 2.0

    def test_std_dev_uniform(self):
        assert std_dev([5.0, 5.0, 5.0, 5.0]) == 0.0

    @pytest.mark.parametrize("values,expected", [
        ([1, 2, 3, 4, 5, 6], 3.5),
        ([5, 1, 3], 3.0),
        ([], 0.0),
    ])
    def test_median(self, values, expected):
        assert median(values) == expected

    def test_distribution_buckets(self):
        ideas = [make_idea(s) for s in (1.0, 3.0, 5.0, 7.0, 9.0, 10.0)]
        assert score_distribution(ideas) == {
            "0-2": 1, "2-4": 1, "4-6": 1, "6-8": 1, "8-10": 2,
        }

    def test_bucket_edges_go_up(self):
        assert score_distribution([make_idea(2.0)])["2-4"] == 1

    def test_recommendation_counts(self):
        ideas = [make_idea(s) for s in (7.0, 9.5, 5.0, 6.9, 4.99)]
        assert recommendation_counts(ideas) == {"high": 2, "medium": 2, "low": 1}


class TestPatternFrequency:
    """Pattern counts are per idea."""

    def test_most_common_first(self):
        ideas = [
            make_idea(5.0, ("a", "b")),
            make_idea(5.0, ("b",)),
            make_idea(5.0, ()),
            make_idea(5.0, ("b", "b")),
        ]
        stats = pattern_frequency(ideas)
        assert [(s.pattern, s.count, s.percentage) for s in stats] == [
            ("b", 3, 75.0),
            ("a", 1, 25.0),
        ]

    def test_empty_batch(self):
        assert pattern_frequency([]) == []

    def test_top_patterns_limit(self):
        ideas = [make_idea(5.0, tuple(f"p{i}" for i in range(n))) for n in range(1, 9)]
        top = top_patterns(ideas, limit=3)
        assert [s.pattern for s in top] == ["p0", "p1", "p2"]
        assert top[0].count == 8


class TestScoreOutliers:
    """Scores far from the batch mean."""

    def test_two_sided(self):
        ideas = [make_idea(5.0) for _ in range(10)]
        ideas += [make_idea(10.0, idea_id="high"), make_idea(0.0, idea_id="low")]
        outliers = detect_score_outliers(ideas, threshold=2.0)
        assert {o.idea_id for o in outliers} == {"high", "low"}
        by_id = {o.idea_id: o for o in outliers}
        assert by_id["high"].above_mean
        assert not by_id["low"].above_mean
        assert by_id["high"].deviation == pytest.approx(5.0 / std_dev([5.0] * 10 + [10.0, 0.0]))

    def test_deviation_equal_to_threshold_counts(self):
        ideas = [make_idea(0.0), make_idea(10.0)]
        outliers = detect_score_outliers(ideas, threshold=1.0, min_sample=2)
        assert len(outliers) == 2

    def test_below_minimum_sample(self):
        ideas = [make_idea(0.0), make_idea(10.0)]
        assert detect_score_outliers(ideas) == []

    def test_uniform_scores(self):
        assert detect_score_outliers([make_idea(5.0) for _ in range(8)]) == []

    def test_generated_ids(self):
        ideas = [make_idea(5.0) for _ in range(10)] + [make_idea(10.0)]
        outliers = detect_score_outliers(ideas)
        assert [o.idea_id for o in outliers] == ["idea-11"]


class TestRarePatterns:
    """Patterns present in few ideas."""

    def batch(self):
        return [
            make_idea(5.0, ("common", "uncommon"), idea_id="1"),
            make_idea(5.0, ("common", "uncommon"), idea_id="2"),
            make_idea(5.0, ("common", "unique"), idea_id="3"),
            make_idea(5.0, ("common",), idea_id="4"),
            make_idea(5.0, (), idea_id="5"),
            make_idea(5.0, (), idea_id="6"),
        ]

    def test_threshold_and_order(self):
        rare = detect_rare_patterns(self.batch(), threshold=40.0)
        assert [r.pattern for r in rare] == ["unique", "uncommon"]
        assert rare[0].idea_ids == ["3"]
        assert rare[1].count == 2
        assert rare[1].percentage == pytest.approx(100 / 3)

    def test_ids_optional(self):
        rare = detect_rare_patterns(self.batch(), threshold=40.0, include_ids=False)
        assert all(r.idea_ids == [] for r in rare)

    def test_duplicates_within_idea_count_once(self):
        ideas = [make_idea(5.0, ("x", "x", "x"))] + [make_idea(5.0) for _ in range(3)]
        rare = detect_rare_patterns(ideas, threshold=30.0)
        assert rare[0].count == 1
        assert rare[0].percentage == 25.0

    def test_empty_batch(self):
        assert detect_rare_patterns([]) == []


class TestTimingAnomalies:
    """Capture spikes by calendar day."""

    def spiky_batch(self):
        ideas = [make_idea(5.0, created_at=days_after(day)) for day in range(6)]
        ideas += [make_idea(5.0, created_at=days_after(6, hours=h)) for h in range(10)]
        return ideas

    def test_spike_detected(self):
        anomalies = detect_timing_anomalies(self.spiky_batch())
        assert len(anomalies) == 1
        spike = anomalies[0]
        assert spike.day == days_after(6).date()
        assert spike.count == 10
        assert spike.expected == pytest.approx(16 / 7)
        assert spike.ratio == pytest.approx(10 / (16 / 7))

    def test_too_few_days(self):
        ideas = [make_idea(5.0, created_at=days_after(day)) for day in range(5)]
        ideas += [make_idea(5.0, created_at=days_after(5, hours=h)) for h in range(10)]
        assert detect_timing_anomalies(ideas) == []

    def test_even_days(self):
        ideas = [make_idea(5.0, created_at=days_after(day)) for day in range(10)]
        assert detect_timing_anomalies(ideas) == []

    def test_days_in_date_order(self):
        ideas = list(reversed(self.spiky_batch()))
        ideas += [make_idea(5.0, created_at=days_after(-30, hours=h)) for h in range(12)]
        anomalies = detect_timing_anomalies(ideas, threshold=1.0)
        days = [a.day for a in anomalies]
        assert days == sorted(days)


class TestRecommendationIssues:
    """Stored labels that contradict the score."""

    @pytest.mark.parametrize("label,expected", [
        ("PRIORITIZE NOW", "pursue"),
        ("GOOD ALIGNMENT", "pursue"),
        ("pursue", "pursue"),
        ("CONSIDER LATER", "defer"),
        ("defer", "defer"),
        ("AVOID FOR NOW", "reject"),
        ("reject", "reject"),
        ("unsure", None),
    ])
    def test_label_stance(self, label, expected):
        assert label_stance(label) == expected

    @pytest.mark.parametrize("label,score", [
        ("GOOD ALIGNMENT", 6.9),
        ("PRIORITIZE NOW", 3.0),
        ("AVOID FOR NOW", 7.1),
        ("reject", 9.0),
        ("CONSIDER LATER", 8.1),
    ])
    def test_flagged(self, label, score):
        issues = detect_recommendation_issues([make_idea(score, recommendation=label)])
        assert len(issues) == 1
        assert issues[0].recommendation == label
        assert issues[0].idea_id == "idea-1"

    @pytest.mark.parametrize("label,score", [
        ("GOOD ALIGNMENT", 7.0),
        ("AVOID FOR NOW", 7.0),
        ("AVOID FOR NOW", 6.0),
        ("CONSIDER LATER", 8.0),
        ("CONSIDER LATER", 3.0),
        ("AVOID FOR NOW", 1.0),
        ("unsure", 9.9),
    ])
    def test_consistent_labels(self, label, score):
        assert detect_recommendation_issues([make_idea(score, recommendation=label)]) == []


class TestTrends:
    """Per-period averages and direction."""

    def test_weekly(self):
        ideas = [
            make_idea(4.0, created_at=days_after(0)),
            make_idea(6.0, created_at=days_after(1)),
            make_idea(8.0, created_at=days_after(7)),
        ]
        trends = score_trends(ideas, "week")
        assert [(t.period, t.average_score, t.count, t.max_score) for t in trends] == [
            ("2026-W02", 5.0, 2, 6.0),
            ("2026-W03", 8.0, 1, 8.0),
        ]
        assert trend_direction(trends) == TrendDirection.IMPROVING

    def test_daily_and_monthly_keys(self):
        ideas = [make_idea(5.0, created_at=days_after(0))]
        assert score_trends(ideas, "day")[0].period == "2026-01-05"
        assert score_trends(ideas, "month")[0].period == "2026-01"

    def test_declining(self):
        ideas = [
            make_idea(9.0, created_at=days_after(0)),
            make_idea(3.0, created_at=days_after(31)),
        ]
        assert trend_direction(score_trends(ideas, "month")) == TrendDirection.DECLINING

    def test_stable(self):
        ideas = [
            make_idea(6.0, created_at=days_after(0)),
            make_idea(6.4, created_at=days_after(1)),
        ]
        assert trend_direction(score_trends(ideas, "day")) == TrendDirection.STABLE
        assert trend_direction([]) == TrendDirection.STABLE

    def test_unknown_period(self):
        with pytest.raises(ValueError):
            score_trends([make_idea(5.0)], "fortnight")


class TestSnapshot:
    """The aggregate analytics snapshot."""

    def test_empty_batch(self):
        snapshot = build_snapshot([])
        assert snapshot.total_ideas == 0
        assert snapshot.mean == 0.0
        assert snapshot.min_score == snapshot.max_score == 0.0
        assert set(snapshot.distribution.values()) == {0}
        assert snapshot.percentiles["p50"] == 0.0
        assert snapshot.outliers == []
        assert snapshot.trend_direction == TrendDirection.STABLE

    def test_from_dicts(self):
        snapshot = build_snapshot([
            {
                "id": 7,
                "final_score": 5.0,
                "patterns": None,
                "created_at": "2026-01-05T09:00:00",
                "recommendation": "GOOD ALIGNMENT",
                "content": "stored text",
                "user_id": 42,
            },
        ])
        assert snapshot.total_ideas == 1
        assert snapshot.percentiles == {
            "p25": 5.0, "p50": 5.0, "p75": 5.0, "p90": 5.0, "p95": 5.0, "p99": 5.0,
        }
        assert snapshot.recommendation_issues[0].idea_id == "7"
        assert snapshot.unique_patterns == 0

    def test_missing_field_rejected(self):
        with pytest.raises(ValidationError):
            build_snapshot([{"final_score": 5.0, "recommendation": "good"}])

    def test_settings_thresholds_used(self):
        ideas = [make_idea(5.0) for _ in range(10)] + [make_idea(7.0, idea_id="x")]
        assert build_snapshot(ideas).outliers[0].idea_id == "x"
        strict = AnalyticsSettings(outlier_threshold=5.0)
        assert build_snapshot(ideas, strict).outliers == []

    def test_full_batch(self):
        ideas = [
            make_idea(float(score), ("p",) if score % 2 else (), created_at=days_after(score))
            for score in range(1, 11)
        ]
        snapshot = build_snapshot(ideas, AnalyticsSettings(trend_period="day"))
        assert snapshot.total_ideas == 10
        assert snapshot.mean == 5.5
        assert snapshot.median == 5.5
        assert snapshot.min_score == 1.0
        assert snapshot.max_score == 10.0
        assert snapshot.pattern_stats[0].count == 5
        assert len(snapshot.trends) == 10
        assert snapshot.trend_direction == TrendDirection.IMPROVING

    def test_two_ideas_with_patterns(self):
        snapshot = build_snapshot([
            make_idea(6.0, ("Scope creep", "Perfectionism")),
            make_idea(8.0, ("Scope creep",)),
        ])
        assert [(s.pattern, s.count, s.percentage) for s in snapshot.pattern_stats] == [
            ("Scope creep", 2, 100.0),
            ("Perfectionism", 1, 50.0),
        ]
        assert snapshot.unique_patterns == 2

    def test_repeated_pattern_counted_once_per_idea(self):
        snapshot = build_snapshot([make_idea(6.0, ("p", "p"))])
        assert [(s.pattern, s.count) for s in snapshot.pattern_stats] == [("p", 1)]

    def test_rare_pattern_threshold(self):
        ideas = [
            make_idea(6.0, ("a", "b")),
            make_idea(6.0, ("a", "b")),
            make_idea(6.0, ("b",)),
            make_idea(6.0, ("b",)),
            make_idea(6.0),
            make_idea(6.0),
        ]
        snapshot = build_snapshot(ideas, AnalyticsSettings(rare_pattern_threshold=40.0))
        assert [(s.pattern, s.count) for s in snapshot.pattern_stats] == [("b", 4), ("a", 2)]
        assert [r.pattern for r in snapshot.rare_patterns] == ["a"]
        rare = snapshot.rare_patterns[0]
        assert rare.count == 2
        assert rare.percentage == pytest.approx(100 / 3)
        assert rare.idea_ids == ["idea-1", "idea-2"]
