"""Batch analytics over scored ideas.

Descriptive statistics, score distribution, pattern frequency, trends and
anomaly detection. Works on stored idea records only; it never re-scores
text. Small or uniform batches give empty results, never errors.
"""

import logging
import math
from collections import Counter, defaultdict
from datetime import date
from typing import Any, Iterable, Optional, Sequence, Union

from .config import AnalyticsSettings
from .schema import (
    AnalyticsSnapshot,
    IdeaRecord,
    PatternStat,
    RarePattern,
    RecommendationIssue,
    ScoreOutlier,
    TimingAnomaly,
    TrendDirection,
    TrendPoint,
)

logger = logging.getLogger(__name__)


SCORE_BUCKETS = (
    ("0-2", 2.0),
    ("2-4", 4.0),
    ("4-6", 6.0),
    ("6-8", 8.0),
    ("8-10", math.inf),
)

SNAPSHOT_PERCENTILES = (25, 50, 75, 90, 95, 99)

# Recommendation label consistency bands. Scores exactly on a band edge are
# not issues. Reject labels are tolerated up to 7.0; an earlier cut at 5.0
# is still awaiting a product decision (see DESIGN.md).
PURSUE_MIN_SCORE = 7.0
REJECT_MAX_SCORE = 7.0
DEFER_MAX_SCORE = 8.0

REJECT_WORDS = ("reject", "avoid")
DEFER_WORDS = ("defer", "consider", "later")
PURSUE_WORDS = ("pursue", "priorit", "good")

TREND_CHANGE = 0.5


IdeaInput = Union[IdeaRecord, dict[str, Any]]


def as_records(ideas: Iterable[IdeaInput]) -> list[IdeaRecord]:
    """Validate raw idea dicts into IdeaRecords.

    Raises:
        pydantic.ValidationError: If a record lacks a required field.
    """
    return [
        idea if isinstance(idea, IdeaRecord) else IdeaRecord.model_validate(idea)
        for idea in ideas
    ]


def idea_label(idea: IdeaRecord, index: int) -> str:
    """Identifier used in analytics output for an idea."""
    return idea.id if idea.id is not None else f"idea-{index + 1}"


# =============================================================================
# Descriptive Statistics
# =============================================================================


def mean(values: Sequence[float]) -> float:
    if not values:
        return 0.0
    return sum(values) / len(values)


def median(values: Sequence[float]) -> float:
    """Median of values. Averages the two middle values for even sizes."""
    if not values:
        return 0.0
    ordered = sorted(values)
    mid = len(ordered) // 2
    if len(ordered) % 2 == 0:
        return (ordered[mid - 1] + ordered[mid]) / 2
    return ordered[mid]


def std_dev(values: Sequence[float]) -> float:
    """Population standard deviation."""
    if len(values) < 2:
        return 0.0
    avg = mean(values)
    return math.sqrt(sum((v - avg) ** 2 for v in values) / len(values))


def percentile(values: Sequence[float], p: float) -> float:
    """Percentile with linear interpolation between closest ranks.

    ``rank = p / 100 * (n - 1)``. p <= 0 and p >= 100 return the minimum
    and maximum directly.
    """
    if not values:
        return 0.0
    ordered = sorted(values)
    if p <= 0:
        return ordered[0]
    if p >= 100:
        return ordered[-1]

    rank = p / 100 * (len(ordered) - 1)
    lower = math.floor(rank)
    upper = lower + 1
    if upper >= len(ordered):
        return ordered[lower]
    return ordered[lower] + (rank - lower) * (ordered[upper] - ordered[lower])


def score_distribution(ideas: Sequence[IdeaRecord]) -> dict[str, int]:
    """Count ideas per two-point score bucket."""
    distribution = {name: 0 for name, _ in SCORE_BUCKETS}
    for idea in ideas:
        for name, upper in SCORE_BUCKETS:
            if idea.final_score < upper:
                distribution[name] += 1
                break
    return distribution


def recommendation_counts(ideas: Sequence[IdeaRecord]) -> dict[str, int]:
    """High (>= 7), medium (5 to 7) and low (< 5) score counts."""
    counts = {"high": 0, "medium": 0, "low": 0}
    for idea in ideas:
        if idea.final_score >= 7.0:
            counts["high"] += 1
        elif idea.final_score >= 5.0:
            counts["medium"] += 1
        else:
            counts["low"] += 1
    return counts


def pattern_frequency(ideas: Sequence[IdeaRecord]) -> list[PatternStat]:
    """How many ideas carry each pattern, most common first."""
    if not ideas:
        return []
    counts: Counter = Counter()
    for idea in ideas:
        counts.update(dict.fromkeys(idea.patterns, 1))
    total = len(ideas)
    return [
        PatternStat(pattern=pattern, count=count, percentage=count / total * 100)
        for pattern, count in counts.most_common()
    ]


def top_patterns(ideas: Sequence[IdeaRecord], limit: int = 5) -> list[PatternStat]:
    return pattern_frequency(ideas)[:limit]


# =============================================================================
# Anomaly Detection
# =============================================================================


def detect_score_outliers(
    ideas: Sequence[IdeaRecord],
    threshold: float = 2.0,
    min_sample: int = 3,
) -> list[ScoreOutlier]:
    """Ideas whose score is at least ``threshold`` standard deviations from the mean.

    Returns the largest deviation first. Batches smaller than ``min_sample``
    or with zero spread have no outliers.
    """
    if len(ideas) < min_sample:
        logger.debug("Skipping outliers: %d ideas below minimum sample %d", len(ideas), min_sample)
        return []

    scores = [idea.final_score for idea in ideas]
    avg = mean(scores)
    spread = std_dev(scores)
    if spread == 0:
        return []

    outliers = []
    for index, idea in enumerate(ideas):
        deviation = abs(idea.final_score - avg) / spread
        if deviation >= threshold:
            outliers.append(ScoreOutlier(
                idea_id=idea_label(idea, index),
                score=idea.final_score,
                deviation=deviation,
                above_mean=idea.final_score > avg,
            ))

    outliers.sort(key=lambda o: o.deviation, reverse=True)
    return outliers


def detect_rare_patterns(
    ideas: Sequence[IdeaRecord],
    threshold: float = 5.0,
    include_ids: bool = True,
) -> list[RarePattern]:
    """Patterns present in less than ``threshold`` percent of ideas, rarest first."""
    if not ideas:
        return []

    idea_ids: dict[str, list[str]] = defaultdict(list)
    for index, idea in enumerate(ideas):
        for pattern in dict.fromkeys(idea.patterns):
            idea_ids[pattern].append(idea_label(idea, index))

    total = len(ideas)
    rare = []
    for pattern, ids in idea_ids.items():
        percentage = len(ids) / total * 100
        if percentage < threshold:
            rare.append(RarePattern(
                pattern=pattern,
                count=len(ids),
                percentage=percentage,
                idea_ids=ids if include_ids else [],
            ))

    rare.sort(key=lambda r: r.percentage)
    return rare


def detect_timing_anomalies(
    ideas: Sequence[IdeaRecord],
    threshold: float = 2.0,
    min_days: int = 7,
) -> list[TimingAnomaly]:
    """Days whose capture count differs from the daily mean by more than ``threshold`` stddevs.

    Only days with at least one idea are counted. Returns days in date order.
    """
    per_day: Counter = Counter(idea.created_at.date() for idea in ideas)
    if len(per_day) < min_days:
        logger.debug("Skipping timing anomalies: %d days below minimum %d", len(per_day), min_days)
        return []

    counts = list(per_day.values())
    expected = mean(counts)
    spread = std_dev(counts)
    if spread == 0:
        return []

    anomalies = []
    for day in sorted(per_day):
        count = per_day[day]
        if abs(count - expected) > threshold * spread:
            anomalies.append(TimingAnomaly(
                day=day,
                count=count,
                expected=expected,
                ratio=count / expected,
                deviation=abs(count - expected) / spread,
            ))
    return anomalies


def label_stance(label: str) -> Optional[str]:
    """Classify a stored recommendation label as pursue, defer or reject.

    Accepts both category names ("good") and display labels ("AVOID FOR NOW").
    Returns None for labels that fit none of them.
    """
    normalized = label.lower()
    if any(w in normalized for w in REJECT_WORDS):
        return "reject"
    if any(w in normalized for w in DEFER_WORDS):
        return "defer"
    if any(w in normalized for w in PURSUE_WORDS):
        return "pursue"
    return None


def detect_recommendation_issues(ideas: Sequence[IdeaRecord]) -> list[RecommendationIssue]:
    """Ideas whose stored recommendation contradicts their score.

    - pursue with a score below 7.0
    - reject with a score above 7.0
    - defer with a score above 8.0
    """
    issues = []
    for index, idea in enumerate(ideas):
        stance = label_stance(idea.recommendation)
        score = idea.final_score
        reason = None
        if stance == "pursue" and score < PURSUE_MIN_SCORE:
            reason = f"Score {score:.1f} is below {PURSUE_MIN_SCORE:.1f} but the idea is marked to pursue"
        elif stance == "reject" and score > REJECT_MAX_SCORE:
            reason = f"Score {score:.1f} is above {REJECT_MAX_SCORE:.1f} but the idea is marked to reject"
        elif stance == "defer" and score > DEFER_MAX_SCORE:
            reason = f"Score {score:.1f} is above {DEFER_MAX_SCORE:.1f} but the idea is deferred"

        if reason:
            issues.append(RecommendationIssue(
                idea_id=idea_label(idea, index),
                score=score,
                recommendation=idea.recommendation,
                reason=reason,
            ))
    return issues


# =============================================================================
# Trends
# =============================================================================


def period_key(day: date, period: str) -> str:
    if period == "day":
        return day.isoformat()
    if period == "week":
        year, week, _ = day.isocalendar()
        return f"{year}-W{week:02d}"
    if period == "month":
        return day.strftime("%Y-%m")
    raise ValueError(f"unknown trend period: {period}")


def score_trends(ideas: Sequence[IdeaRecord], period: str = "week") -> list[TrendPoint]:
    """Average, count and best score per period, oldest first."""
    grouped: dict[str, list[float]] = defaultdict(list)
    for idea in ideas:
        grouped[period_key(idea.created_at.date(), period)].append(idea.final_score)

    return [
        TrendPoint(
            period=key,
            average_score=mean(scores),
            count=len(scores),
            max_score=max(scores),
        )
        for key, scores in sorted(grouped.items())
    ]


def trend_direction(trends: Sequence[TrendPoint]) -> TrendDirection:
    """Compare the average of the later half of a trend series with the earlier half."""
    if len(trends) < 2:
        return TrendDirection.STABLE

    half = len(trends) // 2
    earlier = mean([t.average_score for t in trends[:half]])
    later = mean([t.average_score for t in trends[half:]])
    if later - earlier > TREND_CHANGE:
        return TrendDirection.IMPROVING
    if earlier - later > TREND_CHANGE:
        return TrendDirection.DECLINING
    return TrendDirection.STABLE


# =============================================================================
# Snapshot
# =============================================================================


def build_snapshot(
    ideas: Iterable[IdeaInput],
    settings: Optional[AnalyticsSettings] = None,
) -> AnalyticsSnapshot:
    """Compute every statistic and anomaly list for a batch.

    Args:
        ideas: Idea records or dicts with final_score, patterns, created_at
            and recommendation.
        settings: Thresholds; defaults when omitted.

    Returns:
        A new AnalyticsSnapshot.
    """
    settings = settings or AnalyticsSettings()
    records = as_records(ideas)
    scores = [idea.final_score for idea in records]
    stats = pattern_frequency(records)
    trends = score_trends(records, settings.trend_period)

    return AnalyticsSnapshot(
        total_ideas=len(records),
        mean=mean(scores),
        median=median(scores),
        std_dev=std_dev(scores),
        min_score=min(scores, default=0.0),
        max_score=max(scores, default=0.0),
        percentiles={f"p{p}": percentile(scores, p) for p in SNAPSHOT_PERCENTILES},
        distribution=score_distribution(records),
        pattern_stats=stats,
        unique_patterns=len(stats),
        outliers=detect_score_outliers(
            records, settings.outlier_threshold, settings.min_outlier_sample
        ),
        rare_patterns=detect_rare_patterns(
            records, settings.rare_pattern_threshold, settings.include_pattern_ids
        ),
        timing_anomalies=detect_timing_anomalies(
            records, settings.timing_threshold, settings.min_timing_days
        ),
        recommendation_issues=detect_recommendation_issues(records),
        recommendation_counts=recommendation_counts(records),
        trends=trends,
        trend_direction=trend_direction(trends),
    )
