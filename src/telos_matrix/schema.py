"""Pydantic models for the telos idea matrix.

Input schemas for the goals document and idea records, and output schemas
for score breakdowns, detected patterns and batch analytics.
"""

from datetime import date, datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


# =============================================================================
# Goals Configuration (Telos)
# =============================================================================


class Goal(BaseModel):
    """A dated objective from the Goals section."""
    model_config = ConfigDict(frozen=True)

    id: str
    description: str
    deadline: Optional[date] = None
    priority: int = Field(0, description="1-based position in the document")


class Strategy(BaseModel):
    """How the user intends to reach the goals."""
    model_config = ConfigDict(frozen=True)

    id: str
    description: str


class Problem(BaseModel):
    """A problem statement from the Problems section."""
    model_config = ConfigDict(frozen=True)

    id: str
    description: str


class Mission(BaseModel):
    """A long-running mission from the Missions section."""
    model_config = ConfigDict(frozen=True)

    id: str
    description: str


class Challenge(BaseModel):
    """A known constraint from the Challenges section."""
    model_config = ConfigDict(frozen=True)

    id: str
    description: str


class Stack(BaseModel):
    """Technologies the user already works in."""
    model_config = ConfigDict(frozen=True)

    primary: list[str] = Field(default_factory=list)
    secondary: list[str] = Field(default_factory=list)

    def all_items(self) -> list[str]:
        """Primary then secondary technologies, in document order."""
        return [*self.primary, *self.secondary]

    def is_empty(self) -> bool:
        return not self.primary and not self.secondary


class FailurePattern(BaseModel):
    """A named way the user's past projects tend to fail."""
    model_config = ConfigDict(frozen=True)

    name: str
    description: str
    keywords: list[str] = Field(
        default_factory=list,
        description="Derived from the description; weak secondary signal only"
    )


class Telos(BaseModel):
    """The parsed goals document.

    Built once by ``telos_parser.load_telos`` and passed explicitly to the
    scorer and detector. Frozen after construction.
    """
    model_config = ConfigDict(frozen=True)

    goals: list[Goal]
    strategies: list[Strategy] = Field(default_factory=list)
    stack: Stack = Field(default_factory=Stack)
    failure_patterns: list[FailurePattern] = Field(default_factory=list)
    problems: list[Problem] = Field(default_factory=list)
    missions: list[Mission] = Field(default_factory=list)
    challenges: list[Challenge] = Field(default_factory=list)
    domain_keywords: list[str] = Field(default_factory=list)
    source_path: Optional[str] = None


# =============================================================================
# Scoring
# =============================================================================


class Recommendation(str, Enum):
    """Recommendation category derived from the final score."""
    PRIORITY = "priority"
    GOOD = "good"
    CONSIDER = "consider"
    AVOID = "avoid"

    @classmethod
    def from_score(cls, score: float) -> "Recommendation":
        """Map a final score onto the fixed threshold ladder.

        Thresholds are checked in descending order with ``>=`` so a score
        sitting exactly on a boundary lands in the higher category.
        """
        for threshold, category in RECOMMENDATION_LADDER:
            if score >= threshold:
                return category
        return cls.AVOID

    @property
    def label(self) -> str:
        """Fixed display label for this category."""
        return RECOMMENDATION_LABELS[self]


RECOMMENDATION_LADDER: tuple[tuple[float, Recommendation], ...] = (
    (8.5, Recommendation.PRIORITY),
    (7.0, Recommendation.GOOD),
    (5.0, Recommendation.CONSIDER),
)

RECOMMENDATION_LABELS: dict[Recommendation, str] = {
    Recommendation.PRIORITY: "PRIORITIZE NOW",
    Recommendation.GOOD: "GOOD ALIGNMENT",
    Recommendation.CONSIDER: "CONSIDER LATER",
    Recommendation.AVOID: "AVOID FOR NOW",
}


class MissionAlignment(BaseModel):
    """Mission Alignment group (max 4.0)."""
    model_config = ConfigDict(frozen=True)

    domain_expertise: float = Field(0.0, ge=0.0, le=1.2)
    ai_alignment: float = Field(0.0, ge=0.0, le=1.5)
    execution_support: float = Field(0.0, ge=0.0, le=0.8)
    revenue_potential: float = Field(0.0, ge=0.0, le=0.5)
    total: float = 0.0


class AntiChallengeScores(BaseModel):
    """Anti-Challenge group (max 3.5)."""
    model_config = ConfigDict(frozen=True)

    context_switching: float = Field(0.0, ge=0.0, le=1.2)
    rapid_prototyping: float = Field(0.0, ge=0.0, le=1.0)
    accountability: float = Field(0.0, ge=0.0, le=0.8)
    income_urgency: float = Field(0.0, ge=0.0, le=0.5)
    total: float = 0.0


class StrategicFit(BaseModel):
    """Strategic Fit group (max 2.5)."""
    model_config = ConfigDict(frozen=True)

    stack_compatibility: float = Field(0.0, ge=0.0, le=1.0)
    shipping_habit: float = Field(0.0, ge=0.0, le=0.8)
    public_accountability: float = Field(0.0, ge=0.0, le=0.4)
    revenue_model: float = Field(0.0, ge=0.0, le=0.3)
    total: float = 0.0


class ScoreBreakdown(BaseModel):
    """Full result of scoring one idea.

    ``final_score`` is currently equal to ``raw_score``. It is kept separate
    so outcome-based calibration can be added without changing consumers.
    """
    model_config = ConfigDict(frozen=True)

    mission: MissionAlignment
    anti_challenge: AntiChallengeScores
    strategic: StrategicFit
    raw_score: float
    final_score: float
    recommendation: Recommendation
    explanations: dict[str, str] = Field(default_factory=dict)

    def groups(self) -> dict[str, BaseModel]:
        """Group key to group model, in rubric order."""
        return {
            "mission": self.mission,
            "anti_challenge": self.anti_challenge,
            "strategic": self.strategic,
        }


# =============================================================================
# Pattern Detection
# =============================================================================


class Severity(str, Enum):
    """Severity of a detected pattern. Used for display ordering only."""
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    POSITIVE = "positive"

    @property
    def rank(self) -> int:
        """Lower rank sorts first (Critical = 0)."""
        return list(Severity).index(self)


class PatternType(str, Enum):
    """Anti-pattern family."""
    CONTEXT_SWITCHING = "context_switching"
    PERFECTIONISM = "perfectionism"
    PROCRASTINATION = "procrastination"
    ACCOUNTABILITY_AVOIDANCE = "accountability_avoidance"
    SCOPE_CREEP = "scope_creep"
    FAILURE_PATTERN = "failure_pattern"  # from the telos Failure Patterns section

    @property
    def display_name(self) -> str:
        return self.value.replace("_", " ").title()


class DetectedPattern(BaseModel):
    """One anti-pattern family match in an idea's text."""
    model_config = ConfigDict(frozen=True)

    name: str
    pattern_type: PatternType
    severity: Severity
    matches: list[str] = Field(default_factory=list, description="Literal substrings that fired")
    message: str
    suggestion: Optional[str] = None


def sort_by_severity(patterns: list[DetectedPattern]) -> list[DetectedPattern]:
    """Order patterns Critical first, keeping detection order within a level."""
    return sorted(patterns, key=lambda p: p.severity.rank)


# =============================================================================
# Idea Records and Evaluation Output
# =============================================================================


class IdeaEvaluation(BaseModel):
    """Scores and patterns for one idea, shaped for a persistence layer."""
    raw_score: float
    final_score: float
    recommendation: Recommendation
    recommendation_label: str
    patterns: list[str] = Field(default_factory=list)
    detected_patterns: list[DetectedPattern] = Field(default_factory=list)
    breakdown: ScoreBreakdown
    breakdown_json: str = Field(..., description="Serialized breakdown for later re-display")


class IdeaRecord(BaseModel):
    """A previously scored idea as seen by the analytics engine.

    Only ``final_score``, ``patterns``, ``created_at`` and ``recommendation``
    are used. Any other stored fields are ignored.
    """
    model_config = ConfigDict(extra="ignore")

    id: Optional[str] = None
    content: Optional[str] = None
    final_score: float
    patterns: list[str] = Field(default_factory=list)
    created_at: datetime
    recommendation: str

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v: Any) -> Optional[str]:
        """Accept integer ids from stores that use them."""
        if v is None:
            return None
        return str(v)

    @field_validator("patterns", mode="before")
    @classmethod
    def coerce_patterns(cls, v: Any) -> list[str]:
        if v is None:
            return []
        return v


# =============================================================================
# Analytics Output
# =============================================================================


class PatternStat(BaseModel):
    """How often a pattern string appears across a batch."""
    pattern: str
    count: int
    percentage: float


class ScoreOutlier(BaseModel):
    """An idea whose score sits far from the batch mean."""
    idea_id: str
    score: float
    deviation: float = Field(..., description="|score - mean| / stddev")
    above_mean: bool


class RarePattern(BaseModel):
    """A pattern seen in fewer ideas than the rarity threshold."""
    pattern: str
    count: int
    percentage: float
    idea_ids: list[str] = Field(default_factory=list)


class TimingAnomaly(BaseModel):
    """A day whose capture count deviates from the usual daily count."""
    day: date
    count: int
    expected: float
    ratio: float = Field(..., description="count / expected")
    deviation: float = Field(..., description="|count - expected| / stddev")


class RecommendationIssue(BaseModel):
    """A stored recommendation label that disagrees with its score."""
    idea_id: str
    score: float
    recommendation: str
    reason: str


class TrendDirection(str, Enum):
    """Direction of average score between the first and second half of a series."""
    IMPROVING = "improving"
    DECLINING = "declining"
    STABLE = "stable"


class TrendPoint(BaseModel):
    """Aggregated scores for one period (day, week or month)."""
    period: str
    average_score: float
    count: int
    max_score: float


class AnalyticsSnapshot(BaseModel):
    """Aggregate statistics over a batch of scored ideas."""
    total_ideas: int
    mean: float
    median: float
    std_dev: float
    min_score: float
    max_score: float
    percentiles: dict[str, float] = Field(default_factory=dict)
    distribution: dict[str, int] = Field(default_factory=dict)
    pattern_stats: list[PatternStat] = Field(default_factory=list)
    unique_patterns: int = 0
    outliers: list[ScoreOutlier] = Field(default_factory=list)
    rare_patterns: list[RarePattern] = Field(default_factory=list)
    timing_anomalies: list[TimingAnomaly] = Field(default_factory=list)
    recommendation_issues: list[RecommendationIssue] = Field(default_factory=list)
    recommendation_counts: dict[str, int] = Field(default_factory=dict)
    trends: list[TrendPoint] = Field(default_factory=list)
    trend_direction: TrendDirection = TrendDirection.STABLE
