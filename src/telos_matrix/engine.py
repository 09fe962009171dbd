"""Idea evaluation engine.

Runs the scorer and the pattern detector over one idea and shapes the
result for a persistence layer.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from pathlib import Path
from typing import Optional, Union

from .detector import PatternDetector
from .schema import (
    DetectedPattern,
    IdeaEvaluation,
    IdeaRecord,
    ScoreBreakdown,
    Telos,
    sort_by_severity,
)
from .scorer import IdeaScorer
from .telos_parser import load_telos

logger = logging.getLogger(__name__)


def serialize_breakdown(breakdown: ScoreBreakdown) -> str:
    """Serialize a breakdown to JSON for storage."""
    return breakdown.model_dump_json()


def deserialize_breakdown(data: Union[str, bytes]) -> ScoreBreakdown:
    """Rebuild a breakdown stored with ``serialize_breakdown``."""
    return ScoreBreakdown.model_validate_json(data)


class IdeaEvaluator:
    """Scores ideas and detects patterns against one Telos.

    Usage:
        evaluator = IdeaEvaluator.from_file("telos.md")
        evaluation = evaluator.evaluate("Build an AI tool for ...")
    """

    def __init__(
        self,
        telos: Telos,
        scorer: Optional[IdeaScorer] = None,
        detector: Optional[PatternDetector] = None,
        include_failure_patterns: bool = True,
    ):
        if telos is None:
            raise TypeError("IdeaEvaluator requires a Telos, got None")
        self.telos = telos
        self.scorer = scorer or IdeaScorer()
        self.detector = detector or PatternDetector()
        self.include_failure_patterns = include_failure_patterns

    @classmethod
    def from_file(cls, path: Union[str, Path], **kwargs) -> "IdeaEvaluator":
        """Load a goals document and build an evaluator for it."""
        return cls(load_telos(path), **kwargs)

    def evaluate(self, text: str, parallel: bool = False) -> IdeaEvaluation:
        """Score one idea and detect its patterns.

        Args:
            text: Free-text idea description.
            parallel: Run scoring and detection on separate worker threads.

        Returns:
            The combined IdeaEvaluation.
        """
        if parallel:
            with ThreadPoolExecutor(max_workers=2) as pool:
                breakdown_future = pool.submit(self.scorer.score, text, self.telos)
                patterns_future = pool.submit(self._detect, text)
                breakdown = breakdown_future.result()
                patterns = patterns_future.result()
        else:
            breakdown = self.scorer.score(text, self.telos)
            patterns = self._detect(text)

        logger.debug(
            "Evaluated idea: final=%.2f recommendation=%s patterns=%d",
            breakdown.final_score, breakdown.recommendation.value, len(patterns),
        )
        return IdeaEvaluation(
            raw_score=breakdown.raw_score,
            final_score=breakdown.final_score,
            recommendation=breakdown.recommendation,
            recommendation_label=breakdown.recommendation.label,
            patterns=[p.message for p in patterns],
            detected_patterns=patterns,
            breakdown=breakdown,
            breakdown_json=serialize_breakdown(breakdown),
        )

    def _detect(self, text: str) -> list[DetectedPattern]:
        patterns = self.detector.detect(text, self.telos)
        if self.include_failure_patterns:
            patterns += self.detector.detect_failure_patterns(text, self.telos)
        return sort_by_severity(patterns)


def to_record(
    evaluation: IdeaEvaluation,
    created_at: datetime,
    idea_id: Optional[str] = None,
    content: Optional[str] = None,
) -> IdeaRecord:
    """Build the analytics view of an evaluated idea."""
    return IdeaRecord(
        id=idea_id,
        content=content,
        final_score=evaluation.final_score,
        patterns=evaluation.patterns,
        created_at=created_at,
        recommendation=evaluation.recommendation_label,
    )
