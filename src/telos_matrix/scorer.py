"""Idea scorer.

Scores free-text ideas against a Telos using the rubric in ``rules.py``.
Produces a 0-10 score split into three groups of four factors, a
recommendation category and one explanation per factor.
"""

import logging

from .rules import RUBRIC, FactorRule, GroupRule, Tier, find_matches, word, words
from .schema import (
    AntiChallengeScores,
    MissionAlignment,
    Recommendation,
    ScoreBreakdown,
    StrategicFit,
    Telos,
)

logger = logging.getLogger(__name__)


GROUP_MODELS = {
    "mission": MissionAlignment,
    "anti_challenge": AntiChallengeScores,
    "strategic": StrategicFit,
}

EMPTY_TEXT_LABEL = "No signal: idea text is empty"


def clamp(value: float, maximum: float) -> float:
    return max(0.0, min(maximum, value))


class IdeaScorer:
    """Scores ideas against the user's goals.

    Scoring principles:
    - Keyword and ratio rules only, no hidden state
    - The same text and telos always give the same breakdown
    - Every factor explains which rule produced its value
    - Blank text scores zero rather than raising
    """

    def __init__(self, rubric: tuple[GroupRule, ...] = RUBRIC):
        self.rubric = rubric

    def score(self, text: str, telos: Telos) -> ScoreBreakdown:
        """Score one idea.

        Args:
            text: Free-text idea description. May be empty.
            telos: The parsed goals document.

        Returns:
            A new ScoreBreakdown.

        Raises:
            TypeError: If telos is None.
        """
        if telos is None:
            raise TypeError("IdeaScorer.score() requires a Telos, got None")

        text_lower = (text or "").lower()
        blank = not text_lower.strip()

        groups = {}
        explanations: dict[str, str] = {}
        for group in self.rubric:
            values: dict[str, float] = {}
            for rule in group.factors:
                if blank:
                    value, label = 0.0, EMPTY_TEXT_LABEL
                else:
                    value, label = self._score_factor(rule, text_lower, telos)
                values[rule.key] = value
                explanations[rule.name] = f"{label} ({value:.2f}/{rule.max_value:.2f})"
            total = sum(values.values())
            groups[group.key] = GROUP_MODELS[group.key](**values, total=total)

        mission = groups["mission"]
        anti_challenge = groups["anti_challenge"]
        strategic = groups["strategic"]
        raw_score = mission.total + anti_challenge.total + strategic.total
        final_score = self.calibrate(raw_score)

        logger.debug("Scored idea: raw=%.2f final=%.2f", raw_score, final_score)
        return ScoreBreakdown(
            mission=mission,
            anti_challenge=anti_challenge,
            strategic=strategic,
            raw_score=raw_score,
            final_score=final_score,
            recommendation=Recommendation.from_score(final_score),
            explanations=explanations,
        )

    def calibrate(self, raw_score: float) -> float:
        """Map a raw score to the final score.

        Identity for now. Outcome-based calibration plugs in here.
        """
        return raw_score

    def _score_factor(self, rule: FactorRule, text: str, telos: Telos) -> tuple[float, str]:
        """Return (value, label) from the first tier that fires."""
        for tier in rule.tiers:
            triggers = self._tier_triggers(tier, telos)
            fired = find_matches(triggers, text)
            if not fired:
                continue
            if tier.unless and find_matches(tier.unless, text):
                continue
            count = len(find_matches(tier.counted, text)) if tier.counted else len(fired)
            return clamp(tier.value(count), rule.max_value), tier.label

        if rule.ratio:
            return self._score_ratio(rule, text, telos)

        return rule.default, rule.default_label

    def _tier_triggers(self, tier: Tier, telos: Telos) -> tuple[str, ...]:
        triggers = tier.when
        if tier.drop_stack_terms:
            known = {word(item) for item in telos.stack.all_items()}
            triggers = tuple(p for p in triggers if p not in known)
        if tier.stack_terms == "primary":
            triggers += words(*telos.stack.primary)
        elif tier.stack_terms == "all":
            triggers += words(*telos.stack.all_items())
        return triggers

    def _score_ratio(self, rule: FactorRule, text: str, telos: Telos) -> tuple[float, str]:
        """Score a factor from how much of the stack the idea mentions."""
        band = rule.ratio
        primary = telos.stack.primary
        secondary = telos.stack.secondary

        if band.source == "primary_stack":
            total = len(primary)
            hits = len(find_matches(words(*primary), text))
        else:
            # Primary technologies count double
            total = len(primary) + len(secondary)
            hits = 2 * len(find_matches(words(*primary), text)) + len(
                find_matches(words(*secondary), text)
            )

        if total == 0:
            value, label = band.missing_value, band.missing_label
        else:
            ratio = min(1.0, hits / total)
            value = band.curve(ratio)
            label = f"{band.grade(ratio)} (stack overlap {ratio:.0%})"

        if band.domain_bonus and telos.domain_keywords:
            if find_matches(words(*telos.domain_keywords), text):
                value += band.domain_bonus
                label += "; domain match"

        return clamp(value, rule.max_value), label


def scoring_details(breakdown: ScoreBreakdown, rubric: tuple[GroupRule, ...] = RUBRIC) -> list[str]:
    """Per-group and per-factor score lines for display.

    Example::

        Mission Alignment: 2.31/4.00
          Domain Expertise: 0.90/1.20
    """
    lines = []
    models = breakdown.groups()
    for group in rubric:
        model = models[group.key]
        lines.append(f"{group.name}: {model.total:.2f}/{group.max_value:.2f}")
        for rule in group.factors:
            lines.append(f"  {rule.name}: {getattr(model, rule.key):.2f}/{rule.max_value:.2f}")
    return lines
