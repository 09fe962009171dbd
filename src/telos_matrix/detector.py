"""Pattern detector.

Flags behavioural anti-patterns in idea text. Each family is a plain
function ``(text, telos) -> Optional[DetectedPattern]``; ``DETECTORS`` runs
them in a fixed order. Detection is textual only and never looks at scores.
"""

import logging
import re
from typing import Callable, Optional

from .rules import PERFECTION_TERMS, UNFAMILIAR_TECH, find_matches, word, words
from .schema import DetectedPattern, PatternType, Severity, Telos

logger = logging.getLogger(__name__)


Detector = Callable[[str, Telos], Optional[DetectedPattern]]


BOUNDED_TIMELINE_TERMS = (
    r"\b(mvp|v1|prototype|beta|first version)\b",
    r"\b\d+\s*(days?|weeks?)\b",
    r"\b(one|two|three|four|a) (days?|weeks?)\b",
    r"\b(deadline|timebox\w*|time-box\w*)\b",
    r"\bby (end of )?(jan|feb|mar|apr|may|jun|jul|aug|sep|oct|nov|dec)\w*\b",
    r"\b\d{4}-\d{2}-\d{2}\b",
)

ISOLATION_TERMS = words(
    "just for me", "only for me", "for myself", "personal project",
    "solo project", "private project", "keep it private",
)

PUBLIC_TERMS = words(
    "build in public", "building in public", "public", "share", "sharing",
    "publish", "github", "twitter", "linkedin", "customers", "users",
    "community", "open source", "audience", "launch",
)

SCOPE_CREEP_STRONG = (
    r"\ball[- ]in[- ]one\b",
    r"\bone[- ]stop[- ]shop\b",
    r"\bevery (feature|platform|integration)s?\b",
)

SCOPE_CREEP_TERMS = (
    *SCOPE_CREEP_STRONG,
    r"\band also\b",
    r"\bas well as\b",
    r"\b(plus|also) (add|support|build|include)\w*\b",
    r"\bmultiple (platforms|products|apps|features)\b",
    r"\b(eventually|later) (add|expand|support)\w*\b",
)


def detect_context_switching(text: str, telos: Telos) -> Optional[DetectedPattern]:
    """Unfamiliar technology outweighing the current stack, or the reverse."""
    stack = telos.stack.all_items()
    known = {word(item) for item in stack}
    unfamiliar = find_matches(tuple(p for p in UNFAMILIAR_TECH if p not in known), text)
    familiar = find_matches(words(*stack), text)

    if unfamiliar and len(familiar) <= len(unfamiliar):
        return DetectedPattern(
            name="Context switching",
            pattern_type=PatternType.CONTEXT_SWITCHING,
            severity=Severity.HIGH,
            matches=unfamiliar,
            message="Context-switching risk: idea needs technology outside your stack",
            suggestion=(
                f"Rebuild the idea on {', '.join(telos.stack.primary)}"
                if telos.stack.primary
                else "Pick tools you already ship with"
            ),
        )
    if familiar and len(familiar) > len(unfamiliar):
        return DetectedPattern(
            name="Context switching",
            pattern_type=PatternType.CONTEXT_SWITCHING,
            severity=Severity.POSITIVE,
            matches=familiar,
            message="Uses your current stack",
        )
    return None


def detect_perfectionism(text: str, telos: Telos) -> Optional[DetectedPattern]:
    """Completeness language with no bounded timeline."""
    hits = find_matches(PERFECTION_TERMS, text)
    if not hits or find_matches(BOUNDED_TIMELINE_TERMS, text):
        return None
    return DetectedPattern(
        name="Perfectionism",
        pattern_type=PatternType.PERFECTIONISM,
        severity=Severity.HIGH,
        matches=hits,
        message="Scope creep risk: over-engineering detected",
        suggestion="Define an MVP that ships in 30 days or less",
    )


def detect_procrastination(text: str, telos: Telos) -> Optional[DetectedPattern]:
    """A learn* token together with before/then."""
    tokens = re.findall(r"[a-z]+", text)
    learn = [t for t in tokens if t.startswith("learn")]
    sequence = [t for t in tokens if t in ("before", "then")]
    if not learn or not sequence:
        return None
    return DetectedPattern(
        name="Procrastination",
        pattern_type=PatternType.PROCRASTINATION,
        severity=Severity.CRITICAL,
        matches=[learn[0], sequence[0]],
        message="Consumption trap: learning before building",
        suggestion="Build first and learn what the build demands",
    )


def detect_accountability_avoidance(text: str, telos: Telos) -> Optional[DetectedPattern]:
    """Isolation phrases without any public or sharing phrase."""
    isolated = find_matches(ISOLATION_TERMS, text)
    public = find_matches(PUBLIC_TERMS, text)
    if isolated and not public:
        return DetectedPattern(
            name="Accountability avoidance",
            pattern_type=PatternType.ACCOUNTABILITY_AVOIDANCE,
            severity=Severity.MEDIUM,
            matches=isolated,
            message="No external accountability: nobody is waiting for this",
            suggestion="Share progress publicly or find one user who needs it",
        )
    if public:
        return DetectedPattern(
            name="Accountability avoidance",
            pattern_type=PatternType.ACCOUNTABILITY_AVOIDANCE,
            severity=Severity.POSITIVE,
            matches=public,
            message="Has public accountability",
        )
    return None


def detect_scope_creep(text: str, telos: Telos) -> Optional[DetectedPattern]:
    """Feature piling: one all-in-one phrase, or two or more additive phrases."""
    hits = find_matches(SCOPE_CREEP_TERMS, text)
    if not find_matches(SCOPE_CREEP_STRONG, text) and len(hits) < 2:
        return None
    return DetectedPattern(
        name="Scope creep",
        pattern_type=PatternType.SCOPE_CREEP,
        severity=Severity.HIGH if len(hits) >= 3 else Severity.MEDIUM,
        matches=hits,
        message="Feature piling: the idea keeps growing before it ships",
        suggestion="Cut to one core workflow and park the rest",
    )


DETECTORS: tuple[Detector, ...] = (
    detect_context_switching,
    detect_perfectionism,
    detect_procrastination,
    detect_accountability_avoidance,
    detect_scope_creep,
)


class PatternDetector:
    """Runs the anti-pattern families over idea text.

    Each family fires at most once per idea. Several families can fire on
    the same text.
    """

    def __init__(self, detectors: tuple[Detector, ...] = DETECTORS):
        self.detectors = detectors

    def detect(self, text: str, telos: Telos) -> list[DetectedPattern]:
        """Run every family in order and collect the matches."""
        if telos is None:
            raise TypeError("PatternDetector.detect() requires a Telos, got None")

        text_lower = (text or "").lower()
        found = []
        for detector in self.detectors:
            pattern = detector(text_lower, telos)
            if pattern is not None:
                found.append(pattern)
        logger.debug("Detected %d patterns", len(found))
        return found

    def detect_failure_patterns(self, text: str, telos: Telos) -> list[DetectedPattern]:
        """Match the telos Failure Patterns section against the idea.

        A pattern fires when two of its keywords appear, or one when it has
        three keywords or fewer. This is a weak signal kept apart from the
        five families.
        """
        text_lower = (text or "").lower()
        found = []
        for failure in telos.failure_patterns:
            keywords = list(dict.fromkeys(failure.keywords))
            if not keywords:
                continue
            matched = [kw for kw in keywords if find_matches((word(kw),), text_lower)]
            threshold = 1 if len(keywords) <= 3 else 2
            if len(matched) < threshold:
                continue
            confidence = len(matched) / len(keywords)
            found.append(DetectedPattern(
                name=failure.name,
                pattern_type=PatternType.FAILURE_PATTERN,
                severity=Severity.HIGH if confidence > 0.7 else Severity.MEDIUM,
                matches=matched,
                message=f"{failure.name}: {failure.description}",
            ))
        return found
