"""Telos parser.

Reads a goals document (``telos.md``) into a validated, immutable ``Telos``.

The document is line oriented. ``## <Section>`` lines switch the current
section and every other line is matched against that section's item pattern::

    ## Goals
    - G1: Launch a paid newsletter (Deadline: 2026-03-31)

    ## Stack
    - Primary: Python, FastAPI
    - Secondary: Docker

    ## Failure Patterns
    - Shiny objects: Jumping to new frameworks before shipping

Lines that match nothing are skipped. Validation runs once all lines are read.
"""

import logging
import re
from datetime import datetime
from pathlib import Path
from typing import Optional, Union

from .exceptions import TelosConfigError, TelosNotFoundError, TelosValidationError
from .schema import (
    Challenge,
    FailurePattern,
    Goal,
    Mission,
    Problem,
    Stack,
    Strategy,
    Telos,
)

logger = logging.getLogger(__name__)


STOP_WORDS = frozenset({
    "the", "a", "an", "and", "or", "but", "in", "on", "at", "to", "for", "of",
    "with", "from", "before", "by", "as", "is", "was", "are", "it", "that",
    "this", "be", "been", "being", "have", "has", "had", "do", "does", "did",
    "will", "would", "should", "could", "than", "them", "then", "into",
})

MIN_KEYWORD_LENGTH = 4


def extract_keywords(text: str) -> list[str]:
    """Extract keywords from a failure pattern description.

    Words are lower-cased and stripped of surrounding punctuation. Stop words
    and words shorter than four characters are dropped.
    """
    keywords = []
    for word in text.lower().split():
        word = word.strip(".,!?;:")
        if len(word) >= MIN_KEYWORD_LENGTH and word not in STOP_WORDS:
            keywords.append(word)
    return keywords


def split_list(text: str) -> list[str]:
    """Split a comma separated list, dropping empty entries."""
    return [part.strip() for part in text.split(",") if part.strip()]


class TelosParser:
    """Parses goals documents into ``Telos`` values."""

    # Section name -> id prefix for simple "- X1: description" items
    ID_SECTIONS = {
        "strategies": "S",
        "problems": "P",
        "missions": "M",
        "challenges": "C",
    }

    def __init__(self):
        self.goal_re = re.compile(r"^-\s+(G\d+):\s+(.+?)(?:\s+\(Deadline:\s+(.+?)\))?$")
        self.item_res = {
            section: re.compile(rf"^-\s+({prefix}\d+):\s+(.+)$")
            for section, prefix in self.ID_SECTIONS.items()
        }
        self.pattern_re = re.compile(r"^-\s+([^:]+):\s+(.+)$")
        self.stack_re = re.compile(r"^-\s+(primary|secondary)\s*:(.*)$", re.IGNORECASE)
        self.domain_re = re.compile(r"^-\s+(?:[^:,]+:)?(.+)$")

    def parse_file(self, path: Union[str, Path]) -> Telos:
        """Parse and validate a goals document on disk.

        Raises:
            TelosNotFoundError: If the file does not exist.
            TelosConfigError: If the file cannot be read.
            TelosValidationError: If the parsed document breaks an invariant.
        """
        path = Path(path)
        if not path.is_file():
            raise TelosNotFoundError("telos file not found", str(path))

        try:
            content = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise TelosConfigError(f"cannot read telos file: {e}", str(path)) from e

        telos = self.parse_content(content, source_path=str(path))
        logger.info(
            "Loaded telos from %s: %d goals, %d strategies, %d failure patterns",
            path, len(telos.goals), len(telos.strategies), len(telos.failure_patterns),
        )
        return telos

    def parse_content(self, content: str, source_path: Optional[str] = None) -> Telos:
        """Parse and validate a goals document held in memory."""
        goals: list[Goal] = []
        items: dict[str, list[tuple[str, str]]] = {name: [] for name in self.ID_SECTIONS}
        primary: list[str] = []
        secondary: list[str] = []
        failure_patterns: list[FailurePattern] = []
        domain_keywords: list[str] = []

        section: Optional[str] = None
        for line_no, raw_line in enumerate(content.splitlines(), start=1):
            line = raw_line.strip()
            if not line:
                continue

            if line.startswith("## "):
                section = line[3:].strip().lower()
                continue

            if section == "goals":
                goal = self._parse_goal(line, priority=len(goals) + 1)
                if goal:
                    goals.append(goal)
                    continue
            elif section in self.item_res:
                match = self.item_res[section].match(line)
                if match:
                    items[section].append((match.group(1), match.group(2).strip()))
                    continue
            elif section == "stack":
                match = self.stack_re.match(line)
                if match:
                    techs = split_list(match.group(2))
                    if match.group(1).lower() == "primary":
                        primary = techs
                    else:
                        secondary = techs
                    continue
            elif section == "failure patterns":
                pattern = self._parse_failure_pattern(line)
                if pattern:
                    failure_patterns.append(pattern)
                    continue
            elif section == "domain":
                match = self.domain_re.match(line)
                if match:
                    domain_keywords.extend(kw.lower() for kw in split_list(match.group(1)))
                    continue

            logger.debug("Skipping line %d in section %r: %s", line_no, section, line)

        self._validate(goals, items, failure_patterns, source_path)

        return Telos(
            goals=goals,
            strategies=[Strategy(id=i, description=d) for i, d in items["strategies"]],
            problems=[Problem(id=i, description=d) for i, d in items["problems"]],
            missions=[Mission(id=i, description=d) for i, d in items["missions"]],
            challenges=[Challenge(id=i, description=d) for i, d in items["challenges"]],
            stack=Stack(primary=primary, secondary=secondary),
            failure_patterns=failure_patterns,
            domain_keywords=domain_keywords,
            source_path=source_path,
        )

    def _parse_goal(self, line: str, priority: int) -> Optional[Goal]:
        match = self.goal_re.match(line)
        if not match:
            return None

        deadline = None
        if match.group(3):
            try:
                deadline = datetime.strptime(match.group(3).strip(), "%Y-%m-%d").date()
            except ValueError:
                logger.debug("Dropping unparseable deadline %r for %s", match.group(3), match.group(1))

        return Goal(
            id=match.group(1),
            description=match.group(2).strip(),
            deadline=deadline,
            priority=priority,
        )

    def _parse_failure_pattern(self, line: str) -> Optional[FailurePattern]:
        match = self.pattern_re.match(line)
        if not match:
            return None
        description = match.group(2).strip()
        return FailurePattern(
            name=match.group(1).strip(),
            description=description,
            keywords=extract_keywords(description),
        )

    def _validate(
        self,
        goals: list[Goal],
        items: dict[str, list[tuple[str, str]]],
        failure_patterns: list[FailurePattern],
        source_path: Optional[str],
    ) -> None:
        """Check document invariants, raising on the first failure."""
        if not goals:
            raise TelosValidationError(
                "goals-required", "at least one goal is required", source_path
            )

        sections = {"goals": [(g.id, g.description) for g in goals], **items}
        for section, entries in sections.items():
            seen: set[str] = set()
            for index, (item_id, description) in enumerate(entries):
                if not item_id.strip() or not description.strip():
                    raise TelosValidationError(
                        "non-empty-fields",
                        f"{section} entry {index + 1} needs an id and a description",
                        source_path,
                    )
                if item_id in seen:
                    raise TelosValidationError(
                        "unique-ids", f"duplicate id {item_id} in {section}", source_path
                    )
                seen.add(item_id)

        for index, pattern in enumerate(failure_patterns):
            if not pattern.name or not pattern.description:
                raise TelosValidationError(
                    "non-empty-fields",
                    f"failure pattern {index + 1} needs a name and a description",
                    source_path,
                )


def load_telos(path: Union[str, Path]) -> Telos:
    """Load a goals document.

    Args:
        path: Path to the telos markdown file.

    Returns:
        The validated, frozen Telos.

    Raises:
        TelosConfigError: If the document is missing, unreadable or invalid.
    """
    return TelosParser().parse_file(path)
