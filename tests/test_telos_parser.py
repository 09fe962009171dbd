"""Tests for the telos parser."""

from datetime import date

import pytest
from pydantic import ValidationError

from telos_matrix.exceptions import (
    TelosConfigError,
    TelosNotFoundError,
    TelosValidationError,
)
from telos_matrix.telos_parser import TelosParser, extract_keywords, load_telos

from helpers import FIXTURES_DIR, TELOS_PATH


class TestFullDocument:
    """Parsing the full fixture document."""

    def test_goals_in_order_with_priorities(self, telos):
        assert [g.id for g in telos.goals] == ["G1", "G2", "G3"]
        assert [g.priority for g in telos.goals] == [1, 2, 3]
        assert telos.goals[0].description == "Launch one paid product"

    def test_goal_deadline_parsed(self, telos):
        assert telos.goals[0].deadline == date(2026, 12, 31)

    def test_bad_deadline_dropped(self, telos):
        goal = telos.goals[1]
        assert goal.deadline is None
        assert goal.description == "Reach 100 newsletter subscribers"

    def test_goal_without_deadline(self, telos):
        assert telos.goals[2].deadline is None
        assert telos.goals[2].description == "Ship a small tool every month"

    def test_strategies(self, telos):
        assert [s.id for s in telos.strategies] == ["S1", "S2"]
        assert "Build in public" in telos.strategies[0].description

    def test_problems_missions_challenges(self, telos):
        assert [p.id for p in telos.problems] == ["P1", "P2"]
        assert [m.id for m in telos.missions] == ["M1", "M2"]
        assert [c.id for c in telos.challenges] == ["C1"]
        assert "Ship profitable SaaS" in telos.missions[0].description

    def test_stack(self, telos):
        assert telos.stack.primary == ["Python", "FastAPI", "OpenAI"]
        assert telos.stack.secondary == ["Docker", "PostgreSQL"]
        assert telos.stack.all_items() == ["Python", "FastAPI", "OpenAI", "Docker", "PostgreSQL"]

    def test_domain_keywords(self, telos):
        assert telos.domain_keywords == ["hospitality", "hotel"]

    def test_failure_patterns_with_keywords(self, telos):
        names = [p.name for p in telos.failure_patterns]
        assert names == ["Shiny objects", "Tutorial hell"]
        assert telos.failure_patterns[0].keywords == ["jumping", "frameworks", "shipping", "anything"]

    def test_source_path_recorded(self, telos):
        assert telos.source_path == str(TELOS_PATH)

    def test_telos_is_frozen(self, telos):
        with pytest.raises(ValidationError):
            telos.goals = []


class TestMinimalDocument:
    """Missing sections produce empty lists."""

    def test_minimal(self):
        telos = load_telos(FIXTURES_DIR / "minimal_telos.md")
        assert len(telos.goals) == 1
        assert telos.strategies == []
        assert telos.problems == []
        assert telos.failure_patterns == []
        assert telos.stack.is_empty()


class TestPermissiveParsing:
    """Unknown content is skipped rather than rejected."""

    def test_unmatched_lines_skipped(self):
        content = (
            "## Goals\n"
            "- G1: Ship the thing\n"
            "Some prose in the middle\n"
            "- not a goal line\n"
            "## Random Section\n"
            "- X1: ignored\n"
        )
        telos = TelosParser().parse_content(content)
        assert [g.id for g in telos.goals] == ["G1"]

    def test_stack_labels_case_insensitive(self):
        content = "## Goals\n- G1: Ship\n## Stack\n- primary: Go, Postgres\n"
        telos = TelosParser().parse_content(content)
        assert telos.stack.primary == ["Go", "Postgres"]

    def test_stack_list_drops_empty_entries(self):
        content = "## Goals\n- G1: Ship\n## Stack\n- Primary: Python, , Django,\n"
        telos = TelosParser().parse_content(content)
        assert telos.stack.primary == ["Python", "Django"]


class TestValidation:
    """Invariant failures are fatal and name the broken rule."""

    def test_no_goals(self):
        with pytest.raises(TelosValidationError) as exc_info:
            TelosParser().parse_content("## Strategies\n- S1: Do things\n")
        assert exc_info.value.invariant == "goals-required"
        assert "at least one goal" in exc_info.value.message

    def test_duplicate_goal_ids(self):
        content = "## Goals\n- G1: First\n- G1: Second\n"
        with pytest.raises(TelosValidationError) as exc_info:
            TelosParser().parse_content(content)
        assert exc_info.value.invariant == "unique-ids"

    def test_blank_failure_pattern_name(self):
        content = "## Goals\n- G1: Ship\n## Failure Patterns\n-   : something vague\n"
        with pytest.raises(TelosValidationError) as exc_info:
            TelosParser().parse_content(content)
        assert exc_info.value.invariant == "non-empty-fields"

    def test_validation_error_is_config_error(self):
        with pytest.raises(TelosConfigError):
            TelosParser().parse_content("")

    def test_missing_file(self, tmp_path):
        missing = tmp_path / "nope.md"
        with pytest.raises(TelosNotFoundError) as exc_info:
            load_telos(missing)
        assert isinstance(exc_info.value, TelosConfigError)
        assert not isinstance(exc_info.value, OSError)
        assert exc_info.value.path == str(missing)

    def test_file_without_goals(self, tmp_path):
        path = tmp_path / "telos.md"
        path.write_text("## Stack\n- Primary: Python\n", encoding="utf-8")
        with pytest.raises(TelosValidationError) as exc_info:
            load_telos(path)
        assert str(path) in exc_info.value.message


class TestKeywordExtraction:
    """Failure pattern keyword extraction."""

    def test_stop_words_and_short_words_removed(self):
        assert extract_keywords("Jumping to new frameworks before shipping anything!") == [
            "jumping", "frameworks", "shipping", "anything",
        ]

    def test_punctuation_stripped_and_lowercased(self):
        assert extract_keywords("Building, Polishing; Waiting.") == ["building", "polishing", "waiting"]

    def test_empty(self):
        assert extract_keywords("") == []
