"""Shared constants and record builders for the telos idea matrix tests."""

from datetime import datetime, timedelta
from pathlib import Path
from typing import Optional

from telos_matrix.schema import Goal, IdeaRecord, Stack, Telos


FIXTURES_DIR = Path(__file__).parent / "fixtures"
TELOS_PATH = FIXTURES_DIR / "telos.md"

STRONG_IDEA = (
    "Build an AI-powered automation tool in Python with FastAPI and OpenAI; "
    "ship an MVP in 2 weeks, sell a $29/month SaaS subscription to paying "
    "customers and build in public on Twitter"
)

WEAK_IDEA = (
    "Learn Rust and Haskell first, then maybe build a comprehensive course "
    "someday, just for me"
)

BASE_TIME = datetime(2026, 1, 5, 9, 0, 0)


def make_telos(primary: list[str], secondary: Optional[list[str]] = None) -> Telos:
    return Telos(
        goals=[Goal(id="G1", description="Ship something")],
        stack=Stack(primary=primary, secondary=secondary or []),
    )


def make_idea(
    score: float,
    patterns: tuple[str, ...] = (),
    recommendation: str = "consider",
    created_at: Optional[datetime] = None,
    idea_id: Optional[str] = None,
) -> IdeaRecord:
    return IdeaRecord(
        id=idea_id,
        final_score=score,
        patterns=list(patterns),
        created_at=created_at or BASE_TIME,
        recommendation=recommendation,
    )


def days_after(days: int, hours: int = 0) -> datetime:
    return BASE_TIME + timedelta(days=days, hours=hours)
