"""Rule tables for the idea scoring rubric.

Every factor of the rubric is data: an ordered list of keyword tiers and, for
the stack-overlap factors, a piecewise-linear band over a ratio. The scorer
walks these tables; nothing in here inspects idea text directly.

Tier value::

    base + step * min(count, cap)    clamped to [0, factor max]

where ``count`` is how many of the tier's counted patterns match. The first
tier whose trigger fires wins. All patterns run against lower-cased text.
"""

import re
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Optional


def word(phrase: str) -> str:
    """Regex matching a literal phrase on word boundaries.

    Uses look-arounds instead of ``\\b`` so terms like ``c++`` or ``node.js``
    still match.
    """
    return rf"(?<![a-z0-9]){re.escape(phrase.lower())}(?![a-z0-9])"


def words(*phrases: str) -> tuple[str, ...]:
    return tuple(word(p) for p in phrases)


@lru_cache(maxsize=None)
def compile_pattern(pattern: str) -> re.Pattern:
    return re.compile(pattern, re.IGNORECASE)


def find_matches(patterns: tuple[str, ...], text: str) -> list[str]:
    """Return the literal substring matched by each pattern that fires."""
    found = []
    for pattern in patterns:
        match = compile_pattern(pattern).search(text)
        if match:
            found.append(match.group(0))
    return found


# =============================================================================
# Rule Types
# =============================================================================


@dataclass(frozen=True)
class PiecewiseLinear:
    """Continuous piecewise-linear map defined by ``(x, y)`` knots.

    Inputs below the first knot or above the last are clamped. Knot inputs
    return the knot output exactly.
    """
    knots: tuple[tuple[float, float], ...]

    def __call__(self, x: float) -> float:
        first_x, first_y = self.knots[0]
        if x <= first_x:
            return first_y
        for (x0, y0), (x1, y1) in zip(self.knots, self.knots[1:]):
            if x == x1:
                return y1
            if x < x1:
                return y0 + (x - x0) * (y1 - y0) / (x1 - x0)
        return self.knots[-1][1]


@dataclass(frozen=True)
class Tier:
    """One keyword bucket of a factor."""
    label: str
    when: tuple[str, ...]
    base: float
    step: float = 0.0
    cap: int = 0
    counted: tuple[str, ...] = ()  # defaults to `when`
    unless: tuple[str, ...] = ()
    stack_terms: Optional[str] = None  # "primary" or "all": stack items also trigger
    drop_stack_terms: bool = False  # ignore `when` entries naming a stack technology

    def value(self, count: int) -> float:
        return self.base + self.step * min(count, self.cap)


@dataclass(frozen=True)
class RatioBand:
    """Maps a stack-overlap ratio into a factor value."""
    source: str  # "stack_weighted" or "primary_stack"
    curve: PiecewiseLinear
    grades: tuple[tuple[float, str], ...]  # (min ratio, label), highest first
    missing_value: float
    missing_label: str
    domain_bonus: float = 0.0

    def grade(self, ratio: float) -> str:
        for minimum, label in self.grades:
            if ratio >= minimum:
                return label
        return self.grades[-1][1]


@dataclass(frozen=True)
class FactorRule:
    key: str
    name: str
    max_value: float
    tiers: tuple[Tier, ...] = ()
    ratio: Optional[RatioBand] = None
    default: float = 0.0
    default_label: str = "No signal"


@dataclass(frozen=True)
class GroupRule:
    key: str
    name: str
    max_value: float
    factors: tuple[FactorRule, ...] = field(default_factory=tuple)


# =============================================================================
# Shared Keyword Sets
# =============================================================================


SHIPPING_TERMS = (
    r"\bmvp\b",
    r"\bprototype\b",
    r"\b(v1|version 1|first version)\b",
    r"\b(ship|launch|release)\w*\b",
)

LEARNING_TERMS = (
    r"\blearn\w*\b",
    r"\b(course|tutorial|study|studying|master|mastering)\b",
)

UNFAMILIAR_TECH = words(
    "rust", "golang", "haskell", "elixir", "scala", "kotlin", "swift", "c++",
    "java", "ruby", "php", "unity", "unreal", "flutter", "react native",
    "blockchain", "solidity", "web3", "kubernetes", "new framework", "new language",
)

PERFECTION_TERMS = (
    r"\b(comprehensive|complete|perfect|fully[- ]featured|production[- ]ready|enterprise[- ]grade)\b",
)


# =============================================================================
# Mission Alignment (max 4.0)
# =============================================================================


DOMAIN_EXPERTISE = FactorRule(
    key="domain_expertise",
    name="Domain Expertise",
    max_value=1.2,
    ratio=RatioBand(
        source="stack_weighted",
        curve=PiecewiseLinear(((0.0, 0.0), (0.3, 0.3), (0.5, 0.6), (0.8, 0.9), (1.0, 1.2))),
        grades=(
            (0.8, "Deep expertise: idea sits squarely in the current stack"),
            (0.5, "Solid expertise: most of the idea uses known tools"),
            (0.3, "Partial expertise: some known tools involved"),
            (0.0, "Little expertise: idea mostly outside the current stack"),
        ),
        missing_value=0.5,
        missing_label="No stack configured: neutral expertise",
        domain_bonus=0.2,
    ),
)

AI_ALIGNMENT = FactorRule(
    key="ai_alignment",
    name="AI Alignment",
    max_value=1.5,
    tiers=(
        Tier(
            label="Core AI product: the product itself is an AI system or automation",
            when=(
                r"\bai[- ](powered|agents?|assistants?|systems?|platform|tools?|automation)\b",
                r"\b(llm|gpt|rag)[- ]?(apps?|agents?|pipelines?|tools?|based)\b",
                r"\b(build|create|develop)\w*\s+(an?\s+)?(ai|llm|machine learning|automation)\b",
                r"\bautomation (pipeline|platform|engine|system)s?\b",
            ),
            base=1.2, step=0.1, cap=3,
        ),
        Tier(
            label="Significant AI component: AI integrated into the product",
            when=(
                r"\b(integrat\w*|use|using|leverag\w*|with|powered by)\s+(the\s+)?(ai|gpt|llm|openai|claude|machine learning)\b",
                r"\b(openai|anthropic|langchain|llamaindex|embeddings?|vector (db|database|search))\b",
            ),
            base=0.8, step=0.1, cap=2,
        ),
        Tier(
            label="Minor AI mention: AI is incidental",
            when=(r"\b(ai|artificial intelligence|ml|machine learning|chatbot|smart)\b",),
            base=0.4, step=0.1, cap=1,
        ),
    ),
    default=0.0,
    default_label="No AI component",
)

EXECUTION_SUPPORT = FactorRule(
    key="execution_support",
    name="Execution Support",
    max_value=0.8,
    tiers=(
        Tier(
            label="Learning-first with no shipping plan",
            when=LEARNING_TERMS,
            unless=SHIPPING_TERMS,
            base=0.24, step=-0.05, cap=2,
        ),
        Tier(
            label="Clear 30-day delivery",
            when=(
                r"\b(30|thirty)\s*days?\b",
                r"\b(one|1|a)\s+month\b",
                r"\b([1-4]|one|two|three|four)\s*weeks?\b",
                r"\bthis month\b",
            ),
            counted=SHIPPING_TERMS,
            base=0.65, step=0.05, cap=3,
        ),
        Tier(
            label="60-day delivery",
            when=(
                r"\b(60|sixty)\s*days?\b",
                r"\b(two|2)\s+months\b",
                r"\b([5-8]|five|six|seven|eight)\s*weeks\b",
            ),
            counted=SHIPPING_TERMS,
            base=0.45, step=0.0475, cap=4,
        ),
        Tier(
            label="90-day delivery",
            when=(r"\b(90|ninety)\s*days?\b", r"\b(three|3)\s+months\b", r"\bquarter\b"),
            counted=SHIPPING_TERMS,
            base=0.25, step=0.0475, cap=4,
        ),
        Tier(
            label="Shipping intent without a timeline",
            when=SHIPPING_TERMS,
            base=0.45, step=0.02, cap=4,
        ),
    ),
    default=0.25,
    default_label="No timeline or delivery plan",
)

REVENUE_POTENTIAL = FactorRule(
    key="revenue_potential",
    name="Revenue Potential",
    max_value=0.5,
    tiers=(
        Tier(
            label="Direct revenue model",
            when=(
                r"\b(saas|subscriptions?|recurring revenue|mrr|arr)\b",
                r"\$\s?\d+",
                r"\b(pricing|paid|pay|charge|sell|selling)\b",
            ),
            base=0.4, step=0.05, cap=2,
        ),
        Tier(
            label="Indirect revenue through services or customers",
            when=(
                r"\b(consulting|freelance|client work|services?|lead gen\w*|affiliate|sponsor\w*)\b",
                r"\b(customers?|clients?|business(es)?|market)\b",
            ),
            base=0.25, step=0.07, cap=2,
        ),
        Tier(
            label="Unclear or no revenue",
            when=(r"\b(free|open[- ]source|hobby|for fun|donations?|no revenue)\b",),
            base=0.24, step=-0.08, cap=2,
        ),
    ),
    default=0.1,
    default_label="Revenue not mentioned",
)


# =============================================================================
# Anti-Challenge (max 3.5)
# =============================================================================


CONTEXT_SWITCHING = FactorRule(
    key="context_switching",
    name="Context Switching",
    max_value=1.2,
    tiers=(
        Tier(
            label="Stack violation: requires unfamiliar technology",
            when=UNFAMILIAR_TECH,
            drop_stack_terms=True,
            base=0.29, step=-0.05, cap=5,
        ),
    ),
    ratio=RatioBand(
        source="primary_stack",
        curve=PiecewiseLinear(((0.0, 0.2), (0.4, 0.85), (0.6, 1.05), (1.0, 1.2))),
        grades=(
            (0.6, "Uses the current stack: minimal context switching"),
            (0.4, "Mostly current stack"),
            (0.01, "Some current stack involvement"),
            (0.0, "No current stack mentioned"),
        ),
        missing_value=0.7,
        missing_label="No primary stack configured",
    ),
)

RAPID_PROTOTYPING = FactorRule(
    key="rapid_prototyping",
    name="Rapid Prototyping",
    max_value=1.0,
    tiers=(
        Tier(
            label="Rapid iteration: prototype within days or weeks",
            when=(
                r"\b([1-2]|one|two|a)\s*weeks?\b",
                r"\b(weekend|mvp|prototype|proof of concept|poc)\b",
            ),
            base=0.8, step=0.1, cap=2,
        ),
        Tier(
            label="Perfection-dependent: value only when complete",
            when=(*PERFECTION_TERMS, r"\b(course|book|ebook|curriculum)\b"),
            base=0.24, step=-0.06, cap=2,
        ),
        Tier(
            label="Slow build measured in months",
            when=(r"\b(\d+|two|three|six|several)\s*months\b", r"\b(years?|long[- ]term)\b"),
            base=0.2, step=0.05, cap=2,
        ),
        Tier(
            label="Iterable artifact: small tool that can ship early",
            when=(
                r"\b(tool|script|cli|bot)s?\b",
                r"\b(api|plugin|extension)s?\b",
                r"\b(dashboard|automation|workflow)s?\b",
            ),
            base=0.62, step=0.06, cap=3,
        ),
        Tier(
            label="Moderate build",
            when=(
                r"\b([3-6]|three|four|five|six)\s*weeks\b",
                r"\b(app|platform|marketplace|website)s?\b",
            ),
            base=0.45, step=0.08, cap=2,
        ),
    ),
    default=0.5,
    default_label="No build-speed signal",
)

ACCOUNTABILITY = FactorRule(
    key="accountability",
    name="Accountability",
    max_value=0.8,
    tiers=(
        Tier(
            label="External accountability: customers or commitments",
            when=(
                r"\b(paying )?(customers?|clients?)\b",
                r"\b(pre-?orders?|pre-?sales?|waitlist|beta users|cohort)\b",
                r"\b(contract|deadline with|committed to)\b",
            ),
            base=0.65, step=0.05, cap=3,
        ),
        Tier(
            label="Public commitment",
            when=(
                r"\bbuild(ing)? in public\b",
                r"\b(twitter|linkedin|youtube|newsletter|blog)\b",
                r"\b(share|sharing|publish\w*|open[- ]source|github|demo)\b",
                r"\b(accountability partner|mastermind|public)\b",
            ),
            base=0.45, step=0.063, cap=3,
        ),
        Tier(
            label="Isolated: nobody else is waiting on this",
            when=(
                r"\bjust for me\b",
                r"\b(personal|private|solo|side) project\b",
                r"\b(for myself|only for me|hobby|for fun)\b",
            ),
            base=0.05,
        ),
        Tier(
            label="Weak self-commitment",
            when=(r"\b(personal goal|someday|maybe|eventually|when i have time)\b",),
            base=0.2, step=0.08, cap=1,
        ),
    ),
    default=0.1,
    default_label="No accountability structure",
)

INCOME_URGENCY = FactorRule(
    key="income_urgency",
    name="Income Urgency",
    max_value=0.5,
    tiers=(
        Tier(
            label="Fast income: first revenue within a month",
            when=(
                r"\b(first|quick|fast) (sale|revenue|income|dollar|customer)s?\b",
                r"\b(30|thirty) days?\b.*\b(revenue|income|paid|sales?)\b",
                r"\b(revenue|income|paid|sales?)\b.*\b(30|thirty) days?\b",
            ),
            base=0.4, step=0.05, cap=2,
        ),
        Tier(
            label="Recurring income model",
            when=(r"\b(saas|subscriptions?|recurring|retainer|mrr)\b",),
            base=0.35, step=0.05, cap=1,
        ),
        Tier(
            label="Paid offering",
            when=(r"\b(paid|pricing|charge|sell|freelance|consulting)\b", r"\$\s?\d+"),
            base=0.3,
        ),
        Tier(
            label="Slow income: revenue is far away",
            when=(r"\b(eventually|long[- ]term|next year|6 months|six months|monetize later)\b",),
            base=0.1, step=0.047, cap=1,
        ),
        Tier(
            label="No income path",
            when=(r"\b(free|hobby|donations?|ads|for fun|no revenue)\b",),
            base=0.09, step=-0.03, cap=1,
        ),
    ),
    default=0.1,
    default_label="Income timing unclear",
)


# =============================================================================
# Strategic Fit (max 2.5)
# =============================================================================


STACK_COMPATIBILITY = FactorRule(
    key="stack_compatibility",
    name="Stack Compatibility",
    max_value=1.0,
    tiers=(
        Tier(
            label="Fragmented work: meetings and coordination break flow",
            when=(
                r"\b(meetings?|calls?|coordinat\w*|juggl\w*|context switch\w*)\b",
                r"\b(multiple|many|several) (tools|platforms|stacks|languages)\b",
            ),
            base=0.24, step=-0.04, cap=2,
        ),
        Tier(
            label="Flow-friendly: supports long focused sessions",
            when=(
                r"\b(deep work|focus\w*|systematic|pipelines?|workflows?|automat\w*)\b",
                r"\b(batch|single[- ]purpose|one thing)\b",
            ),
            base=0.8, step=0.1, cap=2,
        ),
        Tier(
            label="Builds on the current stack",
            when=(),
            stack_terms="all",
            base=0.6, step=0.1, cap=4,
        ),
    ),
    default=0.3,
    default_label="No overlap with current stack",
)

SHIPPING_HABIT = FactorRule(
    key="shipping_habit",
    name="Shipping Habit",
    max_value=0.8,
    tiers=(
        Tier(
            label="One-off work with nothing reusable",
            when=(r"\b(one[- ]off|one[- ]time|single[- ]use|custom for|bespoke)\b",),
            base=0.15,
        ),
        Tier(
            label="Reusable asset",
            when=(
                r"\b(reusable|template|boilerplate|library|framework|component|open[- ]source|package)s?\b",
                r"\b(product|saas|platform)\b",
            ),
            base=0.65, step=0.05, cap=3,
        ),
        Tier(
            label="Partially reusable",
            when=(r"\b(tool|script|automation|workflow|api)s?\b",),
            base=0.45, step=0.062, cap=1,
        ),
    ),
    default=0.4,
    default_label="Reuse unclear",
)

PUBLIC_ACCOUNTABILITY = FactorRule(
    key="public_accountability",
    name="Public Accountability",
    max_value=0.4,
    tiers=(
        Tier(
            label="Fast validation in public",
            when=(
                r"\b(landing page|waitlist|pre-?sell|pre-?orders?|survey|interviews?)\b",
                r"\b(launch|post|share|demo)\w* (on|to|in) (twitter|x|reddit|product hunt|hacker news|linkedin|discord)\b",
                r"\bbuild(ing)? in public\b",
            ),
            base=0.32, step=0.04, cap=2,
        ),
        Tier(
            label="Slow validation: hidden until finished",
            when=(r"\b(stealth|secret|private|after (it'?s|it is) (done|finished|perfect))\b",),
            base=0.1,
        ),
        Tier(
            label="Some validation through users or feedback",
            when=(r"\b(beta|feedback|users?|community|audience)\b",),
            base=0.22, step=0.03, cap=1,
        ),
    ),
    default=0.15,
    default_label="No validation plan",
)

REVENUE_MODEL = FactorRule(
    key="revenue_model",
    name="Revenue Model",
    max_value=0.3,
    tiers=(
        Tier(
            label="Scalable recurring model",
            when=(
                r"\b(saas|subscriptions?|recurring|self[- ]serve)\b",
                r"\b(marketplace|platform|api access)\b",
            ),
            base=0.24, step=0.03, cap=2,
        ),
        Tier(
            label="Hybrid product or productized service",
            when=(
                r"\b(templates?|courses?|digital products?|ebooks?|licen[cs]es?)\b",
                r"\b(productized service|done[- ]for[- ]you)\b",
            ),
            base=0.16, step=0.035, cap=2,
        ),
        Tier(
            label="Service revenue that scales with hours",
            when=(r"\b(consulting|freelanc\w*|agency|client work|hourly)\b",),
            base=0.08, step=0.035, cap=1,
        ),
    ),
    default=0.05,
    default_label="No revenue model",
)


# =============================================================================
# Rubric
# =============================================================================


MISSION_ALIGNMENT = GroupRule(
    key="mission",
    name="Mission Alignment",
    max_value=4.0,
    factors=(DOMAIN_EXPERTISE, AI_ALIGNMENT, EXECUTION_SUPPORT, REVENUE_POTENTIAL),
)

ANTI_CHALLENGE = GroupRule(
    key="anti_challenge",
    name="Anti-Challenge",
    max_value=3.5,
    factors=(CONTEXT_SWITCHING, RAPID_PROTOTYPING, ACCOUNTABILITY, INCOME_URGENCY),
)

STRATEGIC_FIT = GroupRule(
    key="strategic",
    name="Strategic Fit",
    max_value=2.5,
    factors=(STACK_COMPATIBILITY, SHIPPING_HABIT, PUBLIC_ACCOUNTABILITY, REVENUE_MODEL),
)

RUBRIC: tuple[GroupRule, ...] = (MISSION_ALIGNMENT, ANTI_CHALLENGE, STRATEGIC_FIT)
