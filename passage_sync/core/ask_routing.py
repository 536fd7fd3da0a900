"""Question normalization and model routing for asking an agent.

``normalize_question`` is shared by the answer cache and the routing heuristic
so that both agree on when two questions are the same.
"""

import re
from dataclasses import dataclass
from typing import Literal

AskRoutingMode = Literal["auto", "quality", "speed"]
ASK_ROUTING_MODES: tuple[str, ...] = ("auto", "quality", "speed")

ASK_DEFAULT_TIMEOUT = 20.0
ASK_DEFAULT_FAST_TIMEOUT = 8.0
ASK_DEFAULT_CACHE_TTL = 180.0

SIMPLE_QUESTION_MAX_CHARS = 280
COMPLEXITY_HINTS = (
    "architecture",
    "design",
    "tradeoff",
    "compare",
    "cross-repo",
    "migration",
    "security",
    "performance",
    "benchmark",
    "root cause",
    "incident",
    "multi-step",
)

_WHITESPACE = re.compile(r"\s+")


@dataclass(frozen=True)
class AskRoutePlan:
    """Which model to ask first, and whether to retry with the default."""

    primary_timeout: float
    fallback_timeout: float
    enable_fallback: bool
    primary_override_model: str | None = None
    fallback_override_model: str | None = None


def normalize_question(question: str) -> str:
    """Trim, collapse whitespace and lowercase a question."""
    return _WHITESPACE.sub(" ", question.strip()).lower()


def is_simple_question(question: str) -> bool:
    """Heuristic for questions a faster model can answer."""
    trimmed = question.strip()
    if not trimmed:
        return False
    if len(trimmed) > SIMPLE_QUESTION_MAX_CHARS:
        return False
    if "\n" in trimmed:
        return False
    normalized = normalize_question(trimmed)
    return not any(hint in normalized for hint in COMPLEXITY_HINTS)


def parse_ask_routing_mode(value: str | None) -> AskRoutingMode:
    if not value:
        return "auto"
    if value in ASK_ROUTING_MODES:
        return value
    raise ValueError(
        f'Invalid routing mode "{value}". Use one of: {", ".join(ASK_ROUTING_MODES)}.'
    )


def build_ask_route_plan(
    routing: AskRoutingMode,
    question: str,
    fast_model: str | None = None,
    ask_timeout: float = ASK_DEFAULT_TIMEOUT,
    fast_ask_timeout: float = ASK_DEFAULT_FAST_TIMEOUT,
) -> AskRoutePlan:
    """Pick the model and timeouts for a question.

    The fast model is only used when one is configured and either the caller
    asked for speed, or routing is automatic and the question looks simple.
    A fast attempt always falls back to the agent's default model.
    """
    trimmed_fast_model = (fast_model or "").strip() or None
    use_fast = trimmed_fast_model is not None and (
        routing == "speed" or (routing == "auto" and is_simple_question(question))
    )

    if use_fast:
        return AskRoutePlan(
            primary_override_model=trimmed_fast_model,
            primary_timeout=fast_ask_timeout,
            fallback_timeout=ask_timeout,
            enable_fallback=True,
        )

    return AskRoutePlan(
        primary_timeout=ask_timeout,
        fallback_timeout=ask_timeout,
        enable_fallback=False,
    )
