"""Ask an agent a question, with answer caching and model routing."""

import logging
from dataclasses import dataclass

from passage_sync.answer_cache import (
    AnswerCacheKey,
    InMemoryAnswerCache,
    to_model_cache_key,
)
from passage_sync.core.ask_routing import (
    ASK_DEFAULT_FAST_TIMEOUT,
    ASK_DEFAULT_TIMEOUT,
    AskRoutingMode,
    build_ask_route_plan,
)
from passage_sync.core.passage_map import AgentState
from passage_sync.exceptions import ProviderError
from passage_sync.provider.base import AgentProvider

logger = logging.getLogger(__name__)


@dataclass
class AskResult:
    """Answer text and where it came from."""

    answer: str
    cached: bool
    model_key: str


def ask_agent(
    provider: AgentProvider,
    cache: InMemoryAnswerCache,
    agent: AgentState,
    question: str,
    *,
    routing: AskRoutingMode = "auto",
    fast_model: str | None = None,
    ask_timeout: float = ASK_DEFAULT_TIMEOUT,
    fast_ask_timeout: float = ASK_DEFAULT_FAST_TIMEOUT,
    ttl: float | None = None,
) -> AskResult:
    """Answer a question about a repo, reusing cached answers when possible.

    The cache is keyed by the agent's last sync commit, so answers produced
    before the most recent sync are never returned.

    Args:
        provider: Remote memory provider
        cache: Answer cache shared between calls
        agent: State of the agent to ask
        question: Question text
        routing: Routing mode for choosing the fast model
        fast_model: Optional cheaper model for simple questions
        ask_timeout: Timeout in seconds for the default model
        fast_ask_timeout: Timeout in seconds for the fast model
        ttl: Cache lifetime in seconds, or None for the cache default

    Returns:
        AskResult with the answer

    Raises:
        ProviderError: If the agent could not be asked
    """
    plan = build_ask_route_plan(
        routing, question, fast_model, ask_timeout, fast_ask_timeout
    )
    primary_key = to_model_cache_key(plan.primary_override_model)

    cached = cache.get(_cache_key(agent, question, primary_key))
    if cached is not None:
        logger.debug(f"[{agent.repo_name}] Answer cache hit ({primary_key})")
        return AskResult(answer=cached, cached=True, model_key=primary_key)

    model_key = primary_key
    try:
        answer = provider.send_message(
            agent.agent_id,
            question,
            override_model=plan.primary_override_model,
            timeout=plan.primary_timeout,
        )
    except ProviderError as e:
        if not plan.enable_fallback:
            raise
        logger.info(
            f"[{agent.repo_name}] {primary_key} failed ({e}), retrying with default model"
        )
        model_key = to_model_cache_key(plan.fallback_override_model)
        answer = provider.send_message(
            agent.agent_id,
            question,
            override_model=plan.fallback_override_model,
            timeout=plan.fallback_timeout,
        )

    if answer:
        cache.set(_cache_key(agent, question, model_key), answer, ttl)
    return AskResult(answer=answer, cached=False, model_key=model_key)


def _cache_key(agent: AgentState, question: str, model_key: str) -> AnswerCacheKey:
    return AnswerCacheKey(
        agent_id=agent.agent_id,
        question=question,
        model_key=model_key,
        last_sync_commit=agent.last_sync_commit,
    )
