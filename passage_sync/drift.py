"""Detect and repair drift between local state and the remote provider."""

import logging
from dataclasses import dataclass, field

from passage_sync.core.passage_map import AgentState, PassageMap, passage_count
from passage_sync.core.reconcile import clean_missing_from_map, compute_reconcile_plan
from passage_sync.exceptions import ProviderError
from passage_sync.provider.base import AgentProvider

logger = logging.getLogger(__name__)


@dataclass
class ReconcileResult:
    """Drift report for one agent."""

    repo_name: str
    local_passage_count: int = 0
    server_passage_count: int = 0
    orphan_passage_ids: list[str] = field(default_factory=list)
    missing_passage_ids: list[str] = field(default_factory=list)
    in_sync: bool = True


def reconcile_agent(provider: AgentProvider, agent: AgentState) -> ReconcileResult:
    """Fetch the server's passages and compare them with the local map."""
    server_passages = provider.list_passages(agent.agent_id)
    plan = compute_reconcile_plan(agent.passages, server_passages)

    result = ReconcileResult(
        repo_name=agent.repo_name,
        local_passage_count=passage_count(agent.passages),
        server_passage_count=len(server_passages),
        orphan_passage_ids=plan.orphan_passage_ids,
        missing_passage_ids=plan.missing_passage_ids,
        in_sync=plan.in_sync,
    )
    if result.in_sync:
        logger.info(f"[{agent.repo_name}] In sync ({result.local_passage_count} passages)")
    else:
        logger.info(
            f"[{agent.repo_name}] Drift detected: "
            f"{len(result.orphan_passage_ids)} orphaned, "
            f"{len(result.missing_passage_ids)} missing"
        )
    return result


def fix_reconcile_drift(
    provider: AgentProvider, agent: AgentState, result: ReconcileResult
) -> PassageMap:
    """Repair detected drift.

    Orphan passages are deleted from the server. A failed orphan delete is
    logged and skipped; the next reconcile will report it again. Missing IDs
    are dropped from the local map.

    Returns:
        Updated passage map. The same object as ``agent.passages`` when no
        missing IDs had to be removed.
    """
    deleted = 0
    for passage_id in result.orphan_passage_ids:
        try:
            provider.delete_passage(agent.agent_id, passage_id)
            deleted += 1
        except ProviderError as e:
            logger.warning(
                f"[{agent.repo_name}] Failed to delete orphan passage {passage_id}: {e}"
            )

    if result.orphan_passage_ids:
        logger.info(
            f"[{agent.repo_name}] Deleted {deleted}/{len(result.orphan_passage_ids)} "
            f"orphan passages"
        )
    return clean_missing_from_map(agent.passages, result.missing_passage_ids)
