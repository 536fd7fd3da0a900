"""Read an agent's core memory block by block."""

import logging
from collections.abc import Iterable

from passage_sync.exceptions import NotFoundError
from passage_sync.provider.base import AgentProvider, CoreMemoryBlock

logger = logging.getLogger(__name__)

# Standard memory block labels used across agents
BLOCK_LABELS: tuple[str, ...] = ("persona", "architecture", "conventions")


def get_core_memory(
    provider: AgentProvider,
    agent_id: str,
    labels: Iterable[str] = BLOCK_LABELS,
) -> list[CoreMemoryBlock]:
    """Fetch the named memory blocks of an agent.

    A block that does not exist is treated as absent and skipped, so one
    missing label does not abort the whole retrieval. Any other provider
    error propagates.

    Args:
        provider: Provider to read from
        agent_id: Agent whose memory is read
        labels: Block labels to fetch, in output order

    Returns:
        Blocks that exist, in the order of ``labels``
    """
    blocks: list[CoreMemoryBlock] = []
    for label in labels:
        try:
            block = provider.get_block(agent_id, label)
        except NotFoundError:
            logger.debug(f"Agent {agent_id} has no '{label}' memory block, skipping")
            continue
        blocks.append(CoreMemoryBlock(label=label, value=block.value, limit=block.limit))
    return blocks
