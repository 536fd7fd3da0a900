"""Remote memory providers.

This module provides:
- AgentProvider: Abstract interface to a remote agent memory store
- LettaProvider: HTTP implementation for a Letta server
- get_core_memory: Block-by-block core memory retrieval
"""

from passage_sync.provider.admin import BLOCK_LABELS, get_core_memory
from passage_sync.provider.base import (
    AgentProvider,
    CoreMemoryBlock,
    MemoryBlock,
    Passage,
)
from passage_sync.provider.letta import LettaProvider, is_transient_error

__all__ = [
    # Interface
    "AgentProvider",
    # Records
    "CoreMemoryBlock",
    "MemoryBlock",
    "Passage",
    # Implementations
    "LettaProvider",
    "is_transient_error",
    # Admin
    "BLOCK_LABELS",
    "get_core_memory",
]
