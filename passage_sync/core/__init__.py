"""Pure sync logic: chunking, passage maps, sync and reconcile plans.

Nothing in this package performs I/O. Functions take values and return new
values, so they can be called from any thread.
"""

from passage_sync.core.ask_routing import (
    AskRoutePlan,
    build_ask_route_plan,
    is_simple_question,
    normalize_question,
    parse_ask_routing_mode,
)
from passage_sync.core.chunker import Chunk, chunk_file
from passage_sync.core.passage_map import AgentState, AppState, PassageMap
from passage_sync.core.reconcile import (
    ReconcilePlan,
    clean_missing_from_map,
    compute_reconcile_plan,
)
from passage_sync.core.sync_plan import SyncPlan, compute_sync_plan

__all__ = [
    # Chunking
    "Chunk",
    "chunk_file",
    # State
    "AgentState",
    "AppState",
    "PassageMap",
    # Planning
    "SyncPlan",
    "compute_sync_plan",
    "ReconcilePlan",
    "compute_reconcile_plan",
    "clean_missing_from_map",
    # Asking
    "AskRoutePlan",
    "build_ask_route_plan",
    "is_simple_question",
    "normalize_question",
    "parse_ask_routing_mode",
]
