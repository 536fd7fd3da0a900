"""Apply sync plans against a remote provider.

Components:
- sync_repo: Delete stale passages and re-index changed files
- SyncResult: Outcome of one sync, including the updated passage map
- should_sync / format_sync_log: Helpers for polling loops and log lines
"""

import logging
import time
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field

from passage_sync.core.chunker import DEFAULT_MAX_CHARS, chunk_file
from passage_sync.core.passage_map import AgentState, PassageMap
from passage_sync.core.sync_plan import (
    DEFAULT_FULL_REINDEX_THRESHOLD,
    compute_sync_plan,
)
from passage_sync.file_collector import FileInfo
from passage_sync.provider.base import AgentProvider

logger = logging.getLogger(__name__)

DEFAULT_CONCURRENCY = 20


@dataclass
class SyncResult:
    """Result of sync execution."""

    passages: PassageMap = field(default_factory=dict)
    last_sync_commit: str | None = None
    files_deleted: int = 0
    files_reindexed: int = 0
    passages_deleted: int = 0
    passages_created: int = 0
    is_full_reindex: bool = False
    duration: float = 0.0

    @property
    def total_files(self) -> int:
        return self.files_deleted + self.files_reindexed


def sync_repo(
    provider: AgentProvider,
    agent: AgentState,
    changed_files: Sequence[str],
    collect_file: Callable[[str], FileInfo | None],
    head_commit: str,
    chunk_size: int = DEFAULT_MAX_CHARS,
    concurrency: int = DEFAULT_CONCURRENCY,
    full_reindex_threshold: int = DEFAULT_FULL_REINDEX_THRESHOLD,
) -> SyncResult:
    """Bring an agent's passages in line with a set of changed files.

    All passages of each changed file are deleted, then every file that still
    exists is chunked and stored again. Files that ``collect_file`` cannot
    return are counted as deleted.

    Provider errors propagate. In that case nothing should be saved: the
    remote side may be partially updated, and the next reconcile will detect
    the resulting drift.

    Args:
        provider: Remote memory provider
        agent: Current state of the agent being synced (not modified)
        changed_files: Paths changed since the last sync
        collect_file: Reads a path relative to the repo root
        head_commit: Commit the sync brings the agent up to
        chunk_size: Maximum characters per passage
        concurrency: Maximum concurrent provider calls
        full_reindex_threshold: Change count above which the plan is flagged
            as a full re-index

    Returns:
        SyncResult with the updated passage map
    """
    start = time.monotonic()

    # The planner leaves deduplication to us
    unique_files = list(dict.fromkeys(changed_files))
    plan = compute_sync_plan(agent.passages, unique_files, full_reindex_threshold)
    if plan.is_full_reindex:
        logger.info(
            f"[{agent.repo_name}] {len(unique_files)} changed files exceeds "
            f"threshold of {full_reindex_threshold}, flagging full re-index"
        )

    reindexing = set(plan.files_to_reindex)
    updated: PassageMap = {
        path: list(ids)
        for path, ids in agent.passages.items()
        if path not in reindexing
    }
    files_reindexed = 0
    passages_created = 0

    with ThreadPoolExecutor(max_workers=max(1, concurrency)) as executor:
        # list() drains the iterator so the first failure is raised here
        list(
            executor.map(
                lambda passage_id: provider.delete_passage(agent.agent_id, passage_id),
                plan.passages_to_delete,
            )
        )
        logger.debug(
            f"[{agent.repo_name}] Deleted {len(plan.passages_to_delete)} passages"
        )

        for file_path in plan.files_to_reindex:
            info = collect_file(file_path)
            if info is None:
                logger.debug(f"[{agent.repo_name}] {file_path} removed from index")
                continue

            chunks = chunk_file(info.path, info.content, chunk_size)
            if not chunks:
                continue

            # map() keeps results in chunk order regardless of completion order
            passage_ids = list(
                executor.map(
                    lambda chunk: provider.store_passage(agent.agent_id, chunk.text),
                    chunks,
                )
            )
            updated[file_path] = passage_ids
            files_reindexed += 1
            passages_created += len(passage_ids)

    result = SyncResult(
        passages=updated,
        last_sync_commit=head_commit,
        files_deleted=len(unique_files) - files_reindexed,
        files_reindexed=files_reindexed,
        passages_deleted=len(plan.passages_to_delete),
        passages_created=passages_created,
        is_full_reindex=plan.is_full_reindex,
        duration=time.monotonic() - start,
    )
    logger.info(
        f"[{agent.repo_name}] Synced {result.total_files} files: "
        f"{result.files_reindexed} re-indexed, {result.files_deleted} removed "
        f"({result.passages_created} passages created, "
        f"{result.passages_deleted} deleted)"
    )
    return result


def should_sync(last_sync_commit: str | None, head: str | None) -> bool:
    """Whether HEAD has moved since the last sync."""
    if not head:
        return False
    return last_sync_commit != head


def format_sync_log(
    repo_name: str,
    from_commit: str | None,
    to_commit: str,
    file_count: int,
    duration_seconds: float,
) -> str:
    """One-line summary of a sync for logs and terminal output."""
    from_short = from_commit[:7] if from_commit else "(initial)"
    plural = "" if file_count == 1 else "s"
    return (
        f"[{repo_name}] {from_short} -> {to_commit[:7]}: "
        f"{file_count} file{plural} synced in {duration_seconds:.1f}s"
    )
