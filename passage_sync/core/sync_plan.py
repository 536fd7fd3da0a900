"""Plan the remote mutations needed to bring passages up to date."""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field

DEFAULT_FULL_REINDEX_THRESHOLD = 500


@dataclass
class SyncPlan:
    """Remote operations for one incremental sync."""

    passages_to_delete: list[str] = field(default_factory=list)
    files_to_reindex: list[str] = field(default_factory=list)
    is_full_reindex: bool = False

    @property
    def total_operations(self) -> int:
        """Deletes plus files to re-index."""
        return len(self.passages_to_delete) + len(self.files_to_reindex)

    @property
    def is_empty(self) -> bool:
        return self.total_operations == 0


def compute_sync_plan(
    passage_map: Mapping[str, Sequence[str]],
    changed_files: Sequence[str],
    full_reindex_threshold: int = DEFAULT_FULL_REINDEX_THRESHOLD,
) -> SyncPlan:
    """Work out which passages to drop and which files to re-index.

    Every passage of a changed file is deleted and the file is chunked again,
    which keeps the plan independent of what actually changed inside the file.
    Files with no existing passages are new and only need indexing.

    Args:
        passage_map: Current file path -> passage IDs mapping (not modified)
        changed_files: Paths changed since the last sync, in caller order
        full_reindex_threshold: Above this many changed files a full rebuild
            is flagged as cheaper than an incremental sync

    Returns:
        SyncPlan for the change set
    """
    passages_to_delete: list[str] = []
    for file_path in changed_files:
        passages_to_delete.extend(passage_map.get(file_path, ()))

    return SyncPlan(
        passages_to_delete=passages_to_delete,
        files_to_reindex=list(changed_files),
        is_full_reindex=len(changed_files) > full_reindex_threshold,
    )
