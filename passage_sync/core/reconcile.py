"""Detect drift between the local passage map and the remote passage list."""

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from passage_sync.core.passage_map import PassageMap, all_passage_ids


@dataclass
class ReconcilePlan:
    """Difference between local and remote passage IDs."""

    # On the server but absent from the local map
    orphan_passage_ids: list[str] = field(default_factory=list)
    # In the local map but gone from the server
    missing_passage_ids: list[str] = field(default_factory=list)
    in_sync: bool = True


def _passage_id(passage: Any) -> str:
    if isinstance(passage, Mapping):
        return passage["id"]
    return passage.id


def _unique(ids: Iterable[str]) -> list[str]:
    return list(dict.fromkeys(ids))


def compute_reconcile_plan(
    passage_map: Mapping[str, Sequence[str]],
    server_passages: Iterable[Any],
) -> ReconcilePlan:
    """Compare the local passage map against the server's actual passages.

    Args:
        passage_map: Local file path -> passage IDs mapping
        server_passages: Passages reported by the server. Either objects with
            an ``id`` attribute or mappings with an ``"id"`` key.

    Returns:
        ReconcilePlan listing orphan and missing IDs
    """
    local_ids = _unique(all_passage_ids(passage_map))
    server_ids = _unique(_passage_id(passage) for passage in server_passages)

    local_set = set(local_ids)
    server_set = set(server_ids)
    orphans = [pid for pid in server_ids if pid not in local_set]
    missing = [pid for pid in local_ids if pid not in server_set]

    return ReconcilePlan(
        orphan_passage_ids=orphans,
        missing_passage_ids=missing,
        in_sync=not orphans and not missing,
    )


def clean_missing_from_map(
    passage_map: PassageMap, missing_ids: Sequence[str]
) -> PassageMap:
    """Drop IDs that no longer exist remotely from a passage map.

    Files whose passage list ends up empty are removed. When ``missing_ids``
    is empty the very same map object is returned, so callers can use an
    identity check to tell that nothing changed.
    """
    if not missing_ids:
        return passage_map

    missing = set(missing_ids)
    updated: PassageMap = {}
    for file_path, ids in passage_map.items():
        cleaned = [pid for pid in ids if pid not in missing]
        if cleaned:
            updated[file_path] = cleaned
    return updated
