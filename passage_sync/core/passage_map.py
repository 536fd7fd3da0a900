"""Passage map and persisted agent state.

A passage map records which remote passage IDs were created from which local
file. It is the only thing that ties the remote store back to the source tree,
so every helper here returns a fresh value instead of mutating its input.
"""

from collections.abc import Iterable, Mapping

from pydantic import BaseModel, Field

PassageMap = dict[str, list[str]]


class AgentState(BaseModel):
    """Persisted sync state for the agent that indexes a single repo."""

    agent_id: str
    repo_name: str
    passages: PassageMap = Field(default_factory=dict)
    last_bootstrap: str | None = None
    last_sync_commit: str | None = None
    last_sync_at: str | None = None
    created_at: str


class AppState(BaseModel):
    """Top-level persisted state, keyed by repo name."""

    agents: dict[str, AgentState] = Field(default_factory=dict)


def all_passage_ids(passage_map: Mapping[str, Iterable[str]]) -> list[str]:
    """Flatten a passage map into a list of IDs, in map order."""
    return [passage_id for ids in passage_map.values() for passage_id in ids]


def passage_count(passage_map: Mapping[str, Iterable[str]]) -> int:
    return len(all_passage_ids(passage_map))


def duplicate_passage_ids(passage_map: Mapping[str, Iterable[str]]) -> set[str]:
    """Return IDs that are mapped under more than one file."""
    seen: set[str] = set()
    duplicates: set[str] = set()
    for passage_id in all_passage_ids(passage_map):
        if passage_id in seen:
            duplicates.add(passage_id)
        seen.add(passage_id)
    return duplicates


def compact_passage_map(passage_map: Mapping[str, Iterable[str]]) -> PassageMap:
    """Copy a passage map, dropping files that have no passages left."""
    compacted: PassageMap = {}
    for file_path, ids in passage_map.items():
        ids = list(ids)
        if ids:
            compacted[file_path] = ids
    return compacted


def create_empty_state() -> AppState:
    return AppState()


def add_agent_to_state(
    state: AppState, repo_name: str, agent_id: str, created_at: str
) -> AppState:
    """Register a freshly created agent with an empty passage map."""
    agents = dict(state.agents)
    agents[repo_name] = AgentState(
        agent_id=agent_id,
        repo_name=repo_name,
        created_at=created_at,
    )
    return state.model_copy(update={"agents": agents})


def update_passage_map(
    state: AppState, repo_name: str, passages: Mapping[str, Iterable[str]]
) -> AppState:
    """Replace the passage map of one agent.

    Raises:
        KeyError: If no agent is registered for ``repo_name``
    """
    return update_agent_fields(
        state, repo_name, passages=compact_passage_map(passages)
    )


def update_agent_fields(state: AppState, repo_name: str, **updates) -> AppState:
    """Return a copy of ``state`` with fields of one agent replaced.

    The identity fields (agent ID, repo name, creation time) cannot be changed.

    Raises:
        KeyError: If no agent is registered for ``repo_name``
        ValueError: If an identity field or unknown field is passed
    """
    existing = state.agents.get(repo_name)
    if existing is None:
        raise KeyError(f"No agent found for repo: {repo_name}")

    frozen = {"agent_id", "repo_name", "created_at"} & updates.keys()
    if frozen:
        raise ValueError(f"Cannot update identity fields: {sorted(frozen)}")
    unknown = updates.keys() - AgentState.model_fields.keys()
    if unknown:
        raise ValueError(f"Unknown agent fields: {sorted(unknown)}")

    agents = dict(state.agents)
    agents[repo_name] = existing.model_copy(update=updates)
    return state.model_copy(update={"agents": agents})


def remove_agent_from_state(state: AppState, repo_name: str) -> AppState:
    agents = {name: agent for name, agent in state.agents.items() if name != repo_name}
    return state.model_copy(update={"agents": agents})
