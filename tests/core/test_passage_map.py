"""Tests for passage map helpers and persisted agent state."""

import pytest

from passage_sync.core.passage_map import (
    AgentState,
    add_agent_to_state,
    all_passage_ids,
    compact_passage_map,
    create_empty_state,
    duplicate_passage_ids,
    passage_count,
    remove_agent_from_state,
    update_agent_fields,
    update_passage_map,
)


@pytest.fixture
def state():
    """State with one registered agent."""
    return add_agent_to_state(
        create_empty_state(), "my-app", "agent-1", "2026-01-01T00:00:00+00:00"
    )


class TestPassageMapHelpers:
    """Tests for pure passage map functions."""

    def test_all_passage_ids_flattens_in_order(self):
        passage_map = {"a.py": ["p1", "p2"], "b.py": ["p3"]}

        assert all_passage_ids(passage_map) == ["p1", "p2", "p3"]
        assert passage_count(passage_map) == 3

    def test_duplicate_passage_ids(self):
        """Test detecting IDs that appear under more than one file."""
        passage_map = {"a.py": ["p1", "p2"], "b.py": ["p2", "p3"]}

        assert duplicate_passage_ids(passage_map) == {"p2"}
        assert duplicate_passage_ids({"a.py": ["p1"]}) == set()

    def test_compact_drops_empty_files(self):
        """Test that files without passages are removed."""
        passage_map = {"a.py": ["p1"], "b.py": []}

        assert compact_passage_map(passage_map) == {"a.py": ["p1"]}


class TestAgentState:
    """Tests for state update helpers."""

    def test_add_agent(self, state):
        """Test that a new agent starts with an empty passage map."""
        agent = state.agents["my-app"]

        assert agent.agent_id == "agent-1"
        assert agent.passages == {}
        assert agent.last_sync_commit is None

    def test_add_agent_does_not_mutate(self):
        """Test that the input state is left unchanged."""
        empty = create_empty_state()

        add_agent_to_state(empty, "my-app", "agent-1", "now")

        assert empty.agents == {}

    def test_update_passage_map(self, state):
        """Test replacing an agent's passage map."""
        updated = update_passage_map(state, "my-app", {"a.py": ["p1"], "b.py": []})

        assert updated.agents["my-app"].passages == {"a.py": ["p1"]}
        assert state.agents["my-app"].passages == {}

    def test_update_passage_map_unknown_repo(self, state):
        with pytest.raises(KeyError):
            update_passage_map(state, "other", {})

    def test_update_agent_fields(self, state):
        """Test updating sync bookkeeping fields."""
        updated = update_agent_fields(
            state, "my-app", last_sync_commit="abc123", last_sync_at="later"
        )

        agent = updated.agents["my-app"]
        assert agent.last_sync_commit == "abc123"
        assert agent.last_sync_at == "later"
        assert agent.agent_id == "agent-1"

    @pytest.mark.parametrize("field_name", ["agent_id", "repo_name", "created_at"])
    def test_identity_fields_are_rejected(self, state, field_name):
        """Test that identity fields cannot be overwritten."""
        with pytest.raises(ValueError, match="identity"):
            update_agent_fields(state, "my-app", **{field_name: "x"})

    def test_unknown_fields_are_rejected(self, state):
        with pytest.raises(ValueError, match="Unknown"):
            update_agent_fields(state, "my-app", colour="blue")

    def test_remove_agent(self, state):
        """Test removing an agent, including one that is not registered."""
        assert remove_agent_from_state(state, "my-app").agents == {}
        assert remove_agent_from_state(state, "other").agents.keys() == {"my-app"}

    def test_state_round_trips_through_json(self, state):
        """Test that state survives pydantic JSON serialization."""
        state = update_passage_map(state, "my-app", {"a.py": ["p1"]})

        restored = type(state).model_validate_json(state.model_dump_json())

        assert restored == state
        assert isinstance(restored.agents["my-app"], AgentState)
