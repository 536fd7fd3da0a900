"""Shared fixtures for passage-sync tests."""

import itertools
import threading

import pytest

from passage_sync.exceptions import NotFoundError, ProviderError
from passage_sync.provider.base import AgentProvider, MemoryBlock, Passage


class FakeProvider(AgentProvider):
    """In-memory provider that records every call."""

    def __init__(self):
        self.passages: dict[str, dict[str, str]] = {}
        self.blocks: dict[tuple[str, str], MemoryBlock] = {}
        self.answers: dict[str | None, str] = {}
        self.failing_models: set[str | None] = set()
        self.failing_deletes: set[str] = set()
        self.fail_store_after: int | None = None
        self.messages: list[dict] = []
        self.deleted: list[str] = []
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    def list_passages(self, agent_id):
        return [
            Passage(id=pid, text=text)
            for pid, text in self.passages.get(agent_id, {}).items()
        ]

    def store_passage(self, agent_id, text):
        with self._lock:
            if self.fail_store_after is not None:
                if self.fail_store_after <= 0:
                    raise ProviderError("store failed", status_code=500)
                self.fail_store_after -= 1
            passage_id = f"p{next(self._ids)}"
            self.passages.setdefault(agent_id, {})[passage_id] = text
        return passage_id

    def delete_passage(self, agent_id, passage_id):
        if passage_id in self.failing_deletes:
            raise ProviderError(f"cannot delete {passage_id}", status_code=500)
        with self._lock:
            self.passages.get(agent_id, {}).pop(passage_id, None)
            self.deleted.append(passage_id)

    def send_message(
        self, agent_id, content, override_model=None, max_steps=None, timeout=None
    ):
        self.messages.append(
            {
                "agent_id": agent_id,
                "content": content,
                "override_model": override_model,
                "timeout": timeout,
            }
        )
        if override_model in self.failing_models:
            raise ProviderError("model timed out", status_code=504)
        return self.answers.get(override_model, "")

    def get_block(self, agent_id, label):
        try:
            return self.blocks[(agent_id, label)]
        except KeyError:
            raise NotFoundError(f"no block {label}", status_code=404) from None

    def update_block(self, agent_id, label, value):
        existing = self.blocks.get((agent_id, label))
        block = MemoryBlock(value=value, limit=existing.limit if existing else 0)
        self.blocks[(agent_id, label)] = block
        return block

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        pass


@pytest.fixture
def fake_provider():
    """Create an empty in-memory provider."""
    return FakeProvider()
