"""Provider interface and the typed records it exchanges.

Remote responses are loosely typed JSON. They are validated into these models
once, when they enter the process, so the rest of the code works with
attributes instead of ad hoc dictionary lookups.
"""

from abc import ABC, abstractmethod

from pydantic import BaseModel, ConfigDict


class Passage(BaseModel):
    """A unit of text stored in an agent's archival memory."""

    model_config = ConfigDict(extra="ignore")

    id: str
    text: str = ""


class MemoryBlock(BaseModel):
    """Value and size limit of one core memory block."""

    model_config = ConfigDict(extra="ignore")

    value: str
    limit: int = 0


class CoreMemoryBlock(MemoryBlock):
    label: str


class AgentProvider(ABC):
    """Abstract interface to a remote agent memory store."""

    @abstractmethod
    def list_passages(self, agent_id: str) -> list[Passage]:
        """Return every passage stored for an agent."""

    @abstractmethod
    def store_passage(self, agent_id: str, text: str) -> str:
        """Store a passage and return its ID."""

    @abstractmethod
    def delete_passage(self, agent_id: str, passage_id: str) -> None:
        """Delete a passage. Deleting a passage that is already gone succeeds."""

    @abstractmethod
    def send_message(
        self,
        agent_id: str,
        content: str,
        override_model: str | None = None,
        max_steps: int | None = None,
        timeout: float | None = None,
    ) -> str:
        """Send a user message and return the agent's reply text.

        Args:
            agent_id: Agent to ask
            content: Message text
            override_model: Model to use instead of the agent's default
            max_steps: Upper bound on agent reasoning steps
            timeout: Request timeout in seconds

        Returns:
            Reply text, or an empty string when the agent did not answer
        """

    @abstractmethod
    def get_block(self, agent_id: str, label: str) -> MemoryBlock:
        """Read one core memory block.

        Raises:
            NotFoundError: If the agent has no block with this label
        """

    @abstractmethod
    def update_block(self, agent_id: str, label: str, value: str) -> MemoryBlock:
        """Replace the value of one core memory block."""
