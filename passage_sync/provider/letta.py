"""HTTP provider for a Letta server."""

import logging
import random
import time
from collections.abc import Callable
from typing import Any

import httpx
from pydantic import ValidationError

from passage_sync.exceptions import (
    AuthenticationError,
    NotFoundError,
    ProviderConnectionError,
    ProviderError,
)
from passage_sync.provider.base import (
    AgentProvider,
    MemoryBlock,
    Passage,
)

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://localhost:8283"
PASSAGE_PAGE_SIZE = 1000
TRANSIENT_STATUS_CODES = frozenset({429, 500, 502, 503})
MAX_RETRY_AFTER = 300.0


def is_transient_error(error: Exception) -> bool:
    """Whether a failed request is worth retrying."""
    if isinstance(error, httpx.HTTPStatusError):
        return error.response.status_code in TRANSIENT_STATUS_CODES
    return isinstance(error, httpx.TransportError)


def retry_after_seconds(response: httpx.Response | None) -> float | None:
    """Parse a ``Retry-After`` header given in seconds, ignoring silly values."""
    if response is None:
        return None
    raw = response.headers.get("retry-after")
    if raw is None:
        return None
    try:
        seconds = float(raw)
    except ValueError:
        return None
    if 0 < seconds < MAX_RETRY_AFTER:
        return seconds
    return None


def _translate_status_error(error: httpx.HTTPStatusError) -> ProviderError:
    status = error.response.status_code
    message = f"{error.request.method} {error.request.url.path} failed with HTTP {status}"
    if status in (401, 403):
        return AuthenticationError(message, status_code=status)
    if status == 404:
        return NotFoundError(message, status_code=status)
    return ProviderError(message, status_code=status)


class LettaProvider(AgentProvider):
    """Agent provider backed by the Letta REST API."""

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        token: str | None = None,
        timeout: float = 30.0,
        max_retries: int = 3,
        retry_base_delay: float = 1.0,
        transport: httpx.BaseTransport | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """Initialize provider.

        Args:
            base_url: Letta server URL
            token: Optional bearer token
            timeout: Default request timeout in seconds
            max_retries: Retries for transient failures
            retry_base_delay: First backoff delay in seconds, doubled per attempt
            transport: Optional httpx transport (used by tests)
            sleep: Function used to wait between retries
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_base_delay = retry_base_delay
        self._sleep = sleep

        headers = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"

        self.client = httpx.Client(timeout=timeout, headers=headers, transport=transport)

    def _retry_delay(self, attempt: int, response: httpx.Response | None) -> float:
        retry_after = retry_after_seconds(response)
        base_delay = (
            retry_after
            if retry_after is not None
            else self.retry_base_delay * (2**attempt)
        )
        return base_delay * (0.5 + random.random() * 0.5)

    def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        """Send a request, retrying transient failures.

        Raises:
            ProviderConnectionError: Server unreachable after all retries
            ProviderError: Server answered with an error status
        """
        url = f"{self.base_url}{path}"
        attempt = 0
        while True:
            try:
                response = self.client.request(method, url, **kwargs)
                response.raise_for_status()
                return response
            except (httpx.HTTPStatusError, httpx.TransportError) as e:
                if not is_transient_error(e) or attempt >= self.max_retries:
                    if isinstance(e, httpx.HTTPStatusError):
                        raise _translate_status_error(e) from e
                    raise ProviderConnectionError(
                        f"Could not reach Letta at {self.base_url}: {e}"
                    ) from e

                response = e.response if isinstance(e, httpx.HTTPStatusError) else None
                delay = self._retry_delay(attempt, response)
                logger.debug(
                    f"Transient failure on {method} {path} "
                    f"(attempt {attempt + 1}/{self.max_retries}), retrying in {delay:.2f}s: {e}"
                )
                self._sleep(delay)
                attempt += 1

    def list_passages(self, agent_id: str) -> list[Passage]:
        passages: list[Passage] = []
        cursor: str | None = None

        while True:
            params: dict[str, Any] = {"limit": PASSAGE_PAGE_SIZE, "ascending": "true"}
            if cursor:
                params["after"] = cursor

            page = self._request(
                "GET", f"/v1/agents/{agent_id}/archival-memory", params=params
            ).json()
            if not isinstance(page, list):
                raise ProviderError(f"Unexpected passage list for agent {agent_id}")

            for item in page:
                # Passages still being embedded can come back without an ID
                if isinstance(item, dict) and item.get("id"):
                    passages.append(
                        Passage(id=item["id"], text=item.get("text") or "")
                    )

            if len(page) < PASSAGE_PAGE_SIZE:
                break
            last = page[-1]
            cursor = last.get("id") if isinstance(last, dict) else None
            if not cursor:
                break

        logger.debug(f"Listed {len(passages)} passages for agent {agent_id}")
        return passages

    def store_passage(self, agent_id: str, text: str) -> str:
        data = self._request(
            "POST", f"/v1/agents/{agent_id}/archival-memory", json={"text": text}
        ).json()

        # Older servers return a single passage, newer ones a list
        first = data[0] if isinstance(data, list) and data else data
        passage_id = first.get("id") if isinstance(first, dict) else None
        if not passage_id:
            raise ProviderError(
                f"store_passage returned no valid passage ID for agent {agent_id}"
            )
        return passage_id

    def delete_passage(self, agent_id: str, passage_id: str) -> None:
        try:
            self._request(
                "DELETE", f"/v1/agents/{agent_id}/archival-memory/{passage_id}"
            )
        except NotFoundError:
            logger.debug(f"Passage {passage_id} already deleted")

    def send_message(
        self,
        agent_id: str,
        content: str,
        override_model: str | None = None,
        max_steps: int | None = None,
        timeout: float | None = None,
    ) -> str:
        payload: dict[str, Any] = {"messages": [{"role": "user", "content": content}]}
        if override_model:
            payload["override_model"] = override_model
        if max_steps is not None:
            payload["max_steps"] = max_steps

        data = self._request(
            "POST",
            f"/v1/agents/{agent_id}/messages",
            json=payload,
            timeout=timeout if timeout is not None else self.timeout,
        ).json()

        for message in data.get("messages", []):
            if message.get("message_type") == "assistant_message":
                text = message.get("content")
                return text if isinstance(text, str) else ""
        return ""

    def get_block(self, agent_id: str, label: str) -> MemoryBlock:
        data = self._request(
            "GET", f"/v1/agents/{agent_id}/core-memory/blocks/{label}"
        ).json()
        return _parse_block(data, MemoryBlock)

    def update_block(self, agent_id: str, label: str, value: str) -> MemoryBlock:
        data = self._request(
            "PATCH",
            f"/v1/agents/{agent_id}/core-memory/blocks/{label}",
            json={"value": value},
        ).json()
        return _parse_block(data, MemoryBlock)

    def close(self):
        """Close the HTTP client."""
        self.client.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


def _parse_block(data: Any, model: type[MemoryBlock]) -> MemoryBlock:
    if not isinstance(data, dict):
        raise ProviderError(f"Unexpected memory block payload: {data!r}")
    try:
        # The server reports a null limit for unbounded blocks
        return model.model_validate({**data, "limit": data.get("limit") or 0})
    except ValidationError as e:
        raise ProviderError(f"Invalid memory block: {e}") from e
