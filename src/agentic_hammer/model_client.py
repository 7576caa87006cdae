"""Model client interface and OpenAI-compatible chat completions client."""

import json
import logging
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Iterator, List, Optional

import httpx

from agentic_hammer.constants import DEFAULT_LM_BASE_PATH, DEFAULT_LM_TIMEOUT_S

logger = logging.getLogger(__name__)


# =============================================================================
# DATA CLASSES
# =============================================================================

@dataclass
class Message:
    """A chat message."""
    role: str  # "system", "user", "assistant"
    content: str


class ModelClient(ABC):
    """Abstract interface for model clients."""

    @abstractmethod
    def stream(self, messages: List[Message], model: str) -> Iterator[str]:
        """
        Execute a chat completion, yielding content deltas as they arrive.

        Raises:
            ModelClientError: On API or network errors
        """
        pass


class ModelClientError(Exception):
    """Error from model client operations."""
    pass


def _error_message(response: httpx.Response, fallback: str) -> str:
    try:
        error_data = response.json()
        return error_data.get("error", {}).get("message", fallback)
    except Exception:
        return fallback


def parse_sse_line(line: str) -> Optional[str]:
    """
    Extract the content delta from one server-sent event line.

    Returns None for blank lines, comments, the [DONE] marker and events
    without content.
    """
    if not line.startswith("data:"):
        return None

    payload = line[len("data:"):].strip()
    if not payload or payload == "[DONE]":
        return None

    try:
        data = json.loads(payload)
    except json.JSONDecodeError:
        raise ModelClientError(f"Malformed stream event: {payload[:80]}")

    if not isinstance(data, dict):
        raise ModelClientError(f"Unexpected stream event: {payload[:80]}")

    if "error" in data:
        error = data["error"]
        message = error.get("message", error) if isinstance(error, dict) else error
        raise ModelClientError(f"API error: {message}")

    choices = data.get("choices") or []
    if not choices or not isinstance(choices[0], dict):
        return None
    delta = choices[0].get("delta") or {}
    return delta.get("content") or None


class ChatCompletionsClient(ModelClient):
    """Client for any OpenAI-compatible /chat/completions endpoint.

    The API key is optional so local servers work without one.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_LM_BASE_PATH,
        api_key: Optional[str] = None,
        timeout: float = DEFAULT_LM_TIMEOUT_S,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key or os.environ.get("OPENAI_API_KEY")
        self.timeout = timeout
        self.transport = transport

    @property
    def url(self) -> str:
        return f"{self.base_url}/chat/completions"

    def _headers(self) -> dict:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    def _payload(self, messages: List[Message], model: str, stream: bool) -> dict:
        return {
            "model": model,
            "messages": [{"role": m.role, "content": m.content} for m in messages],
            "stream": stream,
        }

    def _client(self) -> httpx.Client:
        return httpx.Client(timeout=self.timeout, transport=self.transport)

    def stream(self, messages: List[Message], model: str) -> Iterator[str]:
        logger.debug("Streaming completion from %s with model=%s", self.url, model)
        try:
            with self._client() as client:
                with client.stream(
                    "POST",
                    self.url,
                    headers=self._headers(),
                    json=self._payload(messages, model, stream=True),
                ) as response:
                    if response.is_error:
                        response.read()
                        raise ModelClientError(
                            f"API error: {_error_message(response, f'HTTP {response.status_code}')}"
                        )
                    for line in response.iter_lines():
                        delta = parse_sse_line(line)
                        if delta:
                            yield delta

        except httpx.TimeoutException:
            raise ModelClientError(f"Request timed out after {self.timeout}s.")
        except httpx.RequestError as e:
            raise ModelClientError(f"Network error: {e}")


def get_model_client(base_url: str, api_key: Optional[str] = None) -> ChatCompletionsClient:
    """Get a chat completions client instance."""
    return ChatCompletionsClient(base_url=base_url, api_key=api_key)
