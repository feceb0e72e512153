import json
import threading
from abc import ABC, abstractmethod
from typing import Iterator, Optional

import requests

from ..cli_display import log
from ..errors import ChatError


class StreamCancelled(Exception):
    """Raised inside a stream when its cancel flag is set."""


class ChatTransport(ABC):
    """Streaming chat client.

    ``stream_chat`` yields text fragments as they arrive.  The generator
    finishes normally only when the provider signals the end of the
    message; setting *cancel* stops it with :class:`StreamCancelled`.
    Failed calls raise :class:`ChatError`; nothing is retried.
    """

    provider_name = "llm"

    def __init__(self, base_url: str, model: str, api_key: str,
                 max_tokens: int = 8192,
                 http: Optional[requests.Session] = None,
                 timeout: tuple[float, float] = (10, 120)):
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.api_key = api_key
        self.max_tokens = max_tokens
        self.timeout = timeout
        self._http = http or requests.Session()

    # ── Public entry point ──

    def stream_chat(self, system_prompt: str, messages: list[dict],
                    model: Optional[str] = None,
                    cancel: Optional[threading.Event] = None) -> Iterator[str]:
        if not self.api_key:
            raise ChatError("Missing API key")
        if not messages:
            raise ChatError("No messages provided")

        url, payload = self._build_request(system_prompt, messages, model or self.model)
        log.debug(f"[{self.provider_name}] Streaming {len(messages)} message(s), "
                  f"system prompt {len(system_prompt)} chars")
        try:
            response = self._http.post(url, headers=self._headers(), json=payload,
                                       stream=True, timeout=self.timeout)
        except requests.RequestException as e:
            log.error(f"[{self.provider_name}] Connection failed: {e}")
            raise ChatError(f"Failed to connect to {self.provider_name} API") from e

        if not response.ok:
            raise self._error_from_response(response)

        fragments = 0
        try:
            for line in response.iter_lines(decode_unicode=True):
                if cancel is not None and cancel.is_set():
                    log.info(f"[{self.provider_name}] Stream cancelled after "
                             f"{fragments} fragment(s)")
                    raise StreamCancelled()
                if not line or not line.startswith("data:"):
                    continue
                data_str = line[5:].strip()
                if data_str == "[DONE]":
                    break
                try:
                    event = json.loads(data_str)
                except json.JSONDecodeError:
                    continue
                if not isinstance(event, dict):
                    continue
                done, text = self._handle_event(event)
                if text:
                    fragments += 1
                    yield text
                if done:
                    break
        except requests.RequestException as e:
            log.error(f"[{self.provider_name}] Stream interrupted: {e}")
            raise ChatError("Network error. Please try again.") from e
        finally:
            response.close()

        log.debug(f"[{self.provider_name}] Stream finished, {fragments} fragment(s)")

    def _error_from_response(self, response: requests.Response) -> ChatError:
        status = response.status_code
        if status == 401:
            return ChatError(
                f"Invalid API key. Please check your {self.provider_name} API key.", status)
        if status == 429:
            return ChatError("Rate limit exceeded. Please try again in a moment.", status)
        try:
            data = response.json()
        except ValueError:
            data = {}
        message = None
        if isinstance(data, dict) and isinstance(data.get("error"), dict):
            message = data["error"].get("message")
        log.error(f"[{self.provider_name}] HTTP {status}: {message}")
        return ChatError(message or f"{self.provider_name} API error: {status}", status)

    # ── Subclass hooks ──

    @abstractmethod
    def _headers(self) -> dict:
        """Request headers including authentication."""

    @abstractmethod
    def _build_request(self, system_prompt: str, messages: list[dict],
                       model: str) -> tuple[str, dict]:
        """Return ``(url, json_payload)`` for a streaming request."""

    @abstractmethod
    def _handle_event(self, event: dict) -> tuple[bool, str]:
        """Interpret one SSE payload.  Returns ``(is_final, text_fragment)``."""
