"""
Anthropic Claude chat transport — streams the Messages API directly.
"""

from ..cli_display import token_tracker, log
from ..errors import ChatError
from .base import ChatTransport

DEFAULT_BASE_URL = "https://api.anthropic.com/v1"
DEFAULT_MODEL = "claude-sonnet-4-20250514"


class AnthropicChat(ChatTransport):

    ANTHROPIC_VERSION = "2023-06-01"
    provider_name = "Anthropic"

    def __init__(self, api_key: str, model: str = DEFAULT_MODEL,
                 base_url: str = DEFAULT_BASE_URL, **kwargs):
        super().__init__(base_url=base_url, model=model, api_key=api_key, **kwargs)
        self._input_tokens = 0

    def _headers(self) -> dict:
        return {
            "Content-Type": "application/json",
            "x-api-key": self.api_key,
            "anthropic-version": self.ANTHROPIC_VERSION,
        }

    def _build_request(self, system_prompt, messages, model):
        payload = {
            "model": model,
            "max_tokens": self.max_tokens,
            "system": system_prompt,
            "messages": [{"role": m["role"], "content": m["content"]} for m in messages],
            "stream": True,
        }
        return f"{self.base_url}/messages", payload

    def _handle_event(self, event):
        event_type = event.get("type", "")

        if event_type == "message_start":
            usage = (event.get("message") or {}).get("usage") or {}
            self._input_tokens = usage.get("input_tokens", 0) or 0

        elif event_type == "content_block_delta":
            delta = event.get("delta") or {}
            if delta.get("type") == "text_delta":
                return False, delta.get("text", "")

        elif event_type == "message_delta":
            usage = event.get("usage") or {}
            output_tokens = usage.get("output_tokens")
            if isinstance(output_tokens, int):
                token_tracker.record(self._input_tokens, output_tokens,
                                     model_name=self.model)
                log.debug(f"[Anthropic] Usage: prompt={self._input_tokens} "
                          f"completion={output_tokens}")

        elif event_type == "message_stop":
            return True, ""

        elif event_type == "error":
            error = event.get("error") or {}
            raise ChatError(error.get("message") or "Anthropic stream error")

        return False, ""
