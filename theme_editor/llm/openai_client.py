"""
OpenAI-compatible chat transport — works with OpenAI and any provider that
implements the chat/completions streaming API.
"""

from ..cli_display import token_tracker
from .base import ChatTransport

DEFAULT_BASE_URL = "https://api.openai.com/v1"
DEFAULT_MODEL = "gpt-4o"


class OpenAIChat(ChatTransport):

    provider_name = "OpenAI"

    def __init__(self, api_key: str, model: str = DEFAULT_MODEL,
                 base_url: str = DEFAULT_BASE_URL, **kwargs):
        super().__init__(base_url=base_url, model=model, api_key=api_key, **kwargs)

    def _headers(self) -> dict:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}",
        }

    def _build_request(self, system_prompt, messages, model):
        payload = {
            "model": model,
            "max_tokens": self.max_tokens,
            "messages": [{"role": "system", "content": system_prompt}] + [
                {"role": m["role"], "content": m["content"]} for m in messages
            ],
            "stream": True,
            "stream_options": {"include_usage": True},
        }
        return f"{self.base_url}/chat/completions", payload

    def _handle_event(self, event):
        usage = event.get("usage")
        if isinstance(usage, dict):
            token_tracker.record(usage.get("prompt_tokens", 0) or 0,
                                 usage.get("completion_tokens", 0) or 0,
                                 model_name=self.model)

        choices = event.get("choices") or []
        if not choices:
            return False, ""
        delta = choices[0].get("delta") or {}
        return False, delta.get("content") or ""
