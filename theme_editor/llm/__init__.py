from .base import ChatTransport, StreamCancelled
from .anthropic_client import AnthropicChat
from .openai_client import OpenAIChat

from ..errors import ConfigError

PROVIDERS = ("anthropic", "openai")


def create_transport(cfg, provider: str | None = None,
                     model: str | None = None) -> ChatTransport:
    """Build the chat transport for *provider* (default: ``cfg.PROVIDER``)."""
    provider = (provider or cfg.PROVIDER).lower()
    if provider == "anthropic":
        return AnthropicChat(api_key=cfg.ANTHROPIC_API_KEY,
                             model=model or cfg.ANTHROPIC_MODEL,
                             base_url=cfg.ANTHROPIC_BASE_URL,
                             max_tokens=cfg.MAX_TOKENS)
    if provider == "openai":
        return OpenAIChat(api_key=cfg.OPENAI_API_KEY,
                          model=model or cfg.OPENAI_MODEL,
                          base_url=cfg.OPENAI_BASE_URL,
                          max_tokens=cfg.MAX_TOKENS)
    raise ConfigError(f"Unknown AI provider: {provider!r} "
                      f"(expected one of {', '.join(PROVIDERS)})")
