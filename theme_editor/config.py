"""
Configuration — loads settings from .theme_editor.yaml, environment variables,
and built-in defaults (in that priority order: CLI args > env > YAML > defaults).
"""

import os

import yaml

from .store import DEFAULT_API_VERSION, ShopCredentials

_DEFAULTS = {
    "provider": "anthropic",
    "anthropic_model": "claude-sonnet-4-20250514",
    "openai_model": "gpt-4o",
    "anthropic_base_url": "https://api.anthropic.com/v1",
    "openai_base_url": "https://api.openai.com/v1",
    "max_tokens": 8192,
    "api_version": DEFAULT_API_VERSION,
    "diff_threshold": 500,
    "context_radius": 4,
    "push_delay": 0.25,
    "max_context_files": 10,
    "size_ceiling": 100_000,
    "log_dir": ".theme_editor/logs",
}

# Config file search locations
_CONFIG_FILENAMES = [".theme_editor.yaml", ".theme_editor.yml"]


def _find_config_file(explicit_path: str | None = None) -> str | None:
    """Find the config file. Checks explicit path, CWD, then user home."""
    if explicit_path:
        if os.path.isfile(explicit_path):
            return explicit_path
        return None

    # Search CWD first, then home directory
    search_dirs = [os.getcwd(), os.path.expanduser("~")]
    for d in search_dirs:
        for name in _CONFIG_FILENAMES:
            path = os.path.join(d, name)
            if os.path.isfile(path):
                return path
    return None


def _load_yaml(path: str) -> dict:
    """Load YAML file, returns empty dict on failure."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
        return data if isinstance(data, dict) else {}
    except (OSError, yaml.YAMLError):
        return {}


class Config:
    """Application configuration.

    Settings are resolved in priority order:
    1. CLI arguments (handled by caller)
    2. Environment variables
    3. .theme_editor.yaml config file
    4. Built-in defaults
    """

    def __init__(self, yaml_data: dict | None = None):
        yd = yaml_data or {}

        # Helper: env var > yaml > default
        def _get(env_key: str, yaml_key: str, default, cast=str):
            env_val = os.getenv(env_key)
            if env_val is not None:
                return cast(env_val)
            yaml_val = yd.get(yaml_key)
            if yaml_val is not None:
                return cast(yaml_val)
            return default

        # Store connection
        shopify_section = yd.get("shopify", {}) if isinstance(yd.get("shopify"), dict) else {}
        self.SHOP_DOMAIN = os.getenv("SHOPIFY_SHOP_DOMAIN") or shopify_section.get("shop_domain")
        self.ACCESS_TOKEN = os.getenv("SHOPIFY_ACCESS_TOKEN") or shopify_section.get("access_token")
        self.API_VERSION = os.getenv("SHOPIFY_API_VERSION") or shopify_section.get(
            "api_version", _DEFAULTS["api_version"])
        self.THEME = os.getenv("SHOPIFY_THEME") or shopify_section.get("theme")

        # AI provider
        self.PROVIDER = _get("AI_PROVIDER", "provider", _DEFAULTS["provider"]).lower()
        self.MAX_TOKENS = _get("AI_MAX_TOKENS", "max_tokens",
                               _DEFAULTS["max_tokens"], cast=int)

        anthropic_section = yd.get("anthropic", {}) if isinstance(yd.get("anthropic"), dict) else {}
        self.ANTHROPIC_API_KEY = os.getenv("ANTHROPIC_API_KEY") or anthropic_section.get(
            "api_key", "")
        self.ANTHROPIC_MODEL = os.getenv("ANTHROPIC_MODEL") or anthropic_section.get(
            "model", _DEFAULTS["anthropic_model"])
        self.ANTHROPIC_BASE_URL = os.getenv("ANTHROPIC_BASE_URL") or anthropic_section.get(
            "base_url", _DEFAULTS["anthropic_base_url"])

        openai_section = yd.get("openai", {}) if isinstance(yd.get("openai"), dict) else {}
        self.OPENAI_API_KEY = os.getenv("OPENAI_API_KEY") or openai_section.get(
            "api_key", "")
        self.OPENAI_MODEL = os.getenv("OPENAI_MODEL") or openai_section.get(
            "model", _DEFAULTS["openai_model"])
        self.OPENAI_BASE_URL = os.getenv("OPENAI_BASE_URL") or openai_section.get(
            "base_url", _DEFAULTS["openai_base_url"])

        # Review and apply tuning
        self.DIFF_THRESHOLD = _get("DIFF_THRESHOLD", "diff_threshold",
                                   _DEFAULTS["diff_threshold"], cast=int)
        self.CONTEXT_RADIUS = _get("CONTEXT_RADIUS", "context_radius",
                                   _DEFAULTS["context_radius"], cast=int)
        self.PUSH_DELAY = _get("PUSH_DELAY", "push_delay",
                               _DEFAULTS["push_delay"], cast=float)
        self.MAX_CONTEXT_FILES = _get("MAX_CONTEXT_FILES", "max_context_files",
                                      _DEFAULTS["max_context_files"], cast=int)
        self.SIZE_CEILING = _get("SIZE_CEILING", "size_ceiling",
                                 _DEFAULTS["size_ceiling"], cast=int)

        self.LOG_DIR = _get("THEME_EDITOR_LOG_DIR", "log_dir", _DEFAULTS["log_dir"])

    @property
    def credentials(self) -> ShopCredentials:
        return ShopCredentials(shop_domain=self.SHOP_DOMAIN,
                               access_token=self.ACCESS_TOKEN)

    def api_key_for(self, provider: str | None = None) -> str:
        provider = (provider or self.PROVIDER).lower()
        if provider == "openai":
            return self.OPENAI_API_KEY
        return self.ANTHROPIC_API_KEY

    @classmethod
    def load(cls, config_path: str | None = None) -> "Config":
        """Load config from YAML file (if found) + env vars + defaults."""
        path = _find_config_file(config_path)
        yaml_data = _load_yaml(path) if path else {}
        return cls(yaml_data)
