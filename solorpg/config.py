"""Engine configuration: LLM connection, language and context windows.

Resolution order, later wins:

    _CONFIG_DEFAULTS -> JSON config file -> SOLORPG_* environment variables

The config file path comes from the `path` argument, else SOLORPG_CONFIG,
else ./solorpg.json. A missing file is not an error.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any

from solorpg.llm import LLM, EchoLLM, HttpLLM

logger = logging.getLogger(__name__)

ENV_PREFIX = "SOLORPG_"
DEFAULT_CONFIG_PATH = Path("solorpg.json")

_CONFIG_DEFAULTS: dict[str, Any] = {
    "provider": "anthropic",  # anthropic | gemini | echo
    "api_key": "",
    "model": "",
    "base_url": "",
    "max_tokens": 2000,
    "temperature": 0.8,
    "extraction_max_tokens": 4000,
    "extraction_temperature": 0.3,
    "timeout": 120.0,
    "language": "en",
    "context_window": 20,
    "memory_window": 10,
}


def _config_path(path: Path | None = None) -> Path:
    if path is not None:
        return path
    return Path(os.getenv(f"{ENV_PREFIX}CONFIG", str(DEFAULT_CONFIG_PATH)))


def _coerce(key: str, raw: Any) -> Any:
    """Cast a stored or env value to the type of its default."""
    default = _CONFIG_DEFAULTS[key]
    try:
        if isinstance(default, bool):
            return str(raw).lower() in ("1", "true", "yes", "on")
        if isinstance(default, int):
            return int(raw)
        if isinstance(default, float):
            return float(raw)
    except (TypeError, ValueError):
        logger.warning("Ignoring invalid config value %s=%r", key, raw)
        return default
    return str(raw)


def get_config(path: Path | None = None) -> dict[str, Any]:
    """Read config, returning defaults merged with stored values and env overrides."""
    config = dict(_CONFIG_DEFAULTS)

    config_file = _config_path(path)
    if config_file.is_file():
        stored = json.loads(config_file.read_text())
        for key, value in stored.items():
            if key in config:
                config[key] = _coerce(key, value)
            else:
                logger.warning("Unknown config key %r in %s", key, config_file)

    for key in _CONFIG_DEFAULTS:
        env_value = os.getenv(f"{ENV_PREFIX}{key.upper()}")
        if env_value is not None and env_value != "":
            config[key] = _coerce(key, env_value)
    return config


def update_config(fields: dict[str, Any], path: Path | None = None) -> dict[str, Any]:
    """Merge fields into the stored config file. Returns the full config."""
    config_file = _config_path(path)
    stored: dict[str, Any] = {}
    if config_file.is_file():
        stored = json.loads(config_file.read_text())
    for key, value in fields.items():
        if key in _CONFIG_DEFAULTS:
            stored[key] = _coerce(key, value)
    config_file.write_text(json.dumps(stored, indent=2))
    return get_config(path)


def build_llm(config: dict[str, Any]) -> LLM:
    """Construct the LLM client described by a config dict."""
    provider = config.get("provider", "anthropic")
    if provider == "echo":
        return EchoLLM()
    if provider not in ("anthropic", "gemini"):
        raise ValueError(f"Unknown LLM provider: {provider}")
    return HttpLLM(
        provider_format=provider,
        api_key=config.get("api_key", ""),
        model=config.get("model", ""),
        base_url=config.get("base_url", ""),
        max_tokens=config.get("max_tokens", _CONFIG_DEFAULTS["max_tokens"]),
        temperature=config.get("temperature", _CONFIG_DEFAULTS["temperature"]),
        timeout=config.get("timeout", _CONFIG_DEFAULTS["timeout"]),
        extraction_max_tokens=config.get("extraction_max_tokens", _CONFIG_DEFAULTS["extraction_max_tokens"]),
        extraction_temperature=config.get("extraction_temperature", _CONFIG_DEFAULTS["extraction_temperature"]),
    )
