"""
Config

Environment-driven configuration for atomic_chain.

Values are read (after `load_dotenv()`) from:

- AIM_API_URL      : OpenAI-compatible base URL (default http://localhost:8080/v1)
- AIM_MODEL        : model identifier (default qwen-2-5-coder)
- AIM_API_KEY      : API key; falls back to OPENAI_API_KEY
- AIM_LOG_LEVEL    : debug | info | warning | error (default info)
- AIM_LOG_JSON     : emit one JSON object per log record (default false)
- AIM_MAX_TOKENS   : completion token cap (default 2048)
- AIM_TEMPERATURE  : sampling temperature (default 0.7)
- AIM_TOOL_TIMEOUT : per-tool timeout in seconds (default: none)
"""

from __future__ import annotations

import logging
import os
import sys
from dataclasses import dataclass
from typing import Any, Mapping, Optional

import structlog
from dotenv import load_dotenv

from .Exceptions import ConfigError

logger = logging.getLogger(__name__)

__all__ = ["ChainConfig", "JsonFormatter", "configure_logging", "load_config"]

_LOG_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off", ""}


@dataclass(slots=True)
class ChainConfig:
    api_url: str = "http://localhost:8080/v1"
    model: str = "qwen-2-5-coder"
    api_key: Optional[str] = None
    log_level: str = "info"
    log_json: bool = False
    max_tokens: int = 2048
    temperature: float = 0.7
    tool_timeout: Optional[float] = None

    def build_engine(self, **overrides: Any):
        """Construct an OpenAIStreamEngine from this configuration."""
        from ..engines import OpenAIStreamEngine

        kwargs: dict[str, Any] = {
            "model": self.model,
            "base_url": self.api_url,
            "api_key": self.api_key,
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
        }
        kwargs.update(overrides)
        return OpenAIStreamEngine(**kwargs)

    def to_dict(self) -> dict[str, Any]:
        """Non-secret snapshot for logging."""
        return {
            "api_url": self.api_url,
            "model": self.model,
            "log_level": self.log_level,
            "log_json": self.log_json,
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
            "tool_timeout": self.tool_timeout,
        }


def _parse_int(name: str, raw: str) -> int:
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigError(f"{name} must be an integer; got {raw!r}.") from exc


def _parse_float(name: str, raw: str) -> float:
    try:
        return float(raw)
    except ValueError as exc:
        raise ConfigError(f"{name} must be a number; got {raw!r}.") from exc


def _parse_bool(name: str, raw: str) -> bool:
    val = raw.strip().lower()
    if val in _TRUE:
        return True
    if val in _FALSE:
        return False
    raise ConfigError(f"{name} must be a boolean; got {raw!r}.")


def load_config(env: Optional[Mapping[str, str]] = None, *, dotenv: bool = True) -> ChainConfig:
    """
    Build a ChainConfig from environment variables.

    When `env` is None the process environment is used (after `load_dotenv()`
    if `dotenv` is true). Pass an explicit mapping to bypass both.
    """
    if env is None:
        if dotenv:
            load_dotenv()
        env = os.environ

    cfg = ChainConfig()

    if env.get("AIM_API_URL"):
        cfg.api_url = env["AIM_API_URL"]
    if env.get("AIM_MODEL"):
        cfg.model = env["AIM_MODEL"]
    cfg.api_key = env.get("AIM_API_KEY") or env.get("OPENAI_API_KEY") or None

    if env.get("AIM_LOG_LEVEL"):
        level = env["AIM_LOG_LEVEL"].strip().lower()
        if level not in _LOG_LEVELS:
            raise ConfigError(f"AIM_LOG_LEVEL must be one of {sorted(_LOG_LEVELS)}; got {level!r}.")
        cfg.log_level = level
    if "AIM_LOG_JSON" in env:
        cfg.log_json = _parse_bool("AIM_LOG_JSON", env["AIM_LOG_JSON"])

    if env.get("AIM_MAX_TOKENS"):
        cfg.max_tokens = _parse_int("AIM_MAX_TOKENS", env["AIM_MAX_TOKENS"])
    if env.get("AIM_TEMPERATURE"):
        cfg.temperature = _parse_float("AIM_TEMPERATURE", env["AIM_TEMPERATURE"])
    if env.get("AIM_TOOL_TIMEOUT"):
        timeout = _parse_float("AIM_TOOL_TIMEOUT", env["AIM_TOOL_TIMEOUT"])
        if timeout <= 0:
            raise ConfigError("AIM_TOOL_TIMEOUT must be > 0.")
        cfg.tool_timeout = timeout

    logger.debug("Loaded configuration: %s", cfg.to_dict())
    return cfg


# ───────────────────────────────────────────────────────────────────────────────
# Logging helpers (opt-in; the library itself never installs handlers)
# ───────────────────────────────────────────────────────────────────────────────
def _add_source(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    event_dict["source"] = "atomic-chain"
    return event_dict


class JsonFormatter(structlog.stdlib.ProcessorFormatter):
    """One JSON object per stdlib record, rendered through structlog."""

    def __init__(self) -> None:
        super().__init__(
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                structlog.processors.EventRenamer("message"),
                structlog.processors.JSONRenderer(),
            ],
            foreign_pre_chain=[
                structlog.stdlib.add_log_level,
                structlog.stdlib.add_logger_name,
                structlog.processors.TimeStamper(fmt="iso", key="timestamp"),
                _add_source,
                structlog.processors.format_exc_info,
            ],
        )


def configure_logging(level: str = "info", *, json_mode: bool = False) -> None:
    """Configure the root logger for scripts and examples."""
    numeric = _LOG_LEVELS.get(level.lower())
    if numeric is None:
        raise ConfigError(f"Unknown log level {level!r}.")

    if not json_mode:
        logging.basicConfig(level=numeric, format="[%(levelname)s] %(name)s: %(message)s")
        return

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JsonFormatter())
    logging.basicConfig(level=numeric, handlers=[handler], force=True)
