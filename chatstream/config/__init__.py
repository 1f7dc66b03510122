"""Unified runtime configuration layer.

Goals
-----
* Centralize defaults (base URL, retry, breaker and dispatch settings).
* Merge sources in a predictable order (later wins):
    1. Built-in defaults (:mod:`chatstream.config.defaults`)
    2. Optional external config file (JSON or YAML) pointed to by
       ``CHATSTREAM_CONFIG_FILE``
    3. Environment variables (``CHATSTREAM_<FIELD>``)
    4. In-code overrides passed to :func:`get_runtime_config`
* Provide a single call site returning a validated :class:`RuntimeConfig`.

Environment Variable Conventions
--------------------------------
``CHATSTREAM_`` followed by the upper-cased field name, e.g.
``CHATSTREAM_MAX_CONCURRENCY=4`` or ``CHATSTREAM_RETRYABLE_CODES=429,503``.
List fields accept comma separated values.

External Config File (Optional)
-------------------------------
JSON is tried first, then YAML. Structure example::

    base_url: https://openrouter.ai/api/v1
    max_concurrency: 4
    retry_max_attempts: 5
    retryable_codes: [429, 502, 503]
    cancellation_providers: [openai, anthropic]

Public API
----------
* get_runtime_config(overrides: dict | None = None) -> RuntimeConfig
* reset_config_cache() -> None
"""
from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Dict, FrozenSet, Optional, Tuple

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator

from .defaults import (
    DEFAULT_BASE_URL,
    DEFAULT_BATCH_SIZE,
    DEFAULT_BREAKER_FAILURE_THRESHOLD,
    DEFAULT_BREAKER_RESET_TIMEOUT,
    DEFAULT_CANCELLATION_PROVIDERS,
    DEFAULT_MAX_CONCURRENCY,
    DEFAULT_RETRY_BACKOFF_FACTOR,
    DEFAULT_RETRY_INITIAL_DELAY,
    DEFAULT_RETRY_JITTER_FACTOR,
    DEFAULT_RETRY_MAX_ATTEMPTS,
    DEFAULT_RETRY_MAX_DELAY,
    DEFAULT_RETRYABLE_CODES,
)

CONFIG_FILE_ENV = "CHATSTREAM_CONFIG_FILE"
ENV_PREFIX = "CHATSTREAM_"

_FILE_CACHE: Dict[str, Dict[str, Any]] = {}


def _split_csv(value: Any) -> Any:
    if isinstance(value, str):
        return [part.strip() for part in value.split(",") if part.strip()]
    return value


class RuntimeConfig(BaseModel):
    """Validated, merged runtime settings."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    base_url: str = DEFAULT_BASE_URL
    max_concurrency: int = DEFAULT_MAX_CONCURRENCY
    batch_size: int = DEFAULT_BATCH_SIZE
    retry_max_attempts: int = Field(default=DEFAULT_RETRY_MAX_ATTEMPTS, ge=0)
    retry_initial_delay: float = Field(default=DEFAULT_RETRY_INITIAL_DELAY, ge=0)
    retry_max_delay: float = Field(default=DEFAULT_RETRY_MAX_DELAY, ge=0)
    retry_backoff_factor: float = DEFAULT_RETRY_BACKOFF_FACTOR
    retry_jitter_factor: float = Field(default=DEFAULT_RETRY_JITTER_FACTOR, ge=0, le=1)
    retryable_codes: FrozenSet[int] = frozenset(DEFAULT_RETRYABLE_CODES)
    breaker_failure_threshold: int = Field(default=DEFAULT_BREAKER_FAILURE_THRESHOLD, ge=1)
    breaker_reset_timeout: float = Field(default=DEFAULT_BREAKER_RESET_TIMEOUT, ge=0)
    cancellation_providers: Tuple[str, ...] = DEFAULT_CANCELLATION_PROVIDERS

    @field_validator("retryable_codes", "cancellation_providers", mode="before")
    @classmethod
    def _accept_csv(cls, value: Any) -> Any:
        return _split_csv(value)

    def retry_policy(self):
        """Build a :class:`RetryPolicy` from the retry fields."""
        from ..base.resilience import RetryPolicy

        return RetryPolicy(
            max_attempts=self.retry_max_attempts,
            initial_delay=self.retry_initial_delay,
            max_delay=self.retry_max_delay,
            backoff_factor=self.retry_backoff_factor,
            jitter_factor=self.retry_jitter_factor,
            retryable_codes=self.retryable_codes,
        )

    def cancellation_policy(self):
        """Build a :class:`CancellationPolicy` from ``cancellation_providers``."""
        from ..base.streaming import CancellationPolicy

        return CancellationPolicy.from_names(self.cancellation_providers)

    def circuit_breaker(self, name: str = "default"):
        """Build a fresh :class:`CircuitBreaker` from the breaker fields."""
        from ..base.resilience import CircuitBreaker

        return CircuitBreaker(
            failure_threshold=self.breaker_failure_threshold,
            reset_timeout=self.breaker_reset_timeout,
            name=name,
        )


def _load_external_config() -> Dict[str, Any]:
    path = os.getenv(CONFIG_FILE_ENV)
    if not path:
        return {}
    if path in _FILE_CACHE:
        return _FILE_CACHE[path]
    p = Path(path)
    if not p.exists():
        _FILE_CACHE[path] = {}
        return _FILE_CACHE[path]
    text = p.read_text(encoding="utf-8")
    data: Any
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        try:
            data = yaml.safe_load(text) or {}
        except yaml.YAMLError as exc:
            from ..base.logging import get_logger, log_event

            log_event(get_logger("chatstream.config"), "config.file_invalid", path=path, error=str(exc))
            data = {}
    if not isinstance(data, dict):
        data = {}
    _FILE_CACHE[path] = data
    return data


def _env_overrides() -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    for name in RuntimeConfig.model_fields:
        val = os.getenv(f"{ENV_PREFIX}{name.upper()}")
        if val is not None and val.strip():
            out[name] = val
    return out


def get_runtime_config(overrides: Optional[Dict[str, Any]] = None) -> RuntimeConfig:
    """Return merged runtime configuration.

    Merge order (later wins): defaults -> external config -> env vars -> overrides.
    Raises ``pydantic.ValidationError`` when a merged value is invalid.
    """
    cfg: Dict[str, Any] = {}
    cfg |= _load_external_config()
    cfg |= _env_overrides()
    if overrides:
        cfg |= {k: v for k, v in overrides.items() if v is not None}
    return RuntimeConfig.model_validate(cfg)


def reset_config_cache() -> None:
    """Forget previously loaded config files (tests and reload)."""
    _FILE_CACHE.clear()


__all__ = [
    "CONFIG_FILE_ENV",
    "RuntimeConfig",
    "get_runtime_config",
    "reset_config_cache",
]
