"""chatstream.config.defaults
==========================

Central place for small, stable default values used across the runtime.
These defaults can be overridden via environment variables or an external
configuration file (see :mod:`chatstream.config`), but provide sensible
fallbacks for local development and tests.

This module intentionally imports nothing from the rest of the package so it
can be read from any layer without circular dependencies. Only plain
constants belong here.
"""

from __future__ import annotations

# ---- Transport ----
DEFAULT_BASE_URL = "https://openrouter.ai/api/v1"
DEFAULT_CHAT_PATH = "/chat/completions"
DEFAULT_COMPLETION_PATH = "/completions"

# ---- Retry executor ----
# max_attempts counts retries after the first call (total calls = value + 1).
DEFAULT_RETRY_MAX_ATTEMPTS = 3
DEFAULT_RETRY_INITIAL_DELAY = 1.0
DEFAULT_RETRY_MAX_DELAY = 30.0
DEFAULT_RETRY_BACKOFF_FACTOR = 2.0
DEFAULT_RETRY_JITTER_FACTOR = 0.1
# Remote codes retried by default: timeout, rate limited, model down, no available model.
DEFAULT_RETRYABLE_CODES = (408, 429, 502, 503)

# ---- Circuit breaker ----
DEFAULT_BREAKER_FAILURE_THRESHOLD = 5
DEFAULT_BREAKER_RESET_TIMEOUT = 60.0

# ---- Dispatcher ----
DEFAULT_MAX_CONCURRENCY = 10
DEFAULT_BATCH_SIZE = 5

# ---- Stream cancellation ----
# Upstream providers known to stop generation (and billing) when the client
# drops the stream. Others keep generating after a local cancel.
DEFAULT_CANCELLATION_PROVIDERS = (
    "openai",
    "azure",
    "anthropic",
    "fireworks",
    "mancer",
    "recursal",
    "anyscale",
    "lepton",
    "octoai",
    "novita",
    "deepinfra",
    "together",
    "cohere",
    "hyperbolic",
    "infermatic",
    "avian",
    "xai",
    "cloudflare",
    "sfcompute",
    "nineteen",
    "liquid",
    "friendli",
    "chutes",
    "deepseek",
)

__all__ = [
    "DEFAULT_BASE_URL",
    "DEFAULT_CHAT_PATH",
    "DEFAULT_COMPLETION_PATH",
    "DEFAULT_RETRY_MAX_ATTEMPTS",
    "DEFAULT_RETRY_INITIAL_DELAY",
    "DEFAULT_RETRY_MAX_DELAY",
    "DEFAULT_RETRY_BACKOFF_FACTOR",
    "DEFAULT_RETRY_JITTER_FACTOR",
    "DEFAULT_RETRYABLE_CODES",
    "DEFAULT_BREAKER_FAILURE_THRESHOLD",
    "DEFAULT_BREAKER_RESET_TIMEOUT",
    "DEFAULT_MAX_CONCURRENCY",
    "DEFAULT_BATCH_SIZE",
    "DEFAULT_CANCELLATION_PROVIDERS",
]
