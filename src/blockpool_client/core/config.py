"""Client configuration with YAML loading and environment overrides."""

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

DEFAULT_SERVER_URL = "https://sei-mcp-server-1.onrender.com"

ENV_SERVER_URL = "BLOCKPOOL_SERVER_URL"
ENV_DEBUG = "BLOCKPOOL_DEBUG"
ENV_NETWORK = "BLOCKPOOL_NETWORK"


class _ConfigModel(BaseModel):
    # YAML files may use either snake_case or the camelCase option names
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")


class ServerConfig(_ConfigModel):
    """
    Remote endpoint settings.

    Attributes
    ----------
    url : str
        Base endpoint for all requests
    timeout_ms : int
        Per-attempt request timeout
    max_retries : int
        Retries after the first attempt for transient failures
    retry_delay_ms : int
        Base backoff delay, doubled on every retry

    """

    url: str = DEFAULT_SERVER_URL
    timeout_ms: int = Field(default=15_000, gt=0)
    max_retries: int = Field(default=3, ge=0)
    retry_delay_ms: int = Field(default=1_000, ge=0)


class CacheConfig(_ConfigModel):
    """Response cache settings."""

    ttl_ms: int = Field(default=30_000, gt=0)
    max_size: int = Field(default=1_000, gt=0)


class RateLimitConfig(_ConfigModel):
    """Sliding-window admission settings."""

    max_requests_per_minute: int = Field(default=120, gt=0)
    window_ms: int = Field(default=60_000, gt=0)


class ClientConfig(_ConfigModel):
    """
    Complete RPC client configuration.

    Every option has a default, so ``ClientConfig()`` is a usable config.

    """

    server: ServerConfig = Field(default_factory=ServerConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    rate_limit: RateLimitConfig = Field(default_factory=RateLimitConfig)
    network: str = "sei"
    max_reconnect_attempts: int = Field(default=5, gt=0)
    debug: bool = False


def _deep_merge(base: dict[str, Any], overrides: dict[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _env_overrides() -> dict[str, Any]:
    overrides: dict[str, Any] = {}
    if url := os.environ.get(ENV_SERVER_URL):
        overrides["server"] = {"url": url}
    if network := os.environ.get(ENV_NETWORK):
        overrides["network"] = network
    if debug := os.environ.get(ENV_DEBUG):
        overrides["debug"] = debug.strip().lower() in {"1", "true", "yes", "on"}
    return overrides


def load_config(path: str | Path | None = None, **overrides: Any) -> ClientConfig:
    """
    Load client configuration.

    Sources are applied in order: defaults, YAML file, environment
    variables (``BLOCKPOOL_SERVER_URL``, ``BLOCKPOOL_NETWORK``,
    ``BLOCKPOOL_DEBUG``), then keyword overrides.

    Parameters
    ----------
    path : str | Path | None
        Optional YAML config file
    **overrides : Any
        Nested overrides, e.g. ``server={"timeout_ms": 5000}``

    Returns
    -------
    ClientConfig
        Validated configuration

    Raises
    ------
    pydantic.ValidationError
        If an option has an invalid value

    """
    data: dict[str, Any] = {}
    if path is not None:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

    # Normalise file keys so env and keyword overrides merge onto them
    data = ClientConfig.model_validate(data).model_dump()
    data = _deep_merge(data, _env_overrides())
    data = _deep_merge(data, overrides)
    return ClientConfig.model_validate(data)
