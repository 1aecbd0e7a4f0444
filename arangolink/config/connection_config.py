"""
Connection Configuration
========================

Settings consumed by ``Connection`` and ``Database``: server URLs,
credentials, load balancing, retry policy and HTTP agent options.
"""

from __future__ import annotations

import os
from collections.abc import Callable
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .config_base import BaseConfig, ConfigValidationError

DEFAULT_URL = "http://localhost:8529"
DEFAULT_ARANGO_VERSION = 30400


class LoadBalancingStrategy(str, Enum):
    """How requests are spread over multiple known hosts.

    NONE: use the active host until it fails, then advance.
    ONE_RANDOM: like NONE, but start from a random host.
    ROUND_ROBIN: every request goes to the next host in the list.
    """

    NONE = "NONE"
    ONE_RANDOM = "ONE_RANDOM"
    ROUND_ROBIN = "ROUND_ROBIN"


class BasicAuth(BaseModel):
    """Username/password credentials sent as a Basic authorization header."""

    model_config = ConfigDict(extra="forbid")

    username: str = "root"
    password: str = Field(default="", repr=False)


class BearerAuth(BaseModel):
    """Token credentials sent as a Bearer authorization header."""

    model_config = ConfigDict(extra="forbid")

    token: str = Field(repr=False)


class AgentOptions(BaseModel):
    """Options for the per-host HTTP client pool.

    ``before`` receives each outgoing ``httpx.Request``; ``after`` receives
    ``(error, response)`` once per attempt. Neither is serialized.
    """

    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    max_sockets: int = Field(default=3, ge=1, description="Connections per host")
    keep_alive: bool = Field(default=True, description="Reuse idle connections")
    keep_alive_seconds: float = Field(default=1.0, gt=0, description="Idle connection expiry")
    verify: bool | str = Field(default=True, description="TLS verification flag or CA bundle path")
    http2: bool = Field(default=True, description="Negotiate HTTP/2 over TLS when available")
    before: Callable[..., Any] | None = Field(default=None, exclude=True)
    after: Callable[..., Any] | None = Field(default=None, exclude=True)

    @property
    def max_tasks(self) -> int:
        """Maximum number of requests in flight across all hosts."""
        return self.max_sockets * 2 if self.keep_alive else self.max_sockets


class ConnectionConfig(BaseConfig):
    """
    Configuration for a ``Connection``.

    ``max_retries`` controls retries of refused connections: ``False``
    disables them, ``0`` retries once per additional known host and any
    other number is an explicit retry budget.
    """

    url: str | list[str] = Field(default=DEFAULT_URL, description="Server URL or list of URLs")
    database_name: str = Field(default="_system", min_length=1)
    auth: BasicAuth | BearerAuth | None = Field(default=None)
    arango_version: int = Field(default=DEFAULT_ARANGO_VERSION, ge=10000)
    load_balancing_strategy: LoadBalancingStrategy = Field(default=LoadBalancingStrategy.NONE)
    max_retries: int | bool = Field(default=0)
    agent_options: AgentOptions = Field(default_factory=AgentOptions)
    headers: dict[str, str] = Field(default_factory=dict)
    precapture_stack_traces: bool = Field(default=False)

    @field_validator("max_retries")
    @classmethod
    def _check_max_retries(cls, value: int | bool) -> int | bool:
        if value is True:
            raise ValueError("max_retries must be False or a non-negative integer")
        if value is not False and value < 0:
            raise ValueError("max_retries must not be negative")
        return value

    @property
    def urls(self) -> list[str]:
        return [self.url] if isinstance(self.url, str) else list(self.url)

    @property
    def should_retry(self) -> bool:
        return self.max_retries is not False

    def validate_semantics(self) -> list[str]:
        errors = []

        if not self.urls:
            errors.append("At least one server URL is required")
        for url in self.urls:
            if not url.strip():
                errors.append("Server URL cannot be empty")
            elif "://" not in url:
                errors.append(f"Invalid URL (no protocol): {url}")

        return errors


def _parse_max_retries(value: str) -> int | bool:
    if value.strip().lower() == "false":
        return False
    try:
        return int(value)
    except ValueError as e:
        raise ConfigValidationError("Invalid ARANGO_MAX_RETRIES", [value]) from e


def _split_urls(value: str) -> str | list[str]:
    urls = [part.strip() for part in value.split(",") if part.strip()]
    return urls[0] if len(urls) == 1 else urls


def resolve_connection_config(
    *,
    config_file: str | Path | None = None,
    url: str | list[str] | None = None,
    database_name: str | None = None,
    username: str | None = None,
    password: str | None = None,
    token: str | None = None,
    load_balancing_strategy: LoadBalancingStrategy | str | None = None,
    max_retries: int | bool | None = None,
    **overrides: Any,
) -> ConnectionConfig:
    """
    Resolve configuration from explicit arguments, the environment, an
    optional JSON file and the defaults, in that order of priority.

    ``config_file`` (or ``ARANGO_CONFIG``) names a JSON file holding
    ``ConnectionConfig`` fields. Extra keyword arguments are applied last;
    nested mappings such as ``agent_options`` are combined with the file's.
    """

    env = os.environ

    config_file = config_file if config_file is not None else env.get("ARANGO_CONFIG")
    base = ConnectionConfig.from_file(config_file) if config_file else ConnectionConfig()

    resolved: dict[str, Any] = {}

    if url is None and env.get("ARANGO_URL"):
        url = _split_urls(env["ARANGO_URL"])
    if url is not None:
        resolved["url"] = url

    database_name = database_name if database_name is not None else env.get("ARANGO_DATABASE")
    if database_name:
        resolved["database_name"] = database_name

    token = token if token is not None else env.get("ARANGO_TOKEN")
    if token:
        resolved["auth"] = BearerAuth(token=token)
    else:
        username = username if username is not None else env.get("ARANGO_USERNAME")
        password = password if password is not None else env.get("ARANGO_PASSWORD")
        if username is not None or password is not None:
            resolved["auth"] = BasicAuth(username=username or "root", password=password or "")

    if load_balancing_strategy is None:
        load_balancing_strategy = env.get("ARANGO_LOAD_BALANCING")
    if load_balancing_strategy:
        resolved["load_balancing_strategy"] = LoadBalancingStrategy(load_balancing_strategy)

    if max_retries is None and env.get("ARANGO_MAX_RETRIES") is not None:
        max_retries = _parse_max_retries(env["ARANGO_MAX_RETRIES"])
    if max_retries is not None:
        resolved["max_retries"] = max_retries

    return base.with_overrides({**resolved, **overrides})
