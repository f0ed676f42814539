"""Settings for building watchers from YAML files or the environment."""

import os
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import ConfigError
from .retry import RetryPolicy
from .store.consul import ConsulKVStore

ENV_PREFIX = "CONFWATCH_"


class RetrySettings(BaseModel):
    """Backoff for background polls. Zero means "use the default"."""

    model_config = ConfigDict(extra="forbid")

    max_attempts: int = Field(0, ge=0)
    min_backoff: float = Field(0.0, ge=0)
    max_backoff: float = Field(0.0, ge=0)
    backoff_factor: float = Field(0.0, ge=0)
    backoff_jitter: float = Field(0.5, ge=0, le=1)

    def to_policy(self) -> RetryPolicy:
        return RetryPolicy(
            max_attempts=self.max_attempts,
            min_backoff=self.min_backoff,
            max_backoff=self.max_backoff,
            backoff_factor=self.backoff_factor,
            backoff_jitter=self.backoff_jitter,
        )


class WatchSettings(BaseModel):
    """Connection and retry settings.

    YAML layout:

        consul:
          address: http://consul.internal:8500
          token: s3cr3t
          datacenter: dc1
        wait: 30
        retry:
          backoff_jitter: 0.5
    """

    model_config = ConfigDict(extra="forbid")

    address: str = Field("http://127.0.0.1:8500", description="Consul agent URL")
    token: Optional[str] = Field(None, description="Consul ACL token")
    datacenter: Optional[str] = None
    wait: float = Field(30.0, gt=0, description="Seconds a blocking read is held open")
    timeout: float = Field(10.0, gt=0, description="HTTP timeout on top of the wait")
    retry: RetrySettings = Field(default_factory=RetrySettings)

    @classmethod
    def from_yaml(cls, path: Path) -> "WatchSettings":
        """Load and validate settings from a YAML file.

        Raises:
            ConfigError: On missing file, invalid YAML, or validation errors
        """
        if not path.exists():
            raise ConfigError(f"Configuration file not found: {path}")

        try:
            with open(path) as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML syntax in {path.name}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigError(f"Expected a mapping at the top of {path.name}")

        # Connection fields may be grouped under a "consul" section
        consul = data.pop("consul", None) or {}
        if not isinstance(consul, dict):
            raise ConfigError(f"'consul' section in {path.name} must be a mapping")
        return cls._validate({**consul, **data}, str(path))

    @classmethod
    def from_env(cls, environ: Optional[dict[str, str]] = None) -> "WatchSettings":
        """Load settings from environment variables.

        Variables are prefixed with CONFWATCH_. For example:
        - CONFWATCH_ADDRESS -> address
        - CONFWATCH_TOKEN -> token (CONSUL_HTTP_TOKEN is also honored)
        - CONFWATCH_RETRY_MAX_ATTEMPTS -> retry.max_attempts
        """
        env = os.environ if environ is None else environ
        data: dict = {}
        retry: dict = {}

        for name in ("address", "token", "datacenter", "wait", "timeout"):
            value = env.get(f"{ENV_PREFIX}{name.upper()}")
            if value is not None:
                data[name] = value
        if "token" not in data and env.get("CONSUL_HTTP_TOKEN"):
            data["token"] = env["CONSUL_HTTP_TOKEN"]

        for name in RetrySettings.model_fields:
            value = env.get(f"{ENV_PREFIX}RETRY_{name.upper()}")
            if value is not None:
                retry[name] = value
        if retry:
            data["retry"] = retry

        return cls._validate(data, "environment")

    @classmethod
    def _validate(cls, data: dict, source: str) -> "WatchSettings":
        try:
            return cls(**data)
        except ValidationError as e:
            problems = "; ".join(
                f"{'.'.join(str(loc) for loc in err['loc'])}: {err['msg']}" for err in e.errors()
            )
            raise ConfigError(f"Invalid settings from {source}: {problems}") from e

    def retry_policy(self) -> RetryPolicy:
        return self.retry.to_policy()

    def build_store(self) -> ConsulKVStore:
        """Consul client configured from these settings."""
        return ConsulKVStore(
            address=self.address,
            token=self.token,
            datacenter=self.datacenter,
            default_wait=self.wait,
            timeout=self.timeout,
        )
