"""
Configuration models for cwtransport using Pydantic v2 Settings.

Settings are read from the environment with the ``CWTRANSPORT_`` prefix and
``__`` as the nested delimiter, e.g. ``CWTRANSPORT_TRANSPORT__RATE_MS=2000``.
Per-stream options live in ``StreamOptions`` and are passed to
``Dispatcher.stream()``.
"""

from __future__ import annotations

from typing import Any, Callable

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import (  # type: ignore[import-not-found]
    BaseSettings,
    SettingsConfigDict,
)

LATEST_CONFIG_SCHEMA_VERSION = "1.0"


class CoreSettings(BaseModel):
    """Diagnostics and metrics toggles."""

    internal_logging_enabled: bool = Field(
        default=False,
        description="Emit DEBUG/WARN diagnostics for internal events",
    )
    enable_metrics: bool = Field(
        default=False,
        description="Enable Prometheus-compatible metrics",
    )


class TransportSettings(BaseModel):
    """Batching, pacing and retry behaviour of the delivery engine."""

    batch_size: int = Field(
        default=10_000,
        ge=1,
        le=1_048_576,
        description="Maximum serialized bytes per batch (exclusive)",
    )
    max_batch_events: int = Field(
        default=10_000,
        ge=1,
        le=10_000,
        description="Maximum number of events per batch",
    )
    transport_hidden_logs: bool = Field(
        default=False,
        description="Ship events the host logger did not print",
    )
    rate_ms: int = Field(
        default=5_000,
        ge=1,
        description="Interval between delivery ticks per destination, in ms",
    )
    retries: int = Field(
        default=3,
        ge=0,
        description="Retries after an ordering conflict before giving up",
    )
    transient_retries: int = Field(
        default=0,
        ge=0,
        description=(
            "Retries after a non-ordering failure; 0 drops the batch on the "
            "first failure"
        ),
    )
    create_log_group: bool = Field(
        default=False, description="Create missing log groups before first delivery"
    )
    create_log_stream: bool = Field(
        default=False, description="Create missing log streams before first delivery"
    )

    @property
    def rate_seconds(self) -> float:
        return self.rate_ms / 1000.0


class AwsSettings(BaseModel):
    """Parameters for the default boto3 client."""

    region: str | None = Field(default=None, description="AWS region name")
    profile: str | None = Field(default=None, description="Named AWS profile")
    endpoint_url: str | None = Field(
        default=None, description="Override endpoint (e.g. localstack)"
    )


class Settings(BaseSettings):
    """Top-level configuration model with versioning and namespaced groups."""

    schema_version: str = Field(default=LATEST_CONFIG_SCHEMA_VERSION)

    core: CoreSettings = Field(default_factory=CoreSettings)
    transport: TransportSettings = Field(default_factory=TransportSettings)
    aws: AwsSettings = Field(default_factory=AwsSettings)

    model_config = SettingsConfigDict(
        env_prefix="CWTRANSPORT_",
        env_nested_delimiter="__",
        extra="ignore",
        case_sensitive=False,
    )

    def to_dict(self) -> dict[str, object]:
        from typing import cast

        return cast(
            dict[str, object],
            self.model_dump(by_alias=True, exclude_none=True),
        )


SuccessCallback = Callable[[Any, Any], None]
FailureCallback = Callable[[Any, BaseException], None]


class StreamOptions(BaseModel):
    """Options for a single destination, applied on its first ``stream()``."""

    model_config = ConfigDict(frozen=True, extra="forbid", arbitrary_types_allowed=True)  # fmt: skip

    on_success: SuccessCallback | None = None
    on_failure: FailureCallback | None = None
    group_tags: dict[str, str] | None = None
    create_log_group: bool | None = None
    create_log_stream: bool | None = None

    @field_validator("group_tags", mode="before")
    @classmethod
    def _coerce_tags(cls, value: Any) -> dict[str, str] | None:
        if value is None:
            return None
        return {str(k): str(v) for k, v in dict(value).items()}


__all__ = [
    "AwsSettings",
    "CoreSettings",
    "Settings",
    "StreamOptions",
    "TransportSettings",
]
