"""Configuration management for the profiler trigger engine."""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from profiler_trigger.domain.value_objects.alerting_config import (
    AlertingConfiguration,
    AlertRule,
    DefaultPeriodicPolicy,
)
from profiler_trigger.domain.value_objects.identifiers import AlertMetricType


class EngineConfig(BaseModel):
    """Evaluation loop configuration."""

    tick_interval_seconds: float = Field(
        default=1.0, gt=0, description="Interval between evaluation ticks"
    )
    request_window_max_events: int = Field(
        default=10000, ge=1, description="Max request outcomes kept per window"
    )
    trigger_id_prefix: str = Field(default="trigger", min_length=1)


class RuleDefaults(BaseModel):
    """Initial values of one resource alert rule."""

    enabled: bool = Field(default=False)
    threshold: float = Field(default=80.0, ge=0)
    profile_duration_seconds: float = Field(default=30.0, ge=0)
    cooldown_seconds: float = Field(default=14400.0, ge=0)


class PeriodicDefaults(BaseModel):
    """Initial values of the default periodic policy."""

    enabled: bool = Field(default=False)
    interval_seconds: float = Field(default=3600.0, gt=0)
    profile_duration_seconds: float = Field(default=120.0, ge=0)


class AlertDefaultsConfig(BaseModel):
    """Alerting configuration applied at startup, before any is pushed."""

    cpu: RuleDefaults = Field(default_factory=RuleDefaults)
    memory: RuleDefaults = Field(default_factory=RuleDefaults)
    periodic: PeriodicDefaults = Field(default_factory=PeriodicDefaults)


class ServerConfig(BaseModel):
    """Server configuration."""

    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8080, ge=1, le=65535, description="REST API port")
    metrics_port: int = Field(default=8009, ge=1, le=65535, description="Prometheus metrics port")


class ObservabilityConfig(BaseModel):
    """Observability configuration."""

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Log level"
    )
    log_format: Literal["json", "console"] = Field(default="json", description="Log format")
    otlp_endpoint: str | None = Field(
        default=None, description="OpenTelemetry collector endpoint"
    )
    service_name: str = Field(default="profiler_trigger", description="Service name on traces")
    environment: str = Field(default="development")


class Config(BaseSettings):
    """Main configuration for the profiler trigger engine."""

    model_config = SettingsConfigDict(
        env_prefix="PROFILER_TRIGGER_",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    engine: EngineConfig = Field(default_factory=EngineConfig)
    alerts: AlertDefaultsConfig = Field(default_factory=AlertDefaultsConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    observability: ObservabilityConfig = Field(default_factory=ObservabilityConfig)

    def to_alerting_configuration(self) -> AlertingConfiguration:
        """Build the startup AlertingConfiguration from the defaults section."""
        return AlertingConfiguration(
            cpu_alert=_rule(AlertMetricType.CPU, self.alerts.cpu),
            memory_alert=_rule(AlertMetricType.MEMORY, self.alerts.memory),
            default_policy=DefaultPeriodicPolicy(
                enabled=self.alerts.periodic.enabled,
                interval=self.alerts.periodic.interval_seconds,
                profile_duration=self.alerts.periodic.profile_duration_seconds,
            ),
        )


def _rule(metric_type: AlertMetricType, defaults: RuleDefaults) -> AlertRule:
    return AlertRule(
        metric_type=metric_type,
        enabled=defaults.enabled,
        threshold=defaults.threshold,
        profile_duration=defaults.profile_duration_seconds,
        cooldown=defaults.cooldown_seconds,
    )


@lru_cache
def get_config() -> Config:
    """Get the global configuration instance."""
    return Config()
