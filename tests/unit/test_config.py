"""Unit tests for profiler trigger configuration."""

import pytest
from pydantic import ValidationError

from profiler_trigger.domain.value_objects import AlertMetricType
from profiler_trigger.infrastructure.config import (
    Config,
    EngineConfig,
    ObservabilityConfig,
    RuleDefaults,
    ServerConfig,
)


@pytest.mark.unit
class TestConfig:
    """Test configuration loading and validation."""

    def test_default_config(self):
        """Test default configuration values."""
        config = Config()
        assert config.engine.tick_interval_seconds == 1.0
        assert config.alerts.cpu.enabled is False
        assert config.alerts.periodic.interval_seconds == 3600.0

    def test_server_config_defaults(self):
        """Test server configuration defaults."""
        server = ServerConfig()
        assert server.port == 8080
        assert server.metrics_port == 8009

    def test_observability_defaults(self):
        """Test observability configuration defaults."""
        observability = ObservabilityConfig()
        assert observability.log_format == "json"
        assert observability.otlp_endpoint is None

    def test_tick_interval_must_be_positive(self):
        """Test that a zero tick interval is rejected."""
        with pytest.raises(ValidationError):
            EngineConfig(tick_interval_seconds=0)

    def test_negative_threshold_rejected(self):
        """Test that rule defaults are range checked."""
        with pytest.raises(ValidationError):
            RuleDefaults(threshold=-1)

    def test_env_override(self, monkeypatch):
        """Test nested environment variable overrides."""
        monkeypatch.setenv("PROFILER_TRIGGER_ENGINE__TICK_INTERVAL_SECONDS", "0.25")
        monkeypatch.setenv("PROFILER_TRIGGER_ALERTS__CPU__ENABLED", "true")
        monkeypatch.setenv("PROFILER_TRIGGER_ALERTS__CPU__THRESHOLD", "75")

        config = Config()

        assert config.engine.tick_interval_seconds == 0.25
        assert config.alerts.cpu.enabled is True
        assert config.alerts.cpu.threshold == 75.0

    def test_to_alerting_configuration(self):
        """Test conversion to the domain configuration."""
        config = Config(
            alerts={
                "cpu": {"enabled": True, "threshold": 90, "profile_duration_seconds": 5},
                "periodic": {"enabled": True, "interval_seconds": 600},
            }
        )

        alerting = config.to_alerting_configuration()

        assert alerting.cpu_alert.metric_type is AlertMetricType.CPU
        assert alerting.cpu_alert.enabled is True
        assert alerting.cpu_alert.threshold == 90.0
        assert alerting.cpu_alert.profile_duration == 5.0
        assert alerting.memory_alert.enabled is False
        assert alerting.default_policy.enabled is True
        assert alerting.default_policy.interval == 600.0
        assert not alerting.collection_plan.enabled
