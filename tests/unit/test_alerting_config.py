"""Unit tests for alerting configuration value objects."""

from __future__ import annotations

import math

import pytest

from profiler_trigger.domain.value_objects import (
    COLLECTION_PLAN_CHANNEL,
    AlertingConfiguration,
    AlertMetricType,
    AlertRule,
    CollectionPlanConfiguration,
    ConfigurationInvalid,
    DefaultPeriodicPolicy,
    RequestTriggerRule,
    TriggerReason,
)


@pytest.mark.unit
class TestAlertRule:
    """Resource alert rule validation."""

    def test_defaults_are_disabled(self) -> None:
        """Test a default rule is disabled and tagged as a threshold rule."""
        rule = AlertRule(metric_type=AlertMetricType.CPU)
        assert rule.enabled is False
        assert rule.channel == "cpu"
        assert rule.reason is TriggerReason.THRESHOLD

    @pytest.mark.parametrize("field", ["threshold", "profile_duration", "cooldown"])
    def test_negative_values_rejected(self, field: str) -> None:
        """Test negative numbers are rejected, not clamped."""
        with pytest.raises(ConfigurationInvalid):
            AlertRule(metric_type=AlertMetricType.MEMORY, **{field: -1.0})

    def test_nan_rejected(self) -> None:
        """Test NaN thresholds are rejected."""
        with pytest.raises(ConfigurationInvalid):
            AlertRule(metric_type=AlertMetricType.CPU, threshold=math.nan)

    def test_non_resource_metric_rejected(self) -> None:
        """Test only CPU and MEMORY take threshold rules."""
        with pytest.raises(ConfigurationInvalid):
            AlertRule(metric_type=AlertMetricType.REQUEST)

    def test_configuration_invalid_is_value_error(self) -> None:
        """ConfigurationInvalid is a ValueError."""
        with pytest.raises(ValueError):
            AlertRule(metric_type=AlertMetricType.CPU, cooldown=-5)

    def test_equal_rules_compare_equal(self) -> None:
        """Rule identity is value equality."""
        a = AlertRule(AlertMetricType.CPU, True, 80.0, 5.0, 60.0)
        b = AlertRule(AlertMetricType.CPU, True, 80.0, 5.0, 60.0)
        assert a == b
        assert a != AlertRule(AlertMetricType.CPU, True, 81.0, 5.0, 60.0)


@pytest.mark.unit
class TestRequestTriggerRule:
    """Request trigger validation and matching."""

    def test_channel_and_tags(self) -> None:
        """Test the channel key is derived from the trigger name."""
        rule = RequestTriggerRule(name="checkout")
        assert rule.channel == "request:checkout"
        assert rule.metric_type is AlertMetricType.REQUEST
        assert rule.reason is TriggerReason.REQUEST_TRIGGER

    def test_empty_name_rejected(self) -> None:
        """Request trigger needs a name."""
        with pytest.raises(ConfigurationInvalid):
            RequestTriggerRule(name="")

    def test_ratio_threshold_above_one_rejected(self) -> None:
        """Test the breach ratio threshold stays within 0..1."""
        with pytest.raises(ConfigurationInvalid):
            RequestTriggerRule(name="slow", threshold=1.5)

    def test_zero_window_rejected(self) -> None:
        with pytest.raises(ConfigurationInvalid):
            RequestTriggerRule(name="slow", window_seconds=0)

    def test_minimum_samples_must_be_positive(self) -> None:
        with pytest.raises(ConfigurationInvalid):
            RequestTriggerRule(name="slow", minimum_samples=0)

    def test_invalid_name_filter_rejected(self) -> None:
        """Test a name filter that is not a valid regex is rejected."""
        with pytest.raises(ConfigurationInvalid):
            RequestTriggerRule(name="slow", name_filter="(unclosed")

    def test_matches_without_filter(self) -> None:
        """Test a trigger without filter matches every request."""
        assert RequestTriggerRule(name="all").matches("anything")
        assert RequestTriggerRule(name="all").matches(None)

    def test_matches_with_filter(self) -> None:
        """Test the name filter is applied as a regex search."""
        rule = RequestTriggerRule(name="api", name_filter=r"^GET /api/")
        assert rule.matches("GET /api/users")
        assert not rule.matches("POST /api/users")
        assert not rule.matches(None)

    def test_breach_on_latency_or_failure(self) -> None:
        """Test a request breaches when strictly slower than the limit or failed."""
        rule = RequestTriggerRule(name="slow", latency_threshold_ms=500)
        assert rule.is_breach(501, True)
        assert not rule.is_breach(500, True)
        assert rule.is_breach(10, False)


@pytest.mark.unit
class TestDefaultPeriodicPolicy:
    """Periodic policy validation."""

    def test_enabled_with_zero_interval_rejected(self) -> None:
        """Test an enabled policy needs a positive interval."""
        with pytest.raises(ConfigurationInvalid):
            DefaultPeriodicPolicy(enabled=True, interval=0)

    def test_disabled_with_zero_interval_allowed(self) -> None:
        assert DefaultPeriodicPolicy(enabled=False, interval=0).interval == 0


@pytest.mark.unit
class TestCollectionPlanConfiguration:
    """Collection plan window semantics."""

    def test_start_after_expiration_rejected(self) -> None:
        with pytest.raises(ConfigurationInvalid):
            CollectionPlanConfiguration(enabled=True, start_timestamp=10, expiration=5)

    def test_active_window_is_inclusive(self) -> None:
        """Test both window bounds count as active."""
        plan = CollectionPlanConfiguration(enabled=True, start_timestamp=10, expiration=20)
        assert not plan.is_active(9.9)
        assert plan.is_active(10)
        assert plan.is_active(20)
        assert not plan.is_active(20.1)
        assert plan.is_expired(20.1)

    def test_disabled_plan_never_active(self) -> None:
        plan = CollectionPlanConfiguration(enabled=False, start_timestamp=0, expiration=100)
        assert not plan.is_active(50)

    def test_settings_are_copied(self) -> None:
        """Test later changes to the caller's dict do not leak into the plan."""
        settings = {"mode": "cpu"}
        plan = CollectionPlanConfiguration(settings=settings)
        settings["mode"] = "memory"
        assert plan.settings == {"mode": "cpu"}

    def test_settings_are_read_only(self) -> None:
        """Test plan settings cannot be changed through the plan."""
        plan = CollectionPlanConfiguration(settings={"mode": "cpu"})

        with pytest.raises(TypeError):
            plan.settings["mode"] = "memory"  # type: ignore[index]

        assert plan.settings == {"mode": "cpu"}
        assert plan == CollectionPlanConfiguration(settings={"mode": "cpu"})

    def test_channel(self) -> None:
        assert CollectionPlanConfiguration().channel == COLLECTION_PLAN_CHANNEL

    def test_request_trigger_type_checked(self) -> None:
        with pytest.raises(ConfigurationInvalid):
            CollectionPlanConfiguration(request_trigger="slow")  # type: ignore[arg-type]


@pytest.mark.unit
class TestAlertingConfiguration:
    """Whole-configuration validation."""

    def test_defaults(self) -> None:
        """Test the default configuration has everything disabled."""
        config = AlertingConfiguration()
        assert config.cpu_alert.metric_type is AlertMetricType.CPU
        assert config.memory_alert.metric_type is AlertMetricType.MEMORY
        assert config.request_triggers == ()
        assert not config.collection_plan.enabled

    def test_request_triggers_coerced_to_tuple(self) -> None:
        config = AlertingConfiguration(request_triggers=[RequestTriggerRule(name="a")])
        assert isinstance(config.request_triggers, tuple)

    def test_duplicate_request_trigger_names_rejected(self) -> None:
        """Test request trigger names must be unique."""
        with pytest.raises(ConfigurationInvalid, match="duplicate"):
            AlertingConfiguration(
                request_triggers=(RequestTriggerRule(name="a"), RequestTriggerRule(name="a"))
            )

    def test_swapped_resource_rules_rejected(self) -> None:
        """Test a MEMORY rule cannot sit in the CPU slot."""
        with pytest.raises(ConfigurationInvalid):
            AlertingConfiguration(cpu_alert=AlertRule(metric_type=AlertMetricType.MEMORY))

    def test_rule_for(self) -> None:
        """Test rule lookup by metric type."""
        config = AlertingConfiguration()
        assert config.rule_for(AlertMetricType.CPU) is config.cpu_alert
        assert config.rule_for(AlertMetricType.MEMORY) is config.memory_alert
        assert config.rule_for(AlertMetricType.PERIODIC) is None

    def test_resource_rules_in_precedence_order(self) -> None:
        """Test CPU comes before MEMORY."""
        config = AlertingConfiguration()
        assert [r.metric_type for r in config.resource_rules] == [
            AlertMetricType.CPU,
            AlertMetricType.MEMORY,
        ]
