"""Alerting engine - unified entry point.

Wires the threshold evaluator, request trigger evaluator, collection plan
tracker, periodic scheduler, cooldown tracker and trigger arbiter behind the
AlertingAPI.

Usage:
    from profiler_trigger.application import AlertingEngine

    engine = AlertingEngine(sink, configuration)
    engine.start()                          # background tick loop

    engine.submit(AlertMetricType.CPU, 91.5)
    engine.submit_request_event(RequestOutcome(duration_ms=1800, success=True))
    engine.set_configuration(new_configuration)

    engine.stop()

Thread Safety:
    Every channel's EvaluationState, the cooldown ledger, the active
    configuration and the capture-in-progress flag are guarded by one lock.
    Producers only hold it for the constant-time state update. The trigger
    sink is always called outside the lock, so ingestion never waits on a
    capture starting.
"""

from __future__ import annotations

import logging
import math
import threading
from typing import Any, Optional

from profiler_trigger.adapters.outbound.clock import MonotonicClock
from profiler_trigger.domain.entities.evaluation_state import EvaluationStateStore
from profiler_trigger.domain.entities.trigger import (
    CandidateAlert,
    CaptureOutcome,
    RequestOutcome,
    TriggerEvent,
)
from profiler_trigger.domain.services.collection_plan_tracker import CollectionPlanTracker
from profiler_trigger.domain.services.cooldown_tracker import CooldownTracker
from profiler_trigger.domain.services.periodic_scheduler import PeriodicScheduler
from profiler_trigger.domain.services.request_trigger_evaluator import RequestTriggerEvaluator
from profiler_trigger.domain.services.threshold_evaluator import ThresholdEvaluator
from profiler_trigger.domain.services.trigger_arbiter import ArbitrationDecision, TriggerArbiter
from profiler_trigger.domain.value_objects.alerting_config import (
    AlertingConfiguration,
    CollectionPlanConfiguration,
    ConfigurationInvalid,
)
from profiler_trigger.domain.value_objects.identifiers import (
    COLLECTION_PLAN_CHANNEL,
    AlertMetricType,
    CaptureHandle,
    ChannelKey,
    TriggerReason,
)
from profiler_trigger.infrastructure.metrics import MetricsRegistry
from profiler_trigger.infrastructure.tracing import trace_span
from profiler_trigger.ports.outbound.clock import Clock
from profiler_trigger.ports.outbound.trigger_sink import SinkUnavailable, TriggerSink

logger = logging.getLogger(__name__)


class AlertingEngine:
    """Decides when to start profiling and dispatches captures to a sink."""

    def __init__(
        self,
        sink: TriggerSink,
        configuration: Optional[AlertingConfiguration] = None,
        clock: Optional[Clock] = None,
        metrics: Optional[MetricsRegistry] = None,
        tick_interval_seconds: float = 1.0,
        request_window_max_events: int = 10000,
        trigger_id_prefix: str = "trigger",
    ) -> None:
        """Initialize the engine.

        Args:
            sink: Collaborator that performs captures.
            configuration: Initial configuration; everything disabled if None.
            clock: Monotonic clock shared by all channels.
            metrics: Prometheus metrics; metrics are not recorded if None.
            tick_interval_seconds: Interval of the background tick loop.
            request_window_max_events: Max request outcomes kept per window.
            trigger_id_prefix: Prefix of generated trigger ids.
        """
        if tick_interval_seconds <= 0:
            raise ValueError(f"tick_interval_seconds must be > 0, got {tick_interval_seconds}")

        self._sink = sink
        self._clock: Clock = clock or MonotonicClock()
        self._metrics = metrics
        self._tick_interval = tick_interval_seconds

        self._lock = threading.Lock()
        self._states = EvaluationStateStore()
        self._thresholds = ThresholdEvaluator(self._states)
        self._cooldowns = CooldownTracker(self._states)
        self._requests = RequestTriggerEvaluator(self._thresholds, request_window_max_events)
        self._plan_tracker = CollectionPlanTracker(self._requests, self._cooldowns)
        self._periodic = PeriodicScheduler(self._states)
        self._arbiter = TriggerArbiter(self._cooldowns, id_prefix=trigger_id_prefix)

        self._configuration: Optional[AlertingConfiguration] = None
        # Bumped each time a channel is reset by a configuration change.
        self._resets: dict[ChannelKey, int] = {}
        self._last_event: Optional[TriggerEvent] = None

        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

        initial = configuration if configuration is not None else AlertingConfiguration()
        with self._lock:
            self._apply_configuration(initial, self._clock.now())

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    @property
    def configuration(self) -> AlertingConfiguration:
        with self._lock:
            assert self._configuration is not None
            return self._configuration

    def now(self) -> float:
        """Current instant on the engine clock."""
        return self._clock.now()

    def set_configuration(self, configuration: AlertingConfiguration) -> None:
        """Atomically replace the active configuration.

        Raises:
            ConfigurationInvalid: If the configuration is rejected. The
                previous configuration stays active.
        """
        try:
            if not isinstance(configuration, AlertingConfiguration):
                raise ConfigurationInvalid(
                    f"expected AlertingConfiguration, got {type(configuration).__name__}"
                )
            configuration.validate()
        except ConfigurationInvalid as e:
            logger.warning(f"Rejected alerting configuration: {e}")
            self._record_configuration("rejected")
            raise

        with self._lock:
            self._apply_configuration(configuration, self._clock.now())
        self._record_configuration("accepted")
        logger.info("Alerting configuration updated")

    def set_collection_plan(self, plan: CollectionPlanConfiguration) -> None:
        """Atomically replace only the collection plan.

        Raises:
            ConfigurationInvalid: If the plan is rejected.
        """
        if not isinstance(plan, CollectionPlanConfiguration):
            self._record_configuration("rejected")
            raise ConfigurationInvalid(
                f"expected CollectionPlanConfiguration, got {type(plan).__name__}"
            )
        with self._lock:
            assert self._configuration is not None
            updated = AlertingConfiguration(
                cpu_alert=self._configuration.cpu_alert,
                memory_alert=self._configuration.memory_alert,
                default_policy=self._configuration.default_policy,
                collection_plan=plan,
                request_triggers=self._configuration.request_triggers,
            )
            self._apply_configuration(updated, self._clock.now())
        self._record_configuration("accepted")
        logger.info(
            f"Collection plan updated (window {plan.start_timestamp}..{plan.expiration}, "
            f"single_trigger={plan.single_trigger})"
        )

    def _apply_configuration(self, new: AlertingConfiguration, now: float) -> None:
        """Swap in ``new``, resetting every channel whose rule changed.

        Must be called with the lock held.
        """
        old = self._configuration

        for metric_type in (AlertMetricType.CPU, AlertMetricType.MEMORY):
            new_rule = new.rule_for(metric_type)
            old_rule = old.rule_for(metric_type) if old is not None else None
            if new_rule != old_rule:
                self._reset_channel(new_rule.channel)

        old_requests = {r.name: r for r in old.request_triggers} if old is not None else {}
        new_requests = {r.name: r for r in new.request_triggers}
        for name in old_requests.keys() | new_requests.keys():
            if old_requests.get(name) != new_requests.get(name):
                rule = new_requests.get(name) or old_requests[name]
                self._requests.reset(rule.channel)
                self._cooldowns.forget(rule.channel)
                self._mark_reset(rule.channel)

        if old is None or old.collection_plan != new.collection_plan:
            self._plan_tracker.reset()
            self._mark_reset(COLLECTION_PLAN_CHANNEL)

        if old is None or old.default_policy != new.default_policy:
            self._periodic.arm(now)

        self._configuration = new

    def _reset_channel(self, channel: ChannelKey) -> None:
        self._thresholds.reset(channel)
        self._cooldowns.forget(channel)
        self._mark_reset(channel)

    def _mark_reset(self, channel: ChannelKey) -> None:
        self._resets[channel] = self._resets.get(channel, 0) + 1

    # ------------------------------------------------------------------
    # Ingestion
    # ------------------------------------------------------------------

    def submit(
        self,
        metric_type: AlertMetricType | str,
        value: float,
        timestamp: float | None = None,
    ) -> bool:
        """Ingest one resource metric sample.

        Malformed and out-of-order samples are logged and discarded.

        Returns:
            False if the sample was discarded as malformed or out of order.
        """
        try:
            metric_type = AlertMetricType(metric_type)
            value = float(value)
        except (TypeError, ValueError):
            logger.warning(f"Discarding malformed sample ({metric_type!r}, {value!r})")
            self._record_rejected("malformed")
            return False

        if not math.isfinite(value):
            logger.warning(f"Discarding non-finite {metric_type.value} sample {value}")
            self._record_rejected("malformed")
            return False

        now = self._clock.now() if timestamp is None else timestamp

        with self._lock:
            assert self._configuration is not None
            rule = self._configuration.rule_for(metric_type)
            if rule is None:
                logger.warning(f"No alert rule for metric type {metric_type.value}")
                self._record_rejected("unknown_metric")
                return False
            if not rule.enabled:
                return True
            if self._thresholds.is_stale(rule.channel, now):
                last = self._states.get(rule.channel).last_sample_at
                logger.warning(
                    f"Ignoring out-of-order {metric_type.value} sample ({now} < {last})"
                )
                self._record_rejected("out_of_order")
                return False
            candidate = self._thresholds.on_sample(rule, value, now)

        if self._metrics:
            self._metrics.samples_ingested_total.labels(metric_type=metric_type.value).inc()
        if candidate is not None:
            logger.debug(f"{metric_type.value} qualified for capture at {now}")
        return True

    def submit_request_event(
        self, outcome: RequestOutcome, timestamp: float | None = None
    ) -> None:
        """Ingest one request outcome for request triggers and the plan."""
        if not isinstance(outcome, RequestOutcome):
            logger.warning(f"Discarding malformed request event {outcome!r}")
            self._record_rejected("malformed")
            return

        now = self._clock.now() if timestamp is None else timestamp

        with self._lock:
            assert self._configuration is not None
            for rule in self._configuration.request_triggers:
                self._requests.on_request_event(rule, outcome, now)
            self._plan_tracker.on_request_event(self._configuration.collection_plan, outcome, now)

        if self._metrics:
            self._metrics.request_events_total.labels(success=str(outcome.success).lower()).inc()

    # ------------------------------------------------------------------
    # Evaluation
    # ------------------------------------------------------------------

    def tick(self, now: float | None = None) -> TriggerEvent | None:
        """Run one evaluation round.

        Collects every armed candidate, lets the arbiter pick at most one and
        dispatches it to the sink.

        Returns:
            The trigger event if a capture was started.
        """
        now = self._clock.now() if now is None else now

        with self._lock:
            config = self._configuration
            assert config is not None

            candidates: list[CandidateAlert] = []
            plan_candidate = self._plan_tracker.tick(config.collection_plan, now)
            if plan_candidate is not None:
                candidates.append(plan_candidate)
            for rule in (*config.resource_rules, *config.request_triggers):
                if rule.enabled:
                    pending = self._thresholds.pending(rule.channel)
                    if pending is not None:
                        candidates.append(pending)
            periodic_candidate = self._periodic.tick(config.default_policy, now)
            if periodic_candidate is not None:
                candidates.append(periodic_candidate)

            if not candidates:
                return None

            decision = self._arbiter.arbitrate(candidates, now)
            self._settle(decision, now)
            if decision.event is None or decision.selected is None:
                return None
            resets = self._resets.get(decision.selected.channel, 0)

        return self._dispatch(decision.event, decision.selected, resets)

    def _settle(self, decision: ArbitrationDecision, now: float) -> None:
        """Disarm cooldown-rejected candidates and account the ones not fired.

        Must be called with the lock held.
        """
        for candidate in decision.rejected:
            self._thresholds.disarm(candidate.channel, candidate)
            self._record_dropped(candidate, "cooldown")
            remaining = self._cooldowns.remaining(candidate.channel, candidate.cooldown, now)
            logger.debug(f"{candidate.channel} cooling down for another {remaining:.1f}s")
        for candidate in decision.dropped:
            self._record_dropped(candidate, "in_progress")
        for candidate in decision.deferred:
            self._record_dropped(candidate, "precedence")

        if decision.dropped:
            logger.debug(
                f"Capture in progress; {len(decision.dropped)} candidate(s) stay armed"
            )
        if decision.deferred:
            names = ", ".join(c.channel for c in decision.deferred)
            logger.debug(f"Deferred lower-precedence candidates: {names}")

    def _dispatch(
        self, event: TriggerEvent, candidate: CandidateAlert, resets: int
    ) -> TriggerEvent | None:
        """Hand ``event`` to the sink, outside the lock.

        ``resets`` is the fired channel's reset count at arbitration. If a
        configuration change reset that channel while the sink call was in
        flight, the new channel state is left alone.
        """
        attributes = {
            "trigger.id": event.trigger_id,
            "trigger.reason": event.reason.value,
            "trigger.channel": event.channel,
        }
        with trace_span("alerting.dispatch", attributes):
            try:
                handle = self._sink.start_capture(event)
            except SinkUnavailable as e:
                logger.warning(f"Trigger sink unavailable for {event.trigger_id}: {e}")
                self._abort(event)
                return None
            except Exception:
                logger.exception(f"Trigger sink failed to start {event.trigger_id}")
                self._abort(event)
                return None

        with self._lock:
            running = self._arbiter.confirm(event, handle)
            if self._resets.get(event.channel, 0) == resets:
                self._consume(event, candidate)
            else:
                logger.info(
                    f"{event.channel} was reconfigured while starting {event.trigger_id}; "
                    "channel state left as reset"
                )
            self._last_event = event

        if self._metrics:
            self._metrics.triggers_fired_total.labels(
                reason=event.reason.value, channel=event.channel
            ).inc()
            self._metrics.capture_in_progress.set(1 if running else 0)

        logger.info(
            f"Profiling triggered: {event.reason.value} on {event.channel} "
            f"for {event.profile_duration}s (id {event.trigger_id})"
        )
        return event

    def _consume(self, event: TriggerEvent, candidate: CandidateAlert) -> None:
        """Mark the fired candidate's channel as spent.

        Must be called with the lock held.
        """
        assert self._configuration is not None
        if event.reason is TriggerReason.COLLECTION_PLAN:
            self._plan_tracker.consume(self._configuration.collection_plan, candidate)
        elif event.reason is not TriggerReason.DEFAULT_PERIODIC:
            self._thresholds.disarm(event.channel, candidate)

    def _abort(self, event: TriggerEvent) -> None:
        with self._lock:
            self._arbiter.abort(event)
        if self._metrics:
            self._metrics.sink_failures_total.inc()
            self._metrics.capture_in_progress.set(0)

    def on_capture_complete(
        self, handle: CaptureHandle, outcome: CaptureOutcome = CaptureOutcome.SUCCEEDED
    ) -> bool:
        """Sink callback: the capture identified by ``handle`` finished.

        Returns:
            True if ``handle`` matched the running capture.
        """
        now = self._clock.now()
        with self._lock:
            finished = self._arbiter.complete(handle, outcome)

        if finished is None:
            logger.warning(f"Completion for unknown capture {handle!r} ignored")
            return False

        if self._metrics:
            self._metrics.capture_in_progress.set(0)
            self._metrics.capture_duration_seconds.labels(outcome=outcome.value).observe(
                max(0.0, now - finished.event.fired_at)
            )
        logger.info(f"Capture {finished.event.trigger_id} completed: {outcome.value}")
        return True

    # ------------------------------------------------------------------
    # Background loop
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Run ``tick`` every ``tick_interval_seconds`` on a daemon thread."""
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run, name="profiler-trigger-tick", daemon=True
        )
        self._thread.start()
        logger.info(f"Alerting engine started (tick every {self._tick_interval}s)")

    def stop(self, timeout: float = 5.0) -> None:
        """Stop the background loop."""
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
        logger.info("Alerting engine stopped")

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def _run(self) -> None:
        while not self._stop_event.wait(self._tick_interval):
            try:
                self.tick()
            except Exception:
                logger.exception("Evaluation tick failed")

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def capture_in_progress(self) -> bool:
        with self._lock:
            return self._arbiter.capture_in_progress

    @property
    def last_event(self) -> TriggerEvent | None:
        with self._lock:
            return self._last_event

    def status(self) -> dict[str, Any]:
        """Snapshot of channel phases and capture state."""
        now = self._clock.now()
        with self._lock:
            config = self._configuration
            assert config is not None
            channels = {
                rule.channel: self._thresholds.phase(rule, now).name
                for rule in (*config.resource_rules, *config.request_triggers)
            }
            active = self._arbiter.active
            return {
                "now": now,
                "capture_in_progress": active is not None,
                "active_trigger": active.event.to_dict() if active is not None else None,
                "last_trigger": self._last_event.to_dict() if self._last_event else None,
                "channels": channels,
                "collection_plan": self._plan_tracker.phase(config.collection_plan, now).name,
                "next_periodic_at": self._periodic.next_due(config.default_policy),
            }

    def _record_rejected(self, reason: str) -> None:
        if self._metrics:
            self._metrics.samples_rejected_total.labels(reason=reason).inc()

    def _record_dropped(self, candidate: CandidateAlert, cause: str) -> None:
        if self._metrics:
            self._metrics.candidates_dropped_total.labels(
                channel=candidate.channel, cause=cause
            ).inc()

    def _record_configuration(self, status: str) -> None:
        if self._metrics:
            self._metrics.configuration_updates_total.labels(status=status).inc()
