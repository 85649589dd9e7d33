"""FastAPI REST adapter for the alerting engine.

Provides HTTP endpoints for metric ingestion, configuration and operator
collection plans.

Usage:
    from profiler_trigger.adapters.inbound.rest_api import create_app

    app = create_app(engine)
    # Serve with the tick loop running:
    #   python -m profiler_trigger.adapters.inbound.rest_api
"""

from __future__ import annotations

from typing import Any, Optional

from fastapi import FastAPI, HTTPException, status
from pydantic import BaseModel, Field

from profiler_trigger.application.alerting_engine import AlertingEngine
from profiler_trigger.domain.entities.trigger import RequestOutcome
from profiler_trigger.domain.value_objects.alerting_config import (
    AlertingConfiguration,
    AlertRule,
    CollectionPlanConfiguration,
    ConfigurationInvalid,
    DefaultPeriodicPolicy,
    RequestTriggerRule,
)
from profiler_trigger.domain.value_objects.identifiers import AlertMetricType


# Pydantic models for request/response serialization


class AlertRuleModel(BaseModel):
    """Threshold rule for one resource metric."""

    enabled: bool = Field(default=False)
    threshold: float = Field(default=0.0, description="Breach threshold (inclusive)")
    profile_duration: float = Field(default=0.0, description="Hysteresis and capture seconds")
    cooldown: float = Field(default=0.0, description="Seconds between firings")


class RequestTriggerModel(BaseModel):
    """Request latency / error-ratio trigger."""

    name: str = Field(..., min_length=1)
    enabled: bool = Field(default=True)
    threshold: float = Field(default=0.5, description="Breach ratio 0..1")
    profile_duration: float = Field(default=30.0)
    cooldown: float = Field(default=300.0)
    latency_threshold_ms: float = Field(default=1000.0)
    window_seconds: float = Field(default=60.0)
    minimum_samples: int = Field(default=1)
    name_filter: Optional[str] = Field(default=None, description="Regex on request name")

    def to_domain(self) -> RequestTriggerRule:
        return RequestTriggerRule(**self.model_dump())


class PeriodicPolicyModel(BaseModel):
    """Default periodic profiling cadence."""

    enabled: bool = Field(default=False)
    interval: float = Field(default=3600.0)
    profile_duration: float = Field(default=120.0)


class CollectionPlanModel(BaseModel):
    """Collection plan with absolute instants on the engine clock."""

    enabled: bool = Field(default=False)
    single_trigger: bool = Field(default=True)
    start_timestamp: float = Field(default=0.0)
    expiration: float = Field(default=0.0)
    profile_duration: float = Field(default=120.0)
    cooldown: float = Field(default=0.0)
    settings: dict[str, Any] = Field(default_factory=dict)
    request_trigger: Optional[RequestTriggerModel] = None

    def to_domain(self) -> CollectionPlanConfiguration:
        return CollectionPlanConfiguration(
            enabled=self.enabled,
            single_trigger=self.single_trigger,
            start_timestamp=self.start_timestamp,
            expiration=self.expiration,
            profile_duration=self.profile_duration,
            cooldown=self.cooldown,
            settings=self.settings,
            request_trigger=self.request_trigger.to_domain() if self.request_trigger else None,
        )


class ConfigurationRequest(BaseModel):
    """Full alerting configuration replacement."""

    cpu_alert: AlertRuleModel = Field(default_factory=AlertRuleModel)
    memory_alert: AlertRuleModel = Field(default_factory=AlertRuleModel)
    default_policy: PeriodicPolicyModel = Field(default_factory=PeriodicPolicyModel)
    collection_plan: CollectionPlanModel = Field(default_factory=CollectionPlanModel)
    request_triggers: list[RequestTriggerModel] = Field(default_factory=list)

    def to_domain(self) -> AlertingConfiguration:
        return AlertingConfiguration(
            cpu_alert=AlertRule(metric_type=AlertMetricType.CPU, **self.cpu_alert.model_dump()),
            memory_alert=AlertRule(
                metric_type=AlertMetricType.MEMORY, **self.memory_alert.model_dump()
            ),
            default_policy=DefaultPeriodicPolicy(**self.default_policy.model_dump()),
            collection_plan=self.collection_plan.to_domain(),
            request_triggers=tuple(r.to_domain() for r in self.request_triggers),
        )


class ManualCollectionRequest(BaseModel):
    """Operator request to profile within a window starting now."""

    start_in_seconds: float = Field(default=0.0, ge=0, description="Delay before the window opens")
    duration_seconds: float = Field(default=600.0, ge=0, description="Length of the window")
    single_trigger: bool = Field(default=True)
    profile_duration: float = Field(default=120.0, ge=0)
    cooldown: float = Field(default=0.0, ge=0)
    settings: dict[str, Any] = Field(default_factory=dict)
    request_trigger: Optional[RequestTriggerModel] = None


class SampleRequest(BaseModel):
    """One resource metric sample."""

    metric_type: str = Field(..., description="cpu or memory")
    value: float


class RequestEventRequest(BaseModel):
    """One request outcome."""

    duration_ms: float = Field(..., ge=0)
    success: bool = Field(default=True)
    error: Optional[str] = None
    name: str = Field(default="")


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    running: bool
    capture_in_progress: bool


def create_app(engine: AlertingEngine) -> FastAPI:
    """Create FastAPI application with alerting endpoints.

    Args:
        engine: AlertingEngine instance.

    Returns:
        Configured FastAPI application.
    """
    app = FastAPI(
        title="Profiler Trigger API",
        description="Decides when to capture CPU and memory profiles",
        version="0.1.0",
    )

    def _invalid(e: ConfigurationInvalid) -> HTTPException:
        return HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))

    @app.get("/health", response_model=HealthResponse, tags=["System"])
    async def health_check():
        """Check engine health status."""
        return HealthResponse(
            status="healthy",
            running=engine.running,
            capture_in_progress=engine.capture_in_progress,
        )

    @app.get("/status", response_model=dict, tags=["System"])
    async def get_status():
        """Snapshot of channel phases and capture state."""
        return engine.status()

    @app.put("/configuration", response_model=dict, tags=["Configuration"])
    async def put_configuration(request: ConfigurationRequest):
        """Replace the whole alerting configuration."""
        try:
            engine.set_configuration(request.to_domain())
        except ConfigurationInvalid as e:
            raise _invalid(e)
        return {"status": "applied"}

    @app.post("/collection-plan", response_model=dict, tags=["Configuration"])
    async def post_collection_plan(request: ManualCollectionRequest):
        """Issue an operator collection plan relative to the engine clock."""
        start = engine.now() + request.start_in_seconds
        try:
            plan = CollectionPlanConfiguration(
                enabled=True,
                single_trigger=request.single_trigger,
                start_timestamp=start,
                expiration=start + request.duration_seconds,
                profile_duration=request.profile_duration,
                cooldown=request.cooldown,
                settings=request.settings,
                request_trigger=(
                    request.request_trigger.to_domain() if request.request_trigger else None
                ),
            )
            engine.set_collection_plan(plan)
        except ConfigurationInvalid as e:
            raise _invalid(e)
        return {
            "status": "scheduled",
            "start_timestamp": plan.start_timestamp,
            "expiration": plan.expiration,
        }

    @app.delete("/collection-plan", response_model=dict, tags=["Configuration"])
    async def delete_collection_plan():
        """Withdraw the collection plan."""
        engine.set_collection_plan(CollectionPlanConfiguration())
        return {"status": "cleared"}

    @app.post("/samples", response_model=dict, status_code=status.HTTP_202_ACCEPTED, tags=["Ingestion"])
    async def post_sample(request: SampleRequest):
        """Submit one CPU or memory sample."""
        try:
            metric_type = AlertMetricType(request.metric_type.lower())
        except ValueError:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail=f"Unknown metric type {request.metric_type!r}",
            )
        if not metric_type.is_resource():
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail=f"Metric type {metric_type.value!r} does not take samples",
            )
        return {"accepted": engine.submit(metric_type, request.value)}

    @app.post("/requests", response_model=dict, status_code=status.HTTP_202_ACCEPTED, tags=["Ingestion"])
    async def post_request_event(request: RequestEventRequest):
        """Submit one request outcome."""
        engine.submit_request_event(
            RequestOutcome(
                duration_ms=request.duration_ms,
                success=request.success,
                error=request.error,
                name=request.name,
            )
        )
        return {"accepted": True}

    return app


def run_server(
    engine: AlertingEngine,
    host: str = "0.0.0.0",
    port: int = 8080,
) -> None:
    """Run the REST API server with the engine's tick loop.

    Args:
        engine: The alerting engine.
        host: Host to bind to.
        port: Port to bind to.
    """
    import uvicorn

    app = create_app(engine)
    engine.start()
    try:
        uvicorn.run(app, host=host, port=port)
    finally:
        engine.stop()


if __name__ == "__main__":
    from profiler_trigger.adapters.outbound.executor_sink import ExecutorTriggerSink
    from profiler_trigger.infrastructure.config import get_config
    from profiler_trigger.infrastructure.container import Container
    from profiler_trigger.infrastructure.metrics import setup_metrics

    config = get_config()
    setup_metrics(config.server.metrics_port)
    container = Container.create()

    def log_capture(event) -> None:
        container.logger.info("capture_requested", **event.to_dict())

    sink = ExecutorTriggerSink(log_capture)
    try:
        run_server(container.build_engine(sink), config.server.host, config.server.port)
    finally:
        sink.shutdown()
