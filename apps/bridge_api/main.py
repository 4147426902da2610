"""Main FastAPI application for the identity audit bridge.

This module exposes the event receiver used by the identity provider, the
operator-facing audit queries and the back-office user management routes.
"""

import json
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import Depends, FastAPI, Header, HTTPException, Request, Response
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import ValidationError
from starlette.concurrency import run_in_threadpool

from packages.audit_query import AuditQueryService, QueryParameterError
from packages.audit_store import (
    AuditStore,
    CorrelationIdMiddleware,
    StorageError,
    get_correlation_id,
)
from packages.audit_trail import AgentContext, AuditTrailEmitter
from packages.bridge_config import BridgeConfig, load_config
from packages.event_bridge import (
    AuditStoreSink,
    ConsoleSink,
    EnvelopeValidationError,
    EventCategory,
    EventContext,
    EventDispatcher,
    EventEnvelope,
    SinkRegistry,
    StatisticsSink,
    UnknownCategoryError,
    build_sink_chain,
    receive,
)
from packages.identity_provider import (
    FakeIdentityProvider,
    IdentityProviderClient,
    IdentityProviderError,
    PasswordRepresentation,
    UserRepresentation,
)
from packages.metrics_collector import MetricsCollector, get_metrics_collector
from packages.structured_logging import get_logger, setup_logging_from_config
from packages.user_management import UserManagementService

logger = get_logger(__name__)

# Global audit store instance
audit_store: AuditStore | None = None

# Global metrics collector instance
metrics: MetricsCollector | None = None

# Global event dispatcher instance
dispatcher: EventDispatcher | None = None

# Global audit query service instance
query_service: AuditQueryService | None = None

# Global user management service instance
user_service: UserManagementService | None = None


def build_dispatcher(
    store: AuditStore,
    collector: MetricsCollector,
    provider_origin: str = "keycloak",
) -> EventDispatcher:
    """Dispatcher sending both categories to console, statistics and audit store sinks."""
    sinks = [
        build_sink_chain(ConsoleSink(), collector),
        build_sink_chain(StatisticsSink(collector), collector),
        build_sink_chain(AuditStoreSink(store, provider_origin), collector),
    ]
    registry = SinkRegistry.build({category: sinks for category in EventCategory})
    return EventDispatcher(registry)


def configure(
    config: BridgeConfig,
    provider: Optional[IdentityProviderClient] = None,
) -> None:
    """Build every component from configuration.

    Args:
        config: Bridge settings
        provider: Identity provider client (default: in-memory fake)
    """
    global audit_store, metrics, dispatcher, query_service, user_service

    audit_store = AuditStore(config.audit_db_path, config.audit_db_ro_path)
    metrics = get_metrics_collector()
    dispatcher = build_dispatcher(audit_store, metrics, config.provider_origin)
    query_service = AuditQueryService(audit_store)

    emitter = AuditTrailEmitter(
        audit_store,
        origin=config.back_office_origin,
        metrics=metrics,
    )
    user_service = UserManagementService(
        provider or FakeIdentityProvider(),
        emitter,
        timeout=config.provider_timeout_seconds,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """Application lifespan management."""
    config = load_config()
    setup_logging_from_config(config)
    configure(config)
    logger.info("bridge_started", audit_db=config.audit_db_path)

    yield


# Create FastAPI app
app = FastAPI(
    title="Identity Audit Bridge API",
    description="Identity provider event ingestion, audit queries and back-office user management",
    version="0.1.0",
    lifespan=lifespan,
)

# Add correlation ID middleware
app.add_middleware(CorrelationIdMiddleware)


@app.exception_handler(QueryParameterError)
async def query_parameter_exception_handler(
    request: Request, exc: QueryParameterError
) -> JSONResponse:
    return JSONResponse(status_code=400, content={"error": str(exc)})


@app.exception_handler(StorageError)
async def storage_exception_handler(request: Request, exc: StorageError) -> JSONResponse:
    logger.error("storage_error", path=request.url.path, error=str(exc))
    return JSONResponse(status_code=500, content={"error": "Audit storage unavailable"})


@app.exception_handler(IdentityProviderError)
async def provider_exception_handler(
    request: Request, exc: IdentityProviderError
) -> JSONResponse:
    return JSONResponse(status_code=exc.status, content={"error": exc.message})


def _require(component, name: str):
    if component is None:
        raise HTTPException(status_code=500, detail=f"{name} not initialized")
    return component


def get_agent(
    x_agent_realm: Optional[str] = Header(None),
    x_agent_username: Optional[str] = Header(None),
    x_agent_user_id: Optional[str] = Header(None),
) -> AgentContext:
    """Operator identity, as forwarded by the authentication layer."""
    return AgentContext(
        realm=x_agent_realm,
        username=x_agent_username,
        user_id=x_agent_user_id,
    )


@app.get("/")
async def root() -> dict:
    """Health check endpoint."""
    return {
        "service": "Identity Audit Bridge",
        "version": "0.1.0",
        "status": "healthy",
        "correlation_id": get_correlation_id() or "none",
        "components": {
            "audit_store": audit_store is not None,
            "dispatcher": dispatcher is not None,
            "user_management": user_service is not None,
        },
    }


@app.get("/metrics", response_class=PlainTextResponse)
async def prometheus_metrics() -> str:
    """Prometheus text exposition of the bridge metrics."""
    return _require(metrics, "Metrics collector").export_prometheus()


# Event ingestion


@app.post("/event/receiver")
async def receive_event(request: Request) -> Response:
    """
    Accept one provider event envelope and fan it out to the sinks.

    Returns 200 with an empty body once every sink has been attempted,
    whatever the sinks' individual outcomes.

    Raises:
        HTTPException: 500 if the dispatcher is not initialized.
    """
    event_dispatcher = _require(dispatcher, "Dispatcher")

    body = await request.body()
    try:
        document = json.loads(body)
        if not isinstance(document, dict):
            raise ValueError("envelope is not a JSON object")
        envelope = EventEnvelope.model_validate(document)
    except (ValueError, ValidationError) as e:
        logger.error("envelope_unreadable", error=str(e))
        return JSONResponse(status_code=500, content={"error": "Malformed envelope"})

    try:
        event_request = receive(envelope)
    except EnvelopeValidationError as e:
        logger.info("envelope_rejected", param=e.param)
        return JSONResponse(status_code=400, content={"error": str(e)})

    if metrics is not None:
        metrics.increment_envelopes(event_request.category.value)

    ctx = EventContext(category=event_request.category, correlation_id=get_correlation_id())
    try:
        await run_in_threadpool(event_dispatcher.dispatch, ctx, event_request)
    except UnknownCategoryError as e:
        logger.error("dispatch_failed", error=str(e))
        return JSONResponse(status_code=500, content={"error": str(e)})

    return Response(status_code=200)


# Audit queries


@app.get("/events")
def get_events(request: Request) -> dict:
    """Audit events matching the query parameters, newest first."""
    service = _require(query_service, "Query service")
    return service.get_events(request.query_params).model_dump(by_alias=True)


@app.get("/events/summary")
def get_events_summary(request: Request) -> dict:
    """Distinct origins, realms and domain event types."""
    service = _require(query_service, "Query service")
    return service.get_events_summary(request.query_params).model_dump(by_alias=True)


@app.get("/events/realms/{realm}/users/{user_id}/events")
def get_user_events(realm: str, user_id: str, request: Request) -> dict:
    """Audit events about one user."""
    service = _require(query_service, "Query service")
    return service.get_user_events(realm, user_id, request.query_params).model_dump(by_alias=True)


# Back-office user management


@app.post("/management/realms/{realm}/users", status_code=201)
def create_user(
    realm: str,
    user: UserRepresentation,
    response: Response,
    agent: AgentContext = Depends(get_agent),
) -> dict:
    """Create a user; the Location header points at the new user."""
    service = _require(user_service, "User management service")
    user_id = service.create_user(agent, realm, user)
    response.headers["Location"] = f"/management/realms/{realm}/users/{user_id}"
    return {"id": user_id}


@app.get("/management/realms/{realm}/users/{user_id}")
def get_user(realm: str, user_id: str, agent: AgentContext = Depends(get_agent)) -> dict:
    service = _require(user_service, "User management service")
    user = service.get_user(agent, realm, user_id)
    return user.model_dump(by_alias=True, exclude_none=True)


@app.put("/management/realms/{realm}/users/{user_id}")
def update_user(
    realm: str,
    user_id: str,
    user: UserRepresentation,
    agent: AgentContext = Depends(get_agent),
) -> dict:
    """Apply the supplied fields; changed contact details become unverified."""
    service = _require(user_service, "User management service")
    updated = service.update_user(agent, realm, user_id, user)
    return updated.model_dump(by_alias=True, exclude_none=True)


@app.delete("/management/realms/{realm}/users/{user_id}", status_code=204)
def delete_user(realm: str, user_id: str, agent: AgentContext = Depends(get_agent)) -> Response:
    service = _require(user_service, "User management service")
    service.delete_user(agent, realm, user_id)
    return Response(status_code=204)


@app.put("/management/realms/{realm}/users/{user_id}/reset-password", status_code=204)
def reset_password(
    realm: str,
    user_id: str,
    password: PasswordRepresentation,
    agent: AgentContext = Depends(get_agent),
) -> Response:
    service = _require(user_service, "User management service")
    service.reset_password(agent, realm, user_id, password.value)
    return Response(status_code=204)


@app.put("/management/realms/{realm}/users/{user_id}/execute-actions-email", status_code=204)
def execute_actions_email(
    realm: str,
    user_id: str,
    actions: list[str],
    agent: AgentContext = Depends(get_agent),
) -> Response:
    service = _require(user_service, "User management service")
    service.execute_actions_email(agent, realm, user_id, actions)
    return Response(status_code=204)


@app.post("/management/realms/{realm}/users/{user_id}/send-new-enrolment-code")
def send_new_enrolment_code(
    realm: str,
    user_id: str,
    agent: AgentContext = Depends(get_agent),
) -> dict:
    service = _require(user_service, "User management service")
    return {"code": service.send_new_enrolment_code(agent, realm, user_id)}


@app.delete(
    "/management/realms/{realm}/users/{user_id}/credentials/{credential_id}",
    status_code=204,
)
def delete_credential(
    realm: str,
    user_id: str,
    credential_id: str,
    agent: AgentContext = Depends(get_agent),
) -> Response:
    service = _require(user_service, "User management service")
    service.delete_credential(agent, realm, user_id, credential_id)
    return Response(status_code=204)
