"""Audit trail package for back-office operations."""

from .emitter import (
    OPERATION_TYPES,
    AgentContext,
    AuditTrailEmitter,
    UpdatePlan,
    derive_update_events,
    plan_update,
)

__all__ = [
    "AgentContext",
    "AuditTrailEmitter",
    "OPERATION_TYPES",
    "UpdatePlan",
    "derive_update_events",
    "plan_update",
]
