"""
Audit store package for the identity audit bridge.

This package provides the append-only audit log written by the ingestion
pipeline and the back-office audit trail, and read by operators.
"""

from .middleware import (
    CORRELATION_ID_HEADER,
    CorrelationIdMiddleware,
    get_correlation_id,
    set_correlation_id,
)
from .models import (
    MAX_OFFSET,
    MAX_PAGE_SIZE,
    MAX_SQL_INTEGER,
    MIN_PAGE_SIZE,
    MIN_SQL_INTEGER,
    AuditEvent,
    AuditEventCreate,
    AuditEventsRepresentation,
    AuditFilter,
    AuditRepresentation,
    AuditSummary,
    DomainEventType,
    EventSummaryRepresentation,
    Pagination,
    now_millis,
)
from .store import AuditStore, StorageError

__all__ = [
    "AuditEvent",
    "AuditEventCreate",
    "AuditEventsRepresentation",
    "AuditFilter",
    "AuditRepresentation",
    "AuditStore",
    "AuditSummary",
    "CORRELATION_ID_HEADER",
    "CorrelationIdMiddleware",
    "DomainEventType",
    "EventSummaryRepresentation",
    "MAX_OFFSET",
    "MAX_PAGE_SIZE",
    "MAX_SQL_INTEGER",
    "MIN_PAGE_SIZE",
    "MIN_SQL_INTEGER",
    "Pagination",
    "StorageError",
    "get_correlation_id",
    "now_millis",
    "set_correlation_id",
]
