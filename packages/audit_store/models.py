"""
Audit event models for the identity audit bridge.

This module provides the data models for the append-only audit log: the
stored row, the write-side input, query filters, pagination and the
wire representations returned to operators.
"""

import time
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Bounds enforced on every paginated read
MIN_PAGE_SIZE = 1
MAX_PAGE_SIZE = 500

# SQLite INTEGER is a signed 64-bit value
MIN_SQL_INTEGER = -(2**63)
MAX_SQL_INTEGER = 2**63 - 1
MAX_OFFSET = MAX_SQL_INTEGER


def now_millis() -> int:
    """Current time as epoch milliseconds."""
    return int(time.time() * 1000)


class DomainEventType(str, Enum):
    """Semantic classification of audit events owned by this system."""

    # Back-office operations
    API_ACCOUNT_CREATION = "API_ACCOUNT_CREATION"
    API_ACCOUNT_DELETION = "API_ACCOUNT_DELETION"
    GET_DETAILS = "GET_DETAILS"
    LOCK_ACCOUNT = "LOCK_ACCOUNT"
    UNLOCK_ACCOUNT = "UNLOCK_ACCOUNT"
    UPDATE_EMAIL = "UPDATE_EMAIL"
    UPDATE_PHONE_NUMBER = "UPDATE_PHONE_NUMBER"
    INIT_PASSWORD = "INIT_PASSWORD"
    SECOND_FACTOR_REMOVED = "2ND_FACTOR_REMOVED"
    SMS_CHALLENGE = "SMS_CHALLENGE"

    # Provider-ingested events
    LOGON_OK = "LOGON_OK"
    LOGON_ERROR = "LOGON_ERROR"
    LOGOUT = "LOGOUT"


class AuditEventCreate(BaseModel):
    """
    Input for the write path. Every field is optional; ``time`` is filled
    at write time when absent.
    """

    time: Optional[int] = Field(None, ge=0, description="Epoch milliseconds")
    origin: Optional[str] = None
    realm: Optional[str] = None
    agent_user_id: Optional[str] = None
    agent_username: Optional[str] = None
    agent_realm: Optional[str] = None
    subject_user_id: Optional[str] = None
    subject_username: Optional[str] = None
    domain_event_type: Optional[str] = None
    provider_event_type: Optional[str] = None
    provider_operation_type: Optional[str] = None
    client_id: Optional[str] = None
    additional_info: Optional[str] = None

    @field_validator("domain_event_type", mode="before")
    @classmethod
    def unwrap_domain_event_type(cls, v):
        """Accept DomainEventType members as well as plain strings."""
        if isinstance(v, DomainEventType):
            return v.value
        return v


class AuditEvent(BaseModel):
    """
    Immutable audit row as persisted.

    ``None`` means the column is NULL in storage. The wire representation
    collapses it to an empty string, see ``to_representation``.
    """

    id: int = Field(..., description="Store-assigned identifier")
    time: int = Field(..., description="Epoch milliseconds")
    origin: Optional[str] = None
    realm: Optional[str] = None
    agent_user_id: Optional[str] = None
    agent_username: Optional[str] = None
    agent_realm: Optional[str] = None
    subject_user_id: Optional[str] = None
    subject_username: Optional[str] = None
    domain_event_type: Optional[str] = None
    provider_event_type: Optional[str] = None
    provider_operation_type: Optional[str] = None
    client_id: Optional[str] = None
    additional_info: Optional[str] = None

    model_config = {"frozen": True}  # Immutable

    def to_representation(self) -> "AuditRepresentation":
        """Convert to the operator-facing wire format."""
        return AuditRepresentation(
            audit_id=self.id,
            audit_time=self.time,
            origin=self.origin or "",
            realm_name=self.realm or "",
            agent_user_id=self.agent_user_id or "",
            agent_username=self.agent_username or "",
            agent_realm_name=self.agent_realm or "",
            user_id=self.subject_user_id or "",
            username=self.subject_username or "",
            ct_event_type=self.domain_event_type or "",
            kc_event_type=self.provider_event_type or "",
            kc_operation_type=self.provider_operation_type or "",
            client_id=self.client_id or "",
            additional_info=self.additional_info or "",
        )


class AuditFilter(BaseModel):
    """
    Filter applied to reads. Unset fields do not constrain the result.
    """

    realm: Optional[str] = None
    origin: Optional[str] = None
    domain_event_types: Optional[list[str]] = None
    provider_event_types: Optional[list[str]] = None
    subject_user_id: Optional[str] = None
    date_from: Optional[int] = Field(None, description="Inclusive, epoch ms")
    date_to: Optional[int] = Field(None, description="Inclusive, epoch ms")


class Pagination(BaseModel):
    """
    Page window. Out-of-range values are clamped instead of rejected.
    """

    offset: int = 0
    limit: int = MAX_PAGE_SIZE

    @field_validator("offset", mode="before")
    @classmethod
    def clamp_offset(cls, v: Optional[int]) -> int:
        if v is None or v < 0:
            return 0
        return min(v, MAX_OFFSET)

    @field_validator("limit", mode="before")
    @classmethod
    def clamp_limit(cls, v: Optional[int]) -> int:
        if v is None:
            return MAX_PAGE_SIZE
        return max(MIN_PAGE_SIZE, min(MAX_PAGE_SIZE, v))


class AuditSummary(BaseModel):
    """Distinct values observed among stored rows."""

    origins: set[str] = Field(default_factory=set)
    realms: set[str] = Field(default_factory=set)
    domain_event_types: set[str] = Field(default_factory=set)

    def to_representation(self) -> "EventSummaryRepresentation":
        return EventSummaryRepresentation(
            origins=sorted(self.origins),
            realms=sorted(self.realms),
            ct_event_types=sorted(self.domain_event_types),
        )


# Wire representations (camelCase on the wire)


class AuditRepresentation(BaseModel):
    """One audit event as returned to operators."""

    model_config = ConfigDict(populate_by_name=True)

    audit_id: int = Field(..., alias="auditId")
    audit_time: int = Field(..., alias="auditTime")
    origin: str = ""
    realm_name: str = Field("", alias="realmName")
    agent_user_id: str = Field("", alias="agentUserId")
    agent_username: str = Field("", alias="agentUsername")
    agent_realm_name: str = Field("", alias="agentRealmName")
    user_id: str = Field("", alias="userId")
    username: str = ""
    ct_event_type: str = Field("", alias="ctEventType")
    kc_event_type: str = Field("", alias="kcEventType")
    kc_operation_type: str = Field("", alias="kcOperationType")
    client_id: str = Field("", alias="clientId")
    additional_info: str = Field("", alias="additionalInfo")


class AuditEventsRepresentation(BaseModel):
    """Page of events plus the total number of matches."""

    events: list[AuditRepresentation] = Field(default_factory=list)
    count: int = 0


class EventSummaryRepresentation(BaseModel):
    """Distinct origins, realms and domain event types."""

    model_config = ConfigDict(populate_by_name=True)

    origins: list[str] = Field(default_factory=list)
    realms: list[str] = Field(default_factory=list)
    ct_event_types: list[str] = Field(default_factory=list, alias="ctEventTypes")
