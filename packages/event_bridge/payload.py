"""
Provider event payloads.

The identity provider posts its events as base64-encoded UTF-8 JSON in the
provider's own event representation. This module decodes them and maps them
onto audit rows.
"""

import json
from enum import Enum
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from packages.audit_store import AuditEventCreate, DomainEventType


class EventCategory(str, Enum):
    """The two envelope categories the provider emits."""

    EVENT = "Event"
    ADMIN_EVENT = "AdminEvent"


# Provider user event types with a domain classification
PROVIDER_EVENT_CLASSIFICATION: dict[str, DomainEventType] = {
    "LOGIN": DomainEventType.LOGON_OK,
    "LOGIN_ERROR": DomainEventType.LOGON_ERROR,
    "LOGOUT": DomainEventType.LOGOUT,
}

ADMIN_EVENT_TYPE = "ADMIN"


class PayloadDecodeError(Exception):
    """Raised when an envelope payload is not a valid provider event."""
    pass


class ProviderEvent(BaseModel):
    """User event (login, logout, profile change...) as emitted by the provider."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    time: Optional[int] = None
    type: str
    realm_id: Optional[str] = Field(None, alias="realmId")
    client_id: Optional[str] = Field(None, alias="clientId")
    user_id: Optional[str] = Field(None, alias="userId")
    session_id: Optional[str] = Field(None, alias="sessionId")
    ip_address: Optional[str] = Field(None, alias="ipAddress")
    error: Optional[str] = None
    details: dict[str, str] = Field(default_factory=dict)

    @property
    def event_type(self) -> str:
        return self.type


class AuthDetails(BaseModel):
    """Who performed an admin operation."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    realm_id: Optional[str] = Field(None, alias="realmId")
    client_id: Optional[str] = Field(None, alias="clientId")
    user_id: Optional[str] = Field(None, alias="userId")
    ip_address: Optional[str] = Field(None, alias="ipAddress")


class ProviderAdminEvent(BaseModel):
    """Admin operation on a provider resource."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    time: Optional[int] = None
    realm_id: Optional[str] = Field(None, alias="realmId")
    auth_details: AuthDetails = Field(default_factory=AuthDetails, alias="authDetails")
    operation_type: str = Field(..., alias="operationType")
    resource_type: Optional[str] = Field(None, alias="resourceType")
    resource_path: Optional[str] = Field(None, alias="resourcePath")
    representation: Optional[str] = None
    error: Optional[str] = None

    @property
    def event_type(self) -> str:
        return ADMIN_EVENT_TYPE

    @property
    def subject_user_id(self) -> Optional[str]:
        """User id targeted by the operation, when the resource is a user."""
        if not self.resource_path or not self.resource_path.startswith("users/"):
            return None
        return self.resource_path.split("/")[1] or None


AnyProviderEvent = Union[ProviderEvent, ProviderAdminEvent]


def decode_provider_event(category: EventCategory, payload: bytes) -> AnyProviderEvent:
    """
    Decode an envelope payload.

    Args:
        category: Envelope category, selects the representation
        payload: Base64-decoded payload bytes

    Raises:
        PayloadDecodeError: If the payload is not a JSON object of the
            expected representation
    """
    try:
        document: Any = json.loads(payload.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise PayloadDecodeError(f"Payload is not UTF-8 JSON: {e}") from e

    if not isinstance(document, dict):
        raise PayloadDecodeError("Payload is not a JSON object")

    model = ProviderEvent if category == EventCategory.EVENT else ProviderAdminEvent
    try:
        return model.model_validate(document)
    except ValidationError as e:
        raise PayloadDecodeError(f"Invalid {category.value} payload: {e}") from e


def _compact_json(values: dict[str, Any]) -> Optional[str]:
    kept = {k: v for k, v in values.items() if v not in (None, {}, "")}
    if not kept:
        return None
    return json.dumps(kept, sort_keys=True)


def to_audit_event(event: AnyProviderEvent, origin: str) -> AuditEventCreate:
    """Map a decoded provider event onto an audit row."""
    if isinstance(event, ProviderAdminEvent):
        return AuditEventCreate(
            time=event.time,
            origin=origin,
            realm=event.realm_id,
            agent_user_id=event.auth_details.user_id,
            agent_realm=event.auth_details.realm_id,
            subject_user_id=event.subject_user_id,
            provider_event_type=ADMIN_EVENT_TYPE,
            provider_operation_type=event.operation_type,
            client_id=event.auth_details.client_id,
            additional_info=_compact_json({
                "resourceType": event.resource_type,
                "resourcePath": event.resource_path,
                "error": event.error,
            }),
        )

    classification = PROVIDER_EVENT_CLASSIFICATION.get(event.type)
    return AuditEventCreate(
        time=event.time,
        origin=origin,
        realm=event.realm_id,
        subject_user_id=event.user_id,
        subject_username=event.details.get("username"),
        domain_event_type=classification.value if classification else None,
        provider_event_type=event.type,
        client_id=event.client_id,
        additional_info=_compact_json({
            "ipAddress": event.ip_address,
            "sessionId": event.session_id,
            "error": event.error,
            "details": event.details,
        }),
    )
