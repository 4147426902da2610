"""
Audit trail emitted by back-office operations.

Business operations call the emitter after the identity provider accepted
their mutation. Writes are best effort: a storage failure is logged together
with the serialised event, for offline reconciliation, and never reaches the
business operation.
"""

import json
from dataclasses import dataclass
from typing import Iterable, Optional

from packages.audit_store import AuditEventCreate, AuditStore, DomainEventType
from packages.identity_provider import UserRepresentation
from packages.metrics_collector import MetricsCollector
from packages.structured_logging import get_logger

logger = get_logger(__name__)

# Provider operation classification of each back-office event
OPERATION_TYPES: dict[DomainEventType, str] = {
    DomainEventType.API_ACCOUNT_CREATION: "CREATE",
    DomainEventType.API_ACCOUNT_DELETION: "DELETE",
    DomainEventType.LOCK_ACCOUNT: "UPDATE",
    DomainEventType.UNLOCK_ACCOUNT: "UPDATE",
    DomainEventType.UPDATE_EMAIL: "UPDATE",
    DomainEventType.UPDATE_PHONE_NUMBER: "UPDATE",
    DomainEventType.INIT_PASSWORD: "UPDATE",
    DomainEventType.SECOND_FACTOR_REMOVED: "DELETE",
    DomainEventType.SMS_CHALLENGE: "ACTION",
}


@dataclass(frozen=True)
class AgentContext:
    """The operator performing a back-office operation."""

    realm: Optional[str] = None
    username: Optional[str] = None
    user_id: Optional[str] = None


@dataclass(frozen=True)
class UpdatePlan:
    """Representation to write to the provider and the events it implies."""

    user: UserRepresentation
    events: tuple[DomainEventType, ...]


def derive_update_events(
    before: Optional[UserRepresentation],
    after: UserRepresentation,
) -> list[DomainEventType]:
    """
    Events implied by the difference between two snapshots of a user.

    - enabled true -> false: LOCK_ACCOUNT; false -> true: UNLOCK_ACCOUNT.
      An unknown previous value counts as a transition.
    - changed email: UPDATE_EMAIL; changed phone number: UPDATE_PHONE_NUMBER.
    """
    events: list[DomainEventType] = []
    previous = before or UserRepresentation()

    if after.enabled is not None and after.enabled != previous.enabled:
        events.append(
            DomainEventType.UNLOCK_ACCOUNT if after.enabled else DomainEventType.LOCK_ACCOUNT
        )

    if after.email is not None and after.email != previous.email:
        events.append(DomainEventType.UPDATE_EMAIL)

    if after.phone_number is not None and after.phone_number != previous.phone_number:
        events.append(DomainEventType.UPDATE_PHONE_NUMBER)

    return events


def plan_update(before: UserRepresentation, requested: UserRepresentation) -> UpdatePlan:
    """
    Merge an update over the current user and enforce contact verification.

    A changed e-mail or phone number always resets its verified flag in the
    representation written back, whatever the request says.
    """
    after = before.merged_with(requested)
    events = derive_update_events(before, after)

    resets = {}
    if DomainEventType.UPDATE_EMAIL in events:
        resets["email_verified"] = False
    if DomainEventType.UPDATE_PHONE_NUMBER in events:
        resets["phone_number_verified"] = False
    if resets:
        after = after.model_copy(update=resets)

    return UpdatePlan(user=after, events=tuple(events))


class AuditTrailEmitter:
    """
    Writes back-office audit events through the audit store.

    Failures are absorbed here: ``report_event`` never raises because of the
    store.
    """

    def __init__(
        self,
        store: AuditStore,
        origin: str = "back-office",
        metrics: Optional[MetricsCollector] = None,
        log=None,
    ) -> None:
        self._store = store
        self._origin = origin
        self._metrics = metrics
        self._logger = log or logger

    def report_event(
        self,
        event_type: DomainEventType,
        agent: AgentContext,
        realm: Optional[str] = None,
        user_id: Optional[str] = None,
        username: Optional[str] = None,
        **details: str,
    ) -> bool:
        """
        Store one audit event, best effort.

        Args:
            event_type: Domain classification of the event
            agent: Operator who performed the operation
            realm: Realm of the affected user
            user_id: Affected user id
            username: Affected username
            details: Extra key/values serialised into additional_info

        Returns:
            True if the event was stored, False if the write failed
        """
        event = AuditEventCreate(
            origin=self._origin,
            realm=realm,
            agent_user_id=agent.user_id,
            agent_username=agent.username,
            agent_realm=agent.realm,
            subject_user_id=user_id,
            subject_username=username,
            domain_event_type=event_type,
            provider_operation_type=OPERATION_TYPES.get(event_type),
            additional_info=json.dumps(details, sort_keys=True) if details else None,
        )

        try:
            self._store.store(event)
        except Exception as e:
            self._logger.error(
                "audit_write_failed",
                error=str(e),
                audit_event=event.model_dump_json(exclude_none=True),
            )
            if self._metrics is not None:
                self._metrics.increment_audit_write_failures()
            return False
        return True

    def report_events(
        self,
        event_types: Iterable[DomainEventType],
        agent: AgentContext,
        realm: Optional[str] = None,
        user_id: Optional[str] = None,
        username: Optional[str] = None,
    ) -> int:
        """Store several events for the same subject; returns how many were stored."""
        stored = 0
        for event_type in event_types:
            if self.report_event(event_type, agent, realm=realm, user_id=user_id, username=username):
                stored += 1
        return stored
