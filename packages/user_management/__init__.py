"""
Back-office user management operations.

Each operation calls the identity provider first; only once the provider has
accepted the change does it report the corresponding audit event. Provider
errors propagate to the caller and produce no audit event. Audit write
errors never propagate (see ``AuditTrailEmitter``).
"""

from typing import Optional

from packages.audit_store import DomainEventType
from packages.audit_trail import AgentContext, AuditTrailEmitter, plan_update
from packages.identity_provider import (
    IdentityProviderClient,
    IdentityProviderError,
    UserRepresentation,
)
from packages.structured_logging import get_logger

logger = get_logger(__name__)

UPDATE_PASSWORD_ACTION = "UPDATE_PASSWORD"


class UserManagementService:
    """
    Provider-facing user operations with audit trail.

    Workflow per operation:
    1. Call the identity provider (honouring the configured deadline)
    2. On provider error: log a warning and re-raise
    3. On success: report the audit event(s), best effort
    """

    def __init__(
        self,
        provider: IdentityProviderClient,
        emitter: AuditTrailEmitter,
        timeout: Optional[float] = None,
        log=None,
    ) -> None:
        """Initialize service.

        Args:
            provider: Identity provider client.
            emitter: Audit trail emitter.
            timeout: Deadline in seconds for each provider call.
            log: Logger override (tests).
        """
        self._provider = provider
        self._emitter = emitter
        self._timeout = timeout
        self._logger = log or logger

    def _provider_call(self, operation: str, func, *args):
        try:
            return func(*args, timeout=self._timeout)
        except IdentityProviderError as e:
            self._logger.warning(
                "provider_call_failed",
                operation=operation,
                status=e.status,
                error=e.message,
            )
            raise

    def create_user(self, agent: AgentContext, realm: str, user: UserRepresentation) -> str:
        """Create a user; reports API_ACCOUNT_CREATION.

        Returns:
            Identifier of the new user.
        """
        user_id = self._provider_call("create_user", self._provider.create_user, realm, user)

        self._emitter.report_event(
            DomainEventType.API_ACCOUNT_CREATION,
            agent,
            realm=realm,
            user_id=user_id,
            username=user.username,
        )
        return user_id

    def get_user(self, agent: AgentContext, realm: str, user_id: str) -> UserRepresentation:
        """Read a user's details; reports GET_DETAILS."""
        user = self._provider_call("get_user", self._provider.get_user, realm, user_id)

        self._emitter.report_event(
            DomainEventType.GET_DETAILS,
            agent,
            realm=realm,
            user_id=user_id,
            username=user.username,
        )
        return user

    def update_user(
        self,
        agent: AgentContext,
        realm: str,
        user_id: str,
        user: UserRepresentation,
    ) -> UserRepresentation:
        """
        Apply the supplied fields to a user.

        Changed contact details lose their verified status. Reports
        LOCK_ACCOUNT / UNLOCK_ACCOUNT / UPDATE_EMAIL / UPDATE_PHONE_NUMBER
        depending on what changed.

        Returns:
            The representation written to the provider.
        """
        before = self._provider_call("get_user", self._provider.get_user, realm, user_id)
        plan = plan_update(before, user)

        self._provider_call("update_user", self._provider.update_user, realm, user_id, plan.user)

        self._emitter.report_events(
            plan.events,
            agent,
            realm=realm,
            user_id=user_id,
            username=plan.user.username,
        )
        return plan.user

    def delete_user(self, agent: AgentContext, realm: str, user_id: str) -> None:
        """Delete a user; reports API_ACCOUNT_DELETION."""
        self._provider_call("delete_user", self._provider.delete_user, realm, user_id)

        self._emitter.report_event(
            DomainEventType.API_ACCOUNT_DELETION,
            agent,
            realm=realm,
            user_id=user_id,
        )

    def reset_password(self, agent: AgentContext, realm: str, user_id: str, password: str) -> None:
        """Set a temporary password; reports INIT_PASSWORD."""
        self._provider_call(
            "reset_password", self._provider.reset_password, realm, user_id, password
        )

        self._emitter.report_event(
            DomainEventType.INIT_PASSWORD,
            agent,
            realm=realm,
            user_id=user_id,
        )

    def execute_actions_email(
        self,
        agent: AgentContext,
        realm: str,
        user_id: str,
        actions: list[str],
    ) -> None:
        """Send a required-actions e-mail; reports INIT_PASSWORD if it asks for a new password."""
        self._provider_call(
            "execute_actions_email",
            self._provider.execute_actions_email,
            realm,
            user_id,
            actions,
        )

        if UPDATE_PASSWORD_ACTION in actions:
            self._emitter.report_event(
                DomainEventType.INIT_PASSWORD,
                agent,
                realm=realm,
                user_id=user_id,
            )

    def send_new_enrolment_code(self, agent: AgentContext, realm: str, user_id: str) -> str:
        """Send a new enrolment code by SMS; reports SMS_CHALLENGE."""
        code = self._provider_call(
            "send_new_enrolment_code",
            self._provider.send_new_enrolment_code,
            realm,
            user_id,
        )

        self._emitter.report_event(
            DomainEventType.SMS_CHALLENGE,
            agent,
            realm=realm,
            user_id=user_id,
        )
        return code

    def delete_credential(
        self,
        agent: AgentContext,
        realm: str,
        user_id: str,
        credential_id: str,
    ) -> None:
        """Remove a credential; reports 2ND_FACTOR_REMOVED with the credential type.

        Raises:
            IdentityProviderError: 404 when the user has no such credential.
        """
        credentials = self._provider_call(
            "get_credentials", self._provider.get_credentials, realm, user_id
        )
        credential = next((c for c in credentials if c.id == credential_id), None)
        if credential is None:
            self._logger.warning(
                "credential_not_found",
                realm=realm,
                user_id=user_id,
                credential_id=credential_id,
            )
            raise IdentityProviderError(404, f"Credential {credential_id} not found")

        self._provider_call(
            "delete_credential",
            self._provider.delete_credential,
            realm,
            user_id,
            credential_id,
        )

        self._emitter.report_event(
            DomainEventType.SECOND_FACTOR_REMOVED,
            agent,
            realm=realm,
            user_id=user_id,
            credential_id=credential_id,
            credential_type=credential.type,
        )


__all__ = ["UPDATE_PASSWORD_ACTION", "UserManagementService"]
