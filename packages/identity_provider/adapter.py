"""Identity provider client protocol.

This module defines the interface that every identity provider client
(real admin REST client, in-memory fake) must implement. Every call accepts
a ``timeout`` in seconds: provider calls honour request deadlines.
"""

from typing import Optional, Protocol

from .models import CredentialRepresentation, UserRepresentation


class IdentityProviderClient(Protocol):
    """Protocol defining the provider operations used by the back office."""

    def create_user(
        self, realm: str, user: UserRepresentation, timeout: Optional[float] = None
    ) -> str:
        """Create a user.

        Returns:
            Identifier of the created user.

        Raises:
            IdentityProviderError: If the provider rejects the request.
        """
        ...

    def get_user(
        self, realm: str, user_id: str, timeout: Optional[float] = None
    ) -> UserRepresentation:
        """Get one user.

        Raises:
            IdentityProviderError: 404 if the user does not exist.
        """
        ...

    def update_user(
        self,
        realm: str,
        user_id: str,
        user: UserRepresentation,
        timeout: Optional[float] = None,
    ) -> None:
        """Replace the stored user with ``user``."""
        ...

    def delete_user(self, realm: str, user_id: str, timeout: Optional[float] = None) -> None:
        """Delete a user."""
        ...

    def reset_password(
        self, realm: str, user_id: str, password: str, timeout: Optional[float] = None
    ) -> None:
        """Set a temporary password for a user."""
        ...

    def execute_actions_email(
        self,
        realm: str,
        user_id: str,
        actions: list[str],
        timeout: Optional[float] = None,
    ) -> None:
        """Send the user an e-mail asking for the given required actions."""
        ...

    def send_new_enrolment_code(
        self, realm: str, user_id: str, timeout: Optional[float] = None
    ) -> str:
        """Send a new enrolment code by SMS.

        Returns:
            The code that was sent.
        """
        ...

    def get_credentials(
        self, realm: str, user_id: str, timeout: Optional[float] = None
    ) -> list[CredentialRepresentation]:
        """List the credentials of a user."""
        ...

    def delete_credential(
        self,
        realm: str,
        user_id: str,
        credential_id: str,
        timeout: Optional[float] = None,
    ) -> None:
        """Remove one credential of a user."""
        ...
