"""Fake identity provider for testing.

In-memory realms and users behaving like the provider's admin API, without
a running provider. Useful for unit tests and development.
"""

import secrets
import time
import uuid
from typing import Optional

from .models import CredentialRepresentation, IdentityProviderError, UserRepresentation


class FakeIdentityProvider:
    """In-memory identity provider.

    Calls can be made to fail by setting ``fail_next`` to an
    ``IdentityProviderError``; it is raised once and cleared.
    """

    def __init__(self, realms: Optional[list[str]] = None) -> None:
        """Initialize fake provider.

        Args:
            realms: Realms that exist (default: master)
        """
        self._users: dict[str, dict[str, UserRepresentation]] = {
            realm: {} for realm in (realms or ["master"])
        }
        self._credentials: dict[tuple[str, str], list[CredentialRepresentation]] = {}
        self.sent_emails: list[tuple[str, str, list[str]]] = []  # (realm, user_id, actions)
        self.sent_codes: list[tuple[str, str, str]] = []  # (realm, user_id, code)
        self.fail_next: Optional[IdentityProviderError] = None

    def _check_failure(self) -> None:
        if self.fail_next is not None:
            error, self.fail_next = self.fail_next, None
            raise error

    def _realm(self, realm: str) -> dict[str, UserRepresentation]:
        if realm not in self._users:
            raise IdentityProviderError(404, f"Realm {realm} not found")
        return self._users[realm]

    def _user(self, realm: str, user_id: str) -> UserRepresentation:
        user = self._realm(realm).get(user_id)
        if user is None:
            raise IdentityProviderError(404, f"User {user_id} not found")
        return user

    def add_credential(self, realm: str, user_id: str, credential_type: str = "otp") -> CredentialRepresentation:
        """Register a credential for a user (test setup helper)."""
        self._user(realm, user_id)
        credential = CredentialRepresentation(
            id=str(uuid.uuid4()),
            type=credential_type,
            created_date=int(time.time() * 1000),
        )
        self._credentials.setdefault((realm, user_id), []).append(credential)
        return credential

    def create_user(
        self, realm: str, user: UserRepresentation, timeout: Optional[float] = None
    ) -> str:
        self._check_failure()
        users = self._realm(realm)
        if not user.username:
            raise IdentityProviderError(400, "Missing username")
        if any(existing.username == user.username for existing in users.values()):
            raise IdentityProviderError(409, f"User {user.username} exists")

        user_id = str(uuid.uuid4())
        users[user_id] = user.model_copy(
            update={"id": user_id, "created_timestamp": int(time.time() * 1000)}
        )
        return user_id

    def get_user(
        self, realm: str, user_id: str, timeout: Optional[float] = None
    ) -> UserRepresentation:
        self._check_failure()
        return self._user(realm, user_id).model_copy()

    def update_user(
        self,
        realm: str,
        user_id: str,
        user: UserRepresentation,
        timeout: Optional[float] = None,
    ) -> None:
        self._check_failure()
        current = self._user(realm, user_id)
        self._realm(realm)[user_id] = user.model_copy(
            update={"id": user_id, "created_timestamp": current.created_timestamp}
        )

    def delete_user(self, realm: str, user_id: str, timeout: Optional[float] = None) -> None:
        self._check_failure()
        self._user(realm, user_id)
        del self._realm(realm)[user_id]
        self._credentials.pop((realm, user_id), None)

    def reset_password(
        self, realm: str, user_id: str, password: str, timeout: Optional[float] = None
    ) -> None:
        self._check_failure()
        self._user(realm, user_id)
        if not password:
            raise IdentityProviderError(400, "Empty password")
        credentials = self._credentials.setdefault((realm, user_id), [])
        credentials[:] = [c for c in credentials if c.type != "password"]
        credentials.append(
            CredentialRepresentation(
                id=str(uuid.uuid4()),
                type="password",
                created_date=int(time.time() * 1000),
            )
        )

    def execute_actions_email(
        self,
        realm: str,
        user_id: str,
        actions: list[str],
        timeout: Optional[float] = None,
    ) -> None:
        self._check_failure()
        self._user(realm, user_id)
        self.sent_emails.append((realm, user_id, list(actions)))

    def send_new_enrolment_code(
        self, realm: str, user_id: str, timeout: Optional[float] = None
    ) -> str:
        self._check_failure()
        self._user(realm, user_id)
        code = f"{secrets.randbelow(1_000_000):06d}"
        self.sent_codes.append((realm, user_id, code))
        return code

    def get_credentials(
        self, realm: str, user_id: str, timeout: Optional[float] = None
    ) -> list[CredentialRepresentation]:
        self._check_failure()
        self._user(realm, user_id)
        return list(self._credentials.get((realm, user_id), []))

    def delete_credential(
        self,
        realm: str,
        user_id: str,
        credential_id: str,
        timeout: Optional[float] = None,
    ) -> None:
        self._check_failure()
        self._user(realm, user_id)
        credentials = self._credentials.get((realm, user_id), [])
        remaining = [c for c in credentials if c.id != credential_id]
        if len(remaining) == len(credentials):
            raise IdentityProviderError(404, f"Credential {credential_id} not found")
        self._credentials[(realm, user_id)] = remaining
