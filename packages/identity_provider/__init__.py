"""Identity provider package.

This package provides the provider client interface used by the back-office
operations and an in-memory implementation.
"""

from .adapter import IdentityProviderClient
from .fake import FakeIdentityProvider
from .models import (
    CredentialRepresentation,
    IdentityProviderError,
    PasswordRepresentation,
    UserRepresentation,
)

__all__ = [
    "CredentialRepresentation",
    "FakeIdentityProvider",
    "IdentityProviderClient",
    "IdentityProviderError",
    "PasswordRepresentation",
    "UserRepresentation",
]
