"""In-memory adapters for the enrollment ports."""

from .memory import (
    InMemoryAuthenticationService,
    InMemoryAuthServiceConfig,
    InMemoryCurrentUserProvider,
)

__all__: list[str] = [
    "InMemoryAuthenticationService",
    "InMemoryAuthServiceConfig",
    "InMemoryCurrentUserProvider",
]
