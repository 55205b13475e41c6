"""Catalog of the authentication methods a user can enroll.

The catalog is static: every method is described once here and looked up
by its :class:`AuthenticatorType` tag everywhere else.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable


class AuthenticatorType(str, Enum):
    """Closed set of MFA methods."""

    APP = "app"
    SMS = "sms"
    EMAIL = "email"


@dataclass(frozen=True)
class Authenticator:
    """Display descriptor for one MFA method.

    Attributes:
        type: The method tag.
        title: Headline shown in the chooser and as the setup step title.
        subtitle: Explanation shown under the title.
        icon: Icon reference resolved by the UI layer.
        recommended: Whether the chooser highlights this method.
    """

    type: AuthenticatorType
    title: str
    subtitle: str
    icon: str
    recommended: bool = False


DEFAULT_AUTHENTICATORS: tuple[AuthenticatorType, ...] = (
    AuthenticatorType.APP,
    AuthenticatorType.SMS,
    AuthenticatorType.EMAIL,
)

AUTHENTICATORS: tuple[Authenticator, ...] = (
    Authenticator(
        type=AuthenticatorType.APP,
        title="Set up using an Authenticator app",
        subtitle=(
            "Use an authenticator app like Aegis or Raivo Authenticator "
            "to get the authentication codes."
        ),
        icon="mfa-authenticator",
        recommended=True,
    ),
    Authenticator(
        type=AuthenticatorType.SMS,
        title="Set up using SMS",
        subtitle="Notesnook will send you an SMS text with the 2FA code at login.",
        icon="mfa-sms",
    ),
    Authenticator(
        type=AuthenticatorType.EMAIL,
        title="Set up using Email",
        subtitle="Notesnook will send you the 2FA code on your email at login.",
        icon="mfa-email",
    ),
)

_BY_TYPE: dict[AuthenticatorType, Authenticator] = {a.type: a for a in AUTHENTICATORS}


def get_authenticator(method: AuthenticatorType | str) -> Authenticator:
    """Look up the catalog entry for ``method``.

    Raises:
        KeyError: If ``method`` is not a known method tag.
    """
    try:
        return _BY_TYPE[AuthenticatorType(method)]
    except ValueError as e:
        raise KeyError(f"Unknown authenticator type: {method!r}") from e


def list_authenticators(
    *,
    exclude: Iterable[AuthenticatorType] = (),
    types: Iterable[AuthenticatorType] = DEFAULT_AUTHENTICATORS,
) -> list[Authenticator]:
    """Return catalog entries for ``types`` in order, minus ``exclude``."""
    excluded = set(exclude)
    return [get_authenticator(t) for t in types if t not in excluded]


def method_to_phrase(method: AuthenticatorType) -> str:
    """Phrase naming where codes arrive, e.g. ``"phone number"``."""
    if method is AuthenticatorType.EMAIL:
        return "email"
    if method is AuthenticatorType.APP:
        return "authentication app"
    return "phone number"


def method_to_device(method: AuthenticatorType) -> str:
    """Short device name used in the recovery codes explanation."""
    if method is AuthenticatorType.EMAIL:
        return "email"
    if method is AuthenticatorType.SMS:
        return "phone"
    return "auth app"


__all__: list[str] = [
    "AuthenticatorType",
    "Authenticator",
    "AUTHENTICATORS",
    "DEFAULT_AUTHENTICATORS",
    "get_authenticator",
    "list_authenticators",
    "method_to_phrase",
    "method_to_device",
]
