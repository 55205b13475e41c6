"""Ports (protocols) the enrollment wizard consumes.

The wizard never talks to the authentication server, the user store or a
phone-number library directly. The application provides implementations
of these protocols; :mod:`mfa_enrollment.adapters` ships in-memory ones.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from .audit import EnrollmentAuditEvent
    from .methods import AuthenticatorType


@dataclass(frozen=True)
class SetupMaterial:
    """Data returned when a method's setup begins.

    Attributes:
        shared_key: Base32 TOTP secret for manual entry (app only).
        authenticator_uri: otpauth:// URI rendered as a QR code (app only).
        sent_to: Destination an SMS/email code was sent to.
    """

    shared_key: str | None = None
    authenticator_uri: str | None = None
    sent_to: str | None = None


@dataclass(frozen=True)
class CurrentUser:
    """Read-only view of the signed-in user."""

    email: str


@dataclass(frozen=True)
class PhoneValidationResult:
    """Outcome of phone-number validation.

    Attributes:
        is_valid: Whether the input is a usable phone number.
        phone_number: Normalised E.164 number when valid.
    """

    is_valid: bool
    phone_number: str | None = None


@runtime_checkable
class IVerificationAdapter(Protocol):
    """Protocol for the external authentication service.

    Code generation, delivery and verification all happen behind this
    boundary.
    """

    async def begin_setup(
        self,
        method: AuthenticatorType,
        phone_number: str | None = None,
    ) -> SetupMaterial:
        """Start setting up ``method``.

        For ``app`` this returns a fresh shared secret and provisioning URI.
        For ``sms``/``email`` it sends a code out of band; calling it again
        resends, so callers must rate-limit.

        Args:
            method: Method being set up.
            phone_number: E.164 number, required for ``sms``.

        Raises:
            MfaSetupError: If setup could not be started.
        """
        ...

    async def confirm_code(
        self,
        method: AuthenticatorType,
        code: str,
        is_fallback: bool = False,
    ) -> None:
        """Verify ``code`` and enroll ``method``.

        Args:
            method: Method being enrolled.
            code: Code entered by the user.
            is_fallback: Enroll as fallback instead of primary method.

        Raises:
            VerificationFailedError: If the code is invalid or expired.
        """
        ...

    async def fetch_recovery_codes(self) -> list[str]:
        """Return the user's current recovery codes."""
        ...

    async def regenerate_recovery_codes(self) -> list[str]:
        """Issue a new set of recovery codes, invalidating all previous ones."""
        ...


@runtime_checkable
class ICurrentUserProvider(Protocol):
    """Protocol for reading the signed-in user."""

    async def get_user(self) -> CurrentUser:
        """Return the signed-in user."""
        ...


@runtime_checkable
class IPhoneNumberValidator(Protocol):
    """Protocol for classifying and normalising phone numbers."""

    def validate(self, raw: str) -> PhoneValidationResult:
        """Validate ``raw`` and normalise it when valid."""
        ...


@runtime_checkable
class IMfaDeliveryHook(Protocol):
    """Protocol for delivering SMS/email codes.

    Used by the in-memory authentication service; applications implement
    this with their email or SMS provider.
    """

    async def send_email_otp(self, email: str, code: str) -> None:
        """Send ``code`` to ``email``."""
        ...

    async def send_sms_otp(self, phone: str, code: str) -> None:
        """Send ``code`` to ``phone``."""
        ...


@runtime_checkable
class IEnrollmentAuditStore(Protocol):
    """Protocol for recording enrollment audit events."""

    async def record(self, event: EnrollmentAuditEvent) -> None:
        """Record an audit event."""
        ...


__all__: list[str] = [
    "SetupMaterial",
    "CurrentUser",
    "PhoneValidationResult",
    "IVerificationAdapter",
    "ICurrentUserProvider",
    "IPhoneNumberValidator",
    "IMfaDeliveryHook",
    "IEnrollmentAuditStore",
]
