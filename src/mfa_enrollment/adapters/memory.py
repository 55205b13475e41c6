"""In-memory authentication service for tests and local development.

Implements :class:`~mfa_enrollment.ports.IVerificationAdapter` for a single
user without a server:

- authenticator apps use RFC 6238 TOTP via pyotp;
- SMS and email codes are random numeric challenges handed to an
  :class:`~mfa_enrollment.ports.IMfaDeliveryHook`;
- recovery codes are single-use ``XXXX-XXXX`` strings.

⚠️ WARNING: secrets and codes are kept in plain text in memory.
Do NOT use in production!
"""

from __future__ import annotations

import logging
import secrets
import string
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from ..exceptions import MfaSetupError, VerificationFailedError
from ..methods import AuthenticatorType
from ..ports import (
    CurrentUser,
    ICurrentUserProvider,
    IMfaDeliveryHook,
    IVerificationAdapter,
    SetupMaterial,
)

if TYPE_CHECKING:
    from collections.abc import Callable

logger = logging.getLogger("mfa_enrollment.adapters")


@dataclass(frozen=True)
class InMemoryAuthServiceConfig:
    """Configuration for :class:`InMemoryAuthenticationService`.

    Attributes:
        issuer: Application name shown in authenticator apps.
        digits: Number of digits in TOTP and OTP codes.
        interval: TOTP time step in seconds.
        valid_window: Accept TOTP codes ±N intervals for clock drift.
        otp_ttl_seconds: Lifetime of an SMS/email code.
        recovery_code_count: Codes issued per set.
        recovery_code_length: Characters per code, before formatting.
        recovery_code_group: Characters between dashes in a formatted code.
    """

    issuer: str = "Notesnook"
    digits: int = 6
    interval: int = 30
    valid_window: int = 1
    otp_ttl_seconds: int = 300  # 5 minutes
    recovery_code_count: int = 16
    recovery_code_length: int = 8
    recovery_code_group: int = 4


@dataclass(frozen=True)
class _PendingCode:
    """A delivered SMS/email code awaiting confirmation."""

    code: str
    sent_to: str
    expires_at: float


class InMemoryAuthenticationService(IVerificationAdapter):
    """Authentication service for one user, held entirely in memory.

    Example:
        ```python
        service = InMemoryAuthenticationService(
            email="user@example.com",
            delivery_hook=MyDeliveryHook(),
        )
        await service.begin_setup(AuthenticatorType.EMAIL)
        await service.confirm_code(AuthenticatorType.EMAIL, code_from_inbox)
        codes = await service.fetch_recovery_codes()
        ```
    """

    # Exclude ambiguous characters: 0, O, 1, I
    ALPHABET = string.ascii_uppercase.replace("O", "").replace(
        "I", ""
    ) + string.digits.replace("0", "").replace("1", "")

    def __init__(
        self,
        *,
        email: str,
        delivery_hook: IMfaDeliveryHook,
        config: InMemoryAuthServiceConfig | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.email = email
        self.delivery_hook = delivery_hook
        self.config = config or InMemoryAuthServiceConfig()
        self.clock = clock
        self._pending: dict[AuthenticatorType, _PendingCode] = {}
        self.primary_method: AuthenticatorType | None = None
        self.fallback_method: AuthenticatorType | None = None
        self._totp_secret: str | None = None
        self._recovery_codes: list[str] = []

    # ── TOTP ─────────────────────────────────────────────────────────

    def _get_pyotp(self) -> Any:
        """Lazy import pyotp."""
        try:
            import pyotp

            return pyotp
        except ImportError as e:
            raise ImportError(
                "pyotp is required for authenticator app support. "
                "Install with: pip install mfa-enrollment[mfa]"
            ) from e

    def _totp(self, secret: str) -> Any:
        pyotp = self._get_pyotp()
        return pyotp.TOTP(
            secret,
            digits=self.config.digits,
            interval=self.config.interval,
            issuer=self.config.issuer,
        )

    @staticmethod
    def _format_secret(secret: str) -> str:
        """Group the secret in blocks of 4 for manual entry."""
        secret = secret.rstrip("=")
        return " ".join(secret[i : i + 4] for i in range(0, len(secret), 4))

    def current_totp(self) -> str:
        """Code the authenticator app would show right now."""
        if self._totp_secret is None:
            raise MfaSetupError("Authenticator app has not been set up")
        return str(self._totp(self._totp_secret).now())

    # ── OTP ──────────────────────────────────────────────────────────

    def _generate_otp(self) -> str:
        code = secrets.randbelow(10**self.config.digits)
        return str(code).zfill(self.config.digits)

    async def _send_otp(self, method: AuthenticatorType, destination: str) -> None:
        """Deliver a fresh code; it replaces any code pending for ``method``."""
        code = self._generate_otp()
        self._pending[method] = _PendingCode(
            code=code,
            sent_to=destination,
            expires_at=self.clock() + self.config.otp_ttl_seconds,
        )
        if method is AuthenticatorType.SMS:
            await self.delivery_hook.send_sms_otp(destination, code)
        else:
            await self.delivery_hook.send_email_otp(destination, code)

    def _check_otp(self, method: AuthenticatorType, code: str) -> None:
        pending = self._pending.get(method)
        if pending is not None and self.clock() >= pending.expires_at:
            del self._pending[method]
            pending = None
        # A wrong code leaves the pending one usable until it expires
        if pending is None or not secrets.compare_digest(pending.code, code):
            raise VerificationFailedError("Invalid or expired OTP code")
        del self._pending[method]

    def pending_destination(self, method: AuthenticatorType) -> str | None:
        """Where the unconfirmed code for ``method`` was sent, if any."""
        pending = self._pending.get(method)
        return pending.sent_to if pending else None

    # ── Recovery codes ───────────────────────────────────────────────

    def _group_recovery_code(self, raw: str) -> str:
        size = self.config.recovery_code_group
        return "-".join(raw[i : i + size] for i in range(0, len(raw), size))

    def _generate_recovery_code(self) -> str:
        raw = "".join(
            secrets.choice(self.ALPHABET)
            for _ in range(self.config.recovery_code_length)
        )
        return self._group_recovery_code(raw)

    def _issue_recovery_codes(self) -> list[str]:
        previous = set(self._recovery_codes)
        codes: list[str] = []
        while len(codes) < self.config.recovery_code_count:
            code = self._generate_recovery_code()
            if code not in previous and code not in codes:
                codes.append(code)
        self._recovery_codes = codes
        return list(codes)

    def _normalize_recovery_code(self, code: str) -> str:
        """Strip whitespace and dashes, then regroup as issued."""
        raw = "".join(code.split()).replace("-", "").upper()
        if len(raw) != self.config.recovery_code_length:
            return raw
        return self._group_recovery_code(raw)

    async def consume_recovery_code(self, code: str) -> bool:
        """Use up a recovery code; returns False if it is unknown or spent."""
        normalized = self._normalize_recovery_code(code)
        if normalized not in self._recovery_codes:
            return False
        self._recovery_codes.remove(normalized)
        return True

    # ── IVerificationAdapter ─────────────────────────────────────────

    async def begin_setup(
        self,
        method: AuthenticatorType,
        phone_number: str | None = None,
    ) -> SetupMaterial:
        if method is AuthenticatorType.APP:
            pyotp = self._get_pyotp()
            secret = pyotp.random_base32()
            uri = self._totp(secret).provisioning_uri(
                name=self.email,
                issuer_name=self.config.issuer,
            )
            self._totp_secret = secret
            return SetupMaterial(
                shared_key=self._format_secret(secret),
                authenticator_uri=uri,
            )

        if method is AuthenticatorType.SMS:
            if not phone_number:
                raise MfaSetupError("A phone number is required for SMS codes")
            await self._send_otp(method, phone_number)
            logger.debug("Sent SMS setup code")
            return SetupMaterial(sent_to=phone_number)

        await self._send_otp(method, self.email)
        logger.debug("Sent email setup code")
        return SetupMaterial(sent_to=self.email)

    async def confirm_code(
        self,
        method: AuthenticatorType,
        code: str,
        is_fallback: bool = False,
    ) -> None:
        if method is AuthenticatorType.APP:
            if self._totp_secret is None:
                raise MfaSetupError("Authenticator app has not been set up")
            if not self._totp(self._totp_secret).verify(
                code, valid_window=self.config.valid_window
            ):
                raise VerificationFailedError("Invalid TOTP code")
        else:
            self._check_otp(method, code)

        if is_fallback:
            if self.primary_method is None:
                raise MfaSetupError("Enable a primary 2FA method first")
            if method is self.primary_method:
                raise MfaSetupError(
                    "Fallback method must differ from the primary method"
                )
            self.fallback_method = method
            return

        self.primary_method = method
        if not self._recovery_codes:
            self._issue_recovery_codes()

    async def fetch_recovery_codes(self) -> list[str]:
        if self.primary_method is None:
            raise MfaSetupError("Two-factor authentication is not enabled")
        return list(self._recovery_codes)

    async def regenerate_recovery_codes(self) -> list[str]:
        if self.primary_method is None:
            raise MfaSetupError("Two-factor authentication is not enabled")
        return self._issue_recovery_codes()


class InMemoryCurrentUserProvider(ICurrentUserProvider):
    """Current-user provider returning a fixed email address."""

    def __init__(self, email: str) -> None:
        self._user = CurrentUser(email=email)

    async def get_user(self) -> CurrentUser:
        return self._user


__all__: list[str] = [
    "InMemoryAuthServiceConfig",
    "InMemoryAuthenticationService",
    "InMemoryCurrentUserProvider",
]
