"""Step bodies: the executable part of each wizard step.

A body is created fresh every time the wizard enters a step and is
discarded when the wizard moves on. It owns the step's transient state
(pending calls, cool-downs, fetched codes) and talks to the outside world
through :class:`~mfa_enrollment.services.EnrollmentServices`. It talks to
the wizard only through its :class:`StepCallbacks`.

Every body follows the same rules:

- input problems are kept on the body (``code_error``, ``phone_error``)
  and never reach the service;
- service failures are caught here and passed to ``callbacks.error``;
- at most one service call is in flight per action, later attempts are
  dropped until it settles.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from .audit import (
    mfa_enabled_event,
    mfa_failed_event,
    recovery_codes_regenerated_event,
)
from .cooldown import ResendCooldown
from .exceptions import EnrollmentValidationError
from .exporter import RecoveryCodeExporter
from .methods import AuthenticatorType, method_to_phrase

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from .audit import EnrollmentAuditEvent
    from .methods import Authenticator
    from .services import EnrollmentServices

logger = logging.getLogger("mfa_enrollment.steps")

DEFAULT_ERROR_MESSAGE = "Something went wrong. Please try again."


def _noop(*_args: Any) -> None:
    return None


def _error_message(exc: BaseException) -> str:
    return str(exc) or DEFAULT_ERROR_MESSAGE


class StepCallbacks:
    """Handles a step body uses to drive the wizard.

    Callbacks are bound to the step that was current when they were
    created. Once the wizard has moved past that step (or closed), every
    call is ignored, so late responses cannot touch a newer step.
    """

    def __init__(
        self,
        *,
        is_current: Callable[[], bool],
        on_next: Callable[..., None] = _noop,
        on_error: Callable[[str], None] = _noop,
        on_clear_error: Callable[[], None] = _noop,
        on_close: Callable[[], None] = _noop,
        on_request_fallback: Callable[[], None] = _noop,
    ) -> None:
        self._is_current = is_current
        self._on_next = on_next
        self._on_error = on_error
        self._on_clear_error = on_clear_error
        self._on_close = on_close
        self._on_request_fallback = on_request_fallback

    @property
    def is_current(self) -> bool:
        return self._is_current()

    def _stale(self, action: str) -> bool:
        if self._is_current():
            return False
        logger.debug("Ignoring %s from a step that is no longer active", action)
        return True

    def next(self, *args: Any) -> None:
        """Advance the wizard, forwarding ``args`` to the next step."""
        if not self._stale("next"):
            self._on_next(*args)

    def error(self, message: str) -> None:
        """Show ``message`` under the current step."""
        if not self._stale("error"):
            self._on_error(message)

    def clear_error(self) -> None:
        if not self._stale("clear_error"):
            self._on_clear_error()

    def close(self) -> None:
        """Close the dialog."""
        if not self._stale("close"):
            self._on_close()

    def request_fallback(self) -> None:
        """Close the dialog and ask for fallback enrollment to follow."""
        if not self._stale("request_fallback"):
            self._on_request_fallback()


class StepBody:
    """Base class for step bodies.

    Attributes:
        callbacks: Handles back into the wizard.
        services: External collaborators.
    """

    def __init__(self, callbacks: StepCallbacks, services: EnrollmentServices) -> None:
        self.callbacks = callbacks
        self.services = services

    async def activate(self) -> None:
        """Load whatever the step shows when it opens."""
        return None

    async def _audit(self, event: EnrollmentAuditEvent) -> None:
        """Record ``event``; a failing store never interrupts the step."""
        store = self.services.audit_store
        if store is None:
            return
        try:
            await store.record(event)
        except Exception:
            logger.warning(
                "Recording audit event %s failed",
                event.event_type.value,
                exc_info=True,
            )


# ═══════════════════════════════════════════════════════════════
# CHOOSE
# ═══════════════════════════════════════════════════════════════


class ChooseAuthenticatorBody(StepBody):
    """Pick one method out of the offered candidates."""

    def __init__(
        self,
        callbacks: StepCallbacks,
        services: EnrollmentServices,
        *,
        authenticators: Sequence[Authenticator],
    ) -> None:
        super().__init__(callbacks, services)
        if not authenticators:
            raise ValueError("At least one authenticator must be offered")
        self.authenticators: tuple[Authenticator, ...] = tuple(authenticators)
        self.selected = 0

    @property
    def candidates(self) -> list[AuthenticatorType]:
        return [a.type for a in self.authenticators]

    @property
    def selected_authenticator(self) -> Authenticator:
        return self.authenticators[self.selected]

    def select(self, index: int) -> None:
        if not 0 <= index < len(self.authenticators):
            raise IndexError(f"No authenticator at position {index}")
        self.selected = index

    def select_type(self, method: AuthenticatorType) -> None:
        self.select(self.candidates.index(method))

    def submit(self) -> None:
        self.callbacks.next(self.selected_authenticator)


# ═══════════════════════════════════════════════════════════════
# SETUP
# ═══════════════════════════════════════════════════════════════


class AuthenticatorSetupBody(StepBody):
    """Common code-entry behaviour for every method's setup step."""

    method: AuthenticatorType
    code_help_text = ""

    def __init__(
        self,
        callbacks: StepCallbacks,
        services: EnrollmentServices,
        *,
        is_fallback: bool = False,
    ) -> None:
        super().__init__(callbacks, services)
        self.is_fallback = is_fallback
        self.is_submitting = False
        self.code_error: str | None = None

    def _validate_code(self, code: str) -> str:
        length = self.services.config.code_length
        code = code.strip()
        if len(code) != length or not code.isdigit():
            raise EnrollmentValidationError(
                {"code": [f"Please enter the {length}-digit code."]}
            )
        return code

    async def submit_code(self, code: str) -> None:
        """Verify ``code`` and advance on success."""
        if self.is_submitting:
            logger.debug(
                "Dropping %s code submission while one is pending", self.method.value
            )
            return
        try:
            code = self._validate_code(code)
        except EnrollmentValidationError as e:
            self.code_error = e.message
            return
        self.code_error = None

        self.is_submitting = True
        try:
            await self.services.verification.confirm_code(
                self.method, code, self.is_fallback
            )
        except Exception as e:
            message = _error_message(e)
            logger.warning("Verification of %s failed: %s", self.method.value, message)
            await self._audit(
                mfa_failed_event(
                    self.method.value, message, is_fallback=self.is_fallback
                )
            )
            self.callbacks.error(message)
            return
        finally:
            self.is_submitting = False

        logger.info(
            "Enrolled %s as %s method",
            self.method.value,
            "fallback" if self.is_fallback else "primary",
        )
        await self._audit(
            mfa_enabled_event(self.method.value, is_fallback=self.is_fallback)
        )
        self.callbacks.next(self.method)


class AppSetupBody(AuthenticatorSetupBody):
    """Authenticator app: show a QR code and shared key, then verify."""

    method = AuthenticatorType.APP
    code_help_text = (
        "After scanning the QR code image, the app will display a code "
        "that you can enter below."
    )

    def __init__(
        self,
        callbacks: StepCallbacks,
        services: EnrollmentServices,
        *,
        is_fallback: bool = False,
    ) -> None:
        super().__init__(callbacks, services, is_fallback=is_fallback)
        self.shared_key: str | None = None
        self.authenticator_uri: str | None = None
        self.is_loading = False

    async def activate(self) -> None:
        if self.is_loading:
            return
        self.is_loading = True
        try:
            material = await self.services.verification.begin_setup(self.method)
        except Exception as e:
            logger.warning("Authenticator app setup failed: %s", _error_message(e))
            self.callbacks.error(_error_message(e))
            return
        finally:
            self.is_loading = False
        self.shared_key = material.shared_key
        self.authenticator_uri = material.authenticator_uri


class _SendCodeSetupBody(AuthenticatorSetupBody):
    """Setup where the service sends the code out of band."""

    def __init__(
        self,
        callbacks: StepCallbacks,
        services: EnrollmentServices,
        *,
        is_fallback: bool = False,
    ) -> None:
        super().__init__(callbacks, services, is_fallback=is_fallback)
        self.is_sending = False
        self.cooldown = ResendCooldown(
            services.config.resend_cooldown_seconds, clock=services.clock
        )

    @property
    def can_send(self) -> bool:
        return not self.is_sending and self.cooldown.enabled

    @property
    def send_label(self) -> str:
        if self.is_sending:
            return "Sending..."
        if self.cooldown.enabled:
            return "Send code"
        return f"Resend ({self.cooldown.remaining})"

    def _destination(self) -> str | None:
        raise NotImplementedError

    async def send_code(self) -> None:
        """Ask the service to send a code, respecting the cool-down."""
        if not self.can_send:
            logger.debug("Dropping %s send request", self.method.value)
            return
        destination = self._destination()
        if destination is None:
            return
        self.is_sending = True
        try:
            await self.services.verification.begin_setup(
                self.method,
                destination if self.method is AuthenticatorType.SMS else None,
            )
        except Exception as e:
            logger.warning(
                "Sending %s code failed: %s", self.method.value, _error_message(e)
            )
            self.callbacks.error(_error_message(e))
            return
        finally:
            self.is_sending = False
        self.cooldown.start()


class EmailSetupBody(_SendCodeSetupBody):
    """Email: send a code to the account's address, then verify."""

    method = AuthenticatorType.EMAIL
    code_help_text = (
        "You will receive a 2FA code on your email address which you can enter below"
    )

    def __init__(
        self,
        callbacks: StepCallbacks,
        services: EnrollmentServices,
        *,
        is_fallback: bool = False,
    ) -> None:
        super().__init__(callbacks, services, is_fallback=is_fallback)
        self.email: str | None = None

    async def activate(self) -> None:
        try:
            user = await self.services.user_provider.get_user()
        except Exception as e:
            self.callbacks.error(_error_message(e))
            return
        self.email = user.email

    def _destination(self) -> str | None:
        return self.email or ""


class SmsSetupBody(_SendCodeSetupBody):
    """SMS: validate a phone number, send a code to it, then verify."""

    method = AuthenticatorType.SMS
    code_help_text = (
        "You will receive a 2FA code on your phone number which you can enter below"
    )
    INVALID_NUMBER = "Please enter a valid phone number with country code."
    MISSING_NUMBER = "Please provide a phone number."

    def __init__(
        self,
        callbacks: StepCallbacks,
        services: EnrollmentServices,
        *,
        is_fallback: bool = False,
    ) -> None:
        super().__init__(callbacks, services, is_fallback=is_fallback)
        self.phone_number: str | None = None
        self.phone_error: str | None = None

    def set_phone_number(self, raw: str) -> None:
        """Validate input on every change; an empty field clears the error."""
        if not raw:
            self.phone_number = None
            self.phone_error = None
            return
        result = self.services.phone_validator.validate(raw)
        if result.is_valid:
            self.phone_number = result.phone_number
            self.phone_error = None
        else:
            self.phone_number = None
            self.phone_error = self.INVALID_NUMBER

    @property
    def can_send(self) -> bool:
        return super().can_send and self.phone_error is None

    def _destination(self) -> str | None:
        if not self.phone_number:
            self.phone_error = self.phone_error or self.MISSING_NUMBER
            return None
        return self.phone_number


SETUP_BODIES: dict[AuthenticatorType, type[AuthenticatorSetupBody]] = {
    AuthenticatorType.APP: AppSetupBody,
    AuthenticatorType.SMS: SmsSetupBody,
    AuthenticatorType.EMAIL: EmailSetupBody,
}


# ═══════════════════════════════════════════════════════════════
# RECOVERY CODES
# ═══════════════════════════════════════════════════════════════


class RecoveryCodesBody(StepBody):
    """Show recovery codes and offer print, copy, download and regenerate."""

    def __init__(
        self,
        callbacks: StepCallbacks,
        services: EnrollmentServices,
        *,
        method: AuthenticatorType,
    ) -> None:
        super().__init__(callbacks, services)
        self.method = method
        self.codes: list[str] = []
        self.is_loading = False
        self.exporter = RecoveryCodeExporter(services.config)

    async def activate(self) -> None:
        await self._load(self.services.verification.fetch_recovery_codes)

    async def regenerate(self) -> None:
        """Replace the displayed codes with a freshly issued set."""
        if await self._load(self.services.verification.regenerate_recovery_codes):
            await self._audit(recovery_codes_regenerated_event(len(self.codes)))

    async def _load(self, fetch: Callable[[], Any]) -> bool:
        if self.is_loading:
            return False
        self.callbacks.clear_error()
        self.is_loading = True
        try:
            codes = await fetch()
        except Exception as e:
            logger.warning("Loading recovery codes failed: %s", _error_message(e))
            self.callbacks.error(_error_message(e))
            return False
        finally:
            self.is_loading = False
        self.codes = list(codes)
        return True

    def copy_text(self) -> str:
        return self.exporter.to_text(self.codes)

    def download(self) -> tuple[str, bytes]:
        return self.exporter.to_download(self.codes)

    def print_document(self) -> str:
        return self.exporter.to_print(self.codes)

    def submit(self) -> None:
        self.callbacks.next(self.method)


# ═══════════════════════════════════════════════════════════════
# FINISH
# ═══════════════════════════════════════════════════════════════


class TwoFactorEnabledBody(StepBody):
    """Confirmation after primary enrollment."""

    heading = "Two-factor authentication enabled!"
    message = "Your account is now 100% secure against unauthorized logins."
    fallback_action = "Setup a fallback 2FA method"

    def __init__(
        self,
        callbacks: StepCallbacks,
        services: EnrollmentServices,
        *,
        method: AuthenticatorType,
    ) -> None:
        super().__init__(callbacks, services)
        self.method = method

    def done(self) -> None:
        self.callbacks.close()

    def setup_fallback(self) -> None:
        logger.info(
            "Fallback enrollment requested after enabling %s", self.method.value
        )
        self.callbacks.request_fallback()


class FallbackEnabledBody(StepBody):
    """Confirmation after fallback enrollment."""

    heading = "Fallback 2FA method enabled!"

    def __init__(
        self,
        callbacks: StepCallbacks,
        services: EnrollmentServices,
        *,
        fallback_method: AuthenticatorType,
        primary_method: AuthenticatorType,
    ) -> None:
        super().__init__(callbacks, services)
        self.fallback_method = fallback_method
        self.primary_method = primary_method

    @property
    def message(self) -> str:
        return (
            f"You will now receive your 2FA codes on your "
            f"{method_to_phrase(self.fallback_method)} in case you lose access "
            f"to your {method_to_phrase(self.primary_method)}."
        )

    def done(self) -> None:
        self.callbacks.close()


__all__: list[str] = [
    "StepCallbacks",
    "StepBody",
    "ChooseAuthenticatorBody",
    "AuthenticatorSetupBody",
    "AppSetupBody",
    "EmailSetupBody",
    "SmsSetupBody",
    "SETUP_BODIES",
    "RecoveryCodesBody",
    "TwoFactorEnabledBody",
    "FallbackEnabledBody",
]
