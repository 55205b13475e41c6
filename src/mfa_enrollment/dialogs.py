"""Entry points the application uses to open enrollment dialogs.

``open_primary_enrollment`` and ``open_fallback_enrollment`` each start a
wizard session and hand back an :class:`EnrollmentDialog`; awaiting
:meth:`EnrollmentDialog.closed` yields the :class:`EnrollmentOutcome`.
``open_recovery_codes`` shows the recovery codes step on its own, for
users who already have MFA enabled.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from .bodies import RecoveryCodesBody, StepCallbacks
from .controller import EnrollmentWizard
from .exceptions import WizardError
from .steps import EnrollmentMode, StepKey, StepRegistry

if TYPE_CHECKING:
    from .controller import EnrollmentOutcome, WizardState
    from .methods import AuthenticatorType
    from .services import EnrollmentServices
    from .steps import StepDescriptor

logger = logging.getLogger("mfa_enrollment.wizard")


class EnrollmentDialog:
    """One open enrollment dialog.

    Attributes:
        wizard: The session's state machine.
    """

    positive_label = "Continue"
    negative_label = "Cancel"

    def __init__(
        self,
        services: EnrollmentServices,
        *,
        primary_method: AuthenticatorType | None = None,
    ) -> None:
        self.services = services
        self.wizard = EnrollmentWizard(services, primary_method=primary_method)
        self._closed = asyncio.Event()
        self.wizard.add_close_listener(self._on_close)
        self.wizard.start()

    def _on_close(self, outcome: EnrollmentOutcome) -> None:
        self._closed.set()

    @property
    def state(self) -> WizardState:
        return self.wizard.state

    @property
    def outcome(self) -> EnrollmentOutcome | None:
        return self.wizard.outcome

    @property
    def positive_button(self) -> str | None:
        """Label of the primary action, shown only when the step has a successor."""
        return self.positive_label if self.state.can_continue else None

    @property
    def negative_button(self) -> str | None:
        return self.negative_label if self.state.cancellable else None

    async def closed(self) -> EnrollmentOutcome:
        """Wait until the dialog closes and return its outcome."""
        await self._closed.wait()
        outcome = self.wizard.outcome
        if outcome is None:
            raise WizardError("Dialog closed without an outcome")
        return outcome

    def relaunch(self) -> EnrollmentDialog | None:
        """Open fallback enrollment if the user asked for it on the finish step."""
        outcome = self.wizard.outcome
        if outcome is None or not outcome.fallback_requested or outcome.method is None:
            return None
        logger.info("Relaunching wizard for fallback enrollment")
        return open_fallback_enrollment(outcome.method, self.services)


def open_primary_enrollment(services: EnrollmentServices) -> EnrollmentDialog:
    """Open the wizard to enroll a user's first MFA method."""
    return EnrollmentDialog(services)


def open_fallback_enrollment(
    primary_method: AuthenticatorType,
    services: EnrollmentServices,
) -> EnrollmentDialog:
    """Open the wizard to enroll a fallback next to ``primary_method``."""
    return EnrollmentDialog(services, primary_method=primary_method)


class RecoveryCodesDialog:
    """Stand-alone recovery codes view with a single "Okay" action."""

    positive_label = "Okay"

    def __init__(
        self,
        services: EnrollmentServices,
        primary_method: AuthenticatorType,
    ) -> None:
        registry = StepRegistry(EnrollmentMode.PRIMARY, services)
        self.step: StepDescriptor = registry.create(
            StepKey.RECOVERY_CODES, primary_method
        )
        self.error: str | None = None
        self.is_closed = False
        self._closed = asyncio.Event()
        callbacks = StepCallbacks(
            is_current=lambda: not self.is_closed,
            on_error=self._set_error,
            on_clear_error=self._clear_error,
            on_close=self.close,
        )
        body = self.step.create_body(callbacks)
        if not isinstance(body, RecoveryCodesBody):
            raise WizardError("Recovery codes step built an unexpected body")
        self.body: RecoveryCodesBody = body

    def _set_error(self, message: str) -> None:
        self.error = message or None

    def _clear_error(self) -> None:
        self.error = None

    def close(self) -> None:
        self.is_closed = True
        self._closed.set()

    async def closed(self) -> None:
        await self._closed.wait()


def open_recovery_codes(
    primary_method: AuthenticatorType,
    services: EnrollmentServices,
) -> RecoveryCodesDialog:
    """Show the user's recovery codes outside the enrollment wizard."""
    return RecoveryCodesDialog(services, primary_method)


__all__: list[str] = [
    "EnrollmentDialog",
    "RecoveryCodesDialog",
    "open_primary_enrollment",
    "open_fallback_enrollment",
    "open_recovery_codes",
]
