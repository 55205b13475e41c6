"""Wizard controller: the enrollment state machine.

The controller owns exactly one current step at a time. It moves forward
when the active step body calls ``next`` and resolves the successor from
the registry of its enrollment mode. It keeps the step's error message
until a successful transition. Closing happens only on the terminal step
or through ``cancel`` on a cancellable step.

Apart from updating its own state the controller does nothing: every
call to the authentication service happens inside step bodies.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field

from .bodies import StepCallbacks
from .exceptions import WizardClosedError, WizardError
from .methods import AuthenticatorType
from .steps import EnrollmentMode, StepKey, StepRegistry

if TYPE_CHECKING:
    from collections.abc import Callable

    from .bodies import StepBody
    from .services import EnrollmentServices
    from .steps import StepDescriptor

logger = logging.getLogger("mfa_enrollment.wizard")


class EnrollmentStatus(str, Enum):
    """How an enrollment session ended."""

    COMPLETED = "completed"
    CANCELLED = "cancelled"


class StepTransition(BaseModel):
    """Immutable record of a single step transition."""

    model_config = ConfigDict(frozen=True)

    from_step: StepKey | None
    to_step: StepKey
    generation: int
    occurred_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class WizardState(BaseModel):
    """Snapshot of the wizard as the dialog renders it."""

    model_config = ConfigDict(frozen=True)

    mode: EnrollmentMode
    step_key: StepKey
    title: str | None = None
    description: str | None = None
    cancellable: bool = False
    can_continue: bool = False
    method: AuthenticatorType | None = None
    error: str | None = None
    generation: int = 0
    closed: bool = False


class EnrollmentOutcome(BaseModel):
    """Result a closed enrollment dialog reports to its caller.

    Attributes:
        status: Completed or cancelled.
        mode: Primary or fallback enrollment.
        method: Method enrolled in this session, if completed.
        primary_method: The already enrolled primary method (fallback mode).
        fallback_requested: The user asked to add a fallback method next.
    """

    model_config = ConfigDict(frozen=True)

    status: EnrollmentStatus
    mode: EnrollmentMode
    method: AuthenticatorType | None = None
    primary_method: AuthenticatorType | None = None
    fallback_requested: bool = False

    @property
    def cancelled(self) -> bool:
        return self.status is EnrollmentStatus.CANCELLED

    @property
    def enrolled(self) -> AuthenticatorType | None:
        """Primary method enrolled by a completed primary session."""
        if self.cancelled or self.mode is not EnrollmentMode.PRIMARY:
            return None
        return self.method

    @property
    def fallback_enrolled(self) -> AuthenticatorType | None:
        """Fallback method enrolled by a completed fallback session."""
        if self.cancelled or self.mode is not EnrollmentMode.FALLBACK:
            return None
        return self.method


class EnrollmentWizard:
    """State machine for one enrollment dialog session.

    The mode is fixed at construction: passing ``primary_method`` starts
    fallback enrollment, omitting it starts primary enrollment.

    Every transition and the final close increment ``generation``. Step
    callbacks remember the generation they were created for and go silent
    once it is outdated, which discards responses that arrive after the
    user has moved on.

    Example:
        ```python
        wizard = EnrollmentWizard(services)
        wizard.start()
        wizard.body.select_type(AuthenticatorType.EMAIL)
        wizard.body.submit()              # -> setup
        await wizard.body.activate()
        await wizard.body.send_code()
        await wizard.body.submit_code("482193")  # -> recoveryCodes
        ```
    """

    def __init__(
        self,
        services: EnrollmentServices,
        *,
        primary_method: AuthenticatorType | None = None,
    ) -> None:
        self.services = services
        self.primary_method = primary_method
        self.mode = (
            EnrollmentMode.FALLBACK
            if primary_method is not None
            else EnrollmentMode.PRIMARY
        )
        self.registry = StepRegistry(self.mode, services)
        self._step: StepDescriptor | None = None
        self._body: StepBody | None = None
        self._error: str | None = None
        self._generation = 0
        self._outcome: EnrollmentOutcome | None = None
        self._history: list[StepTransition] = []
        self._close_listeners: list[Callable[[EnrollmentOutcome], None]] = []

    # ── Queries ──────────────────────────────────────────────────────

    @property
    def started(self) -> bool:
        return self._step is not None

    @property
    def closed(self) -> bool:
        return self._outcome is not None

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def step(self) -> StepDescriptor:
        if self._step is None:
            raise WizardError("Wizard has not been started")
        return self._step

    @property
    def body(self) -> Any:
        """The active step body."""
        if self._body is None:
            raise WizardError("Wizard has not been started")
        return self._body

    @property
    def error(self) -> str | None:
        return self._error

    @property
    def outcome(self) -> EnrollmentOutcome | None:
        return self._outcome

    @property
    def history(self) -> list[StepTransition]:
        return list(self._history)

    @property
    def state(self) -> WizardState:
        step = self.step
        return WizardState(
            mode=self.mode,
            step_key=step.key,
            title=step.title,
            description=step.description,
            cancellable=step.cancellable,
            can_continue=step.next is not None,
            method=step.method,
            error=self._error,
            generation=self._generation,
            closed=self.closed,
        )

    def add_close_listener(self, listener: Callable[[EnrollmentOutcome], None]) -> None:
        self._close_listeners.append(listener)

    # ── Commands ─────────────────────────────────────────────────────

    def start(self) -> WizardState:
        """Enter the first step of this mode's graph."""
        if self.started:
            raise WizardError("Wizard has already been started")
        args = (self.primary_method,) if self.mode is EnrollmentMode.FALLBACK else ()
        self._enter(self.registry.create(StepKey.CHOOSE, *args))
        logger.info("Opened %s enrollment wizard", self.mode.value)
        return self.state

    def advance(self, *args: Any) -> None:
        """Move to the current step's successor, forwarding ``args``.

        On the terminal step this closes the wizard instead.

        Raises:
            WizardClosedError: If the wizard has already closed.
            StepContractError: If the successor is not registered for this mode.
        """
        if self.closed:
            raise WizardClosedError("Cannot advance a closed wizard")
        step = self.step
        if step.next is None:
            self._close(EnrollmentStatus.COMPLETED)
            return
        if self.mode is EnrollmentMode.FALLBACK:
            args = (*args, self.primary_method)
        self._enter(self.registry.create(step.next, *args))

    def report_error(self, message: str) -> None:
        """Show ``message`` under the current step without leaving it."""
        if self.closed:
            logger.debug("Ignoring error reported after close")
            return
        self._error = message or None

    def clear_error(self) -> None:
        if not self.closed:
            self._error = None

    def cancel(self) -> bool:
        """Close as cancelled if the current step allows it.

        Returns:
            True if the wizard closed.
        """
        if self.closed:
            return False
        step = self.step
        if not step.cancellable:
            logger.debug("Step %r is not cancellable", step.key.value)
            return False
        self._close(EnrollmentStatus.CANCELLED)
        return True

    def close(self) -> None:
        """Dismiss the dialog: completes on the terminal step, cancels elsewhere."""
        if self.closed:
            return
        if self.step.next is None:
            self._close(EnrollmentStatus.COMPLETED)
        else:
            self.cancel()

    def request_fallback(self) -> None:
        """Complete primary enrollment and ask for fallback enrollment next."""
        if self.closed:
            return
        step = self.step
        if self.mode is not EnrollmentMode.PRIMARY or step.next is not None:
            raise WizardError(
                "Fallback enrollment can only follow a completed primary enrollment"
            )
        self._close(EnrollmentStatus.COMPLETED, fallback_requested=True)

    # ── Internals ────────────────────────────────────────────────────

    def _callbacks(self, generation: int) -> StepCallbacks:
        return StepCallbacks(
            is_current=lambda: not self.closed and self._generation == generation,
            on_next=self.advance,
            on_error=self.report_error,
            on_clear_error=self.clear_error,
            on_close=self.close,
            on_request_fallback=self.request_fallback,
        )

    def _enter(self, descriptor: StepDescriptor) -> None:
        previous = self._step.key if self._step is not None else None
        self._generation += 1
        self._history.append(
            StepTransition(
                from_step=previous,
                to_step=descriptor.key,
                generation=self._generation,
            )
        )
        self._step = descriptor
        self._error = None
        self._body = descriptor.create_body(self._callbacks(self._generation))
        logger.debug(
            "%s wizard: %s -> %s (generation %d)",
            self.mode.value,
            previous.value if previous else None,
            descriptor.key.value,
            self._generation,
        )

    def _close(
        self, status: EnrollmentStatus, *, fallback_requested: bool = False
    ) -> None:
        self._generation += 1
        step = self.step
        self._outcome = EnrollmentOutcome(
            status=status,
            mode=self.mode,
            method=step.method if status is EnrollmentStatus.COMPLETED else None,
            primary_method=self.primary_method,
            fallback_requested=fallback_requested,
        )
        logger.info(
            "Closed %s enrollment wizard on step %r: %s",
            self.mode.value,
            step.key.value,
            status.value,
        )
        for listener in list(self._close_listeners):
            listener(self._outcome)


def start_wizard(
    services: EnrollmentServices,
    primary_method: AuthenticatorType | None = None,
) -> EnrollmentWizard:
    """Create a wizard and enter its first step."""
    wizard = EnrollmentWizard(services, primary_method=primary_method)
    wizard.start()
    return wizard


__all__: list[str] = [
    "EnrollmentStatus",
    "StepTransition",
    "WizardState",
    "EnrollmentOutcome",
    "EnrollmentWizard",
    "start_wizard",
]
