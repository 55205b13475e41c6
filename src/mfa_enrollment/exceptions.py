"""Exceptions for the MFA enrollment wizard.

Three families of failure exist:

- validation errors, raised before any call to the authentication service
  and shown next to the offending input;
- MFA errors, raised by the authentication service (or its adapter) and
  reported inline by the active step;
- wizard errors, which signal a broken step graph or misuse of the
  controller and are never shown to the user.
"""

from __future__ import annotations

# ═══════════════════════════════════════════════════════════════
# BASE ERROR
# ═══════════════════════════════════════════════════════════════


class MfaEnrollmentError(Exception):
    """Root exception for the enrollment package."""


# ═══════════════════════════════════════════════════════════════
# VALIDATION ERRORS
# ═══════════════════════════════════════════════════════════════


class EnrollmentValidationError(MfaEnrollmentError):
    """Raised when user input is rejected before reaching the service.

    Carries structured errors: ``{field: [messages]}``.
    """

    def __init__(self, errors: dict[str, list[str]] | str | None = None) -> None:
        if isinstance(errors, str):
            self.errors: dict[str, list[str]] = {"__root__": [errors]}
        elif errors is None:
            self.errors = {}
        else:
            self.errors = errors
        super().__init__(str(self.errors))

    @property
    def message(self) -> str:
        """First message, suitable for inline display."""
        for messages in self.errors.values():
            if messages:
                return messages[0]
        return ""


# ═══════════════════════════════════════════════════════════════
# MFA ERRORS
# ═══════════════════════════════════════════════════════════════


class MfaError(MfaEnrollmentError):
    """Base class for errors coming from the authentication service."""


class VerificationFailedError(MfaError):
    """Raised when a submitted code is invalid or expired."""


class MfaSetupError(MfaError):
    """Raised when setting up a method fails.

    Examples:
        - TOTP secret generation failed
        - SMS or email code could not be sent
        - A code was confirmed for a method that was never set up
    """


# ═══════════════════════════════════════════════════════════════
# WIZARD ERRORS
# ═══════════════════════════════════════════════════════════════


class WizardError(MfaEnrollmentError):
    """Base class for programming errors in the wizard itself."""


class StepContractError(WizardError):
    """Raised when a step asks for a successor the active registry lacks.

    Attributes:
        step_key: The requested step key.
        mode: The enrollment mode whose registry was consulted.
    """

    def __init__(self, step_key: str, mode: str) -> None:
        self.step_key = step_key
        self.mode = mode
        super().__init__(f"Step {step_key!r} is not registered for {mode} enrollment")


class WizardClosedError(WizardError):
    """Raised when advancing a wizard that has already closed."""


__all__: list[str] = [
    "MfaEnrollmentError",
    "EnrollmentValidationError",
    "MfaError",
    "VerificationFailedError",
    "MfaSetupError",
    "WizardError",
    "StepContractError",
    "WizardClosedError",
]
