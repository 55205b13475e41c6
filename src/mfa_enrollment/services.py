"""Collaborators shared by every step of an enrollment session."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .config import EnrollmentConfig
from .phone import E164PhoneNumberValidator

if TYPE_CHECKING:
    from collections.abc import Callable

    from .ports import (
        ICurrentUserProvider,
        IEnrollmentAuditStore,
        IPhoneNumberValidator,
        IVerificationAdapter,
    )


@dataclass(frozen=True)
class EnrollmentServices:
    """Everything step bodies need from the outside world.

    Attributes:
        verification: Authentication service adapter.
        user_provider: Source of the signed-in user's email.
        phone_validator: Validates and normalises SMS numbers.
        config: Wizard configuration.
        audit_store: Optional sink for enrollment audit events.
        clock: Monotonic clock driving resend cool-downs.
    """

    verification: IVerificationAdapter
    user_provider: ICurrentUserProvider
    phone_validator: IPhoneNumberValidator = field(
        default_factory=E164PhoneNumberValidator
    )
    config: EnrollmentConfig = field(default_factory=EnrollmentConfig)
    audit_store: IEnrollmentAuditStore | None = None
    clock: Callable[[], float] = time.monotonic


__all__: list[str] = ["EnrollmentServices"]
