"""Test configuration and fixtures."""

from __future__ import annotations

import asyncio
from typing import Any
from unittest.mock import AsyncMock

import pytest

from mfa_enrollment import (
    AuthenticatorType,
    EnrollmentServices,
    InMemoryEnrollmentAuditStore,
    SetupMaterial,
    StepCallbacks,
    VerificationFailedError,
)
from mfa_enrollment.adapters import InMemoryCurrentUserProvider

VALID_CODE = "482193"
USER_EMAIL = "a@b.com"
RECOVERY_CODES = [
    "ABCD-EFGH",
    "JKLM-NPQR",
    "STUV-WXYZ",
    "2345-6789",
    "AB23-CD45",
]
NEW_RECOVERY_CODES = ["ZZZZ-YYYY", "XXXX-WWWW"]


class FakeVerificationAdapter:
    """Scripted authentication service.

    Every method is an ``AsyncMock`` spy. ``gate`` holds confirm calls
    until it is set, which lets tests interleave user actions with an
    in-flight request.
    """

    def __init__(self) -> None:
        self.valid_code = VALID_CODE
        self.gate: asyncio.Event | None = None
        self.begin_setup = AsyncMock(side_effect=self._begin_setup)
        self.confirm_code = AsyncMock(side_effect=self._confirm_code)
        self.fetch_recovery_codes = AsyncMock(return_value=list(RECOVERY_CODES))
        self.regenerate_recovery_codes = AsyncMock(
            return_value=list(NEW_RECOVERY_CODES)
        )

    async def _begin_setup(
        self,
        method: AuthenticatorType,
        phone_number: str | None = None,
    ) -> SetupMaterial:
        if method is AuthenticatorType.APP:
            return SetupMaterial(
                shared_key="JBSW Y3DP EHPK 3PXP",
                authenticator_uri=(
                    "otpauth://totp/Notesnook:a%40b.com?secret=JBSWY3DPEHPK3PXP"
                ),
            )
        return SetupMaterial(sent_to=phone_number or USER_EMAIL)

    async def _confirm_code(
        self,
        method: AuthenticatorType,
        code: str,
        is_fallback: bool = False,
    ) -> None:
        if self.gate is not None:
            await self.gate.wait()
        if code != self.valid_code:
            raise VerificationFailedError("Invalid code")


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class CallbackRecorder:
    """Records what a step body asks of the wizard."""

    def __init__(self) -> None:
        self.current = True
        self.nexts: list[tuple[Any, ...]] = []
        self.errors: list[str] = []
        self.cleared = 0
        self.closed = 0
        self.fallback_requests = 0

    def _next(self, *args: Any) -> None:
        self.nexts.append(args)

    def _clear(self) -> None:
        self.cleared += 1

    def _close(self) -> None:
        self.closed += 1

    def _fallback(self) -> None:
        self.fallback_requests += 1

    def callbacks(self) -> StepCallbacks:
        return StepCallbacks(
            is_current=lambda: self.current,
            on_next=self._next,
            on_error=self.errors.append,
            on_clear_error=self._clear,
            on_close=self._close,
            on_request_fallback=self._fallback,
        )


@pytest.fixture
def adapter() -> FakeVerificationAdapter:
    return FakeVerificationAdapter()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def audit_store() -> InMemoryEnrollmentAuditStore:
    return InMemoryEnrollmentAuditStore()


@pytest.fixture
def services(
    adapter: FakeVerificationAdapter,
    clock: FakeClock,
    audit_store: InMemoryEnrollmentAuditStore,
) -> EnrollmentServices:
    """Services wired to the scripted adapter."""
    return EnrollmentServices(
        verification=adapter,
        user_provider=InMemoryCurrentUserProvider(USER_EMAIL),
        audit_store=audit_store,
        clock=clock,
    )


@pytest.fixture
def recorder() -> CallbackRecorder:
    return CallbackRecorder()
