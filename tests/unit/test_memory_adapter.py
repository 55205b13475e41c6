"""Tests for the in-memory authentication service."""

from __future__ import annotations

import re

import pytest

from mfa_enrollment import (
    AuthenticatorType,
    IVerificationAdapter,
    MfaSetupError,
    VerificationFailedError,
)
from mfa_enrollment.adapters import (
    InMemoryAuthenticationService,
    InMemoryAuthServiceConfig,
)

RECOVERY_CODE = re.compile(r"^[A-HJ-NP-Z2-9]{4}-[A-HJ-NP-Z2-9]{4}$")


class MockDeliveryHook:
    """Mock delivery hook for testing."""

    def __init__(self) -> None:
        self.emails_sent: list[tuple[str, str]] = []
        self.sms_sent: list[tuple[str, str]] = []

    async def send_email_otp(self, email: str, code: str) -> None:
        self.emails_sent.append((email, code))

    async def send_sms_otp(self, phone: str, code: str) -> None:
        self.sms_sent.append((phone, code))


@pytest.fixture
def hook() -> MockDeliveryHook:
    return MockDeliveryHook()


@pytest.fixture
def service(hook: MockDeliveryHook) -> InMemoryAuthenticationService:
    return InMemoryAuthenticationService(email="user@example.com", delivery_hook=hook)


async def enroll_email(
    service: InMemoryAuthenticationService, hook: MockDeliveryHook
) -> None:
    await service.begin_setup(AuthenticatorType.EMAIL)
    await service.confirm_code(AuthenticatorType.EMAIL, hook.emails_sent[-1][1])


class TestProtocol:
    def test_implements_verification_adapter(
        self, service: InMemoryAuthenticationService
    ) -> None:
        """Test the service satisfies the adapter protocol."""
        assert isinstance(service, IVerificationAdapter)


class TestAuthenticatorApp:
    """Test TOTP enrollment."""

    @pytest.mark.asyncio
    async def test_setup_returns_qr_material(
        self, service: InMemoryAuthenticationService
    ) -> None:
        """Test app setup generates a secret and provisioning URI."""
        pytest.importorskip("pyotp")
        material = await service.begin_setup(AuthenticatorType.APP)

        assert material.authenticator_uri is not None
        assert material.authenticator_uri.startswith("otpauth://totp/")
        assert "issuer=Notesnook" in material.authenticator_uri
        assert material.shared_key is not None
        assert all(len(block) <= 4 for block in material.shared_key.split(" "))

    @pytest.mark.asyncio
    async def test_confirm_current_code(
        self, service: InMemoryAuthenticationService
    ) -> None:
        """Test the code shown by the app enrolls it as primary."""
        pytest.importorskip("pyotp")
        await service.begin_setup(AuthenticatorType.APP)

        await service.confirm_code(AuthenticatorType.APP, service.current_totp())

        assert service.primary_method is AuthenticatorType.APP

    @pytest.mark.asyncio
    async def test_confirm_without_setup_raises(
        self, service: InMemoryAuthenticationService
    ) -> None:
        """Test confirming before setup fails."""
        with pytest.raises(MfaSetupError, match="has not been set up"):
            await service.confirm_code(AuthenticatorType.APP, "123456")

    @pytest.mark.asyncio
    async def test_confirm_wrong_code_raises(
        self, service: InMemoryAuthenticationService
    ) -> None:
        """Test a wrong TOTP code is rejected."""
        pytest.importorskip("pyotp")
        await service.begin_setup(AuthenticatorType.APP)
        wrong = str((int(service.current_totp()) + 500_000) % 1_000_000).zfill(6)

        with pytest.raises(VerificationFailedError, match="Invalid TOTP code"):
            await service.confirm_code(AuthenticatorType.APP, wrong)


class TestOtpMethods:
    """Test SMS and email enrollment."""

    @pytest.mark.asyncio
    async def test_email_code_delivered_and_confirmed(
        self, service: InMemoryAuthenticationService, hook: MockDeliveryHook
    ) -> None:
        """Test an email code reaches the hook and enrolls email."""
        material = await service.begin_setup(AuthenticatorType.EMAIL)

        assert material.sent_to == "user@example.com"
        assert len(hook.emails_sent) == 1
        email, code = hook.emails_sent[0]
        assert email == "user@example.com"
        assert re.fullmatch(r"\d{6}", code)

        await service.confirm_code(AuthenticatorType.EMAIL, code)
        assert service.primary_method is AuthenticatorType.EMAIL

    @pytest.mark.asyncio
    async def test_sms_requires_phone_number(
        self, service: InMemoryAuthenticationService
    ) -> None:
        """Test SMS setup needs a destination."""
        with pytest.raises(MfaSetupError, match="phone number is required"):
            await service.begin_setup(AuthenticatorType.SMS)

    @pytest.mark.asyncio
    async def test_sms_code_is_single_use(
        self, service: InMemoryAuthenticationService, hook: MockDeliveryHook
    ) -> None:
        """Test an SMS code cannot be confirmed twice."""
        await service.begin_setup(AuthenticatorType.SMS, "+15550109999")
        phone, code = hook.sms_sent[0]
        assert phone == "+15550109999"

        await service.confirm_code(AuthenticatorType.SMS, code)
        with pytest.raises(VerificationFailedError, match="Invalid or expired"):
            await service.confirm_code(AuthenticatorType.SMS, code)

    @pytest.mark.asyncio
    async def test_resend_replaces_code(
        self, service: InMemoryAuthenticationService, hook: MockDeliveryHook
    ) -> None:
        """Test only the latest email code is accepted."""
        await service.begin_setup(AuthenticatorType.EMAIL)
        await service.begin_setup(AuthenticatorType.EMAIL)
        first, latest = hook.emails_sent[0][1], hook.emails_sent[1][1]

        if first != latest:
            with pytest.raises(VerificationFailedError):
                await service.confirm_code(AuthenticatorType.EMAIL, first)
        await service.confirm_code(AuthenticatorType.EMAIL, latest)


class TestOtpExpiry:
    """Test pending SMS and email codes."""

    @pytest.mark.asyncio
    async def test_expired_code_rejected(self, hook: MockDeliveryHook, clock) -> None:
        """Test a code past its lifetime is refused and discarded."""
        service = InMemoryAuthenticationService(
            email="user@example.com",
            delivery_hook=hook,
            config=InMemoryAuthServiceConfig(otp_ttl_seconds=60),
            clock=clock,
        )
        await service.begin_setup(AuthenticatorType.EMAIL)
        clock.advance(60)

        with pytest.raises(VerificationFailedError, match="Invalid or expired"):
            await service.confirm_code(AuthenticatorType.EMAIL, hook.emails_sent[0][1])
        assert service.pending_destination(AuthenticatorType.EMAIL) is None

    @pytest.mark.asyncio
    async def test_wrong_code_keeps_pending(
        self, service: InMemoryAuthenticationService, hook: MockDeliveryHook
    ) -> None:
        """Test a typo does not use up the delivered code."""
        await service.begin_setup(AuthenticatorType.SMS, "+15550109999")
        code = hook.sms_sent[0][1]
        wrong = str((int(code) + 1) % 1_000_000).zfill(6)

        with pytest.raises(VerificationFailedError):
            await service.confirm_code(AuthenticatorType.SMS, wrong)
        await service.confirm_code(AuthenticatorType.SMS, code)

        assert service.primary_method is AuthenticatorType.SMS

    @pytest.mark.asyncio
    async def test_codes_kept_per_method(
        self, service: InMemoryAuthenticationService, hook: MockDeliveryHook
    ) -> None:
        """Test an SMS code is not accepted for email."""
        await service.begin_setup(AuthenticatorType.SMS, "+15550109999")
        await service.begin_setup(AuthenticatorType.EMAIL)

        if hook.sms_sent[0][1] != hook.emails_sent[0][1]:
            with pytest.raises(VerificationFailedError):
                await service.confirm_code(
                    AuthenticatorType.EMAIL, hook.sms_sent[0][1]
                )
        assert service.pending_destination(AuthenticatorType.SMS) == "+15550109999"

    @pytest.mark.asyncio
    async def test_resend_to_new_number(
        self, service: InMemoryAuthenticationService, hook: MockDeliveryHook
    ) -> None:
        """Test sending to a corrected number replaces the destination."""
        await service.begin_setup(AuthenticatorType.SMS, "+15550109999")
        await service.begin_setup(AuthenticatorType.SMS, "+442079460958")

        assert service.pending_destination(AuthenticatorType.SMS) == "+442079460958"
        await service.confirm_code(AuthenticatorType.SMS, hook.sms_sent[-1][1])
        assert service.pending_destination(AuthenticatorType.SMS) is None


class TestFallbackEnrollment:
    """Test enrolling a second method."""

    @pytest.mark.asyncio
    async def test_fallback_requires_primary(
        self, service: InMemoryAuthenticationService, hook: MockDeliveryHook
    ) -> None:
        """Test a fallback cannot be enrolled first."""
        await service.begin_setup(AuthenticatorType.EMAIL)
        with pytest.raises(MfaSetupError, match="primary 2FA method first"):
            await service.confirm_code(
                AuthenticatorType.EMAIL, hook.emails_sent[0][1], is_fallback=True
            )

    @pytest.mark.asyncio
    async def test_fallback_must_differ(
        self, service: InMemoryAuthenticationService, hook: MockDeliveryHook
    ) -> None:
        """Test the fallback cannot repeat the primary method."""
        await enroll_email(service, hook)
        await service.begin_setup(AuthenticatorType.EMAIL)

        with pytest.raises(MfaSetupError, match="must differ"):
            await service.confirm_code(
                AuthenticatorType.EMAIL, hook.emails_sent[-1][1], is_fallback=True
            )

    @pytest.mark.asyncio
    async def test_fallback_enrolled(
        self, service: InMemoryAuthenticationService, hook: MockDeliveryHook
    ) -> None:
        """Test an SMS fallback next to an email primary."""
        await enroll_email(service, hook)
        codes = await service.fetch_recovery_codes()
        await service.begin_setup(AuthenticatorType.SMS, "+15550109999")

        await service.confirm_code(
            AuthenticatorType.SMS, hook.sms_sent[0][1], is_fallback=True
        )

        assert service.primary_method is AuthenticatorType.EMAIL
        assert service.fallback_method is AuthenticatorType.SMS
        assert await service.fetch_recovery_codes() == codes


class TestRecoveryCodes:
    """Test recovery code issuance."""

    @pytest.mark.asyncio
    async def test_fetch_requires_enrollment(
        self, service: InMemoryAuthenticationService
    ) -> None:
        """Test codes exist only once MFA is enabled."""
        with pytest.raises(MfaSetupError, match="not enabled"):
            await service.fetch_recovery_codes()
        with pytest.raises(MfaSetupError, match="not enabled"):
            await service.regenerate_recovery_codes()

    @pytest.mark.asyncio
    async def test_codes_issued_on_enrollment(
        self, service: InMemoryAuthenticationService, hook: MockDeliveryHook
    ) -> None:
        """Test enrolling a primary method issues a full set."""
        await enroll_email(service, hook)

        codes = await service.fetch_recovery_codes()

        assert len(codes) == 16
        assert len(set(codes)) == 16
        assert all(RECOVERY_CODE.match(code) for code in codes)

    @pytest.mark.asyncio
    async def test_regenerate_invalidates_previous(
        self, service: InMemoryAuthenticationService, hook: MockDeliveryHook
    ) -> None:
        """Test a new set shares no code with the old one."""
        await enroll_email(service, hook)
        old = await service.fetch_recovery_codes()

        new = await service.regenerate_recovery_codes()

        assert set(old).isdisjoint(new)
        assert await service.fetch_recovery_codes() == new
        assert await service.consume_recovery_code(old[0]) is False

    @pytest.mark.asyncio
    async def test_consume_is_single_use(
        self, service: InMemoryAuthenticationService, hook: MockDeliveryHook
    ) -> None:
        """Test a recovery code works once, with or without the dash."""
        await enroll_email(service, hook)
        code = (await service.fetch_recovery_codes())[0]

        assert await service.consume_recovery_code(code.replace("-", "").lower())
        assert not await service.consume_recovery_code(code)
        assert len(await service.fetch_recovery_codes()) == 15

    @pytest.mark.asyncio
    async def test_custom_count(self, hook: MockDeliveryHook) -> None:
        """Test the number of issued codes is configurable."""
        service = InMemoryAuthenticationService(
            email="user@example.com",
            delivery_hook=hook,
            config=InMemoryAuthServiceConfig(recovery_code_count=10),
        )
        await enroll_email(service, hook)

        assert len(await service.fetch_recovery_codes()) == 10

    @pytest.mark.asyncio
    async def test_custom_length_regrouped(self, hook: MockDeliveryHook) -> None:
        """Test longer codes are grouped and accepted without dashes."""
        service = InMemoryAuthenticationService(
            email="user@example.com",
            delivery_hook=hook,
            config=InMemoryAuthServiceConfig(recovery_code_length=12),
        )
        await enroll_email(service, hook)
        code = (await service.fetch_recovery_codes())[0]

        assert re.fullmatch(r"[A-HJ-NP-Z2-9]{4}(-[A-HJ-NP-Z2-9]{4}){2}", code)
        assert await service.consume_recovery_code(f" {code.replace('-', '')} ")
        assert code not in await service.fetch_recovery_codes()
