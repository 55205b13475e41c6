"""Tests for the step registry."""

from __future__ import annotations

import dataclasses

import pytest

from mfa_enrollment import (
    EmailSetupBody,
    EnrollmentConfig,
    EnrollmentMode,
    SmsSetupBody,
    StepContractError,
    StepKey,
    StepRegistry,
    get_authenticator,
)
from mfa_enrollment.methods import AuthenticatorType


@pytest.fixture
def primary(services) -> StepRegistry:
    return StepRegistry(EnrollmentMode.PRIMARY, services)


@pytest.fixture
def fallback(services) -> StepRegistry:
    return StepRegistry(EnrollmentMode.FALLBACK, services)


class TestPrimaryRegistry:
    """Test the primary step table."""

    def test_keys(self, primary: StepRegistry) -> None:
        """Test primary enrollment reaches all four steps."""
        assert primary.keys == frozenset(StepKey)

    def test_graph(self, primary: StepRegistry) -> None:
        """Test each step points at its successor."""
        app = get_authenticator(AuthenticatorType.APP)

        choose = primary.create(StepKey.CHOOSE)
        setup = primary.create(StepKey.SETUP, app)
        codes = primary.create(StepKey.RECOVERY_CODES, app.type)
        finish = primary.create(StepKey.FINISH, app.type)

        assert choose.next is StepKey.SETUP
        assert setup.next is StepKey.RECOVERY_CODES
        assert codes.next is StepKey.FINISH
        assert finish.next is None
        assert finish.is_terminal

    def test_cancellable_steps(self, primary: StepRegistry) -> None:
        """Test only the chooser is cancellable."""
        sms = get_authenticator(AuthenticatorType.SMS)

        assert primary.create(StepKey.CHOOSE).cancellable
        assert not primary.create(StepKey.SETUP, sms).cancellable
        assert not primary.create(StepKey.RECOVERY_CODES, sms.type).cancellable
        assert not primary.create(StepKey.FINISH, sms.type).cancellable

    def test_setup_copy_comes_from_catalog(self, primary: StepRegistry) -> None:
        """Test the setup step shows the chosen method's copy."""
        sms = get_authenticator(AuthenticatorType.SMS)

        setup = primary.create(StepKey.SETUP, sms)

        assert setup.title == "Set up using SMS"
        assert setup.description == sms.subtitle
        assert setup.method is AuthenticatorType.SMS

    def test_setup_body_matches_method(self, primary: StepRegistry, recorder) -> None:
        """Test the setup step builds the method's body."""
        setup = primary.create(
            StepKey.SETUP, get_authenticator(AuthenticatorType.EMAIL)
        )

        body = setup.create_body(recorder.callbacks())

        assert isinstance(body, EmailSetupBody)
        assert not body.is_fallback

    def test_recovery_codes_description(self, primary: StepRegistry) -> None:
        """Test the explanation names the device and the app."""
        codes = primary.create(StepKey.RECOVERY_CODES, AuthenticatorType.APP)

        assert codes.title == "Save your recovery codes"
        assert codes.description is not None
        assert "If you lose access to your auth app" in codes.description
        assert "login to Notesnook" in codes.description

    def test_app_name_is_configurable(self, services) -> None:
        """Test user-facing copy follows the configured product name."""
        services = dataclasses.replace(
            services, config=EnrollmentConfig(app_name="Acme Notes")
        )
        registry = StepRegistry(EnrollmentMode.PRIMARY, services)

        codes = registry.create(StepKey.RECOVERY_CODES, AuthenticatorType.SMS)

        assert codes.description is not None
        assert "login to Acme Notes" in codes.description
        assert "your phone" in codes.description


class TestFallbackRegistry:
    """Test the fallback step table."""

    def test_keys(self, fallback: StepRegistry) -> None:
        """Test fallback enrollment has no recovery codes step."""
        assert StepKey.RECOVERY_CODES not in fallback
        assert fallback.keys == {StepKey.CHOOSE, StepKey.SETUP, StepKey.FINISH}

    def test_recovery_codes_is_contract_error(self, fallback: StepRegistry) -> None:
        """Test asking for recovery codes in fallback mode raises."""
        with pytest.raises(StepContractError) as exc_info:
            fallback.create(
                StepKey.RECOVERY_CODES, AuthenticatorType.SMS, AuthenticatorType.APP
            )

        assert exc_info.value.step_key == "recoveryCodes"
        assert exc_info.value.mode == "fallback"
        assert "not registered for fallback enrollment" in str(exc_info.value)

    def test_choose_excludes_primary(self, fallback: StepRegistry, recorder) -> None:
        """Test the primary method is never offered as fallback."""
        choose = fallback.create(StepKey.CHOOSE, AuthenticatorType.EMAIL)

        body = choose.create_body(recorder.callbacks())

        assert choose.title == "Add a fallback 2FA method"
        assert body.candidates == [AuthenticatorType.APP, AuthenticatorType.SMS]

    def test_setup_goes_straight_to_finish(
        self, fallback: StepRegistry, recorder
    ) -> None:
        """Test fallback setup is cancellable and skips recovery codes."""
        setup = fallback.create(
            StepKey.SETUP,
            get_authenticator(AuthenticatorType.SMS),
            AuthenticatorType.APP,
        )

        assert setup.next is StepKey.FINISH
        assert setup.cancellable
        body = setup.create_body(recorder.callbacks())
        assert isinstance(body, SmsSetupBody)
        assert body.is_fallback

    def test_finish_records_fallback_method(self, fallback: StepRegistry) -> None:
        """Test the finish step concerns the fallback method."""
        finish = fallback.create(
            StepKey.FINISH, AuthenticatorType.SMS, AuthenticatorType.APP
        )

        assert finish.is_terminal
        assert finish.method is AuthenticatorType.SMS
