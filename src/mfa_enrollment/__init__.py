"""MFA enrollment wizard.

Walks a user through enrolling a primary multi-factor method
(``choose → setup → recoveryCodes → finish``) or a fallback method next
to an existing primary one (``choose → setup → finish``).

The wizard is UI-agnostic: a :class:`EnrollmentDialog` exposes the
current step's title, description, buttons and body object, and a front
end renders them however it likes.

Usage:
    ```python
    from mfa_enrollment import (
        EnrollmentServices,
        AuthenticatorType,
        open_primary_enrollment,
    )

    services = EnrollmentServices(
        verification=my_auth_service,
        user_provider=my_user_provider,
    )
    dialog = open_primary_enrollment(services)
    dialog.wizard.body.select_type(AuthenticatorType.EMAIL)
    dialog.wizard.body.submit()
    await dialog.wizard.body.activate()
    await dialog.wizard.body.send_code()
    await dialog.wizard.body.submit_code("482193")

    outcome = await dialog.closed()
    ```
"""

from .audit import (
    EnrollmentAuditEvent,
    EnrollmentEventType,
    InMemoryEnrollmentAuditStore,
)
from .bodies import (
    AppSetupBody,
    AuthenticatorSetupBody,
    ChooseAuthenticatorBody,
    EmailSetupBody,
    FallbackEnabledBody,
    RecoveryCodesBody,
    SmsSetupBody,
    StepBody,
    StepCallbacks,
    TwoFactorEnabledBody,
)
from .config import EnrollmentConfig
from .controller import (
    EnrollmentOutcome,
    EnrollmentStatus,
    EnrollmentWizard,
    StepTransition,
    WizardState,
    start_wizard,
)
from .cooldown import ResendCooldown
from .dialogs import (
    EnrollmentDialog,
    RecoveryCodesDialog,
    open_fallback_enrollment,
    open_primary_enrollment,
    open_recovery_codes,
)
from .exceptions import (
    EnrollmentValidationError,
    MfaEnrollmentError,
    MfaError,
    MfaSetupError,
    StepContractError,
    VerificationFailedError,
    WizardClosedError,
    WizardError,
)
from .exporter import RecoveryCodeExporter
from .methods import (
    AUTHENTICATORS,
    Authenticator,
    AuthenticatorType,
    get_authenticator,
    list_authenticators,
    method_to_phrase,
)
from .phone import E164PhoneNumberValidator
from .ports import (
    CurrentUser,
    ICurrentUserProvider,
    IEnrollmentAuditStore,
    IMfaDeliveryHook,
    IPhoneNumberValidator,
    IVerificationAdapter,
    PhoneValidationResult,
    SetupMaterial,
)
from .services import EnrollmentServices
from .steps import (
    FALLBACK_STEPS,
    PRIMARY_STEPS,
    EnrollmentMode,
    StepDescriptor,
    StepKey,
    StepRegistry,
)

__version__ = "0.1.0"

__all__: list[str] = [
    # Entry points
    "open_primary_enrollment",
    "open_fallback_enrollment",
    "open_recovery_codes",
    "EnrollmentDialog",
    "RecoveryCodesDialog",
    # Controller
    "EnrollmentWizard",
    "EnrollmentOutcome",
    "EnrollmentStatus",
    "StepTransition",
    "WizardState",
    "start_wizard",
    # Registry
    "StepRegistry",
    "StepDescriptor",
    "StepKey",
    "EnrollmentMode",
    "PRIMARY_STEPS",
    "FALLBACK_STEPS",
    # Bodies
    "StepCallbacks",
    "StepBody",
    "ChooseAuthenticatorBody",
    "AuthenticatorSetupBody",
    "AppSetupBody",
    "EmailSetupBody",
    "SmsSetupBody",
    "RecoveryCodesBody",
    "TwoFactorEnabledBody",
    "FallbackEnabledBody",
    # Catalog
    "AuthenticatorType",
    "Authenticator",
    "AUTHENTICATORS",
    "get_authenticator",
    "list_authenticators",
    "method_to_phrase",
    # Ports
    "IVerificationAdapter",
    "ICurrentUserProvider",
    "IPhoneNumberValidator",
    "IMfaDeliveryHook",
    "IEnrollmentAuditStore",
    "SetupMaterial",
    "CurrentUser",
    "PhoneValidationResult",
    # Services and config
    "EnrollmentServices",
    "EnrollmentConfig",
    "E164PhoneNumberValidator",
    "ResendCooldown",
    "RecoveryCodeExporter",
    # Audit
    "EnrollmentAuditEvent",
    "EnrollmentEventType",
    "InMemoryEnrollmentAuditStore",
    # Exceptions
    "MfaEnrollmentError",
    "EnrollmentValidationError",
    "MfaError",
    "VerificationFailedError",
    "MfaSetupError",
    "WizardError",
    "StepContractError",
    "WizardClosedError",
]
