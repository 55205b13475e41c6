"""Step registry: one factory per step key, per enrollment mode.

Primary enrollment walks ``choose → setup → recoveryCodes → finish``.
Fallback enrollment walks ``choose → setup → finish``; recovery codes were
already issued with the primary method, so the fallback table has no
``recoveryCodes`` entry at all and asking for it is a contract error.

Fallback factories always take the primary method as their last argument.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from functools import partial
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from .bodies import (
    SETUP_BODIES,
    ChooseAuthenticatorBody,
    FallbackEnabledBody,
    RecoveryCodesBody,
    TwoFactorEnabledBody,
)
from .exceptions import StepContractError
from .methods import list_authenticators, method_to_device

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    from .bodies import StepBody, StepCallbacks
    from .methods import Authenticator, AuthenticatorType
    from .services import EnrollmentServices

logger = logging.getLogger("mfa_enrollment.steps")


class StepKey(str, Enum):
    """Identity of a node in the wizard graph."""

    CHOOSE = "choose"
    SETUP = "setup"
    RECOVERY_CODES = "recoveryCodes"
    FINISH = "finish"


class EnrollmentMode(str, Enum):
    """Whether a session enrolls the primary or the fallback method."""

    PRIMARY = "primary"
    FALLBACK = "fallback"


@dataclass(frozen=True)
class StepDescriptor:
    """One node of the wizard graph, built fresh on every transition.

    Attributes:
        key: Step identity.
        body: Builds the step body from the wizard's callbacks.
        title: Dialog title.
        description: Dialog description.
        next: Successor step key, ``None`` for the terminal step.
        cancellable: Whether the dialog offers "Cancel" on this step.
        method: Method this step concerns, once one is chosen.
    """

    key: StepKey
    body: Callable[[StepCallbacks], StepBody]
    title: str | None = None
    description: str | None = None
    next: StepKey | None = None
    cancellable: bool = False
    method: AuthenticatorType | None = None

    @property
    def is_terminal(self) -> bool:
        return self.next is None

    def create_body(self, callbacks: StepCallbacks) -> StepBody:
        return self.body(callbacks)


# ═══════════════════════════════════════════════════════════════
# PRIMARY STEPS
# ═══════════════════════════════════════════════════════════════


def _choose(services: EnrollmentServices) -> StepDescriptor:
    return StepDescriptor(
        key=StepKey.CHOOSE,
        title="Protect your notes by enabling 2FA",
        description="Choose how you want to receive your authentication codes.",
        body=partial(
            ChooseAuthenticatorBody,
            services=services,
            authenticators=list_authenticators(),
        ),
        next=StepKey.SETUP,
        cancellable=True,
    )


def _setup(
    services: EnrollmentServices, authenticator: Authenticator
) -> StepDescriptor:
    return StepDescriptor(
        key=StepKey.SETUP,
        title=authenticator.title,
        description=authenticator.subtitle,
        body=partial(SETUP_BODIES[authenticator.type], services=services),
        next=StepKey.RECOVERY_CODES,
        method=authenticator.type,
    )


def _recovery_codes(
    services: EnrollmentServices, method: AuthenticatorType
) -> StepDescriptor:
    return StepDescriptor(
        key=StepKey.RECOVERY_CODES,
        title="Save your recovery codes",
        description=(
            f"If you lose access to your {method_to_device(method)}, you can login "
            f"to {services.config.app_name} using your recovery codes. "
            "Each code can only be used once!"
        ),
        body=partial(RecoveryCodesBody, services=services, method=method),
        next=StepKey.FINISH,
        method=method,
    )


def _finish(services: EnrollmentServices, method: AuthenticatorType) -> StepDescriptor:
    return StepDescriptor(
        key=StepKey.FINISH,
        body=partial(TwoFactorEnabledBody, services=services, method=method),
        method=method,
    )


# ═══════════════════════════════════════════════════════════════
# FALLBACK STEPS
# ═══════════════════════════════════════════════════════════════


def _fallback_choose(
    services: EnrollmentServices, primary_method: AuthenticatorType
) -> StepDescriptor:
    return StepDescriptor(
        key=StepKey.CHOOSE,
        title="Add a fallback 2FA method",
        description=(
            "A fallback method helps you get your 2FA codes on an alternative "
            "device in case you lose your primary device."
        ),
        body=partial(
            ChooseAuthenticatorBody,
            services=services,
            authenticators=list_authenticators(exclude=(primary_method,)),
        ),
        next=StepKey.SETUP,
        cancellable=True,
    )


def _fallback_setup(
    services: EnrollmentServices,
    authenticator: Authenticator,
    primary_method: AuthenticatorType,
) -> StepDescriptor:
    return StepDescriptor(
        key=StepKey.SETUP,
        title=authenticator.title,
        description=authenticator.subtitle,
        body=partial(
            SETUP_BODIES[authenticator.type], services=services, is_fallback=True
        ),
        next=StepKey.FINISH,
        cancellable=True,
        method=authenticator.type,
    )


def _fallback_finish(
    services: EnrollmentServices,
    fallback_method: AuthenticatorType,
    primary_method: AuthenticatorType,
) -> StepDescriptor:
    return StepDescriptor(
        key=StepKey.FINISH,
        body=partial(
            FallbackEnabledBody,
            services=services,
            fallback_method=fallback_method,
            primary_method=primary_method,
        ),
        method=fallback_method,
    )


PRIMARY_STEPS: Mapping[StepKey, Callable[..., StepDescriptor]] = MappingProxyType(
    {
        StepKey.CHOOSE: _choose,
        StepKey.SETUP: _setup,
        StepKey.RECOVERY_CODES: _recovery_codes,
        StepKey.FINISH: _finish,
    }
)

FALLBACK_STEPS: Mapping[StepKey, Callable[..., StepDescriptor]] = MappingProxyType(
    {
        StepKey.CHOOSE: _fallback_choose,
        StepKey.SETUP: _fallback_setup,
        StepKey.FINISH: _fallback_finish,
    }
)

_TABLES: Mapping[EnrollmentMode, Mapping[StepKey, Callable[..., StepDescriptor]]] = {
    EnrollmentMode.PRIMARY: PRIMARY_STEPS,
    EnrollmentMode.FALLBACK: FALLBACK_STEPS,
}


class StepRegistry:
    """Builds step descriptors for one enrollment mode.

    Example:
        ```python
        registry = StepRegistry(EnrollmentMode.PRIMARY, services)
        choose = registry.create(StepKey.CHOOSE)
        setup = registry.create(choose.next, get_authenticator("app"))
        ```
    """

    def __init__(self, mode: EnrollmentMode, services: EnrollmentServices) -> None:
        self.mode = mode
        self.services = services
        self._factories = _TABLES[mode]

    @property
    def keys(self) -> frozenset[StepKey]:
        """Step keys this mode can reach."""
        return frozenset(self._factories)

    def __contains__(self, key: object) -> bool:
        return key in self._factories

    def create(self, key: StepKey, *args: Any) -> StepDescriptor:
        """Build the descriptor for ``key`` from the previous step's arguments.

        Raises:
            StepContractError: If ``key`` is not part of this mode's graph.
        """
        factory = self._factories.get(key)
        if factory is None:
            name = key.value if isinstance(key, StepKey) else str(key)
            raise StepContractError(name, self.mode.value)
        descriptor = factory(self.services, *args)
        logger.debug("Built %s step %r", self.mode.value, descriptor.key.value)
        return descriptor


__all__: list[str] = [
    "StepKey",
    "EnrollmentMode",
    "StepDescriptor",
    "StepRegistry",
    "PRIMARY_STEPS",
    "FALLBACK_STEPS",
]
