"""
Vendor application state machine.

The whole lifecycle is the ``TRANSITIONS`` table below; ``apply_transition`` is
a pure lookup that never touches a record. Anything absent from the table is
an ``IllegalTransition``.

    NO_APPLICATION --submit--> PENDING
    PENDING        --approve-> APPROVED
    PENDING        --reject--> REJECTED
    APPROVED       --suspend-> SUSPENDED
    SUSPENDED      --reapply-> PENDING
    REJECTED       --resubmit> PENDING
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Tuple

from .accounts import Role
from .errors import IllegalTransition
from .vendors import ApplicationStatus


class ApplicationState(str, Enum):
    NO_APPLICATION = "no_application"
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    SUSPENDED = "suspended"

    @classmethod
    def of(cls, status: Optional[ApplicationStatus]) -> "ApplicationState":
        if status is None:
            return cls.NO_APPLICATION
        return cls(ApplicationStatus(status).value)

    def as_status(self) -> Optional[ApplicationStatus]:
        if self is ApplicationState.NO_APPLICATION:
            return None
        return ApplicationStatus(self.value)


class Transition(str, Enum):
    SUBMIT = "submit"
    APPROVE = "approve"
    REJECT = "reject"
    SUSPEND = "suspend"
    REAPPLY = "reapply"
    RESUBMIT = "resubmit"


@dataclass(frozen=True)
class TransitionOutcome:
    previous: ApplicationState
    state: ApplicationState
    role: Role
    creates_record: bool = False
    reset_limits: bool = False


_Rule = Tuple[ApplicationState, Role, bool, bool]

TRANSITIONS: Dict[Tuple[ApplicationState, Transition], _Rule] = {
    # (from, transition): (to, role to apply, creates record, reset limits)
    (ApplicationState.NO_APPLICATION, Transition.SUBMIT): (ApplicationState.PENDING, Role.CUSTOMER, True, True),
    (ApplicationState.PENDING, Transition.SUBMIT): (ApplicationState.PENDING, Role.CUSTOMER, False, False),
    (ApplicationState.PENDING, Transition.APPROVE): (ApplicationState.APPROVED, Role.VENDOR, False, False),
    (ApplicationState.PENDING, Transition.REJECT): (ApplicationState.REJECTED, Role.CUSTOMER, False, False),
    # Grace period: the vendor keeps its role to finish orders already in flight.
    (ApplicationState.APPROVED, Transition.SUSPEND): (ApplicationState.SUSPENDED, Role.VENDOR, False, False),
    (ApplicationState.SUSPENDED, Transition.REAPPLY): (ApplicationState.PENDING, Role.CUSTOMER, False, False),
    (ApplicationState.REJECTED, Transition.RESUBMIT): (ApplicationState.PENDING, Role.CUSTOMER, False, False),
}


def apply_transition(current: ApplicationState, transition: Transition) -> TransitionOutcome:
    rule = TRANSITIONS.get((current, transition))
    if rule is None:
        raise IllegalTransition(current.value, transition.value)
    state, role, creates_record, reset_limits = rule
    return TransitionOutcome(
        previous=current,
        state=state,
        role=role,
        creates_record=creates_record,
        reset_limits=reset_limits,
    )


def allowed_transitions(current: ApplicationState) -> list[Transition]:
    return [transition for (state, transition) in TRANSITIONS if state is current]
