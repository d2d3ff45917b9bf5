"""Closed state enumerations for members and registrations."""
from __future__ import annotations

import enum


class MemberStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    SUSPENDED = "SUSPENDED"


# target status -> the only status it may be reached from
MEMBER_TRANSITIONS = {
    MemberStatus.SUSPENDED: MemberStatus.ACTIVE,
    MemberStatus.ACTIVE: MemberStatus.SUSPENDED,
}


def required_source(target: MemberStatus) -> MemberStatus:
    """Return the status a member must currently hold to move to ``target``."""
    return MEMBER_TRANSITIONS[target]


class RegistrationStep(enum.IntEnum):
    """Onboarding steps in the order a prospective user walks through them."""

    FORM = 0
    VERIFY = 1
    ACCOUNT_SETUP = 2
    INTERVIEW = 3
    PLAN = 4

    @property
    def slug(self) -> str:
        return self.name.lower().replace("_", "-")


def advance(current: RegistrationStep, target: RegistrationStep) -> RegistrationStep:
    """Move forward to ``target``; a registration never goes back a step."""
    return target if target > current else current
