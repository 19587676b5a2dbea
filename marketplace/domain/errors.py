"""
Error taxonomy shared by stores, services and the HTTP boundary.

Store failures (StoreUnavailable, UniqueConstraintViolation) are faults; policy
rejections (AlreadyVendor, ApplicationAlreadyExists, UnacknowledgedOrders) are
declined operations the caller reports back to the user.
"""

from __future__ import annotations

from typing import Sequence


class MarketplaceError(Exception):
    """Base class for every error raised by the engine."""

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message or self.__class__.__name__


class StoreUnavailable(MarketplaceError):
    """The relational store could not be reached; the whole operation may be retried."""


class UniqueConstraintViolation(MarketplaceError):
    """A uniqueness index rejected a write."""


class AccountNotFound(MarketplaceError):
    pass


class ApplicationNotFound(MarketplaceError):
    pass


class UsernameUnavailable(MarketplaceError):
    """No free handle could be derived within the configured attempts."""


class IllegalTransition(MarketplaceError):
    def __init__(self, current: str, transition: str, message: str = ""):
        super().__init__(message or f"cannot apply {transition} to an application in state {current}")
        self.current = current
        self.transition = transition


class PolicyRejection(MarketplaceError):
    """Declined operation, not a system fault."""


class AlreadyVendor(PolicyRejection):
    pass


class ApplicationAlreadyExists(PolicyRejection):
    pass


class UnacknowledgedOrders(PolicyRejection):
    def __init__(self, orders: Sequence, message: str = ""):
        super().__init__(message or f"{len(orders)} in-flight order(s) must be acknowledged before suspension")
        self.orders = list(orders)


class ReservedName(PolicyRejection):
    """The name pair used for anonymized accounts cannot be given to a live one."""
