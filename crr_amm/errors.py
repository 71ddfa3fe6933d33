"""AMM error classes.

Every error is fail-fast: the operation that raised it has left no partial
state behind. Errors carry a ``details`` mapping with enough structure for a
caller to correct the request (which bound, the offending value, the limit,
and by how much it was missed).
"""

from __future__ import annotations

from typing import Any


class AMMError(Exception):
    """Base error for all pool operations."""

    def __init__(self, message: str, **details: Any) -> None:
        super().__init__(message)
        self.message = message
        self.details: dict[str, Any] = details

    def __str__(self) -> str:
        if not self.details:
            return self.message
        context = ", ".join(f"{key}={value}" for key, value in self.details.items())
        return f"{self.message} ({context})"


class ValidationError(AMMError):
    """Malformed request: zero amount, zero address, zero output."""

    pass


class BoundsError(AMMError):
    """A parameter or trade size is outside its configured bounds."""

    @classmethod
    def above(cls, name: str, value: int, limit: int) -> BoundsError:
        """Value exceeds an inclusive upper bound."""
        return cls(
            f"{name} exceeds maximum",
            parameter=name,
            value=value,
            limit=limit,
            excess=value - limit,
        )

    @classmethod
    def below(cls, name: str, value: int, limit: int) -> BoundsError:
        """Value falls short of an inclusive lower bound."""
        return cls(
            f"{name} below minimum",
            parameter=name,
            value=value,
            limit=limit,
            shortfall=limit - value,
        )


class StateError(AMMError):
    """Operation not permitted in the pool's current state."""

    pass


class SlippageError(AMMError):
    """Computed output is worse than the caller's minimum."""

    pass


class ExpiredError(AMMError):
    """The caller's deadline has already passed."""

    pass


class DomainError(AMMError):
    """Mathematical input outside the function's defined domain."""

    pass


class AuthorizationError(AMMError):
    """Caller does not hold the role the operation requires."""

    pass


def check_range(name: str, value: int, minimum: int, maximum: int) -> int:
    """Return value if minimum <= value <= maximum, else raise BoundsError."""
    if value < minimum:
        raise BoundsError.below(name, value, minimum)
    if value > maximum:
        raise BoundsError.above(name, value, maximum)
    return value
