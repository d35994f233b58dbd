"""
Explicit success/failure result for high-level operations.

``FlowKms`` operations return ``Ok(value)`` or ``Err(error)`` instead of
raising. Callers branch on ``result.ok`` before touching the value:

    result = await flow.get_account("f8d6e0586b0a20c7")
    if not result.ok:
        log.error("lookup failed: %s", result.error)
        return
    account = result.value

``Err.error`` is always an exception instance. For network failures it is
the object the transport or KMS client raised, untouched.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, NoReturn, TypeVar, Union

T = TypeVar("T")


@dataclass(frozen=True)
class Ok(Generic[T]):
    """Successful outcome carrying a value."""

    value: T

    @property
    def ok(self) -> bool:
        return True

    def unwrap(self) -> T:
        return self.value


@dataclass(frozen=True)
class Err:
    """Failed outcome carrying the exception that describes it."""

    error: Exception

    @property
    def ok(self) -> bool:
        return False

    def unwrap(self) -> NoReturn:
        """Raise the carried error."""
        raise self.error


Result = Union[Ok[T], Err]
