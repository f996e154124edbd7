"""
Command results returned to the presentation layer.

The facade never lets a ``PortalKernelError`` escape: each command resolves
to a ``CommandResult`` whose ``error_code`` carries the exception's ``code``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar

from portal_kernel.exceptions import PortalKernelError

T = TypeVar("T")


@dataclass(frozen=True)
class CommandResult(Generic[T]):
    """Outcome of one command."""

    success: bool
    value: T | None = None
    error_code: str | None = None
    reason: str = ""
    error: PortalKernelError | None = None

    @classmethod
    def ok(cls, value: T | None = None, reason: str = "") -> CommandResult[T]:
        return cls(success=True, value=value, reason=reason)

    @classmethod
    def failed(cls, error: PortalKernelError) -> CommandResult[T]:
        return cls(
            success=False,
            error_code=error.code,
            reason=str(error),
            error=error,
        )

    def unwrap(self) -> T:
        """Return the value, re-raising the error of a failed result."""
        if not self.success:
            assert self.error is not None
            raise self.error
        return self.value  # type: ignore[return-value]
