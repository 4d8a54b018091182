from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, Literal, Optional, TypeVar

T = TypeVar("T")

LookupStatus = Literal["computed", "not_found", "failed"]


@dataclass(frozen=True)
class Lookup(Generic[T]):
    """
    Outcome of a lazy lookup.

    - computed: the value was determined (it may still be False/0).
    - not_found: the thing looked up confirmedly does not exist. Stable.
    - failed: the lookup could not be completed; worth retrying later.
    """

    status: LookupStatus
    result: Optional[T] = None
    reason: Optional[str] = None

    @classmethod
    def computed(cls, value: T) -> "Lookup[T]":
        return cls(status="computed", result=value)

    @classmethod
    def not_found(cls, reason: str) -> "Lookup[T]":
        return cls(status="not_found", reason=reason)

    @classmethod
    def failed(cls, reason: str) -> "Lookup[T]":
        return cls(status="failed", reason=reason)

    @property
    def value(self) -> Optional[T]:
        """The computed value, or None (unknown) for every other outcome."""
        return self.result if self.status == "computed" else None
