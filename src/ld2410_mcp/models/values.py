"""Fixed-capacity per-gate value array.

The LD2410 reports and accepts one value per distance gate (9 gates for the
stock module). Only the first ``n`` slots are meaningful; the rest of the
backing storage is never exposed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import ClassVar, Iterable, Iterator


@dataclass(eq=False)
class ValuesArray:
    """Up to nine byte values with an explicit count."""

    CAPACITY: ClassVar[int] = 9

    values: list[int] = field(default_factory=lambda: [0] * ValuesArray.CAPACITY)
    n: int = 0

    def __post_init__(self) -> None:
        if not 0 <= self.n <= self.CAPACITY:
            raise ValueError(f"Count must be 0-{self.CAPACITY}, got {self.n}")
        if len(self.values) < self.CAPACITY:
            self.values = list(self.values) + [0] * (self.CAPACITY - len(self.values))
        elif len(self.values) > self.CAPACITY:
            raise ValueError(
                f"At most {self.CAPACITY} values allowed, got {len(self.values)}"
            )

    @classmethod
    def from_values(cls, values: Iterable[int]) -> ValuesArray:
        """Build an array holding exactly ``values``."""
        items = list(values)
        if len(items) > cls.CAPACITY:
            raise ValueError(
                f"At most {cls.CAPACITY} values allowed, got {len(items)}"
            )
        for v in items:
            if not 0 <= v <= 255:
                raise ValueError(f"Values must be 0-255, got {v}")
        return cls(values=items, n=len(items))

    def assign(self, other: ValuesArray) -> ValuesArray:
        """Copy the count and the first ``other.n`` values from ``other``."""
        if other is self:
            return self
        self.n = other.n
        for i in range(other.n):
            self.values[i] = other.values[i]
        return self

    def copy(self) -> ValuesArray:
        return ValuesArray().assign(self)

    def clear(self) -> None:
        self.n = 0

    def to_list(self) -> list[int]:
        return self.values[: self.n]

    def __len__(self) -> int:
        return self.n

    def __iter__(self) -> Iterator[int]:
        return iter(self.values[: self.n])

    def __getitem__(self, index: int) -> int:
        if index < 0:
            index += self.n
        if not 0 <= index < self.n:
            raise IndexError(f"Index {index} out of range for {self.n} values")
        return self.values[index]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ValuesArray):
            return NotImplemented
        return self.to_list() == other.to_list()

    def __repr__(self) -> str:
        return f"ValuesArray({self.to_list()})"
