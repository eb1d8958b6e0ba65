"""Shared result types for grafter.

This module holds the small frozen value types that flow between the
def-use index, the mutators and the engine.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from grafter.program import Program, Variable


@dataclass(frozen=True)
class Provenance:
    """A variable traced as the likely origin of another one.

    `depth` is the number of accessor hops walked to reach it; lower means
    more confidence.
    """

    variable: Variable
    depth: int


@dataclass(frozen=True)
class MutationResult:
    """Returned by every mutator's mutate().

    `program` is the rewritten program when `applied` is True, and the
    original program, unchanged, otherwise. Truthiness follows `applied`, so
    drivers can write `if mutator.mutate(...)`.
    """

    program: Program
    applied: bool
    mutator: str | None = None

    def __bool__(self) -> bool:
        return self.applied
