"""
This module contains the registry of rewrites and the logic that applies
them to programs.

`MutationEngine` knows every available mutator, can enumerate the
`(mutator, index)` pairs that would apply to a program, and applies one of
them, chosen at random or by name.
"""

from __future__ import annotations

import logging
import random

from grafter.equivalence import Lifter, Parser
from grafter.mutator import RANDOM, InstructionMutator, ProgramMutator
from grafter.mutators import (
    ComputedKeyWrapper,
    CrossRealmCallProtector,
    EvalInWorkerRewrite,
    OomEvalIifeRewrite,
    RevokeCallRemover,
    StencilLazinessRewrite,
)
from grafter.program import Program
from grafter.types import MutationResult

logger = logging.getLogger(__name__)

Mutator = InstructionMutator | ProgramMutator


class MutationEngine:
    """
    A registry of rewrites for IR programs.

    Program-level rewrites that need to render or parse source text are only
    registered when both a `lifter` and a `parser` are supplied.
    """

    def __init__(self, lifter: Lifter | None = None, parser: Parser | None = None) -> None:
        self.instruction_mutators: list[InstructionMutator] = [
            ComputedKeyWrapper(),
            CrossRealmCallProtector(),
            EvalInWorkerRewrite(),
            OomEvalIifeRewrite(),
            RevokeCallRemover(),
        ]
        self.program_mutators: list[ProgramMutator] = []
        if lifter is not None and parser is not None:
            self.program_mutators.append(StencilLazinessRewrite(lifter, parser))

    @property
    def mutators(self) -> list[Mutator]:
        return [*self.instruction_mutators, *self.program_mutators]

    def get(self, name: str) -> Mutator:
        """Look up a registered mutator by class name."""
        for mutator in self.mutators:
            if mutator.name == name:
                return mutator
        raise KeyError(f"no mutator named {name!r}")

    def candidates(self, program: Program) -> list[tuple[Mutator, int | None]]:
        """
        Every place a registered mutator would apply.

        Instruction mutators yield one pair per matching index; program
        mutators yield `(mutator, None)`.
        """
        found: list[tuple[Mutator, int | None]] = []
        for mutator in self.instruction_mutators:
            for index in range(len(program)):
                if mutator.can_mutate(program, index):
                    found.append((mutator, index))
        for program_mutator in self.program_mutators:
            if program_mutator.can_mutate(program):
                found.append((program_mutator, None))
        return found

    def apply(
        self,
        program: Program,
        name: str,
        index: int | None = None,
        rng: random.Random | None = None,
    ) -> MutationResult:
        """
        Apply the mutator called `name`.

        Instruction mutators need an `index`; without one the first matching
        index is used.

        Raises:
            KeyError: if no mutator is registered under `name`.
        """
        mutator = self.get(name)
        if isinstance(mutator, ProgramMutator):
            return mutator.mutate(program, rng)
        if index is None:
            index = next(
                (i for i in range(len(program)) if mutator.can_mutate(program, i)), None
            )
            if index is None:
                logger.info("[!] %s does not apply anywhere in the program", name)
                return MutationResult(program, applied=False, mutator=name)
        return mutator.mutate(program, index, rng)

    def mutate(
        self,
        program: Program,
        seed: int | None = None,
        rng: random.Random | None = None,
    ) -> MutationResult:
        """
        Apply one randomly chosen applicable rewrite.

        Args:
            program: The program to rewrite.
            seed: An optional integer seeding a private random source, for a
                  reproducible choice (and reproducible synthetic names).
            rng: An explicit random source; ignored when `seed` is given.

        Return:
            The result of the chosen rewrite, or an unapplied result if
            nothing matches.
        """
        if seed is not None:
            rng = random.Random(seed)
        rng = rng or RANDOM

        found = self.candidates(program)
        if not found:
            logger.debug("No applicable rewrite in a program of %d instructions", len(program))
            return MutationResult(program, applied=False)

        mutator, index = rng.choice(found)
        if isinstance(mutator, ProgramMutator):
            return mutator.mutate(program, rng)
        return mutator.mutate(program, index, rng)
