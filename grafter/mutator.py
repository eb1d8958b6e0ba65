"""
Driver-facing mutator interfaces.

An `InstructionMutator` targets one instruction: drivers ask
`can_mutate(program, index)` (pure, total) and then call
`mutate(program, index)`, which returns a `MutationResult`. A
`ProgramMutator` looks at a whole program at once.

Subclasses implement `matches()` and `rewrite()`; the base classes turn
every recoverable failure into an unapplied result so a driver can simply
move on to another candidate.
"""

from __future__ import annotations

import logging
import random

from grafter.errors import ExternalFailure, MalformedProgram, ScopeViolation
from grafter.predicates import Candidate
from grafter.program import Program
from grafter.types import MutationResult

logger = logging.getLogger(__name__)

# Module-level RNG used when the caller does not pass one.
RANDOM = random.Random()


class InstructionMutator:
    """Base class for rewrites anchored at a single instruction."""

    @property
    def name(self) -> str:
        return type(self).__name__

    def matches(self, candidate: Candidate) -> bool:
        """Pattern check for `candidate`. Must be pure and must not raise."""
        raise NotImplementedError

    def rewrite(self, program: Program, index: int, rng: random.Random) -> Program | None:
        """Build the rewritten program, or return None if the pattern turns out not to apply."""
        raise NotImplementedError

    def can_mutate(self, program: Program, index: int) -> bool:
        if not 0 <= index < len(program):
            return False
        return self.matches(Candidate(program, index))

    def mutate(
        self, program: Program, index: int, rng: random.Random | None = None
    ) -> MutationResult:
        unchanged = MutationResult(program, applied=False, mutator=self.name)
        if not self.can_mutate(program, index):
            return unchanged
        try:
            new_program = self.rewrite(program, index, rng or RANDOM)
        except ScopeViolation as e:
            logger.info("[!] %s aborted at %d: %s", self.name, index, e)
            return unchanged
        except MalformedProgram as e:
            logger.warning("[!] %s skipped malformed program at %d: %s", self.name, index, e)
            return unchanged
        except ExternalFailure as e:
            logger.warning("[!] %s: external collaborator failed: %s", self.name, e)
            return unchanged
        if new_program is None:
            return unchanged
        logger.info("    -> Applying %s at instruction %d", self.name, index)
        return MutationResult(new_program, applied=True, mutator=self.name)


class ProgramMutator:
    """Base class for rewrites that consider the program as a whole."""

    @property
    def name(self) -> str:
        return type(self).__name__

    def can_mutate(self, program: Program) -> bool:
        raise NotImplementedError

    def rewrite(self, program: Program, rng: random.Random) -> Program | None:
        raise NotImplementedError

    def mutate(self, program: Program, rng: random.Random | None = None) -> MutationResult:
        unchanged = MutationResult(program, applied=False, mutator=self.name)
        try:
            if not self.can_mutate(program):
                return unchanged
            new_program = self.rewrite(program, rng or RANDOM)
        except (ScopeViolation, MalformedProgram, ExternalFailure) as e:
            logger.warning("[!] %s not applied: %s", self.name, e)
            return unchanged
        if new_program is None:
            return unchanged
        logger.info("    -> Applying %s to the whole program", self.name)
        return MutationResult(new_program, applied=True, mutator=self.name)
