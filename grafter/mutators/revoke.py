"""
Revoke-call removal.

Dropping `proxy.revoke()` keeps a revocable proxy alive for the rest of the
program, so later uses of it no longer throw.
"""

from __future__ import annotations

import logging
import random

from grafter.mutator import InstructionMutator
from grafter.predicates import Candidate, all_of, method_named, min_inputs
from grafter.program import Program
from grafter.splicer import splice

logger = logging.getLogger(__name__)


class RevokeCallRemover(InstructionMutator):
    """Remove a `revoke` method call whose result nobody reads."""

    shape = staticmethod(all_of(method_named("revoke"), min_inputs(1)))

    def matches(self, candidate: Candidate) -> bool:
        if not self.shape(candidate) or len(candidate.program) < 2:
            return False
        outputs = set(candidate.instruction.outputs)
        if not outputs:
            return True
        later = candidate.program.instructions[candidate.index + 1 :]
        return not any(v in outputs for instr in later for v in instr.inputs)

    def rewrite(self, program: Program, index: int, rng: random.Random) -> Program | None:
        logger.debug("Dropping revoke() on %s", program[index].inputs[0])
        return splice(program, index, index, ())
