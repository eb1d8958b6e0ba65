"""
Computed-key wrapper.

Targets a static computed class property whose key expression defines both
a class and a function, e.g.

    class A {
      static #x = 42;
      static [(class {}, captured = () => A.#x)];
    }

and moves the key's contents into an immediately invoked function so the
key becomes a plain call result:

    class A {
      static #x = 42;
      static [(() => { class Inner {}; captured = () => A.#x; return "computedKey"; })()];
    }
"""

from __future__ import annotations

import logging
import random

from grafter.builder import RewriteBuilder
from grafter.mutator import InstructionMutator
from grafter.operations import Opcode
from grafter.predicates import Candidate, all_of, block_contains, op_is, preceded_by
from grafter.program import Program
from grafter.scanner import scan_block
from grafter.splicer import splice

logger = logging.getLogger(__name__)

COMPUTED_KEY_VALUE = "computedKey"


class ComputedKeyWrapper(InstructionMutator):
    """Wrap a class-and-function-defining computed key in an IIFE."""

    pattern = staticmethod(
        all_of(
            op_is(Opcode.BEGIN_COMPUTED_PROPERTY),
            preceded_by(Opcode.BEGIN_CLASS_DEFINITION, Opcode.LOAD_UNDEFINED),
            block_contains(Opcode.BEGIN_CLASS_DEFINITION, Opcode.BEGIN_FUNCTION_DEFINITION),
        )
    )

    def matches(self, candidate: Candidate) -> bool:
        return self.pattern(candidate)

    def rewrite(self, program: Program, index: int, rng: random.Random) -> Program | None:
        scan = scan_block(program, index)
        logger.debug("Wrapping computed key [%d, %d] in an IIFE", scan.start, scan.end)

        b = RewriteBuilder(program, index, rng)
        b.adopt(program[scan.start])
        key = b.wrap_in_function(scan.interior(program), COMPUTED_KEY_VALUE)
        b.adopt(program[scan.end].with_inputs([key]))
        return splice(program, scan.start, scan.end, b.finish())
