"""
Def-use lookups and backward provenance tracing.

Because every variable has exactly one definition, the index is a plain
dict from variable to the position of its defining instruction. Provenance
tracing walks backwards through chains of property/element loads to find
the value an accessor chain was rooted at, e.g. the parameter `g` behind
`g.Array.prototype.sort`.
"""

from __future__ import annotations

import logging
from typing import Iterable

from grafter.errors import UnknownVariable
from grafter.operations import Opcode, PROPERTY_ACCESSES
from grafter.program import Instruction, Program, Variable
from grafter.scanner import enclosing_block, scan_block
from grafter.types import Provenance

logger = logging.getLogger(__name__)

MAX_PROVENANCE_HOPS = 5


class DefUseIndex:
    """O(1) lookup of the instruction defining each variable of a program."""

    def __init__(self, program: Program):
        self.program = program
        self._definitions: dict[Variable, int] = {}
        for index, instr in enumerate(program):
            for v in instr.outputs:
                self._definitions.setdefault(v, index)

    def definition_index(self, variable: Variable) -> int:
        try:
            return self._definitions[variable]
        except KeyError:
            raise UnknownVariable(variable) from None

    def definition_of(self, variable: Variable) -> Instruction:
        return self.program[self.definition_index(variable)]

    def enclosing_function(self, index: int) -> int | None:
        """Position of the innermost function definition containing `index`."""
        block = enclosing_block(self.program, index)
        while block is not None:
            if self.program[block].op is Opcode.BEGIN_FUNCTION_DEFINITION:
                return block
            block = enclosing_block(self.program, block)
        return None

    def parameters_of(self, function_start: int) -> tuple[Variable, ...]:
        """Parameters bound directly inside the function opened at `function_start`."""
        scan = scan_block(self.program, function_start)
        return tuple(
            instr.output
            for instr in scan.top_level
            if instr.op is Opcode.LOAD_PARAMETER and instr.has_output
        )

    def trace_provenance(
        self,
        variable: Variable,
        max_hops: int = MAX_PROVENANCE_HOPS,
        parameters: Iterable[Variable] = (),
    ) -> Provenance | None:
        """
        Follow accessor chains backwards from `variable`.

        Each hop inspects the current variable's definition: a property or
        element load moves to its base object (returning the base right away
        if it is one of `parameters`), a parameter binding ends the trace with
        that parameter, and anything else ends it with no result. Running out
        of hops also yields None.

        Raises:
            UnknownVariable: if `variable` is not defined in the program.
        """
        params = frozenset(parameters)
        current = variable
        for hop in range(max_hops):
            definition = self.definition_of(current)
            if definition.op in PROPERTY_ACCESSES:
                if not definition.inputs:
                    return None
                current = definition.inputs[0]
                if current in params:
                    return Provenance(current, hop + 1)
            elif definition.op is Opcode.LOAD_PARAMETER:
                return Provenance(current, hop)
            else:
                return None
        logger.debug("Provenance trace from %s gave up after %d hops", variable, max_hops)
        return None
