"""
Atomic replacement of an instruction range.

`splice` validates a replacement against the surrounding program before
building anything, so a rejected splice leaves no trace: the caller keeps
the original (immutable) program.
"""

from __future__ import annotations

import logging
from typing import Sequence

from grafter.errors import MalformedProgram, ScopeViolation
from grafter.operations import Opcode
from grafter.program import Instruction, Program, Variable, check_nesting

logger = logging.getLogger(__name__)


def splice(
    program: Program,
    start: int,
    end: int,
    replacement: Sequence[Instruction],
) -> Program:
    """
    Replace instructions `start` through `end` (inclusive) with `replacement`.

    Validation, all before any new program is built:
      1. every input of the replacement is defined before `start` or earlier
         in the replacement;
      2. every variable defined inside the range and still read after `end`
         is defined by the replacement too;
      3. the replacement defines nothing that lives outside the range, and
         its blocks are balanced.

    Raises:
        IndexError: if the range is empty or outside the program.
        ScopeViolation: if any check fails.
    """
    if not 0 <= start <= end < len(program):
        raise IndexError(f"invalid splice range [{start}, {end}] for program of {len(program)}")

    before = program.instructions[:start]
    removed = program.instructions[start : end + 1]
    after = program.instructions[end + 1 :]

    outside: set[Variable] = {v for instr in before + after for v in instr.outputs}
    visible: set[Variable] = {v for instr in before for v in instr.outputs}

    for position, instr in enumerate(replacement):
        for v in instr.inputs:
            if v not in visible:
                raise ScopeViolation(f"replacement instruction {position} reads undefined {v}")
        for v in instr.outputs:
            if v in outside or v in visible:
                raise ScopeViolation(f"replacement instruction {position} redefines {v}")
            visible.add(v)

    removed_defs = {v for instr in removed for v in instr.outputs}
    still_read = {v for instr in after for v in instr.inputs if v in removed_defs}
    lost = still_read - visible
    if lost:
        names = ", ".join(str(v) for v in sorted(lost))
        raise ScopeViolation(f"variables {names} are read after the range but no longer defined")

    _check_structure(program, start, removed, replacement, after)

    logger.debug(
        "Splicing %d instruction(s) over range [%d, %d]", len(replacement), start, end
    )
    return Program(before + tuple(replacement) + after)


def _block_markers(instructions: Sequence[Instruction]) -> tuple[Opcode, ...]:
    return tuple(instr.op for instr in instructions if instr.is_block_begin or instr.is_block_end)


def _check_structure(
    program: Program,
    start: int,
    removed: Sequence[Instruction],
    replacement: Sequence[Instruction],
    after: Sequence[Instruction],
) -> None:
    """
    A balanced range must be replaced by a balanced sequence. A range that
    cuts through a block (e.g. just a closer) must be replaced by a sequence
    with the very same block markers, in order, and may not put anything
    between a try closer and a catch opener.
    """
    preceding = program[start - 1] if start else None
    try:
        check_nesting(removed, preceding)
    except MalformedProgram:
        if _block_markers(replacement) != _block_markers(removed):
            raise ScopeViolation("replacement changes the block structure of a partial range")
        try:
            check_nesting(replacement, preceding, balanced=False)
        except MalformedProgram as e:
            raise ScopeViolation(f"replacement detaches a catch region: {e}") from e
    else:
        try:
            check_nesting(replacement, preceding)
        except MalformedProgram as e:
            raise ScopeViolation(f"replacement is not block-balanced: {e}") from e

    if after and after[0].op is Opcode.BEGIN_CATCH:
        last = replacement[-1] if replacement else preceding
        if last is None or last.op is not Opcode.END_TRY:
            raise ScopeViolation("splice would detach a catch region from its try region")
