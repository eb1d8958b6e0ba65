"""
Block scanning over the linear instruction stream.

`scan_block` finds the closer matching a block opener and splits the block's
interior into the instructions sitting directly inside it (visible to
pattern predicates) and everything nested deeper (carried along verbatim
when the block is relocated).
"""

from __future__ import annotations

from dataclasses import dataclass

from grafter.errors import MalformedProgram
from grafter.operations import Opcode
from grafter.program import Instruction, Program


@dataclass(frozen=True)
class BlockScan:
    """Result of scanning one block."""

    start: int
    end: int
    top_level: tuple[Instruction, ...]

    def interior(self, program: Program) -> tuple[Instruction, ...]:
        """Every instruction strictly between the opener and the closer."""
        return program.instructions[self.start + 1 : self.end]

    def contains_op(self, op: Opcode) -> bool:
        return any(instr.op is op for instr in self.top_level)


def scan_block(program: Program, start: int) -> BlockScan:
    """
    Find the closer matching the opener at `start`.

    Depth counts openers and closers of the opener's own family only. An
    interior instruction is top-level when no block of any family is open
    around it inside this one.

    Raises:
        ValueError: if the instruction at `start` does not open a block.
        MalformedProgram: if the program ends before the block is closed or a
            closer appears with no block open.
    """
    opener = program[start].op
    if not opener.is_block_begin:
        raise ValueError(f"instruction {start} ({opener.value}) does not open a block")
    closer = opener.closer

    depth = 1
    nesting = 0
    top_level: list[Instruction] = []
    for index in range(start + 1, len(program)):
        instr = program[index]
        if instr.op is opener:
            depth += 1
        elif instr.op is closer:
            depth -= 1
            if depth == 0:
                if nesting != 0:
                    raise MalformedProgram(
                        f"block opened at {start} closes at {index} with {nesting} inner block(s) open"
                    )
                return BlockScan(start, index, tuple(top_level))

        if instr.is_block_end:
            nesting -= 1
            if nesting < 0:
                raise MalformedProgram(f"unmatched {instr.op.value} at {index}")
            continue

        if nesting == 0:
            top_level.append(instr)
        if instr.is_block_begin:
            nesting += 1

    raise MalformedProgram(f"no {closer.value} matches the {opener.value} at {start}")


def enclosing_block(program: Program, index: int) -> int | None:
    """Index of the innermost opener whose block contains `index`, or None at top level."""
    depth = 0
    for j in range(index - 1, -1, -1):
        instr = program[j]
        if instr.is_block_end:
            depth += 1
        elif instr.is_block_begin:
            if depth == 0:
                return j
            depth -= 1
    return None
