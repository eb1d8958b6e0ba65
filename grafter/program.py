"""
This module defines the program model the rewriting engine operates on.

A `Program` is an immutable, linear sequence of `Instruction`s. Blocks
(class bodies, functions, try/catch regions, computed property keys) are
delimited by matching opener/closer instructions that nest like balanced
parentheses. Variables are globally unique and assigned exactly once, so an
instruction can be moved around without renaming anything as long as its
inputs are still defined before it.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Iterator, Union

from grafter.errors import MalformedProgram, ScopeViolation
from grafter.operations import Opcode

Payload = Union[str, int, float, bool, None]


@dataclass(frozen=True, order=True)
class Variable:
    """An opaque, globally unique SSA-style variable."""

    number: int

    def __str__(self) -> str:
        return f"v{self.number}"

    def __repr__(self) -> str:
        return f"Variable({self.number})"


@dataclass(frozen=True)
class Instruction:
    """One operation with ordered inputs, ordered outputs and an optional literal."""

    op: Opcode
    inputs: tuple[Variable, ...] = ()
    outputs: tuple[Variable, ...] = ()
    payload: Payload = None

    @property
    def is_block_begin(self) -> bool:
        return self.op.is_block_begin

    @property
    def is_block_end(self) -> bool:
        return self.op.is_block_end

    @property
    def output(self) -> Variable:
        """The single output variable. Raises ValueError if there isn't exactly one."""
        if len(self.outputs) != 1:
            raise ValueError(f"{self.op.value} has {len(self.outputs)} outputs, expected 1")
        return self.outputs[0]

    @property
    def has_output(self) -> bool:
        return bool(self.outputs)

    def with_inputs(self, inputs: Iterable[Variable]) -> Instruction:
        return Instruction(self.op, tuple(inputs), self.outputs, self.payload)

    def with_payload(self, payload: Payload) -> Instruction:
        return Instruction(self.op, self.inputs, self.outputs, payload)


@dataclass(frozen=True)
class Program:
    """An immutable instruction sequence."""

    instructions: tuple[Instruction, ...] = ()

    def __len__(self) -> int:
        return len(self.instructions)

    def __iter__(self) -> Iterator[Instruction]:
        return iter(self.instructions)

    def __getitem__(self, index: int) -> Instruction:
        return self.instructions[index]

    @property
    def next_variable_number(self) -> int:
        """The smallest number larger than that of any variable in use."""
        highest = -1
        for instr in self.instructions:
            for v in instr.outputs + instr.inputs:
                highest = max(highest, v.number)
        return highest + 1

    def check(self) -> None:
        """
        Verify block well-formedness and def-before-use.

        Raises:
            MalformedProgram: if blocks are unbalanced or mis-nested, or a
                catch region does not directly follow a try region.
            ScopeViolation: if a variable is defined twice or used before
                (or without) its definition.
        """
        check_nesting(self.instructions)

        defined: set[Variable] = set()
        for index, instr in enumerate(self.instructions):
            for v in instr.inputs:
                if v not in defined:
                    raise ScopeViolation(f"{v} used at {index} before its definition")
            for v in instr.outputs:
                if v in defined:
                    raise ScopeViolation(f"{v} redefined at {index}")
                defined.add(v)

    def is_valid(self) -> bool:
        try:
            self.check()
        except (MalformedProgram, ScopeViolation):
            return False
        return True


def check_nesting(
    instructions: Iterable[Instruction],
    preceding: Instruction | None = None,
    balanced: bool = True,
) -> None:
    """Raise MalformedProgram unless the sequence's blocks are balanced.

    `preceding` is the instruction right before the sequence, if any; a
    sequence may start with a catch region only when that is a try closer.
    With `balanced=False` only the catch-after-try rule is checked, for
    sequences that cut through a block.
    """
    stack: list[Opcode] = []
    previous = preceding
    for index, instr in enumerate(instructions):
        if instr.op is Opcode.BEGIN_CATCH and (previous is None or previous.op is not Opcode.END_TRY):
            raise MalformedProgram(f"catch region at {index} does not follow a try region")
        previous = instr
        if not balanced:
            continue
        if instr.is_block_end:
            if not stack or stack[-1] is not instr.op.opener:
                raise MalformedProgram(f"unmatched {instr.op.value} at {index}")
            stack.pop()
        elif instr.is_block_begin:
            stack.append(instr.op)
    if stack:
        raise MalformedProgram(f"unclosed {stack[-1].value} block")
