"""
Composable pattern predicates.

A predicate looks at one candidate instruction: its opcode, a short window
of instructions right before it, and (for block openers) the opcodes found
directly inside the block. Predicates are pure and total: they never touch
a random source and answer False instead of raising on programs that do
not fit the pattern, including structurally broken ones.
"""

from __future__ import annotations

import logging
import re
from functools import cached_property
from typing import Callable

from grafter.errors import MalformedProgram
from grafter.operations import Opcode
from grafter.program import Instruction, Program
from grafter.scanner import BlockScan, scan_block

logger = logging.getLogger(__name__)


class Candidate:
    """An instruction under consideration, with its program context."""

    def __init__(self, program: Program, index: int):
        self.program = program
        self.index = index

    @property
    def instruction(self) -> Instruction:
        return self.program[self.index]

    def preceding(self, count: int) -> tuple[Instruction, ...]:
        """The `count` instructions immediately before the candidate, oldest first."""
        if count > self.index:
            return ()
        return self.program.instructions[self.index - count : self.index]

    @cached_property
    def scan(self) -> BlockScan | None:
        """The candidate's block, or None if it opens none or the block is broken."""
        if not self.instruction.is_block_begin:
            return None
        try:
            return scan_block(self.program, self.index)
        except MalformedProgram as e:
            logger.warning("[!] Skipping malformed block at %d: %s", self.index, e)
            return None


Predicate = Callable[[Candidate], bool]


def op_is(*ops: Opcode) -> Predicate:
    wanted = frozenset(ops)

    def check(candidate: Candidate) -> bool:
        return candidate.instruction.op in wanted

    return check


def preceded_by(*ops: Opcode) -> Predicate:
    """Match when the instructions right before the candidate have exactly these opcodes."""

    def check(candidate: Candidate) -> bool:
        window = candidate.preceding(len(ops))
        if len(window) != len(ops):
            return False
        return all(instr.op is op for instr, op in zip(window, ops))

    return check


def block_contains(*ops: Opcode) -> Predicate:
    """Match when each opcode occurs at least once directly inside the candidate's block."""

    def check(candidate: Candidate) -> bool:
        scan = candidate.scan
        if scan is None:
            return False
        return all(scan.contains_op(op) for op in ops)

    return check


def method_named(*names: str) -> Predicate:
    wanted = frozenset(names)

    def check(candidate: Candidate) -> bool:
        instr = candidate.instruction
        return instr.op is Opcode.CALL_METHOD and instr.payload in wanted

    return check


def min_inputs(count: int) -> Predicate:
    def check(candidate: Candidate) -> bool:
        return len(candidate.instruction.inputs) >= count

    return check


def payload_matches(test: Callable[[object], bool] | str | re.Pattern) -> Predicate:
    """Match the candidate's payload against a callable, an exact string, or a regex."""

    def check(candidate: Candidate) -> bool:
        payload = candidate.instruction.payload
        if isinstance(test, re.Pattern):
            return isinstance(payload, str) and test.fullmatch(payload) is not None
        if isinstance(test, str):
            return payload == test
        return bool(test(payload))

    return check


def all_of(*predicates: Predicate) -> Predicate:
    """Conjunction, evaluated left to right with short-circuiting."""

    def check(candidate: Candidate) -> bool:
        return all(predicate(candidate) for predicate in predicates)

    return check
