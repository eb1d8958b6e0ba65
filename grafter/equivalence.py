"""
Exact-match equivalence rewrites.

These rewrites compare text, not structure: a string literal (or the whole
program, rendered through an external lifter) is normalized and compared for
equality with a known target; on a match it is swapped for a fixed
alternative. Any change to how the lifter renders programs breaks a whole-program
match.
"""

from __future__ import annotations

import logging
import random
import re
from typing import Callable

from grafter.errors import ExternalFailure
from grafter.mutator import InstructionMutator, ProgramMutator
from grafter.operations import Opcode
from grafter.predicates import Candidate
from grafter.program import Program
from grafter.splicer import splice

logger = logging.getLogger(__name__)

Lifter = Callable[[Program], str]
Parser = Callable[[str], Program]

LINE_COMMENT_REGEX = re.compile(r"//.*")
BLOCK_COMMENT_REGEX = re.compile(r"/\*[^*]*\*+(?:[^/*][^*]*\*+)*/")


def normalize_source(code: str) -> str:
    """Drop // and /* */ comments and collapse every whitespace run to one space."""
    code = LINE_COMMENT_REGEX.sub("", code)
    code = BLOCK_COMMENT_REGEX.sub("", code)
    return " ".join(code.split())


class LiteralEquivalenceRewrite(InstructionMutator):
    """
    Replace a string literal whose normalized text equals TARGET with
    REPLACEMENT, keeping the literal's output variable.
    """

    TARGET: str = ""
    REPLACEMENT: str = ""

    def __init__(
        self,
        target: str | None = None,
        replacement: str | None = None,
        normalizer: Callable[[str], str] = normalize_source,
    ):
        self.target = self.TARGET if target is None else target
        self.replacement = self.REPLACEMENT if replacement is None else replacement
        self.normalizer = normalizer
        self._normalized_target = normalizer(self.target)

    def matches(self, candidate: Candidate) -> bool:
        instr = candidate.instruction
        if instr.op is not Opcode.LOAD_STRING or not isinstance(instr.payload, str):
            return False
        return self.normalizer(instr.payload) == self._normalized_target

    def rewrite(self, program: Program, index: int, rng: random.Random) -> Program | None:
        original = program[index]
        return splice(program, index, index, [original.with_payload(self.replacement)])


class ProgramEquivalenceRewrite(ProgramMutator):
    """
    Replace a whole program whose lifted, normalized text equals TARGET with
    the program parsed from REPLACEMENT.

    The lifter and parser are external collaborators; any exception they
    raise makes the rewrite a no-op.
    """

    TARGET: str = ""
    REPLACEMENT: str = ""

    def __init__(
        self,
        lifter: Lifter,
        parser: Parser,
        target: str | None = None,
        replacement: str | None = None,
        normalizer: Callable[[str], str] = normalize_source,
    ):
        self.lifter = lifter
        self.parser = parser
        self.target = self.TARGET if target is None else target
        self.replacement = self.REPLACEMENT if replacement is None else replacement
        self.normalizer = normalizer
        self._normalized_target = normalizer(self.target)

    def _lift(self, program: Program) -> str:
        try:
            return self.lifter(program)
        except Exception as e:
            raise ExternalFailure(f"lifting failed: {type(e).__name__}: {e}") from e

    def _parse(self, code: str) -> Program:
        try:
            return self.parser(code)
        except Exception as e:
            raise ExternalFailure(f"parsing replacement failed: {type(e).__name__}: {e}") from e

    def can_mutate(self, program: Program) -> bool:
        try:
            lifted = self._lift(program)
        except ExternalFailure as e:
            logger.warning("[!] %s: %s", self.name, e)
            return False
        return self.normalizer(lifted) == self._normalized_target

    def rewrite(self, program: Program, rng: random.Random) -> Program | None:
        new_program = self._parse(self.replacement)
        if not new_program.is_valid():
            logger.error("[!] %s: parsed replacement is not a well-formed program", self.name)
            return None
        return new_program
