"""
A line-oriented text format for IR programs.

Each line holds one instruction:

    v3, v4 <- OpName v1 v2 "payload"

Outputs come before `<-`, inputs are variables after the operation name,
and an optional trailing JSON literal is the payload. Lines are indented by
block depth when lifted; indentation, blank lines and `#` comments are
ignored when parsing.
"""

from __future__ import annotations

import json
import re

from grafter.operations import Opcode
from grafter.program import Instruction, Program, Variable

INDENT = "  "

LINE_REGEX = re.compile(
    r"^(?:(?P<outputs>v\d+(?:\s*,\s*v\d+)*)\s*<-\s*)?"
    r"(?P<op>[A-Za-z]+)"
    r"(?P<inputs>(?:\s+v\d+)*)"
    r"(?:\s+(?P<payload>\S.*?))?\s*$"
)
VARIABLE_REGEX = re.compile(r"v(\d+)")


class ProgramSyntaxError(ValueError):
    """A line of program text could not be parsed."""

    def __init__(self, line_number: int, line: str, reason: str):
        super().__init__(f"line {line_number}: {reason}: {line.strip()!r}")
        self.line_number = line_number


def lift_instruction(instr: Instruction) -> str:
    parts = []
    if instr.outputs:
        parts.append(", ".join(str(v) for v in instr.outputs) + " <-")
    parts.append(instr.op.value)
    parts.extend(str(v) for v in instr.inputs)
    if instr.payload is not None:
        parts.append(json.dumps(instr.payload))
    return " ".join(parts)


def lift_program(program: Program) -> str:
    """Render `program` as indented text, one instruction per line."""
    lines = []
    depth = 0
    for instr in program:
        if instr.is_block_end:
            depth = max(0, depth - 1)
        lines.append(INDENT * depth + lift_instruction(instr))
        if instr.is_block_begin:
            depth += 1
    return "\n".join(lines) + ("\n" if lines else "")


def _variables(text: str | None) -> tuple[Variable, ...]:
    if not text:
        return ()
    return tuple(Variable(int(n)) for n in VARIABLE_REGEX.findall(text))


def parse_instruction(line: str, line_number: int = 1) -> Instruction:
    match = LINE_REGEX.match(line.strip())
    if not match:
        raise ProgramSyntaxError(line_number, line, "not an instruction")
    try:
        op = Opcode(match.group("op"))
    except ValueError:
        raise ProgramSyntaxError(line_number, line, f"unknown operation {match.group('op')!r}") from None

    payload = None
    raw_payload = match.group("payload")
    if raw_payload is not None:
        try:
            payload = json.loads(raw_payload)
        except json.JSONDecodeError as e:
            raise ProgramSyntaxError(line_number, line, f"bad payload ({e.msg})") from None
        if isinstance(payload, (list, dict)):
            raise ProgramSyntaxError(line_number, line, "payload must be a scalar literal")

    return Instruction(op, _variables(match.group("inputs")), _variables(match.group("outputs")), payload)


def parse_program(text: str) -> Program:
    """
    Parse program text produced by `lift_program` (or written by hand).

    Raises:
        ProgramSyntaxError: on the first line that is not a valid instruction.
    """
    instructions = []
    for line_number, line in enumerate(text.splitlines(), start=1):
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        instructions.append(parse_instruction(stripped, line_number))
    return Program(tuple(instructions))
