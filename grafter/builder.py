"""
The rewrite builder: assembles replacement instruction sequences.

A `RewriteBuilder` is created for one mutation attempt at a given insertion
point of a program. It knows which variables are visible there (everything
defined earlier in program order) and tracks what the sequence it builds
defines, so every instruction it accepts is guaranteed to have its inputs
defined before it. The finished tuple is handed to `grafter.splicer.splice`.
"""

from __future__ import annotations

import logging
import random
import re
from typing import Callable, Iterable, Sequence

from grafter.errors import MalformedProgram, ScopeViolation
from grafter.operations import Opcode
from grafter.program import Instruction, Payload, Program, Variable, check_nesting

logger = logging.getLogger(__name__)

NAME_SUFFIX_BOUND = 1000
MAX_NAME_ATTEMPTS = 8

_IDENTIFIER_REGEX = re.compile(r"[A-Za-z_$][A-Za-z0-9_$]*")


class RewriteBuilder:
    """
    Builds a replacement sequence to be spliced in at `insertion_point`.

    The builder owns its sequence exclusively until `finish()` is called;
    afterwards it refuses further instructions.
    """

    def __init__(
        self,
        program: Program,
        insertion_point: int,
        rng: random.Random | None = None,
    ):
        if not 0 <= insertion_point <= len(program):
            raise IndexError(f"insertion point {insertion_point} outside program of {len(program)}")
        self.program = program
        self.insertion_point = insertion_point
        self.rng = rng or random.Random()
        self.code: list[Instruction] = []
        self._visible: set[Variable] = {
            v for instr in program.instructions[:insertion_point] for v in instr.outputs
        }
        self._next_number = program.next_variable_number
        self._finished = False

    # ------------------------------------------------------------------
    # Low-level emission
    # ------------------------------------------------------------------

    def is_visible(self, variable: Variable) -> bool:
        return variable in self._visible

    def fresh_variable(self) -> Variable:
        v = Variable(self._next_number)
        self._next_number += 1
        return v

    def _append(self, instr: Instruction) -> Instruction:
        if self._finished:
            raise RuntimeError("builder already finished")
        for v in instr.inputs:
            if v not in self._visible:
                raise ScopeViolation(
                    f"{instr.op.value} needs {v}, which is not defined at the insertion point"
                )
        for v in instr.outputs:
            if v in self._visible:
                raise ScopeViolation(f"{instr.op.value} would redefine {v}")
            if v.number >= self._next_number:
                self._next_number = v.number + 1
        self.code.append(instr)
        self._visible.update(instr.outputs)
        return instr

    def adopt(self, instr: Instruction) -> Instruction:
        """Relocate a captured instruction into the sequence, keeping its variables."""
        return self._append(instr)

    def adopt_all(self, instructions: Iterable[Instruction]) -> None:
        for instr in instructions:
            self.adopt(instr)

    def emit(
        self,
        op: Opcode,
        inputs: Sequence[Variable] = (),
        payload: Payload = None,
        outputs: Sequence[Variable] | None = None,
        num_outputs: int = 0,
    ) -> Instruction:
        """Append a new instruction, allocating `num_outputs` fresh variables unless
        explicit `outputs` are given."""
        if outputs is None:
            outputs = [self.fresh_variable() for _ in range(num_outputs)]
        return self._append(Instruction(op, tuple(inputs), tuple(outputs), payload))

    # ------------------------------------------------------------------
    # Convenience emitters
    # ------------------------------------------------------------------

    def load_string(self, value: str) -> Variable:
        return self.emit(Opcode.LOAD_STRING, payload=value, num_outputs=1).output

    def load_integer(self, value: int) -> Variable:
        return self.emit(Opcode.LOAD_INTEGER, payload=value, num_outputs=1).output

    def load_undefined(self) -> Variable:
        return self.emit(Opcode.LOAD_UNDEFINED, num_outputs=1).output

    def load_literal(self, value: Payload) -> Variable:
        if value is None:
            return self.load_undefined()
        if isinstance(value, bool):
            op = Opcode.LOAD_BOOLEAN
        elif isinstance(value, int):
            op = Opcode.LOAD_INTEGER
        elif isinstance(value, float):
            op = Opcode.LOAD_FLOAT
        else:
            op = Opcode.LOAD_STRING
        return self.emit(op, payload=value, num_outputs=1).output

    def load_property(self, obj: Variable, name: str) -> Variable:
        return self.emit(Opcode.LOAD_PROPERTY, [obj], payload=name, num_outputs=1).output

    def create_array(self, elements: Sequence[Variable]) -> Variable:
        return self.emit(Opcode.CREATE_ARRAY, elements, num_outputs=1).output

    def call_function(
        self, function: Variable, args: Sequence[Variable] = (), output: Variable | None = None
    ) -> Variable:
        outputs = [output] if output is not None else None
        return self.emit(
            Opcode.CALL_FUNCTION, [function, *args], outputs=outputs, num_outputs=1
        ).output

    def call_method(
        self,
        obj: Variable,
        method: str,
        args: Sequence[Variable] = (),
        output: Variable | None = None,
        has_output: bool = True,
    ) -> Variable | None:
        if output is not None:
            instr = self.emit(Opcode.CALL_METHOD, [obj, *args], payload=method, outputs=[output])
        else:
            instr = self.emit(
                Opcode.CALL_METHOD, [obj, *args], payload=method, num_outputs=int(has_output)
            )
        return instr.outputs[0] if instr.outputs else None

    def nop(self, *inputs: Variable) -> None:
        self.emit(Opcode.NOP, inputs)

    def do_return(self, value: Variable) -> None:
        self.emit(Opcode.RETURN, [value])

    # ------------------------------------------------------------------
    # Structured rewrites
    # ------------------------------------------------------------------

    def wrap_in_function(
        self, body: Iterable[Instruction], tail: Variable | Payload = None
    ) -> Variable:
        """
        Move `body` into a fresh zero-parameter function and call it on the spot.

        The function returns `tail`: a variable visible once the body has
        been adopted, or a literal loaded inside the function. The body keeps
        its original order and variables.

        Return:
            The variable holding the call's result.
        """
        function = self.emit(Opcode.BEGIN_FUNCTION_DEFINITION, num_outputs=1).output
        self.adopt_all(body)
        if isinstance(tail, Variable):
            result = tail
        else:
            result = self.load_literal(tail)
        self.do_return(result)
        self.emit(Opcode.END_FUNCTION_DEFINITION)
        return self.call_function(function)

    def wrap_in_try_catch(
        self,
        body_builder: Callable[[RewriteBuilder], object],
        catch_builder: Callable[[RewriteBuilder, Variable], object] | None = None,
    ) -> Variable:
        """
        Emit `body_builder`'s instructions inside a try region followed by a
        catch region that swallows whatever the body throws.

        Without a `catch_builder`, the caught exception is consumed by a Nop.

        Return:
            The variable bound to the caught exception.
        """
        self.emit(Opcode.BEGIN_TRY)
        body_builder(self)
        self.emit(Opcode.END_TRY)
        exception = self.emit(Opcode.BEGIN_CATCH, num_outputs=1).output
        if catch_builder is None:
            self.nop(exception)
        else:
            catch_builder(self, exception)
        self.emit(Opcode.END_CATCH)
        return exception

    def unique_name(self, prefix: str) -> str:
        """
        Draw `<prefix>_<n>` with n below NAME_SUFFIX_BOUND, avoiding any
        identifier already mentioned in the program's payloads.

        After MAX_NAME_ATTEMPTS collisions the next free variable number is
        appended, which no existing payload can mention as a whole name.
        """
        taken = self._mentioned_names()
        name = ""
        for _ in range(MAX_NAME_ATTEMPTS):
            name = f"{prefix}_{self.rng.randrange(NAME_SUFFIX_BOUND)}"
            if name not in taken:
                return name
        fallback = f"{name}_{self._next_number}"
        while fallback in taken:
            fallback += "_"
        logger.debug("Synthetic name collisions for %r, falling back to %s", prefix, fallback)
        return fallback

    def _mentioned_names(self) -> set[str]:
        names: set[str] = set()
        for instr in list(self.program) + self.code:
            if isinstance(instr.payload, str):
                names.update(_IDENTIFIER_REGEX.findall(instr.payload))
        return names

    def synthesize_binding(
        self,
        context: Variable,
        prefix: str,
        source_template: Callable[[str], str],
    ) -> tuple[str, Variable]:
        """
        Install a named helper into another execution context and bind it.

        Emits `context.eval(<source>)` followed by a load of the new name from
        `context`. `source_template` receives the generated name and returns
        the program text defining it.

        Return:
            The generated name and the variable bound to the helper.
        """
        name = self.unique_name(prefix)
        source = self.load_string(source_template(name))
        self.call_method(context, "eval", [source])
        binding = self.load_property(context, name)
        return name, binding

    def finish(self, balanced: bool = True) -> tuple[Instruction, ...]:
        """End the attempt and return the built sequence.

        Args:
            balanced: Require the sequence to open and close its own blocks.
                Pass False when the sequence replaces part of a block (the
                splicer then checks the block markers match the range).

        Raises:
            ScopeViolation: if `balanced` and the sequence leaves a block open
                or closes one it never opened.
        """
        self._finished = True
        if balanced:
            preceding = self.program[self.insertion_point - 1] if self.insertion_point else None
            try:
                check_nesting(self.code, preceding)
            except MalformedProgram as e:
                raise ScopeViolation(f"replacement is not block-balanced: {e}") from e
        return tuple(self.code)
