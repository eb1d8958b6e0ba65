"""
Cross-realm call protection.

Targets `.call`/`.apply` invocations of a method reached through another
global object, with a `this` value and a callback from the caller's realm:

    function outer(g) {
      g.Array.prototype.sort.call([3, 1, 2], (a, b) => a - b);
    }

The callback is replaced by a comparator defined inside the other realm via
`g.eval(...)`, and the call is wrapped in a try/catch that swallows
whatever it throws:

    function outer(g) {
      g.eval("function fuzzilli_compareFn_417(a, b) { ... }");
      try {
        g.Array.prototype.sort.call([3, 1, 2], g.fuzzilli_compareFn_417);
      } catch (e) {}
    }
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass

from grafter.builder import RewriteBuilder
from grafter.defuse import MAX_PROVENANCE_HOPS, DefUseIndex
from grafter.errors import MalformedProgram, UnknownVariable
from grafter.mutator import InstructionMutator
from grafter.operations import Opcode
from grafter.predicates import Candidate, all_of, method_named, min_inputs
from grafter.program import Program, Variable
from grafter.splicer import splice

logger = logging.getLogger(__name__)

COMPARATOR_PREFIX = "fuzzilli_compareFn"

# Definitions accepted for the `this` argument: values created in the caller's realm.
LOCAL_THIS_OPS = frozenset(
    {
        Opcode.CREATE_OBJECT,
        Opcode.CREATE_ARRAY,
        Opcode.LOAD_INTEGER,
        Opcode.LOAD_FLOAT,
        Opcode.LOAD_STRING,
    }
)


def comparator_source(name: str) -> str:
    return (
        f"function {name}(a, b) {{ try {{ return a < b ? -1 : (a > b ? 1 : 0); }} "
        f"catch {{ return 0; }} }}"
    )


@dataclass(frozen=True)
class _CallSite:
    method: Variable
    this: Variable
    arguments: tuple[Variable, ...]
    callback_position: int
    realm: Variable


class CrossRealmCallProtector(InstructionMutator):
    """Swap a local callback for one defined in the callee's realm and guard the call."""

    shape = staticmethod(all_of(method_named("call", "apply"), min_inputs(3)))

    def __init__(self, max_hops: int = MAX_PROVENANCE_HOPS):
        self.max_hops = max_hops

    def _call_site(self, program: Program, index: int) -> _CallSite | None:
        instr = program[index]
        method, this, *arguments = instr.inputs
        defuse = DefUseIndex(program)

        if defuse.definition_of(this).op not in LOCAL_THIS_OPS:
            logger.debug("'this' argument %s is not a local literal", this)
            return None

        position = next(
            (
                i
                for i, arg in enumerate(arguments)
                if defuse.definition_of(arg).op is Opcode.BEGIN_FUNCTION_DEFINITION
            ),
            None,
        )
        if position is None:
            logger.debug("No function argument passed to %s at %d", instr.payload, index)
            return None

        function_start = defuse.enclosing_function(index)
        if function_start is None:
            return None
        parameters = defuse.parameters_of(function_start)
        provenance = defuse.trace_provenance(method, self.max_hops, parameters)
        if provenance is None or provenance.variable not in parameters:
            logger.debug("Could not trace %s back to a parameter", method)
            return None

        return _CallSite(method, this, tuple(arguments), position, provenance.variable)

    def matches(self, candidate: Candidate) -> bool:
        if not self.shape(candidate):
            return False
        try:
            return self._call_site(candidate.program, candidate.index) is not None
        except (UnknownVariable, MalformedProgram):
            return False

    def rewrite(self, program: Program, index: int, rng: random.Random) -> Program | None:
        site = self._call_site(program, index)
        if site is None:
            return None
        original = program[index]

        b = RewriteBuilder(program, index, rng)
        name, comparator = b.synthesize_binding(site.realm, COMPARATOR_PREFIX, comparator_source)
        logger.debug("Installing %s in realm %s", name, site.realm)

        arguments = list(site.arguments)
        arguments[site.callback_position] = comparator
        if original.payload == "apply":
            arguments = [b.create_array(arguments)]

        def protected_call(builder: RewriteBuilder) -> None:
            builder.call_method(
                site.method,
                original.payload,
                [site.this, *arguments],
                output=original.outputs[0] if original.outputs else None,
                has_output=False,
            )

        b.wrap_in_try_catch(protected_call)
        return splice(program, index, index, b.finish())
