"""
The `grafter.mutators` package holds the library of concrete rewrites built
on the engine's builder and splicer.

Instruction-anchored rewrites (`ComputedKeyWrapper`,
`CrossRealmCallProtector`, the literal swaps and `RevokeCallRemover`) work
on any program; `StencilLazinessRewrite` needs an external lifter and parser.
"""

from grafter.mutators.computed_key import ComputedKeyWrapper
from grafter.mutators.cross_realm import CrossRealmCallProtector
from grafter.mutators.literal import EvalInWorkerRewrite, OomEvalIifeRewrite
from grafter.mutators.revoke import RevokeCallRemover
from grafter.mutators.whole_program import StencilLazinessRewrite

__all__ = [
    "ComputedKeyWrapper",
    "CrossRealmCallProtector",
    "EvalInWorkerRewrite",
    "OomEvalIifeRewrite",
    "RevokeCallRemover",
    "StencilLazinessRewrite",
]
