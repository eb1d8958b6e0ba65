"""
grafter: structural pattern matching and rewriting over a block-structured
fuzzer IR.

Programs are immutable; every rewrite produces a new `Program` that keeps
def-before-use order and balanced blocks.
"""

__version__ = "0.1.0"
