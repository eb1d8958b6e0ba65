"""
Exception types raised by the rewriting engine.

All of them are recoverable from the driver's point of view: a failed
attempt leaves the input program untouched and the driver may simply try
another instruction or another mutator.
"""

from __future__ import annotations


class RewriteError(Exception):
    """Base class for engine failures."""


class ScopeViolation(RewriteError):
    """An adoption or splice would reference an undefined variable, redefine
    an existing one, or break block balance."""


class MalformedProgram(RewriteError):
    """The input program is structurally broken (e.g. an unclosed block)."""


class ExternalFailure(RewriteError):
    """The lifter or parser collaborator failed."""


class UnknownVariable(RewriteError, LookupError):
    """A variable has no definition in the program. Indicates a caller bug."""

    def __init__(self, variable: object):
        super().__init__(f"{variable} has no definition in this program")
        self.variable = variable
