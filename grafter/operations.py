"""
The closed set of IR operations.

Every instruction carries one `Opcode`. Block openers and closers come in
structural families (an opener and the single closer that matches it); all
other opcodes are leaves.
"""

from __future__ import annotations

from enum import Enum


class Opcode(Enum):
    """Operation tags. The value is the name used by the IR text format."""

    # Block openers
    BEGIN_CLASS_DEFINITION = "BeginClassDefinition"
    BEGIN_COMPUTED_PROPERTY = "BeginComputedProperty"
    BEGIN_FUNCTION_DEFINITION = "BeginFunctionDefinition"
    BEGIN_TRY = "BeginTry"
    BEGIN_CATCH = "BeginCatch"

    # Block closers
    END_CLASS_DEFINITION = "EndClassDefinition"
    END_COMPUTED_PROPERTY = "EndComputedProperty"
    END_FUNCTION_DEFINITION = "EndFunctionDefinition"
    END_TRY = "EndTry"
    END_CATCH = "EndCatch"

    # Leaves
    LOAD_INTEGER = "LoadInteger"
    LOAD_FLOAT = "LoadFloat"
    LOAD_STRING = "LoadString"
    LOAD_BOOLEAN = "LoadBoolean"
    LOAD_UNDEFINED = "LoadUndefined"
    LOAD_BUILTIN = "LoadBuiltin"
    LOAD_PARAMETER = "LoadParameter"
    LOAD_PROPERTY = "LoadProperty"
    LOAD_ELEMENT = "LoadElement"
    STORE_PROPERTY = "StoreProperty"
    CREATE_OBJECT = "CreateObject"
    CREATE_ARRAY = "CreateArray"
    CALL_FUNCTION = "CallFunction"
    CALL_METHOD = "CallMethod"
    RETURN = "Return"
    NOP = "Nop"

    @property
    def is_block_begin(self) -> bool:
        return self in BLOCK_FAMILIES

    @property
    def is_block_end(self) -> bool:
        return self in _CLOSERS

    @property
    def closer(self) -> Opcode:
        """The closer matching this opener. Raises KeyError for non-openers."""
        return BLOCK_FAMILIES[self]

    @property
    def opener(self) -> Opcode:
        """The opener matching this closer. Raises KeyError for non-closers."""
        return _CLOSERS[self]


BLOCK_FAMILIES: dict[Opcode, Opcode] = {
    Opcode.BEGIN_CLASS_DEFINITION: Opcode.END_CLASS_DEFINITION,
    Opcode.BEGIN_COMPUTED_PROPERTY: Opcode.END_COMPUTED_PROPERTY,
    Opcode.BEGIN_FUNCTION_DEFINITION: Opcode.END_FUNCTION_DEFINITION,
    Opcode.BEGIN_TRY: Opcode.END_TRY,
    Opcode.BEGIN_CATCH: Opcode.END_CATCH,
}

_CLOSERS: dict[Opcode, Opcode] = {end: begin for begin, end in BLOCK_FAMILIES.items()}

# Operations whose payload is a literal value produced as the output.
LITERAL_LOADS = frozenset(
    {
        Opcode.LOAD_INTEGER,
        Opcode.LOAD_FLOAT,
        Opcode.LOAD_STRING,
        Opcode.LOAD_BOOLEAN,
    }
)

# Accessors followed backwards by the provenance tracer (base object is input 0).
PROPERTY_ACCESSES = frozenset({Opcode.LOAD_PROPERTY, Opcode.LOAD_ELEMENT})
