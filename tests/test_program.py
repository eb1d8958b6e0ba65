#!/usr/bin/env python3
"""
Tests for the program model (grafter/program.py and grafter/operations.py).
"""

import unittest
from textwrap import dedent

from grafter.errors import MalformedProgram, ScopeViolation
from grafter.operations import BLOCK_FAMILIES, Opcode
from grafter.program import Instruction, Program, Variable, check_nesting
from grafter.text import parse_program


class TestOpcode(unittest.TestCase):
    """Tests for opcode families."""

    def test_every_opener_has_one_closer(self):
        """Test that openers and closers map to each other."""
        for opener, closer in BLOCK_FAMILIES.items():
            self.assertTrue(opener.is_block_begin)
            self.assertTrue(closer.is_block_end)
            self.assertIs(opener.closer, closer)
            self.assertIs(closer.opener, opener)

    def test_leaves_are_not_blocks(self):
        """Test that leaf opcodes neither open nor close blocks."""
        for op in (Opcode.LOAD_STRING, Opcode.CALL_METHOD, Opcode.NOP):
            self.assertFalse(op.is_block_begin)
            self.assertFalse(op.is_block_end)

    def test_closer_of_leaf_raises(self):
        with self.assertRaises(KeyError):
            Opcode.NOP.closer


class TestInstruction(unittest.TestCase):
    """Tests for Instruction helpers."""

    def test_output_requires_exactly_one(self):
        """Test that .output raises unless there is a single output."""
        instr = Instruction(Opcode.LOAD_INTEGER, outputs=(Variable(0),), payload=1)
        self.assertEqual(instr.output, Variable(0))
        with self.assertRaises(ValueError):
            Instruction(Opcode.NOP).output

    def test_with_inputs_keeps_everything_else(self):
        instr = Instruction(Opcode.CALL_METHOD, (Variable(0),), (Variable(1),), "f")
        changed = instr.with_inputs([Variable(2)])
        self.assertEqual(changed.inputs, (Variable(2),))
        self.assertEqual(changed.outputs, instr.outputs)
        self.assertEqual(changed.payload, "f")

    def test_instructions_are_immutable(self):
        instr = Instruction(Opcode.NOP)
        with self.assertRaises(AttributeError):
            instr.payload = "x"

    def test_variable_rendering(self):
        self.assertEqual(str(Variable(7)), "v7")
        self.assertEqual(repr(Variable(7)), "Variable(7)")


class TestProgramCheck(unittest.TestCase):
    """Tests for Program.check() and check_nesting()."""

    def test_well_formed_program_passes(self):
        """Test that a nested, def-before-use program is valid."""
        program = parse_program(
            dedent("""
                v0 <- BeginFunctionDefinition
                  v1 <- LoadParameter 0
                  BeginTry
                    v2 <- CallMethod v1 "go"
                  EndTry
                  v3 <- BeginCatch
                    Nop v3
                  EndCatch
                  Return v2
                EndFunctionDefinition
            """)
        )
        program.check()
        self.assertTrue(program.is_valid())

    def test_unclosed_block_is_malformed(self):
        program = parse_program("v0 <- BeginFunctionDefinition\n")
        with self.assertRaises(MalformedProgram):
            program.check()

    def test_misnested_blocks_are_malformed(self):
        """Test that closing an outer block before an inner one is rejected."""
        program = parse_program(
            dedent("""
                v0 <- BeginClassDefinition
                v1 <- BeginFunctionDefinition
                EndClassDefinition
                EndFunctionDefinition
            """)
        )
        with self.assertRaises(MalformedProgram):
            program.check()

    def test_catch_must_follow_try(self):
        """Test that a catch region detached from a try region is rejected."""
        program = parse_program(
            dedent("""
                BeginTry
                EndTry
                v0 <- LoadInteger 1
                v1 <- BeginCatch
                EndCatch
            """)
        )
        with self.assertRaises(MalformedProgram):
            program.check()

    def test_use_before_definition_is_a_scope_violation(self):
        program = parse_program("Nop v0\nv0 <- LoadInteger 1\n")
        with self.assertRaises(ScopeViolation):
            program.check()
        self.assertFalse(program.is_valid())

    def test_double_definition_is_a_scope_violation(self):
        program = parse_program("v0 <- LoadInteger 1\nv0 <- LoadInteger 2\n")
        with self.assertRaises(ScopeViolation):
            program.check()

    def test_check_nesting_honors_preceding_instruction(self):
        """Test that a sequence may open with a catch right after a try closer."""
        catch = [
            Instruction(Opcode.BEGIN_CATCH, outputs=(Variable(0),)),
            Instruction(Opcode.END_CATCH),
        ]
        check_nesting(catch, Instruction(Opcode.END_TRY))
        with self.assertRaises(MalformedProgram):
            check_nesting(catch)

    def test_unbalanced_check_still_enforces_catch_after_try(self):
        """Test that balanced=False skips balance but not the catch rule."""
        closer_only = [Instruction(Opcode.END_TRY), Instruction(Opcode.BEGIN_CATCH, outputs=(Variable(0),))]
        check_nesting(closer_only, balanced=False)
        detached = [Instruction(Opcode.NOP), Instruction(Opcode.BEGIN_CATCH, outputs=(Variable(0),))]
        with self.assertRaises(MalformedProgram):
            check_nesting(detached, Instruction(Opcode.END_TRY), balanced=False)


class TestProgramQueries(unittest.TestCase):
    """Tests for variable bookkeeping on Program."""

    def test_next_variable_number(self):
        program = parse_program("v3 <- LoadInteger 1\nv5 <- CallFunction v3\n")
        self.assertEqual(program.next_variable_number, 6)
        self.assertEqual(Program().next_variable_number, 0)

    def test_sequence_protocol(self):
        program = parse_program("v0 <- LoadInteger 1\nNop v0\n")
        self.assertEqual(len(program), 2)
        self.assertIs(program[1].op, Opcode.NOP)
        self.assertEqual([i.op for i in program], [Opcode.LOAD_INTEGER, Opcode.NOP])


if __name__ == "__main__":
    unittest.main()
