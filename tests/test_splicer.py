#!/usr/bin/env python3
"""
Tests for range replacement (grafter/splicer.py).
"""

import unittest
from textwrap import dedent

from grafter.errors import ScopeViolation
from grafter.operations import Opcode
from grafter.program import Instruction, Variable
from grafter.splicer import splice
from grafter.text import lift_program, parse_program

PROGRAM = parse_program(
    dedent("""
        v0 <- LoadInteger 1
        v1 <- LoadInteger 2
        v2 <- CallFunction v0 v1
        Nop v2
    """)
)


def load(number, value):
    return Instruction(Opcode.LOAD_INTEGER, outputs=(Variable(number),), payload=value)


class TestSpliceValidation(unittest.TestCase):
    """Tests for the checks splice performs before building."""

    def test_replaces_range(self):
        """Test that the range is swapped and the rest is untouched."""
        result = splice(PROGRAM, 1, 1, [load(1, 42)])
        self.assertEqual(len(result), 4)
        self.assertEqual(result[1].payload, 42)
        self.assertEqual(result[0], PROGRAM[0])
        self.assertEqual(result[2:], PROGRAM.instructions[2:])
        self.assertTrue(result.is_valid())

    def test_original_program_is_untouched(self):
        before = lift_program(PROGRAM)
        splice(PROGRAM, 1, 1, [load(1, 42)])
        self.assertEqual(lift_program(PROGRAM), before)

    def test_invalid_ranges_raise_index_error(self):
        for start, end in [(2, 1), (-1, 0), (0, 4)]:
            with self.subTest(start=start, end=end):
                with self.assertRaises(IndexError):
                    splice(PROGRAM, start, end, [])

    def test_undefined_input_is_rejected(self):
        """Test that the replacement may only read earlier definitions."""
        bad = Instruction(Opcode.NOP, inputs=(Variable(2),))
        with self.assertRaises(ScopeViolation):
            splice(PROGRAM, 1, 1, [bad, load(1, 2)])

    def test_lost_definition_is_rejected(self):
        """Test that removing a definition still read later is rejected."""
        with self.assertRaises(ScopeViolation) as ctx:
            splice(PROGRAM, 1, 1, [load(5, 2)])
        self.assertIn("v1", str(ctx.exception))

    def test_redefining_an_outside_variable_is_rejected(self):
        with self.assertRaises(ScopeViolation):
            splice(PROGRAM, 1, 1, [load(1, 2), load(0, 3)])

    def test_unbalanced_replacement_is_rejected(self):
        with self.assertRaises(ScopeViolation):
            splice(PROGRAM, 3, 3, [Instruction(Opcode.BEGIN_TRY)])

    def test_empty_replacement_removes_range(self):
        result = splice(PROGRAM, 3, 3, [])
        self.assertEqual(len(result), 3)
        self.assertTrue(result.is_valid())


class TestSpliceStructure(unittest.TestCase):
    """Tests for block structure around the spliced range."""

    def setUp(self):
        self.program = parse_program(
            dedent("""
                v0 <- LoadInteger 1
                BeginTry
                  v1 <- CallFunction v0
                EndTry
                v2 <- BeginCatch
                  Nop v2
                EndCatch
            """)
        )

    def test_partial_range_keeps_block_markers(self):
        """Test that a range cutting a block must keep the same markers."""
        replacement = [
            Instruction(Opcode.CALL_FUNCTION, (Variable(0),), (Variable(1),)),
            Instruction(Opcode.END_TRY),
        ]
        result = splice(self.program, 2, 3, replacement)
        self.assertTrue(result.is_valid())
        with self.assertRaises(ScopeViolation):
            splice(self.program, 2, 3, replacement[:1])

    def test_catch_cannot_be_detached_from_try(self):
        """Test that a splice may not put anything between a try and its catch."""
        replacement = [Instruction(Opcode.END_TRY), Instruction(Opcode.NOP, (Variable(0),))]
        with self.assertRaises(ScopeViolation):
            splice(self.program, 3, 3, replacement)

    def test_partial_range_cannot_push_catch_away_from_try(self):
        """Test that a replacement opening a catch region must start with it."""
        catch = self.program[4]
        replacement = [
            Instruction(Opcode.NOP, (Variable(0),)),
            catch,
            Instruction(Opcode.NOP, catch.outputs),
        ]
        with self.assertRaises(ScopeViolation):
            splice(self.program, 4, 5, replacement)
        result = splice(self.program, 4, 5, replacement[1:] + replacement[:1])
        self.assertTrue(result.is_valid())

    def test_wrapping_a_whole_try_catch(self):
        function = Variable(3)
        result_variable = Variable(4)
        replacement = [
            Instruction(Opcode.BEGIN_FUNCTION_DEFINITION, outputs=(function,)),
            *self.program.instructions[1:7],
            Instruction(Opcode.END_FUNCTION_DEFINITION),
            Instruction(Opcode.CALL_FUNCTION, (function,), (result_variable,)),
        ]
        result = splice(self.program, 1, 6, replacement)
        self.assertTrue(result.is_valid())
        self.assertEqual(len(result), 10)


if __name__ == "__main__":
    unittest.main()
