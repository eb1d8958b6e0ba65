#!/usr/bin/env python3
"""
Tests for the grafter command-line tool (grafter/cli.py).
"""

import tempfile
import unittest
from io import StringIO
from pathlib import Path
from textwrap import dedent
from unittest.mock import patch

from grafter.cli import main
from grafter.text import parse_program

PROGRAM_TEXT = dedent("""
    # proxy revocation
    v0 <- LoadBuiltin "Proxy"
    v1 <- CallMethod v0 "revoke"
    v2 <- LoadProperty v0 "x"
""")


class TestMain(unittest.TestCase):
    """Tests for the main CLI entry point."""

    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.temp_path = Path(self.temp_dir.name)
        self.input_file = self.temp_path / "program.txt"
        self.input_file.write_text(PROGRAM_TEXT)

    def tearDown(self):
        self.temp_dir.cleanup()

    def run_main(self, *args):
        stdout, stderr = StringIO(), StringIO()
        with patch("sys.argv", ["grafter", *args]):
            with patch("sys.stdout", stdout), patch("sys.stderr", stderr):
                with patch("logging.basicConfig"):
                    main()
        return stdout.getvalue(), stderr.getvalue()

    def test_handles_nonexistent_input_file(self):
        with self.assertRaises(SystemExit) as ctx:
            self.run_main("/nonexistent/program.txt")
        self.assertEqual(ctx.exception.code, 1)

    def test_handles_syntax_error(self):
        """Test that an unparsable program exits with status 1."""
        self.input_file.write_text("v0 <- NotAnOp\n")
        with self.assertRaises(SystemExit) as ctx:
            self.run_main(str(self.input_file))
        self.assertEqual(ctx.exception.code, 1)

    def test_check_well_formed(self):
        stdout, _ = self.run_main(str(self.input_file), "--check")
        self.assertIn("[+] Program is well-formed (3 instructions)", stdout)

    def test_check_malformed(self):
        self.input_file.write_text("BeginTry\n")
        with self.assertRaises(SystemExit) as ctx:
            self.run_main(str(self.input_file), "--check")
        self.assertEqual(ctx.exception.code, 1)

    def test_list_candidates(self):
        stdout, _ = self.run_main(str(self.input_file), "--list")
        self.assertIn("RevokeCallRemover at instruction 1", stdout)

    def test_prints_rewritten_program(self):
        """Test that the rewritten program is printed in text form by default."""
        stdout, _ = self.run_main(str(self.input_file), "--seed", "3")
        program = parse_program(stdout)
        self.assertEqual(len(program), 2)
        self.assertNotIn("revoke", stdout)

    def test_named_mutator_saves_to_output(self):
        output_file = self.temp_path / "out.txt"
        _, stderr = self.run_main(
            str(self.input_file), "--mutator", "RevokeCallRemover", "--index", "1", "-o", str(output_file)
        )
        self.assertIn("[+] RevokeCallRemover applied", stderr)
        self.assertEqual(len(parse_program(output_file.read_text())), 2)

    def test_unknown_mutator(self):
        with self.assertRaises(SystemExit) as ctx:
            self.run_main(str(self.input_file), "--mutator", "Nope")
        self.assertEqual(ctx.exception.code, 1)

    def test_nothing_applied_exits_with_error(self):
        self.input_file.write_text("v0 <- LoadInteger 1\n")
        with self.assertRaises(SystemExit) as ctx:
            self.run_main(str(self.input_file))
        self.assertEqual(ctx.exception.code, 1)


if __name__ == "__main__":
    unittest.main()
