#!/usr/bin/env python3
"""
A command-line utility for checking IR programs and applying grafter's
rewrites to them.

Programs are read and written in the text format of `grafter.text`.
"""

import argparse
import logging
import random
import sys
from pathlib import Path

from grafter.engine import MutationEngine
from grafter.errors import RewriteError
from grafter.program import Program
from grafter.text import ProgramSyntaxError, lift_program, parse_program


def load_program(path: Path) -> Program:
    """Read and parse a program file, exiting with status 1 on failure."""
    if not path.is_file():
        print(f"Error: Input file not found at {path}", file=sys.stderr)
        sys.exit(1)
    try:
        return parse_program(path.read_text(encoding="utf-8"))
    except (ProgramSyntaxError, OSError, UnicodeDecodeError) as e:
        print(f"Error: Could not read program file: {e}", file=sys.stderr)
        sys.exit(1)


def list_candidates(engine: MutationEngine, program: Program) -> None:
    found = engine.candidates(program)
    if not found:
        print("[*] No rewrite applies to this program.")
        return
    print(f"[*] {len(found)} candidate(s):")
    for mutator, index in found:
        where = "whole program" if index is None else f"instruction {index}"
        print(f"  - {mutator.name} at {where}")


def main() -> None:
    """Parse args to check a program, list candidate rewrites, or apply one."""
    parser = argparse.ArgumentParser(description="Apply structural rewrites to IR programs.")
    parser.add_argument("input_file", type=Path, help="Path to a program in IR text form.")
    parser.add_argument("--mutator", help="Name of the rewrite to apply (default: a random candidate).")
    parser.add_argument(
        "--index", type=int, help="Instruction index to apply --mutator at (default: first match)."
    )
    parser.add_argument("--seed", type=int, help="Seed for a reproducible choice and synthetic names.")
    parser.add_argument("--list", action="store_true", help="List applicable rewrites and exit.")
    parser.add_argument("--check", action="store_true", help="Check the program is well-formed and exit.")
    parser.add_argument(
        "-o", "--output", type=Path, help="Save the rewritten program here instead of printing it."
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(message)s",
        stream=sys.stderr,
    )

    program = load_program(args.input_file)

    if args.check:
        try:
            program.check()
        except RewriteError as e:
            print(f"[!] Program is malformed: {e}", file=sys.stderr)
            sys.exit(1)
        print(f"[+] Program is well-formed ({len(program)} instructions).")
        return

    engine = MutationEngine()

    if args.list:
        list_candidates(engine, program)
        return

    rng = random.Random(args.seed) if args.seed is not None else None
    if args.mutator:
        try:
            result = engine.apply(program, args.mutator, args.index, rng=rng)
        except KeyError:
            names = ", ".join(m.name for m in engine.mutators)
            print(f"Error: Unknown mutator {args.mutator!r}. Available: {names}", file=sys.stderr)
            sys.exit(1)
    else:
        result = engine.mutate(program, seed=args.seed)

    if not result:
        print("[!] No rewrite was applied.", file=sys.stderr)
        sys.exit(1)

    text = lift_program(result.program)
    if args.output:
        args.output.write_text(text, encoding="utf-8")
        print(f"[+] {result.mutator} applied, program saved to {args.output}", file=sys.stderr)
    else:
        sys.stdout.write(text)


if __name__ == "__main__":
    main()
