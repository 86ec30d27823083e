#!/usr/bin/env python3
# Copyright 2026 seqtdd Contributors
# SPDX-License-Identifier: Apache-2.0

"""Run the CI checks locally: format, lint, tests with coverage, and build.

Pass ``--fast`` to skip coverage and the build, or ``--only NAME`` to run a
single step.
"""

import argparse
import pathlib
import subprocess
import sys
import time

from yachalk import chalk

# ###############
# Public Interface
# ###############

COVERAGE_FLOOR = 85

STEPS: dict[str, list[str]] = {
    "format": ["uv", "run", "ruff", "format", "--check", "src/", "tests/", "tools/"],
    "lint": ["uv", "run", "ruff", "check", "src/", "tests/", "tools/"],
    "tests": [
        "uv",
        "run",
        "pytest",
        "--cov=seqtdd",
        "--cov-report=term-missing",
        f"--cov-fail-under={COVERAGE_FLOOR}",
    ],
    "build": ["uv", "build"],
}


def main(argv: list[str] | None = None) -> int:
    """Run the selected CI steps and print a summary."""
    args = _parse_args(argv)
    results: list[tuple[str, bool, float]] = []

    for name, cmd in _selected_steps(args):
        _banner(name)
        start = time.monotonic()
        proc = subprocess.run(cmd, cwd=_repo_root())
        results.append((name, proc.returncode == 0, time.monotonic() - start))
        if proc.returncode != 0 and args.fail_fast:
            break

    _banner("summary")
    for name, passed, elapsed in results:
        colour = chalk.green if passed else chalk.red
        print(colour(f"  {'PASS' if passed else 'FAIL'}  {name} ({elapsed:.1f}s)"))
    print()
    return 0 if results and all(passed for _, passed, _ in results) else 1


# ################
# Implementation
# ################


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--fast", action="store_true", help="skip coverage and the build step")
    parser.add_argument("--only", choices=sorted(STEPS), help="run a single step")
    parser.add_argument("--fail-fast", action="store_true", help="stop at the first failing step")
    return parser.parse_args(argv)


def _selected_steps(args: argparse.Namespace) -> list[tuple[str, list[str]]]:
    if args.only:
        return [(args.only, STEPS[args.only])]
    steps = []
    for name, cmd in STEPS.items():
        if args.fast and name == "build":
            continue
        if args.fast and name == "tests":
            cmd = ["uv", "run", "pytest", "-q"]
        steps.append((name, cmd))
    return steps


def _banner(title: str) -> None:
    sep = chalk.blue("=" * 60)
    print(f"\n{sep}")
    print(chalk.blue(title.capitalize()))
    print(sep)


def _repo_root() -> str:
    return str(pathlib.Path(__file__).parent.parent)


if __name__ == "__main__":
    sys.exit(main())
