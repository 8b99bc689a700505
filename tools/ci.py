#!/usr/bin/env python3
# Copyright 2026 Flan Contributors
# SPDX-License-Identifier: Apache-2.0

"""Run the flan CI pipeline locally.

Steps run in order and every step runs even if an earlier one failed, so a
single invocation shows everything that needs fixing. Pass step names to
run a subset, e.g. ``tools/ci.py lint tests``.
"""

import subprocess
import sys
import time
from pathlib import Path

from yachalk import chalk

# ###############
# Public Interface
# ###############

STEPS: dict[str, list[str]] = {
    "format": ["uv", "run", "ruff", "format", "--check", "src/", "tests/", "tools/"],
    "lint": ["uv", "run", "ruff", "check", "src/", "tests/", "tools/"],
    "types": ["uv", "run", "ty", "check", "src/"],
    "tests": ["uv", "run", "pytest", "--cov=flan", "--cov-report=term-missing"],
    "smoke": ["uv", "run", "flan", "--help"],
    "build": ["uv", "build"],
}


def main(argv: list[str]) -> int:
    """Run the selected CI steps and print a summary."""
    selected = argv or list(STEPS)
    unknown = [name for name in selected if name not in STEPS]
    if unknown:
        print(chalk.red(f"Unknown step(s): {', '.join(unknown)}. Choose from: {', '.join(STEPS)}"))
        return 2

    results = [_run_step(name, STEPS[name]) for name in selected]
    return _summarize(results)


# ################
# Implementation
# ################

_RULE = "=" * 60


def _run_step(name: str, cmd: list[str]) -> tuple[str, bool, float]:
    print(f"\n{chalk.blue(_RULE)}\n{chalk.blue(name)}\n{chalk.blue(_RULE)}")
    start = time.monotonic()
    proc = subprocess.run(cmd, cwd=Path(__file__).resolve().parent.parent)
    return name, proc.returncode == 0, time.monotonic() - start


def _summarize(results: list[tuple[str, bool, float]]) -> int:
    print(f"\n{chalk.blue(_RULE)}\n{chalk.blue('  Summary')}\n{chalk.blue(_RULE)}")
    for name, passed, elapsed in results:
        paint = chalk.green if passed else chalk.red
        print(paint(f"  {'PASS' if passed else 'FAIL'}  {name} ({elapsed:.1f}s)"))
    print()
    return 0 if all(passed for _, passed, _ in results) else 1


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
