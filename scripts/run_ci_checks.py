#!/usr/bin/env python3
# =============================================================================
# mpitest -- CI CHECKS RUNNER
# File:   scripts/run_ci_checks.py
# =============================================================================
#
# PURPOSE
# -------
# Runs the CI gate in two sequential stages:
#   Stage 1: pytest (unit tests, single process, no MPI launch)
#   Stage 2: example suite under mpiexec with 4 processes
#
# Exit codes:
#   0 -- All stages passed.
#   1 -- Stage 1 (pytest) failed.
#   2 -- Stage 2 (example suite) failed to run or crashed.
#
# The example suite fails some assertions on purpose; stage 2 checks that the
# run completes with exit code 0, that every RUNNING line is closed by a
# SUCCESS or FAIL line, and that failure lines come out in rank order.
#
# Usage:
#   python scripts/run_ci_checks.py
#   MPIEXEC=srun python scripts/run_ci_checks.py
# =============================================================================

from __future__ import annotations

import os
import pathlib
import re
import subprocess
import sys

# ---------------------------------------------------------------------------
# Paths
# ---------------------------------------------------------------------------
_REPO_ROOT = pathlib.Path(__file__).parent.parent
_PYTHON    = sys.executable
_MPIEXEC   = os.environ.get("MPIEXEC", "mpiexec")
_PROCS     = "4"

# Ranks expected to report failures in the example suite, in report order.
_EXPECTED_FAILURE_RANKS = {
    "add_test":       [0],
    "sub_test":       [0],
    "float_add_test": [0, 1],
}
_FAILURE_LINE = re.compile(r"^  \S.* FAILED \(on proc (\d+) line \d+ of ")


def _separator(char: str = "=", width: int = 72) -> str:
    return char * width


def _run(cmd: list[str], label: str, capture: bool = False) -> subprocess.CompletedProcess:
    """
    Run a subprocess command from the repository root. Output is streamed
    live unless capture is set.
    """
    print(_separator())
    print(f"CI STAGE: {label}")
    print(f"CMD:      {' '.join(cmd)}")
    print(_separator("-"))
    sys.stdout.flush()

    return subprocess.run(
        cmd,
        cwd=str(_REPO_ROOT),
        capture_output=capture,
        text=capture,
    )


def _report_is_paired(stdout: str) -> bool:
    running = sum(1 for line in stdout.splitlines() if line.startswith("[ RUNNING ]"))
    closing = sum(
        1 for line in stdout.splitlines()
        if line.startswith("[ SUCCESS ]") or line.startswith("[ FAIL    ]")
    )
    return running > 0 and running == closing


def _failure_ranks(stdout: str) -> dict[str, list[int]]:
    """Reporting rank of each failure line, grouped by the case it belongs to."""
    ranks: dict[str, list[int]] = {}
    case = None
    for line in stdout.splitlines():
        if line.startswith("[ RUNNING ] "):
            case = line[len("[ RUNNING ] "):].rsplit(" (", 1)[0]
            ranks.setdefault(case, [])
            continue
        match = _FAILURE_LINE.match(line)
        if match and case is not None:
            ranks[case].append(int(match.group(1)))
    return ranks


def _failures_in_rank_order(stdout: str) -> bool:
    ranks = _failure_ranks(stdout)
    for case, expected in _EXPECTED_FAILURE_RANKS.items():
        if ranks.get(case) != expected:
            print(f"failure ranks for {case}: {ranks.get(case)}, expected {expected}")
            return False
    return all(found == sorted(found) for found in ranks.values())


def main() -> int:
    print(_separator())
    print("mpitest CI GATE -- starting")
    print(_separator())
    sys.stdout.flush()

    # ------------------------------------------------------------------
    # Stage 1: pytest
    # ------------------------------------------------------------------
    pytest_rc = _run([_PYTHON, "-m", "pytest"], "pytest").returncode

    if pytest_rc != 0:
        print(_separator())
        print(f"CI RESULT: FAIL  [stage=pytest  exit_code={pytest_rc}]")
        print(_separator())
        sys.stdout.flush()
        return 1

    print(_separator("-"))
    print("CI STAGE pytest: PASS")
    sys.stdout.flush()

    # ------------------------------------------------------------------
    # Stage 2: example suite under mpiexec
    # ------------------------------------------------------------------
    proc = _run(
        [_MPIEXEC, "-n", _PROCS, _PYTHON, "examples/dummy_tests.py"],
        f"example suite ({_PROCS} procs)",
        capture=True,
    )
    sys.stdout.write(proc.stdout)
    sys.stderr.write(proc.stderr)

    if (
        proc.returncode != 0
        or not _report_is_paired(proc.stdout)
        or not _failures_in_rank_order(proc.stdout)
    ):
        print(_separator())
        print(f"CI RESULT: FAIL  [stage=examples  exit_code={proc.returncode}]")
        print(_separator())
        sys.stdout.flush()
        return 2

    print(_separator("-"))
    print("CI STAGE examples: PASS")

    print(_separator())
    print("CI RESULT: PASS  [stages=pytest,examples]")
    print(_separator())
    sys.stdout.flush()
    return 0


if __name__ == "__main__":
    sys.exit(main())
