# mpitest/driver.py
# Test driver -- runs every registered test case under its own sub-group.
#
# Launch (every process runs the same program):
#   mpiexec -n 4 python my_tests.py          # my_tests.py ends with mpitest.main()
#   mpiexec -n 4 python -m mpitest my_tests.py
#
# EXIT STATUS:
#   0  -- Run completed, whatever the assertion results.
#   0  -- Launched with fewer processes than the largest test needs. A
#         diagnostic naming the minimum count is printed and nothing runs.
#
# Sequence per test case, on every process of the world communicator:
#   split world into participants (rank < required_size) and the rest
#   participants: RUNNING line, body, aggregation protocol
#   world barrier
#   free the sub-group
#
# An exception escaping a body, sys.exit() included, is recorded as a failure
# of that case so every participant still reaches the aggregation protocol.

import logging
import os
import sys
import traceback
from typing import Any, Optional, TextIO

from mpitest.aggregation import aggregate_failures
from mpitest.data_models.failure_record import AssertSite, FailureRecord
from mpitest.data_models.test_case import TestCase
from mpitest.registry import TestRegistry
from mpitest.version import LOG_LEVEL_ENV, ROOT_RANK

logger = logging.getLogger(__name__)


def _emit(out: TextIO, line: str) -> None:
    print(line, file=out, flush=True)


def _exception_record(case: TestCase, exc: BaseException) -> FailureRecord:
    """
    FailureRecord for an exception that escaped a test body.

    Points at the line of the body that raised or called into the code that
    raised. Falls back to the deepest frame when the body itself is not on
    the stack (a callable object, a C extension).
    """
    body_code = getattr(case.entry_point, "__code__", None)

    frames = list(traceback.walk_tb(exc.__traceback__))
    in_body = [entry for entry in frames if entry[0].f_code is body_code]
    frame, lineno = in_body[-1] if in_body else frames[-1]
    filename = frame.f_code.co_filename
    del frame, frames, in_body

    kind = type(exc).__name__
    site = AssertSite(line=lineno, file=filename, text=f"EXCEPTION({kind})")
    return FailureRecord(site=site, message=f"{kind}: {exc}")


def _run_body(case: TestCase, test_comm: Any, registry: TestRegistry) -> None:
    try:
        case.entry_point(test_comm)
    except (Exception, SystemExit) as exc:
        # The peers are headed for the count exchange; record and join them.
        logger.debug("test %s raised", case.name, exc_info=True)
        registry.append_failure(_exception_record(case, exc))


def run_tests(comm: Any = None, out: Optional[TextIO] = None) -> int:
    """
    Run every registered test case once, in registration order.

    Args:
        comm: World communicator. Defaults to mpi4py's MPI.COMM_WORLD.
        out:  Report stream. Defaults to sys.stdout.

    Returns:
        Process exit status. Always 0; assertion failures are reported, not
        turned into an exit status.
    """
    if comm is None:
        from mpi4py import MPI  # initialises MPI on first import

        comm = MPI.COMM_WORLD
    registry = TestRegistry.instance()
    out = out if out is not None else sys.stdout

    rank = comm.Get_rank()
    size = comm.Get_size()

    # Make a little space.
    if rank == ROOT_RANK:
        _emit(out, "\n")
    comm.Barrier()

    # Every process derives the same answer from its own copy of the list, so
    # a short launch ends everywhere without any communication.
    largest = registry.largest_size()
    if size < largest:
        if rank == ROOT_RANK:
            _emit(out, f"please launch with at least {largest} procs!")
        logger.debug("world size %d is below required %d; no tests run", size, largest)
        TestRegistry.release()
        return 0

    comm.Barrier()

    for index, case in enumerate(registry.cases):
        registry.set_current(index)

        participant = rank < case.required_size
        test_comm = comm.Split(1 if participant else 0, rank)
        try:
            if participant:
                if test_comm.Get_rank() == ROOT_RANK:
                    _emit(out, case.running_line())
                _run_body(case, test_comm, registry)
                aggregate_failures(test_comm, case, registry.failures(index), out)
            # Bounds the sub-group's lifetime; cases never overlap.
            comm.Barrier()
        finally:
            test_comm.Free()

    registry.clear_current()
    TestRegistry.release()
    return 0


def _configure_logging(rank: int) -> None:
    level = logging.getLevelName(os.environ.get(LOG_LEVEL_ENV, "WARNING").upper())
    if not isinstance(level, int):
        level = logging.WARNING
    logging.basicConfig(
        level=level,
        stream=sys.stderr,
        format=f"[proc {rank}] %(levelname)s %(name)s: %(message)s",
    )


def main() -> int:
    """
    Program entry point. Call at the bottom of a test script, after every
    test has been declared:

        if __name__ == "__main__":
            sys.exit(mpitest.main())
    """
    from mpi4py import MPI

    comm = MPI.COMM_WORLD
    _configure_logging(comm.Get_rank())
    return run_tests(comm)
