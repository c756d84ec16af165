# mpitest/__init__.py
# Test harness for programs made of a fixed-size group of MPI processes.
#
# Declaring and running tests:
#
#   import sys
#   import mpitest
#
#   @mpitest.test(2, 4)
#   def ring_shift(comm):
#       rank, size = comm.Get_rank(), comm.Get_size()
#       left = comm.sendrecv(rank, dest=(rank + 1) % size, source=(rank - 1) % size)
#       if not mpitest.assert_eq(left, (rank - 1) % size):
#           return
#       mpitest.expect_true(left != rank)
#
#   if __name__ == "__main__":
#       sys.exit(mpitest.main())
#
# Launch with: mpiexec -n 4 python ring_shift.py
#
# mpi4py is imported only when the driver starts, so declaring tests and the
# comparison functions do not initialise MPI.

from .version import HARNESS_VERSION, FAIL_MESSAGE_SIZE
from .exceptions import MpiTestError, RegistrationError, LoadError
from .data_models import AssertSite, FailureRecord, TestCase
from .registry import TestRegistry, test
from .assertions import (
    expect_true,
    assert_true,
    expect_eq,
    assert_eq,
    expect_float_eq,
    assert_float_eq,
    expect_double_eq,
    assert_double_eq,
)
from .aggregation import aggregate_failures
from .driver import main, run_tests

__all__ = [
    # Constants
    "HARNESS_VERSION",
    "FAIL_MESSAGE_SIZE",
    # Errors
    "MpiTestError",
    "RegistrationError",
    "LoadError",
    # Data
    "AssertSite",
    "FailureRecord",
    "TestCase",
    # Declaration
    "TestRegistry",
    "test",
    # Assertions
    "expect_true",
    "assert_true",
    "expect_eq",
    "assert_eq",
    "expect_float_eq",
    "assert_float_eq",
    "expect_double_eq",
    "assert_double_eq",
    # Running
    "aggregate_failures",
    "run_tests",
    "main",
]
