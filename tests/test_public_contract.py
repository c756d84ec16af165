# tests/test_public_contract.py
# Contract tests for the public mpitest surface.
#
# CONSTRAINTS:
#   Only public names imported.
#   No MPI launch; mpi4py must not be imported by declaring tests or by the
#   comparison functions.

import subprocess
import sys

import mpitest


_PUBLIC = [
    "HARNESS_VERSION",
    "FAIL_MESSAGE_SIZE",
    "MpiTestError",
    "RegistrationError",
    "LoadError",
    "AssertSite",
    "FailureRecord",
    "TestCase",
    "TestRegistry",
    "test",
    "expect_true",
    "assert_true",
    "expect_eq",
    "assert_eq",
    "expect_float_eq",
    "assert_float_eq",
    "expect_double_eq",
    "assert_double_eq",
    "aggregate_failures",
    "run_tests",
    "main",
]


class TestPublicNames:

    def test_all_matches_contract(self):
        assert sorted(mpitest.__all__) == sorted(_PUBLIC)

    def test_every_name_resolves(self):
        for name in _PUBLIC:
            assert hasattr(mpitest, name), name

    def test_wire_message_size(self):
        assert mpitest.FAIL_MESSAGE_SIZE == 1024


class TestNoMpiAtImport:

    def test_import_and_declare_without_mpi4py(self):
        code = (
            "import sys, mpitest\n"
            "@mpitest.test(2)\n"
            "def t(comm):\n"
            "    pass\n"
            "assert 'mpi4py' not in sys.modules, 'mpi4py imported'\n"
        )
        proc = subprocess.run([sys.executable, "-c", code], capture_output=True, text=True)
        assert proc.returncode == 0, proc.stderr
