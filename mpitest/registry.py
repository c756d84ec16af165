# mpitest/registry.py
# TestRegistry -- the process-wide list of declared tests and their ledgers.
#
# Every process imports the same test modules, so every process builds the
# same list in the same order. The list is never exchanged between processes;
# the driver and the aggregation protocol rely on it being identical.
#
# Standard import pattern:
#   from mpitest.registry import TestRegistry, test

import logging
from typing import Callable, Iterable, List, Optional, Tuple

from mpitest.data_models.test_case import TestBody, TestCase
from mpitest.data_models.failure_record import FailureRecord
from mpitest.exceptions import RegistrationError

logger = logging.getLogger(__name__)


class TestRegistry:
    """
    Ordered test cases, one failure ledger per case, and a cursor naming the
    case currently executing on this process.

    There is a single instance per process, created on first use of
    instance() and dropped by release(). Tests run strictly one after another
    on each process, so the ledgers need no locking.
    """

    _instance: Optional["TestRegistry"] = None

    __test__ = False

    def __init__(self) -> None:
        self._cases:   List[TestCase] = []
        self._ledgers: List[List[FailureRecord]] = []
        self._current: Optional[int] = None

    @classmethod
    def instance(cls) -> "TestRegistry":
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def release(cls) -> None:
        """Drop the process-wide instance. The next instance() starts empty."""
        cls._instance = None

    # ------------------------------------------------------------------
    # Declaration
    # ------------------------------------------------------------------

    def register(self, entry_point: TestBody, required_size: int, name: str) -> TestBody:
        """
        Append one test case and an empty ledger.

        Returns entry_point unchanged so registration can sit in a decorator.

        Raises:
            RegistrationError: required_size is not a positive integer, or
                entry_point is not callable.
        """
        if not callable(entry_point):
            raise RegistrationError(
                f"test '{name}' entry point is not callable",
                subject=name,
                value=entry_point,
            )
        # bool is an int subclass; True would silently mean one process.
        if (
            isinstance(required_size, bool)
            or not isinstance(required_size, int)
            or required_size < 1
        ):
            raise RegistrationError(
                f"test '{name}' requires a positive integer process count, "
                f"got {required_size!r}",
                subject=name,
                value=required_size,
            )
        self._cases.append(TestCase(name=name, required_size=required_size, entry_point=entry_point))
        self._ledgers.append([])
        return entry_point

    def register_all(self, entry_point: TestBody, sizes: Iterable[int], name: str) -> TestBody:
        """Register entry_point once per size, in the order given."""
        sizes = list(sizes)
        if not sizes:
            raise RegistrationError(
                f"test '{name}' lists no process counts",
                subject=name,
                value=sizes,
            )
        for size in sizes:
            self.register(entry_point, size, name)
        return entry_point

    # ------------------------------------------------------------------
    # Execution cursor and ledgers
    # ------------------------------------------------------------------

    @property
    def cases(self) -> Tuple[TestCase, ...]:
        return tuple(self._cases)

    @property
    def current(self) -> Optional[int]:
        return self._current

    def __len__(self) -> int:
        return len(self._cases)

    def set_current(self, index: int) -> None:
        if not 0 <= index < len(self._cases):
            raise IndexError(f"no test case at index {index}")
        self._current = index

    def clear_current(self) -> None:
        self._current = None

    def append_failure(self, record: FailureRecord) -> None:
        """
        Add record to the ledger of the current case.

        With no current case the record is dropped. Assertions are only
        meant to run inside a test body started by the driver.
        """
        if self._current is None:
            logger.warning(
                "dropping failure recorded outside a running test: %s (%s line %d)",
                record.site.text,
                record.site.file,
                record.site.line,
            )
            return
        self._ledgers[self._current].append(record)

    def failures(self, index: int) -> Tuple[FailureRecord, ...]:
        return tuple(self._ledgers[index])

    def largest_size(self) -> int:
        """Largest required_size over all cases; 0 when nothing is registered."""
        return max((case.required_size for case in self._cases), default=0)


def test(*sizes: int, name: Optional[str] = None) -> Callable[[TestBody], TestBody]:
    """
    Declare a test body to run on each of the given process counts.

        @test(2, 4)
        def halo_exchange(comm):
            ...

    The body is registered with the process-wide registry at import time and
    returned unchanged.
    """
    def decorator(entry_point: TestBody) -> TestBody:
        test_name = name if name is not None else getattr(entry_point, "__name__", repr(entry_point))
        return TestRegistry.instance().register_all(entry_point, sizes, test_name)

    return decorator


# Keeps pytest from collecting the decorator when it is imported in tests.
test.__test__ = False
