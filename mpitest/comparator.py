# mpitest/comparator.py
# Comparison predicates behind every assertion.
#
# Each predicate returns True and does nothing else when the check holds.
# When it does not hold, exactly one FailureRecord is appended to the ledger
# of the running test case and False is returned. Whether the test body then
# returns early is up to the caller (see mpitest.assertions).
#
# Floating-point equality follows "Comparing Floating Point Numbers, 2012
# Edition" (Random ASCII): distance in representable values (ULPs) for
# operands of the same sign, absolute tolerance near or across zero.
# Bit patterns are read with an explicit equal-width numpy view.

import math
from typing import Any, Dict, Optional, Type

import numpy as np

from mpitest.data_models.failure_record import AssertSite, FailureRecord
from mpitest.registry import TestRegistry

FLOAT  = np.float32
DOUBLE = np.float64

# Unsigned integer of the same width as each supported float type.
_UNSIGNED: Dict[Type[np.floating], Type[np.unsignedinteger]] = {
    np.float32: np.uint32,
    np.float64: np.uint64,
}


def _register(site: AssertSite, reason: str) -> None:
    TestRegistry.instance().append_failure(FailureRecord(site=site, message=reason))


def _full(value: np.floating, digits: int) -> str:
    """Print with digits10 + 1 significant digits, enough to tell neighbours apart."""
    return "%.*g" % (digits + 1, float(value))


def _bits(value: np.floating, dtype: Type[np.floating]) -> int:
    return int(np.array([value], dtype=dtype).view(_UNSIGNED[dtype])[0])


def check_true(value: Any, site: AssertSite) -> bool:
    """Holds when value is truthy."""
    if value:
        return True
    _register(site, f"{value!r} is falsy")
    return False


def check_eq(a: Any, b: Any, site: AssertSite) -> bool:
    """Holds when a == b under the operands' own equality."""
    if a == b:
        return True
    _register(site, f"{a} does not equal {b}")
    return False


def check_ieee754_eq(
    site:    AssertSite,
    a:       float,
    b:       float,
    ulp_tol: int,
    abs_tol: Optional[float] = None,
    dtype:   Type[np.floating] = DOUBLE,
) -> bool:
    """
    Holds when a and b are the same number within tolerance.

    Both operands are first converted to dtype (FLOAT or DOUBLE).

      - NaN or infinite operand: never holds.
      - Operands of different sign, or both smaller in magnitude than
        abs_tol: holds iff |a - b| <= abs_tol.
      - Otherwise: holds iff the bit patterns, read as unsigned integers of
        the same width, are at most ulp_tol apart.

    abs_tol defaults to the machine epsilon of dtype.
    """
    if dtype not in _UNSIGNED:
        raise TypeError(f"unsupported floating type {dtype!r}; use FLOAT or DOUBLE")

    a = dtype(a)
    b = dtype(b)
    tol = dtype(np.finfo(dtype).eps if abs_tol is None else abs_tol)
    digits = np.finfo(dtype).precision

    # Quick out if the input is garbage.
    reason = ""
    if math.isnan(a):
        reason += "the first argument is nan! "
    elif math.isinf(a):
        reason += "the first argument is inf! "
    if math.isnan(b):
        reason += "the second argument is nan! "
    elif math.isinf(b):
        reason += "the second argument is inf! "
    if reason:
        _register(site, reason)
        return False

    # Absolute comparison across or near zero.
    if np.signbit(a) != np.signbit(b) or (abs(a) < tol and abs(b) < tol):
        diff = abs(a - b)
        if diff > tol:
            _register(
                site,
                f"absolute difference between {_full(a, digits)} and {_full(b, digits)} "
                f"({_full(diff, digits)}) is outside the requested tolerance {float(tol):g}",
            )
            return False
        return True

    # ULP comparison.
    distance = abs(_bits(a, dtype) - _bits(b, dtype))
    if distance > ulp_tol:
        _register(
            site,
            f"{_full(a, digits)} and {_full(b, digits)} differ by {distance} ULPs, "
            f"the requested tolerance is {ulp_tol} ULPs",
        )
        return False
    return True
