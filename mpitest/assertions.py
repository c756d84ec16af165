# mpitest/assertions.py
# Assertion functions used inside test bodies.
#
# Two flavors per check:
#   expect_*  -- record the failure and carry on.
#   assert_*  -- record the failure; the body is expected to return at once:
#
#       if not assert_eq(state.n_local, 4):
#           return
#
# Both flavors return the check result. Neither raises: a body that returns
# early still reaches the aggregation protocol like any other.
#
# The report names each assertion the way it was written, e.g.
# "ASSERT_EQ(state.n_local, 4)". The argument text is read from the caller's
# source with ast, at the exact call the caller is executing (Python 3.11+
# instruction positions). When the source is not available, or the call cannot
# be singled out, the values' repr is used.

import ast
import functools
import inspect
import linecache
from types import FrameType
from typing import Any, Optional, Sequence, Tuple

from mpitest.comparator import DOUBLE, FLOAT, check_eq, check_ieee754_eq, check_true
from mpitest.data_models.failure_record import AssertSite


@functools.lru_cache(maxsize=None)
def _parsed(filename: str) -> Optional[Tuple[str, ast.AST]]:
    source = "".join(linecache.getlines(filename))
    if not source:
        return None
    try:
        return source, ast.parse(source, filename)
    except (SyntaxError, ValueError):
        return None


def _callee_name(func: ast.expr) -> str:
    if isinstance(func, ast.Name):
        return func.id
    if isinstance(func, ast.Attribute):
        return func.attr
    return ""


def _call_position(frame: FrameType) -> Optional[Tuple[int, int, int, int]]:
    """(lineno, end_lineno, col_offset, end_col_offset) of the call frame is executing."""
    # Traceback.positions exists from Python 3.11.
    position = getattr(inspect.getframeinfo(frame, context=0), "positions", None)
    if position is None or None in position:
        return None
    return tuple(position)


def _argument_text(
    filename: str,
    lineno: int,
    position: Optional[Tuple[int, int, int, int]],
    func_name: str,
    count: int,
) -> Optional[Sequence[str]]:
    """
    Source text of the first count arguments of the func_name call at the
    caller's position. None when that call cannot be told apart from another.
    """
    parsed = _parsed(filename)
    if parsed is None:
        return None
    source, tree = parsed

    candidates = [
        node for node in ast.walk(tree)
        if isinstance(node, ast.Call)
        and _callee_name(node.func) == func_name
        and node.lineno <= lineno <= (node.end_lineno or node.lineno)
        and len(node.args) >= count
    ]
    if position is not None:
        candidates = [
            node for node in candidates
            if (node.lineno, node.end_lineno, node.col_offset, node.end_col_offset) == position
        ]
    if len(candidates) != 1:
        return None

    segments = [ast.get_source_segment(source, arg) for arg in candidates[0].args[:count]]
    if any(segment is None for segment in segments):
        return None
    return [" ".join(segment.split()) for segment in segments]


def _site(form: str, func_name: str, values: Sequence[Any]) -> AssertSite:
    # Two frames up: _site <- public assertion <- test body.
    frame = inspect.currentframe().f_back.f_back
    try:
        filename = frame.f_code.co_filename
        lineno = frame.f_lineno
        position = _call_position(frame)
    finally:
        del frame

    arguments = _argument_text(filename, lineno, position, func_name, len(values))
    if arguments is None:
        arguments = [repr(value) for value in values]
    return AssertSite(line=lineno, file=filename, text=f"{form}({', '.join(arguments)})")


def expect_true(value: Any) -> bool:
    return check_true(value, _site("EXPECT_TRUE", "expect_true", (value,)))


def assert_true(value: Any) -> bool:
    return check_true(value, _site("ASSERT_TRUE", "assert_true", (value,)))


def expect_eq(a: Any, b: Any) -> bool:
    return check_eq(a, b, _site("EXPECT_EQ", "expect_eq", (a, b)))


def assert_eq(a: Any, b: Any) -> bool:
    return check_eq(a, b, _site("ASSERT_EQ", "assert_eq", (a, b)))


def expect_float_eq(a: float, b: float, ulp_tol: int, abs_tol: Optional[float] = None) -> bool:
    """Single-precision tolerance check. abs_tol defaults to float32 epsilon."""
    site = _site("EXPECT_FLOAT_EQ", "expect_float_eq", (a, b))
    return check_ieee754_eq(site, a, b, ulp_tol, abs_tol, dtype=FLOAT)


def assert_float_eq(a: float, b: float, ulp_tol: int, abs_tol: Optional[float] = None) -> bool:
    site = _site("ASSERT_FLOAT_EQ", "assert_float_eq", (a, b))
    return check_ieee754_eq(site, a, b, ulp_tol, abs_tol, dtype=FLOAT)


def expect_double_eq(a: float, b: float, ulp_tol: int, abs_tol: Optional[float] = None) -> bool:
    """Double-precision tolerance check. abs_tol defaults to float64 epsilon."""
    site = _site("EXPECT_DOUBLE_EQ", "expect_double_eq", (a, b))
    return check_ieee754_eq(site, a, b, ulp_tol, abs_tol, dtype=DOUBLE)


def assert_double_eq(a: float, b: float, ulp_tol: int, abs_tol: Optional[float] = None) -> bool:
    site = _site("ASSERT_DOUBLE_EQ", "assert_double_eq", (a, b))
    return check_ieee754_eq(site, a, b, ulp_tol, abs_tol, dtype=DOUBLE)


__all__ = [
    "expect_true",
    "assert_true",
    "expect_eq",
    "assert_eq",
    "expect_float_eq",
    "assert_float_eq",
    "expect_double_eq",
    "assert_double_eq",
]
