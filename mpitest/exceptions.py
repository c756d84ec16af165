# =============================================================================
# mpitest/exceptions.py
# =============================================================================
#
# SCOPE
# -----
# Exception hierarchy for faults the harness raises itself. Assertion
# failures inside a test body are never exceptions; they are recorded in the
# registry and reported by the aggregation protocol.
#
# EXCEPTION HIERARCHY
# -------------------
#   MpiTestError(RuntimeError)          -- base; never raised directly
#     RegistrationError(MpiTestError)   -- bad test declaration
#     LoadError(MpiTestError)           -- test module could not be imported
#
# MESSAGE CONTRACT
# ----------------
# Every message starts with a failure prefix ("REGISTRATION_ERROR:",
# "LOAD_ERROR:") followed by the offending test or module and value.
# =============================================================================

from __future__ import annotations

from typing import Any


class MpiTestError(RuntimeError):
    """
    Base class for harness faults.

    Attributes:
        subject:  Test name or module path the fault refers to.
        value:    Offending value, or None.
        message:  Full message, prefix included. Always non-empty.
    """

    prefix: str = "MPITEST_ERROR"

    def __init__(self, detail: str, subject: str = "", value: Any = None) -> None:
        if not isinstance(detail, str) or not detail:
            raise ValueError("MpiTestError: detail must be a non-empty string")
        message = f"{self.prefix}: {detail}"
        super().__init__(message)
        self.subject: str = subject
        self.value:   Any = value
        self.message: str = message

    def __repr__(self) -> str:
        return (
            self.__class__.__name__
            + "(subject=" + repr(self.subject)
            + ", value=" + repr(self.value)
            + ", message=" + repr(self.message)
            + ")"
        )


class RegistrationError(MpiTestError):
    """
    Raised at declaration time for a test that can never run: a participant
    count that is not a positive integer, an empty size list, or an entry
    point that is not callable.
    """

    prefix = "REGISTRATION_ERROR"


class LoadError(MpiTestError):
    """Raised when a test file or module named on the command line cannot be imported."""

    prefix = "LOAD_ERROR"


__all__ = [
    "MpiTestError",
    "RegistrationError",
    "LoadError",
]
