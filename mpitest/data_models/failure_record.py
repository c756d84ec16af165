# mpitest/data_models/failure_record.py
# FailureRecord data class and its wire text.
#
# A FailureRecord is created on the process where an assertion evaluated
# false, appended to the ledger of the case that was running, and shipped to
# the coordinating process as text by mpitest.aggregation.

from dataclasses import dataclass


@dataclass(frozen=True)
class AssertSite:
    """
    Where an assertion was written, captured at the call site.

    Fields:
      line -- Source line of the assertion call.
      file -- Source file as reported by the interpreter.
      text -- Assertion form with its argument source, e.g.
              "ASSERT_EQ(state.n_local, 3)".
    """
    line: int
    file: str
    text: str


@dataclass(frozen=True)
class FailureRecord:
    """
    One failed assertion.

    Fields:
      site    -- AssertSite of the failing call.
      message -- Why it failed, e.g. "3 does not equal 4".
    """
    site:    AssertSite
    message: str


def format_failure(record: FailureRecord, rank: int) -> str:
    """
    Render a record the way the coordinator prints it.

    Two lines, no trailing newline:
      "  <form> FAILED (on proc <rank> line <line> of <file>)"
      "    <message>"
    """
    return (
        f"  {record.site.text} FAILED "
        f"(on proc {rank} line {record.site.line} of {record.site.file})\n"
        f"    {record.message}"
    )
