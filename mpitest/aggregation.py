# =============================================================================
# mpitest/aggregation.py
# =============================================================================
#
# PURPOSE
# -------
# Brings the failures recorded on every participant of one test case to the
# coordinator (rank 0 of the case's sub-group) and prints them once, ordered
# by participant rank and then by recording order on that participant.
#
# PROTOCOL
# --------
#   1. Gather: every participant sends its failure count (C int) to rank 0.
#   2. Rank 0 sums. Zero total: print the success line and stop. No rank
#      sends anything.
#   3. Every participant with failures formats each record into its own
#      FAIL_MESSAGE_SIZE slot of one send buffer and posts a synchronous
#      non-blocking send per slot. Tag = index of the record in the ledger.
#   4. Rank 0 receives rank by rank, index by index, exactly the gathered
#      count of messages and prints each one as it arrives.
#   5. Every sender waits on all of its requests before the buffer goes out
#      of scope.
#   6. Rank 0 prints the failure line.
#
# Every receive matches a send announced in step 1, so no receive can wait on
# a message that is never sent.
# =============================================================================

import logging
import sys
from typing import Any, List, Optional, Sequence, TextIO, Tuple

import numpy as np

from mpitest.data_models.failure_record import FailureRecord, format_failure
from mpitest.data_models.test_case import TestCase
from mpitest.version import FAIL_MESSAGE_SIZE, ROOT_RANK

logger = logging.getLogger(__name__)


# =============================================================================
# SECTION 1 -- WIRE TEXT
# =============================================================================

def encode_message(text: str) -> bytes:
    """
    Fixed-size wire form of one failure message.

    UTF-8, truncated to FAIL_MESSAGE_SIZE - 1 bytes, NUL padded to exactly
    FAIL_MESSAGE_SIZE bytes.
    """
    data = text.encode("utf-8")[: FAIL_MESSAGE_SIZE - 1]
    return data.ljust(FAIL_MESSAGE_SIZE, b"\0")


def decode_message(buffer: Any) -> str:
    """Text up to the first NUL. Truncation may split a character; it is replaced."""
    data = bytes(buffer)
    end = data.find(b"\0")
    if end >= 0:
        data = data[:end]
    return data.decode("utf-8", errors="replace")


# =============================================================================
# SECTION 2 -- PROTOCOL
# =============================================================================

def _emit(out: TextIO, line: str) -> None:
    print(line, file=out, flush=True)


def _post_sends(comm: Any, rank: int, failures: Sequence[FailureRecord]) -> Tuple[np.ndarray, List[Any]]:
    send_buffer = np.zeros(FAIL_MESSAGE_SIZE * len(failures), dtype=np.uint8)
    requests: List[Any] = []
    for index, record in enumerate(failures):
        start = FAIL_MESSAGE_SIZE * index
        slot = send_buffer[start:start + FAIL_MESSAGE_SIZE]
        slot[:] = np.frombuffer(encode_message(format_failure(record, rank)), dtype=np.uint8)
        requests.append(comm.Issend(slot, dest=ROOT_RANK, tag=index))
    return send_buffer, requests


def _wait_all(requests: Sequence[Any]) -> None:
    for request in requests:
        request.Wait()


def aggregate_failures(
    comm:     Any,
    case:     TestCase,
    failures: Sequence[FailureRecord],
    out:      Optional[TextIO] = None,
) -> int:
    """
    Run the protocol on the case's sub-group communicator.

    Every participant of the case must call this, once, after the test body
    returned. Prints the failure lines and the closing SUCCESS or FAIL line
    on the coordinator.

    Returns:
        Total number of failures across participants on the coordinator,
        0 on every other rank.
    """
    out = out if out is not None else sys.stdout
    rank = comm.Get_rank()
    size = comm.Get_size()

    local_count = np.array([len(failures)], dtype=np.intc)
    counts = np.zeros(size, dtype=np.intc) if rank == ROOT_RANK else None
    comm.Gather(local_count, counts, root=ROOT_RANK)

    total = 0
    if rank == ROOT_RANK:
        total = int(counts.sum())
        if total == 0:
            _emit(out, f"[ SUCCESS ] {case.name}")

    # Nothing is posted on a rank without failures.
    send_buffer, requests = _post_sends(comm, rank, failures)
    try:
        if rank == ROOT_RANK and total:
            logger.debug("receiving %d failure message(s) for %s", total, case.name)
            receive_buffer = np.zeros(FAIL_MESSAGE_SIZE, dtype=np.uint8)
            for source in range(size):
                for index in range(int(counts[source])):
                    comm.Recv(receive_buffer, source=source, tag=index)
                    _emit(out, decode_message(receive_buffer))
    finally:
        # The send buffer must outlive every send posted from it.
        _wait_all(requests)
    del send_buffer

    if rank == ROOT_RANK and total:
        _emit(out, f"[ FAIL    ] {case.name}")
    return total


__all__ = [
    "encode_message",
    "decode_message",
    "aggregate_failures",
]
