# examples/dummy.py
# Toy distributed workload used by dummy_tests.py.
# This file is not part of the mpitest package. For reference only.
#
# Two arrays are split evenly across the processes of a communicator; each
# process adds or subtracts its own slice. print_result() gathers the slices
# on rank 0 and prints them.

from dataclasses import dataclass
from typing import Any

import numpy as np


@dataclass
class Arrays:
    rank:    int
    size:    int
    comm:    Any
    n_local: int
    a_local: np.ndarray
    b_local: np.ndarray
    c_local: np.ndarray


def setup(comm: Any, a: np.ndarray, b: np.ndarray) -> Arrays:
    """Give each process its contiguous slice of a and b."""
    rank = comm.Get_rank()
    size = comm.Get_size()
    n = len(a)

    if n % size != 0 and rank == 0:
        print("choose an array size that divides evenly!", flush=True)
        comm.Abort(1)
    comm.Barrier()

    n_local = n // size
    offset = rank * n_local
    return Arrays(
        rank=rank,
        size=size,
        comm=comm,
        n_local=n_local,
        a_local=np.array(a[offset:offset + n_local]),
        b_local=np.array(b[offset:offset + n_local]),
        c_local=np.zeros(n_local, dtype=np.asarray(a).dtype),
    )


def add(state: Arrays) -> None:
    np.add(state.a_local, state.b_local, out=state.c_local)


def sub(state: Arrays) -> None:
    np.subtract(state.a_local, state.b_local, out=state.c_local)


def print_result(state: Arrays) -> None:
    """Gather c on rank 0, rank by rank, and print it on one line."""
    request = state.comm.Issend(state.c_local, dest=0, tag=state.rank)

    if state.rank == 0:
        c = np.zeros(state.n_local * state.size, dtype=state.c_local.dtype)
        for source in range(state.size):
            start = state.n_local * source
            state.comm.Recv(c[start:start + state.n_local], source=source, tag=source)
        print(" ".join(str(value) for value in c), flush=True)

    request.Wait()
