import numpy as np
import pytest

from mpitest.registry import TestRegistry


# =============================================================================
# FAKE COMMUNICATOR
# =============================================================================
#
# Stands in for an mpi4py communicator seen from one rank, so the driver and
# the aggregation protocol run under plain pytest without an MPI launch.
#
# Other ranks are simulated on the coordinator side only:
#   peer_counts -- failure counts the other ranks contribute to Gather.
#   inbox       -- messages already "sent" by other ranks, keyed (source, tag).
# Messages this rank sends to itself land in the inbox too.
# =============================================================================


class FakeRequest:
    def __init__(self, comm):
        self._comm = comm
        self.waited = False

    def Wait(self):
        self.waited = True
        self._comm.calls.append("Wait")


class FakeComm:
    def __init__(self, rank=0, size=1, peer_counts=None, inbox=None, subgroup_sizes=None):
        self.rank = rank
        self.size = size
        self.peer_counts = dict(peer_counts or {})
        self.inbox = dict(inbox or {})
        self.subgroup_sizes = list(subgroup_sizes or [])
        self.sent = []
        self.requests = []
        self.calls = []
        self.children = []
        self.freed = False

    def Get_rank(self):
        return self.rank

    def Get_size(self):
        return self.size

    def Barrier(self):
        self.calls.append("Barrier")

    def Gather(self, sendbuf, recvbuf, root=0):
        self.calls.append("Gather")
        if self.rank == root:
            recvbuf[self.rank] = sendbuf[0]
            for source, count in self.peer_counts.items():
                recvbuf[source] = count

    def Issend(self, buf, dest, tag):
        data = bytes(buf)
        request = FakeRequest(self)
        self.sent.append((data, dest, tag))
        self.requests.append(request)
        self.calls.append(("Issend", dest, tag))
        if dest == self.rank:
            self.inbox[(self.rank, tag)] = data
        return request

    def Recv(self, buf, source, tag):
        self.calls.append(("Recv", source, tag))
        data = self.inbox.pop((source, tag))
        buf[:] = np.frombuffer(data, dtype=np.uint8)

    def Split(self, color, key):
        self.calls.append(("Split", color, key))
        # Participants in these tests are always world ranks 0..n-1.
        if self.subgroup_sizes:
            size = self.subgroup_sizes.pop(0)
        else:
            size = self.size
        child = FakeComm(rank=key if color == 1 else 0, size=size)
        self.children.append(child)
        return child

    def Free(self):
        self.freed = True


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture(autouse=True)
def fresh_registry():
    """Every test starts and ends with no process-wide registry."""
    TestRegistry.release()
    yield
    TestRegistry.release()


@pytest.fixture
def registry() -> TestRegistry:
    return TestRegistry.instance()


@pytest.fixture
def active_registry(registry) -> TestRegistry:
    """Registry with one case marked as running, so assertions are recorded."""
    registry.register(lambda comm: None, 1, "active")
    registry.set_current(0)
    return registry


@pytest.fixture
def fake_comm():
    return FakeComm
