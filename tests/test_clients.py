import pytest

from soundremote.audio_util import Compression
from soundremote.clients import ClientInfo, Clients


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def clients(clock):
    return Clients(timeout_seconds=5, clock=clock)


class Recorder:
    def __init__(self):
        self.calls = []

    def __call__(self, infos):
        self.calls.append(infos)


ADDR_A = ("192.0.2.1", 5000)
ADDR_B = ("192.0.2.2", 5000)


def test_listener_called_immediately_with_current(clients):
    clients.add(ADDR_A, Compression.KBPS_64)
    rec = Recorder()
    clients.add_clients_listener(rec)
    assert rec.calls == [[ClientInfo(ADDR_A, Compression.KBPS_64)]]


def test_add_new_client_notifies(clients):
    rec = Recorder()
    clients.add_clients_listener(rec)
    clients.add(ADDR_A, Compression.NONE)
    assert rec.calls[-1] == [ClientInfo(ADDR_A, Compression.NONE)]
    assert len(rec.calls) == 2


def test_add_same_compression_does_not_notify(clients):
    rec = Recorder()
    clients.add(ADDR_A, Compression.NONE)
    clients.add_clients_listener(rec)
    clients.add(ADDR_A, Compression.NONE)
    assert len(rec.calls) == 1


def test_add_changed_compression_notifies(clients):
    rec = Recorder()
    clients.add(ADDR_A, Compression.NONE)
    clients.add_clients_listener(rec)
    clients.add(ADDR_A, Compression.KBPS_320)
    assert rec.calls[-1] == [ClientInfo(ADDR_A, Compression.KBPS_320)]


def test_set_compression_unknown_client_ignored(clients):
    rec = Recorder()
    clients.add_clients_listener(rec)
    clients.set_compression(ADDR_A, Compression.KBPS_128)
    assert len(rec.calls) == 1
    assert clients.client_infos() == []


def test_set_compression_changes_info(clients):
    clients.add(ADDR_A, Compression.NONE)
    clients.set_compression(ADDR_A, Compression.KBPS_192)
    assert clients.client_infos() == [ClientInfo(ADDR_A, Compression.KBPS_192)]


def test_remove(clients):
    rec = Recorder()
    clients.add(ADDR_A, Compression.NONE)
    clients.add(ADDR_B, Compression.KBPS_64)
    clients.add_clients_listener(rec)
    clients.remove(ADDR_A)
    assert rec.calls[-1] == [ClientInfo(ADDR_B, Compression.KBPS_64)]
    clients.remove(ADDR_A)
    assert len(rec.calls) == 2


def test_maintain_drops_timed_out(clients, clock):
    clients.add(ADDR_A, Compression.NONE)
    clock.now = 3
    clients.add(ADDR_B, Compression.NONE)
    clock.now = 5.5
    clients.maintain()
    assert clients.client_infos() == [ClientInfo(ADDR_B, Compression.NONE)]


def test_keep_extends_lifetime(clients, clock):
    clients.add(ADDR_A, Compression.NONE)
    clock.now = 4
    clients.keep(ADDR_A)
    clock.now = 8
    clients.maintain()
    assert clients.client_infos() == [ClientInfo(ADDR_A, Compression.NONE)]


def test_maintain_exact_timeout_keeps(clients, clock):
    rec = Recorder()
    clients.add(ADDR_A, Compression.NONE)
    clients.add_clients_listener(rec)
    clock.now = 5
    clients.maintain()
    assert len(rec.calls) == 1
    assert len(clients.client_infos()) == 1


def test_remove_clients_listener(clients):
    rec = Recorder()
    clients.add_clients_listener(rec)
    assert clients.remove_clients_listener(rec) == 1
    clients.add(ADDR_A, Compression.NONE)
    assert len(rec.calls) == 1
    assert clients.remove_clients_listener(rec) == 0


def test_client_infos_returns_copy(clients):
    clients.add(ADDR_A, Compression.NONE)
    infos = clients.client_infos()
    infos.clear()
    assert clients.client_infos() == [ClientInfo(ADDR_A, Compression.NONE)]