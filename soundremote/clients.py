"""Registry of connected clients with timeouts and change notifications."""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Callable, Hashable

from soundremote.audio_util import Compression

ClientsListener = Callable[[list["ClientInfo"]], None]


@dataclass(frozen=True)
class ClientInfo:
    address: Hashable
    compression: Compression


@dataclass
class _Client:
    compression: Compression
    last_contact: float


class Clients:
    """Tracks clients by address and tells listeners when the set changes."""

    def __init__(self, timeout_seconds: float = 5, clock: Callable[[], float] = time.monotonic) -> None:
        self._timeout_seconds = timeout_seconds
        self._clock = clock
        self._clients: dict[Hashable, _Client] = {}
        self._infos: list[ClientInfo] = []
        self._lock = threading.RLock()
        self._listeners: list[ClientsListener] = []

    def add(self, address: Hashable, compression: Compression) -> None:
        """Register a client or refresh an existing one, updating its compression."""
        with self._lock:
            client = self._clients.get(address)
            if client is None:
                self._clients[address] = _Client(compression, self._clock())
                self._update_and_notify()
                return
            client.last_contact = self._clock()
            if client.compression == compression:
                return
            client.compression = compression
            self._update_and_notify()

    def set_compression(self, address: Hashable, compression: Compression) -> None:
        with self._lock:
            client = self._clients.get(address)
            if client is None or client.compression == compression:
                return
            client.compression = compression
            self._update_and_notify()

    def keep(self, address: Hashable) -> None:
        """Record contact with a known client so it does not time out."""
        with self._lock:
            client = self._clients.get(address)
            if client is not None:
                client.last_contact = self._clock()

    def remove(self, address: Hashable) -> None:
        with self._lock:
            if self._clients.pop(address, None) is not None:
                self._update_and_notify()

    def add_clients_listener(self, listener: ClientsListener) -> None:
        """Subscribe a listener and call it at once with the current clients."""
        self._listeners.insert(0, listener)
        listener(list(self._infos))

    def remove_clients_listener(self, listener: ClientsListener) -> int:
        """Unsubscribe every registration equal to ``listener``; return how many."""
        before = len(self._listeners)
        self._listeners = [f for f in self._listeners if f != listener]
        return before - len(self._listeners)

    def maintain(self) -> None:
        """Drop clients not heard from for longer than the timeout."""
        with self._lock:
            now = self._clock()
            expired = [
                address
                for address, client in self._clients.items()
                if now - client.last_contact > self._timeout_seconds
            ]
            for address in expired:
                del self._clients[address]
            if expired:
                self._update_and_notify()

    def client_infos(self) -> list[ClientInfo]:
        with self._lock:
            return list(self._infos)

    def _update_and_notify(self) -> None:
        self._infos = [ClientInfo(address, client.compression) for address, client in self._clients.items()]
        for listener in self._listeners:
            listener(list(self._infos))