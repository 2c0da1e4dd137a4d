"""
PowerLink - Server State
========================
Shared state between the front end (CLI / UI thread) and the request
handlers running on the server thread.

One ServerState instance is created at process start and handed to every
consumer explicitly. All access goes through the accessors below, which
take a reader/writer lock: any number of concurrent readers, a writer
excludes everyone else.

Fields:
    password       - Shared secret checked against the X-Key header
    device         - Display name reported by /api/info
    auth_required  - Whether power actions need the shared secret
    running        - True while a listener is attached
    listener       - Handle of the active listener (None when stopped)

The running flag and the listener handle only change together, through
attach_listener() / detach_listener(), so a reader never sees a listener
without running=True or the other way around.
"""

import threading
from contextlib import contextmanager
from typing import Any


class ReadWriteLock:
    """Many readers or one writer; waiting writers go first."""

    def __init__(self):
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    @contextmanager
    def read(self):
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextmanager
    def write(self):
        with self._cond:
            self._writers_waiting += 1
            while self._writer or self._readers:
                self._cond.wait()
            self._writers_waiting -= 1
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


class ServerState:
    """
    Thread-safe container for the control server's shared state.

    Created with empty/default values; the configuration front end fills
    in the credentials and device name before each start.
    """

    def __init__(
        self,
        device: str = "",
        password: str = "",
        auth_required: bool = True,
    ):
        self._lock = ReadWriteLock()
        self._device = device
        self._password = password
        self._auth_required = auth_required
        self._running = False
        self._listener: Any | None = None

    # -- Credentials and identity ---------------------------------------------

    @property
    def password(self) -> str:
        with self._lock.read():
            return self._password

    def set_password(self, value: str) -> None:
        with self._lock.write():
            self._password = value

    @property
    def device(self) -> str:
        with self._lock.read():
            return self._device

    def set_device(self, value: str) -> None:
        with self._lock.write():
            self._device = value

    @property
    def auth_required(self) -> bool:
        with self._lock.read():
            return self._auth_required

    def set_auth_required(self, value: bool) -> None:
        with self._lock.write():
            self._auth_required = bool(value)

    # -- Lifecycle ------------------------------------------------------------

    @property
    def running(self) -> bool:
        with self._lock.read():
            return self._running

    @property
    def listener(self) -> Any | None:
        with self._lock.read():
            return self._listener

    def attach_listener(self, listener: Any) -> None:
        """Store the active listener handle and mark the server running."""
        if listener is None:
            raise ValueError("listener must not be None")
        with self._lock.write():
            self._listener = listener
            self._running = True

    def detach_listener(self) -> Any | None:
        """
        Clear the listener handle and mark the server stopped.

        Returns:
            The handle that was attached, or None if nothing was.
        """
        with self._lock.write():
            listener = self._listener
            self._listener = None
            self._running = False
            return listener
