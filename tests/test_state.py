import threading

import pytest

from powerlink.state import ReadWriteLock, ServerState


def test_defaults():
    state = ServerState()
    assert state.device == ""
    assert state.password == ""
    assert state.auth_required is True
    assert state.running is False
    assert state.listener is None


def test_setters_round_trip():
    state = ServerState()
    state.set_device("Workstation")
    state.set_password("abc123")
    state.set_auth_required(False)
    assert state.device == "Workstation"
    assert state.password == "abc123"
    assert state.auth_required is False


def test_listener_and_running_change_together():
    state = ServerState()
    handle = object()
    state.attach_listener(handle)
    assert state.running is True
    assert state.listener is handle

    assert state.detach_listener() is handle
    assert state.running is False
    assert state.listener is None


def test_detach_when_nothing_attached():
    state = ServerState()
    assert state.detach_listener() is None
    assert state.running is False


def test_attach_rejects_none():
    with pytest.raises(ValueError):
        ServerState().attach_listener(None)


def test_readers_never_see_half_applied_lifecycle():
    state = ServerState()
    stop = threading.Event()
    broken = []

    def reader():
        while not stop.is_set():
            with state._lock.read():
                if (state._listener is None) == state._running:
                    broken.append(True)

    threads = [threading.Thread(target=reader) for _ in range(4)]
    for t in threads:
        t.start()
    for _ in range(500):
        state.attach_listener(object())
        state.detach_listener()
    stop.set()
    for t in threads:
        t.join()
    assert broken == []


def test_writer_excludes_readers():
    lock = ReadWriteLock()
    inside_write = threading.Event()
    release = threading.Event()
    reader_done = threading.Event()

    def writer():
        with lock.write():
            inside_write.set()
            release.wait(timeout=5)

    def reader():
        with lock.read():
            reader_done.set()

    w = threading.Thread(target=writer)
    w.start()
    inside_write.wait(timeout=2)
    r = threading.Thread(target=reader)
    r.start()
    assert not reader_done.wait(timeout=0.2)
    release.set()
    assert reader_done.wait(timeout=2)
    w.join()
    r.join()


def test_readers_share_the_lock():
    lock = ReadWriteLock()
    both_inside = threading.Barrier(2, timeout=2)

    def reader():
        with lock.read():
            both_inside.wait()

    threads = [threading.Thread(target=reader) for _ in range(2)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert not both_inside.broken
