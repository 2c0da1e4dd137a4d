"""
PowerLink - Control Server Manager
==================================
Manages the lifecycle of the embedded HTTP control server.

The server runs uvicorn on a daemon thread so the front end stays
responsive. The listening socket is bound on the caller's thread before
the serving thread starts, which is what lets start() report a port
conflict as an exception instead of silently claiming to be running.

States:
    - Stopped : No listener; ServerState.running is False
    - Running : Listener bound and serving; ServerState holds its handle

Usage:
    server = ControlServer(state)
    server.start()          # Bind 0.0.0.0:8000 and serve in the background
    server.current_url()    # "http://192.168.1.20:8000"
    server.stop()           # Close the listener and wait for the thread
"""

import logging
import socket
import sys
import threading

import uvicorn

from powerlink import PORT
from powerlink.main import create_app
from powerlink.network import base_url, primary_ipv4
from powerlink.power import PowerActions, detect_power_actions
from powerlink.state import ServerState

logger = logging.getLogger(__name__)

DEFAULT_HOST = "0.0.0.0"
STOP_TIMEOUT = 10.0


class ControlServerError(Exception):
    """Base class for control server lifecycle errors."""


class ServerAlreadyRunning(ControlServerError):
    """start() was called while a listener is attached."""


class ServerBindError(ControlServerError):
    """The listening socket could not be bound (e.g. port in use)."""


def bind_socket(host: str, port: int) -> socket.socket:
    """
    Create a listening TCP socket.

    Raises:
        ServerBindError: If the address cannot be bound.
    """
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    try:
        # On Windows SO_REUSEADDR lets a second process steal the port.
        if sys.platform != "win32":
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.bind((host, port))
        sock.listen(128)
    except OSError as e:
        sock.close()
        raise ServerBindError(f"Cannot listen on {host}:{port}: {e}") from e
    sock.set_inheritable(True)
    return sock


class Listener:
    """
    Handle for one running server: the socket, uvicorn instance and thread.

    Owned by ServerState while the server is running.
    """

    def __init__(self, sock: socket.socket, server: uvicorn.Server, thread: threading.Thread):
        self.sock = sock
        self.server = server
        self.thread = thread
        self.host, self.port = sock.getsockname()[:2]

    def close(self, timeout: float = STOP_TIMEOUT) -> None:
        """
        Ask uvicorn to exit and wait for the serving thread.

        New connections are refused right away; requests already being
        handled are left to finish during uvicorn's graceful shutdown.
        """
        self.server.should_exit = True
        if self.thread is not threading.current_thread():
            self.thread.join(timeout=timeout)
            if self.thread.is_alive():
                logger.warning("Server thread still running after %.1fs", timeout)
        try:
            self.sock.close()
        except OSError:
            pass


class ControlServer:
    """
    Starts and stops the control server.

    This is the bridge between the configuration front end and the HTTP
    layer. The front end fills in ServerState (device name, secret, auth
    toggle) and then calls start(); request handlers read the same state
    object while the server runs.

    Attributes:
        state:         Shared server state.
        power_actions: Power command implementation used by the routes.
        host:          Address to bind (all interfaces by default).
        port:          Port to bind; 0 picks a free port (tests).
        log_level:     uvicorn log level.
    """

    def __init__(
        self,
        state: ServerState,
        power_actions: PowerActions | None = None,
        web_html: bytes | None = None,
        host: str = DEFAULT_HOST,
        port: int = PORT,
        log_level: str = "info",
    ):
        self.state = state
        self.power_actions = power_actions or detect_power_actions()
        self.web_html = web_html
        self.host = host
        self.port = port
        self.log_level = log_level

        # Serializes start/stop against each other
        self._lifecycle_lock = threading.Lock()

    def is_running(self) -> bool:
        return self.state.running

    @property
    def bound_port(self) -> int | None:
        """Actual port of the active listener, None when stopped."""
        listener = self.state.listener
        return listener.port if listener is not None else None

    def current_ip(self) -> str:
        """Primary LAN address, empty when offline."""
        return primary_ipv4() or ""

    def current_url(self) -> str:
        """Connection URL for clients, empty when offline."""
        return base_url(self.bound_port or self.port)

    def _serve(self, server: uvicorn.Server, sock: socket.socket) -> None:
        """Thread target: run uvicorn on the pre-bound socket."""
        try:
            server.run(sockets=[sock])
        except Exception:
            logger.exception("Control server crashed")
        finally:
            logger.info("Control server loop exited")

    def start(self) -> Listener:
        """
        Bind the listener and start serving on a background thread.

        Returns:
            The Listener handle now attached to ServerState.

        Raises:
            ServerAlreadyRunning: If the server is already running.
            ServerBindError:      If the port cannot be bound.
        """
        with self._lifecycle_lock:
            if self.state.running:
                raise ServerAlreadyRunning("Control server is already running")

            sock = bind_socket(self.host, self.port)
            port = sock.getsockname()[1]

            try:
                app = create_app(
                    self.state,
                    power_actions=self.power_actions,
                    web_html=self.web_html,
                    port=port,
                )
                config = uvicorn.Config(app, log_level=self.log_level)
                server = uvicorn.Server(config)

                thread = threading.Thread(
                    target=self._serve,
                    args=(server, sock),
                    daemon=True,
                    name="powerlink-server",
                )
                listener = Listener(sock, server, thread)
                thread.start()
            except BaseException:
                sock.close()
                raise

            self.state.attach_listener(listener)
            logger.info("Control server listening on %s:%d", self.host, port)
            return listener

    def stop(self) -> None:
        """
        Close the listener and mark the server stopped.

        Safe to call when the server is not running (no-op), and while
        requests are in flight.
        """
        with self._lifecycle_lock:
            listener = self.state.detach_listener()
            if listener is None:
                return
            listener.close()
            logger.info("Control server stopped")
