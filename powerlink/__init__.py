"""
PowerLink - Control Server Package
==================================
The embedded HTTP control server that exposes this PC's power state
(shutdown, restart, lock) to other devices on the local network.

This package provides:
- Shared server state guarded for concurrent access
- Local IPv4 / connection URL discovery
- Platform-specific power commands dispatched fire-and-forget
- FastAPI application with the control page, info and power endpoints
- Shared-secret authentication via the X-Key header
- Control server lifecycle management (start/stop/status)

Architecture:
    state.py   -> ServerState: credentials, device name, running flag, listener
    network.py -> Primary IPv4 address and base URL resolution
    power.py   -> PowerActions per OS family, detached dispatch
    auth.py    -> X-Key check and FastAPI dependency
    routes.py  -> REST API endpoint handlers
    main.py    -> FastAPI app creation, control page loading
    manager.py -> ControlServer: listener + serving thread lifecycle
    config.py  -> Read/write config.yaml and .env files
"""

APP_NAME = "PC Power Link"
VERSION = "2.5"
PORT = 8000
