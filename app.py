#!/usr/bin/env python3
"""
PowerLink - Entry Point
=======================
One-command startup for the PowerLink control server.

Usage:
    python app.py                          # Start with saved settings
    python app.py --device Den --password abc123 --save
    python app.py --no-auth                # Allow power actions without a key

This script:
    1. Loads settings from config.yaml and the secret from .env
    2. Applies command-line overrides and validates them
    3. Fills in the shared ServerState
    4. Starts the control server on a background thread
    5. Waits for Ctrl+C / SIGTERM and stops the server

After starting, open the printed URL on a phone or another PC on the
same network to control this machine.
"""

import argparse
import logging
import os
import signal
import sys
import threading

from powerlink import APP_NAME, VERSION
from powerlink.config import ConfigError, ConfigManager, mask_secret
from powerlink.manager import ControlServer, ControlServerError
from powerlink.state import ServerState

logger = logging.getLogger("powerlink")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description=f"{APP_NAME} - control this PC's power state from your LAN",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--host", type=str, default=None,
        help="Host binding address (overrides config.yaml)",
    )
    parser.add_argument(
        "--port", type=int, default=None,
        help="Port number for the control server (overrides config.yaml)",
    )
    parser.add_argument(
        "--device", type=str, default=None,
        help="Device name shown to clients (default: hostname)",
    )
    parser.add_argument(
        "--password", type=str, default=None,
        help="Shared secret clients must send in the X-Key header",
    )
    parser.add_argument(
        "--no-auth", action="store_true",
        help="Do not require a password for power actions",
    )
    parser.add_argument(
        "--save", action="store_true",
        help="Remember the device name, password and auth setting",
    )
    parser.add_argument(
        "--config-dir", type=str, default=None,
        help="Directory holding config.yaml and .env (default: project dir)",
    )
    parser.add_argument(
        "--log-level", type=str, default="info",
        choices=["debug", "info", "warning", "error"],
    )
    return parser


def resolve_settings(args: argparse.Namespace, config_manager: ConfigManager) -> tuple[dict, str]:
    """
    Merge saved settings with command-line overrides.

    Returns:
        (config dict, shared secret)

    Raises:
        ConfigError: If the result cannot be used to start the server.
    """
    config = config_manager.load()
    if "_config_error" in config:
        logger.warning("Ignoring unreadable config.yaml: %s", config.pop("_config_error"))

    if args.host:
        config["web"]["host"] = args.host
    if args.port is not None:
        config["web"]["port"] = args.port
    if args.device is not None:
        config["device"]["name"] = args.device
    if args.no_auth:
        config["device"]["auth_required"] = False

    password = args.password if args.password is not None else config_manager.get_password()
    config["device"]["name"] = ConfigManager.device_name(config)

    ConfigManager.validate(config, password)
    return config, password


def configure_state(state: ServerState, config: dict, password: str) -> None:
    """Copy the effective settings into the shared state before start."""
    state.set_device(config["device"]["name"])
    state.set_password(password)
    state.set_auth_required(bool(config["device"].get("auth_required", True)))


def format_banner(state: ServerState, server: ControlServer) -> str:
    """Startup banner with the connection details and a masked secret."""
    if state.auth_required:
        auth = f"X-Key required ({mask_secret(state.password)})"
    else:
        auth = "disabled"
    return "\n".join([
        f"  {APP_NAME} v{VERSION}",
        f"  Device  : {state.device}",
        f"  Local IP: {server.current_ip() or 'Unknown'}",
        f"  Connect : {server.current_url() or '(offline)'}",
        f"  Auth    : {auth}",
    ])


def main(argv: list[str] | None = None) -> int:
    """Parse arguments, load config, and run the control server."""
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s %(levelname)-7s %(name)s: %(message)s",
    )

    project_dir = args.config_dir or os.path.dirname(os.path.abspath(__file__))
    config_manager = ConfigManager(project_dir)

    try:
        config, password = resolve_settings(args, config_manager)
    except ConfigError as e:
        print(f"[ERROR] {e}", file=sys.stderr)
        return 1

    if args.save:
        config_manager.update({
            "device": {
                "name": config["device"]["name"],
                "auth_required": config["device"]["auth_required"],
            },
        })
        if password:
            config_manager.set_password(password)

    state = ServerState()
    configure_state(state, config, password)

    server = ControlServer(
        state,
        host=config["web"]["host"],
        port=config["web"]["port"],
        log_level=args.log_level,
    )

    try:
        server.start()
    except ControlServerError as e:
        print(f"[ERROR] {e}", file=sys.stderr)
        return 1

    # -- Print startup banner --------------------------------------------------
    print()
    print(format_banner(state, server))
    print()

    stop_requested = threading.Event()

    def _on_signal(signum, frame):
        stop_requested.set()

    signal.signal(signal.SIGINT, _on_signal)
    signal.signal(signal.SIGTERM, _on_signal)

    try:
        while not stop_requested.wait(0.5):
            pass
    finally:
        server.stop()

    return 0


if __name__ == "__main__":
    sys.exit(main())
