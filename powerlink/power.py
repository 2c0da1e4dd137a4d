"""
PowerLink - Power Actions
=========================
Runs the host operating system's own power commands.

Each OS family gets a PowerActions subclass that maps the three actions
to a command line. The variant is chosen once at startup with
detect_power_actions(); tests pass their own subclass instead.

Commands:
    Action    Windows                                   Linux-like (default)
    shutdown  shutdown /s /t 0                          systemctl poweroff
    restart   shutdown /r /t 0                          systemctl reboot
    lock      rundll32.exe user32.dll,LockWorkStation   loginctl lock-session

Fire-and-forget:
    dispatch_detached() runs an action on its own daemon thread and returns
    at once. The caller never sees the outcome: a successful shutdown ends
    this process anyway, and a failure (missing privilege, command not
    found) is only written to the log. The HTTP layer has already answered
    {"ok": true} by the time the command runs.
"""

import logging
import subprocess
import sys
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum

logger = logging.getLogger(__name__)


class PowerAction(str, Enum):
    SHUTDOWN = "shutdown"
    RESTART = "restart"
    LOCK = "lock"


@dataclass
class ActionResult:
    """Outcome of one power command."""
    action: PowerAction
    command: list[str] = field(default_factory=list)
    returncode: int | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.returncode == 0


class PowerActions(ABC):
    """
    Base class for an OS family's power commands.

    Subclasses only provide the command lines; perform() takes care of
    running them and turning every failure into an ActionResult.
    """

    name = "base"

    @abstractmethod
    def command_for(self, action: PowerAction) -> list[str]:
        """Return the argv that performs the given action."""

    def perform(self, action: PowerAction) -> ActionResult:
        """
        Run the command for an action and wait for it to exit.

        Args:
            action: Which power action to perform.

        Returns:
            ActionResult with the exit code, or the error that prevented
            the command from running. Never raises for OS-level failures.
        """
        action = PowerAction(action)
        command = self.command_for(action)
        result = ActionResult(action=action, command=command)
        try:
            completed = subprocess.run(
                command,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                check=False,
            )
            result.returncode = completed.returncode
        except OSError as e:
            result.error = str(e)
        return result

    def shutdown(self) -> ActionResult:
        return self.perform(PowerAction.SHUTDOWN)

    def restart(self) -> ActionResult:
        return self.perform(PowerAction.RESTART)

    def lock(self) -> ActionResult:
        return self.perform(PowerAction.LOCK)


class WindowsPowerActions(PowerActions):
    name = "windows"

    COMMANDS = {
        PowerAction.SHUTDOWN: ["shutdown", "/s", "/t", "0"],
        PowerAction.RESTART: ["shutdown", "/r", "/t", "0"],
        PowerAction.LOCK: ["rundll32.exe", "user32.dll,LockWorkStation"],
    }

    def command_for(self, action: PowerAction) -> list[str]:
        return list(self.COMMANDS[PowerAction(action)])


class LinuxPowerActions(PowerActions):
    """systemd session/service-manager commands; the default family."""

    name = "linux"

    COMMANDS = {
        PowerAction.SHUTDOWN: ["systemctl", "poweroff"],
        PowerAction.RESTART: ["systemctl", "reboot"],
        PowerAction.LOCK: ["loginctl", "lock-session"],
    }

    def command_for(self, action: PowerAction) -> list[str]:
        return list(self.COMMANDS[PowerAction(action)])


def detect_power_actions(platform: str | None = None) -> PowerActions:
    """
    Pick the PowerActions variant for the running OS.

    Args:
        platform: A sys.platform value; defaults to the current one.

    Returns:
        WindowsPowerActions on Windows, LinuxPowerActions everywhere else.
    """
    platform = platform or sys.platform
    if platform.startswith("win"):
        return WindowsPowerActions()
    return LinuxPowerActions()


def _run_and_log(actions: PowerActions, action: PowerAction) -> None:
    """Thread target: perform the action and log its outcome."""
    try:
        result = actions.perform(action)
    except Exception:
        logger.exception("Power action '%s' crashed", action.value)
        return

    if result.ok:
        logger.info("Power action '%s' completed", action.value)
    elif result.error:
        logger.warning(
            "Power action '%s' could not run %s: %s",
            action.value, result.command, result.error,
        )
    else:
        logger.warning(
            "Power action '%s' exited with code %s (%s)",
            action.value, result.returncode, result.command,
        )


def dispatch_detached(actions: PowerActions, action: PowerAction) -> threading.Thread:
    """
    Start a power action on a daemon thread without waiting for it.

    Once dispatched the action cannot be cancelled and its outcome is not
    reported back; see the module docstring.

    Returns:
        The started thread (only useful to tests that want to join it).
    """
    action = PowerAction(action)
    logger.info("Dispatching power action '%s' via %s", action.value, actions.name)
    thread = threading.Thread(
        target=_run_and_log,
        args=(actions, action),
        daemon=True,
        name=f"powerlink-{action.value}",
    )
    thread.start()
    return thread
