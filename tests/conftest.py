import threading

import pytest
from fastapi.testclient import TestClient

from powerlink.main import create_app
from powerlink.power import ActionResult, PowerAction, PowerActions
from powerlink.state import ServerState

PAGE = b"<html><body>control page</body></html>"


class RecordingPowerActions(PowerActions):
    """Records actions instead of running OS commands."""

    name = "recording"

    def __init__(self):
        self.calls: list[PowerAction] = []
        self._lock = threading.Lock()
        self._called = threading.Condition(self._lock)

    def command_for(self, action: PowerAction) -> list[str]:
        return ["true", action.value]

    def perform(self, action: PowerAction) -> ActionResult:
        with self._called:
            self.calls.append(PowerAction(action))
            self._called.notify_all()
        return ActionResult(action=action, command=self.command_for(action), returncode=0)

    def wait_for_calls(self, count: int, timeout: float = 2.0) -> list[PowerAction]:
        with self._called:
            self._called.wait_for(lambda: len(self.calls) >= count, timeout=timeout)
            return list(self.calls)


@pytest.fixture
def state() -> ServerState:
    return ServerState(device="Workstation", password="abc123", auth_required=True)


@pytest.fixture
def power() -> RecordingPowerActions:
    return RecordingPowerActions()


@pytest.fixture
def fixed_network(monkeypatch):
    """Pin the detected address so info payloads are predictable."""
    monkeypatch.setattr("powerlink.routes.primary_ipv4", lambda: "192.168.1.20")
    monkeypatch.setattr(
        "powerlink.routes.base_url", lambda port=8000: f"http://192.168.1.20:{port}"
    )
    return "192.168.1.20"


@pytest.fixture
def client(state, power, fixed_network) -> TestClient:
    app = create_app(state, power_actions=power, web_html=PAGE)
    with TestClient(app) as c:
        yield c
