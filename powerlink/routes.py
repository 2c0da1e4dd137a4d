"""
PowerLink - REST API Routes
===========================
HTTP API endpoints of the control server.

Route groups:
    /api/info            - Device identity and connection details (public)
    /api/power/shutdown  - Power off this PC (X-Key protected)
    /api/power/restart   - Reboot this PC (X-Key protected)
    /api/power/lock      - Lock the desktop session (X-Key protected)

Power routes accept any HTTP method. They answer {"ok": true} first and
dispatch the OS command afterwards, so a client must not read the
response as proof that the machine actually powered off.
"""

from fastapi import APIRouter, BackgroundTasks, Depends
from pydantic import BaseModel, Field

from powerlink import PORT, VERSION
from powerlink.auth import require_key
from powerlink.network import base_url, primary_ipv4
from powerlink.power import PowerAction, PowerActions, dispatch_detached
from powerlink.state import ServerState

# Power routes answer to any of these.
ANY_METHOD = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


# =============================================================================
# Response Models (Pydantic)
# =============================================================================

class InfoResponse(BaseModel):
    """Snapshot served at /api/info."""
    device: str = Field(..., description="Display name of this PC")
    ip: str = Field(..., description="Primary LAN IPv4 address, empty when offline")
    url: str = Field(..., description="Connection URL, empty when offline")
    version: str = Field(..., description="Protocol version")
    auth_required: bool = Field(..., description="Whether power routes need X-Key")

class ActionResponse(BaseModel):
    """Acknowledgment of a dispatched power action."""
    ok: bool = True


# =============================================================================
# Router Factory
# =============================================================================

def create_router(
    state: ServerState,
    power_actions: PowerActions,
    port: int = PORT,
) -> APIRouter:
    """
    Create the API router with all endpoints.

    Args:
        state:         Shared server state (device, secret, auth toggle).
        power_actions: Platform power commands (or a test double).
        port:          Port advertised in the connection URL.

    Returns:
        Configured APIRouter with all endpoints registered.
    """
    router = APIRouter(prefix="/api")

    auth = Depends(require_key(state))

    # =========================================================================
    # INFO ROUTE - No authentication required
    # =========================================================================

    @router.get("/info", response_model=InfoResponse)
    async def info():
        """Device name, address and auth mode for clients on the LAN."""
        return InfoResponse(
            device=state.device,
            ip=primary_ipv4() or "",
            url=base_url(port),
            version=VERSION,
            auth_required=state.auth_required,
        )

    # =========================================================================
    # POWER ROUTES - Requires X-Key when auth is enabled
    # =========================================================================

    def _register(action: PowerAction) -> None:
        async def handler(background_tasks: BackgroundTasks):
            # Runs after the response has been sent.
            background_tasks.add_task(dispatch_detached, power_actions, action)
            return ActionResponse(ok=True)

        handler.__name__ = f"power_{action.value}"
        handler.__doc__ = f"Acknowledge, then {action.value} this PC."
        router.add_api_route(
            f"/power/{action.value}",
            handler,
            methods=ANY_METHOD,
            response_model=ActionResponse,
            dependencies=[auth],
        )

    for action in PowerAction:
        _register(action)

    return router
