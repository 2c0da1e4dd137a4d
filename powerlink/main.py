"""
PowerLink - FastAPI Application
===============================
Creates and configures the FastAPI application served by the control
server.

Responsibilities:
    - Create the FastAPI app instance with metadata
    - Serve the control page at / exactly as shipped in web/index.html
    - Register the API router (info + power routes)
    - Turn authentication failures into a bare 401 response

The control page is opaque to the server: its bytes are read once when
the app is built and written back unchanged on every GET /.
"""

import logging
import os

from fastapi import FastAPI, Request
from fastapi.responses import Response

from powerlink import APP_NAME, PORT, VERSION
from powerlink.auth import AuthenticationFailed
from powerlink.power import PowerActions, detect_power_actions
from powerlink.routes import create_router
from powerlink.state import ServerState

logger = logging.getLogger(__name__)

PROJECT_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
DEFAULT_PAGE = os.path.join(PROJECT_DIR, "web", "index.html")


def load_web_page(path: str = DEFAULT_PAGE) -> bytes:
    """
    Read the control page document.

    Args:
        path: Location of the HTML file.

    Returns:
        The file's bytes, or a small HTML error page naming the problem
        when the file cannot be read.
    """
    try:
        with open(path, "rb") as f:
            return f.read()
    except OSError as e:
        logger.error("Control page unavailable: %s", e)
        return f"<html><body><h1>Error: {e}</h1></body></html>".encode("utf-8")


def create_app(
    state: ServerState,
    power_actions: PowerActions | None = None,
    web_html: bytes | None = None,
    port: int = PORT,
) -> FastAPI:
    """
    Application factory: create and configure the FastAPI instance.

    Args:
        state:         Shared server state, also read by the front end.
        power_actions: Power command implementation. If None, the variant
                       for the running OS is detected.
        web_html:      Control page bytes. If None, web/index.html is loaded.
        port:          Port advertised in /api/info.

    Returns:
        Configured FastAPI application ready to run with uvicorn.
    """
    if power_actions is None:
        power_actions = detect_power_actions()
    if web_html is None:
        web_html = load_web_page()

    app = FastAPI(
        title=APP_NAME,
        description="LAN control server for this PC's power state",
        version=VERSION,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )

    app.state.server_state = state
    app.state.power_actions = power_actions

    @app.exception_handler(AuthenticationFailed)
    async def auth_failed(request: Request, exc: AuthenticationFailed):
        return Response(status_code=401)

    app.include_router(create_router(state, power_actions, port=port))

    @app.get("/")
    async def index():
        """Control page."""
        return Response(content=web_html, media_type="text/html; charset=utf-8")

    return app
