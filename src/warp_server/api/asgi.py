"""ASGI entrypoint for the Warp server."""

from warp_server.api.app import create_app
from warp_server.containers import build_container

app = create_app(build_container())
