"""ASGI entrypoint for the memorial studio API."""

from memorial_studio.api.app import create_app
from memorial_studio.containers import build_container

app = create_app(build_container())
