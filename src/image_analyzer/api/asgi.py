"""ASGI entrypoint for the image analyzer API."""

from image_analyzer.api.app import create_app
from image_analyzer.containers import build_container

app = create_app(build_container())
