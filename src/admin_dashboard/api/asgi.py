"""ASGI entrypoint for the admin dashboard API."""

from admin_dashboard.api.app import create_app
from admin_dashboard.containers import build_container

app = create_app(build_container())
