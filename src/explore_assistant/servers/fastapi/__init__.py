"""FastAPI server integration."""

from .app import create_app
from .routes import register_assistant_routes

__all__ = ["create_app", "register_assistant_routes"]
