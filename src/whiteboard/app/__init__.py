"""Whiteboard FastAPI application."""

from .main import create_app
from .settings import BoardServiceSettings

__all__ = ["create_app", "BoardServiceSettings"]
