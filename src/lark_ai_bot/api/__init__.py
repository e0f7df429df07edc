"""HTTP surface: FastAPI app and the Lark webhook route."""

from .app import create_app

__all__ = ["create_app"]
