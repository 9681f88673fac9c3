"""
asgi.py -- ASGI entry point for SecureAuth.

Run with:  uvicorn asgi:app --reload

api/main.py builds the app; this module only re-exports it so the server
command stays stable if the app module moves.
"""

from api.main import app

__all__ = ["app"]
