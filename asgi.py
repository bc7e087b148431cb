"""
asgi.py -- ASGI entry point for the bookstore API.

Run with:  uvicorn asgi:app --reload

Importing this module reads settings and builds the app. A missing or invalid
JWT_KEY / JWT_ISSUER raises here, so the server refuses to start.
"""

from api.main import create_app

app = create_app()
