"""
CORS SECURITY
=============
CORS middleware helper for the API.
"""

# FLOW:
# - add_cors(app, origins) configures CORS once at startup.
# WHY:
# - Lets the page be served from a separate dev server.
# HOW:
# - Adds FastAPI CORSMiddleware with allowed origins.

from __future__ import annotations

from fastapi.middleware.cors import CORSMiddleware


def add_cors(app, origins: list[str]):
    if not origins:
        return
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials="*" not in origins,
        allow_methods=["GET", "POST", "DELETE"],
        allow_headers=["*"]
    )
