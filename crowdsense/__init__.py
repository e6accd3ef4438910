# path: crowdsense/__init__.py
"""Query service for the CrowdSense beacon fleet.

This package contains the geo, name and crowd query components, the
PostgreSQL store adapter they read from, configuration and the FastAPI
application exposing them. The application is started with
`python -m crowdsense.main` in local development or served by
`uvicorn crowdsense.main:app`.
"""

__all__ = ["create_app"]


def __getattr__(name):
    # main builds a module-level app on import, so defer it until asked for
    if name == "create_app":
        from .main import create_app

        return create_app
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
