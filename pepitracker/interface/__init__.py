"""Mini README: Interactive interfaces (web/CLI) for the funds tracker.

Exports the FastAPI application factory that serves the JSON API. The Typer
launcher in ``main_tracker.py`` builds on it.
"""

from .web_app import create_application

__all__ = ["create_application"]
