"""
User Service - user records with a change-feed relay to the event bus.
"""

__version__ = "0.3.0"


def get_app():
    """Get the FastAPI application instance (lazy import to avoid initialization issues)."""
    from .main import app
    return app


__all__ = ["get_app", "__version__"]
