"""Models, configuration, CSV card import, JSON responses, WSGI middleware and SQL migrations for a flashcard service."""

__version__ = "0.1.0"

__all__ = ["config", "csvparse", "middleware", "migrate", "models", "responses"]