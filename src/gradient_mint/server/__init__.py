from .app import DEFAULT_DESCRIPTION, DEFAULT_NAME, create_app, parse_intent

__all__ = ["DEFAULT_DESCRIPTION", "DEFAULT_NAME", "create_app", "parse_intent"]
