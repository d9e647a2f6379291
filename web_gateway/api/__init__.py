"""API Package - routes, middleware, dependencies and the error normalizer.

Import from the submodules directly to avoid circular imports.
"""

__all__ = ["routes", "middleware", "deps", "errors"]
