"""Action nodes package."""

from .http import HTTPExecutor

__all__ = [
    "HTTPExecutor",
]
