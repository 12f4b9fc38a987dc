"""Version resolvers."""

from .npm import NpmVersionResolver

__all__ = [
    "NpmVersionResolver",
]
