"""Exceptions raised while resolving versions against the registry."""


class ResolutionError(Exception):
    """Base class for registry resolution failures."""


class InvalidRevisionError(ResolutionError):
    """The revision token matched no release, or its metadata is incomplete."""

    def __init__(self, revision: str, reason: str = ""):
        self.revision = revision
        self.reason = reason
        message = f'Invalid revision provided: "{revision}".'
        if reason:
            message += f" ({reason})"
        super().__init__(message)


class NoMatchingVersionError(ResolutionError):
    """A version query resolved to an empty set of published versions."""

    def __init__(self, query: str, reason: str = ""):
        self.query = query
        self.reason = reason
        message = f'Found no versions matching "{query}".'
        if reason:
            message += f" ({reason})"
        super().__init__(message)
