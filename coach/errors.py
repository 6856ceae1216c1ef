from __future__ import annotations


class UnresolvableMove(ValueError):
    """Neither the notation nor the from/to pair names a legal move."""


class MalformedInitialPosition(ValueError):
    """A FEN handed to us (usually by the vision service) could not be loaded."""


class NarratorError(RuntimeError):
    """The AI narrative service failed or returned something unusable."""
