"""
errors.py — Error taxonomy for file emission.

Collision and reference-loss findings are advisory and never raised;
they travel as diagnostics (see diagnostics.py). Filesystem failures
surface as the built-in OSError family.
"""

from typing import Optional


class BuildError(Exception):
    """Base class for tokenforge errors."""


class ConfigurationError(BuildError, ValueError):
    """
    Invalid file spec or build configuration.

    Fatal for the file (or config) being processed. `field` names the
    offending setting, e.g. 'format' or 'destination'.
    """

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class FormatterError(BuildError):
    """A formatter returned something that cannot be written to a file."""


class UnresolvedReferenceError(BuildError):
    """A token value references a path that does not exist in the dictionary."""

    def __init__(self, message: str, reference: Optional[str] = None):
        super().__init__(message)
        self.reference = reference
