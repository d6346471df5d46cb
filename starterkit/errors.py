"""Exception hierarchy shared across starterkit.

Module-specific errors (``ToolVersionError``, ``ProbeTimeoutError``,
``ComposeError``) live next to the code that raises them and derive from
:class:`StarterKitError`, so the CLI catches every expected failure at one
seam and turns it into exit status 1.
"""

from __future__ import annotations


class StarterKitError(Exception):
    """Base class for every error the kit reports to the user."""


class ValidationError(StarterKitError):
    """Raised for a bad project name or a missing required argument.

    Always raised before anything on disk is touched.
    """

    def __init__(self, message: str, value: str = "") -> None:
        self.value = value
        super().__init__(message)
