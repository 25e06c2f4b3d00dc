"""Exception taxonomy for the extension method completion engine.

None of these ever reach the user: classification misses are plain ``None``
results, collaborator failures degrade to a text-only commit, and malformed
symbols are skipped one at a time.
"""

from __future__ import annotations


class ExtensionCompletionError(Exception):
    """Base class for all engine errors."""


class CompletionCancelled(ExtensionCompletionError):
    """The request's cancellation token was signalled.

    Raised cooperatively between expensive steps and propagated to the host
    as an abort, never logged as a failure.
    """


class CollaboratorUnavailable(ExtensionCompletionError):
    """The host's import-insertion service could not be located or invoked."""


class MalformedProgramState(ExtensionCompletionError):
    """A symbol or expression refers to an unresolved or error type."""

    def __init__(self, message: str, symbol_name: str | None = None):
        super().__init__(message)
        self.symbol_name = symbol_name
