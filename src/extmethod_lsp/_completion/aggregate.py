"""Run several completion providers as one."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Protocol

from extmethod_lsp import cancellation
from extmethod_lsp.exceptions import CompletionCancelled
from extmethod_lsp.options import CompletionOptions

if TYPE_CHECKING:
    from extmethod_lsp._analyzer.compilation import Compilation, SourceDocument
    from extmethod_lsp.cancellation import CancellationToken

logger = logging.getLogger(__name__)


class CompletionProvider(Protocol):
    def provide_completions(
        self,
        compilation: Compilation,
        document: SourceDocument,
        position: int,
        token: CancellationToken = ...,
        options: CompletionOptions | None = ...,
    ) -> list[Any]: ...


class AggregateCompletionProvider:
    """Asks each provider in turn and concatenates their items.

    A failing provider is logged and skipped; cancellation aborts the whole
    request.
    """

    def __init__(self, options: CompletionOptions | None, *providers: CompletionProvider):
        self.options = options or CompletionOptions()
        self.providers = providers

    def provide_completions(
        self,
        compilation: Compilation,
        document: SourceDocument,
        position: int,
        token: CancellationToken = cancellation.NONE,
        options: CompletionOptions | None = None,
    ) -> list[Any]:
        options = options or self.options
        items: list[Any] = []
        for provider in self.providers:
            token.raise_if_cancellation_requested()
            try:
                items.extend(
                    provider.provide_completions(compilation, document, position, token, options)
                )
            except CompletionCancelled:
                raise
            except Exception:
                logger.exception(f"Completion provider {type(provider).__name__} failed")
        return items
