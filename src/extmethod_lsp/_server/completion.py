"""Completion mixin for providing autocompletion functionality."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from lsprotocol.types import (
    CompletionItem,
    CompletionItemKind,
    CompletionItemLabelDetails,
    CompletionList,
    Position,
    Range,
    TextEdit,
)

from extmethod_lsp._completion.context_classifier import identifier_span
from extmethod_lsp.cancellation import CancellationToken
from extmethod_lsp.exceptions import CompletionCancelled

from .base import LSPServerBase
from .utils import position_to_offset, to_range, to_text_edit

if TYPE_CHECKING:
    from extmethod_lsp.models import ExtensionCompletionItem

logger = logging.getLogger(__name__)


class CompletionMixin(LSPServerBase):
    """Provides extension method completion for the LSP server."""

    def _start_request(self, uri: str) -> CancellationToken:
        """A new completion request supersedes the previous one on the same document."""
        token = CancellationToken()
        previous = self.pending_tokens.get(uri)
        if previous is not None:
            previous.cancel()
        self.pending_tokens[uri] = token
        return token

    def _finish_request(self, uri: str, token: CancellationToken) -> None:
        if self.pending_tokens.get(uri) is token:
            del self.pending_tokens[uri]

    def _get_extension_completions(self, uri: str, position: Position) -> CompletionList:
        document = self.documents.get(uri)
        if document is None:
            return CompletionList(is_incomplete=False, items=[])

        token = self._start_request(uri)
        offset = position_to_offset(document.text, position)
        try:
            compilation = self._get_compilation()
            items = self.completion_provider.provide_completions(
                compilation, document, offset, token, self.options
            )
        except CompletionCancelled:
            logger.debug(f"Completion at {uri}:{position.line}:{position.character} was cancelled")
            return CompletionList(is_incomplete=True, items=[])
        finally:
            self._finish_request(uri, token)

        start, end = identifier_span(document.text, offset)
        context_range = to_range(document.text, start, end)

        completions = [
            self._to_completion_item(item, uri, position, context_range) for item in items
        ]
        return CompletionList(is_incomplete=False, items=completions)

    @staticmethod
    def _to_completion_item(
        item: ExtensionCompletionItem, uri: str, position: Position, context_range: Range
    ) -> CompletionItem:
        return CompletionItem(
            label=item.display_text,
            kind=CompletionItemKind.Method,
            detail=item.detail,
            label_details=CompletionItemLabelDetails(description=item.origin_namespace or None),
            sort_text=item.sort_text,
            filter_text=item.filter_text,
            text_edit=TextEdit(range=context_range, new_text=item.insertion_template),
            data={
                "uri": uri,
                "line": position.line,
                "character": position.character,
                "name": item.candidate.name,
                "signature": item.candidate.parameter_signature,
                "namespace": item.origin_namespace,
                "tags": sorted(item.tags),
            },
        )

    def _resolve_completion_item(self, completion: CompletionItem) -> CompletionItem:
        """Attach the ``using`` edit committing ``completion`` needs."""
        data: Any = completion.data
        if not isinstance(data, dict) or "uri" not in data:
            return completion
        document = self.documents.get(data["uri"])
        if document is None:
            return completion

        offset = position_to_offset(document.text, Position(line=data["line"], character=data["character"]))
        compilation = self._get_compilation()
        context = self.extension_provider.classify(compilation, document, offset)
        if context is None:
            return completion

        items = self.extension_provider.complete(context, document, options=self.options)
        item = next(
            (
                candidate
                for candidate in items
                if candidate.candidate.name == data.get("name")
                and candidate.candidate.parameter_signature == data.get("signature")
                and candidate.origin_namespace == data.get("namespace")
            ),
            None,
        )
        if item is None:
            return completion

        change = self.extension_provider.get_change(document, item, context, self.options)
        if change.import_added:
            completion.additional_text_edits = [
                to_text_edit(document.text, import_change) for import_change in change.import_changes
            ]
        return completion
