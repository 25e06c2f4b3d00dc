"""
Extension method completion provider.

Pipeline for one request: classify the caret, enumerate every extension
method of the program and its references, keep the applicable ones and
turn them into ranked items. Committing an item replaces the identifier
being typed and, when the method's namespace is not imported yet, asks the
import inserter to add it.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from extmethod_lsp import cancellation
from extmethod_lsp.exceptions import CollaboratorUnavailable
from extmethod_lsp.models import CompletionChange, TextChange
from extmethod_lsp.options import CompletionOptions

from .applicability import ApplicabilityFilter
from .context_classifier import classify
from .item_builder import CompletionItemBuilder, is_imported
from .symbol_enumerator import SymbolSpaceEnumerator

if TYPE_CHECKING:
    from extmethod_lsp._analyzer.compilation import Compilation, SourceDocument
    from extmethod_lsp.cancellation import CancellationToken
    from extmethod_lsp.models import ExtensionCompletionItem, ReceiverContext

    from .imports import ImportInserter

logger = logging.getLogger(__name__)


class ExtensionMethodsCompletionProvider:
    """Suggests applicable extension methods, imported or not.

    Args:
        import_inserter: Collaborator adding ``using`` directives on commit.
            Without one, commits only insert text.
        enumerator: Source of candidates, sharing the process-wide surface
            cache by default
    """

    def __init__(
        self,
        import_inserter: ImportInserter | None = None,
        enumerator: SymbolSpaceEnumerator | None = None,
    ):
        self.import_inserter = import_inserter
        self.enumerator = enumerator or SymbolSpaceEnumerator()

    def classify(
        self,
        compilation: Compilation,
        document: SourceDocument,
        position: int,
        token: CancellationToken = cancellation.NONE,
    ) -> ReceiverContext | None:
        return classify(compilation, document, position, token)

    def provide_completions(
        self,
        compilation: Compilation,
        document: SourceDocument,
        position: int,
        token: CancellationToken = cancellation.NONE,
        options: CompletionOptions | None = None,
    ) -> list[ExtensionCompletionItem]:
        options = options or CompletionOptions()
        if not options.enable_extension_methods_suggestions:
            return []
        context = self.classify(compilation, document, position, token)
        if context is None:
            return []
        return self.complete(context, document, token, options)

    def complete(
        self,
        context: ReceiverContext,
        document: SourceDocument,
        token: CancellationToken = cancellation.NONE,
        options: CompletionOptions | None = None,
    ) -> list[ExtensionCompletionItem]:
        """Items for an already classified caret."""
        options = options or CompletionOptions()
        if context.is_type_name_access:
            return []

        applicability = ApplicabilityFilter(options)
        accepted = []
        # Materialized before building so a cancelled walk leaves no partial list
        for candidate in self.enumerator.enumerate(
            context.compilation, token, user_code_only=options.user_code_only_suggestions
        ):
            if applicability.filter(candidate, context):
                accepted.append(candidate)
        token.raise_if_cancellation_requested()

        imported = context.compilation.imported_namespaces_at(
            document.path, document.byte_offset(context.insertion_location)
        )
        items = CompletionItemBuilder(options).build(accepted, context.typed_prefix, imported)
        logger.debug(
            f"{len(items)} extension methods for receiver at {context.insertion_location} "
            f"(prefix {context.typed_prefix!r})"
        )
        return items

    def get_change(
        self,
        document: SourceDocument,
        item: ExtensionCompletionItem,
        context: ReceiverContext,
        options: CompletionOptions | None = None,
    ) -> CompletionChange:
        """Commit ``item``: insert its text, then try to import its namespace."""
        options = options or CompletionOptions()
        text_change = TextChange(
            context.insertion_location, context.replacement_end, item.insertion_template
        )
        text_only = CompletionChange(text_change, (), document.with_text(text_change.apply(document.text)))

        namespace = item.origin_namespace
        imported = context.compilation.imported_namespaces_at(
            document.path, document.byte_offset(context.insertion_location)
        )
        if is_imported(namespace, imported) or self.import_inserter is None:
            return text_only

        try:
            with_import = self.import_inserter.add_imports(
                context.compilation,
                document,
                context.insertion_location,
                [namespace],
                options.place_system_namespace_first,
            )
        except CollaboratorUnavailable as e:
            logger.debug(f"Inserted {item.insertion_template} without importing {namespace}: {e}")
            return text_only

        import_change = diff_text(document.text, with_import.text)
        if import_change is None:
            return text_only
        if import_change.start < text_change.end and text_change.start < import_change.end:
            logger.debug(f"Import of {namespace} overlaps the completed identifier, skipping it")
            return text_only

        new_text = document.text
        for change in sorted((text_change, import_change), key=lambda change: change.start, reverse=True):
            new_text = change.apply(new_text)
        return CompletionChange(text_change, (import_change,), document.with_text(new_text))


def diff_text(old: str, new: str) -> TextChange | None:
    """Smallest single edit turning ``old`` into ``new``."""
    if old == new:
        return None
    limit = min(len(old), len(new))
    prefix = 0
    while prefix < limit and old[prefix] == new[prefix]:
        prefix += 1
    suffix = 0
    while suffix < limit - prefix and old[-1 - suffix] == new[-1 - suffix]:
        suffix += 1
    return TextChange(prefix, len(old) - suffix, new[prefix : len(new) - suffix])
