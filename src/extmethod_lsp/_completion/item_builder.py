"""Turn accepted candidates into ranked completion items."""

from __future__ import annotations

from typing import TYPE_CHECKING

from extmethod_lsp.constants import TAG_EXTENSION_METHOD, TAG_INTERNAL, TAG_PUBLIC
from extmethod_lsp.models import Accessibility, ExtensionCompletionItem
from extmethod_lsp.options import CompletionOptions

if TYPE_CHECKING:
    from collections.abc import Iterable

    from extmethod_lsp.models import ExtensionCandidate


class CompletionItemBuilder:
    """Dedupe, filter by the typed prefix and rank.

    Prefix matching ignores case; names matching the prefix with the exact
    case rank first. Identical signatures from different namespaces stay
    distinct items.
    """

    def __init__(self, options: CompletionOptions | None = None):
        self.options = options or CompletionOptions()

    def build(
        self,
        candidates: Iterable[ExtensionCandidate],
        typed_prefix: str = "",
        imported_namespaces: set[str] | frozenset[str] = frozenset(),
    ) -> list[ExtensionCompletionItem]:
        unique: dict[tuple[str, str, str], ExtensionCandidate] = {}
        for candidate in candidates:
            key = (candidate.name, candidate.parameter_signature, candidate.declaring_namespace)
            unique.setdefault(key, candidate)

        lowered = typed_prefix.lower()
        matching = [
            candidate
            for candidate in unique.values()
            if candidate.name.lower().startswith(lowered)
        ]
        matching.sort(key=lambda candidate: self._rank(candidate, typed_prefix, imported_namespaces))

        width = len(str(len(matching)))
        return [
            self._item(candidate, f"{index:0{width}d}")
            for index, candidate in enumerate(matching)
        ]

    def _rank(
        self,
        candidate: ExtensionCandidate,
        typed_prefix: str,
        imported_namespaces: set[str] | frozenset[str],
    ) -> tuple:
        exact_case = 0 if candidate.name.startswith(typed_prefix) else 1
        imported = 0
        if self.options.sort_completions_after_imported:
            imported = 0 if is_imported(candidate.declaring_namespace, imported_namespaces) else 1
        return (
            exact_case,
            imported,
            candidate.name.lower(),
            candidate.name,
            candidate.declaring_namespace,
            candidate.parameter_signature,
        )

    @staticmethod
    def _item(candidate: ExtensionCandidate, sort_text: str) -> ExtensionCompletionItem:
        name = candidate.name
        tags = {TAG_EXTENSION_METHOD}
        tags.add(TAG_PUBLIC if candidate.accessibility is Accessibility.PUBLIC else TAG_INTERNAL)
        return ExtensionCompletionItem(
            display_text=f"{name}<>" if candidate.generic_arity else name,
            sort_text=sort_text,
            origin_namespace=candidate.declaring_namespace,
            insertion_template=name,
            tags=frozenset(tags),
            filter_text=name,
            detail=f"({TAG_EXTENSION_METHOD}) {candidate.method.signature()}",
            candidate=candidate,
        )


def is_imported(namespace: str, imported_namespaces: set[str] | frozenset[str]) -> bool:
    """The global namespace is always in scope."""
    return not namespace or namespace in imported_namespaces
