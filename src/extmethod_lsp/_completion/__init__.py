"""
Completion package - extension method suggestions at a member access.

Classifies the caret, enumerates and filters extension methods and builds
the ranked items the server hands to the editor.
"""

from __future__ import annotations

from .aggregate import AggregateCompletionProvider
from .applicability import ApplicabilityFilter
from .context_classifier import classify
from .imports import HostServiceImportInserter, ImportInserter
from .item_builder import CompletionItemBuilder
from .provider import ExtensionMethodsCompletionProvider
from .symbol_enumerator import SymbolSpaceEnumerator

__all__ = [
    "AggregateCompletionProvider",
    "ApplicabilityFilter",
    "CompletionItemBuilder",
    "ExtensionMethodsCompletionProvider",
    "HostServiceImportInserter",
    "ImportInserter",
    "SymbolSpaceEnumerator",
    "classify",
]
