"""
Analyzer package - the C# semantic layer the completion engine runs on.

Parses documents with tree-sitter, collects and binds declarations into a
``Compilation`` and types expressions through a ``SemanticModel``.
"""

from __future__ import annotations

from .compilation import AssemblySymbol, Compilation, LibraryIdentity, SourceDocument
from .semantic_model import ExpressionInfo, ExpressionKind, SemanticModel
from .type_matcher import TypeMatcher

__all__ = [
    "AssemblySymbol",
    "Compilation",
    "ExpressionInfo",
    "ExpressionKind",
    "LibraryIdentity",
    "SemanticModel",
    "SourceDocument",
    "TypeMatcher",
]
