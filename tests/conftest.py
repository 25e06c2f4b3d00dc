"""Shared fixtures: compilations built from C# snippets and completion helpers."""

from __future__ import annotations

import pytest

from extmethod_lsp._analyzer.compilation import Compilation, SourceDocument
from extmethod_lsp._completion import AggregateCompletionProvider, ExtensionMethodsCompletionProvider
from extmethod_lsp.metadata import default_references
from extmethod_lsp.options import CompletionOptions

MAIN_PATH = "/workspace/Main.cs"


def _caret_after(source: str, marker: str) -> int:
    """Offset right after the last occurrence of ``marker``."""
    index = source.rindex(marker)
    return index + len(marker)


@pytest.fixture
def references():
    return default_references()


@pytest.fixture
def compile_sources(references):
    """Build a compilation whose first document is ``/workspace/Main.cs``."""

    def build(main: str, *others: str, extra_references=()):
        documents = [SourceDocument(MAIN_PATH, main)]
        documents.extend(
            SourceDocument(f"/workspace/Extensions{index}.cs", text)
            for index, text in enumerate(others)
        )
        return Compilation(documents, (*references, *extra_references))

    return build


@pytest.fixture
def provider():
    return AggregateCompletionProvider(CompletionOptions(), ExtensionMethodsCompletionProvider())


@pytest.fixture
def get_completions(compile_sources, provider):
    """Completion items with the caret placed right after ``marker`` in the main source."""

    def complete(main: str, *others: str, marker: str, options=None, extra_references=()):
        compilation = compile_sources(main, *others, extra_references=extra_references)
        document = compilation.document(MAIN_PATH)
        return provider.provide_completions(
            compilation, document, _caret_after(main, marker), options=options
        )

    return complete

