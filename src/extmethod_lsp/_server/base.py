"""Base class for LSP server with interface for mixins."""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING
from urllib.parse import unquote, urlsplit

from pygls.server import LanguageServer

from extmethod_lsp._completion import (
    AggregateCompletionProvider,
    ExtensionMethodsCompletionProvider,
    HostServiceImportInserter,
)
from extmethod_lsp._completion.imports import ADD_IMPORTS_SERVICE
from extmethod_lsp.options import CompletionOptions

from .imports import HostServices, UsingDirectiveService

if TYPE_CHECKING:
    from extmethod_lsp._analyzer.compilation import AssemblySymbol, Compilation, SourceDocument
    from extmethod_lsp.cancellation import CancellationToken


class LSPServerBase(LanguageServer):
    """Base class defining the interface needed by mixins.

    This class provides the minimal interface that mixins expect,
    reducing the need for verbose type annotations in mixin methods.
    """

    def __init__(self, *args, references: list[AssemblySymbol] | None = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.workspace_root: str | None = None
        self.options = CompletionOptions.from_environment()
        self.references = references
        self.documents: dict[str, SourceDocument] = {}
        self.workspace_documents: dict[str, SourceDocument] = {}
        self.pending_tokens: dict[str, CancellationToken] = {}
        self.compilation_lock = threading.Lock()
        self._compilation: Compilation | None = None

        self.host_services = HostServices()
        self.host_services.register(ADD_IMPORTS_SERVICE, UsingDirectiveService())
        self.extension_provider = ExtensionMethodsCompletionProvider(
            HostServiceImportInserter(self.host_services)
        )
        self.completion_provider = AggregateCompletionProvider(self.options, self.extension_provider)

    def _uri_to_path(self, uri: str) -> str:
        """Convert URI to file path."""
        return unquote(urlsplit(uri).path)

    def _invalidate_compilation(self) -> None:
        with self.compilation_lock:
            self._compilation = None
