from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from lsprotocol.types import (
    COMPLETION_ITEM_RESOLVE,
    INITIALIZE,
    TEXT_DOCUMENT_COMPLETION,
    TEXT_DOCUMENT_DID_CHANGE,
    TEXT_DOCUMENT_DID_CLOSE,
    TEXT_DOCUMENT_DID_OPEN,
    CompletionItem,
    CompletionList,
    CompletionOptions,
    CompletionParams,
    DidChangeTextDocumentParams,
    DidCloseTextDocumentParams,
    DidOpenTextDocumentParams,
    InitializeParams,
)

from extmethod_lsp import __version__

from .completion import CompletionMixin
from .documents import DocumentsMixin

if TYPE_CHECKING:
    from extmethod_lsp._analyzer.compilation import AssemblySymbol

logger = logging.getLogger(__name__)


class ExtensionLanguageServer(CompletionMixin, DocumentsMixin):
    """Language Server suggesting C# extension methods, imported or not."""


def create_server(references: list[AssemblySymbol] | None = None) -> ExtensionLanguageServer:
    """Build the server and register its LSP features.

    Args:
        references: Referenced assemblies of the analysed program; None
            means the bundled base class library
    """
    server = ExtensionLanguageServer("extmethod-lsp", __version__, references=references)

    @server.feature(INITIALIZE)
    def initialize(params: InitializeParams) -> None:
        """Initialize the language server."""
        logger.info("Initializing extmethod-lsp server")

        # Capture workspace root for cross-file analysis
        if params.workspace_folders:
            server.workspace_root = server._uri_to_path(params.workspace_folders[0].uri)
        elif params.root_uri:
            server.workspace_root = server._uri_to_path(params.root_uri)
        elif params.root_path:
            server.workspace_root = params.root_path
        logger.info(f"Workspace root: {server.workspace_root}")

        initialization_options = params.initialization_options
        if isinstance(initialization_options, dict):
            server.options = server.options.merged(initialization_options)
            server.completion_provider.options = server.options
        logger.info(f"Completion options: {server.options}")

        server._scan_workspace()

    @server.feature(TEXT_DOCUMENT_DID_OPEN)
    def did_open(params: DidOpenTextDocumentParams) -> None:
        """Handle document open event."""
        uri = params.text_document.uri
        server._open_document(uri, params.text_document.text)
        logger.info(f"Opened document: {uri}")

    @server.feature(TEXT_DOCUMENT_DID_CHANGE)
    def did_change(params: DidChangeTextDocumentParams) -> None:
        """Handle document change event."""
        server._change_document(params.text_document.uri, params.content_changes)

    @server.feature(TEXT_DOCUMENT_DID_CLOSE)
    def did_close(params: DidCloseTextDocumentParams) -> None:
        """Handle document close event."""
        server._close_document(params.text_document.uri)

    @server.feature(
        TEXT_DOCUMENT_COMPLETION,
        CompletionOptions(trigger_characters=["."], resolve_provider=True),
    )
    @server.thread()
    def completion(params: CompletionParams) -> CompletionList:
        """Provide completion suggestions."""
        return server._get_extension_completions(params.text_document.uri, params.position)

    @server.feature(COMPLETION_ITEM_RESOLVE)
    @server.thread()
    def completion_resolve(params: CompletionItem) -> CompletionItem:
        """Add the import edit of a completion item."""
        return server._resolve_completion_item(params)

    return server
