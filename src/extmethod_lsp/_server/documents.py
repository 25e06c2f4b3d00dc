"""Document tracking and compilation building for the LSP server."""

from __future__ import annotations

import logging
from pathlib import Path

from extmethod_lsp._analyzer.compilation import Compilation, SourceDocument
from extmethod_lsp.constants import EXCLUDED_DIRS

from .base import LSPServerBase
from .utils import apply_content_change

logger = logging.getLogger(__name__)


class DocumentsMixin(LSPServerBase):
    """Keeps open documents and workspace files, and the compilation built from them."""

    def _open_document(self, uri: str, text: str) -> None:
        path = self._uri_to_path(uri)
        self.documents[uri] = SourceDocument(path, text)
        self._invalidate_compilation()

    def _change_document(self, uri: str, changes) -> None:
        document = self.documents.get(uri)
        if document is None:
            logger.warning(f"Change for unknown document: {uri}")
            return
        text = document.text
        for change in changes:
            text = apply_content_change(text, getattr(change, "range", None), change.text)
        self.documents[uri] = document.with_text(text)
        self._invalidate_compilation()

    def _close_document(self, uri: str) -> None:
        self.documents.pop(uri, None)
        token = self.pending_tokens.pop(uri, None)
        if token is not None:
            token.cancel()
        self._invalidate_compilation()

    def _scan_workspace(self) -> None:
        """Load every ``.cs`` file under the workspace root."""
        self.workspace_documents = {}
        if not self.workspace_root:
            return
        root = Path(self.workspace_root)
        if not root.is_dir():
            logger.warning(f"Workspace root is not a directory: {root}")
            return

        for path in sorted(root.rglob("*.cs")):
            relative = path.relative_to(root)
            if any(part in EXCLUDED_DIRS for part in relative.parts[:-1]):
                continue
            try:
                text = path.read_text(encoding="utf-8-sig")
            except (OSError, UnicodeDecodeError) as e:
                logger.warning(f"Skipping {path}: {e}")
                continue
            self.workspace_documents[str(path)] = SourceDocument(str(path), text)
        logger.info(f"Found {len(self.workspace_documents)} C# files in {root}")
        self._invalidate_compilation()

    def _get_compilation(self) -> Compilation:
        """Compilation of the workspace with open documents overriding their files."""
        with self.compilation_lock:
            if self._compilation is None:
                sources = dict(self.workspace_documents)
                for document in self.documents.values():
                    sources[document.path] = document
                self._compilation = Compilation(sources.values(), self.references)
            return self._compilation
