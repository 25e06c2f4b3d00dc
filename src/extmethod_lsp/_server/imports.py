"""Host services the completion engine looks up at commit time."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from extmethod_lsp._analyzer.ts_utils import children_of_type, field, named_children, node_text

if TYPE_CHECKING:
    from collections.abc import Sequence

    from tree_sitter import Node

    from extmethod_lsp._analyzer.compilation import Compilation, SourceDocument

logger = logging.getLogger(__name__)


class HostServices:
    """Registry of named services, looked up by the engine on demand."""

    def __init__(self):
        self._services: dict[str, Any] = {}

    def register(self, name: str, service: Any) -> None:
        self._services[name] = service

    def unregister(self, name: str) -> None:
        self._services.pop(name, None)

    def get_service(self, name: str) -> Any | None:
        return self._services.get(name)


class UsingDirectiveService:
    """Adds ``using`` directives to a C# document.

    A directive goes into the innermost enclosing namespace that already has
    usings, or to the top of the file when none has. Within the existing
    block it keeps alphabetical order, with ``System`` namespaces first when
    asked to, and copies the block's indentation and line endings.
    """

    def add_imports(
        self,
        compilation: Compilation,
        document: SourceDocument,
        context_location: int,
        namespaces: Sequence[str],
        place_system_namespace_first: bool,
    ) -> SourceDocument:
        imported = compilation.imported_namespaces_at(
            document.path, document.byte_offset(context_location)
        )
        for namespace in namespaces:
            if not namespace or namespace in imported:
                continue
            document, inserted_at, length = self._add_using(
                document, context_location, namespace, place_system_namespace_first
            )
            if inserted_at <= context_location:
                context_location += length
            imported.add(namespace)
            logger.debug(f"Added using {namespace} to {document.path}")
        return document

    def _add_using(
        self, document: SourceDocument, context_location: int, namespace: str, system_first: bool
    ) -> tuple[SourceDocument, int, int]:
        text = document.text
        eol = "\r\n" if "\r\n" in text else "\n"
        root = document.tree.root_node
        usings = self._using_block(root, document.byte_offset(context_location))

        if not usings:
            offset = self._top_of_file(document, root)
            directive = f"using {namespace};{eol}"
            if offset < len(text):
                directive += eol
            return document.with_text(text[:offset] + directive + text[offset:]), offset, len(directive)

        key = _sort_key(namespace, system_first)
        anchor = None
        for using in usings:
            name = _using_name(using)
            if name is not None and _sort_key(name, system_first) > key:
                anchor = using
                break

        if anchor is not None:
            offset = _line_start(text, document.char_offset(anchor.start_byte))
        else:
            offset = _line_end(text, document.char_offset(usings[-1].end_byte))
        first = document.char_offset(usings[0].start_byte)
        indent = text[_line_start(text, first) : first]
        directive = f"{indent}using {namespace};{eol}"
        if anchor is None and offset == len(text) and not text.endswith(("\n", "\r")):
            directive = eol + directive
        return document.with_text(text[:offset] + directive + text[offset:]), offset, len(directive)

    @staticmethod
    def _using_block(root: Node, byte_offset: int) -> list[Node]:
        """Plain usings of the innermost scope around ``byte_offset`` that has any."""
        containers = [root]
        node = root
        while True:
            inner = None
            for child in named_children(node):
                if child.start_byte <= byte_offset <= child.end_byte and child.type in (
                    "namespace_declaration",
                    "file_scoped_namespace_declaration",
                ):
                    inner = child
                    break
            if inner is None:
                break
            body = field(inner, "body")
            node = body if body is not None and body.type == "declaration_list" else inner
            containers.append(node)

        for container in reversed(containers):
            usings = [
                using for using in children_of_type(container, "using_directive") if _using_name(using)
            ]
            if usings:
                return usings
        return []

    @staticmethod
    def _top_of_file(document: SourceDocument, root: Node) -> int:
        for child in named_children(root):
            if child.type in ("extern_alias_directive", "using_directive"):
                continue
            return _line_start(document.text, document.char_offset(child.start_byte))
        return len(document.text)


def _using_name(using: Node) -> str | None:
    """Namespace of a plain ``using X.Y;``; None for static and alias directives."""
    if any(child.type in ("static", "=", "name_equals") for child in using.children):
        return None
    for child in named_children(using):
        if child.type in ("identifier", "qualified_name", "alias_qualified_name"):
            return node_text(child).replace(" ", "")
    return None


def _sort_key(namespace: str, system_first: bool) -> tuple:
    is_system = namespace == "System" or namespace.startswith("System.")
    return (0 if system_first and is_system else 1, namespace.lower(), namespace)


def _line_start(text: str, offset: int) -> int:
    return text.rfind("\n", 0, offset) + 1


def _line_end(text: str, offset: int) -> int:
    newline = text.find("\n", offset)
    return len(text) if newline == -1 else newline + 1

