"""
Compilations: a program's source documents bound against its references.

A ``Compilation`` is immutable once built. Editing a document produces a
new compilation through :meth:`Compilation.with_document`, while the
referenced ``AssemblySymbol`` objects are shared between them.
"""

from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass, field
from functools import cached_property
from typing import TYPE_CHECKING, NamedTuple

from extmethod_lsp.constants import PREDEFINED_TYPES, SOURCE_ASSEMBLY_NAME

from .binder import Binder
from .declarations import DeclarationCollector, ImportScope
from .symbols import ErrorTypeRef, NamedTypeRef, TypeRef
from .ts_parser import parse

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from tree_sitter import Node, Tree

    from .declarations import Symbol
    from .semantic_model import SemanticModel
    from .symbols import NamedTypeSymbol

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SourceDocument:
    """One C# file. Offsets in the public API are character offsets."""

    path: str
    text: str

    @cached_property
    def source_bytes(self) -> bytes:
        return self.text.encode("utf-8")

    @cached_property
    def tree(self) -> Tree:
        return parse(self.source_bytes)

    def with_text(self, text: str) -> SourceDocument:
        return SourceDocument(self.path, text)

    def byte_offset(self, offset: int) -> int:
        if self.text.isascii():
            return offset
        return len(self.text[:offset].encode("utf-8"))

    def char_offset(self, byte_offset: int) -> int:
        if self.text.isascii():
            return byte_offset
        return len(self.source_bytes[:byte_offset].decode("utf-8", errors="replace"))


class LibraryIdentity(NamedTuple):
    """Identifies one build of a library; a new version is a new identity."""

    name: str
    version: str
    content_hash: str


@dataclass(eq=False, repr=False)
class AssemblySymbol:
    """The types one compiled unit declares."""

    name: str
    version: str
    content_hash: str
    types: list[NamedTypeSymbol] = field(default_factory=list)
    type_map: dict[str, NamedTypeSymbol] = field(default_factory=dict)
    namespaces: frozenset[str] = frozenset()

    @property
    def identity(self) -> LibraryIdentity:
        return LibraryIdentity(self.name, self.version, self.content_hash)

    def __repr__(self) -> str:
        return f"AssemblySymbol({self.name!r}, {self.version!r})"


def content_hash(documents: Iterable[SourceDocument]) -> str:
    digest = hashlib.sha256()
    for document in sorted(documents, key=lambda doc: doc.path):
        digest.update(document.path.encode("utf-8"))
        digest.update(b"\0")
        digest.update(document.source_bytes)
        digest.update(b"\0")
    return digest.hexdigest()


class Compilation:
    """A source assembly bound against a list of referenced assemblies.

    Args:
        documents: Source files of the program
        references: Referenced assemblies, in lookup order. ``None`` means
            the bundled base class library stubs.
        assembly_name: Name of the assembly the documents compile into
        version: Version of that assembly
    """

    def __init__(
        self,
        documents: Iterable[SourceDocument],
        references: Sequence[AssemblySymbol] | None = None,
        assembly_name: str = SOURCE_ASSEMBLY_NAME,
        version: str = "0.0.0",
    ):
        if references is None:
            from extmethod_lsp.metadata import default_references

            references = default_references()
        self.documents: tuple[SourceDocument, ...] = tuple(documents)
        self._documents_by_path = {document.path: document for document in self.documents}
        self.references: tuple[AssemblySymbol, ...] = tuple(references)
        self.assembly_name = assembly_name
        self.version = version

        collector = DeclarationCollector(assembly_name)
        for document in self.documents:
            collector.collect(document)
        collector.finish()

        self._type_index: dict[str, NamedTypeSymbol] = dict(collector.type_map)
        namespaces = set(collector.namespaces)
        for reference in self.references:
            for full_name, symbol in reference.type_map.items():
                self._type_index.setdefault(full_name, symbol)
            namespaces.update(reference.namespaces)
        self._namespaces = frozenset(namespaces)

        self.binder = Binder(self)
        self.binder.bind_declarations(collector)

        self.assembly = AssemblySymbol(
            name=assembly_name,
            version=version,
            content_hash=content_hash(self.documents),
            types=collector.types,
            type_map=collector.type_map,
            namespaces=frozenset(collector.namespaces),
        )
        self._declared = collector.declared
        self._regions: dict[str, list] = {}
        for region in collector.regions:
            self._regions.setdefault(region.path, []).append(region)
        logger.debug(
            f"Built compilation {assembly_name} with {len(self.documents)} documents, "
            f"{len(collector.type_map)} types, {len(self.references)} references"
        )

    def __repr__(self) -> str:
        return f"Compilation({self.assembly_name!r}, documents={len(self.documents)})"

    # Type lookup

    def get_type(self, full_name: str) -> NamedTypeSymbol | None:
        """Find a type by metadata name (``System.Collections.Generic.List`1``)."""
        return self._type_index.get(full_name)

    def namespace_exists(self, name: str) -> bool:
        return name in self._namespaces

    def special_type(self, keyword: str) -> TypeRef:
        """``int`` -> ``System.Int32`` (also accepts metadata names)."""
        symbol = self.get_type(PREDEFINED_TYPES.get(keyword, keyword))
        if symbol is None:
            return ErrorTypeRef(keyword)
        return NamedTypeRef(symbol)

    # Documents

    def document(self, path: str) -> SourceDocument | None:
        return self._documents_by_path.get(path)

    def with_document(self, document: SourceDocument) -> Compilation:
        """A new compilation where ``document`` replaces (or joins) the sources."""
        documents = [
            document if existing.path == document.path else existing for existing in self.documents
        ]
        if document.path not in self._documents_by_path:
            documents.append(document)
        return Compilation(documents, self.references, self.assembly_name, self.version)

    # Scopes and declarations

    def import_scope_at(self, path: str, byte_offset: int) -> ImportScope:
        """Innermost ``using`` scope governing ``byte_offset`` of ``path``."""
        best = None
        for region in self._regions.get(path, ()):
            if region.start_byte <= byte_offset <= region.end_byte and (
                best is None or region.start_byte >= best.start_byte
            ):
                best = region
        return best.scope if best is not None else ImportScope("")

    def imported_namespaces_at(self, path: str, byte_offset: int) -> set[str]:
        return self.import_scope_at(path, byte_offset).imported_namespaces()

    def declared_symbol(self, path: str, node: Node) -> Symbol | None:
        """Symbol declared by a type or member declaration node."""
        return self._declared.get((path, node.start_byte))

    def semantic_model(self, document: SourceDocument | str) -> SemanticModel:
        from .semantic_model import SemanticModel

        if isinstance(document, str):
            found = self.document(document)
            if found is None:
                raise KeyError(document)
            document = found
        return SemanticModel(self, document)

    @property
    def assemblies(self) -> tuple[AssemblySymbol, ...]:
        return (self.assembly, *self.references)

