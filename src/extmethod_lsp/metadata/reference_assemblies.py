"""Reference assemblies: the public surface of libraries a program references.

The package bundles C# reference stubs for the parts of the base class
library the engine needs (``System.Private.CoreLib`` and ``System.Linq``).
Any other library can be described the same way and turned into an
``AssemblySymbol`` with :func:`build_reference`.
"""

from __future__ import annotations

import logging
from importlib import resources
from pathlib import Path
from typing import TYPE_CHECKING

from extmethod_lsp._analyzer.compilation import (
    Compilation,
    LibraryIdentity,
    SourceDocument,
    content_hash,
)

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from extmethod_lsp._analyzer.compilation import AssemblySymbol

logger = logging.getLogger(__name__)

CORELIB_NAME = "System.Private.CoreLib"
LINQ_NAME = "System.Linq"
BCL_VERSION = "8.0.0"

_built: dict[LibraryIdentity, AssemblySymbol] = {}


def read_stub(name: str) -> SourceDocument:
    """Load one bundled C# stub as a document."""
    stub = resources.files("extmethod_lsp.metadata").joinpath("stubs", f"{name}.cs")
    return SourceDocument(f"<{name}>", stub.read_text(encoding="utf-8"))


def build_reference(
    name: str,
    version: str,
    sources: Iterable[SourceDocument],
    references: Sequence[AssemblySymbol] = (),
) -> AssemblySymbol:
    """Compile ``sources`` into a reference assembly.

    Built assemblies are remembered per identity, so asking again for the
    same name, version and content returns the very same symbols.

    Args:
        name: Assembly name
        version: Assembly version
        sources: C# documents describing the library's declarations
        references: Assemblies the library itself references

    Returns:
        The assembly symbol of the library
    """
    global _built  # noqa: PLW0603
    documents = tuple(sources)
    identity = LibraryIdentity(name, version, content_hash(documents))
    existing = _built.get(identity)
    if existing is not None:
        return existing

    logger.debug(f"Building reference assembly {name} {version}")
    compilation = Compilation(documents, references, assembly_name=name, version=version)
    assembly = compilation.assembly
    # Replace the mapping wholesale; concurrent readers keep their view
    updated = {key: value for key, value in _built.items() if key.name != name}
    updated[identity] = assembly
    _built = updated
    return assembly


def build_reference_from_files(
    name: str,
    paths: Iterable[str | Path],
    version: str = "0.0.0",
    references: Sequence[AssemblySymbol] | None = None,
) -> AssemblySymbol:
    """Build a reference assembly from C# files on disk."""
    documents = [
        SourceDocument(str(path), Path(path).read_text(encoding="utf-8")) for path in paths
    ]
    if references is None:
        references = default_references()
    return build_reference(name, version, documents, references)


def default_references() -> tuple[AssemblySymbol, ...]:
    """The bundled base class library, corlib first."""
    corlib = build_reference(CORELIB_NAME, BCL_VERSION, [read_stub(CORELIB_NAME)], references=())
    linq = build_reference(LINQ_NAME, BCL_VERSION, [read_stub(LINQ_NAME)], references=(corlib,))
    return (corlib, linq)
