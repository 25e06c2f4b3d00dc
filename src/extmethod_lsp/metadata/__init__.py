"""Reference assemblies bundled with extmethod-lsp."""

from __future__ import annotations

from .reference_assemblies import (
    build_reference,
    build_reference_from_files,
    default_references,
    read_stub,
)

__all__ = [
    "build_reference",
    "build_reference_from_files",
    "default_references",
    "read_stub",
]
