"""Data models for the extension method completion engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ._analyzer.compilation import Compilation, SourceDocument
    from ._analyzer.symbols import MethodSymbol, NamedTypeSymbol, TypeRef


class Accessibility(IntEnum):
    """Declared or effective accessibility, ordered from least to most visible."""

    PROTECTED_OR_PRIVATE = 0
    INTERNAL = 1
    PUBLIC = 2


@dataclass(frozen=True)
class ReceiverContext:
    """What sits in front of the caret's member-access dot.

    ``compilation`` is the semantic snapshot ``receiver_type`` belongs to;
    candidates must be matched against the same snapshot.
    """

    receiver_type: TypeRef
    is_type_name_access: bool
    is_null_conditional: bool
    typed_prefix: str
    insertion_location: int
    replacement_end: int
    call_site_assembly: str
    compilation: Compilation = field(repr=False, compare=False)


@dataclass(frozen=True)
class ExtensionCandidate:
    """An extension method found in the program or one of its references."""

    method: MethodSymbol
    declaring_namespace: str
    declaring_container: NamedTypeSymbol
    is_obsolete: bool
    accessibility: Accessibility
    first_parameter_type: TypeRef
    generic_arity: int
    assembly_name: str

    @property
    def name(self) -> str:
        return self.method.name

    @property
    def parameter_signature(self) -> str:
        """Displayable parameter list without the receiver parameter."""
        return self.method.parameter_signature(skip_receiver=True)


@dataclass(frozen=True)
class ExtensionCompletionItem:
    """A renderable completion item for one accepted candidate."""

    display_text: str
    sort_text: str
    origin_namespace: str
    insertion_template: str
    tags: frozenset[str]
    filter_text: str
    detail: str
    candidate: ExtensionCandidate = field(repr=False, compare=False)


@dataclass(frozen=True)
class TextChange:
    """Replace ``text[start:end]`` with ``new_text`` (character offsets)."""

    start: int
    end: int
    new_text: str

    def apply(self, text: str) -> str:
        return text[: self.start] + self.new_text + text[self.end :]


@dataclass(frozen=True)
class CompletionChange:
    """Result of committing a completion item.

    ``text_change`` applies to the original document. ``import_changes``
    are expressed against the original document as well and never overlap
    ``text_change``.
    """

    text_change: TextChange
    import_changes: tuple[TextChange, ...]
    new_document: SourceDocument

    @property
    def import_added(self) -> bool:
        return bool(self.import_changes)
