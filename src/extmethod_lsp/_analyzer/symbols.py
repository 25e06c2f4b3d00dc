"""
Symbol and type graph used by the semantic layer.

Definitions (``NamedTypeSymbol``, ``MethodSymbol``...) are mutable while a
compilation is being built and treated as read-only afterwards. Types as
they appear in code are immutable ``TypeRef`` values pointing at those
definitions, so ``List<string>`` is ``NamedTypeRef(List`1, (String,))``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Union

from extmethod_lsp.constants import NULLABLE_TYPE, OBJECT_TYPE, TYPE_KEYWORDS, VOID_TYPE
from extmethod_lsp.models import Accessibility


class TypeKind(Enum):
    CLASS = "class"
    STRUCT = "struct"
    INTERFACE = "interface"
    ENUM = "enum"
    DELEGATE = "delegate"


class Variance(Enum):
    INVARIANT = ""
    COVARIANT = "out"
    CONTRAVARIANT = "in"


@dataclass(eq=False)
class TypeParameterSymbol:
    """A generic parameter of a type or a method."""

    name: str
    ordinal: int
    variance: Variance = Variance.INVARIANT
    has_reference_constraint: bool = False
    has_value_constraint: bool = False
    has_constructor_constraint: bool = False
    has_notnull_constraint: bool = False
    constraint_types: list[TypeRef] = field(default_factory=list)
    declared_by_method: bool = False

    @property
    def is_unconstrained(self) -> bool:
        return not (
            self.has_reference_constraint
            or self.has_value_constraint
            or self.has_constructor_constraint
            or self.has_notnull_constraint
            or self.constraint_types
        )

    def __repr__(self) -> str:
        return f"TypeParameterSymbol({self.name!r})"


@dataclass(eq=False, repr=False)
class NamedTypeSymbol:
    """Definition of a class, struct, interface, enum or delegate.

    Partial declarations share one symbol. ``base_type`` and
    ``interfaces`` are filled in by the binder.
    """

    name: str
    kind: TypeKind
    namespace: str
    assembly_name: str
    declared_accessibility: Accessibility
    modifiers: frozenset[str] = frozenset()
    containing_type: NamedTypeSymbol | None = None
    type_parameters: list[TypeParameterSymbol] = field(default_factory=list)
    base_type: NamedTypeRef | None = None
    interfaces: list[NamedTypeRef] = field(default_factory=list)
    methods: list[MethodSymbol] = field(default_factory=list)
    fields: list[FieldSymbol] = field(default_factory=list)
    nested_types: dict[str, NamedTypeSymbol] = field(default_factory=dict)
    is_obsolete: bool = False
    is_record: bool = False

    @property
    def arity(self) -> int:
        return len(self.type_parameters)

    @property
    def metadata_name(self) -> str:
        """``List`1`` style name used as a lookup key."""
        return metadata_name(self.name, self.arity)

    @property
    def full_name(self) -> str:
        if self.containing_type is not None:
            return f"{self.containing_type.full_name}+{self.metadata_name}"
        if self.namespace:
            return f"{self.namespace}.{self.metadata_name}"
        return self.metadata_name

    @property
    def is_static(self) -> bool:
        return "static" in self.modifiers

    @property
    def is_generic(self) -> bool:
        return bool(self.type_parameters)

    @property
    def is_value_type(self) -> bool:
        return self.kind in (TypeKind.STRUCT, TypeKind.ENUM)

    @property
    def is_reference_type(self) -> bool:
        return self.kind in (TypeKind.CLASS, TypeKind.INTERFACE, TypeKind.DELEGATE)

    @property
    def effective_accessibility(self) -> Accessibility:
        accessibility = self.declared_accessibility
        if self.containing_type is not None:
            accessibility = min(accessibility, self.containing_type.effective_accessibility)
        return accessibility

    @property
    def has_default_constructor(self) -> bool:
        if self.kind in (TypeKind.STRUCT, TypeKind.ENUM):
            return True
        if self.kind is not TypeKind.CLASS or "abstract" in self.modifiers or self.is_static:
            return False
        constructors = [method for method in self.methods if method.is_constructor]
        if not constructors:
            return True
        return any(
            not method.parameters and method.declared_accessibility is Accessibility.PUBLIC
            for method in constructors
        )

    def members_named(self, name: str) -> tuple[list[FieldSymbol], list[MethodSymbol]]:
        return (
            [member for member in self.fields if member.name == name],
            [method for method in self.methods if method.name == name],
        )

    def nested_type(self, name: str, arity: int = 0) -> NamedTypeSymbol | None:
        return self.nested_types.get(metadata_name(name, arity))

    def construct(self, *type_arguments: TypeRef) -> NamedTypeRef:
        return NamedTypeRef(self, tuple(type_arguments))

    def self_reference(self) -> NamedTypeRef:
        """The type as seen from inside its own declaration (``List<T>``)."""
        return NamedTypeRef(
            self, tuple(TypeParameterRef(parameter) for parameter in self.type_parameters)
        )

    def __repr__(self) -> str:
        return f"NamedTypeSymbol({self.full_name!r})"


@dataclass(eq=False)
class ParameterSymbol:
    name: str
    type: TypeRef
    is_this: bool = False
    ref_kind: str = ""
    is_params: bool = False
    has_default: bool = False


@dataclass(eq=False, repr=False)
class MethodSymbol:
    """An ordinary method, constructor or delegate ``Invoke``."""

    name: str
    containing_type: NamedTypeSymbol
    declared_accessibility: Accessibility
    modifiers: frozenset[str] = frozenset()
    type_parameters: list[TypeParameterSymbol] = field(default_factory=list)
    parameters: list[ParameterSymbol] = field(default_factory=list)
    return_type: TypeRef | None = None
    is_constructor: bool = False
    is_obsolete: bool = False

    @property
    def is_static(self) -> bool:
        return "static" in self.modifiers

    @property
    def is_extension(self) -> bool:
        return self.is_static and bool(self.parameters) and self.parameters[0].is_this

    @property
    def arity(self) -> int:
        return len(self.type_parameters)

    @property
    def receiver_type(self) -> TypeRef | None:
        if not self.is_extension:
            return None
        return self.parameters[0].type

    @property
    def effective_accessibility(self) -> Accessibility:
        return min(self.declared_accessibility, self.containing_type.effective_accessibility)

    def parameter_signature(self, skip_receiver: bool = False) -> str:
        parameters = self.parameters[1:] if skip_receiver and self.is_extension else self.parameters
        rendered = []
        for parameter in parameters:
            prefix = "params " if parameter.is_params else ""
            if parameter.ref_kind:
                prefix += f"{parameter.ref_kind} "
            rendered.append(f"{prefix}{display_type(parameter.type)} {parameter.name}")
        return f"({', '.join(rendered)})"

    def signature(self) -> str:
        """``IEnumerable<TResult> Select<TSource, TResult>(Func<TSource, TResult> selector)``."""
        generic = ""
        if self.type_parameters:
            generic = f"<{', '.join(parameter.name for parameter in self.type_parameters)}>"
        return_type = display_type(self.return_type) if self.return_type is not None else "void"
        return f"{return_type} {self.name}{generic}{self.parameter_signature(skip_receiver=True)}"

    def __repr__(self) -> str:
        return f"MethodSymbol({self.containing_type.full_name}.{self.name})"


@dataclass(eq=False, repr=False)
class FieldSymbol:
    """Field, property, event, constant, enum member or indexer (``this[]``)."""

    name: str
    kind: str
    containing_type: NamedTypeSymbol
    declared_accessibility: Accessibility
    modifiers: frozenset[str] = frozenset()
    type: TypeRef | None = None
    parameters: list[ParameterSymbol] = field(default_factory=list)

    @property
    def is_static(self) -> bool:
        return "static" in self.modifiers or self.kind in ("const", "enum_member")

    def __repr__(self) -> str:
        return f"FieldSymbol({self.containing_type.full_name}.{self.name})"


@dataclass(frozen=True)
class NamedTypeRef:
    symbol: NamedTypeSymbol
    type_arguments: tuple[TypeRef, ...] = ()

    def __repr__(self) -> str:
        return f"NamedTypeRef({display_type(self)})"


@dataclass(frozen=True)
class ArrayTypeRef:
    element_type: TypeRef
    rank: int = 1


@dataclass(frozen=True)
class TypeParameterRef:
    parameter: TypeParameterSymbol


@dataclass(frozen=True)
class NullTypeRef:
    """Static type of the ``null`` literal."""


@dataclass(frozen=True)
class ErrorTypeRef:
    """A type that failed to bind."""

    name: str


@dataclass(frozen=True)
class NamespaceRef:
    """Result of resolving a name to a namespace rather than a type."""

    name: str


TypeRef = Union[NamedTypeRef, ArrayTypeRef, TypeParameterRef, NullTypeRef, ErrorTypeRef]

TypeMapping = dict[TypeParameterSymbol, "TypeRef"]

_MAX_SUPERTYPES = 256


def metadata_name(name: str, arity: int) -> str:
    return f"{name}`{arity}" if arity else name


def qualify(namespace: str, name: str) -> str:
    return f"{namespace}.{name}" if namespace else name


def type_mapping(type_ref: NamedTypeRef) -> TypeMapping:
    """Map the definition's type parameters to the reference's arguments."""
    return dict(zip(type_ref.symbol.type_parameters, type_ref.type_arguments))


def substitute(type_ref: TypeRef, mapping: TypeMapping) -> TypeRef:
    if not mapping:
        return type_ref
    if isinstance(type_ref, TypeParameterRef):
        return mapping.get(type_ref.parameter, type_ref)
    if isinstance(type_ref, NamedTypeRef):
        if not type_ref.type_arguments:
            return type_ref
        return NamedTypeRef(
            type_ref.symbol,
            tuple(substitute(argument, mapping) for argument in type_ref.type_arguments),
        )
    if isinstance(type_ref, ArrayTypeRef):
        return ArrayTypeRef(substitute(type_ref.element_type, mapping), type_ref.rank)
    return type_ref


def direct_supertypes(type_ref: NamedTypeRef) -> list[NamedTypeRef]:
    """Base type and interfaces of a constructed named type, substituted."""
    mapping = type_mapping(type_ref)
    supertypes: list[NamedTypeRef] = []
    symbol = type_ref.symbol
    if symbol.base_type is not None:
        supertypes.append(substitute(symbol.base_type, mapping))
    supertypes.extend(substitute(interface, mapping) for interface in symbol.interfaces)
    return supertypes


def all_supertypes(type_ref: NamedTypeRef) -> list[NamedTypeRef]:
    """Transitive supertypes in breadth-first order, without duplicates."""
    seen: list[NamedTypeRef] = []
    queue = direct_supertypes(type_ref)
    # Bounded so recursive generic bases (A<T> : A<List<T>>) terminate
    while queue and len(seen) < _MAX_SUPERTYPES:
        current = queue.pop(0)
        if current in seen:
            continue
        seen.append(current)
        queue.extend(direct_supertypes(current))
    return seen


def contains_type_parameters(
    type_ref: TypeRef, parameters: list[TypeParameterSymbol] | None = None
) -> bool:
    """Whether ``type_ref`` mentions any (or any of the given) type parameters."""
    if isinstance(type_ref, TypeParameterRef):
        return parameters is None or type_ref.parameter in parameters
    if isinstance(type_ref, NamedTypeRef):
        return any(
            contains_type_parameters(argument, parameters) for argument in type_ref.type_arguments
        )
    if isinstance(type_ref, ArrayTypeRef):
        return contains_type_parameters(type_ref.element_type, parameters)
    return False


def contains_error(type_ref: TypeRef | None) -> bool:
    if type_ref is None or isinstance(type_ref, ErrorTypeRef):
        return True
    if isinstance(type_ref, NamedTypeRef):
        return any(contains_error(argument) for argument in type_ref.type_arguments)
    if isinstance(type_ref, ArrayTypeRef):
        return contains_error(type_ref.element_type)
    return False


def is_named(type_ref: TypeRef | None, full_name: str) -> bool:
    return isinstance(type_ref, NamedTypeRef) and type_ref.symbol.full_name == full_name


def is_object(type_ref: TypeRef | None) -> bool:
    return is_named(type_ref, OBJECT_TYPE)


def is_void(type_ref: TypeRef | None) -> bool:
    return is_named(type_ref, VOID_TYPE)


def display_type(type_ref: TypeRef | None) -> str:
    """Render a type the way C# source spells it."""
    if type_ref is None:
        return "?"
    if isinstance(type_ref, NamedTypeRef):
        symbol = type_ref.symbol
        keyword = TYPE_KEYWORDS.get(symbol.full_name)
        if keyword is not None:
            return keyword
        if symbol.full_name == NULLABLE_TYPE and len(type_ref.type_arguments) == 1:
            return f"{display_type(type_ref.type_arguments[0])}?"
        name = symbol.name
        if symbol.containing_type is not None:
            name = f"{symbol.containing_type.name}.{name}"
        if not type_ref.type_arguments:
            return name
        return f"{name}<{', '.join(display_type(argument) for argument in type_ref.type_arguments)}>"
    if isinstance(type_ref, ArrayTypeRef):
        return f"{display_type(type_ref.element_type)}[{',' * (type_ref.rank - 1)}]"
    if isinstance(type_ref, TypeParameterRef):
        return type_ref.parameter.name
    if isinstance(type_ref, NullTypeRef):
        return "null"
    return type_ref.name
