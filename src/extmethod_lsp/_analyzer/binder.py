"""
Binding: resolves type syntax to ``TypeRef`` values.

Name lookup follows C#'s order: method type parameters, then type
parameters and nested types of each containing type, then for every
namespace level from the innermost outwards its types and child
namespaces, its aliases and finally the namespaces its ``using``
directives import. Names that do not resolve bind to ``ErrorTypeRef``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, Union

from extmethod_lsp.constants import (
    ENUM_TYPE,
    MULTICAST_DELEGATE_TYPE,
    NULLABLE_TYPE,
    OBJECT_TYPE,
    PREDEFINED_TYPES,
    VALUE_TYPE,
    VOID_TYPE,
)

from .declarations import DeclarationSite, ImportScope
from .symbols import (
    ArrayTypeRef,
    ErrorTypeRef,
    FieldSymbol,
    MethodSymbol,
    NamedTypeRef,
    NamedTypeSymbol,
    NamespaceRef,
    ParameterSymbol,
    TypeKind,
    TypeParameterRef,
    TypeParameterSymbol,
    TypeRef,
    all_supertypes,
    metadata_name,
    qualify,
)
from .ts_utils import (
    children_of_type,
    field,
    first_child_of_type,
    identifier_of,
    named_children,
    node_text,
    parameter_nodes,
    same_node,
    type_argument_nodes,
)

if TYPE_CHECKING:
    from tree_sitter import Node

    from .declarations import DeclarationCollector

logger = logging.getLogger(__name__)

_IMPLICIT_BASES = {
    TypeKind.CLASS: OBJECT_TYPE,
    TypeKind.STRUCT: VALUE_TYPE,
    TypeKind.ENUM: ENUM_TYPE,
    TypeKind.DELEGATE: MULTICAST_DELEGATE_TYPE,
}

_PARAMETER_KEYWORDS = frozenset({"this", "ref", "out", "in", "params", "scoped", "readonly"})

_ROOT_SCOPE = ImportScope("")

NameResult = Union[NamedTypeSymbol, TypeRef, NamespaceRef]


class TypeLookup(Protocol):
    """What the binder needs from the compilation it binds."""

    def get_type(self, full_name: str) -> NamedTypeSymbol | None: ...

    def namespace_exists(self, name: str) -> bool: ...


@dataclass(frozen=True)
class BindingContext:
    scope: ImportScope
    containing_type: NamedTypeSymbol | None = None
    method_type_parameters: tuple[TypeParameterSymbol, ...] = ()


class Binder:
    def __init__(self, lookup: TypeLookup):
        self.lookup = lookup

    def bind_declarations(self, collector: DeclarationCollector) -> None:
        """Bind base lists, constraints and member signatures."""
        for site in collector.type_sites:
            self._bind_type_site(site)
        for symbol in collector.type_map.values():
            self._add_implicit_base(symbol)
        for site in collector.member_sites:
            try:
                self._bind_member_site(site)
            except RecursionError:
                logger.debug(f"Skipping deeply nested declaration {site.symbol!r}")

    # Type syntax

    def special_type(self, keyword: str) -> TypeRef:
        full_name = PREDEFINED_TYPES.get(keyword, keyword)
        symbol = self.lookup.get_type(full_name)
        if symbol is None:
            return ErrorTypeRef(keyword)
        return NamedTypeRef(symbol)

    def bind_type(self, node: Node | None, context: BindingContext) -> TypeRef:
        if node is None:
            return ErrorTypeRef("?")
        kind = node.type
        if kind == "predefined_type":
            return self.special_type(node_text(node))
        if kind in ("identifier", "generic_name", "qualified_name", "alias_qualified_name"):
            result = self.resolve_name(node, context)
            if isinstance(result, NamespaceRef) or result is None:
                return ErrorTypeRef(node_text(node))
            return result
        if kind == "nullable_type":
            inner = self.bind_type(field(node, "type") or _first_named(node), context)
            if isinstance(inner, NamedTypeRef) and inner.symbol.is_value_type:
                nullable = self.lookup.get_type(NULLABLE_TYPE)
                if nullable is not None and inner.symbol is not nullable:
                    return NamedTypeRef(nullable, (inner,))
            return inner
        if kind == "array_type":
            element = self.bind_type(field(node, "type") or _first_named(node), context)
            rank_node = field(node, "rank") or first_child_of_type(node, "array_rank_specifier")
            rank = node_text(rank_node).count(",") + 1 if rank_node is not None else 1
            return ArrayTypeRef(element, rank)
        if kind == "tuple_type":
            elements = [
                self.bind_type(field(element, "type") or _first_named(element), context)
                for element in children_of_type(node, "tuple_element")
            ]
            tuple_symbol = self.lookup.get_type(f"System.ValueTuple`{len(elements)}")
            if tuple_symbol is None:
                return ErrorTypeRef(node_text(node))
            return NamedTypeRef(tuple_symbol, tuple(elements))
        if kind in ("ref_type", "scoped_type"):
            return self.bind_type(field(node, "type") or _first_named(node), context)
        return ErrorTypeRef(node_text(node))

    # Name lookup

    def resolve_name(self, node: Node, context: BindingContext) -> NameResult | None:
        """Resolve a (possibly qualified or generic) name to a type or namespace."""
        kind = node.type
        if kind == "predefined_type":
            return self.special_type(node_text(node))
        if kind in ("identifier", "generic_name"):
            identifier = identifier_of(node)
            arguments = [self.bind_type(argument, context) for argument in type_argument_nodes(node)]
            found = self.lookup_simple_name(node_text(identifier), len(arguments), context)
            return _construct(found, arguments)
        if kind == "qualified_name":
            qualifier = field(node, "qualifier")
            name = field(node, "name")
            if qualifier is None or name is None:
                parts = named_children(node)
                if len(parts) < 2:
                    return None
                qualifier, name = parts[0], parts[-1]
            left = self.resolve_name(qualifier, context)
            return self.resolve_member_name(left, name, context)
        if kind == "alias_qualified_name":
            # ``global`` may be an anonymous keyword token rather than an identifier
            alias = node_text(field(node, "alias") or node.children[0])
            name = field(node, "name") or node.children[-1]
            if alias == "global":
                left: NameResult | None = NamespaceRef("")
            else:
                left = self._resolve_alias(alias, context.scope)
            return self.resolve_member_name(left, name, context)
        return None

    def resolve_member_name(
        self, left: NameResult | None, name: Node, context: BindingContext
    ) -> NameResult | None:
        """Resolve ``left.name`` where ``left`` is a namespace or a type."""
        identifier = identifier_of(name)
        if identifier is None:
            return None
        text = node_text(identifier)
        arguments = [self.bind_type(argument, context) for argument in type_argument_nodes(name)]
        if isinstance(left, NamespaceRef):
            return _construct(self._lookup_in_namespace(left.name, text, len(arguments)), arguments)
        if isinstance(left, NamedTypeRef):
            return _construct(self._nested_type(left.symbol, text, len(arguments)), arguments)
        return None

    def lookup_simple_name(
        self, name: str, arity: int, context: BindingContext
    ) -> NameResult | None:
        if arity == 0:
            for parameter in context.method_type_parameters:
                if parameter.name == name:
                    return TypeParameterRef(parameter)

        containing = context.containing_type
        while containing is not None:
            if arity == 0:
                for parameter in containing.type_parameters:
                    if parameter.name == name:
                        return TypeParameterRef(parameter)
            nested = self._nested_type(containing, name, arity)
            if nested is not None:
                return nested
            containing = containing.containing_type

        for scope in context.scope.chain():
            found = self._lookup_in_namespace(scope.namespace, name, arity)
            if found is not None:
                return found
            if arity == 0 and name in scope.aliases:
                return self._bind_alias(scope, name)
            for namespace in scope.usings:
                symbol = self.lookup.get_type(qualify(namespace, metadata_name(name, arity)))
                if symbol is not None:
                    return symbol
        return None

    def _lookup_in_namespace(self, namespace: str, name: str, arity: int) -> NameResult | None:
        symbol = self.lookup.get_type(qualify(namespace, metadata_name(name, arity)))
        if symbol is not None:
            return symbol
        if arity == 0 and self.lookup.namespace_exists(qualify(namespace, name)):
            return NamespaceRef(qualify(namespace, name))
        return None

    def _nested_type(self, symbol: NamedTypeSymbol, name: str, arity: int) -> NamedTypeSymbol | None:
        nested = symbol.nested_type(name, arity)
        if nested is not None:
            return nested
        for supertype in all_supertypes(symbol.self_reference()):
            nested = supertype.symbol.nested_type(name, arity)
            if nested is not None:
                return nested
        return None

    def _resolve_alias(self, alias: str, scope: ImportScope) -> NameResult | None:
        for current in scope.chain():
            if alias in current.aliases:
                return self._bind_alias(current, alias)
        return None

    def _bind_alias(self, scope: ImportScope, alias: str) -> NameResult | None:
        # Alias targets ignore the using directives declared next to them
        target = scope.aliases[alias]
        context = BindingContext(scope.parent or _ROOT_SCOPE)
        if target.type in ("identifier", "generic_name", "qualified_name", "alias_qualified_name"):
            return self.resolve_name(target, context)
        return self.bind_type(target, context)

    # Declarations

    def _bind_type_site(self, site: DeclarationSite) -> None:
        symbol = site.symbol
        node = site.node
        context = BindingContext(site.scope, containing_type=symbol)
        self.bind_constraints(node, symbol.type_parameters, context)
        if symbol.kind in (TypeKind.ENUM, TypeKind.DELEGATE):
            return
        base_list = first_child_of_type(node, "base_list")
        if base_list is None:
            return
        for position, entry in enumerate(named_children(base_list)):
            if entry.type == "argument_list":
                continue
            type_node = entry
            if entry.type == "primary_constructor_base_type":
                type_node = field(entry, "type") or _first_named(entry)
            bound = self.bind_type(type_node, context)
            if not isinstance(bound, NamedTypeRef):
                logger.debug(f"Unresolved base type {node_text(type_node)!r} of {symbol.full_name}")
                continue
            if (
                symbol.kind is TypeKind.CLASS
                and position == 0
                and bound.symbol.kind is TypeKind.CLASS
                and symbol.base_type is None
            ):
                symbol.base_type = bound
            elif bound not in symbol.interfaces:
                symbol.interfaces.append(bound)

    def _add_implicit_base(self, symbol: NamedTypeSymbol) -> None:
        if symbol.base_type is not None or symbol.kind is TypeKind.INTERFACE:
            return
        if symbol.full_name == OBJECT_TYPE:
            return
        base = self.lookup.get_type(_IMPLICIT_BASES[symbol.kind])
        if base is None or base is symbol:
            return
        symbol.base_type = NamedTypeRef(base)

    def bind_constraints(
        self, node: Node, type_parameters: list[TypeParameterSymbol], context: BindingContext
    ) -> None:
        for clause in children_of_type(node, "type_parameter_constraints_clause"):
            target = field(clause, "target") or first_child_of_type(clause, "identifier")
            parameter = next(
                (candidate for candidate in type_parameters if candidate.name == node_text(target)),
                None,
            )
            if parameter is None:
                continue
            for constraint in children_of_type(clause, "type_parameter_constraint"):
                text = "".join(node_text(constraint).split())
                if text in ("class", "class?"):
                    parameter.has_reference_constraint = True
                elif text in ("struct", "unmanaged"):
                    parameter.has_value_constraint = True
                elif text == "new()":
                    parameter.has_constructor_constraint = True
                elif text == "notnull":
                    parameter.has_notnull_constraint = True
                elif text != "default":
                    type_node = field(constraint, "type") or _first_named(constraint)
                    parameter.constraint_types.append(self.bind_type(type_node, context))

    def _bind_member_site(self, site: DeclarationSite) -> None:
        symbol = site.symbol
        node = site.node
        if isinstance(symbol, MethodSymbol):
            context = BindingContext(
                site.scope, symbol.containing_type, tuple(symbol.type_parameters)
            )
            self.bind_constraints(node, symbol.type_parameters, context)
            if symbol.is_constructor:
                symbol.return_type = self.special_type(VOID_TYPE)
            else:
                symbol.return_type = self.bind_type(field(node, "returns", "type"), context)
            symbol.parameters = self.bind_parameters(node, context)
        elif isinstance(symbol, FieldSymbol):
            context = BindingContext(site.scope, symbol.containing_type)
            if node.type == "parameter":
                symbol.type = self.bind_type(parameter_type_node(node), context)
            else:
                symbol.type = self.bind_type(field(node, "type"), context)
            if symbol.kind == "indexer":
                symbol.parameters = self.bind_parameters(node, context)

    def bind_parameters(self, node: Node, context: BindingContext) -> list[ParameterSymbol]:
        parameters = []
        for parameter in parameter_nodes(node):
            if parameter.type == "identifier":
                continue
            name = field(parameter, "name") or _last_identifier(parameter)
            modifiers = parameter_modifiers(parameter)
            ref_kind = next((kind for kind in ("ref", "out", "in") if kind in modifiers), "")
            parameters.append(
                ParameterSymbol(
                    name=node_text(name),
                    type=self.bind_type(parameter_type_node(parameter), context),
                    is_this="this" in modifiers,
                    ref_kind=ref_kind,
                    is_params=parameter.type == "parameter_array" or "params" in modifiers,
                    has_default=any(
                        not child.is_named and node_text(child) == "=" for child in parameter.children
                    )
                    or first_child_of_type(parameter, "equals_value_clause") is not None,
                )
            )
        return parameters


def parameter_modifiers(parameter: Node) -> set[str]:
    modifiers = set()
    for child in parameter.children:
        if child.type in ("modifier", "parameter_modifier") or (
            not child.is_named and node_text(child) in _PARAMETER_KEYWORDS
        ):
            modifiers.update(node_text(child).split())
    return modifiers


def parameter_type_node(parameter: Node) -> Node | None:
    type_node = field(parameter, "type")
    if type_node is not None:
        return type_node
    name = field(parameter, "name") or _last_identifier(parameter)
    for child in named_children(parameter):
        if child.type in ("attribute_list", "modifier", "parameter_modifier", "equals_value_clause"):
            continue
        if same_node(child, name):
            continue
        return child
    return None


def _last_identifier(node: Node) -> Node | None:
    identifiers = children_of_type(node, "identifier")
    return identifiers[-1] if identifiers else None


def _first_named(node: Node) -> Node | None:
    children = named_children(node)
    return children[0] if children else None


def _construct(found: NameResult | None, arguments: list[TypeRef]) -> NameResult | None:
    if isinstance(found, NamedTypeSymbol):
        if found.arity != len(arguments):
            return None
        return NamedTypeRef(found, tuple(arguments))
    return found
