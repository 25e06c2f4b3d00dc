"""
Declaration collection: the first phase of building a compilation.

Walks every compilation unit and records namespaces, types (partial
declarations merged), members and the ``using`` scopes each declaration
sees. Types referenced by declarations are left unbound; the binder
resolves them once every type of the compilation is known.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Union

from extmethod_lsp.constants import OBSOLETE_ATTRIBUTE_NAMES
from extmethod_lsp.models import Accessibility

from .symbols import (
    FieldSymbol,
    MethodSymbol,
    NamedTypeSymbol,
    TypeKind,
    TypeParameterSymbol,
    Variance,
    metadata_name,
    qualify,
)
from .ts_utils import (
    TYPE_DECLARATION_NODES,
    children_of_type,
    field as child_field,
    first_child_of_type,
    get_modifiers,
    has_token,
    iter_declarators,
    named_children,
    node_text,
    type_parameter_nodes,
)

if TYPE_CHECKING:
    from tree_sitter import Node

    from .compilation import SourceDocument

logger = logging.getLogger(__name__)

_KIND_BY_NODE = {
    "class_declaration": TypeKind.CLASS,
    "struct_declaration": TypeKind.STRUCT,
    "interface_declaration": TypeKind.INTERFACE,
    "enum_declaration": TypeKind.ENUM,
    "record_declaration": TypeKind.CLASS,
    "record_struct_declaration": TypeKind.STRUCT,
    "delegate_declaration": TypeKind.DELEGATE,
}

Symbol = Union[NamedTypeSymbol, MethodSymbol, FieldSymbol]


@dataclass(eq=False)
class ImportScope:
    """Names brought into scope by one namespace level.

    ``namespace A.B { using X; }`` produces the chain
    ``A.B (using X) -> A -> <compilation unit>``.
    """

    namespace: str
    parent: ImportScope | None = None
    usings: list[str] = field(default_factory=list)
    aliases: dict[str, Node] = field(default_factory=dict)

    def chain(self):
        scope: ImportScope | None = self
        while scope is not None:
            yield scope
            scope = scope.parent

    def imported_namespaces(self) -> set[str]:
        """Namespaces whose members are in scope without qualification."""
        namespaces = set()
        for scope in self.chain():
            if scope.namespace:
                namespaces.add(scope.namespace)
            namespaces.update(scope.usings)
        return namespaces

    def __repr__(self) -> str:
        return f"ImportScope({self.namespace!r}, usings={self.usings!r})"


@dataclass(frozen=True)
class ScopeRegion:
    """Byte range of a document governed by ``scope``."""

    path: str
    start_byte: int
    end_byte: int
    scope: ImportScope


@dataclass(frozen=True)
class DeclarationSite:
    """A symbol and the syntax (plus scope) its types are bound from."""

    symbol: Symbol
    node: Node
    scope: ImportScope
    path: str


def declared_accessibility(modifiers: set[str] | frozenset[str], default: Accessibility) -> Accessibility:
    """Map C# modifiers to the three accessibility levels that matter here."""
    if "public" in modifiers:
        return Accessibility.PUBLIC
    if "internal" in modifiers:
        return Accessibility.INTERNAL
    if modifiers & {"private", "protected", "file"}:
        return Accessibility.PROTECTED_OR_PRIVATE
    return default


def is_obsolete_attribute(name: str) -> bool:
    """Recognize ``Obsolete``, ``ObsoleteAttribute`` and ``System.Obsolete``."""
    name = "".join(name.split())
    if name.startswith("global::"):
        name = name[len("global::") :]
    qualifier, _, simple = name.rpartition(".")
    return simple in OBSOLETE_ATTRIBUTE_NAMES and qualifier in ("", "System")


def attribute_names(node: Node) -> list[str]:
    names = []
    for attribute_list in children_of_type(node, "attribute_list"):
        for attribute in children_of_type(attribute_list, "attribute"):
            name = child_field(attribute, "name") or first_child_of_type(
                attribute, "identifier", "qualified_name", "generic_name", "alias_qualified_name"
            )
            if name is not None:
                names.append(node_text(name))
    return names


def has_obsolete_attribute(node: Node) -> bool:
    return any(is_obsolete_attribute(name) for name in attribute_names(node))


def name_text(node: Node | None) -> str:
    """Dotted name without whitespace or a ``global::`` prefix."""
    text = "".join(node_text(node).split())
    if text.startswith("global::"):
        text = text[len("global::") :]
    return text


class DeclarationCollector:
    """Collects the declarations of one assembly from its documents."""

    def __init__(self, assembly_name: str):
        self.assembly_name = assembly_name
        # Top-level types in declaration order
        self.types: list[NamedTypeSymbol] = []
        # full_name -> symbol, nested types included
        self.type_map: dict[str, NamedTypeSymbol] = {}
        self.namespaces: set[str] = set()
        self.regions: list[ScopeRegion] = []
        self.declared: dict[tuple[str, int], Symbol] = {}
        self.type_sites: list[DeclarationSite] = []
        self.member_sites: list[DeclarationSite] = []
        self._root_scopes: list[ImportScope] = []
        self._global_usings: list[str] = []
        self._global_aliases: dict[str, Node] = {}

    def collect(self, document: SourceDocument) -> None:
        root = document.tree.root_node
        scope = ImportScope("")
        self._root_scopes.append(scope)
        self.regions.append(ScopeRegion(document.path, 0, root.end_byte, scope))
        self._collect_namespace_members(root.children, scope, document.path, root)

    def finish(self) -> None:
        """Apply ``global using`` directives to every compilation unit."""
        for scope in self._root_scopes:
            for namespace in self._global_usings:
                if namespace not in scope.usings:
                    scope.usings.append(namespace)
            for alias, target in self._global_aliases.items():
                scope.aliases.setdefault(alias, target)

    def _collect_namespace_members(
        self, nodes: list[Node], scope: ImportScope, path: str, root: Node
    ) -> None:
        for child in nodes:
            if child.type == "using_directive":
                self._add_using(child, scope)
            elif child.type == "namespace_declaration":
                inner = self._enter_namespace(child, scope)
                self.regions.append(ScopeRegion(path, child.start_byte, child.end_byte, inner))
                body = child_field(child, "body") or first_child_of_type(child, "declaration_list")
                if body is not None:
                    self._collect_namespace_members(body.children, inner, path, root)
            elif child.type == "file_scoped_namespace_declaration":
                # Everything after the declaration belongs to the namespace
                inner = self._enter_namespace(child, scope)
                self.regions.append(ScopeRegion(path, child.start_byte, root.end_byte, inner))
                self._collect_namespace_members(child.children, inner, path, root)
                scope = inner
            elif child.type in TYPE_DECLARATION_NODES:
                self._collect_type(child, scope, None, path)
            elif child.type == "declaration_list":
                self._collect_namespace_members(child.children, scope, path, root)

    def _enter_namespace(self, node: Node, scope: ImportScope) -> ImportScope:
        name_node = child_field(node, "name") or first_child_of_type(
            node, "qualified_name", "identifier"
        )
        name = name_text(name_node)
        for segment in name.split(".") if name else ():
            scope = ImportScope(qualify(scope.namespace, segment), parent=scope)
            self.namespaces.add(scope.namespace)
        return scope

    def _add_using(self, node: Node, scope: ImportScope) -> None:
        if any(child.type == "static" for child in node.children):
            # using static only imports members of one type
            return
        is_global = any(child.type == "global" for child in node.children)
        named = named_children(node)
        alias_node = first_child_of_type(node, "name_equals")
        alias = None
        if alias_node is not None:
            identifier = first_child_of_type(alias_node, "identifier")
            alias = node_text(identifier)
            named = [child for child in named if child.type != "name_equals"]
        elif has_token(node, "=") and len(named) >= 2:
            alias = node_text(named[0])
            named = named[1:]
        if not named:
            return
        target = named[-1]
        if alias:
            scope.aliases[alias] = target
            if is_global:
                self._global_aliases[alias] = target
            return
        namespace = name_text(target)
        if namespace not in scope.usings:
            scope.usings.append(namespace)
        if is_global and namespace not in self._global_usings:
            self._global_usings.append(namespace)

    def _collect_type(
        self,
        node: Node,
        scope: ImportScope,
        containing: NamedTypeSymbol | None,
        path: str,
    ) -> NamedTypeSymbol | None:
        name_node = child_field(node, "name")
        if name_node is None:
            return None
        name = node_text(name_node)
        kind = _KIND_BY_NODE[node.type]
        if node.type == "record_declaration" and any(
            child.type == "struct" for child in node.children
        ):
            kind = TypeKind.STRUCT
        modifiers = frozenset(get_modifiers(node))
        type_parameters = [
            _type_parameter(parameter, ordinal)
            for ordinal, parameter in enumerate(type_parameter_nodes(node))
        ]
        key = metadata_name(name, len(type_parameters))
        existing = (
            containing.nested_types.get(key)
            if containing is not None
            else self.type_map.get(qualify(scope.namespace, key))
        )
        is_obsolete = has_obsolete_attribute(node)

        if existing is not None and "partial" in modifiers and existing.kind is kind:
            symbol = existing
            symbol.modifiers = symbol.modifiers | modifiers
            symbol.declared_accessibility = declared_accessibility(
                symbol.modifiers, symbol.declared_accessibility
            )
            symbol.is_obsolete = symbol.is_obsolete or is_obsolete
        else:
            default = (
                Accessibility.INTERNAL if containing is None else self._member_default(containing)
            )
            symbol = NamedTypeSymbol(
                name=name,
                kind=kind,
                namespace=scope.namespace,
                assembly_name=self.assembly_name,
                declared_accessibility=declared_accessibility(modifiers, default),
                modifiers=modifiers,
                containing_type=containing,
                type_parameters=type_parameters,
                is_obsolete=is_obsolete,
                is_record=node.type in ("record_declaration", "record_struct_declaration"),
            )
            if containing is not None:
                containing.nested_types.setdefault(key, symbol)
            else:
                self.types.append(symbol)
            self.type_map.setdefault(symbol.full_name, symbol)

        self.declared[(path, node.start_byte)] = symbol
        self.type_sites.append(DeclarationSite(symbol, node, scope, path))

        if kind is TypeKind.DELEGATE:
            invoke = MethodSymbol(
                name="Invoke",
                containing_type=symbol,
                declared_accessibility=Accessibility.PUBLIC,
                modifiers=frozenset({"public"}),
            )
            symbol.methods.append(invoke)
            self.member_sites.append(DeclarationSite(invoke, node, scope, path))
            return symbol

        if symbol.is_record:
            self._collect_primary_constructor(node, symbol, scope, path)

        body = child_field(node, "body") or first_child_of_type(
            node, "declaration_list", "enum_member_declaration_list"
        )
        if body is not None:
            for member in named_children(body):
                self._collect_member(member, symbol, scope, path)
        return symbol

    @staticmethod
    def _member_default(containing: NamedTypeSymbol) -> Accessibility:
        if containing.kind in (TypeKind.INTERFACE, TypeKind.ENUM):
            return Accessibility.PUBLIC
        return Accessibility.PROTECTED_OR_PRIVATE

    def _collect_primary_constructor(
        self, node: Node, symbol: NamedTypeSymbol, scope: ImportScope, path: str
    ) -> None:
        parameter_list = child_field(node, "parameters") or first_child_of_type(
            node, "parameter_list"
        )
        if parameter_list is None:
            return
        for parameter in children_of_type(parameter_list, "parameter"):
            name = child_field(parameter, "name")
            if name is None:
                continue
            prop = FieldSymbol(
                name=node_text(name),
                kind="property",
                containing_type=symbol,
                declared_accessibility=Accessibility.PUBLIC,
                modifiers=frozenset({"public"}),
            )
            symbol.fields.append(prop)
            self.member_sites.append(DeclarationSite(prop, parameter, scope, path))

    def _collect_member(
        self, node: Node, containing: NamedTypeSymbol, scope: ImportScope, path: str
    ) -> None:
        if node.type in TYPE_DECLARATION_NODES:
            self._collect_type(node, scope, containing, path)
            return

        modifiers = frozenset(get_modifiers(node))
        accessibility = declared_accessibility(modifiers, self._member_default(containing))

        if node.type in ("method_declaration", "constructor_declaration"):
            name_node = child_field(node, "name")
            if name_node is None:
                return
            is_constructor = node.type == "constructor_declaration"
            method = MethodSymbol(
                name=".ctor" if is_constructor else node_text(name_node),
                containing_type=containing,
                declared_accessibility=accessibility,
                modifiers=modifiers,
                type_parameters=[
                    _type_parameter(parameter, ordinal, declared_by_method=True)
                    for ordinal, parameter in enumerate(type_parameter_nodes(node))
                ],
                is_constructor=is_constructor,
                is_obsolete=has_obsolete_attribute(node),
            )
            containing.methods.append(method)
            self._register(method, node, scope, path)
        elif node.type in ("field_declaration", "event_field_declaration"):
            declaration = first_child_of_type(node, "variable_declaration")
            if declaration is None:
                return
            kind = "event" if node.type == "event_field_declaration" else "field"
            if "const" in modifiers:
                kind = "const"
            for declarator in iter_declarators(declaration):
                name_node = child_field(declarator, "name") or first_child_of_type(
                    declarator, "identifier"
                )
                if name_node is None:
                    continue
                member = FieldSymbol(
                    name=node_text(name_node),
                    kind=kind,
                    containing_type=containing,
                    declared_accessibility=accessibility,
                    modifiers=modifiers,
                )
                containing.fields.append(member)
                self.declared[(path, declarator.start_byte)] = member
                self.member_sites.append(DeclarationSite(member, declaration, scope, path))
        elif node.type in ("property_declaration", "event_declaration"):
            name_node = child_field(node, "name")
            if name_node is None:
                return
            member = FieldSymbol(
                name=node_text(name_node),
                kind="property" if node.type == "property_declaration" else "event",
                containing_type=containing,
                declared_accessibility=accessibility,
                modifiers=modifiers,
            )
            containing.fields.append(member)
            self._register(member, node, scope, path)
        elif node.type == "indexer_declaration":
            member = FieldSymbol(
                name="this[]",
                kind="indexer",
                containing_type=containing,
                declared_accessibility=accessibility,
                modifiers=modifiers,
            )
            containing.fields.append(member)
            self._register(member, node, scope, path)
        elif node.type == "enum_member_declaration":
            name_node = child_field(node, "name") or first_child_of_type(node, "identifier")
            if name_node is None:
                return
            containing.fields.append(
                FieldSymbol(
                    name=node_text(name_node),
                    kind="enum_member",
                    containing_type=containing,
                    declared_accessibility=Accessibility.PUBLIC,
                    modifiers=frozenset({"public", "static"}),
                    type=containing.self_reference(),
                )
            )

    def _register(self, symbol: Symbol, node: Node, scope: ImportScope, path: str) -> None:
        self.declared[(path, node.start_byte)] = symbol
        self.member_sites.append(DeclarationSite(symbol, node, scope, path))


def _type_parameter(node: Node, ordinal: int, declared_by_method: bool = False) -> TypeParameterSymbol:
    name_node = child_field(node, "name") or first_child_of_type(node, "identifier")
    variance = Variance.INVARIANT
    for child in node.children:
        if child.type == "identifier":
            continue
        text = node_text(child)
        if text == "out":
            variance = Variance.COVARIANT
        elif text == "in":
            variance = Variance.CONTRAVARIANT
    return TypeParameterSymbol(
        name=node_text(name_node),
        ordinal=ordinal,
        variance=variance,
        declared_by_method=declared_by_method,
    )
